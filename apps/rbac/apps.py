"""
RBAC app configuration.
"""
from django.apps import AppConfig


class RbacConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.rbac'
    verbose_name = 'Users, roles and grants'

    def ready(self):
        """Connect the operator role seeding signal."""
        import apps.rbac.signals  # noqa
