"""
RBAC signals for automatic role seeding.

Every new operator gets an "Admin" system role holding the whole grant
catalog, so the first user registered into the operator can manage it.
"""
from django.db import transaction
from django.db.models.signals import post_save
from django.dispatch import receiver

ADMIN_ROLE_NAME = 'Admin'


@receiver(post_save, sender='operators.Operator')
def seed_roles_on_operator_creation(sender, instance, created, **kwargs):
    """Seed the Admin system role when an operator is created."""
    if not created:
        return

    from apps.rbac.models import AuditLog, Role, RoleGrant
    from apps.rbac.management.commands.seed_grants import Command

    with transaction.atomic():
        grants, _ = Command.seed()

        role, role_created = Role.objects.get_or_create(
            operator=instance,
            name=ADMIN_ROLE_NAME,
            defaults={
                'description': 'Full access to every resource of the operator',
                'is_system_role': True,
            }
        )
        for grant in grants:
            RoleGrant.objects.grant_permission(role, grant)

        if role_created:
            AuditLog.log_action(
                action='operator_roles_seeded',
                operator=instance,
                resource='roles',
                resource_id=role.id,
                details={'roles_created': [ADMIN_ROLE_NAME], 'trigger': 'post_save_signal'},
            )
