default_app_config = 'apps.core.apps.CoreConfig'

# Export permission class and decorator for easy importing
from apps.core.permissions import HasGrant, requires_permission

__all__ = ['HasGrant', 'requires_permission']
