"""
DRF permission class and decorator for grant enforcement.

This module provides:
- evaluate_access: the allow/deny decision for one (resource, action)
- HasGrant: DRF permission class that enforces ``required_permission``
- @requires_permission: Decorator to declare the grant a view or method needs
"""
import logging
from typing import Iterable
from rest_framework.permissions import BasePermission

logger = logging.getLogger(__name__)


def permission_string(resource: str, action: str) -> str:
    return f"{resource}.{action}"


def evaluate_access(is_super: bool, permissions: Iterable[str], resource: str, action: str) -> bool:
    """
    Decide whether a caller may perform ``action`` on ``resource``.

    Super-operator callers are always allowed, even for pairs with no Grant
    row. Everyone else needs ``"resource.action"`` in their role's permissions.
    """
    if is_super:
        return True
    return permission_string(resource, action) in set(permissions or ())


class HasGrant(BasePermission):
    """
    DRF permission class that checks the view's required grant.

    The check runs in ``initial()``, before the handler touches any data.
    A view without ``required_permission`` only requires an authenticated
    caller; an unauthenticated request is always refused.

    Usage:
        @requires_permission('roles', 'read')
        class RoleListView(APIView):
            permission_classes = [HasGrant]
    """

    def has_permission(self, request, view):
        caller = getattr(request, 'caller', None)
        if caller is None:
            return False

        handler = getattr(view, request.method.lower(), None)
        required = (
            getattr(handler, 'required_permission', None)
            or getattr(view, 'required_permission', None)
        )
        if not required:
            return True

        resource, action = required
        # alias routes (e.g. /trucks) re-check the same handler under their own resource
        resource = getattr(view, 'permission_resource', None) or resource
        if caller.can_access(resource, action):
            return True

        logger.warning(
            f"Permission denied: user {caller.user_id} missing {permission_string(resource, action)}",
            extra={
                'required_permission': permission_string(resource, action),
                'view': view.__class__.__name__,
                'method': request.method,
                'path': request.path,
            }
        )
        return False

    def has_object_permission(self, request, view, obj):
        """Verify that the object belongs to the caller's operator."""
        caller = getattr(request, 'caller', None)
        if caller is None:
            return False
        if caller.is_super:
            return True

        object_operator_id = getattr(obj, 'operator_id', None)
        if object_operator_id is None:
            return True

        if str(object_operator_id) != str(caller.operator_id):
            logger.warning(
                "Object permission denied: object belongs to another operator",
                extra={
                    'object_type': obj.__class__.__name__,
                    'object_id': str(getattr(obj, 'id', None)),
                    'view': view.__class__.__name__,
                }
            )
            return False
        return True


def requires_permission(resource: str, action: str):
    """
    Declare the grant a view class or handler method requires.

    On a class it sets ``required_permission`` for every handler. On a
    method it sets it for that handler only, before ``HasGrant`` runs.

        class OperationListView(APIView):
            permission_classes = [HasGrant]

            @requires_permission('operations', 'read')
            def get(self, request): ...

            @requires_permission('operations', 'create')
            def post(self, request): ...
    """
    required = (resource, action)

    def decorator(view_or_method):
        if isinstance(view_or_method, type):
            view_or_method.required_permission = required
            return view_or_method

        view_or_method.required_permission = required
        return view_or_method

    return decorator
