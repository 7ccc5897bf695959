"""
RBAC services: permission evaluation, role management, authentication,
users and audit log queries.
"""
import logging
from datetime import timedelta
from typing import FrozenSet, Iterable, List, Optional, Tuple

import jwt
from django.conf import settings
from django.core.cache import cache
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from apps.core.exceptions import (
    ConflictError, NotFoundError, PermissionDeniedError, ValidationError,
)
from apps.core.permissions import evaluate_access
from apps.core.tenancy import CallerContext, resolve_operator_id
from apps.operators.models import Operator
from apps.rbac.models import AuditLog, Grant, Role, RoleGrant, User

logger = logging.getLogger(__name__)


def parse_permission(permission) -> Tuple[str, str]:
    """
    Split a ``"resource.action"`` string into its two parts.

    Raises:
        ValidationError: If the string is not exactly two non-empty parts joined by a dot
    """
    parts = permission.split('.') if isinstance(permission, str) else []
    if len(parts) != 2 or not parts[0].strip() or not parts[1].strip():
        raise ValidationError(
            f'Invalid permission format: {permission}. Expected "resource.action"',
            details={'permission': permission}
        )
    return parts[0].strip(), parts[1].strip()


def parse_permissions(permissions: Iterable[str]) -> List[Tuple[str, str]]:
    """Parse every permission string up front so a bad entry fails before any write."""
    parsed = []
    for permission in permissions:
        pair = parse_permission(permission)
        if pair not in parsed:
            parsed.append(pair)
    return parsed


class RBACService:
    """
    Permission Evaluator.

    A role's permission set is cached under ``rbac:permissions:role:<id>``
    for PERMISSION_CACHE_TTL seconds. Role and grant mutations made through
    this module invalidate the key, so the TTL only bounds staleness for
    writes made outside it.
    """

    @staticmethod
    def _cache_key(role_id):
        return f"rbac:permissions:role:{role_id}"

    @classmethod
    def cache_ttl(cls):
        return getattr(settings, 'PERMISSION_CACHE_TTL', 300)

    @classmethod
    def resolve_role_permissions(cls, role_id) -> FrozenSet[str]:
        """
        Resolve the ``resource.action`` strings granted by a role.

        Args:
            role_id: Role primary key

        Returns:
            frozenset of permission strings
        """
        if role_id is None:
            return frozenset()

        cache_key = cls._cache_key(role_id)
        cached = cache.get(cache_key)
        if cached is not None:
            return frozenset(cached)

        permissions = frozenset(
            f"{resource}.{action}"
            for resource, action in Grant.objects.filter(
                role_grants__role_id=role_id
            ).values_list('resource', 'action')
        )
        cache.set(cache_key, sorted(permissions), cls.cache_ttl())
        return permissions

    @classmethod
    def invalidate_role_cache(cls, role_id):
        cache.delete(cls._cache_key(role_id))
        logger.debug(f"Invalidated permission cache for role {role_id}")

    @classmethod
    def can_access(cls, user: User, resource: str, action: str) -> bool:
        """
        Decide whether ``user`` may perform ``action`` on ``resource``.

        Users of a super operator are always allowed. Everyone else needs the
        ``resource.action`` grant on their role.
        """
        if user is None:
            return False
        if user.is_super:
            return True
        return evaluate_access(False, cls.resolve_role_permissions(user.role_id), resource, action)

    @classmethod
    def build_caller(cls, user: User) -> CallerContext:
        """Build the caller context used by services for this user."""
        return CallerContext(
            user=user,
            operator_id=user.operator_id,
            is_super=user.is_super,
            permissions=cls.resolve_role_permissions(user.role_id),
        )


class RoleService:
    """Role & grant management."""

    @classmethod
    def list_roles(cls, caller: CallerContext, search: str = None, operator_id=None):
        """
        List the roles visible to ``caller``, annotated with user counts.

        Super callers may narrow the list to one operator with ``operator_id``.
        """
        queryset = Role.objects.for_caller(caller).with_user_counts().select_related('operator')
        if operator_id and caller.is_super:
            queryset = queryset.filter(operator_id=operator_id)
        if search:
            queryset = queryset.filter(name__icontains=search)
        return queryset.prefetch_related('role_grants__grant').order_by('name')

    @classmethod
    def get_role(cls, caller: CallerContext, role_id) -> Role:
        return Role.objects.for_caller(caller).with_user_counts().get_for_caller(caller, role_id, 'Role')

    @classmethod
    def list_grants(cls):
        return Grant.objects.all()

    @classmethod
    def _replace_grants(cls, role: Role, parsed: List[Tuple[str, str]]):
        RoleGrant.objects.for_role(role).delete()
        for resource, action in parsed:
            grant, _ = Grant.objects.get_or_create_grant(resource, action)
            RoleGrant.objects.grant_permission(role, grant)

    @classmethod
    @transaction.atomic
    def create_role(cls, caller: CallerContext, name: str, permissions: Iterable[str] = (),
                    operator_id=None, description: str = '', request=None) -> Role:
        """
        Create a role for an operator and link its grants.

        Grants named in ``permissions`` are created on first use.

        Raises:
            PermissionDeniedError: If a regular caller targets another operator
            NotFoundError: If the operator does not exist
            ValidationError: If the operator is inactive or a permission string is malformed
            ConflictError: If the name is taken within the operator
        """
        operator_id = resolve_operator_id(caller, operator_id, 'roles')
        operator = Operator.objects.filter(id=operator_id).first()
        if operator is None:
            raise NotFoundError(f"Operator with ID {operator_id} not found")
        if not operator.status:
            raise ValidationError(f"Operator with ID {operator_id} is inactive")

        parsed = parse_permissions(permissions or [])

        if Role.objects.by_name(operator.id, name) is not None:
            raise ConflictError(f'Role with name "{name}" already exists for this operator')

        role = Role.objects.create(operator=operator, name=name, description=description or '')
        cls._replace_grants(role, parsed)

        AuditLog.log_action(
            action='role_created',
            user=caller.user,
            operator=operator,
            resource='roles',
            resource_id=role.id,
            details={'name': name, 'permissions': [f"{r}.{a}" for r, a in parsed]},
            request=request,
        )
        logger.info(
            f"Role created: {name}",
            extra={'role_id': str(role.id), 'operator_id': str(operator.id)}
        )
        return role

    @classmethod
    @transaction.atomic
    def update_role(cls, caller: CallerContext, role_id, name: Optional[str] = None,
                    permissions: Optional[Iterable[str]] = None, description: Optional[str] = None,
                    request=None) -> Role:
        """
        Rename a role and/or replace its grant set.

        A given ``permissions`` list replaces every existing grant of the role.
        All strings are parsed before any RoleGrant is removed, so a malformed
        entry leaves the role untouched.

        Raises:
            NotFoundError: If the role is not visible to the caller
            ValidationError: If a permission string is malformed or a system role is renamed
            ConflictError: If the new name is taken within the operator
        """
        role = Role.objects.for_caller(caller).select_for_update().get_for_caller(caller, role_id, 'Role')
        parsed = parse_permissions(permissions) if permissions is not None else None

        changes = {}
        if name is not None and name != role.name:
            if role.is_system_role:
                raise ValidationError("System roles cannot be renamed")
            if Role.objects.filter(operator_id=role.operator_id, name=name).exclude(id=role.id).exists():
                raise ConflictError(f'Role with name "{name}" already exists for this operator')
            changes['name'] = {'from': role.name, 'to': name}
            role.name = name

        if description is not None:
            role.description = description

        role.save()

        if parsed is not None:
            cls._replace_grants(role, parsed)
            changes['permissions'] = [f"{r}.{a}" for r, a in parsed]
            transaction.on_commit(lambda: cls._after_grants_changed(role.id))
        RBACService.invalidate_role_cache(role.id)

        AuditLog.log_action(
            action='role_updated',
            user=caller.user,
            operator=role.operator_id,
            resource='roles',
            resource_id=role.id,
            details=changes,
            request=request,
        )
        return role

    @classmethod
    def _after_grants_changed(cls, role_id):
        RBACService.invalidate_role_cache(role_id)

    @classmethod
    @transaction.atomic
    def delete_role(cls, caller: CallerContext, role_id, request=None):
        """
        Delete a role that no user holds.

        The role's RoleGrants are released first, then the role, in one transaction.

        Raises:
            NotFoundError: If the role is not visible to the caller
            ConflictError: If any user is assigned to the role
            ValidationError: If the role is a system role
        """
        role = Role.objects.for_caller(caller).select_for_update().get_for_caller(caller, role_id, 'Role')

        user_count = cls.get_user_count(role.id)
        if user_count > 0:
            raise ConflictError(
                f"Cannot delete role with {user_count} assigned users. "
                f"Please reassign users first.",
                details={'user_count': user_count}
            )
        if role.is_system_role:
            raise ValidationError("System roles cannot be deleted")

        RoleGrant.objects.for_role(role).delete()
        operator_id, name = role.operator_id, role.name
        role.delete()
        RBACService.invalidate_role_cache(role_id)

        AuditLog.log_action(
            action='role_deleted',
            user=caller.user,
            operator=operator_id,
            resource='roles',
            resource_id=role_id,
            details={'name': name},
            request=request,
        )

    @staticmethod
    def get_user_count(role_id) -> int:
        return User.objects.filter(role_id=role_id).count()


class AuthService:
    """Authentication: JWT issuing/validation, login and registration."""

    @staticmethod
    def generate_jwt(user: User) -> str:
        """
        Generate an access token for ``user``.

        The payload carries ``{sub, username, email, operatorId, roleId, isSuper}``.
        """
        now = timezone.now()
        expiration_hours = getattr(settings, 'JWT_EXPIRATION_HOURS', 24)
        payload = {
            'sub': str(user.id),
            'username': user.username,
            'email': user.email,
            'operatorId': str(user.operator_id),
            'roleId': str(user.role_id),
            'isSuper': user.is_super,
            'iat': int(now.timestamp()),
            'exp': int((now + timedelta(hours=expiration_hours)).timestamp()),
        }
        return jwt.encode(
            payload,
            settings.JWT_SECRET_KEY,
            algorithm=getattr(settings, 'JWT_ALGORITHM', 'HS256')
        )

    @staticmethod
    def validate_jwt(token: str) -> Optional[dict]:
        """Decode ``token``; returns None when it is expired or invalid."""
        try:
            return jwt.decode(
                token,
                settings.JWT_SECRET_KEY,
                algorithms=[getattr(settings, 'JWT_ALGORITHM', 'HS256')]
            )
        except jwt.ExpiredSignatureError:
            logger.info("Expired JWT presented")
            return None
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid JWT presented: {e}")
            return None

    @classmethod
    def get_user_from_jwt(cls, token: str) -> Optional[User]:
        payload = cls.validate_jwt(token)
        if not payload or not payload.get('sub'):
            return None
        try:
            return User.objects.select_related('operator', 'role').get(id=payload['sub'])
        except (User.DoesNotExist, ValueError, DjangoValidationError):
            return None

    @classmethod
    def login(cls, username: str, password: str, request=None) -> Optional[dict]:
        """
        Authenticate with username and password.

        Returns:
            dict with ``user`` and ``access_token``, or None if the credentials
            are wrong or the user or its operator is inactive
        """
        user = User.objects.select_related('operator', 'role').filter(username=username).first()
        if user is None or not user.check_password(password):
            return None
        if not user.is_active or not user.operator.is_active():
            logger.info(
                "Login refused for inactive account",
                extra={'user_id': str(user.id), 'operator_id': str(user.operator_id)}
            )
            return None

        user.last_login_at = timezone.now()
        user.save(update_fields=['last_login_at'])

        AuditLog.log_action(
            action='login',
            user=user,
            operator=user.operator,
            resource='auth',
            resource_id=user.id,
            request=request,
        )
        return {'user': user, 'access_token': cls.generate_jwt(user)}

    @classmethod
    @transaction.atomic
    def register(cls, username: str, email: str, password: str, operator_id, role_id,
                 first_name: str = '', last_name: str = '') -> dict:
        """
        Register a new user and return it with an access token.

        Raises:
            ConflictError: If the username or email already exists
            ValidationError: If the operator or role is invalid
        """
        if User.objects.filter(username=username).exists():
            raise ConflictError('Username already exists')
        if User.objects.filter(email__iexact=email).exists():
            raise ConflictError('Email already exists')

        operator, role = UserService.validate_operator_and_role(operator_id, role_id)
        user = User.objects.create_user(
            username=username,
            email=email,
            operator=operator,
            role=role,
            password=password,
            first_name=first_name,
            last_name=last_name,
        )
        logger.info(f"User registered: {user.username}", extra={'user_id': str(user.id)})
        return {'user': user, 'access_token': cls.generate_jwt(user)}


class UserService:
    """Operator-scoped user management."""

    @staticmethod
    def validate_operator_and_role(operator_id, role_id):
        """
        Check that the operator exists and is active and that the role belongs to it.

        Raises:
            ValidationError: If either check fails
        """
        operator = Operator.objects.filter(id=operator_id).first()
        if operator is None:
            raise ValidationError(f"Operator with ID {operator_id} not found")
        if not operator.status:
            raise ValidationError(f"Operator with ID {operator_id} is inactive")

        role = Role.objects.filter(id=role_id, operator=operator).first()
        if role is None:
            raise ValidationError(f"Role with ID {role_id} not found for operator {operator_id}")
        return operator, role

    @classmethod
    def list_users(cls, caller: CallerContext, search: str = None, role_id=None, is_active=None):
        queryset = User.objects.for_caller(caller).select_related('operator', 'role')
        if search:
            queryset = queryset.filter(
                Q(username__icontains=search)
                | Q(email__icontains=search)
                | Q(first_name__icontains=search)
                | Q(last_name__icontains=search)
            )
        if role_id:
            queryset = queryset.filter(role_id=role_id)
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active)
        return queryset

    @classmethod
    def get_user(cls, caller: CallerContext, user_id) -> User:
        return User.objects.select_related('operator', 'role').get_for_caller(caller, user_id, 'User')

    @classmethod
    @transaction.atomic
    def create_user(cls, caller: CallerContext, data: dict, request=None) -> User:
        """
        Create a user inside the caller's operator (or any operator for super callers).

        Raises:
            ConflictError: If the username or email already exists
            ValidationError: If the operator is inactive or the role is foreign
        """
        operator_id = resolve_operator_id(caller, data.get('operator_id'), 'users')

        if User.objects.filter(username=data['username']).exists():
            raise ConflictError(f"Username {data['username']} already exists")
        if User.objects.filter(email__iexact=data['email']).exists():
            raise ConflictError(f"Email {data['email']} already exists")

        operator, role = cls.validate_operator_and_role(operator_id, data['role_id'])
        user = User.objects.create_user(
            username=data['username'],
            email=data['email'],
            operator=operator,
            role=role,
            password=data['password'],
            first_name=data.get('first_name', ''),
            last_name=data.get('last_name', ''),
            is_active=data.get('is_active', True),
        )
        AuditLog.log_action(
            action='user_created', user=caller.user, operator=operator,
            resource='users', resource_id=user.id,
            details={'username': user.username, 'role': role.name}, request=request,
        )
        return user

    @classmethod
    @transaction.atomic
    def update_user(cls, caller: CallerContext, user_id, data: dict, request=None) -> User:
        """
        Update a user. The user's operator cannot change.

        Raises:
            PermissionDeniedError: If the update tries to move the user to another operator
            ValidationError: If the new role does not belong to the user's operator
            ConflictError: If the new username or email is taken
        """
        user = cls.get_user(caller, user_id)

        operator_id = data.get('operator_id')
        if operator_id and str(operator_id) != str(user.operator_id):
            raise PermissionDeniedError('Cannot change user operator')

        if data.get('role_id'):
            role = Role.objects.filter(id=data['role_id'], operator_id=user.operator_id).first()
            if role is None:
                raise ValidationError(
                    f"Role with ID {data['role_id']} not found for operator {user.operator_id}"
                )
            user.role = role

        username = data.get('username')
        if username and username != user.username:
            if User.objects.filter(username=username).exclude(id=user.id).exists():
                raise ConflictError(f"Username {username} already exists")
            user.username = username

        email = data.get('email')
        if email and email.lower() != user.email.lower():
            if User.objects.filter(email__iexact=email).exclude(id=user.id).exists():
                raise ConflictError(f"Email {email} already exists")
            user.email = User.objects.normalize_email(email)

        for field in ('first_name', 'last_name', 'is_active'):
            if field in data:
                setattr(user, field, data[field])
        if data.get('password'):
            user.set_password(data['password'])

        user.save()
        AuditLog.log_action(
            action='user_updated', user=caller.user, operator=user.operator_id,
            resource='users', resource_id=user.id,
            details={
                k: v if isinstance(v, (bool, int, str)) or v is None else str(v)
                for k, v in data.items() if k != 'password'
            },
            request=request,
        )
        return user

    @classmethod
    @transaction.atomic
    def delete_user(cls, caller: CallerContext, user_id, request=None):
        user = cls.get_user(caller, user_id)
        if user.id == caller.user_id:
            raise ValidationError("Users cannot delete themselves")
        operator_id, username = user.operator_id, user.username
        user.delete()
        AuditLog.log_action(
            action='user_deleted', user=caller.user, operator=operator_id,
            resource='users', resource_id=user_id,
            details={'username': username}, request=request,
        )

    @staticmethod
    def touch_last_activity(user: User, min_interval_seconds: int = 60):
        """Record activity, writing at most once per ``min_interval_seconds``."""
        now = timezone.now()
        if user.last_activity_at and (now - user.last_activity_at).total_seconds() < min_interval_seconds:
            return
        User.objects.filter(id=user.id).update(last_activity_at=now)
        user.last_activity_at = now


class AuditService:
    """Audit log queries."""

    @classmethod
    def list_entries(cls, caller: CallerContext, user_id=None, action=None, resource=None,
                     start_date=None, end_date=None, operator_id=None):
        queryset = AuditLog.objects.for_caller(caller).select_related('user', 'operator')
        if operator_id and caller.is_super:
            queryset = queryset.filter(operator_id=operator_id)
        if user_id:
            queryset = queryset.for_user(user_id)
        if action:
            queryset = queryset.by_action(action)
        if resource:
            queryset = queryset.filter(resource=resource)
        if start_date:
            queryset = queryset.filter(created_at__date__gte=start_date)
        if end_date:
            queryset = queryset.filter(created_at__date__lte=end_date)
        return queryset

    @classmethod
    def get_entry(cls, caller: CallerContext, entry_id) -> AuditLog:
        return AuditLog.objects.select_related('user', 'operator').get_for_caller(caller, entry_id, 'Audit log')

    @classmethod
    def get_user_activity(cls, caller: CallerContext, user_id, limit: int = 20):
        UserService.get_user(caller, user_id)
        return list(cls.list_entries(caller, user_id=user_id)[:limit])
