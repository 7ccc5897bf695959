"""
Unit tests for RBAC services.

Tests permission parsing, permission set caching, role management and
operator-scoped user management.
"""
import pytest
from django.core.cache import cache
from hypothesis import given, strategies as st

from apps.core.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from apps.rbac.models import AuditLog, Grant, Role, RoleGrant, User
from apps.rbac.services import (
    AuthService, RBACService, RoleService, UserService, parse_permission, parse_permissions,
)

words = st.text(alphabet='abcdefghijklmnopqrstuvwxyz', min_size=1, max_size=10)


class TestParsePermission:
    """Permission strings are exactly "resource.action"."""

    @given(resource=words, action=words)
    def test_valid_pairs(self, resource, action):
        assert parse_permission(f'{resource}.{action}') == (resource, action)

    @pytest.mark.parametrize('value', ['vehicles', 'vehicles.', '.read', 'a.b.c', '', None, 42])
    def test_malformed(self, value):
        with pytest.raises(ValidationError) as exc_info:
            parse_permission(value)
        assert 'Invalid permission format' in exc_info.value.message

    def test_duplicates_collapse(self):
        assert parse_permissions(['drivers.read', 'drivers.read', 'routes.read']) == [
            ('drivers', 'read'), ('routes', 'read')
        ]


@pytest.mark.django_db
class TestPermissionResolution:
    """Role permission sets and their cache."""

    def test_resolves_role_grants(self, operator, make_role):
        role = make_role(operator, 'Dispatcher', ['operations.read', 'operations.create'])
        assert RBACService.resolve_role_permissions(role.id) == frozenset({'operations.read', 'operations.create'})

    def test_result_is_cached(self, operator, make_role):
        role = make_role(operator, 'Dispatcher', ['operations.read'])
        RBACService.resolve_role_permissions(role.id)

        assert cache.get(RBACService._cache_key(role.id)) == ['operations.read']

    def test_super_user_always_allowed(self, super_user):
        """Super users pass checks for pairs no grant row describes."""
        assert RBACService.can_access(super_user, 'anything', 'whatever') is True

    def test_regular_user_needs_grant(self, operator, make_role, make_user):
        user = make_user(operator, make_role(operator, 'Viewer', ['drivers.read']))
        assert RBACService.can_access(user, 'drivers', 'read') is True
        assert RBACService.can_access(user, 'drivers', 'delete') is False

    def test_build_caller(self, admin_user, operator):
        caller = RBACService.build_caller(admin_user)
        assert caller.operator_id == operator.id
        assert caller.is_super is False
        assert 'operations.create' in caller.permissions


@pytest.mark.django_db
class TestRoleService:

    def test_create_role_links_grants(self, admin_user, caller_for, operator):
        role = RoleService.create_role(
            caller_for(admin_user), 'Dispatcher', ['operations.read', 'routes.read'], description='Desk'
        )

        assert role.operator_id == operator.id
        assert role.get_permission_strings() == ['operations.read', 'routes.read']
        assert AuditLog.objects.filter(action='role_created', resource_id=str(role.id)).exists()

    def test_create_role_creates_unknown_grants(self, admin_user, caller_for):
        """Grants outside the seeded catalog are created on first use."""
        RoleService.create_role(caller_for(admin_user), 'Reporter', ['reports.export'])
        assert Grant.objects.filter(resource='reports', action='export').exists()

    def test_create_role_malformed_permission_writes_nothing(self, admin_user, caller_for):
        with pytest.raises(ValidationError):
            RoleService.create_role(caller_for(admin_user), 'Broken', ['drivers.read', 'oops'])
        assert not Role.objects.filter(name='Broken').exists()

    def test_create_role_duplicate_name(self, admin_user, caller_for):
        RoleService.create_role(caller_for(admin_user), 'Dispatcher')
        with pytest.raises(ConflictError) as exc_info:
            RoleService.create_role(caller_for(admin_user), 'Dispatcher')
        assert exc_info.value.message == 'Role with name "Dispatcher" already exists for this operator'

    def test_create_role_for_other_operator_denied(self, admin_user, caller_for, other_operator):
        with pytest.raises(PermissionDeniedError):
            RoleService.create_role(caller_for(admin_user), 'Sneaky', operator_id=other_operator.id)

    def test_super_creates_for_any_operator(self, super_user, caller_for, other_operator):
        role = RoleService.create_role(caller_for(super_user), 'Auditor', ['audit.read'],
                                       operator_id=other_operator.id)
        assert role.operator_id == other_operator.id

    def test_update_replaces_grants_and_invalidates_cache(self, operator, make_role, make_user, caller_for,
                                                          admin_user):
        """A grant change is visible on the next evaluation."""
        role = make_role(operator, 'Dispatcher', ['operations.read'])
        user = make_user(operator, role)
        assert RBACService.can_access(user, 'operations', 'create') is False

        RoleService.update_role(caller_for(admin_user), role.id, permissions=['operations.create'])

        assert role.get_permission_strings() == ['operations.create']
        assert RBACService.can_access(user, 'operations', 'create') is True
        assert RBACService.can_access(user, 'operations', 'read') is False

    def test_update_malformed_permission_keeps_old_grants(self, operator, make_role, caller_for, admin_user):
        role = make_role(operator, 'Dispatcher', ['operations.read'])

        with pytest.raises(ValidationError):
            RoleService.update_role(caller_for(admin_user), role.id, permissions=['operations.create', 'bad'])

        assert role.get_permission_strings() == ['operations.read']

    def test_update_rename_conflict(self, operator, make_role, caller_for, admin_user):
        make_role(operator, 'Dispatcher')
        role = make_role(operator, 'Planner')
        with pytest.raises(ConflictError):
            RoleService.update_role(caller_for(admin_user), role.id, name='Dispatcher')

    def test_system_role_cannot_be_renamed(self, admin_role, caller_for, admin_user):
        with pytest.raises(ValidationError):
            RoleService.update_role(caller_for(admin_user), admin_role.id, name='Boss')

    def test_delete_role_in_use(self, operator, make_role, make_user, caller_for, admin_user):
        """A role with users is never deleted and keeps its grants."""
        role = make_role(operator, 'Dispatcher', ['operations.read'])
        make_user(operator, role)

        with pytest.raises(ConflictError) as exc_info:
            RoleService.delete_role(caller_for(admin_user), role.id)

        assert exc_info.value.details == {'user_count': 1}
        assert Role.objects.filter(id=role.id).exists()
        assert RoleGrant.objects.filter(role=role).count() == 1

    def test_delete_role_releases_grants(self, operator, make_role, caller_for, admin_user):
        role = make_role(operator, 'Dispatcher', ['operations.read'])

        RoleService.delete_role(caller_for(admin_user), role.id)

        assert not Role.objects.filter(id=role.id).exists()
        assert not RoleGrant.objects.filter(role_id=role.id).exists()
        assert Grant.objects.filter(resource='operations', action='read').exists()

    def test_foreign_role_not_found(self, other_operator, make_role, caller_for, admin_user):
        role = make_role(other_operator, 'Dispatcher')
        with pytest.raises(NotFoundError):
            RoleService.get_role(caller_for(admin_user), role.id)


@pytest.mark.django_db
class TestUserService:

    def test_create_user_in_own_operator(self, admin_user, admin_role, caller_for, operator):
        user = UserService.create_user(caller_for(admin_user), {
            'username': 'planner', 'email': 'planner@example.com', 'password': 'Tr4nsp0rt!2024',
            'role_id': admin_role.id,
        })
        assert user.operator_id == operator.id
        assert user.check_password('Tr4nsp0rt!2024')

    def test_create_user_with_foreign_role(self, admin_user, caller_for, other_operator):
        foreign_role = Role.objects.get(operator=other_operator, name='Admin')
        with pytest.raises(ValidationError):
            UserService.create_user(caller_for(admin_user), {
                'username': 'planner', 'email': 'planner@example.com', 'password': 'x',
                'role_id': foreign_role.id,
            })

    def test_duplicate_username(self, admin_user, admin_role, caller_for):
        with pytest.raises(ConflictError):
            UserService.create_user(caller_for(admin_user), {
                'username': 'admin', 'email': 'other@example.com', 'password': 'x',
                'role_id': admin_role.id,
            })

    def test_cannot_move_user_to_other_operator(self, admin_user, caller_for, make_user, operator, admin_role,
                                                other_operator):
        user = make_user(operator, admin_role)
        with pytest.raises(PermissionDeniedError):
            UserService.update_user(caller_for(admin_user), user.id, {'operator_id': other_operator.id})

    def test_cannot_delete_self(self, admin_user, caller_for):
        with pytest.raises(ValidationError):
            UserService.delete_user(caller_for(admin_user), admin_user.id)

    def test_list_is_operator_scoped(self, admin_user, other_admin_user, caller_for):
        usernames = set(UserService.list_users(caller_for(admin_user)).values_list('username', flat=True))
        assert usernames == {'admin'}


@pytest.mark.django_db
class TestAuthService:

    def test_login_returns_token(self, admin_user):
        result = AuthService.login('admin', 'Secret123!')

        assert result['user'] == admin_user
        payload = AuthService.validate_jwt(result['access_token'])
        assert payload['sub'] == str(admin_user.id)
        assert payload['operatorId'] == str(admin_user.operator_id)
        assert payload['isSuper'] is False

    def test_login_wrong_password(self, admin_user):
        assert AuthService.login('admin', 'wrong') is None

    def test_login_inactive_operator(self, admin_user, operator):
        operator.status = False
        operator.save()
        assert AuthService.login('admin', 'Secret123!') is None

    def test_invalid_token(self):
        assert AuthService.validate_jwt('not-a-token') is None

    def test_register_duplicate_email(self, admin_user, operator, admin_role):
        with pytest.raises(ConflictError):
            AuthService.register('newbie', 'ADMIN@example.com', 'Tr4nsp0rt!2024', operator.id, admin_role.id)

    def test_register_into_inactive_operator(self, operator, admin_role):
        operator.status = False
        operator.save()
        with pytest.raises(ValidationError):
            AuthService.register('newbie', 'newbie@example.com', 'Tr4nsp0rt!2024', operator.id, admin_role.id)
        assert not User.objects.filter(username='newbie').exists()


@pytest.mark.django_db
class TestSeedGrantsCommand:

    def test_idempotent(self):
        from io import StringIO
        from django.core.management import call_command

        call_command('seed_grants', stdout=StringIO())
        count = Grant.objects.count()
        output = StringIO()
        call_command('seed_grants', stdout=output)

        assert count >= 44
        assert Grant.objects.count() == count
        assert '0 created' in output.getvalue()
