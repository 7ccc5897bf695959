"""
Tests for authentication, the operator context middleware and the RBAC endpoints.
"""
from datetime import date, timedelta

import pytest
from rest_framework import status

from apps.rbac.models import AuditLog, Role, User
from apps.rbac.services import AuthService


@pytest.mark.django_db
class TestRegistrationEndpoint:
    """Test POST /api/auth/register endpoint."""

    def test_register_user_success(self, api_client, operator, admin_role):
        response = api_client.post('/api/auth/register', {
            'username': 'jperez',
            'email': 'jperez@transportes.cl',
            'password': 'Tr4nsp0rt!2024',
            'first_name': 'Juan',
            'last_name': 'Pérez',
            'operator_id': str(operator.id),
            'role_id': str(admin_role.id),
        }, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['user']['username'] == 'jperez'
        assert response.data['user']['operator']['name'] == operator.name
        assert response.data['access_token']
        assert User.objects.filter(username='jperez', operator=operator).exists()

    def test_register_duplicate_username(self, api_client, admin_user, operator, admin_role):
        response = api_client.post('/api/auth/register', {
            'username': 'admin',
            'email': 'fresh@example.com',
            'password': 'Tr4nsp0rt!2024',
            'operator_id': str(operator.id),
            'role_id': str(admin_role.id),
        }, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['error']['message'] == 'Username already exists'

    def test_register_role_of_other_operator(self, api_client, operator, other_operator):
        foreign_role = Role.objects.get(operator=other_operator, name='Admin')
        response = api_client.post('/api/auth/register', {
            'username': 'jperez',
            'email': 'jperez@transportes.cl',
            'password': 'Tr4nsp0rt!2024',
            'operator_id': str(operator.id),
            'role_id': str(foreign_role.id),
        }, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error']['code'] == 'VALIDATION_ERROR'


@pytest.mark.django_db
class TestLoginEndpoint:
    """Test POST /api/auth/login endpoint."""

    def test_login_success(self, api_client, admin_user):
        response = api_client.post('/api/auth/login', {'username': 'admin', 'password': 'Secret123!'},
                                   format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['user']['id'] == str(admin_user.id)
        assert AuthService.validate_jwt(response.data['access_token'])['sub'] == str(admin_user.id)
        assert AuditLog.objects.filter(action='login', user=admin_user).exists()

    def test_login_invalid_credentials(self, api_client, admin_user):
        response = api_client.post('/api/auth/login', {'username': 'admin', 'password': 'nope'}, format='json')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.data['error']['code'] == 'UNAUTHORIZED'

    def test_login_inactive_user(self, api_client, admin_user):
        admin_user.is_active = False
        admin_user.save()
        response = api_client.post('/api/auth/login', {'username': 'admin', 'password': 'Secret123!'},
                                   format='json')
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_login_rate_limited(self, api_client, admin_user, settings):
        """The sixth attempt in a minute from one IP is refused with 429."""
        settings.RATELIMIT_ENABLE = True
        for _ in range(5):
            api_client.post('/api/auth/login', {'username': 'admin', 'password': 'nope'}, format='json')

        response = api_client.post('/api/auth/login', {'username': 'admin', 'password': 'nope'}, format='json')

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert response['Retry-After'] == '60'


@pytest.mark.django_db
class TestOperatorContextMiddleware:
    """Every non-public /api/ request needs a valid bearer token."""

    def test_missing_token(self, api_client):
        response = api_client.get('/api/drivers')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()['error']['code'] == 'UNAUTHORIZED'

    def test_invalid_token(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION='Bearer garbage')
        response = api_client.get('/api/drivers')
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_inactive_user(self, auth_client, admin_user):
        client = auth_client(admin_user)
        admin_user.is_active = False
        admin_user.save()

        assert client.get('/api/drivers').status_code == status.HTTP_401_UNAUTHORIZED

    def test_expired_operator(self, auth_client, admin_user, operator):
        client = auth_client(admin_user)
        operator.expiration = date.today() - timedelta(days=1)
        operator.save()

        response = client.get('/api/drivers')

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()['error']['code'] == 'OPERATOR_INACTIVE'

    def test_request_id_header(self, auth_client, admin_user):
        response = auth_client(admin_user).get('/api/drivers', HTTP_X_REQUEST_ID='trace-42')
        assert response['X-Request-ID'] == 'trace-42'

    def test_health_is_public(self, api_client):
        response = api_client.get('/api/health')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['database'] == 'healthy'

    def test_profile(self, auth_client, admin_user):
        response = auth_client(admin_user).get('/api/auth/me')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['username'] == 'admin'
        assert 'operations.create' in response.data['permissions']


@pytest.mark.django_db
class TestRoleEndpoints:

    def test_missing_grant_is_forbidden(self, auth_client, operator, make_role, make_user):
        """Handlers never run for callers without the grant."""
        user = make_user(operator, make_role(operator, 'Viewer', ['roles.read']))

        response = auth_client(user).post('/api/roles', {'name': 'Dispatcher'}, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data['error']['code'] == 'FORBIDDEN'
        assert not Role.objects.filter(name='Dispatcher').exists()

    def test_create_and_list(self, auth_client, admin_user):
        client = auth_client(admin_user)

        created = client.post('/api/roles', {
            'name': 'Dispatcher', 'permissions': ['operations.read', 'operations.create']
        }, format='json')
        listed = client.get('/api/roles')

        assert created.status_code == status.HTTP_201_CREATED
        assert created.data['permissions'] == ['operations.create', 'operations.read']
        assert created.data['user_count'] == 0
        assert created.data['status'] is True
        assert {role['name'] for role in listed.data['data']} == {'Admin', 'Dispatcher'}

    def test_list_hides_same_named_role_of_other_operator(self, auth_client, admin_user, operator,
                                                          other_operator, make_role):
        own = make_role(operator, 'Dispatcher', ['operations.read'])
        make_role(other_operator, 'Dispatcher', ['routes.read', 'routes.delete'])

        response = auth_client(admin_user).get('/api/roles')

        dispatchers = [role for role in response.data['data'] if role['name'] == 'Dispatcher']
        assert [role['id'] for role in dispatchers] == [str(own.id)]
        assert dispatchers[0]['permissions'] == ['operations.read']

    def test_status_false_when_no_user_is_active(self, auth_client, admin_user, operator, make_role,
                                                  make_user):
        role = make_role(operator, 'Dispatcher', ['operations.read'])
        make_user(operator, role, 'idle', is_active=False)

        response = auth_client(admin_user).get(f'/api/roles/{role.id}')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['user_count'] == 1
        assert response.data['status'] is False

    def test_replace_permissions(self, auth_client, admin_user, operator, make_role):
        role = make_role(operator, 'Dispatcher', ['operations.read'])

        response = auth_client(admin_user).put(
            f'/api/roles/{role.id}/permissions', {'permissions': ['routes.read']}, format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['permissions'] == ['routes.read']

    def test_malformed_permission(self, auth_client, admin_user):
        response = auth_client(admin_user).post(
            '/api/roles', {'name': 'Broken', 'permissions': ['nodot']}, format='json'
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_delete_role_in_use(self, auth_client, admin_user, admin_role):
        response = auth_client(admin_user).delete(f'/api/roles/{admin_role.id}')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['error']['details'] == {'user_count': 1}

    def test_foreign_role_is_not_found(self, auth_client, admin_user, other_operator):
        foreign_role = Role.objects.get(operator=other_operator, name='Admin')
        response = auth_client(admin_user).get(f'/api/roles/{foreign_role.id}')
        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.django_db
class TestUserAndAuditEndpoints:

    def test_create_user_for_other_operator_forbidden(self, auth_client, admin_user, admin_role, other_operator):
        response = auth_client(admin_user).post('/api/users', {
            'username': 'sneaky', 'email': 'sneaky@example.com', 'password': 'Tr4nsp0rt!2024',
            'role_id': str(admin_role.id), 'operator_id': str(other_operator.id),
        }, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert not User.objects.filter(username='sneaky').exists()

    def test_user_list_is_scoped(self, auth_client, admin_user, other_admin_user):
        response = auth_client(admin_user).get('/api/users')

        assert response.status_code == status.HTTP_200_OK
        assert [user['username'] for user in response.data['data']] == ['admin']
        assert response.data['pagination']['total'] == 1

    def test_super_user_sees_all_users(self, auth_client, super_user, admin_user, other_admin_user):
        response = auth_client(super_user).get('/api/users')
        assert response.data['pagination']['total'] == 3

    def test_audit_log_records_mutations(self, auth_client, admin_user):
        client = auth_client(admin_user)
        client.post('/api/roles', {'name': 'Dispatcher'}, format='json')

        response = client.get('/api/audit', {'action': 'role_created'})

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data['data']) == 1
        entry = response.data['data'][0]
        assert entry['user']['username'] == 'admin'
        assert entry['resource'] == 'roles'

    def test_role_change_is_audited(self, auth_client, admin_user, operator, make_role, make_user, admin_role):
        member = make_user(operator, admin_role, 'member')
        dispatcher = make_role(operator, 'Dispatcher', ['operations.read'])

        response = auth_client(admin_user).patch(
            f'/api/users/{member.id}', {'role_id': str(dispatcher.id), 'is_active': False}, format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        entry = AuditLog.objects.get(action='user_updated', resource_id=str(member.id))
        assert entry.details['role_id'] == str(dispatcher.id)
        assert entry.details['is_active'] is False

    def test_user_activity_lists_only_that_user(self, auth_client, admin_user, operator, admin_role, make_user):
        other = make_user(operator, admin_role, 'dispatcher')
        auth_client(admin_user).post('/api/roles', {'name': 'Dispatcher'}, format='json')
        auth_client(other).post('/api/roles', {'name': 'Planner'}, format='json')

        response = auth_client(admin_user).get(f'/api/audit/users/{other.id}/activity')

        assert response.status_code == status.HTTP_200_OK
        assert {entry['user']['username'] for entry in response.data['data']} == {'dispatcher'}
        assert 'role_created' in {entry['action'] for entry in response.data['data']}
