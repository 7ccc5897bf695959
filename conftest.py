"""
Pytest configuration and fixtures.
"""
from datetime import date, timedelta

import pytest
from django.conf import settings
import django


def pytest_configure(config):
    """Configure Django settings for tests."""
    settings.DATABASES['default'] = {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
        'ATOMIC_REQUESTS': False,
    }
    settings.CACHES = {
        'default': {'BACKEND': 'django.core.cache.backends.locmem.LocMemCache'},
    }
    settings.RATELIMIT_ENABLE = False
    settings.PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']
    django.setup()


@pytest.fixture(autouse=True)
def clear_cache():
    """Permission sets are cached per role; start every test cold."""
    from django.core.cache import cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    """Return DRF API client."""
    from rest_framework.test import APIClient
    return APIClient()


@pytest.fixture
def operator(db):
    """Create a test operator. Its Admin role is seeded by signal."""
    from apps.operators.models import Operator
    return Operator.objects.create(name='Transportes Andes', rut='76123456-7')


@pytest.fixture
def other_operator(db):
    """Create another operator for isolation tests."""
    from apps.operators.models import Operator
    return Operator.objects.create(name='Logística Sur', rut='77987654-3')


@pytest.fixture
def super_operator(db):
    """Create the platform operator whose users span every operator."""
    from apps.operators.models import Operator
    return Operator.objects.create(name='Plataforma', rut='99999999-9', is_super=True)


@pytest.fixture
def make_role(db):
    """Factory creating a role with the given ``resource.action`` grants."""
    from apps.rbac.models import Grant, Role, RoleGrant

    def _make_role(operator, name, permissions=()):
        role = Role.objects.create(operator=operator, name=name)
        for permission in permissions:
            resource, action = permission.split('.')
            grant, _ = Grant.objects.get_or_create_grant(resource, action)
            RoleGrant.objects.grant_permission(role, grant)
        return role

    return _make_role


@pytest.fixture
def make_user(db):
    """Factory creating an active user with password ``Secret123!``."""
    from apps.rbac.models import User

    counter = {'n': 0}

    def _make_user(operator, role, username=None, **extra):
        counter['n'] += 1
        username = username or f"user{counter['n']}"
        return User.objects.create_user(
            username=username,
            email=extra.pop('email', f'{username}@example.com'),
            operator=operator,
            role=role,
            password=extra.pop('password', 'Secret123!'),
            **extra
        )

    return _make_user


@pytest.fixture
def admin_role(operator):
    from apps.rbac.models import Role
    return Role.objects.get(operator=operator, name='Admin')


@pytest.fixture
def admin_user(operator, admin_role, make_user):
    """User holding every catalog grant of ``operator``."""
    return make_user(operator, admin_role, username='admin')


@pytest.fixture
def other_admin_user(other_operator, make_user):
    from apps.rbac.models import Role
    role = Role.objects.get(operator=other_operator, name='Admin')
    return make_user(other_operator, role, username='otheradmin')


@pytest.fixture
def super_user(super_operator, make_role, make_user):
    """User of the super operator. Its role holds no grants; it needs none."""
    role = make_role(super_operator, 'Platform')
    return make_user(super_operator, role, username='root')


@pytest.fixture
def caller_for(db):
    """Build the CallerContext services receive for a user."""
    from apps.rbac.services import RBACService
    return RBACService.build_caller


@pytest.fixture
def auth_client(db):
    """Factory returning an APIClient authenticated as ``user``."""
    from rest_framework.test import APIClient
    from apps.rbac.services import AuthService

    def _auth_client(user):
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f'Bearer {AuthService.generate_jwt(user)}')
        return client

    return _auth_client


@pytest.fixture
def make_driver(db):
    from apps.fleet.models import Driver

    def _make_driver(operator, rut='12345678-9', **extra):
        defaults = {
            'first_name': 'Juan',
            'last_name': 'Pérez',
            'license_type': 'A5',
            'license_number': f'LIC-{rut}',
            'license_expiration_date': date.today() + timedelta(days=365),
        }
        defaults.update(extra)
        return Driver.objects.create(operator=operator, rut=rut, **defaults)

    return _make_driver


@pytest.fixture
def make_vehicle(db):
    from apps.fleet.models import Vehicle

    def _make_vehicle(operator, plate_number='ABCD12', **extra):
        defaults = {'brand': 'Volvo', 'model': 'FH', 'year': 2020, 'vehicle_type': 'truck'}
        defaults.update(extra)
        return Vehicle.objects.create(operator=operator, plate_number=plate_number, **defaults)

    return _make_vehicle


@pytest.fixture
def make_operation(db):
    """Factory creating an operation directly, bypassing assignment logic."""
    from django.utils import timezone
    from apps.operations.models import Operation

    def _make_operation(operator, driver, vehicle, operation_number='OP-100', **extra):
        defaults = {
            'operation_type': 'delivery',
            'origin': 'Santiago',
            'destination': 'Valparaíso',
            'scheduled_start_date': timezone.now() + timedelta(days=1),
        }
        defaults.update(extra)
        return Operation.objects.create(
            operator=operator, driver=driver, vehicle=vehicle,
            operation_number=operation_number, **defaults
        )

    return _make_operation


@pytest.fixture
def driver(operator, make_driver):
    return make_driver(operator)


@pytest.fixture
def vehicle(operator, make_vehicle):
    return make_vehicle(operator)
