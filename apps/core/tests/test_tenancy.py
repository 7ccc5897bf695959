"""
Tests for operator scoping of caller-driven queries.
"""
import uuid

import pytest
from unittest.mock import Mock

from apps.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from apps.core.tenancy import CallerContext, resolve_operator_id
from apps.fleet.models import Vehicle


@pytest.mark.django_db
class TestForCaller:
    """Every caller-driven query carries the operator predicate."""

    def test_regular_caller_sees_own_operator_only(self, operator, other_operator, make_vehicle, caller_for,
                                                    admin_user):
        own = make_vehicle(operator, 'AAAA11')
        make_vehicle(other_operator, 'BBBB22')

        visible = list(Vehicle.objects.for_caller(caller_for(admin_user)))

        assert visible == [own]

    def test_super_caller_sees_everything(self, operator, other_operator, make_vehicle, caller_for, super_user):
        make_vehicle(operator, 'AAAA11')
        make_vehicle(other_operator, 'BBBB22')

        assert Vehicle.objects.for_caller(caller_for(super_user)).count() == 2

    def test_missing_caller_refused(self, db):
        with pytest.raises(PermissionDeniedError):
            Vehicle.objects.for_caller(None)

    def test_caller_without_operator_refused(self, db):
        caller = CallerContext(user=Mock(id=uuid.uuid4()), operator_id=None)
        with pytest.raises(PermissionDeniedError):
            list(Vehicle.objects.for_caller(caller))

    def test_foreign_object_reported_as_not_found(self, other_operator, make_vehicle, caller_for, admin_user):
        """Objects of other operators look exactly like missing ones."""
        foreign = make_vehicle(other_operator, 'BBBB22')

        with pytest.raises(NotFoundError) as exc_info:
            Vehicle.objects.get_for_caller(caller_for(admin_user), foreign.id, label='Vehicle')
        assert str(foreign.id) in exc_info.value.message

    def test_malformed_id_reported_as_not_found(self, caller_for, admin_user):
        with pytest.raises(NotFoundError):
            Vehicle.objects.get_for_caller(caller_for(admin_user), 'not-a-uuid')


class TestResolveOperatorId:
    """Which operator a write targets."""

    def test_regular_caller_defaults_to_own(self):
        caller = CallerContext(user=Mock(id=1), operator_id='op-1')
        assert resolve_operator_id(caller) == 'op-1'

    def test_regular_caller_may_name_own(self):
        caller = CallerContext(user=Mock(id=1), operator_id='op-1')
        assert resolve_operator_id(caller, 'op-1') == 'op-1'

    def test_regular_caller_cannot_target_other(self):
        caller = CallerContext(user=Mock(id=1), operator_id='op-1')
        with pytest.raises(PermissionDeniedError) as exc_info:
            resolve_operator_id(caller, 'op-2', resource='drivers')
        assert exc_info.value.message == 'Cannot create drivers for other operators'

    def test_super_caller_may_target_any(self):
        caller = CallerContext(user=Mock(id=1), operator_id='op-super', is_super=True)
        assert resolve_operator_id(caller, 'op-2') == 'op-2'
        assert resolve_operator_id(caller, '') == 'op-super'

    def test_no_operator_at_all(self):
        caller = CallerContext(user=Mock(id=1), operator_id=None, is_super=True)
        with pytest.raises(ValidationError):
            resolve_operator_id(caller)
