"""
Operator management services.
"""
import logging
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import Count, Q

from apps.core.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from apps.core.tenancy import CallerContext, resolve_operator_id
from apps.operators.models import Operator

logger = logging.getLogger(__name__)


class OperatorService:
    """
    CRUD and statistics for operators.

    Regular callers only ever see their own operator; creating operators
    is reserved to super callers.
    """

    @staticmethod
    def _visible(caller: CallerContext):
        if caller.is_super:
            return Operator.objects.all()
        if caller.operator_id is None:
            raise PermissionDeniedError("User is not assigned to an operator")
        return Operator.objects.filter(id=caller.operator_id)

    @classmethod
    def list_operators(cls, caller: CallerContext, search=None, status=None, is_super=None):
        queryset = cls._visible(caller)
        if search:
            queryset = queryset.filter(Q(name__icontains=search) | Q(rut__icontains=search))
        if status is not None:
            queryset = queryset.filter(status=status)
        if is_super is not None:
            queryset = queryset.filter(is_super=is_super)
        return queryset

    @classmethod
    def get_operator(cls, caller: CallerContext, operator_id) -> Operator:
        try:
            return cls._visible(caller).get(id=operator_id)
        except (Operator.DoesNotExist, ValueError, DjangoValidationError):
            raise NotFoundError(f"Operator with ID {operator_id} not found")

    @classmethod
    def resolve_target(cls, caller: CallerContext, requested=None, resource: str = 'records') -> Operator:
        """
        Resolve the operator a new record is written into.

        Raises:
            PermissionDeniedError: If a regular caller names another operator
            NotFoundError: If the operator does not exist
            ValidationError: If the operator is inactive or expired
        """
        operator_id = resolve_operator_id(caller, requested, resource=resource)
        try:
            operator = Operator.objects.get(id=operator_id)
        except (Operator.DoesNotExist, ValueError, DjangoValidationError):
            raise NotFoundError(f"Operator with ID {operator_id} not found")
        if not operator.is_active():
            raise ValidationError(f"Operator {operator.name} is inactive")
        return operator

    @classmethod
    @transaction.atomic
    def create_operator(cls, caller: CallerContext, data: dict, request=None) -> Operator:
        """
        Create an operator. Only super callers may do this.

        Raises:
            PermissionDeniedError: If the caller is not a super operator user
            ConflictError: If the RUT is already registered
        """
        from apps.rbac.models import AuditLog

        if not caller.is_super:
            raise PermissionDeniedError("Only super operators can create operators")

        rut = data.get('rut') or None
        if rut and Operator.objects.filter(rut=rut).exists():
            raise ConflictError(f"Operator with RUT {rut} already exists")

        operator = Operator.objects.create(
            name=data['name'],
            rut=rut,
            is_super=data.get('is_super', False),
            expiration=data.get('expiration'),
            status=data.get('status', True),
        )
        AuditLog.log_action(
            action='operator_created', user=caller.user, operator=operator,
            resource='operators', resource_id=operator.id,
            details={'name': operator.name}, request=request,
        )
        logger.info(f"Operator created: {operator.name}", extra={'created_operator_id': str(operator.id)})
        return operator

    @classmethod
    @transaction.atomic
    def update_operator(cls, caller: CallerContext, operator_id, data: dict, request=None) -> Operator:
        """
        Update an operator. Regular callers may not change the super flag.

        Raises:
            ConflictError: If the new RUT is already registered
        """
        from apps.rbac.models import AuditLog

        operator = cls.get_operator(caller, operator_id)

        if 'is_super' in data and data['is_super'] != operator.is_super and not caller.is_super:
            raise PermissionDeniedError("Only super operators can change the super flag")

        rut = data.get('rut')
        if rut and rut != operator.rut:
            if Operator.objects.filter(rut=rut).exclude(id=operator.id).exists():
                raise ConflictError(f"Operator with RUT {rut} already exists")

        for field in ('name', 'rut', 'is_super', 'expiration', 'status'):
            if field in data:
                setattr(operator, field, data[field])
        operator.rut = operator.rut or None
        operator.save()

        AuditLog.log_action(
            action='operator_updated', user=caller.user, operator=operator,
            resource='operators', resource_id=operator.id,
            details={k: str(v) for k, v in data.items()}, request=request,
        )
        return operator

    @classmethod
    @transaction.atomic
    def delete_operator(cls, caller: CallerContext, operator_id, request=None):
        """
        Soft delete an operator by setting its status to false.

        Raises:
            ValidationError: If the operator still has active users
        """
        from apps.rbac.models import AuditLog

        if not caller.is_super:
            raise PermissionDeniedError("Only super operators can delete operators")

        operator = cls.get_operator(caller, operator_id)
        active_users = operator.users.filter(is_active=True).count()
        if active_users > 0:
            raise ValidationError(
                f"Cannot delete operator with {active_users} active users. "
                f"Please deactivate users first."
            )

        operator.status = False
        operator.save(update_fields=['status', 'updated_at'])
        AuditLog.log_action(
            action='operator_deleted', user=caller.user, operator=operator,
            resource='operators', resource_id=operator.id, request=request,
        )

    @classmethod
    def get_statistics(cls, caller: CallerContext, operator_id) -> dict:
        operator = cls.get_operator(caller, operator_id)

        operations_by_status = {
            row['status']: row['count']
            for row in operator.operations.values('status').annotate(count=Count('id'))
        }
        return {
            'operator_id': str(operator.id),
            'users': operator.users.count(),
            'active_users': operator.users.filter(is_active=True).count(),
            'roles': operator.roles.count(),
            'drivers': operator.drivers.count(),
            'vehicles': operator.vehicles.count(),
            'clients': operator.clients.count(),
            'providers': operator.providers.count(),
            'routes': operator.routes.count(),
            'operations': sum(operations_by_status.values()),
            'operations_by_status': operations_by_status,
        }
