"""
Operation services.

Creating or re-staffing an operation also (re)assigns its driver to its
vehicle, so the assignment table always reflects the latest pairing.
"""
import logging

from django.db import transaction

from apps.core.exceptions import ConflictError, ValidationError
from apps.core.tenancy import CallerContext
from apps.fleet.models import Driver, Vehicle
from apps.fleet.services import AssignmentService, DriverService, VehicleService
from apps.operations.models import Operation
from apps.operators.services import OperatorService
from apps.partners.services import ClientService, ProviderService
from apps.routes.services import RouteService

logger = logging.getLogger(__name__)

OPERATION_FIELDS = (
    'operation_number', 'operation_type', 'origin', 'destination',
    'scheduled_start_date', 'scheduled_end_date', 'actual_start_date',
    'actual_end_date', 'distance', 'status', 'cargo_description',
    'cargo_weight', 'notes',
)


class OperationService:
    """Operator-scoped operation management."""

    @staticmethod
    def list_operations(caller: CallerContext, status=None, driver_id=None, vehicle_id=None,
                        client_id=None, provider_id=None, route_id=None, operation_type=None,
                        start_date=None, end_date=None, search=None):
        queryset = Operation.objects.for_caller(caller).select_related(
            'driver', 'vehicle', 'client', 'provider', 'route'
        )
        if status:
            queryset = queryset.filter(status=status)
        if driver_id:
            queryset = queryset.filter(driver_id=driver_id)
        if vehicle_id:
            queryset = queryset.filter(vehicle_id=vehicle_id)
        if client_id:
            queryset = queryset.filter(client_id=client_id)
        if provider_id:
            queryset = queryset.filter(provider_id=provider_id)
        if route_id:
            queryset = queryset.filter(route_id=route_id)
        if operation_type:
            queryset = queryset.filter(operation_type=operation_type)
        if start_date:
            queryset = queryset.filter(scheduled_start_date__date__gte=start_date)
        if end_date:
            queryset = queryset.filter(scheduled_start_date__date__lte=end_date)
        if search:
            queryset = queryset.search(search)
        return queryset

    @staticmethod
    def get_operation(caller: CallerContext, operation_id) -> Operation:
        return Operation.objects.select_related(
            'operator', 'driver', 'vehicle', 'client', 'provider', 'route'
        ).get_for_caller(caller, operation_id, label='Operation')

    @staticmethod
    def _resolve_references(caller: CallerContext, operator_id, data: dict) -> dict:
        """Look up client/provider/route ids and check they belong to ``operator_id``."""
        resolved = {}
        lookups = (
            ('client', ClientService.get),
            ('provider', ProviderService.get),
            ('route', RouteService.get_route),
        )
        for name, getter in lookups:
            key = f'{name}_id'
            if key not in data:
                continue
            if data[key] is None:
                resolved[name] = None
                continue
            instance = getter(caller, data[key])
            if instance.operator_id != operator_id:
                raise ValidationError(f"{name.capitalize()} must belong to the operation's operator")
            resolved[name] = instance
        return resolved

    @classmethod
    def create_operation(cls, caller: CallerContext, data: dict, request=None) -> Operation:
        """
        Create an operation from API input (ids of driver, vehicle and references).

        Raises:
            NotFoundError: If the operator, driver or vehicle does not exist
            ConflictError: If the operation number is already used in the operator
            ValidationError: If driver and vehicle belong to another operator or are inactive
        """
        operator = OperatorService.resolve_target(caller, data.get('operator_id'), resource='operations')
        driver = DriverService.get_driver(caller, data['driver_id'])
        vehicle = VehicleService.get_vehicle(caller, data['vehicle_id'])
        references = cls._resolve_references(caller, operator.id, data)
        fields = {key: data[key] for key in OPERATION_FIELDS if key in data}
        return cls.create_resolved(
            caller.user, operator, driver, vehicle, fields, request=request, **references
        )

    @staticmethod
    @transaction.atomic
    def create_resolved(user, operator, driver: Driver, vehicle: Vehicle, fields: dict,
                        client=None, provider=None, route=None, request=None) -> Operation:
        """Create an operation whose references are already loaded."""
        from apps.rbac.models import AuditLog

        operation_number = fields['operation_number']
        if Operation.objects.by_number(operator.id, operation_number):
            raise ConflictError(
                f"Operation with number {operation_number} already exists for this operator"
            )
        if driver.operator_id != operator.id or vehicle.operator_id != operator.id:
            raise ValidationError('Driver and vehicle must belong to the specified operator')

        AssignmentService.assign_resolved(
            driver, vehicle, notes=f"Auto-assigned for operation {operation_number}"
        )

        operation = Operation.objects.create(
            operator=operator,
            driver=driver,
            vehicle=vehicle,
            client=client,
            provider=provider,
            route=route,
            **fields
        )
        AuditLog.log_action(
            action='operation_created', user=user, operator=operator,
            resource='operations', resource_id=operation.id,
            details={'operation_number': operation_number}, request=request,
        )
        logger.info(
            f"Operation created: {operation_number}",
            extra={'operation_id': str(operation.id), 'operator_id': str(operator.id)}
        )
        return operation

    @classmethod
    @transaction.atomic
    def update_operation(cls, caller: CallerContext, operation_id, data: dict, request=None) -> Operation:
        """
        Update an operation. Changing the driver or the vehicle re-assigns
        the pair; a missing side keeps its current value.

        Raises:
            ConflictError: If the new operation number is already used
            ValidationError: If driver or vehicle belong to another operator
        """
        from apps.rbac.models import AuditLog

        operation = cls.get_operation(caller, operation_id)

        if data.get('driver_id') or data.get('vehicle_id'):
            driver = (
                DriverService.get_driver(caller, data['driver_id'])
                if data.get('driver_id') else operation.driver
            )
            vehicle = (
                VehicleService.get_vehicle(caller, data['vehicle_id'])
                if data.get('vehicle_id') else operation.vehicle
            )
            if driver.operator_id != operation.operator_id or vehicle.operator_id != operation.operator_id:
                raise ValidationError('Driver and vehicle must belong to the same operator as the operation')

            AssignmentService.assign_resolved(
                driver, vehicle,
                notes=f"Auto-assigned for operation {operation.operation_number} (updated)"
            )
            operation.driver = driver
            operation.vehicle = vehicle

        operation_number = data.get('operation_number')
        if operation_number and operation_number != operation.operation_number:
            duplicate = Operation.objects.filter(
                operator_id=operation.operator_id, operation_number=operation_number
            ).exclude(id=operation.id)
            if duplicate.exists():
                raise ConflictError(
                    f"Operation with number {operation_number} already exists for this operator"
                )

        for name, instance in cls._resolve_references(caller, operation.operator_id, data).items():
            setattr(operation, name, instance)

        changed = operation.apply_changes({key: data[key] for key in OPERATION_FIELDS if key in data})
        operation.save()

        AuditLog.log_action(
            action='operation_updated', user=caller.user, operator=operation.operator_id,
            resource='operations', resource_id=operation.id,
            details={'changed_fields': changed}, request=request,
        )
        return operation

    @classmethod
    @transaction.atomic
    def delete_operation(cls, caller: CallerContext, operation_id, request=None):
        """
        Delete an operation.

        Raises:
            ValidationError: If the operation is in progress
        """
        from apps.rbac.models import AuditLog

        operation = cls.get_operation(caller, operation_id)
        if operation.status == Operation.STATUS_IN_PROGRESS:
            raise ValidationError('Cannot delete operation in progress')

        operation_number = operation.operation_number
        operator_id = operation.operator_id
        operation.delete()

        AuditLog.log_action(
            action='operation_deleted', user=caller.user, operator=operator_id,
            resource='operations', resource_id=operation_id,
            details={'operation_number': operation_number}, request=request,
        )
        logger.info(f"Operation deleted: {operation_number}")
