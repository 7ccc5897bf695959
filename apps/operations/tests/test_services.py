"""
Tests for operation services and the batch import.
"""
from datetime import timedelta

import pytest
from django.utils import timezone

from apps.core.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from apps.fleet.models import DriverVehicle
from apps.operations.batch import BatchImportService
from apps.operations.models import Operation
from apps.operations.services import OperationService
from apps.partners.models import Client
from apps.rbac.models import AuditLog
from apps.routes.models import Route


def operation_data(driver, vehicle, **extra):
    data = {
        'driver_id': driver.id,
        'vehicle_id': vehicle.id,
        'operation_number': 'OP-500',
        'operation_type': 'delivery',
        'origin': 'Santiago',
        'destination': 'Rancagua',
        'scheduled_start_date': timezone.now() + timedelta(days=2),
    }
    data.update(extra)
    return data


@pytest.mark.django_db
class TestOperationService:

    def test_create_assigns_driver_to_vehicle(self, admin_user, caller_for, operator, driver, vehicle):
        operation = OperationService.create_operation(caller_for(admin_user), operation_data(driver, vehicle))

        assert operation.operator_id == operator.id
        assert operation.status == Operation.STATUS_SCHEDULED
        assignment = DriverVehicle.objects.get(driver=driver, is_active=True)
        assert assignment.vehicle_id == vehicle.id
        assert assignment.notes == 'Auto-assigned for operation OP-500'
        assert AuditLog.objects.filter(action='operation_created', resource_id=str(operation.id)).exists()

    def test_duplicate_number(self, admin_user, caller_for, operator, driver, vehicle, make_operation):
        make_operation(operator, driver, vehicle, 'OP-500')
        with pytest.raises(ConflictError) as exc_info:
            OperationService.create_operation(caller_for(admin_user), operation_data(driver, vehicle))
        assert exc_info.value.message == 'Operation with number OP-500 already exists for this operator'

    def test_same_number_in_other_operator(self, admin_user, caller_for, other_operator, make_driver,
                                           make_vehicle, make_operation, driver, vehicle):
        make_operation(other_operator, make_driver(other_operator), make_vehicle(other_operator), 'OP-500')
        operation = OperationService.create_operation(caller_for(admin_user), operation_data(driver, vehicle))
        assert operation.operation_number == 'OP-500'

    def test_foreign_driver_not_found(self, admin_user, caller_for, other_operator, make_driver, vehicle):
        foreign = make_driver(other_operator, '99999999-9')
        with pytest.raises(NotFoundError):
            OperationService.create_operation(caller_for(admin_user), operation_data(foreign, vehicle))
        assert not Operation.objects.exists()

    def test_super_caller_mixing_operators(self, super_user, caller_for, operator, other_operator, driver,
                                           make_vehicle):
        foreign_vehicle = make_vehicle(other_operator, 'ZZZZ99')
        data = operation_data(driver, foreign_vehicle, operator_id=operator.id)

        with pytest.raises(ValidationError):
            OperationService.create_operation(caller_for(super_user), data)
        assert not DriverVehicle.objects.exists()

    def test_regular_caller_targeting_other_operator(self, admin_user, caller_for, other_operator, driver,
                                                     vehicle):
        with pytest.raises(PermissionDeniedError):
            OperationService.create_operation(
                caller_for(admin_user), operation_data(driver, vehicle, operator_id=other_operator.id)
            )

    def test_reference_of_other_operator(self, super_user, caller_for, operator, other_operator, driver,
                                         vehicle):
        foreign_client = Client.objects.create(operator=other_operator, business_name='Ajeno')
        data = operation_data(driver, vehicle, operator_id=operator.id, client_id=foreign_client.id)

        with pytest.raises(ValidationError) as exc_info:
            OperationService.create_operation(caller_for(super_user), data)
        assert exc_info.value.message == "Client must belong to the operation's operator"

    def test_update_vehicle_reassigns(self, admin_user, caller_for, operator, driver, vehicle, make_vehicle):
        caller = caller_for(admin_user)
        operation = OperationService.create_operation(caller, operation_data(driver, vehicle))
        replacement = make_vehicle(operator, 'WXYZ98')

        updated = OperationService.update_operation(caller, operation.id, {
            'vehicle_id': replacement.id, 'notes': 'Cambio de camión'
        })

        assert updated.vehicle_id == replacement.id
        assert updated.driver_id == driver.id
        assert updated.notes == 'Cambio de camión'
        active = DriverVehicle.objects.get(driver=driver, is_active=True)
        assert active.vehicle_id == replacement.id

    def test_update_clears_route(self, admin_user, caller_for, operator, driver, vehicle):
        route = Route.objects.create(operator=operator, name='Ruta 5', origin='Santiago', destination='Talca')
        caller = caller_for(admin_user)
        operation = OperationService.create_operation(caller, operation_data(driver, vehicle, route_id=route.id))

        updated = OperationService.update_operation(caller, operation.id, {'route_id': None})

        assert updated.route is None

    def test_update_to_taken_number(self, admin_user, caller_for, operator, driver, vehicle, make_operation):
        make_operation(operator, driver, vehicle, 'OP-1')
        second = make_operation(operator, driver, vehicle, 'OP-2')
        with pytest.raises(ConflictError):
            OperationService.update_operation(caller_for(admin_user), second.id, {'operation_number': 'OP-1'})

    def test_delete_in_progress(self, admin_user, caller_for, operator, driver, vehicle, make_operation):
        operation = make_operation(operator, driver, vehicle, status='in-progress')

        with pytest.raises(ValidationError) as exc_info:
            OperationService.delete_operation(caller_for(admin_user), operation.id)

        assert exc_info.value.message == 'Cannot delete operation in progress'
        assert Operation.objects.filter(id=operation.id).exists()

    def test_delete(self, admin_user, caller_for, operator, driver, vehicle, make_operation):
        operation = make_operation(operator, driver, vehicle)

        OperationService.delete_operation(caller_for(admin_user), operation.id)

        assert not Operation.objects.filter(id=operation.id).exists()
        assert AuditLog.objects.filter(action='operation_deleted', resource_id=str(operation.id)).exists()

    def test_list_filters(self, admin_user, caller_for, operator, driver, vehicle, make_operation):
        make_operation(operator, driver, vehicle, 'OP-1', status='completed')
        make_operation(operator, driver, vehicle, 'OP-2')

        numbers = OperationService.list_operations(
            caller_for(admin_user), status='completed'
        ).values_list('operation_number', flat=True)

        assert list(numbers) == ['OP-1']


def batch_row(**extra):
    row = {
        'operationNumber': 'OP-1',
        'scheduledStartDate': '2030-01-15 08:00',
        'driverRut': '12345678-9',
        'vehiclePlateNumber': 'ABCD12',
        'operationType': 'delivery',
        'origin': 'Santiago',
        'destination': 'Valparaíso',
    }
    row.update(extra)
    return row


@pytest.mark.django_db
class TestBatchImport:

    def test_partial_success(self, admin_user, caller_for, operator, driver, vehicle):
        rows = [
            batch_row(),
            batch_row(),
            batch_row(operationNumber='OP-2', driverRut='11111111-1'),
            batch_row(operationNumber='OP-3', clientName='', distance=90),
        ]

        result = BatchImportService.import_rows(caller_for(admin_user), rows).to_dict()

        assert result['success'] is False
        assert result['totalRows'] == 4
        assert result['successCount'] == 2
        assert result['errorCount'] == 2
        assert result['duplicates'] == ['OP-1']
        assert [(error['row'], error['field']) for error in result['errors']] == [
            (3, 'operationNumber'), (4, 'driverRut')
        ]
        assert result['errors'][0]['message'] == 'El número de operación OP-1 ya existe'
        assert result['errors'][1]['value'] == '11111111-1'
        assert len(result['createdOperations']) == 2
        assert set(Operation.objects.values_list('operation_number', flat=True)) == {'OP-1', 'OP-3'}

    def test_scheduled_dates_are_aware(self, admin_user, caller_for, driver, vehicle):
        BatchImportService.import_rows(caller_for(admin_user), [batch_row()])
        operation = Operation.objects.get(operation_number='OP-1')
        assert timezone.is_aware(operation.scheduled_start_date)

    def test_inactive_vehicle(self, admin_user, caller_for, driver, vehicle):
        vehicle.status = False
        vehicle.save()

        result = BatchImportService.import_rows(caller_for(admin_user), [batch_row()])

        assert result.errors[0].field == 'vehiclePlateNumber'
        assert result.errors[0].message == 'El vehículo con patente ABCD12 está inactivo'

    def test_unknown_references(self, admin_user, caller_for, driver, vehicle):
        rows = [
            batch_row(clientName='Nadie SpA'),
            batch_row(operationNumber='OP-2', providerName='Nadie Ltda'),
            batch_row(operationNumber='OP-3', routeName='Ruta Fantasma'),
        ]

        result = BatchImportService.import_rows(caller_for(admin_user), rows)

        assert [error.field for error in result.errors] == ['clientName', 'providerName', 'routeName']
        assert result.success_count == 0

    def test_resolves_named_references(self, admin_user, caller_for, operator, driver, vehicle):
        client = Client.objects.create(operator=operator, business_name='Viña Concha SpA')
        route = Route.objects.create(operator=operator, name='Ruta 68', origin='Santiago', destination='Viña')

        result = BatchImportService.import_rows(
            caller_for(admin_user), [batch_row(clientName='Viña Concha SpA', routeName='Ruta 68')]
        )

        assert result.success
        operation = Operation.objects.get(operation_number='OP-1')
        assert operation.client == client
        assert operation.route == route

    def test_other_operators_catalogue_is_ignored(self, admin_user, caller_for, other_operator, make_driver,
                                                  make_vehicle):
        make_driver(other_operator)
        make_vehicle(other_operator)

        result = BatchImportService.import_rows(caller_for(admin_user), [batch_row()])

        assert result.errors[0].field == 'driverRut'

    def test_regular_caller_other_operator(self, admin_user, caller_for, other_operator):
        with pytest.raises(PermissionDeniedError):
            BatchImportService.import_rows(caller_for(admin_user), [batch_row()], operator_id=other_operator.id)

    def test_super_caller_imports_into_named_operator(self, super_user, caller_for, other_operator,
                                                      make_driver, make_vehicle):
        make_driver(other_operator)
        make_vehicle(other_operator)

        result = BatchImportService.import_rows(caller_for(super_user), [batch_row()], operator_id=other_operator.id)

        assert result.success
        assert Operation.objects.get(operation_number='OP-1').operator_id == other_operator.id

    def test_audit_entry(self, admin_user, caller_for, driver, vehicle):
        BatchImportService.import_rows(caller_for(admin_user), [batch_row()])

        entry = AuditLog.objects.get(action='operations_batch_imported')
        assert entry.details == {'total_rows': 1, 'success_count': 1, 'error_count': 0}

    def test_creation_failure_becomes_row_error(self, admin_user, caller_for, driver, vehicle):
        rows = [
            batch_row(scheduledStartDate='mañana'),
            batch_row(operationNumber='OP-2'),
        ]

        result = BatchImportService.import_rows(caller_for(admin_user), rows)

        assert result.success_count == 1
        assert len(result.errors) == 1
        error = result.errors[0]
        assert (error.row, error.field) == (2, 'general')
        assert error.message.startswith('Error al crear la operación: ')
        assert list(Operation.objects.values_list('operation_number', flat=True)) == ['OP-2']
        assert DriverVehicle.objects.filter(driver=driver).count() == 1
