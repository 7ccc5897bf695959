"""
Batch import of operations.

Rows carry human-entered identifiers (operation number, driver RUT,
vehicle plate, client/provider/route names). Each row is resolved against
the operator's catalogue and created on its own; a bad row is reported and
the next one is processed. The batch as a whole only fails when the target
operator cannot be used.
"""
import logging
from dataclasses import dataclass, field
from typing import List

from django.db import transaction
from django.utils import timezone

from apps.core.exceptions import FleetOpsException
from apps.core.tenancy import CallerContext
from apps.fleet.models import Driver, Vehicle
from apps.operations.excel import RowError, parse_row_datetime
from apps.operations.models import Operation
from apps.operations.services import OperationService
from apps.operators.services import OperatorService
from apps.partners.models import Client, Provider
from apps.routes.models import Route

logger = logging.getLogger(__name__)


class RowRejected(Exception):
    """Stops processing of one row; carries the error to report."""

    def __init__(self, error: RowError, duplicate=None):
        self.error = error
        self.duplicate = duplicate
        super().__init__(error.message)


@dataclass
class BatchResult:
    total_rows: int = 0
    success_count: int = 0
    error_count: int = 0
    errors: List[RowError] = field(default_factory=list)
    duplicates: List[str] = field(default_factory=list)
    created_operations: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.error_count == 0

    def add_error(self, error: RowError):
        self.error_count += 1
        self.errors.append(error)

    def to_dict(self) -> dict:
        return {
            'success': self.success,
            'totalRows': self.total_rows,
            'successCount': self.success_count,
            'errorCount': self.error_count,
            'errors': [error.to_dict() for error in self.errors],
            'duplicates': self.duplicates,
            'createdOperations': self.created_operations,
        }


def _aware(value):
    if value is not None and timezone.is_naive(value):
        return timezone.make_aware(value)
    return value


class BatchImportService:
    """Reconciles batch rows against an operator's drivers, vehicles and partners."""

    @classmethod
    def import_rows(cls, caller: CallerContext, rows: list, operator_id=None, request=None) -> BatchResult:
        """
        Import ``rows`` into the caller's (or, for super callers, the named) operator.

        Row numbers in the result are spreadsheet rows: the first data row is 2,
        or the row recorded by the workbook parser when present.

        Raises:
            NotFoundError: If the operator does not exist
            PermissionDeniedError: If a regular caller names another operator
        """
        from apps.rbac.models import AuditLog

        operator = OperatorService.resolve_target(caller, operator_id, resource='operations')
        result = BatchResult(total_rows=len(rows))

        for index, row in enumerate(rows):
            row_number = row.get('row') or index + 2
            try:
                with transaction.atomic():
                    operation = cls._import_row(caller, operator, row, row_number, request)
            except RowRejected as rejected:
                result.add_error(rejected.error)
                if rejected.duplicate is not None:
                    result.duplicates.append(rejected.duplicate)
            except Exception as e:
                logger.warning(f"Batch row {row_number} failed: {e}", exc_info=True)
                result.add_error(RowError(row_number, 'general', str(e) or 'Error desconocido al procesar la fila'))
            else:
                result.success_count += 1
                result.created_operations.append(str(operation.id))

        AuditLog.log_action(
            action='operations_batch_imported', user=caller.user, operator=operator,
            resource='operations',
            details={
                'total_rows': result.total_rows,
                'success_count': result.success_count,
                'error_count': result.error_count,
            },
            request=request,
        )
        logger.info(
            "Operations batch imported",
            extra={
                'operator_id': str(operator.id),
                'total_rows': result.total_rows,
                'success_count': result.success_count,
                'error_count': result.error_count,
            }
        )
        return result

    @staticmethod
    def _lookup(queryset, field_name, value, not_found, row_number):
        if not value:
            return None
        instance = queryset.filter(**{field_name: value}).first()
        if instance is None:
            raise RowRejected(RowError(row_number, not_found[0], not_found[1], value))
        return instance

    @classmethod
    def _import_row(cls, caller, operator, row: dict, row_number: int, request=None) -> Operation:
        operation_number = row.get('operationNumber')
        if Operation.objects.by_number(operator.id, operation_number):
            raise RowRejected(
                RowError(
                    row_number, 'operationNumber',
                    f"El número de operación {operation_number} ya existe", operation_number
                ),
                duplicate=operation_number,
            )

        driver_rut = row.get('driverRut')
        driver = Driver.objects.by_rut(operator.id, driver_rut)
        if driver is None:
            raise RowRejected(RowError(
                row_number, 'driverRut', f"No se encontró un chofer con RUT {driver_rut}", driver_rut
            ))
        if not driver.status:
            raise RowRejected(RowError(
                row_number, 'driverRut', f"El chofer con RUT {driver_rut} está inactivo", driver_rut
            ))

        plate_number = row.get('vehiclePlateNumber')
        vehicle = Vehicle.objects.by_plate(operator.id, plate_number)
        if vehicle is None:
            raise RowRejected(RowError(
                row_number, 'vehiclePlateNumber',
                f"No se encontró un vehículo con patente {plate_number}", plate_number
            ))
        if not vehicle.status:
            raise RowRejected(RowError(
                row_number, 'vehiclePlateNumber',
                f"El vehículo con patente {plate_number} está inactivo", plate_number
            ))

        client_name = row.get('clientName')
        client = cls._lookup(
            Client.objects.for_operator(operator.id), 'business_name', client_name,
            ('clientName', f"No se encontró un cliente con el nombre {client_name}"), row_number,
        )
        provider_name = row.get('providerName')
        provider = cls._lookup(
            Provider.objects.for_operator(operator.id), 'business_name', provider_name,
            ('providerName', f"No se encontró un proveedor con el nombre {provider_name}"), row_number,
        )
        route_name = row.get('routeName')
        route = cls._lookup(
            Route.objects.for_operator(operator.id), 'name', route_name,
            ('routeName', f"No se encontró un tramo/ruta con el nombre {route_name}"), row_number,
        )

        fields = {
            'operation_number': operation_number,
            'operation_type': row.get('operationType'),
            'origin': row.get('origin'),
            'destination': row.get('destination'),
            'scheduled_start_date': _aware(parse_row_datetime(row.get('scheduledStartDate'))),
            'scheduled_end_date': _aware(parse_row_datetime(row.get('scheduledEndDate'))),
            'distance': row.get('distance'),
            'cargo_description': row.get('cargoDescription') or None,
            'cargo_weight': row.get('cargoWeight'),
            'notes': row.get('notes') or None,
        }

        try:
            with transaction.atomic():
                return OperationService.create_resolved(
                    caller.user, operator, driver, vehicle, fields,
                    client=client, provider=provider, route=route, request=request,
                )
        except Exception as e:
            message = e.message if isinstance(e, FleetOpsException) else str(e)
            raise RowRejected(RowError(row_number, 'general', f"Error al crear la operación: {message}"))
