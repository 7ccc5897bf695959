"""
Fleet services: drivers, vehicles, their documents and driver-vehicle
assignments.
"""
import logging

from django.db import transaction
from django.utils import timezone

from apps.core.exceptions import ConflictError, ValidationError
from apps.core.tenancy import CallerContext
from apps.fleet.models import Driver, DriverDocument, DriverVehicle, Vehicle, VehicleDocument
from apps.operators.services import OperatorService

logger = logging.getLogger(__name__)


class DriverService:
    """Operator-scoped driver management."""

    @staticmethod
    def list_drivers(caller: CallerContext, search=None, status=None, is_external=None, license_type=None):
        queryset = Driver.objects.for_caller(caller)
        if search:
            queryset = queryset.search(search)
        if status is not None:
            queryset = queryset.filter(status=status)
        if is_external is not None:
            queryset = queryset.filter(is_external=is_external)
        if license_type:
            queryset = queryset.filter(license_type=license_type)
        return queryset

    @staticmethod
    def get_driver(caller: CallerContext, driver_id) -> Driver:
        return Driver.objects.get_for_caller(caller, driver_id, label='Driver')

    @classmethod
    @transaction.atomic
    def create_driver(cls, caller: CallerContext, data: dict) -> Driver:
        """
        Create a driver.

        Raises:
            ConflictError: If the RUT is already registered for the operator
        """
        operator = OperatorService.resolve_target(caller, data.get('operator_id'), resource='drivers')

        if Driver.objects.by_rut(operator.id, data['rut']):
            raise ConflictError(f"Driver with RUT {data['rut']} already exists for this operator")

        fields = {key: value for key, value in data.items() if key != 'operator_id'}
        driver = Driver.objects.create(operator=operator, **fields)
        logger.info(f"Driver created: {driver.rut}", extra={'driver_id': str(driver.id)})
        return driver

    @classmethod
    @transaction.atomic
    def update_driver(cls, caller: CallerContext, driver_id, data: dict) -> Driver:
        driver = cls.get_driver(caller, driver_id)

        rut = data.get('rut')
        if rut and rut != driver.rut:
            if Driver.objects.filter(operator_id=driver.operator_id, rut=rut).exclude(id=driver.id).exists():
                raise ConflictError(f"Driver with RUT {rut} already exists for this operator")

        changed = driver.apply_changes(data)
        if changed:
            driver.save()
        return driver

    @classmethod
    @transaction.atomic
    def delete_driver(cls, caller: CallerContext, driver_id):
        """
        Delete a driver without operation history.

        Raises:
            ValidationError: If the driver has scheduled or in-progress
                operations, or any past operation (deactivate it instead)
        """
        driver = cls.get_driver(caller, driver_id)

        if driver.operations.pending().exists():
            raise ValidationError('Cannot delete driver with active or scheduled operations')
        if driver.operations.exists():
            raise ValidationError(
                'Cannot delete driver with operation history. Deactivate the driver instead.'
            )

        driver.delete()
        logger.info(f"Driver deleted: {driver_id}")

    @classmethod
    def get_statistics(cls, caller: CallerContext, driver_id) -> dict:
        driver = cls.get_driver(caller, driver_id)
        stats = driver.operations.statistics()
        stats['driver_id'] = str(driver.id)
        return stats

    @classmethod
    def get_operation_history(cls, caller: CallerContext, driver_id):
        driver = cls.get_driver(caller, driver_id)
        return driver.operations.select_related('vehicle', 'client', 'provider', 'route')

    # ===== DOCUMENTS =====

    @classmethod
    def list_documents(cls, caller: CallerContext, driver_id):
        driver = cls.get_driver(caller, driver_id)
        return driver.documents.all()

    @staticmethod
    def get_document(caller: CallerContext, document_id) -> DriverDocument:
        return DriverDocument.objects.get_for_caller(caller, document_id, label='Driver document')

    @classmethod
    @transaction.atomic
    def add_document(cls, caller: CallerContext, driver_id, data: dict) -> DriverDocument:
        driver = cls.get_driver(caller, driver_id)
        fields = {key: value for key, value in data.items() if key != 'driver_id'}
        document = DriverDocument.objects.create(driver=driver, **fields)
        logger.info(
            f"Driver document added: {document.document_type}",
            extra={'driver_id': str(driver.id), 'document_id': str(document.id)}
        )
        return document

    @classmethod
    def update_document(cls, caller: CallerContext, document_id, data: dict) -> DriverDocument:
        document = cls.get_document(caller, document_id)
        if document.apply_changes(data, exclude=('driver_id',)):
            document.save()
        return document

    @classmethod
    def remove_document(cls, caller: CallerContext, document_id):
        cls.get_document(caller, document_id).delete()
        logger.info(f"Driver document deleted: {document_id}")


class VehicleService:
    """Operator-scoped vehicle and vehicle document management."""

    @staticmethod
    def list_vehicles(caller: CallerContext, search=None, vehicle_type=None, status=None):
        queryset = Vehicle.objects.for_caller(caller)
        if search:
            queryset = queryset.search(search)
        if vehicle_type:
            queryset = queryset.filter(vehicle_type=vehicle_type)
        if status is not None:
            queryset = queryset.filter(status=status)
        return queryset

    @staticmethod
    def get_vehicle(caller: CallerContext, vehicle_id) -> Vehicle:
        return Vehicle.objects.get_for_caller(caller, vehicle_id, label='Vehicle')

    @classmethod
    @transaction.atomic
    def create_vehicle(cls, caller: CallerContext, data: dict) -> Vehicle:
        """
        Create a vehicle.

        Raises:
            ConflictError: If the plate number is already registered for the operator
        """
        operator = OperatorService.resolve_target(caller, data.get('operator_id'), resource='vehicles')

        if Vehicle.objects.by_plate(operator.id, data['plate_number']):
            raise ConflictError(f"Ya existe un vehículo con la patente {data['plate_number']}")

        fields = {key: value for key, value in data.items() if key != 'operator_id'}
        vehicle = Vehicle.objects.create(operator=operator, **fields)
        logger.info(f"Vehicle created: {vehicle.plate_number}", extra={'vehicle_id': str(vehicle.id)})
        return vehicle

    @classmethod
    @transaction.atomic
    def update_vehicle(cls, caller: CallerContext, vehicle_id, data: dict) -> Vehicle:
        vehicle = cls.get_vehicle(caller, vehicle_id)

        plate_number = data.get('plate_number')
        if plate_number and plate_number != vehicle.plate_number:
            duplicate = Vehicle.objects.filter(
                operator_id=vehicle.operator_id, plate_number=plate_number
            ).exclude(id=vehicle.id)
            if duplicate.exists():
                raise ConflictError(f"Ya existe otro vehículo con la patente {plate_number}")

        changed = vehicle.apply_changes(data)
        if changed:
            vehicle.save()
        return vehicle

    @classmethod
    @transaction.atomic
    def delete_vehicle(cls, caller: CallerContext, vehicle_id):
        """
        Delete a vehicle without operation history.

        Raises:
            ValidationError: If the vehicle has scheduled, in-progress or past operations
        """
        vehicle = cls.get_vehicle(caller, vehicle_id)

        if vehicle.operations.pending().exists():
            raise ValidationError('No se puede eliminar el vehículo porque tiene operaciones activas')
        if vehicle.operations.exists():
            raise ValidationError(
                'No se puede eliminar el vehículo porque tiene historial de operaciones. Desactívelo en su lugar.'
            )

        vehicle.delete()
        logger.info(f"Vehicle deleted: {vehicle_id}")

    # ===== DOCUMENTS =====

    @classmethod
    def list_documents(cls, caller: CallerContext, vehicle_id):
        vehicle = cls.get_vehicle(caller, vehicle_id)
        return vehicle.documents.all()

    @staticmethod
    def get_document(caller: CallerContext, document_id) -> VehicleDocument:
        return VehicleDocument.objects.get_for_caller(caller, document_id, label='Document')

    @classmethod
    def add_document(cls, caller: CallerContext, vehicle_id, data: dict) -> VehicleDocument:
        vehicle = cls.get_vehicle(caller, vehicle_id)
        fields = {key: value for key, value in data.items() if key != 'vehicle_id'}
        return VehicleDocument.objects.create(vehicle=vehicle, **fields)

    @classmethod
    def update_document(cls, caller: CallerContext, document_id, data: dict) -> VehicleDocument:
        document = cls.get_document(caller, document_id)
        if document.apply_changes(data, exclude=('vehicle_id',)):
            document.save()
        return document

    @classmethod
    def remove_document(cls, caller: CallerContext, document_id):
        cls.get_document(caller, document_id).delete()

    @staticmethod
    def expiring_documents(caller: CallerContext, days: int = 30):
        """Documents of the caller's vehicles that expire within ``days`` days."""
        return (
            VehicleDocument.objects.for_caller(caller)
            .expiring_within(days)
            .select_related('vehicle')
            .order_by('expiration_date')
        )

    # ===== OPERATIONAL STATE =====

    @staticmethod
    def operational_status(vehicle: Vehicle) -> str:
        """
        Derive the operational status of a vehicle.

        Inactive vehicles are out of service. A vehicle running an
        operation is reserved. Otherwise an expired document puts it out
        of service.
        """
        if not vehicle.status:
            return Vehicle.STATUS_OUT_OF_SERVICE
        if vehicle.operations.in_progress().exists():
            return Vehicle.STATUS_RESERVED
        if vehicle.documents.expired().exists():
            return Vehicle.STATUS_OUT_OF_SERVICE
        return Vehicle.STATUS_ACTIVE

    @classmethod
    def get_operational_status(cls, caller: CallerContext, vehicle_id) -> dict:
        vehicle = cls.get_vehicle(caller, vehicle_id)
        return {'vehicle_id': str(vehicle.id), 'operational_status': cls.operational_status(vehicle)}

    @classmethod
    def get_operation_history(cls, caller: CallerContext, vehicle_id, limit: int = 10):
        vehicle = cls.get_vehicle(caller, vehicle_id)
        return vehicle.operations.select_related('driver').order_by('-scheduled_start_date')[:limit]

    @classmethod
    def get_upcoming_operations(cls, caller: CallerContext, vehicle_id):
        vehicle = cls.get_vehicle(caller, vehicle_id)
        return vehicle.operations.pending().select_related('driver').order_by('scheduled_start_date')


class AssignmentService:
    """
    Driver-vehicle assignments.

    A driver has at most one active assignment. Assigning deactivates the
    previous active row and inserts the new one in the same transaction,
    holding a lock on the driver row so concurrent swaps serialize.
    """

    @classmethod
    def assign(cls, caller: CallerContext, driver_id, vehicle_id, notes=None) -> DriverVehicle:
        """
        Assign a driver to a vehicle, replacing the driver's active assignment.

        Raises:
            NotFoundError: If the driver or vehicle is not visible to the caller
            ValidationError: If they belong to different operators or either is inactive
        """
        driver = DriverService.get_driver(caller, driver_id)
        vehicle = VehicleService.get_vehicle(caller, vehicle_id)
        return cls.assign_resolved(driver, vehicle, notes=notes)

    @staticmethod
    @transaction.atomic
    def assign_resolved(driver: Driver, vehicle: Vehicle, notes=None) -> DriverVehicle:
        if driver.operator_id != vehicle.operator_id:
            raise ValidationError('Driver and vehicle must belong to the same operator')
        if not driver.status:
            raise ValidationError('Driver is not active')
        if not vehicle.status:
            raise ValidationError('Vehicle is not active')

        # lock the driver row
        Driver.objects.select_for_update().filter(pk=driver.pk).first()

        now = timezone.now()
        released = (
            DriverVehicle.objects
            .filter(driver=driver, is_active=True)
            .update(is_active=False, unassigned_at=now, updated_at=now)
        )

        assignment = DriverVehicle.objects.create(
            driver=driver,
            vehicle=vehicle,
            assigned_at=now,
            is_active=True,
            notes=notes,
        )
        logger.info(
            f"Driver {driver.rut} assigned to vehicle {vehicle.plate_number}",
            extra={'driver_id': str(driver.id), 'vehicle_id': str(vehicle.id), 'released': released}
        )
        return assignment

    @staticmethod
    def get_assignment(caller: CallerContext, assignment_id) -> DriverVehicle:
        return DriverVehicle.objects.get_for_caller(caller, assignment_id, label='Driver-vehicle assignment')

    @classmethod
    @transaction.atomic
    def unassign(cls, caller: CallerContext, assignment_id, notes=None) -> DriverVehicle:
        """
        Close an active assignment.

        Raises:
            ValidationError: If the assignment is already inactive
        """
        assignment = cls.get_assignment(caller, assignment_id)
        if not assignment.is_active:
            raise ValidationError('Assignment is already inactive')

        assignment.is_active = False
        assignment.unassigned_at = timezone.now()
        if notes:
            assignment.notes = notes
        assignment.save()
        return assignment

    @staticmethod
    def assignments_for_driver(caller: CallerContext, driver_id):
        driver = DriverService.get_driver(caller, driver_id)
        return DriverVehicle.objects.for_driver(driver.id).select_related('vehicle')

    @staticmethod
    def active_assignment(caller: CallerContext, driver_id):
        """The driver's active assignment, or None."""
        driver = DriverService.get_driver(caller, driver_id)
        return DriverVehicle.objects.for_driver(driver.id).active().select_related('vehicle').first()

    @staticmethod
    def current_assignment_for_vehicle(vehicle: Vehicle):
        return vehicle.assignments.filter(is_active=True).select_related('driver').first()
