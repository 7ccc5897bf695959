"""
Fleet models.

Drivers and vehicles belong to one operator and are identified inside it
by their natural keys (RUT and plate number). A driver is assigned to at
most one vehicle at a time through DriverVehicle.
"""
from datetime import timedelta

from django.db import models
from django.db.models import Q
from django.utils import timezone

from apps.core.models import BaseModel
from apps.core.tenancy import OperatorScopedQuerySet


class DriverQuerySet(OperatorScopedQuerySet):

    def active(self):
        return self.filter(status=True)

    def by_rut(self, operator_id, rut):
        return self.filter(operator_id=operator_id, rut=rut).first()

    def search(self, query):
        return self.filter(
            Q(first_name__icontains=query) |
            Q(last_name__icontains=query) |
            Q(rut__icontains=query) |
            Q(email__icontains=query)
        )


class Driver(BaseModel):
    """
    Driver (chofer) employed by an operator or hired from an external company.
    """

    LICENSE_TYPE_CHOICES = [
        ('A1', 'A1'), ('A2', 'A2'), ('A3', 'A3'), ('A4', 'A4'), ('A5', 'A5'),
        ('B', 'B'), ('C', 'C'), ('D', 'D'), ('E', 'E'), ('F', 'F'),
    ]

    operator = models.ForeignKey(
        'operators.Operator',
        on_delete=models.CASCADE,
        related_name='drivers',
        help_text="Operator this driver works for"
    )
    rut = models.CharField(
        max_length=12,
        help_text="Chilean national id, e.g. 21.023.531-0"
    )
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    email = models.EmailField(null=True, blank=True)
    phone = models.CharField(max_length=20, null=True, blank=True)
    emergency_contact_name = models.CharField(max_length=200, null=True, blank=True)
    emergency_contact_phone = models.CharField(max_length=20, null=True, blank=True)

    license_type = models.CharField(max_length=10, choices=LICENSE_TYPE_CHOICES)
    license_number = models.CharField(max_length=50)
    license_expiration_date = models.DateField()
    date_of_birth = models.DateField(null=True, blank=True)

    address = models.CharField(max_length=500, null=True, blank=True)
    city = models.CharField(max_length=100, null=True, blank=True)
    region = models.CharField(max_length=100, null=True, blank=True)

    status = models.BooleanField(default=True, db_index=True)
    is_external = models.BooleanField(
        default=False,
        help_text="Driver hired from an external company"
    )
    external_company = models.CharField(max_length=255, null=True, blank=True)
    notes = models.CharField(max_length=1000, null=True, blank=True)

    objects = models.Manager.from_queryset(DriverQuerySet)()

    class Meta:
        db_table = 'drivers'
        ordering = ['last_name', 'first_name']
        constraints = [
            models.UniqueConstraint(fields=['operator', 'rut'], name='unique_driver_rut_per_operator'),
        ]

    def __str__(self):
        return f"{self.get_full_name()} ({self.rut})"

    def get_full_name(self):
        return f"{self.first_name} {self.last_name}".strip()


class VehicleQuerySet(OperatorScopedQuerySet):

    def active(self):
        return self.filter(status=True)

    def by_plate(self, operator_id, plate_number):
        return self.filter(operator_id=operator_id, plate_number=plate_number).first()

    def search(self, query):
        return self.filter(
            Q(plate_number__icontains=query) |
            Q(brand__icontains=query) |
            Q(model__icontains=query) |
            Q(vin__icontains=query)
        )


class Vehicle(BaseModel):
    """
    Vehicle (camión) of an operator's fleet, identified by its plate (patente).
    """

    VEHICLE_TYPE_CHOICES = [
        ('truck', 'Truck'),
        ('van', 'Van'),
        ('pickup', 'Pickup'),
        ('flatbed', 'Flatbed'),
        ('trailer', 'Trailer'),
        ('dump_truck', 'Dump truck'),
        ('crane_truck', 'Crane truck'),
        ('other', 'Other'),
    ]

    CAPACITY_UNIT_CHOICES = [
        ('kg', 'Kilograms'),
        ('tons', 'Tons'),
        ('m3', 'Cubic meters'),
        ('passengers', 'Passengers'),
    ]

    STATUS_ACTIVE = 'active'
    STATUS_RESERVED = 'reserved'
    STATUS_OUT_OF_SERVICE = 'out_of_service'

    operator = models.ForeignKey(
        'operators.Operator',
        on_delete=models.CASCADE,
        related_name='vehicles',
        help_text="Operator owning this vehicle"
    )
    plate_number = models.CharField(max_length=20, help_text="License plate (patente)")
    brand = models.CharField(max_length=100, null=True, blank=True)
    model = models.CharField(max_length=100, null=True, blank=True)
    year = models.PositiveIntegerField(null=True, blank=True)
    vehicle_type = models.CharField(max_length=50, choices=VEHICLE_TYPE_CHOICES)
    capacity = models.PositiveIntegerField(null=True, blank=True)
    capacity_unit = models.CharField(max_length=20, choices=CAPACITY_UNIT_CHOICES, null=True, blank=True)
    vin = models.CharField(max_length=50, null=True, blank=True)
    color = models.CharField(max_length=50, null=True, blank=True)
    status = models.BooleanField(default=True, db_index=True)
    notes = models.CharField(max_length=1000, null=True, blank=True)

    objects = models.Manager.from_queryset(VehicleQuerySet)()

    class Meta:
        db_table = 'vehicles'
        ordering = ['plate_number']
        constraints = [
            models.UniqueConstraint(
                fields=['operator', 'plate_number'],
                name='unique_vehicle_plate_per_operator'
            ),
        ]

    def __str__(self):
        return self.plate_number


class DocumentQuerySet(OperatorScopedQuerySet):

    def expired(self, today=None):
        today = today or timezone.localdate()
        return self.filter(expiration_date__lt=today)

    def expiring_within(self, days, today=None):
        """Documents not yet expired whose expiration falls in the next ``days`` days."""
        today = today or timezone.localdate()
        return self.filter(
            expiration_date__gte=today,
            expiration_date__lt=today + timedelta(days=days),
        )


class VehicleDocumentQuerySet(DocumentQuerySet):
    operator_field = 'vehicle__operator'


class DriverDocumentQuerySet(DocumentQuerySet):
    operator_field = 'driver__operator'


class ExpiringDocument(BaseModel):
    """File metadata and validity dates shared by driver and vehicle documents."""

    document_name = models.CharField(max_length=255)
    file_name = models.CharField(max_length=255, null=True, blank=True)
    file_path = models.CharField(max_length=500, null=True, blank=True)
    file_size = models.PositiveIntegerField(null=True, blank=True, help_text="Bytes")
    mime_type = models.CharField(max_length=100, null=True, blank=True)
    issue_date = models.DateField(null=True, blank=True)
    expiration_date = models.DateField(null=True, blank=True, db_index=True)
    notes = models.CharField(max_length=500, null=True, blank=True)

    class Meta:
        abstract = True

    @property
    def is_expired(self):
        if self.expiration_date is None:
            return None
        return self.expiration_date < timezone.localdate()

    @property
    def days_until_expiration(self):
        if self.expiration_date is None:
            return None
        return (self.expiration_date - timezone.localdate()).days


class VehicleDocument(ExpiringDocument):
    """Legal document of a vehicle, usually with an expiration date."""

    DOCUMENT_TYPE_CHOICES = [
        ('circulation_permit', 'Circulation permit'),
        ('technical_review', 'Technical review'),
        ('insurance', 'Insurance'),
        ('ownership', 'Ownership'),
        ('gas_certification', 'Gas certification'),
        ('other', 'Other'),
    ]

    vehicle = models.ForeignKey(
        Vehicle,
        on_delete=models.CASCADE,
        related_name='documents'
    )
    document_type = models.CharField(max_length=50, choices=DOCUMENT_TYPE_CHOICES)
    insurance_company = models.CharField(max_length=255, null=True, blank=True)
    policy_number = models.CharField(max_length=100, null=True, blank=True)
    coverage_amount = models.PositiveIntegerField(null=True, blank=True)

    objects = models.Manager.from_queryset(VehicleDocumentQuerySet)()

    class Meta:
        db_table = 'vehicle_documents'
        ordering = ['expiration_date']

    def __str__(self):
        return f"{self.document_name} ({self.vehicle})"


class DriverDocument(ExpiringDocument):
    """License, certificate or medical record of a driver."""

    DOCUMENT_TYPE_CHOICES = [
        ('license', 'License'),
        ('certificate', 'Certificate'),
        ('medical', 'Medical'),
        ('psychotechnical', 'Psychotechnical'),
        ('training', 'Training'),
        ('insurance', 'Insurance'),
        ('other', 'Other'),
    ]

    driver = models.ForeignKey(
        Driver,
        on_delete=models.CASCADE,
        related_name='documents'
    )
    document_type = models.CharField(max_length=50, choices=DOCUMENT_TYPE_CHOICES)

    objects = models.Manager.from_queryset(DriverDocumentQuerySet)()

    class Meta:
        db_table = 'driver_documents'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.document_name} ({self.driver})"


class DriverVehicleQuerySet(OperatorScopedQuerySet):
    operator_field = 'driver__operator'

    def active(self):
        return self.filter(is_active=True)

    def for_driver(self, driver_id):
        return self.filter(driver_id=driver_id)


class DriverVehicle(BaseModel):
    """
    Assignment of a driver to a vehicle.

    A driver has at most one active assignment; the partial unique
    constraint backs the swap done by AssignmentService.
    """

    driver = models.ForeignKey(
        Driver,
        on_delete=models.CASCADE,
        related_name='assignments'
    )
    vehicle = models.ForeignKey(
        Vehicle,
        on_delete=models.CASCADE,
        related_name='assignments'
    )
    assigned_at = models.DateTimeField(default=timezone.now)
    unassigned_at = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    notes = models.CharField(max_length=500, null=True, blank=True)

    objects = models.Manager.from_queryset(DriverVehicleQuerySet)()

    class Meta:
        db_table = 'driver_vehicles'
        ordering = ['-assigned_at']
        constraints = [
            models.UniqueConstraint(
                fields=['driver'],
                condition=Q(is_active=True),
                name='one_active_assignment_per_driver'
            ),
        ]

    def __str__(self):
        state = 'active' if self.is_active else 'inactive'
        return f"{self.driver_id} -> {self.vehicle_id} ({state})"
