"""
Fleet serializers.
"""
from django.utils import timezone
from rest_framework import serializers

from apps.fleet.models import Driver, DriverDocument, DriverVehicle, Vehicle, VehicleDocument


class DriverSummarySerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(source='get_full_name', read_only=True)

    class Meta:
        model = Driver
        fields = ['id', 'rut', 'first_name', 'last_name', 'full_name', 'status']
        read_only_fields = fields


class VehicleSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Vehicle
        fields = ['id', 'plate_number', 'brand', 'model', 'vehicle_type', 'status']
        read_only_fields = fields


# ===== DRIVERS =====

class DriverSerializer(serializers.ModelSerializer):
    """Serializer for drivers."""

    operator_id = serializers.UUIDField(read_only=True)
    full_name = serializers.CharField(source='get_full_name', read_only=True)

    class Meta:
        model = Driver
        fields = [
            'id', 'operator_id', 'rut', 'first_name', 'last_name', 'full_name',
            'email', 'phone', 'emergency_contact_name', 'emergency_contact_phone',
            'license_type', 'license_number', 'license_expiration_date', 'date_of_birth',
            'address', 'city', 'region', 'status', 'is_external', 'external_company',
            'notes', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class DriverInputSerializer(serializers.ModelSerializer):
    """Create/update payload for drivers. ``operator_id`` is honoured for super users only."""

    operator_id = serializers.UUIDField(required=False, allow_null=True)

    class Meta:
        model = Driver
        fields = [
            'operator_id', 'rut', 'first_name', 'last_name', 'email', 'phone',
            'emergency_contact_name', 'emergency_contact_phone', 'license_type',
            'license_number', 'license_expiration_date', 'date_of_birth', 'address',
            'city', 'region', 'status', 'is_external', 'external_company', 'notes'
        ]

    def validate_rut(self, value):
        if not value.strip():
            raise serializers.ValidationError("RUT cannot be empty.")
        return value.strip()

    def validate(self, attrs):
        is_external = attrs.get('is_external', getattr(self.instance, 'is_external', False))
        if is_external and not attrs.get('external_company', getattr(self.instance, 'external_company', None)):
            raise serializers.ValidationError(
                {'external_company': 'External drivers require the external company name.'}
            )
        return attrs


class DocumentDatesMixin:
    """Rejects documents that expire before they are issued."""

    def validate(self, attrs):
        issue_date = attrs.get('issue_date', getattr(self.instance, 'issue_date', None))
        expiration_date = attrs.get('expiration_date', getattr(self.instance, 'expiration_date', None))
        if issue_date and expiration_date and expiration_date < issue_date:
            raise serializers.ValidationError(
                {'expiration_date': 'Expiration date cannot be before the issue date.'}
            )
        return attrs


class DriverDocumentSerializer(serializers.ModelSerializer):
    driver_id = serializers.UUIDField(read_only=True)
    is_expired = serializers.BooleanField(read_only=True, allow_null=True)
    days_until_expiration = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = DriverDocument
        fields = [
            'id', 'driver_id', 'document_type', 'document_name', 'file_name',
            'file_path', 'file_size', 'mime_type', 'issue_date', 'expiration_date',
            'notes', 'is_expired', 'days_until_expiration', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class DriverDocumentInputSerializer(DocumentDatesMixin, serializers.ModelSerializer):
    class Meta:
        model = DriverDocument
        fields = [
            'document_type', 'document_name', 'file_name', 'file_path', 'file_size',
            'mime_type', 'issue_date', 'expiration_date', 'notes'
        ]


class DriverDocumentUpdateSerializer(DocumentDatesMixin, serializers.ModelSerializer):
    """Only the name, validity dates and notes of a driver document can change."""

    class Meta:
        model = DriverDocument
        fields = ['document_name', 'issue_date', 'expiration_date', 'notes']


# ===== VEHICLES =====

class VehicleDocumentSerializer(serializers.ModelSerializer):
    """Serializer for vehicle documents with computed expiration fields."""

    vehicle_id = serializers.UUIDField(read_only=True)
    is_expired = serializers.BooleanField(read_only=True, allow_null=True)
    days_until_expiration = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = VehicleDocument
        fields = [
            'id', 'vehicle_id', 'document_type', 'document_name', 'file_name',
            'file_path', 'file_size', 'mime_type', 'issue_date', 'expiration_date',
            'insurance_company', 'policy_number', 'coverage_amount', 'notes',
            'is_expired', 'days_until_expiration', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class ExpiringDocumentSerializer(VehicleDocumentSerializer):
    vehicle = VehicleSummarySerializer(read_only=True)

    class Meta(VehicleDocumentSerializer.Meta):
        fields = VehicleDocumentSerializer.Meta.fields + ['vehicle']
        read_only_fields = fields


class VehicleDocumentInputSerializer(DocumentDatesMixin, serializers.ModelSerializer):
    class Meta:
        model = VehicleDocument
        fields = [
            'document_type', 'document_name', 'file_name', 'file_path', 'file_size',
            'mime_type', 'issue_date', 'expiration_date', 'insurance_company',
            'policy_number', 'coverage_amount', 'notes'
        ]


class VehicleDocumentCreateSerializer(VehicleDocumentInputSerializer):
    vehicle_id = serializers.UUIDField()

    class Meta(VehicleDocumentInputSerializer.Meta):
        fields = ['vehicle_id'] + VehicleDocumentInputSerializer.Meta.fields


class VehicleSerializer(serializers.ModelSerializer):
    """
    Serializer for vehicles.

    Pass ``include_details=True`` in the context to add documents,
    operation counters and the operational status (extra queries).
    """

    operator_id = serializers.UUIDField(read_only=True)
    current_driver = serializers.SerializerMethodField()

    class Meta:
        model = Vehicle
        fields = [
            'id', 'operator_id', 'plate_number', 'brand', 'model', 'year',
            'vehicle_type', 'capacity', 'capacity_unit', 'vin', 'color', 'status',
            'notes', 'current_driver', 'created_at', 'updated_at'
        ]
        read_only_fields = fields

    def get_current_driver(self, obj):
        from apps.fleet.services import AssignmentService

        assignment = AssignmentService.current_assignment_for_vehicle(obj)
        if assignment is None:
            return None
        return DriverSummarySerializer(assignment.driver).data

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if self.context.get('include_details'):
            from apps.fleet.services import VehicleService

            data['documents'] = VehicleDocumentSerializer(instance.documents.all(), many=True).data
            data['total_operations'] = instance.operations.count()
            data['upcoming_operations'] = instance.operations.pending().count()
            last_operation = instance.operations.order_by('-scheduled_start_date').first()
            data['last_operation_date'] = (
                last_operation.scheduled_start_date.isoformat() if last_operation else None
            )
            data['operational_status'] = VehicleService.operational_status(instance)
        return data


class VehicleInputSerializer(serializers.ModelSerializer):
    operator_id = serializers.UUIDField(required=False, allow_null=True)

    class Meta:
        model = Vehicle
        fields = [
            'operator_id', 'plate_number', 'brand', 'model', 'year', 'vehicle_type',
            'capacity', 'capacity_unit', 'vin', 'color', 'status', 'notes'
        ]

    def validate_plate_number(self, value):
        value = value.strip().upper()
        if not value:
            raise serializers.ValidationError("Plate number cannot be empty.")
        return value

    def validate_year(self, value):
        if value is not None and not 1900 <= value <= timezone.localdate().year + 1:
            raise serializers.ValidationError("Year is out of range.")
        return value


# ===== ASSIGNMENTS =====

class DriverVehicleSerializer(serializers.ModelSerializer):
    """Serializer for driver-vehicle assignments."""

    driver = DriverSummarySerializer(read_only=True)
    vehicle = VehicleSummarySerializer(read_only=True)

    class Meta:
        model = DriverVehicle
        fields = [
            'id', 'driver', 'vehicle', 'assigned_at', 'unassigned_at',
            'is_active', 'notes', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class AssignDriverSerializer(serializers.Serializer):
    driver_id = serializers.UUIDField()
    vehicle_id = serializers.UUIDField()
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True, allow_null=True)


class UnassignDriverSerializer(serializers.Serializer):
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True, allow_null=True)
