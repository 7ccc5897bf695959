"""
Operation serializers, including the batch upload contract.

Batch rows use the camelCase keys of the upload template so JSON uploads
and parsed workbooks share one shape.
"""
from rest_framework import serializers

from apps.fleet.serializers import DriverSummarySerializer, VehicleSummarySerializer
from apps.operations.models import Operation

DATETIME_INPUT_FORMATS = ['iso-8601', '%Y-%m-%d %H:%M', '%Y-%m-%d']


class OperationSummarySerializer(serializers.ModelSerializer):
    """Compact operation used in histories and nested listings."""

    driver = DriverSummarySerializer(read_only=True)
    vehicle = VehicleSummarySerializer(read_only=True)

    class Meta:
        model = Operation
        fields = [
            'id', 'operation_number', 'operation_type', 'origin', 'destination',
            'scheduled_start_date', 'scheduled_end_date', 'status', 'distance',
            'driver', 'vehicle'
        ]
        read_only_fields = fields


class OperationSerializer(serializers.ModelSerializer):
    operator_id = serializers.UUIDField(read_only=True)
    driver = DriverSummarySerializer(read_only=True)
    vehicle = VehicleSummarySerializer(read_only=True)
    client = serializers.SerializerMethodField()
    provider = serializers.SerializerMethodField()
    route = serializers.SerializerMethodField()

    class Meta:
        model = Operation
        fields = [
            'id', 'operator_id', 'operation_number', 'operation_type', 'origin',
            'destination', 'scheduled_start_date', 'scheduled_end_date',
            'actual_start_date', 'actual_end_date', 'distance', 'status',
            'cargo_description', 'cargo_weight', 'notes', 'driver', 'vehicle',
            'client', 'provider', 'route', 'created_at', 'updated_at'
        ]
        read_only_fields = fields

    def get_client(self, obj):
        if obj.client is None:
            return None
        return {'id': str(obj.client.id), 'business_name': obj.client.business_name}

    def get_provider(self, obj):
        if obj.provider is None:
            return None
        return {'id': str(obj.provider.id), 'business_name': obj.provider.business_name}

    def get_route(self, obj):
        if obj.route is None:
            return None
        return {'id': str(obj.route.id), 'name': obj.route.name, 'distance': obj.route.distance}


class OperationInputSerializer(serializers.Serializer):
    """Create/update payload. References are ids; the service checks their operator."""

    operator_id = serializers.UUIDField(required=False, allow_null=True)
    driver_id = serializers.UUIDField()
    vehicle_id = serializers.UUIDField()
    client_id = serializers.UUIDField(required=False, allow_null=True)
    provider_id = serializers.UUIDField(required=False, allow_null=True)
    route_id = serializers.UUIDField(required=False, allow_null=True)
    operation_number = serializers.CharField(max_length=50)
    operation_type = serializers.CharField(max_length=50)
    origin = serializers.CharField(max_length=500)
    destination = serializers.CharField(max_length=500)
    scheduled_start_date = serializers.DateTimeField()
    scheduled_end_date = serializers.DateTimeField(required=False, allow_null=True)
    actual_start_date = serializers.DateTimeField(required=False, allow_null=True)
    actual_end_date = serializers.DateTimeField(required=False, allow_null=True)
    distance = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    status = serializers.ChoiceField(choices=Operation.STATUS_CHOICES, required=False)
    cargo_description = serializers.CharField(max_length=1000, required=False, allow_blank=True, allow_null=True)
    cargo_weight = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True, allow_null=True)

    def validate(self, attrs):
        start = attrs.get('scheduled_start_date')
        end = attrs.get('scheduled_end_date')
        if start and end and end < start:
            raise serializers.ValidationError(
                {'scheduled_end_date': 'Scheduled end must be after the scheduled start.'}
            )
        return attrs


class OperationRowSerializer(serializers.Serializer):
    """One batch upload row."""

    operationNumber = serializers.CharField(max_length=50)
    scheduledStartDate = serializers.DateTimeField(input_formats=DATETIME_INPUT_FORMATS)
    scheduledEndDate = serializers.DateTimeField(
        input_formats=DATETIME_INPUT_FORMATS, required=False, allow_null=True
    )
    clientName = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    providerName = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    routeName = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    driverRut = serializers.CharField()
    vehiclePlateNumber = serializers.CharField()
    operationType = serializers.CharField(max_length=50)
    origin = serializers.CharField(max_length=500)
    destination = serializers.CharField(max_length=500)
    distance = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    cargoDescription = serializers.CharField(max_length=1000, required=False, allow_blank=True, allow_null=True)
    cargoWeight = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True, allow_null=True)


class BatchUploadSerializer(serializers.Serializer):
    operatorId = serializers.UUIDField(required=False, allow_null=True)
    operations = OperationRowSerializer(many=True, allow_empty=False)


class BatchFileUploadSerializer(serializers.Serializer):
    file = serializers.FileField(required=False)
    operatorId = serializers.UUIDField(required=False, allow_null=True)


class RowErrorSerializer(serializers.Serializer):
    row = serializers.IntegerField()
    field = serializers.CharField()
    message = serializers.CharField()
    value = serializers.JSONField(allow_null=True)


class BatchResultSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    message = serializers.CharField(required=False)
    totalRows = serializers.IntegerField()
    successCount = serializers.IntegerField()
    errorCount = serializers.IntegerField()
    errors = RowErrorSerializer(many=True)
    duplicates = serializers.ListField(child=serializers.CharField())
    createdOperations = serializers.ListField(child=serializers.UUIDField())


class ParseResultSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    totalRows = serializers.IntegerField()
    validRows = serializers.IntegerField()
    errors = RowErrorSerializer(many=True)
    data = serializers.ListField(child=serializers.DictField())
