"""
Client and provider serializers.
"""
from rest_framework import serializers

from apps.partners.models import Client, Provider

PARTNER_FIELDS = [
    'id', 'operator_id', 'business_name', 'tax_id', 'contact_name', 'contact_email',
    'contact_phone', 'address', 'city', 'region', 'country', 'status',
    'observations', 'notes', 'created_at', 'updated_at'
]

PARTNER_INPUT_FIELDS = [
    'operator_id', 'business_name', 'tax_id', 'contact_name', 'contact_email',
    'contact_phone', 'address', 'city', 'region', 'country', 'status',
    'observations', 'notes'
]


class PartnerInputMixin(serializers.Serializer):
    operator_id = serializers.UUIDField(required=False, allow_null=True)

    def validate_business_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Business name cannot be empty.")
        return value


class ClientSerializer(serializers.ModelSerializer):
    operator_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Client
        fields = PARTNER_FIELDS[:3] + ['industry'] + PARTNER_FIELDS[3:]
        read_only_fields = fields


class ClientInputSerializer(PartnerInputMixin, serializers.ModelSerializer):
    class Meta:
        model = Client
        fields = PARTNER_INPUT_FIELDS + ['industry']


class ProviderSerializer(serializers.ModelSerializer):
    operator_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Provider
        fields = PARTNER_FIELDS[:3] + [
            'business_type', 'service_types', 'fleet_size', 'rating'
        ] + PARTNER_FIELDS[3:]
        read_only_fields = fields


class ProviderInputSerializer(PartnerInputMixin, serializers.ModelSerializer):
    class Meta:
        model = Provider
        fields = PARTNER_INPUT_FIELDS + ['business_type', 'service_types', 'fleet_size', 'rating']


class OperationCountsSerializer(serializers.Serializer):
    """Operation counters of a client, provider or driver."""

    total_operations = serializers.IntegerField()
    completed_operations = serializers.IntegerField()
    in_progress_operations = serializers.IntegerField()
    scheduled_operations = serializers.IntegerField()
    cancelled_operations = serializers.IntegerField()
    total_distance = serializers.IntegerField()


class ClientStatisticsSerializer(serializers.Serializer):
    client = ClientSerializer(source='partner')
    statistics = OperationCountsSerializer()


class ProviderStatisticsSerializer(serializers.Serializer):
    provider = ProviderSerializer(source='partner')
    statistics = OperationCountsSerializer()
