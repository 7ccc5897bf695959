"""
Operator serializers.
"""
from rest_framework import serializers

from apps.operators.models import Operator


class OperatorSerializer(serializers.ModelSerializer):
    is_active = serializers.SerializerMethodField()

    class Meta:
        model = Operator
        fields = [
            'id', 'name', 'rut', 'is_super', 'expiration', 'status',
            'is_active', 'created_at', 'updated_at'
        ]
        read_only_fields = fields

    def get_is_active(self, obj):
        return obj.is_active()


class OperatorInputSerializer(serializers.Serializer):
    """Validates create and update payloads (partial on update)."""

    name = serializers.CharField(max_length=255)
    rut = serializers.CharField(max_length=12, required=False, allow_null=True, allow_blank=True)
    is_super = serializers.BooleanField(required=False)
    expiration = serializers.DateField(required=False, allow_null=True)
    status = serializers.BooleanField(required=False)

    def validate_name(self, value):
        if not value.strip():
            raise serializers.ValidationError("Name cannot be empty.")
        return value.strip()


class OperatorStatisticsSerializer(serializers.Serializer):
    operator_id = serializers.UUIDField()
    users = serializers.IntegerField()
    active_users = serializers.IntegerField()
    roles = serializers.IntegerField()
    drivers = serializers.IntegerField()
    vehicles = serializers.IntegerField()
    clients = serializers.IntegerField()
    providers = serializers.IntegerField()
    routes = serializers.IntegerField()
    operations = serializers.IntegerField()
    operations_by_status = serializers.DictField(child=serializers.IntegerField())
