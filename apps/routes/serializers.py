"""
Route serializers.
"""
from rest_framework import serializers

from apps.routes.models import Route


class RouteSerializer(serializers.ModelSerializer):
    operator_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Route
        fields = [
            'id', 'operator_id', 'name', 'code', 'origin', 'destination', 'distance',
            'estimated_duration', 'route_type', 'difficulty', 'road_conditions',
            'tolls_required', 'estimated_toll_cost', 'status', 'observations',
            'notes', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class RouteInputSerializer(serializers.ModelSerializer):
    """
    Create/update payload. Numeric ranges are checked by the service so the
    error messages match the rest of the route API.
    """

    operator_id = serializers.UUIDField(required=False, allow_null=True)
    distance = serializers.IntegerField(required=False, allow_null=True)
    estimated_duration = serializers.IntegerField(required=False, allow_null=True)
    estimated_toll_cost = serializers.IntegerField(required=False, allow_null=True)

    class Meta:
        model = Route
        fields = [
            'operator_id', 'name', 'code', 'origin', 'destination', 'distance',
            'estimated_duration', 'route_type', 'difficulty', 'road_conditions',
            'tolls_required', 'estimated_toll_cost', 'status', 'observations', 'notes'
        ]


class RouteStatisticsSerializer(serializers.Serializer):
    route = RouteSerializer()
    statistics = serializers.DictField(child=serializers.IntegerField())
