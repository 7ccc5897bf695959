"""
Operator REST API views.
"""
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView
from drf_spectacular.utils import extend_schema, OpenApiParameter

from apps.core.pagination import StandardResultsSetPagination, paginate
from apps.core.permissions import HasGrant, requires_permission
from apps.core.views import query_bool
from apps.operators.serializers import (
    OperatorInputSerializer, OperatorSerializer, OperatorStatisticsSerializer,
)
from apps.operators.services import OperatorService


class OperatorListView(APIView):
    """
    GET /api/operators - List operators (regular users only see their own)
    POST /api/operators - Create an operator (super operators only)
    """
    permission_classes = [HasGrant]
    pagination_class = StandardResultsSetPagination

    @extend_schema(
        tags=['Operators'],
        summary='List operators',
        parameters=[
            OpenApiParameter('search', str, description='Search by name or RUT'),
            OpenApiParameter('status', bool),
            OpenApiParameter('super', bool),
            OpenApiParameter('page', int),
            OpenApiParameter('limit', int),
        ],
        responses={200: OperatorSerializer(many=True)},
    )
    @requires_permission('operators', 'read')
    def get(self, request):
        queryset = OperatorService.list_operators(
            request.caller,
            search=request.query_params.get('search'),
            status=query_bool(request, 'status'),
            is_super=query_bool(request, 'super'),
        )
        return paginate(self, request, queryset, OperatorSerializer)

    @extend_schema(
        tags=['Operators'],
        summary='Create operator',
        request=OperatorInputSerializer,
        responses={201: OperatorSerializer},
    )
    @requires_permission('operators', 'create')
    def post(self, request):
        serializer = OperatorInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        operator = OperatorService.create_operator(request.caller, serializer.validated_data, request=request)
        return Response(OperatorSerializer(operator).data, status=status.HTTP_201_CREATED)


class OperatorDetailView(APIView):
    """
    GET/PATCH/DELETE /api/operators/{id}
    """
    permission_classes = [HasGrant]

    @extend_schema(tags=['Operators'], summary='Get operator', responses={200: OperatorSerializer})
    @requires_permission('operators', 'read')
    def get(self, request, operator_id):
        operator = OperatorService.get_operator(request.caller, operator_id)
        return Response(OperatorSerializer(operator).data)

    @extend_schema(
        tags=['Operators'],
        summary='Update operator',
        request=OperatorInputSerializer,
        responses={200: OperatorSerializer},
    )
    @requires_permission('operators', 'update')
    def patch(self, request, operator_id):
        serializer = OperatorInputSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        operator = OperatorService.update_operator(
            request.caller, operator_id, serializer.validated_data, request=request
        )
        return Response(OperatorSerializer(operator).data)

    put = patch

    @extend_schema(tags=['Operators'], summary='Deactivate operator', responses={204: None})
    @requires_permission('operators', 'delete')
    def delete(self, request, operator_id):
        OperatorService.delete_operator(request.caller, operator_id, request=request)
        return Response(status=status.HTTP_204_NO_CONTENT)


class OperatorStatisticsView(APIView):
    """
    GET /api/operators/{id}/statistics
    """
    permission_classes = [HasGrant]

    @extend_schema(tags=['Operators'], summary='Operator statistics', responses={200: OperatorStatisticsSerializer})
    @requires_permission('operators', 'read')
    def get(self, request, operator_id):
        statistics = OperatorService.get_statistics(request.caller, operator_id)
        return Response(OperatorStatisticsSerializer(statistics).data)
