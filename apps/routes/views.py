"""
Route REST API views.
"""
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView
from drf_spectacular.utils import extend_schema, OpenApiParameter

from apps.core.pagination import StandardResultsSetPagination, paginate
from apps.core.permissions import HasGrant, requires_permission
from apps.core.views import query_bool
from apps.routes.serializers import RouteInputSerializer, RouteSerializer, RouteStatisticsSerializer
from apps.routes.services import RouteService


class RouteListView(APIView):
    """
    GET /api/routes - List routes
    POST /api/routes - Create a route
    """
    permission_classes = [HasGrant]
    pagination_class = StandardResultsSetPagination

    @extend_schema(
        tags=['Routes'],
        summary='List routes',
        parameters=[
            OpenApiParameter('search', str, description='Search by name, code, origin or destination'),
            OpenApiParameter('status', bool),
            OpenApiParameter('route_type', str),
            OpenApiParameter('difficulty', str),
            OpenApiParameter('tolls_required', bool),
            OpenApiParameter('page', int),
            OpenApiParameter('limit', int),
        ],
        responses={200: RouteSerializer(many=True)},
    )
    @requires_permission('routes', 'read')
    def get(self, request):
        queryset = RouteService.list_routes(
            request.caller,
            search=request.query_params.get('search'),
            status=query_bool(request, 'status'),
            route_type=request.query_params.get('route_type'),
            difficulty=request.query_params.get('difficulty'),
            tolls_required=query_bool(request, 'tolls_required'),
        )
        return paginate(self, request, queryset, RouteSerializer)

    @extend_schema(tags=['Routes'], summary='Create route',
                   request=RouteInputSerializer, responses={201: RouteSerializer})
    @requires_permission('routes', 'create')
    def post(self, request):
        serializer = RouteInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        route = RouteService.create_route(request.caller, serializer.validated_data)
        return Response(RouteSerializer(route).data, status=status.HTTP_201_CREATED)


class RouteDetailView(APIView):
    """
    GET/PUT/PATCH/DELETE /api/routes/{id}
    """
    permission_classes = [HasGrant]

    @extend_schema(tags=['Routes'], summary='Get route', responses={200: RouteSerializer})
    @requires_permission('routes', 'read')
    def get(self, request, route_id):
        return Response(RouteSerializer(RouteService.get_route(request.caller, route_id)).data)

    @extend_schema(tags=['Routes'], summary='Update route',
                   request=RouteInputSerializer, responses={200: RouteSerializer})
    @requires_permission('routes', 'update')
    def patch(self, request, route_id):
        route = RouteService.get_route(request.caller, route_id)
        serializer = RouteInputSerializer(route, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        route = RouteService.update_route(request.caller, route_id, serializer.validated_data)
        return Response(RouteSerializer(route).data)

    put = patch

    @extend_schema(tags=['Routes'], summary='Delete route', responses={204: None})
    @requires_permission('routes', 'delete')
    def delete(self, request, route_id):
        RouteService.delete_route(request.caller, route_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class RouteStatisticsView(APIView):
    """
    GET /api/routes/{id}/statistics
    """
    permission_classes = [HasGrant]

    @extend_schema(tags=['Routes'], summary='Route statistics', responses={200: RouteStatisticsSerializer})
    @requires_permission('routes', 'read')
    def get(self, request, route_id):
        statistics = RouteService.get_statistics(request.caller, route_id)
        return Response(RouteStatisticsSerializer(statistics).data)
