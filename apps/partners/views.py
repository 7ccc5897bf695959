"""
Client and provider REST API views.
"""
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView
from drf_spectacular.utils import extend_schema, OpenApiParameter

from apps.core.pagination import StandardResultsSetPagination, paginate
from apps.core.permissions import HasGrant, requires_permission
from apps.core.views import query_bool, query_int
from apps.operations.serializers import OperationSummarySerializer
from apps.partners.serializers import (
    ClientInputSerializer, ClientSerializer, ClientStatisticsSerializer,
    ProviderInputSerializer, ProviderSerializer, ProviderStatisticsSerializer,
)
from apps.partners.services import ClientService, ProviderService

LIST_PARAMETERS = [
    OpenApiParameter('search', str, description='Search by business name, tax id or contact'),
    OpenApiParameter('status', bool),
    OpenApiParameter('city', str),
    OpenApiParameter('region', str),
    OpenApiParameter('page', int),
    OpenApiParameter('limit', int),
]


# ===== CLIENTS =====

class ClientListView(APIView):
    """
    GET /api/clients - List clients
    POST /api/clients - Create a client
    """
    permission_classes = [HasGrant]
    pagination_class = StandardResultsSetPagination

    @extend_schema(
        tags=['Clients'],
        summary='List clients',
        parameters=LIST_PARAMETERS + [OpenApiParameter('industry', str)],
        responses={200: ClientSerializer(many=True)},
    )
    @requires_permission('clients', 'read')
    def get(self, request):
        queryset = ClientService.list(
            request.caller,
            search=request.query_params.get('search'),
            status=query_bool(request, 'status'),
            city=request.query_params.get('city'),
            region=request.query_params.get('region'),
            industry=request.query_params.get('industry'),
        )
        return paginate(self, request, queryset, ClientSerializer)

    @extend_schema(tags=['Clients'], summary='Create client',
                   request=ClientInputSerializer, responses={201: ClientSerializer})
    @requires_permission('clients', 'create')
    def post(self, request):
        serializer = ClientInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        client = ClientService.create(request.caller, serializer.validated_data)
        return Response(ClientSerializer(client).data, status=status.HTTP_201_CREATED)


class ClientDetailView(APIView):
    """
    GET/PUT/PATCH/DELETE /api/clients/{id}

    DELETE deactivates the client.
    """
    permission_classes = [HasGrant]

    @extend_schema(tags=['Clients'], summary='Get client', responses={200: ClientSerializer})
    @requires_permission('clients', 'read')
    def get(self, request, client_id):
        return Response(ClientSerializer(ClientService.get(request.caller, client_id)).data)

    @extend_schema(tags=['Clients'], summary='Update client',
                   request=ClientInputSerializer, responses={200: ClientSerializer})
    @requires_permission('clients', 'update')
    def patch(self, request, client_id):
        client = ClientService.get(request.caller, client_id)
        serializer = ClientInputSerializer(client, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        client = ClientService.update(request.caller, client_id, serializer.validated_data)
        return Response(ClientSerializer(client).data)

    put = patch

    @extend_schema(tags=['Clients'], summary='Deactivate client', responses={200: ClientSerializer})
    @requires_permission('clients', 'delete')
    def delete(self, request, client_id):
        client = ClientService.delete(request.caller, client_id)
        return Response(ClientSerializer(client).data)


class ClientPermanentDeleteView(APIView):
    """
    DELETE /api/clients/{id}/permanent
    """
    permission_classes = [HasGrant]

    @extend_schema(tags=['Clients'], summary='Permanently delete client', responses={204: None})
    @requires_permission('clients', 'delete')
    def delete(self, request, client_id):
        ClientService.permanent_delete(request.caller, client_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class ClientStatisticsView(APIView):
    """
    GET /api/clients/{id}/statistics
    """
    permission_classes = [HasGrant]

    @extend_schema(tags=['Clients'], summary='Client statistics', responses={200: ClientStatisticsSerializer})
    @requires_permission('clients', 'read')
    def get(self, request, client_id):
        statistics = ClientService.get_statistics(request.caller, client_id)
        return Response(ClientStatisticsSerializer(statistics).data)


class ClientOperationsView(APIView):
    """
    GET /api/clients/{id}/operations - Paginated operations of a client
    """
    permission_classes = [HasGrant]
    pagination_class = StandardResultsSetPagination

    @extend_schema(tags=['Clients'], summary='Client operations',
                   responses={200: OperationSummarySerializer(many=True)})
    @requires_permission('clients', 'read')
    def get(self, request, client_id):
        queryset = ClientService.get_operations(request.caller, client_id)
        return paginate(self, request, queryset, OperationSummarySerializer)


class ClientRecentOperationsView(APIView):
    """
    GET /api/clients/{id}/operations/recent?limit=5
    """
    permission_classes = [HasGrant]

    @extend_schema(tags=['Clients'], summary='Recent client operations',
                   parameters=[OpenApiParameter('limit', int)],
                   responses={200: OperationSummarySerializer(many=True)})
    @requires_permission('clients', 'read')
    def get(self, request, client_id):
        limit = query_int(request, 'limit', default=5, minimum=1)
        operations = ClientService.recent_operations(request.caller, client_id, limit=limit)
        return Response(OperationSummarySerializer(operations, many=True).data)


class TopClientsView(APIView):
    """
    GET /api/clients/top?limit=10
    """
    permission_classes = [HasGrant]

    @extend_schema(tags=['Clients'], summary='Top clients by operations',
                   parameters=[OpenApiParameter('limit', int)], responses={200: dict})
    @requires_permission('clients', 'read')
    def get(self, request):
        limit = query_int(request, 'limit', default=10, minimum=1)
        return Response(ClientService.top_clients(request.caller, limit=limit))


class ClientsByIndustryView(APIView):
    """
    GET /api/clients/by-industry
    """
    permission_classes = [HasGrant]

    @extend_schema(tags=['Clients'], summary='Clients grouped by industry', responses={200: dict})
    @requires_permission('clients', 'read')
    def get(self, request):
        return Response(ClientService.clients_by_industry(request.caller))


# ===== PROVIDERS =====

class ProviderListView(APIView):
    """
    GET /api/providers - List providers
    POST /api/providers - Create a provider
    """
    permission_classes = [HasGrant]
    pagination_class = StandardResultsSetPagination

    @extend_schema(
        tags=['Providers'],
        summary='List providers',
        parameters=LIST_PARAMETERS + [OpenApiParameter('business_type', str)],
        responses={200: ProviderSerializer(many=True)},
    )
    @requires_permission('providers', 'read')
    def get(self, request):
        queryset = ProviderService.list(
            request.caller,
            search=request.query_params.get('search'),
            status=query_bool(request, 'status'),
            city=request.query_params.get('city'),
            region=request.query_params.get('region'),
            business_type=request.query_params.get('business_type'),
        )
        return paginate(self, request, queryset, ProviderSerializer)

    @extend_schema(tags=['Providers'], summary='Create provider',
                   request=ProviderInputSerializer, responses={201: ProviderSerializer})
    @requires_permission('providers', 'create')
    def post(self, request):
        serializer = ProviderInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        provider = ProviderService.create(request.caller, serializer.validated_data)
        return Response(ProviderSerializer(provider).data, status=status.HTTP_201_CREATED)


class ProviderDetailView(APIView):
    """
    GET/PUT/PATCH/DELETE /api/providers/{id}

    DELETE deactivates the provider.
    """
    permission_classes = [HasGrant]

    @extend_schema(tags=['Providers'], summary='Get provider', responses={200: ProviderSerializer})
    @requires_permission('providers', 'read')
    def get(self, request, provider_id):
        return Response(ProviderSerializer(ProviderService.get(request.caller, provider_id)).data)

    @extend_schema(tags=['Providers'], summary='Update provider',
                   request=ProviderInputSerializer, responses={200: ProviderSerializer})
    @requires_permission('providers', 'update')
    def patch(self, request, provider_id):
        provider = ProviderService.get(request.caller, provider_id)
        serializer = ProviderInputSerializer(provider, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        provider = ProviderService.update(request.caller, provider_id, serializer.validated_data)
        return Response(ProviderSerializer(provider).data)

    put = patch

    @extend_schema(tags=['Providers'], summary='Deactivate provider', responses={200: ProviderSerializer})
    @requires_permission('providers', 'delete')
    def delete(self, request, provider_id):
        provider = ProviderService.delete(request.caller, provider_id)
        return Response(ProviderSerializer(provider).data)


class ProviderPermanentDeleteView(APIView):
    """
    DELETE /api/providers/{id}/permanent
    """
    permission_classes = [HasGrant]

    @extend_schema(tags=['Providers'], summary='Permanently delete provider', responses={204: None})
    @requires_permission('providers', 'delete')
    def delete(self, request, provider_id):
        ProviderService.permanent_delete(request.caller, provider_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class ProviderStatisticsView(APIView):
    """
    GET /api/providers/{id}/statistics
    """
    permission_classes = [HasGrant]

    @extend_schema(tags=['Providers'], summary='Provider statistics',
                   responses={200: ProviderStatisticsSerializer})
    @requires_permission('providers', 'read')
    def get(self, request, provider_id):
        statistics = ProviderService.get_statistics(request.caller, provider_id)
        return Response(ProviderStatisticsSerializer(statistics).data)


class ProviderOperationsView(APIView):
    """
    GET /api/providers/{id}/operations
    """
    permission_classes = [HasGrant]
    pagination_class = StandardResultsSetPagination

    @extend_schema(tags=['Providers'], summary='Provider operations',
                   responses={200: OperationSummarySerializer(many=True)})
    @requires_permission('providers', 'read')
    def get(self, request, provider_id):
        queryset = ProviderService.get_operations(request.caller, provider_id)
        return paginate(self, request, queryset, OperationSummarySerializer)
