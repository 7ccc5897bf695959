"""
Fleet REST API views: drivers, vehicles and their documents.

The ``/trucks`` routes reuse the vehicle views under their own
``trucks`` grant.
"""
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView
from drf_spectacular.utils import extend_schema, OpenApiParameter

from apps.core.pagination import StandardResultsSetPagination, paginate
from apps.core.permissions import HasGrant, requires_permission
from apps.core.views import query_bool, query_int
from apps.fleet.serializers import (
    DriverDocumentInputSerializer, DriverDocumentSerializer, DriverDocumentUpdateSerializer,
    DriverInputSerializer, DriverSerializer, ExpiringDocumentSerializer,
    VehicleDocumentCreateSerializer, VehicleDocumentInputSerializer,
    VehicleDocumentSerializer, VehicleInputSerializer, VehicleSerializer,
)
from apps.fleet.services import DriverService, VehicleService
from apps.operations.serializers import OperationSummarySerializer


# ===== DRIVERS =====

class DriverListView(APIView):
    """
    GET /api/drivers - List drivers of the caller's operator
    POST /api/drivers - Create a driver
    """
    permission_classes = [HasGrant]
    pagination_class = StandardResultsSetPagination

    @extend_schema(
        tags=['Drivers'],
        summary='List drivers',
        parameters=[
            OpenApiParameter('search', str, description='Search by RUT, name or email'),
            OpenApiParameter('status', bool),
            OpenApiParameter('is_external', bool),
            OpenApiParameter('license_type', str),
            OpenApiParameter('page', int),
            OpenApiParameter('limit', int),
        ],
        responses={200: DriverSerializer(many=True)},
    )
    @requires_permission('drivers', 'read')
    def get(self, request):
        queryset = DriverService.list_drivers(
            request.caller,
            search=request.query_params.get('search'),
            status=query_bool(request, 'status'),
            is_external=query_bool(request, 'is_external'),
            license_type=request.query_params.get('license_type'),
        )
        return paginate(self, request, queryset, DriverSerializer)

    @extend_schema(
        tags=['Drivers'],
        summary='Create driver',
        request=DriverInputSerializer,
        responses={201: DriverSerializer},
    )
    @requires_permission('drivers', 'create')
    def post(self, request):
        serializer = DriverInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        driver = DriverService.create_driver(request.caller, serializer.validated_data)
        return Response(DriverSerializer(driver).data, status=status.HTTP_201_CREATED)


class DriverDetailView(APIView):
    """
    GET/PUT/PATCH/DELETE /api/drivers/{id}
    """
    permission_classes = [HasGrant]

    @extend_schema(tags=['Drivers'], summary='Get driver', responses={200: DriverSerializer})
    @requires_permission('drivers', 'read')
    def get(self, request, driver_id):
        driver = DriverService.get_driver(request.caller, driver_id)
        return Response(DriverSerializer(driver).data)

    @extend_schema(
        tags=['Drivers'],
        summary='Update driver',
        request=DriverInputSerializer,
        responses={200: DriverSerializer},
    )
    @requires_permission('drivers', 'update')
    def patch(self, request, driver_id):
        driver = DriverService.get_driver(request.caller, driver_id)
        serializer = DriverInputSerializer(driver, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        driver = DriverService.update_driver(request.caller, driver_id, serializer.validated_data)
        return Response(DriverSerializer(driver).data)

    put = patch

    @extend_schema(tags=['Drivers'], summary='Delete driver', responses={204: None})
    @requires_permission('drivers', 'delete')
    def delete(self, request, driver_id):
        DriverService.delete_driver(request.caller, driver_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class DriverDocumentListView(APIView):
    """
    GET /api/drivers/{id}/documents - List the documents of a driver
    POST /api/drivers/{id}/documents - Attach a document to a driver
    """
    permission_classes = [HasGrant]

    @extend_schema(tags=['Drivers'], summary='List driver documents',
                   responses={200: DriverDocumentSerializer(many=True)})
    @requires_permission('drivers', 'read')
    def get(self, request, driver_id):
        documents = DriverService.list_documents(request.caller, driver_id)
        return Response(DriverDocumentSerializer(documents, many=True).data)

    @extend_schema(
        tags=['Drivers'],
        summary='Add driver document',
        request=DriverDocumentInputSerializer,
        responses={201: DriverDocumentSerializer},
    )
    @requires_permission('drivers', 'update')
    def post(self, request, driver_id):
        serializer = DriverDocumentInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        document = DriverService.add_document(request.caller, driver_id, serializer.validated_data)
        return Response(DriverDocumentSerializer(document).data, status=status.HTTP_201_CREATED)


class DriverDocumentDetailView(APIView):
    """
    GET/PUT/PATCH/DELETE /api/drivers/documents/{id}
    """
    permission_classes = [HasGrant]

    @extend_schema(tags=['Drivers'], summary='Get driver document', responses={200: DriverDocumentSerializer})
    @requires_permission('drivers', 'read')
    def get(self, request, document_id):
        document = DriverService.get_document(request.caller, document_id)
        return Response(DriverDocumentSerializer(document).data)

    @extend_schema(
        tags=['Drivers'],
        summary='Update driver document',
        request=DriverDocumentUpdateSerializer,
        responses={200: DriverDocumentSerializer},
    )
    @requires_permission('drivers', 'update')
    def patch(self, request, document_id):
        document = DriverService.get_document(request.caller, document_id)
        serializer = DriverDocumentUpdateSerializer(document, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        document = DriverService.update_document(request.caller, document_id, serializer.validated_data)
        return Response(DriverDocumentSerializer(document).data)

    put = patch

    @extend_schema(tags=['Drivers'], summary='Remove driver document', responses={204: None})
    @requires_permission('drivers', 'delete')
    def delete(self, request, document_id):
        DriverService.remove_document(request.caller, document_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


# ===== VEHICLES =====

class VehicleListView(APIView):
    """
    GET /api/vehicles - List vehicles with their current driver
    POST /api/vehicles - Create a vehicle
    """
    permission_classes = [HasGrant]
    pagination_class = StandardResultsSetPagination

    @extend_schema(
        tags=['Vehicles'],
        summary='List vehicles',
        parameters=[
            OpenApiParameter('search', str, description='Search by plate, brand or model'),
            OpenApiParameter('vehicle_type', str),
            OpenApiParameter('status', bool),
            OpenApiParameter('page', int),
            OpenApiParameter('limit', int),
        ],
        responses={200: VehicleSerializer(many=True)},
    )
    @requires_permission('vehicles', 'read')
    def get(self, request):
        queryset = VehicleService.list_vehicles(
            request.caller,
            search=request.query_params.get('search'),
            vehicle_type=request.query_params.get('vehicle_type'),
            status=query_bool(request, 'status'),
        )
        return paginate(self, request, queryset, VehicleSerializer)

    @extend_schema(
        tags=['Vehicles'],
        summary='Create vehicle',
        request=VehicleInputSerializer,
        responses={201: VehicleSerializer},
    )
    @requires_permission('vehicles', 'create')
    def post(self, request):
        serializer = VehicleInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        vehicle = VehicleService.create_vehicle(request.caller, serializer.validated_data)
        return Response(VehicleSerializer(vehicle).data, status=status.HTTP_201_CREATED)


class VehicleDetailView(APIView):
    """
    GET/PUT/PATCH/DELETE /api/vehicles/{id}

    GET includes documents, operation counters and the operational status.
    """
    permission_classes = [HasGrant]

    @extend_schema(tags=['Vehicles'], summary='Get vehicle', responses={200: VehicleSerializer})
    @requires_permission('vehicles', 'read')
    def get(self, request, vehicle_id):
        vehicle = VehicleService.get_vehicle(request.caller, vehicle_id)
        return Response(VehicleSerializer(vehicle, context={'include_details': True}).data)

    @extend_schema(
        tags=['Vehicles'],
        summary='Update vehicle',
        request=VehicleInputSerializer,
        responses={200: VehicleSerializer},
    )
    @requires_permission('vehicles', 'update')
    def patch(self, request, vehicle_id):
        vehicle = VehicleService.get_vehicle(request.caller, vehicle_id)
        serializer = VehicleInputSerializer(vehicle, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        vehicle = VehicleService.update_vehicle(request.caller, vehicle_id, serializer.validated_data)
        return Response(VehicleSerializer(vehicle).data)

    put = patch

    @extend_schema(tags=['Vehicles'], summary='Delete vehicle', responses={204: None})
    @requires_permission('vehicles', 'delete')
    def delete(self, request, vehicle_id):
        VehicleService.delete_vehicle(request.caller, vehicle_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class VehicleDocumentListView(APIView):
    """
    GET /api/vehicles/{id}/documents - List the documents of a vehicle
    POST /api/vehicles/{id}/documents - Attach a document to a vehicle
    """
    permission_classes = [HasGrant]

    @extend_schema(tags=['Vehicles'], summary='List vehicle documents',
                   responses={200: VehicleDocumentSerializer(many=True)})
    @requires_permission('vehicles', 'read')
    def get(self, request, vehicle_id):
        documents = VehicleService.list_documents(request.caller, vehicle_id)
        return Response(VehicleDocumentSerializer(documents, many=True).data)

    @extend_schema(
        tags=['Vehicles'],
        summary='Add vehicle document',
        request=VehicleDocumentInputSerializer,
        responses={201: VehicleDocumentSerializer},
    )
    @requires_permission('vehicles', 'update')
    def post(self, request, vehicle_id):
        serializer = VehicleDocumentInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        document = VehicleService.add_document(request.caller, vehicle_id, serializer.validated_data)
        return Response(VehicleDocumentSerializer(document).data, status=status.HTTP_201_CREATED)


class VehicleDocumentCreateView(APIView):
    """
    POST /api/vehicles/documents - Attach a document, vehicle given in the body
    """
    permission_classes = [HasGrant]

    @extend_schema(
        tags=['Vehicles'],
        summary='Add vehicle document',
        request=VehicleDocumentCreateSerializer,
        responses={201: VehicleDocumentSerializer},
    )
    @requires_permission('vehicles', 'update')
    def post(self, request):
        serializer = VehicleDocumentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        vehicle_id = data.pop('vehicle_id')
        document = VehicleService.add_document(request.caller, vehicle_id, data)
        return Response(VehicleDocumentSerializer(document).data, status=status.HTTP_201_CREATED)


class VehicleDocumentDetailView(APIView):
    """
    PUT/PATCH/DELETE /api/vehicles/documents/{id}
    """
    permission_classes = [HasGrant]

    @extend_schema(
        tags=['Vehicles'],
        summary='Update vehicle document',
        request=VehicleDocumentInputSerializer,
        responses={200: VehicleDocumentSerializer},
    )
    @requires_permission('vehicles', 'update')
    def patch(self, request, document_id):
        document = VehicleService.get_document(request.caller, document_id)
        serializer = VehicleDocumentInputSerializer(document, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        document = VehicleService.update_document(request.caller, document_id, serializer.validated_data)
        return Response(VehicleDocumentSerializer(document).data)

    put = patch

    @extend_schema(tags=['Vehicles'], summary='Remove vehicle document', responses={204: None})
    @requires_permission('vehicles', 'update')
    def delete(self, request, document_id):
        VehicleService.remove_document(request.caller, document_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class ExpiringDocumentListView(APIView):
    """
    GET /api/vehicles/documents/expiring?days=30
    """
    permission_classes = [HasGrant]

    @extend_schema(
        tags=['Vehicles'],
        summary='Documents expiring soon',
        parameters=[OpenApiParameter('days', int, description='Window in days (default 30)')],
        responses={200: ExpiringDocumentSerializer(many=True)},
    )
    @requires_permission('vehicles', 'read')
    def get(self, request):
        days = query_int(request, 'days', default=30, minimum=1)
        documents = VehicleService.expiring_documents(request.caller, days=days)
        return Response(ExpiringDocumentSerializer(documents, many=True).data)


class VehicleOperationalStatusView(APIView):
    """
    GET /api/vehicles/{id}/operational-status
    """
    permission_classes = [HasGrant]

    @extend_schema(tags=['Vehicles'], summary='Vehicle operational status', responses={200: dict})
    @requires_permission('vehicles', 'read')
    def get(self, request, vehicle_id):
        return Response(VehicleService.get_operational_status(request.caller, vehicle_id))


class VehicleOperationHistoryView(APIView):
    """
    GET /api/vehicles/{id}/operations/history?limit=10
    """
    permission_classes = [HasGrant]

    @extend_schema(
        tags=['Vehicles'],
        summary='Vehicle operation history',
        parameters=[OpenApiParameter('limit', int)],
        responses={200: OperationSummarySerializer(many=True)},
    )
    @requires_permission('vehicles', 'read')
    def get(self, request, vehicle_id):
        limit = query_int(request, 'limit', default=10, minimum=1)
        operations = VehicleService.get_operation_history(request.caller, vehicle_id, limit=limit)
        return Response(OperationSummarySerializer(operations, many=True).data)


class VehicleUpcomingOperationsView(APIView):
    """
    GET /api/vehicles/{id}/operations/upcoming
    """
    permission_classes = [HasGrant]

    @extend_schema(
        tags=['Vehicles'],
        summary='Upcoming vehicle operations',
        responses={200: OperationSummarySerializer(many=True)},
    )
    @requires_permission('vehicles', 'read')
    def get(self, request, vehicle_id):
        operations = VehicleService.get_upcoming_operations(request.caller, vehicle_id)
        return Response(OperationSummarySerializer(operations, many=True).data)


# ===== TRUCKS (legacy alias) =====

class TruckListView(VehicleListView):
    permission_resource = 'trucks'


class TruckDetailView(VehicleDetailView):
    permission_resource = 'trucks'


class TruckDocumentListView(VehicleDocumentListView):
    permission_resource = 'trucks'


class TruckDocumentCreateView(VehicleDocumentCreateView):
    permission_resource = 'trucks'


class TruckDocumentDetailView(VehicleDocumentDetailView):
    permission_resource = 'trucks'


class TruckExpiringDocumentListView(ExpiringDocumentListView):
    permission_resource = 'trucks'


class TruckOperationalStatusView(VehicleOperationalStatusView):
    permission_resource = 'trucks'


class TruckOperationHistoryView(VehicleOperationHistoryView):
    permission_resource = 'trucks'


class TruckUpcomingOperationsView(VehicleUpcomingOperationsView):
    permission_resource = 'trucks'
