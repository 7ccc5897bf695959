"""
Operation REST API views: CRUD, driver-vehicle assignments, driver
history, batch upload and PDF reports.
"""
import logging

from django.conf import settings
from django.http import HttpResponse
from django.utils import timezone
from rest_framework import status
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.views import APIView
from drf_spectacular.utils import extend_schema, OpenApiParameter

from apps.core.exceptions import ValidationError
from apps.core.pagination import StandardResultsSetPagination, paginate
from apps.core.permissions import HasGrant, requires_permission
from apps.core.views import query_date
from apps.fleet.serializers import AssignDriverSerializer, DriverVehicleSerializer, UnassignDriverSerializer
from apps.fleet.services import AssignmentService, DriverService
from apps.operations import excel
from apps.operations.batch import BatchImportService
from apps.operations.reports import build_operation_report
from apps.operations.serializers import (
    BatchFileUploadSerializer, BatchResultSerializer, BatchUploadSerializer,
    OperationInputSerializer, OperationSerializer, OperationSummarySerializer,
    ParseResultSerializer,
)
from apps.operations.services import OperationService

logger = logging.getLogger(__name__)

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


class OperationListView(APIView):
    """
    GET /api/operations - List operations with filters
    POST /api/operations - Create an operation (assigns its driver to its vehicle)
    """
    permission_classes = [HasGrant]
    pagination_class = StandardResultsSetPagination

    @extend_schema(
        tags=['Operations'],
        summary='List operations',
        parameters=[
            OpenApiParameter('status', str),
            OpenApiParameter('driver_id', str),
            OpenApiParameter('vehicle_id', str),
            OpenApiParameter('client_id', str),
            OpenApiParameter('provider_id', str),
            OpenApiParameter('route_id', str),
            OpenApiParameter('operation_type', str),
            OpenApiParameter('start_date', str, description='YYYY-MM-DD'),
            OpenApiParameter('end_date', str, description='YYYY-MM-DD'),
            OpenApiParameter('search', str),
            OpenApiParameter('page', int),
            OpenApiParameter('limit', int),
        ],
        responses={200: OperationSerializer(many=True)},
    )
    @requires_permission('operations', 'read')
    def get(self, request):
        params = request.query_params
        queryset = OperationService.list_operations(
            request.caller,
            status=params.get('status'),
            driver_id=params.get('driver_id'),
            vehicle_id=params.get('vehicle_id'),
            client_id=params.get('client_id'),
            provider_id=params.get('provider_id'),
            route_id=params.get('route_id'),
            operation_type=params.get('operation_type'),
            start_date=query_date(request, 'start_date'),
            end_date=query_date(request, 'end_date'),
            search=params.get('search'),
        )
        return paginate(self, request, queryset, OperationSerializer)

    @extend_schema(tags=['Operations'], summary='Create operation',
                   request=OperationInputSerializer, responses={201: OperationSerializer})
    @requires_permission('operations', 'create')
    def post(self, request):
        serializer = OperationInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        operation = OperationService.create_operation(request.caller, serializer.validated_data, request=request)
        return Response(OperationSerializer(operation).data, status=status.HTTP_201_CREATED)


class OperationDetailView(APIView):
    """
    GET/PUT/PATCH/DELETE /api/operations/{id}
    """
    permission_classes = [HasGrant]

    @extend_schema(tags=['Operations'], summary='Get operation', responses={200: OperationSerializer})
    @requires_permission('operations', 'read')
    def get(self, request, operation_id):
        operation = OperationService.get_operation(request.caller, operation_id)
        return Response(OperationSerializer(operation).data)

    @extend_schema(tags=['Operations'], summary='Update operation',
                   request=OperationInputSerializer, responses={200: OperationSerializer})
    @requires_permission('operations', 'update')
    def patch(self, request, operation_id):
        serializer = OperationInputSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        operation = OperationService.update_operation(
            request.caller, operation_id, serializer.validated_data, request=request
        )
        return Response(OperationSerializer(operation).data)

    put = patch

    @extend_schema(tags=['Operations'], summary='Delete operation', responses={204: None})
    @requires_permission('operations', 'delete')
    def delete(self, request, operation_id):
        OperationService.delete_operation(request.caller, operation_id, request=request)
        return Response(status=status.HTTP_204_NO_CONTENT)


# ===== ASSIGNMENTS =====

class AssignmentCreateView(APIView):
    """
    POST /api/operations/assignments - Assign a driver to a vehicle
    """
    permission_classes = [HasGrant]

    @extend_schema(tags=['Assignments'], summary='Assign driver to vehicle',
                   request=AssignDriverSerializer, responses={201: DriverVehicleSerializer})
    @requires_permission('operations', 'create')
    def post(self, request):
        serializer = AssignDriverSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        assignment = AssignmentService.assign(
            request.caller,
            serializer.validated_data['driver_id'],
            serializer.validated_data['vehicle_id'],
            notes=serializer.validated_data.get('notes'),
        )
        return Response(DriverVehicleSerializer(assignment).data, status=status.HTTP_201_CREATED)


class AssignmentUnassignView(APIView):
    """
    PUT /api/operations/assignments/{id}/unassign
    """
    permission_classes = [HasGrant]

    @extend_schema(tags=['Assignments'], summary='Close an assignment',
                   request=UnassignDriverSerializer, responses={200: DriverVehicleSerializer})
    @requires_permission('operations', 'update')
    def put(self, request, assignment_id):
        serializer = UnassignDriverSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        assignment = AssignmentService.unassign(
            request.caller, assignment_id, notes=serializer.validated_data.get('notes')
        )
        return Response(DriverVehicleSerializer(assignment).data)

    patch = put


class DriverAssignmentListView(APIView):
    """
    GET /api/operations/assignments/driver/{driver_id}
    """
    permission_classes = [HasGrant]

    @extend_schema(tags=['Assignments'], summary='Assignments of a driver',
                   responses={200: DriverVehicleSerializer(many=True)})
    @requires_permission('operations', 'read')
    def get(self, request, driver_id):
        assignments = AssignmentService.assignments_for_driver(request.caller, driver_id)
        return Response(DriverVehicleSerializer(assignments, many=True).data)


class DriverActiveAssignmentView(APIView):
    """
    GET /api/operations/assignments/driver/{driver_id}/active

    Returns null when the driver has no active assignment.
    """
    permission_classes = [HasGrant]

    @extend_schema(tags=['Assignments'], summary='Active assignment of a driver',
                   responses={200: DriverVehicleSerializer})
    @requires_permission('operations', 'read')
    def get(self, request, driver_id):
        assignment = AssignmentService.active_assignment(request.caller, driver_id)
        if assignment is None:
            return Response(None)
        return Response(DriverVehicleSerializer(assignment).data)


class DriverOperationHistoryView(APIView):
    """
    GET /api/operations/driver/{driver_id}/history
    """
    permission_classes = [HasGrant]
    pagination_class = StandardResultsSetPagination

    @extend_schema(tags=['Operations'], summary='Operation history of a driver',
                   responses={200: OperationSummarySerializer(many=True)})
    @requires_permission('operations', 'read')
    def get(self, request, driver_id):
        queryset = DriverService.get_operation_history(request.caller, driver_id)
        return paginate(self, request, queryset, OperationSummarySerializer)


class DriverStatisticsView(APIView):
    """
    GET /api/operations/driver/{driver_id}/statistics
    """
    permission_classes = [HasGrant]

    @extend_schema(tags=['Operations'], summary='Operation statistics of a driver', responses={200: dict})
    @requires_permission('operations', 'read')
    def get(self, request, driver_id):
        return Response(DriverService.get_statistics(request.caller, driver_id))


# ===== BATCH UPLOAD =====

def _read_upload(request) -> bytes:
    """Validate the uploaded workbook and return its bytes."""
    serializer = BatchFileUploadSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    upload = serializer.validated_data.get('file')
    if upload is None:
        raise ValidationError('No se proporcionó ningún archivo')

    content_type = upload.content_type or ''
    if 'spreadsheet' not in content_type and 'excel' not in content_type:
        raise ValidationError('El archivo debe ser un archivo Excel (.xlsx)')

    max_bytes = settings.BATCH_UPLOAD_MAX_BYTES
    if upload.size > max_bytes:
        raise ValidationError(
            f'El archivo excede el tamaño máximo permitido ({max_bytes // (1024 * 1024)} MB)'
        )
    return upload.read()


class BatchUploadView(APIView):
    """
    POST /api/operations/batch-upload - Import JSON rows
    """
    permission_classes = [HasGrant]

    @extend_schema(tags=['Batch upload'], summary='Import operations from JSON rows',
                   request=BatchUploadSerializer, responses={200: BatchResultSerializer})
    @requires_permission('operations', 'create')
    def post(self, request):
        serializer = BatchUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = BatchImportService.import_rows(
            request.caller,
            serializer.validated_data['operations'],
            operator_id=serializer.validated_data.get('operatorId'),
            request=request,
        )
        return Response(result.to_dict())


class BatchUploadFileView(APIView):
    """
    POST /api/operations/batch-upload/file - Import an .xlsx workbook

    Nothing is imported when the workbook has shape errors.
    """
    permission_classes = [HasGrant]
    parser_classes = [MultiPartParser, FormParser]

    @extend_schema(tags=['Batch upload'], summary='Import operations from a workbook',
                   request=BatchFileUploadSerializer, responses={200: BatchResultSerializer})
    @requires_permission('operations', 'create')
    def post(self, request):
        content = _read_upload(request)
        parsed = excel.parse_workbook(content)

        if parsed.errors:
            return Response({
                'success': False,
                'message': 'El archivo contiene errores de validación',
                'totalRows': len(parsed.data),
                'successCount': 0,
                'errorCount': len(parsed.errors),
                'errors': [error.to_dict() for error in parsed.errors],
                'duplicates': [],
                'createdOperations': [],
            })

        result = BatchImportService.import_rows(
            request.caller,
            parsed.data,
            operator_id=request.data.get('operatorId') or None,
            request=request,
        )
        return Response(result.to_dict())


class BatchUploadParseView(APIView):
    """
    POST /api/operations/batch-upload/parse - Validate a workbook without importing
    """
    permission_classes = [HasGrant]
    parser_classes = [MultiPartParser, FormParser]

    @extend_schema(tags=['Batch upload'], summary='Dry-run parse of a workbook',
                   request=BatchFileUploadSerializer, responses={200: ParseResultSerializer})
    @requires_permission('operations', 'create')
    def post(self, request):
        parsed = excel.parse_workbook(_read_upload(request))
        rows_with_errors = {error.row for error in parsed.errors}
        return Response({
            'success': not parsed.errors,
            'totalRows': len(parsed.data),
            'validRows': sum(1 for row in parsed.data if row['row'] not in rows_with_errors),
            'errors': [error.to_dict() for error in parsed.errors],
            'data': parsed.data,
        })


class BatchUploadTemplateView(APIView):
    """
    GET /api/operations/batch-upload/template - Download the upload workbook
    """
    permission_classes = [HasGrant]

    @extend_schema(tags=['Batch upload'], summary='Download the batch upload template',
                   responses={(200, XLSX_CONTENT_TYPE): bytes})
    @requires_permission('operations', 'read')
    def get(self, request):
        content = excel.build_template()
        filename = f"plantilla-operaciones-{timezone.localdate().isoformat()}.xlsx"
        response = HttpResponse(content, content_type=XLSX_CONTENT_TYPE)
        response['Content-Disposition'] = f'attachment; filename="{filename}"'
        response['Content-Length'] = len(content)
        return response


# ===== REPORTS =====

class OperationReportView(APIView):
    """
    GET /api/operations/{id}/report?language=es - Download the PDF report
    POST /api/operations/{id}/generate-report - Same, options in the body
    """
    permission_classes = [HasGrant]
    parser_classes = [JSONParser]

    def _render(self, request, operation_id, language):
        if language not in ('es', 'en'):
            raise ValidationError("language must be 'es' or 'en'")
        operation = OperationService.get_operation(request.caller, operation_id)
        content = build_operation_report(operation, language=language)
        response = HttpResponse(content, content_type='application/pdf')
        response['Content-Disposition'] = f'attachment; filename="operacion-{operation.operation_number}.pdf"'
        response['Content-Length'] = len(content)
        return response

    @extend_schema(tags=['Operations'], summary='Operation PDF report',
                   parameters=[OpenApiParameter('language', str, enum=['es', 'en'])],
                   responses={(200, 'application/pdf'): bytes})
    @requires_permission('operations', 'read')
    def get(self, request, operation_id):
        return self._render(request, operation_id, request.query_params.get('language', 'es'))

    @extend_schema(tags=['Operations'], summary='Operation PDF report',
                   request=dict, responses={(200, 'application/pdf'): bytes})
    @requires_permission('operations', 'read')
    def post(self, request, operation_id):
        return self._render(request, operation_id, request.data.get('language', 'es'))
