"""
Tests for the operation, assignment, batch upload and report endpoints.
"""
from datetime import timedelta

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from django.utils import timezone
from rest_framework import status

from apps.fleet.models import DriverVehicle
from apps.operations.models import Operation
from apps.operations.tests.workbooks import cells, workbook_bytes
from apps.operations.views import XLSX_CONTENT_TYPE


def xlsx_upload(content, name='operaciones.xlsx', content_type=XLSX_CONTENT_TYPE):
    return SimpleUploadedFile(name, content, content_type=content_type)


@pytest.mark.django_db
class TestOperationEndpoints:

    def test_create(self, auth_client, admin_user, driver, vehicle):
        response = auth_client(admin_user).post('/api/operations', {
            'driver_id': str(driver.id),
            'vehicle_id': str(vehicle.id),
            'operation_number': 'OP-900',
            'operation_type': 'transfer',
            'origin': 'Santiago',
            'destination': 'Concepción',
            'scheduled_start_date': (timezone.now() + timedelta(days=3)).isoformat(),
        }, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['driver']['rut'] == driver.rut
        assert response.data['vehicle']['plate_number'] == vehicle.plate_number
        assert response.data['client'] is None
        assert DriverVehicle.objects.filter(driver=driver, vehicle=vehicle, is_active=True).exists()

    def test_create_end_before_start(self, auth_client, admin_user, driver, vehicle):
        start = timezone.now() + timedelta(days=3)
        response = auth_client(admin_user).post('/api/operations', {
            'driver_id': str(driver.id),
            'vehicle_id': str(vehicle.id),
            'operation_number': 'OP-900',
            'operation_type': 'transfer',
            'origin': 'Santiago',
            'destination': 'Concepción',
            'scheduled_start_date': start.isoformat(),
            'scheduled_end_date': (start - timedelta(hours=1)).isoformat(),
        }, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert not Operation.objects.exists()

    def test_list_filtered_by_status(self, auth_client, admin_user, operator, driver, vehicle, make_operation):
        make_operation(operator, driver, vehicle, 'OP-1', status='completed')
        make_operation(operator, driver, vehicle, 'OP-2')

        response = auth_client(admin_user).get('/api/operations', {'status': 'completed'})

        assert response.status_code == status.HTTP_200_OK
        assert [item['operation_number'] for item in response.data['data']] == ['OP-1']

    def test_invalid_date_filter(self, auth_client, admin_user):
        response = auth_client(admin_user).get('/api/operations', {'start_date': 'ayer'})
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_patch(self, auth_client, admin_user, operator, driver, vehicle, make_operation):
        operation = make_operation(operator, driver, vehicle)

        response = auth_client(admin_user).patch(
            f'/api/operations/{operation.id}', {'status': 'in-progress'}, format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == 'in-progress'

    def test_delete_in_progress(self, auth_client, admin_user, operator, driver, vehicle, make_operation):
        operation = make_operation(operator, driver, vehicle, status='in-progress')

        response = auth_client(admin_user).delete(f'/api/operations/{operation.id}')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error']['message'] == 'Cannot delete operation in progress'

    def test_foreign_operation_not_found(self, auth_client, admin_user, other_operator, make_driver,
                                         make_vehicle, make_operation):
        foreign = make_operation(other_operator, make_driver(other_operator), make_vehicle(other_operator))
        response = auth_client(admin_user).get(f'/api/operations/{foreign.id}')
        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.django_db
class TestAssignmentEndpoints:

    def test_assign_and_unassign(self, auth_client, admin_user, driver, vehicle):
        client = auth_client(admin_user)

        created = client.post('/api/operations/assignments', {
            'driver_id': str(driver.id), 'vehicle_id': str(vehicle.id)
        }, format='json')
        active = client.get(f'/api/operations/assignments/driver/{driver.id}/active')
        closed = client.put(f"/api/operations/assignments/{created.data['id']}/unassign", {}, format='json')
        after = client.get(f'/api/operations/assignments/driver/{driver.id}/active')

        assert created.status_code == status.HTTP_201_CREATED
        assert active.data['vehicle']['plate_number'] == vehicle.plate_number
        assert closed.data['is_active'] is False
        assert after.data is None

    def test_unassign_twice(self, auth_client, admin_user, driver, vehicle):
        client = auth_client(admin_user)
        created = client.post('/api/operations/assignments', {
            'driver_id': str(driver.id), 'vehicle_id': str(vehicle.id)
        }, format='json')
        client.put(f"/api/operations/assignments/{created.data['id']}/unassign", {}, format='json')

        response = client.put(f"/api/operations/assignments/{created.data['id']}/unassign", {}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error']['message'] == 'Assignment is already inactive'

    def test_driver_history_and_statistics(self, auth_client, admin_user, operator, driver, vehicle,
                                           make_operation):
        make_operation(operator, driver, vehicle, 'OP-1', status='completed', distance=50)
        client = auth_client(admin_user)

        history = client.get(f'/api/operations/driver/{driver.id}/history')
        stats = client.get(f'/api/operations/driver/{driver.id}/statistics')

        assert history.data['pagination']['total'] == 1
        assert stats.data['completed_operations'] == 1
        assert stats.data['total_distance'] == 50


@pytest.mark.django_db
class TestBatchUploadEndpoints:

    def test_json_rows(self, auth_client, admin_user, driver, vehicle):
        response = auth_client(admin_user).post('/api/operations/batch-upload', {
            'operations': [
                {
                    'operationNumber': 'OP-1',
                    'scheduledStartDate': '2030-01-15 08:00',
                    'driverRut': driver.rut,
                    'vehiclePlateNumber': vehicle.plate_number,
                    'operationType': 'delivery',
                    'origin': 'Santiago',
                    'destination': 'Valparaíso',
                    'clientName': '',
                },
                {
                    'operationNumber': 'OP-2',
                    'scheduledStartDate': '2030-01-16T08:00:00',
                    'driverRut': driver.rut,
                    'vehiclePlateNumber': 'NOEXISTE',
                    'operationType': 'delivery',
                    'origin': 'Santiago',
                    'destination': 'Valparaíso',
                },
            ]
        }, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['successCount'] == 1
        assert response.data['errorCount'] == 1
        assert response.data['errors'][0] == {
            'row': 3,
            'field': 'vehiclePlateNumber',
            'message': 'No se encontró un vehículo con patente NOEXISTE',
            'value': 'NOEXISTE',
        }

    def test_empty_batch_rejected(self, auth_client, admin_user):
        response = auth_client(admin_user).post('/api/operations/batch-upload', {'operations': []}, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_file_upload(self, auth_client, admin_user, driver, vehicle):
        content = workbook_bytes([cells(), cells(operationNumber='OP-2', distance=30)])

        response = auth_client(admin_user).post(
            '/api/operations/batch-upload/file', {'file': xlsx_upload(content)}, format='multipart'
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['success'] is True
        assert response.data['successCount'] == 2
        assert Operation.objects.get(operation_number='OP-2').distance == 30

    def test_file_with_shape_errors_imports_nothing(self, auth_client, admin_user, driver, vehicle):
        content = workbook_bytes([cells(), cells(operationNumber='OP-2', origin=None)])

        response = auth_client(admin_user).post(
            '/api/operations/batch-upload/file', {'file': xlsx_upload(content)}, format='multipart'
        )

        assert response.data['success'] is False
        assert response.data['message'] == 'El archivo contiene errores de validación'
        assert response.data['errors'][0]['row'] == 3
        assert not Operation.objects.exists()

    def test_wrong_content_type(self, auth_client, admin_user):
        response = auth_client(admin_user).post(
            '/api/operations/batch-upload/file',
            {'file': xlsx_upload(b'a,b,c', name='ops.csv', content_type='text/csv')},
            format='multipart',
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error']['message'] == 'El archivo debe ser un archivo Excel (.xlsx)'

    def test_missing_file(self, auth_client, admin_user):
        response = auth_client(admin_user).post('/api/operations/batch-upload/file', {}, format='multipart')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error']['message'] == 'No se proporcionó ningún archivo'

    def test_oversized_file(self, auth_client, admin_user, settings):
        settings.BATCH_UPLOAD_MAX_BYTES = 10
        response = auth_client(admin_user).post(
            '/api/operations/batch-upload/file', {'file': xlsx_upload(workbook_bytes([cells()]))},
            format='multipart',
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_parse_is_dry_run(self, auth_client, admin_user, driver, vehicle):
        content = workbook_bytes([cells(), cells(operationNumber='OP-2', distance='mucho')])

        response = auth_client(admin_user).post(
            '/api/operations/batch-upload/parse', {'file': xlsx_upload(content)}, format='multipart'
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['success'] is False
        assert response.data['totalRows'] == 2
        assert response.data['validRows'] == 1
        assert not Operation.objects.exists()

    def test_parse_counts_rows_not_errors(self, auth_client, admin_user):
        content = workbook_bytes([
            cells(origin=None, destination=None, distance='lejos'),
            cells(operationNumber='OP-2'),
        ])

        response = auth_client(admin_user).post(
            '/api/operations/batch-upload/parse', {'file': xlsx_upload(content)}, format='multipart'
        )

        assert len(response.data['errors']) == 3
        assert response.data['totalRows'] == 2
        assert response.data['validRows'] == 1

    def test_template_download(self, auth_client, admin_user):
        response = auth_client(admin_user).get('/api/operations/batch-upload/template')

        assert response.status_code == status.HTTP_200_OK
        assert response['Content-Type'] == XLSX_CONTENT_TYPE
        assert 'plantilla-operaciones-' in response['Content-Disposition']
        assert response.content[:2] == b'PK'

    def test_upload_requires_create_grant(self, auth_client, operator, make_role, make_user):
        user = make_user(operator, make_role(operator, 'Viewer', ['operations.read']))
        response = auth_client(user).post('/api/operations/batch-upload', {'operations': []}, format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.django_db
class TestReportEndpoints:

    def test_pdf_report(self, auth_client, admin_user, operator, driver, vehicle, make_operation):
        operation = make_operation(operator, driver, vehicle, notes='Carga <frágil> & pesada')

        response = auth_client(admin_user).get(f'/api/operations/{operation.id}/report')

        assert response.status_code == status.HTTP_200_OK
        assert response['Content-Type'] == 'application/pdf'
        assert response.content.startswith(b'%PDF')
        assert 'operacion-OP-100.pdf' in response['Content-Disposition']

    def test_generate_report_in_english(self, auth_client, admin_user, operator, driver, vehicle,
                                        make_operation):
        operation = make_operation(operator, driver, vehicle)

        response = auth_client(admin_user).post(
            f'/api/operations/{operation.id}/generate-report', {'language': 'en'}, format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.content.startswith(b'%PDF')

    def test_unsupported_language(self, auth_client, admin_user, operator, driver, vehicle, make_operation):
        operation = make_operation(operator, driver, vehicle)
        response = auth_client(admin_user).get(f'/api/operations/{operation.id}/report', {'language': 'fr'})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
