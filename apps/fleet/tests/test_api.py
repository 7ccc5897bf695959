"""
Tests for the fleet endpoints, including the /api/trucks alias.
"""
from datetime import date, timedelta

import pytest
from django.utils import timezone
from rest_framework import status

from apps.fleet.models import DriverDocument, Vehicle, VehicleDocument


@pytest.mark.django_db
class TestDriverEndpoints:

    def test_create_driver(self, auth_client, admin_user, operator):
        response = auth_client(admin_user).post('/api/drivers', {
            'rut': ' 15444333-2 ',
            'first_name': 'Ana',
            'last_name': 'Rojas',
            'license_type': 'A4',
            'license_number': 'L-99',
            'license_expiration_date': '2030-01-31',
        }, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['rut'] == '15444333-2'
        assert response.data['operator_id'] == str(operator.id)

    def test_external_driver_needs_company(self, auth_client, admin_user):
        response = auth_client(admin_user).post('/api/drivers', {
            'rut': '15444333-2',
            'first_name': 'Ana',
            'last_name': 'Rojas',
            'license_type': 'A4',
            'license_number': 'L-99',
            'license_expiration_date': '2030-01-31',
            'is_external': True,
        }, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error']['code'] == 'VALIDATION_ERROR'

    def test_duplicate_rut_conflict(self, auth_client, admin_user, driver):
        response = auth_client(admin_user).post('/api/drivers', {
            'rut': driver.rut,
            'first_name': 'Otro',
            'last_name': 'Conductor',
            'license_type': 'A4',
            'license_number': 'L-100',
            'license_expiration_date': '2030-01-31',
        }, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_list_is_scoped(self, auth_client, admin_user, driver, other_operator, make_driver):
        make_driver(other_operator, '99999999-9')

        response = auth_client(admin_user).get('/api/drivers')

        assert response.status_code == status.HTTP_200_OK
        assert [item['rut'] for item in response.data['data']] == [driver.rut]
        assert response.data['pagination']['total'] == 1

    def test_delete_with_operations_rejected(self, auth_client, admin_user, operator, driver, vehicle,
                                             make_operation):
        make_operation(operator, driver, vehicle)

        response = auth_client(admin_user).delete(f'/api/drivers/{driver.id}')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error']['message'] == 'Cannot delete driver with active or scheduled operations'

    def test_read_only_role_cannot_delete(self, auth_client, operator, driver, make_role, make_user):
        user = make_user(operator, make_role(operator, 'Viewer', ['drivers.read']))
        response = auth_client(user).delete(f'/api/drivers/{driver.id}')
        assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.django_db
class TestDriverDocumentEndpoints:

    def test_add_list_and_get(self, auth_client, admin_user, driver):
        client = auth_client(admin_user)

        created = client.post(f'/api/drivers/{driver.id}/documents', {
            'document_type': 'license',
            'document_name': 'Licencia clase A5',
            'file_name': 'licencia.pdf',
            'file_path': '/docs/licencia.pdf',
            'issue_date': '2024-03-01',
            'expiration_date': (timezone.localdate() - timedelta(days=1)).isoformat(),
        }, format='json')
        listed = client.get(f'/api/drivers/{driver.id}/documents')
        fetched = client.get(f"/api/drivers/documents/{created.data['id']}")

        assert created.status_code == status.HTTP_201_CREATED
        assert created.data['driver_id'] == str(driver.id)
        assert created.data['is_expired'] is True
        assert [item['id'] for item in listed.data] == [created.data['id']]
        assert fetched.data['document_name'] == 'Licencia clase A5'

    def test_unknown_document_type(self, auth_client, admin_user, driver):
        response = auth_client(admin_user).post(f'/api/drivers/{driver.id}/documents', {
            'document_type': 'passport', 'document_name': 'Pasaporte'
        }, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_update_keeps_type(self, auth_client, admin_user, driver):
        document = DriverDocument.objects.create(driver=driver, document_type='medical', document_name='Examen')

        response = auth_client(admin_user).put(f'/api/drivers/documents/{document.id}', {
            'document_name': 'Examen ocupacional', 'document_type': 'other', 'notes': 'Vigente'
        }, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['document_name'] == 'Examen ocupacional'
        assert response.data['document_type'] == 'medical'
        assert response.data['notes'] == 'Vigente'

    def test_expiration_before_issue(self, auth_client, admin_user, driver):
        document = DriverDocument.objects.create(
            driver=driver, document_type='certificate', document_name='Curso', issue_date=date(2024, 5, 1)
        )
        response = auth_client(admin_user).patch(
            f'/api/drivers/documents/{document.id}', {'expiration_date': '2024-01-01'}, format='json'
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_delete_requires_delete_grant(self, auth_client, operator, driver, make_role, make_user):
        document = DriverDocument.objects.create(driver=driver, document_type='training', document_name='Curso')
        editor = make_user(operator, make_role(operator, 'Editor', ['drivers.read', 'drivers.update']))

        response = auth_client(editor).delete(f'/api/drivers/documents/{document.id}')

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert DriverDocument.objects.filter(id=document.id).exists()

    def test_delete(self, auth_client, admin_user, driver):
        document = DriverDocument.objects.create(driver=driver, document_type='training', document_name='Curso')

        response = auth_client(admin_user).delete(f'/api/drivers/documents/{document.id}')

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not DriverDocument.objects.filter(id=document.id).exists()

    def test_foreign_document_not_found(self, auth_client, admin_user, other_operator, make_driver):
        foreign = DriverDocument.objects.create(
            driver=make_driver(other_operator), document_type='license', document_name='Licencia'
        )

        response = auth_client(admin_user).get(f'/api/drivers/documents/{foreign.id}')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['error']['message'] == f'Driver document with ID {foreign.id} not found'


@pytest.mark.django_db
class TestVehicleEndpoints:

    def test_plate_is_normalized(self, auth_client, admin_user):
        response = auth_client(admin_user).post('/api/vehicles', {
            'plate_number': ' bcdf34 ', 'vehicle_type': 'truck', 'brand': 'Scania'
        }, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['plate_number'] == 'BCDF34'
        assert response.data['current_driver'] is None

    def test_year_out_of_range(self, auth_client, admin_user):
        response = auth_client(admin_user).post('/api/vehicles', {
            'plate_number': 'BCDF34', 'vehicle_type': 'truck', 'year': 1850
        }, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_detail_includes_operational_data(self, auth_client, admin_user, operator, driver, vehicle,
                                              make_operation):
        make_operation(operator, driver, vehicle)
        VehicleDocument.objects.create(
            vehicle=vehicle, document_type='insurance', document_name='SOAP',
            expiration_date=timezone.localdate() + timedelta(days=100)
        )

        response = auth_client(admin_user).get(f'/api/vehicles/{vehicle.id}')

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data['documents']) == 1
        assert response.data['total_operations'] == 1
        assert response.data['upcoming_operations'] == 1
        assert response.data['last_operation_date'] is not None
        assert response.data['operational_status'] == Vehicle.STATUS_ACTIVE

    def test_operational_status_endpoint(self, auth_client, admin_user, vehicle):
        vehicle.status = False
        vehicle.save()

        response = auth_client(admin_user).get(f'/api/vehicles/{vehicle.id}/operational-status')

        assert response.data == {
            'vehicle_id': str(vehicle.id),
            'operational_status': Vehicle.STATUS_OUT_OF_SERVICE,
        }

    def test_add_and_list_documents(self, auth_client, admin_user, vehicle):
        client = auth_client(admin_user)

        created = client.post(f'/api/vehicles/{vehicle.id}/documents', {
            'document_type': 'technical_review',
            'document_name': 'Revisión técnica 2025',
            'expiration_date': (timezone.localdate() + timedelta(days=10)).isoformat(),
        }, format='json')
        expiring = client.get('/api/vehicles/documents/expiring', {'days': 30})

        assert created.status_code == status.HTTP_201_CREATED
        assert created.data['is_expired'] is False
        assert [item['id'] for item in expiring.data] == [created.data['id']]

    def test_foreign_vehicle_not_found(self, auth_client, admin_user, other_operator, make_vehicle):
        foreign = make_vehicle(other_operator, 'ZZZZ99')
        response = auth_client(admin_user).get(f'/api/vehicles/{foreign.id}')
        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.django_db
class TestTruckAlias:
    """The /api/trucks routes serve vehicles under the trucks grant."""

    def test_admin_reads_trucks(self, auth_client, admin_user, vehicle):
        response = auth_client(admin_user).get('/api/trucks')

        assert response.status_code == status.HTTP_200_OK
        assert [item['plate_number'] for item in response.data['data']] == [vehicle.plate_number]

    def test_vehicles_grant_is_not_enough(self, auth_client, operator, vehicle, make_role, make_user):
        user = make_user(operator, make_role(operator, 'Yard', ['vehicles.read']))
        client = auth_client(user)

        assert client.get('/api/vehicles').status_code == status.HTTP_200_OK
        assert client.get('/api/trucks').status_code == status.HTTP_403_FORBIDDEN
        assert client.get(f'/api/trucks/{vehicle.id}').status_code == status.HTTP_403_FORBIDDEN

    def test_trucks_grant_allows_alias_only(self, auth_client, operator, vehicle, make_role, make_user):
        user = make_user(operator, make_role(operator, 'Yard', ['trucks.read']))
        client = auth_client(user)

        assert client.get(f'/api/trucks/{vehicle.id}').status_code == status.HTTP_200_OK
        assert client.get('/api/vehicles').status_code == status.HTTP_403_FORBIDDEN
