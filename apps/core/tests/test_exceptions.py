"""
Tests for the error envelope produced by custom_exception_handler.
"""
import pytest
from unittest.mock import Mock
from django.http import Http404
from rest_framework import exceptions as drf_exceptions

from apps.core.exceptions import (
    AuthenticationError, ConflictError, NotFoundError, PermissionDeniedError,
    ValidationError, custom_exception_handler, error_payload,
)


@pytest.fixture
def context():
    request = Mock(request_id='req-123', path='/api/vehicles', method='POST')
    return {'request': request, 'view': None}


class TestCustomExceptionHandler:

    @pytest.mark.parametrize('exc, status_code, code', [
        (NotFoundError('Vehicle not found'), 404, 'NOT_FOUND'),
        (ConflictError('Plate taken'), 409, 'CONFLICT'),
        (ValidationError('Bad input'), 400, 'VALIDATION_ERROR'),
        (PermissionDeniedError('Nope'), 403, 'FORBIDDEN'),
        (AuthenticationError('Who?'), 401, 'UNAUTHORIZED'),
    ])
    def test_domain_exceptions(self, context, exc, status_code, code):
        """Each domain exception maps to its status and code."""
        response = custom_exception_handler(exc, context)

        assert response.status_code == status_code
        assert response.data['error']['code'] == code
        assert response.data['error']['message'] == exc.message
        assert response.data['request_id'] == 'req-123'

    def test_details_are_kept(self, context):
        exc = ValidationError('Invalid permission format', details={'permission': 'bad'})
        response = custom_exception_handler(exc, context)
        assert response.data['error']['details'] == {'permission': 'bad'}

    def test_drf_validation_error(self, context):
        """Serializer errors land in details."""
        exc = drf_exceptions.ValidationError({'plate_number': ['This field is required.']})
        response = custom_exception_handler(exc, context)

        assert response.status_code == 400
        assert response.data['error']['code'] == 'VALIDATION_ERROR'
        assert response.data['error']['details'] == {'plate_number': ['This field is required.']}

    def test_http404(self, context):
        response = custom_exception_handler(Http404('gone'), context)
        assert response.status_code == 404
        assert response.data['error']['code'] == 'NOT_FOUND'

    def test_drf_permission_denied(self, context):
        response = custom_exception_handler(drf_exceptions.PermissionDenied(), context)
        assert response.status_code == 403
        assert response.data['error']['code'] == 'FORBIDDEN'

    def test_unknown_exception_is_generic_500(self, context):
        """Unhandled exceptions never leak their message."""
        response = custom_exception_handler(RuntimeError('db password is hunter2'), context)

        assert response.status_code == 500
        assert response.data['error']['code'] == 'INTERNAL_ERROR'
        assert 'hunter2' not in str(response.data)


def test_error_payload_without_request_id():
    payload = error_payload('CONFLICT', 'Duplicate')
    assert payload == {'error': {'code': 'CONFLICT', 'message': 'Duplicate', 'details': {}}}
