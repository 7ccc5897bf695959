"""
Domain exceptions and the DRF exception handler.

Services raise the exceptions defined here; ``custom_exception_handler``
turns them into the API error envelope::

    {"error": {"code": "...", "message": "...", "details": {...}}, "request_id": "..."}
"""
import logging
from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import Http404, JsonResponse
from django_ratelimit.exceptions import Ratelimited
from rest_framework import status
from rest_framework import exceptions as drf_exceptions
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class FleetOpsException(Exception):
    """Base exception for FleetOps domain errors."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = 'ERROR'

    def __init__(self, message, details=None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(FleetOpsException):
    """Raised when a referenced entity does not exist (or is outside the caller's operator)."""
    status_code = status.HTTP_404_NOT_FOUND
    code = 'NOT_FOUND'


class ConflictError(FleetOpsException):
    """Raised on uniqueness violations and invalid state transitions."""
    status_code = status.HTTP_409_CONFLICT
    code = 'CONFLICT'


class ValidationError(FleetOpsException):
    """Raised when input or business-rule validation fails."""
    status_code = status.HTTP_400_BAD_REQUEST
    code = 'VALIDATION_ERROR'


class AuthenticationError(FleetOpsException):
    """Raised when authentication fails."""
    status_code = status.HTTP_401_UNAUTHORIZED
    code = 'UNAUTHORIZED'


class PermissionDeniedError(FleetOpsException):
    """Raised when the caller lacks a grant or acts outside its operator."""
    status_code = status.HTTP_403_FORBIDDEN
    code = 'FORBIDDEN'


def error_payload(code, message, details=None, request_id=None):
    """Build the error envelope shared by the handler and the middleware."""
    payload = {
        'error': {
            'code': code,
            'message': message,
            'details': details or {},
        }
    }
    if request_id:
        payload['request_id'] = request_id
    return payload


def ratelimit_view(request, exception):
    """
    View used by django-ratelimit when a limit blocks a request.

    Returns 429 with a Retry-After header instead of the default 403.
    """
    retry_after = 3600 if '/auth/register' in request.path else 60

    logging.getLogger('security').warning(
        "Rate limit exceeded",
        extra={
            'request_id': getattr(request, 'request_id', None),
            'path': request.path,
            'ip': request.META.get('REMOTE_ADDR', 'unknown'),
        }
    )

    response = JsonResponse(
        error_payload(
            'RATE_LIMIT_EXCEEDED',
            'Rate limit exceeded. Please try again later.',
            {'retry_after': retry_after},
            getattr(request, 'request_id', None),
        ),
        status=status.HTTP_429_TOO_MANY_REQUESTS
    )
    response['Retry-After'] = str(retry_after)
    return response


def _drf_error_code(exc):
    if isinstance(exc, drf_exceptions.ValidationError):
        return 'VALIDATION_ERROR'
    if isinstance(exc, (drf_exceptions.NotAuthenticated, drf_exceptions.AuthenticationFailed)):
        return 'UNAUTHORIZED'
    if isinstance(exc, drf_exceptions.PermissionDenied):
        return 'FORBIDDEN'
    if isinstance(exc, drf_exceptions.NotFound):
        return 'NOT_FOUND'
    return str(getattr(exc, 'default_code', 'ERROR')).upper()


def custom_exception_handler(exc, context):
    """
    Map FleetOps, Django and DRF exceptions to the error envelope.

    Unknown exceptions are logged with traceback and returned as a generic 500.
    """
    request = context.get('request')
    request_id = getattr(request, 'request_id', None) if request else None
    log_extra = {
        'request_id': request_id,
        'path': request.path if request else None,
        'method': request.method if request else None,
    }

    if isinstance(exc, Ratelimited):
        return ratelimit_view(request, exc)

    if isinstance(exc, FleetOpsException):
        if exc.status_code >= 500:
            logger.error(f"API Exception: {exc.__class__.__name__}", extra=log_extra, exc_info=True)
        else:
            logger.info(
                f"{exc.__class__.__name__}: {exc.message}",
                extra={**log_extra, 'status_code': exc.status_code}
            )
        return Response(
            error_payload(exc.code, exc.message, exc.details, request_id),
            status=exc.status_code
        )

    if isinstance(exc, DjangoValidationError):
        exc = drf_exceptions.ValidationError(exc.messages)

    if isinstance(exc, Http404):
        exc = drf_exceptions.NotFound(str(exc) or 'Not found.')

    response = exception_handler(exc, context)

    if response is None:
        logger.error(
            f"Unhandled exception: {exc.__class__.__name__}",
            extra={**log_extra, 'exception': str(exc)},
            exc_info=True
        )
        return Response(
            error_payload('INTERNAL_ERROR', 'An unexpected error occurred', request_id=request_id),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    data = response.data
    if isinstance(exc, drf_exceptions.ValidationError):
        message = 'Validation error'
        details = data
    else:
        message = str(data.get('detail', exc)) if isinstance(data, dict) else str(exc)
        details = {}

    response.data = error_payload(_drf_error_code(exc), message, details, request_id)
    return response
