"""
Core API views and helpers shared by every app's views.
"""
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from django.db import connection
from django.core.cache import cache
from django.utils.dateparse import parse_date
from drf_spectacular.utils import extend_schema
import logging

from apps.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

_TRUE_VALUES = {'true', '1', 'yes'}
_FALSE_VALUES = {'false', '0', 'no'}


def query_bool(request, name):
    """Read an optional boolean query parameter; None when absent."""
    value = request.query_params.get(name)
    if value is None or value == '':
        return None
    value = value.lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValidationError(f"Query parameter '{name}' must be true or false")


def query_int(request, name, default=None, minimum=None):
    value = request.query_params.get(name)
    if value is None or value == '':
        return default
    try:
        value = int(value)
    except ValueError:
        raise ValidationError(f"Query parameter '{name}' must be an integer")
    if minimum is not None and value < minimum:
        raise ValidationError(f"Query parameter '{name}' must be at least {minimum}")
    return value


class HealthCheckView(APIView):
    """
    Health check endpoint to verify system dependencies.

    GET /api/health

    Returns 200 if all dependencies are healthy, 503 otherwise.
    """
    authentication_classes = []
    permission_classes = []

    @extend_schema(
        tags=['Health'],
        summary="Health check",
        description="Check the health of the database and cache",
        responses={200: dict, 503: dict},
    )
    def get(self, request):
        health_status = {
            'status': 'healthy',
            'database': 'unknown',
            'cache': 'unknown',
        }
        errors = []

        try:
            with connection.cursor() as cursor:
                cursor.execute("SELECT 1")
            health_status['database'] = 'healthy'
        except Exception as e:
            health_status['database'] = 'unhealthy'
            errors.append(f"Database: {e}")
            logger.error("Database health check failed", exc_info=True)

        try:
            cache.set('health_check', 'ok', timeout=10)
            health_status['cache'] = 'healthy' if cache.get('health_check') == 'ok' else 'unhealthy'
        except Exception as e:
            health_status['cache'] = 'unhealthy'
            errors.append(f"Cache: {e}")
            logger.error("Cache health check failed", exc_info=True)

        if errors:
            health_status['status'] = 'unhealthy'
            health_status['errors'] = errors
            return Response(health_status, status=status.HTTP_503_SERVICE_UNAVAILABLE)
        return Response(health_status, status=status.HTTP_200_OK)


def query_date(request, name):
    """Read an optional YYYY-MM-DD query parameter."""
    value = request.query_params.get(name)
    if not value:
        return None
    try:
        parsed = parse_date(value)
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"Query parameter '{name}' must be a date (YYYY-MM-DD)")
    return parsed
