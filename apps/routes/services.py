"""
Route (tramo) services.
"""
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction

from apps.core.exceptions import ConflictError, NotFoundError, ValidationError
from apps.core.tenancy import CallerContext
from apps.operators.services import OperatorService
from apps.routes.models import Route

logger = logging.getLogger(__name__)


class RouteService:
    """Operator-scoped route catalogue."""

    @staticmethod
    def list_routes(caller: CallerContext, search=None, status=None, route_type=None,
                    difficulty=None, tolls_required=None):
        queryset = Route.objects.for_caller(caller)
        if search:
            queryset = queryset.search(search)
        if status is not None:
            queryset = queryset.filter(status=status)
        if route_type:
            queryset = queryset.filter(route_type=route_type)
        if difficulty:
            queryset = queryset.filter(difficulty=difficulty)
        if tolls_required is not None:
            queryset = queryset.filter(tolls_required=tolls_required)
        return queryset

    @staticmethod
    def get_route(caller: CallerContext, route_id) -> Route:
        try:
            return Route.objects.for_caller(caller).get(pk=route_id)
        except (Route.DoesNotExist, ValueError, DjangoValidationError):
            raise NotFoundError(f"Ruta con ID {route_id} no encontrada")

    @staticmethod
    def _validate_measures(data: dict):
        distance = data.get('distance')
        if distance is not None and distance <= 0:
            raise ValidationError('La distancia debe ser mayor a 0')
        duration = data.get('estimated_duration')
        if duration is not None and duration <= 0:
            raise ValidationError('La duración estimada debe ser mayor a 0')
        toll_cost = data.get('estimated_toll_cost')
        if toll_cost is not None and toll_cost < 0:
            raise ValidationError('El costo estimado de peajes no puede ser negativo')

    @staticmethod
    def _check_unique(operator_id, name=None, code=None, exclude_id=None):
        others = Route.objects.filter(operator_id=operator_id)
        if exclude_id is not None:
            others = others.exclude(id=exclude_id)
        if code and others.filter(code=code).exists():
            raise ConflictError(f"Ya existe una ruta con el código {code}")
        if name and others.filter(name=name).exists():
            raise ConflictError(f"Ya existe una ruta con el nombre {name}")

    @classmethod
    @transaction.atomic
    def create_route(cls, caller: CallerContext, data: dict) -> Route:
        """
        Create a route.

        Raises:
            ValidationError: If distance, duration or toll cost are out of range
            ConflictError: If the name or code is already used in the operator
        """
        operator = OperatorService.resolve_target(caller, data.get('operator_id'), resource='routes')
        fields = {key: value for key, value in data.items() if key != 'operator_id'}
        if fields.get('code') == '':
            fields['code'] = None

        cls._validate_measures(fields)
        cls._check_unique(operator.id, fields.get('name'), fields.get('code'))

        route = Route.objects.create(operator=operator, **fields)
        logger.info(f"Route created: {route.name}", extra={'route_id': str(route.id)})
        return route

    @classmethod
    @transaction.atomic
    def update_route(cls, caller: CallerContext, route_id, data: dict) -> Route:
        route = cls.get_route(caller, route_id)
        data = dict(data)
        if data.get('code') == '':
            data['code'] = None

        cls._validate_measures(data)
        name = data.get('name')
        code = data.get('code')
        cls._check_unique(
            route.operator_id,
            name if name != route.name else None,
            code if code != route.code else None,
            exclude_id=route.id,
        )

        if route.apply_changes(data):
            route.save()
        return route

    @classmethod
    @transaction.atomic
    def delete_route(cls, caller: CallerContext, route_id):
        """
        Delete a route no operation references.

        Raises:
            ValidationError: If operations use the route
        """
        route = cls.get_route(caller, route_id)
        usage = route.operations.count()
        if usage > 0:
            raise ValidationError(
                f"No se puede eliminar la ruta porque está siendo usada en {usage} operación(es)"
            )
        route.delete()
        logger.info(f"Route deleted: {route_id}")

    @classmethod
    def get_statistics(cls, caller: CallerContext, route_id) -> dict:
        route = cls.get_route(caller, route_id)
        stats = route.operations.statistics()
        return {
            'route': route,
            'statistics': {
                'total': stats['total_operations'],
                'completed': stats['completed_operations'],
                'scheduled': stats['scheduled_operations'],
                'inProgress': stats['in_progress_operations'],
                'cancelled': stats['cancelled_operations'],
            },
        }
