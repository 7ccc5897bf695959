"""
Route (tramo) model.
"""
from django.db import models
from django.db.models import Q

from apps.core.models import BaseModel
from apps.core.tenancy import OperatorScopedQuerySet


class RouteQuerySet(OperatorScopedQuerySet):

    def active(self):
        return self.filter(status=True)

    def by_name(self, operator_id, name):
        return self.filter(operator_id=operator_id, name=name).first()

    def search(self, query):
        return self.filter(
            Q(name__icontains=query) |
            Q(code__icontains=query) |
            Q(origin__icontains=query) |
            Q(destination__icontains=query)
        )


class Route(BaseModel):
    """
    Named leg between an origin and a destination that operations can reference.
    """

    ROUTE_TYPE_CHOICES = [
        ('urbana', 'Urbana'),
        ('interurbana', 'Interurbana'),
        ('minera', 'Minera'),
        ('rural', 'Rural'),
        ('carretera', 'Carretera'),
        ('otra', 'Otra'),
    ]

    DIFFICULTY_CHOICES = [
        ('fácil', 'Fácil'),
        ('moderada', 'Moderada'),
        ('difícil', 'Difícil'),
    ]

    operator = models.ForeignKey(
        'operators.Operator',
        on_delete=models.CASCADE,
        related_name='routes'
    )
    name = models.CharField(max_length=255)
    code = models.CharField(max_length=50, null=True, blank=True, help_text="Internal route code")
    origin = models.CharField(max_length=500)
    destination = models.CharField(max_length=500)
    distance = models.PositiveIntegerField(null=True, blank=True, help_text="Kilometers")
    estimated_duration = models.PositiveIntegerField(null=True, blank=True, help_text="Minutes")
    route_type = models.CharField(max_length=50, choices=ROUTE_TYPE_CHOICES, null=True, blank=True)
    difficulty = models.CharField(max_length=20, choices=DIFFICULTY_CHOICES, null=True, blank=True)
    road_conditions = models.CharField(max_length=500, null=True, blank=True)
    tolls_required = models.BooleanField(default=False)
    estimated_toll_cost = models.PositiveIntegerField(null=True, blank=True)
    status = models.BooleanField(default=True, db_index=True)
    observations = models.CharField(max_length=1000, null=True, blank=True)
    notes = models.CharField(max_length=1000, null=True, blank=True)

    objects = models.Manager.from_queryset(RouteQuerySet)()

    class Meta:
        db_table = 'routes'
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(fields=['operator', 'name'], name='unique_route_name_per_operator'),
            models.UniqueConstraint(
                fields=['operator', 'code'],
                condition=Q(code__isnull=False),
                name='unique_route_code_per_operator'
            ),
        ]

    def __str__(self):
        return self.name
