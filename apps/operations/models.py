"""
Operation model.

An operation is one freight job: a driver and a vehicle of the operator
move cargo from an origin to a destination, optionally for a client,
through a provider or along a catalogued route.
"""
from django.db import models
from django.db.models import Count, Q, Sum

from apps.core.models import BaseModel
from apps.core.tenancy import OperatorScopedQuerySet


class OperationQuerySet(OperatorScopedQuerySet):

    def by_number(self, operator_id, operation_number):
        return self.filter(operator_id=operator_id, operation_number=operation_number).first()

    def pending(self):
        """Scheduled or in-progress operations."""
        return self.filter(status__in=Operation.PENDING_STATUSES)

    def in_progress(self):
        return self.filter(status=Operation.STATUS_IN_PROGRESS)

    def search(self, query):
        return self.filter(
            Q(operation_number__icontains=query) |
            Q(origin__icontains=query) |
            Q(destination__icontains=query) |
            Q(cargo_description__icontains=query)
        )

    def statistics(self):
        """Counts by status plus total distance, as plain ints."""
        stats = self.aggregate(
            total_operations=Count('id'),
            completed_operations=Count('id', filter=Q(status=Operation.STATUS_COMPLETED)),
            in_progress_operations=Count('id', filter=Q(status=Operation.STATUS_IN_PROGRESS)),
            scheduled_operations=Count('id', filter=Q(status=Operation.STATUS_SCHEDULED)),
            cancelled_operations=Count('id', filter=Q(status=Operation.STATUS_CANCELLED)),
            total_distance=Sum('distance'),
        )
        stats['total_distance'] = stats['total_distance'] or 0
        return stats


class Operation(BaseModel):
    """
    Freight job. ``operation_number`` is unique per operator, not globally.
    """

    STATUS_SCHEDULED = 'scheduled'
    STATUS_IN_PROGRESS = 'in-progress'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'

    STATUS_CHOICES = [
        (STATUS_SCHEDULED, 'Scheduled'),
        (STATUS_IN_PROGRESS, 'In progress'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    PENDING_STATUSES = (STATUS_SCHEDULED, STATUS_IN_PROGRESS)

    operator = models.ForeignKey(
        'operators.Operator',
        on_delete=models.CASCADE,
        related_name='operations'
    )
    client = models.ForeignKey(
        'partners.Client',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='operations'
    )
    provider = models.ForeignKey(
        'partners.Provider',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='operations'
    )
    route = models.ForeignKey(
        'routes.Route',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='operations'
    )
    driver = models.ForeignKey(
        'fleet.Driver',
        on_delete=models.PROTECT,
        related_name='operations'
    )
    vehicle = models.ForeignKey(
        'fleet.Vehicle',
        on_delete=models.PROTECT,
        related_name='operations'
    )

    operation_number = models.CharField(max_length=50)
    operation_type = models.CharField(max_length=50, help_text="delivery, pickup, transfer, ...")
    origin = models.CharField(max_length=500)
    destination = models.CharField(max_length=500)
    scheduled_start_date = models.DateTimeField(db_index=True)
    scheduled_end_date = models.DateTimeField(null=True, blank=True)
    actual_start_date = models.DateTimeField(null=True, blank=True)
    actual_end_date = models.DateTimeField(null=True, blank=True)
    distance = models.PositiveIntegerField(null=True, blank=True, help_text="Kilometers")
    status = models.CharField(
        max_length=50,
        choices=STATUS_CHOICES,
        default=STATUS_SCHEDULED,
        db_index=True
    )
    cargo_description = models.CharField(max_length=1000, null=True, blank=True)
    cargo_weight = models.PositiveIntegerField(null=True, blank=True, help_text="Kilograms")
    notes = models.CharField(max_length=1000, null=True, blank=True)

    objects = models.Manager.from_queryset(OperationQuerySet)()

    class Meta:
        db_table = 'operations'
        ordering = ['-scheduled_start_date']
        constraints = [
            models.UniqueConstraint(
                fields=['operator', 'operation_number'],
                name='unique_operation_number_per_operator'
            ),
        ]

    def __str__(self):
        return self.operation_number
