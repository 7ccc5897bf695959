"""
Operator (tenant) model.
"""
from django.db import models
from django.utils import timezone

from apps.core.models import BaseModel


class OperatorManager(models.Manager):
    """Manager for Operator queries."""

    def active(self):
        """Get operators with status enabled."""
        return self.filter(status=True)

    def by_rut(self, rut):
        return self.filter(rut=rut).first()


class Operator(BaseModel):
    """
    Tenant organization owning drivers, vehicles, clients and operations.
    """

    name = models.CharField(
        max_length=255,
        help_text="Operator display name"
    )
    rut = models.CharField(
        max_length=12,
        unique=True,
        null=True,
        blank=True,
        help_text="Chilean tax id (RUT) of the operator"
    )
    is_super = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Super operators bypass operator scoping"
    )
    expiration = models.DateField(
        null=True,
        blank=True,
        help_text="Date after which the operator can no longer sign in"
    )
    status = models.BooleanField(
        default=True,
        db_index=True,
        help_text="Whether the operator is active"
    )

    objects = OperatorManager()

    class Meta:
        db_table = 'operators'
        ordering = ['name']

    def __str__(self):
        return self.name

    def is_expired(self):
        return self.expiration is not None and self.expiration < timezone.localdate()

    def is_active(self):
        """Check if the operator may use the platform."""
        return self.status and not self.is_expired()
