"""
Core models for FleetOps.
Provides BaseModel with UUID primary keys and timestamp fields.
"""
import uuid
from django.db import models


class BaseModel(models.Model):
    """
    Abstract base model with UUID primary key and timestamps.

    Every FleetOps model inherits from this base model. Soft deletion is
    modelled per entity through its ``status`` flag because the delete rules
    differ between drivers, clients, operators and so on.
    """
    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier"
    )

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Timestamp when the record was created"
    )

    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="Timestamp when the record was last updated"
    )

    class Meta:
        abstract = True
        ordering = ['-created_at']

    def apply_changes(self, data, exclude=('operator_id',)):
        """
        Copy validated input onto the instance.

        Returns:
            list of the field names whose value changed
        """
        changed = []
        for field, value in data.items():
            if field in exclude:
                continue
            if getattr(self, field) != value:
                setattr(self, field, value)
                changed.append(field)
        return changed
