"""
Operator (tenant) isolation.

Every caller-driven query goes through ``OperatorScopedQuerySet.for_caller``,
which injects the operator predicate derived from the caller's identity.
Super-operator callers see every operator; a regular caller without an
operator is refused instead of silently seeing nothing or everything.
"""
from dataclasses import dataclass, field
from typing import Any, FrozenSet, Optional
from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import models

from apps.core.exceptions import NotFoundError, PermissionDeniedError


@dataclass(frozen=True)
class CallerContext:
    """
    Identity of the caller of a service operation.

    Built once per request by the operator context middleware and passed
    explicitly to services, so nothing reads identity from ambient state.
    """
    user: Any
    operator_id: Optional[UUID]
    is_super: bool = False
    permissions: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def user_id(self):
        return getattr(self.user, 'id', None)

    def can_access(self, resource: str, action: str) -> bool:
        from apps.core.permissions import evaluate_access
        return evaluate_access(self.is_super, self.permissions, resource, action)


class OperatorScopedQuerySet(models.QuerySet):
    """QuerySet for models owned by an operator through ``operator_field``."""

    operator_field = 'operator'

    def for_operator(self, operator_id):
        return self.filter(**{f'{self.operator_field}_id': operator_id})

    def for_caller(self, caller: CallerContext):
        """
        Restrict the queryset to what ``caller`` may see.

        Raises:
            PermissionDeniedError: If there is no caller, or a non-super caller has no operator
        """
        if caller is None:
            raise PermissionDeniedError("Operator context is required")
        if caller.is_super:
            return self.all()
        if caller.operator_id is None:
            raise PermissionDeniedError("User is not assigned to an operator")
        return self.for_operator(caller.operator_id)

    def get_for_caller(self, caller: CallerContext, pk, label: str = None):
        """
        Fetch one object visible to ``caller``.

        Objects of other operators are reported as not found so their
        existence does not leak.
        """
        label = label or self.model._meta.verbose_name.capitalize()
        try:
            return self.for_caller(caller).get(pk=pk)
        except (self.model.DoesNotExist, ValueError, DjangoValidationError):
            raise NotFoundError(f"{label} with ID {pk} not found")


OperatorScopedManager = models.Manager.from_queryset(OperatorScopedQuerySet)


def resolve_operator_id(caller: CallerContext, requested=None, resource: str = 'records'):
    """
    Decide which operator a write targets.

    Regular callers always write into their own operator; naming another one
    is refused. Super callers may name any operator and fall back to their own.

    Raises:
        PermissionDeniedError: If a regular caller targets another operator
        ValidationError: If no operator can be determined
    """
    from apps.core.exceptions import ValidationError

    if requested is not None and str(requested) == '':
        requested = None

    if caller.is_super:
        operator_id = requested or caller.operator_id
    else:
        if caller.operator_id is None:
            raise PermissionDeniedError("User is not assigned to an operator")
        if requested is not None and str(requested) != str(caller.operator_id):
            from apps.core.logging import SecurityLogger
            SecurityLogger.log_cross_operator_access(
                caller.user_id, caller.operator_id, requested, resource
            )
            raise PermissionDeniedError(f"Cannot create {resource} for other operators")
        operator_id = caller.operator_id

    if operator_id is None:
        raise ValidationError("operatorId is required")
    return operator_id
