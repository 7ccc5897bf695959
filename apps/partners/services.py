"""
Client and provider services.

Both share the same rules, so ``PartnerService`` carries the logic and the
concrete services bind it to a model and a label.
"""
import logging

from django.db import transaction
from django.db.models import Count, Q

from apps.core.exceptions import ConflictError, ValidationError
from apps.core.tenancy import CallerContext
from apps.operators.services import OperatorService
from apps.partners.models import Client, Provider

logger = logging.getLogger(__name__)


class PartnerService:
    """Shared CRUD for operator-owned partner companies."""

    model = None
    label = None
    resource = None

    @classmethod
    def list(cls, caller: CallerContext, search=None, status=None, city=None, region=None, **filters):
        queryset = cls.model.objects.for_caller(caller)
        if search:
            queryset = queryset.search(search)
        if status is not None:
            queryset = queryset.filter(status=status)
        if city:
            queryset = queryset.filter(city__icontains=city)
        if region:
            queryset = queryset.filter(region__icontains=region)
        for field, value in filters.items():
            if value not in (None, ''):
                queryset = queryset.filter(**{field: value})
        return queryset

    @classmethod
    def get(cls, caller: CallerContext, partner_id):
        return cls.model.objects.get_for_caller(caller, partner_id, label=cls.label)

    @classmethod
    def _check_unique(cls, operator_id, business_name=None, tax_id=None, exclude_id=None):
        others = cls.model.objects.filter(operator_id=operator_id)
        if exclude_id is not None:
            others = others.exclude(id=exclude_id)
        if business_name and others.filter(business_name=business_name).exists():
            raise ConflictError(
                f'{cls.label} with business name "{business_name}" already exists for this operator'
            )
        if tax_id and others.filter(tax_id=tax_id).exists():
            raise ConflictError(f"{cls.label} with Tax ID {tax_id} already exists for this operator")

    @classmethod
    @transaction.atomic
    def create(cls, caller: CallerContext, data: dict):
        """
        Create a partner in the caller's operator.

        Raises:
            ConflictError: If the business name or tax id is already used in the operator
        """
        operator = OperatorService.resolve_target(caller, data.get('operator_id'), resource=cls.resource)
        fields = {key: value for key, value in data.items() if key != 'operator_id'}
        if fields.get('tax_id') == '':
            fields['tax_id'] = None

        cls._check_unique(operator.id, fields.get('business_name'), fields.get('tax_id'))

        partner = cls.model.objects.create(operator=operator, **fields)
        logger.info(
            f"{cls.label} created: {partner.business_name}",
            extra={'partner_id': str(partner.id), 'operator_id': str(operator.id)}
        )
        return partner

    @classmethod
    @transaction.atomic
    def update(cls, caller: CallerContext, partner_id, data: dict):
        partner = cls.get(caller, partner_id)
        data = dict(data)
        if data.get('tax_id') == '':
            data['tax_id'] = None

        business_name = data.get('business_name')
        tax_id = data.get('tax_id')
        cls._check_unique(
            partner.operator_id,
            business_name if business_name != partner.business_name else None,
            tax_id if tax_id != partner.tax_id else None,
            exclude_id=partner.id,
        )

        if partner.apply_changes(data):
            partner.save()
        return partner

    @classmethod
    @transaction.atomic
    def delete(cls, caller: CallerContext, partner_id):
        """
        Soft delete: the partner is marked inactive.

        Raises:
            ValidationError: If the partner has scheduled or in-progress operations
        """
        partner = cls.get(caller, partner_id)
        if partner.operations.pending().exists():
            raise ValidationError(
                f"Cannot delete {cls.label.lower()} with active or scheduled operations. "
                f"Consider deactivating instead."
            )
        partner.status = False
        partner.save(update_fields=['status', 'updated_at'])
        logger.info(f"{cls.label} deactivated: {partner.business_name}", extra={'partner_id': str(partner.id)})
        return partner

    @classmethod
    @transaction.atomic
    def permanent_delete(cls, caller: CallerContext, partner_id):
        """
        Hard delete.

        Raises:
            ValidationError: If any operation references the partner
        """
        partner = cls.get(caller, partner_id)
        if partner.operations.exists():
            raise ValidationError(
                f"Cannot permanently delete {cls.label.lower()} with associated operations"
            )
        partner.delete()
        logger.info(f"{cls.label} deleted: {partner_id}")

    @classmethod
    def get_statistics(cls, caller: CallerContext, partner_id) -> dict:
        partner = cls.get(caller, partner_id)
        return {
            'partner': partner,
            'statistics': partner.operations.statistics(),
        }

    @classmethod
    def get_operations(cls, caller: CallerContext, partner_id):
        partner = cls.get(caller, partner_id)
        return partner.operations.select_related('driver', 'vehicle', 'route')


class ClientService(PartnerService):
    model = Client
    label = 'Client'
    resource = 'clients'

    @classmethod
    def recent_operations(cls, caller: CallerContext, client_id, limit: int = 5):
        client = cls.get(caller, client_id)
        return client.operations.select_related('driver', 'vehicle').order_by('-scheduled_start_date')[:limit]

    @staticmethod
    def top_clients(caller: CallerContext, limit: int = 10) -> list:
        """Clients of the caller's operator ranked by number of operations."""
        queryset = (
            Client.objects.for_caller(caller)
            .annotate(
                total_operations=Count('operations'),
                completed_operations=Count('operations', filter=Q(operations__status='completed')),
            )
            .filter(total_operations__gt=0)
            .order_by('-total_operations', 'business_name')[:limit]
        )
        return [
            {
                'id': str(client.id),
                'businessName': client.business_name,
                'industry': client.industry,
                'totalOperations': client.total_operations,
                'completedOperations': client.completed_operations,
            }
            for client in queryset
        ]

    @staticmethod
    def clients_by_industry(caller: CallerContext) -> list:
        rows = (
            Client.objects.for_caller(caller)
            .values('industry')
            .annotate(
                totalClients=Count('id'),
                activeClients=Count('id', filter=Q(status=True)),
            )
            .order_by('-totalClients')
        )
        return [
            {
                'industry': row['industry'] or 'No especificado',
                'totalClients': row['totalClients'],
                'activeClients': row['activeClients'],
            }
            for row in rows
        ]


class ProviderService(PartnerService):
    model = Provider
    label = 'Provider'
    resource = 'providers'
