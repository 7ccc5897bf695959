"""
Partner models: clients and providers of an operator.

Both are companies identified inside an operator by business name
(razón social) and, when given, tax id (RUT).
"""
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q

from apps.core.models import BaseModel
from apps.core.tenancy import OperatorScopedQuerySet


class PartnerQuerySet(OperatorScopedQuerySet):

    def active(self):
        return self.filter(status=True)

    def search(self, query):
        return self.filter(
            Q(business_name__icontains=query) |
            Q(tax_id__icontains=query) |
            Q(contact_name__icontains=query) |
            Q(contact_email__icontains=query)
        )


class Partner(BaseModel):
    """Company fields shared by clients and providers."""

    operator = models.ForeignKey(
        'operators.Operator',
        on_delete=models.CASCADE,
        related_name='%(class)ss'
    )
    business_name = models.CharField(max_length=255, help_text="Razón social")
    tax_id = models.CharField(max_length=20, null=True, blank=True, help_text="Company RUT")
    contact_name = models.CharField(max_length=200, null=True, blank=True)
    contact_email = models.EmailField(null=True, blank=True)
    contact_phone = models.CharField(max_length=20, null=True, blank=True)
    address = models.CharField(max_length=500, null=True, blank=True)
    city = models.CharField(max_length=100, null=True, blank=True)
    region = models.CharField(max_length=100, null=True, blank=True)
    country = models.CharField(max_length=100, default='Chile')
    status = models.BooleanField(default=True, db_index=True)
    observations = models.CharField(max_length=1000, null=True, blank=True)
    notes = models.CharField(max_length=1000, null=True, blank=True)

    objects = models.Manager.from_queryset(PartnerQuerySet)()

    class Meta:
        abstract = True
        ordering = ['business_name']

    def __str__(self):
        return self.business_name


class Client(Partner):
    """Company whose cargo the operator moves."""

    INDUSTRY_CHOICES = [
        ('minería', 'Minería'),
        ('construcción', 'Construcción'),
        ('industrial', 'Industrial'),
        ('agricultura', 'Agricultura'),
        ('transporte', 'Transporte'),
        ('energía', 'Energía'),
        ('forestal', 'Forestal'),
        ('pesca', 'Pesca'),
        ('retail', 'Retail'),
        ('servicios', 'Servicios'),
        ('manufactura', 'Manufactura'),
        ('tecnología', 'Tecnología'),
        ('otro', 'Otro'),
    ]

    industry = models.CharField(max_length=100, choices=INDUSTRY_CHOICES, null=True, blank=True)

    class Meta(Partner.Meta):
        db_table = 'clients'
        constraints = [
            models.UniqueConstraint(
                fields=['operator', 'business_name'],
                name='unique_client_business_name_per_operator'
            ),
            models.UniqueConstraint(
                fields=['operator', 'tax_id'],
                condition=Q(tax_id__isnull=False),
                name='unique_client_tax_id_per_operator'
            ),
        ]


class Provider(Partner):
    """Subcontracted carrier or logistics company."""

    business_type = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        help_text="e.g. transporte, logística, operador logístico"
    )
    service_types = models.CharField(
        max_length=500,
        null=True,
        blank=True,
        help_text="Comma separated list of services offered"
    )
    fleet_size = models.PositiveIntegerField(null=True, blank=True)
    rating = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(5)]
    )

    class Meta(Partner.Meta):
        db_table = 'providers'
        constraints = [
            models.UniqueConstraint(
                fields=['operator', 'business_name'],
                name='unique_provider_business_name_per_operator'
            ),
            models.UniqueConstraint(
                fields=['operator', 'tax_id'],
                condition=Q(tax_id__isnull=False),
                name='unique_provider_tax_id_per_operator'
            ),
        ]
