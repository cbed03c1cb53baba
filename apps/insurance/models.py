# apps/insurance/models.py
from decimal import Decimal

from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models

from core.mixins.audit_fields import AuditFieldsMixin
from core.mixins.soft_delete import SoftDeleteMixin


class Insurance(AuditFieldsMixin, SoftDeleteMixin, models.Model):
    """Insurance plan accepted by the clinic"""
    name = models.CharField(max_length=150, unique=True)
    description = models.TextField(blank=True)

    class Meta:
        db_table = 'insurances'
        ordering = ['name']

    def __str__(self):
        return self.name


class InsuranceCoverageQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_active=True)

    def coverage_map(self, insurance, service_ids):
        """{service_id: coverage_percent} for the active rules of a plan"""
        if insurance is None:
            return {}
        rules = self.active().filter(insurance=insurance, service_id__in=list(service_ids))
        return {rule.service_id: rule.coverage_percent for rule in rules}


class InsuranceCoverage(AuditFieldsMixin, models.Model):
    """Percentage of a catalog service covered by a plan"""
    insurance = models.ForeignKey(
        Insurance,
        on_delete=models.CASCADE,
        related_name='coverages'
    )
    service = models.ForeignKey(
        'catalog.Service',
        on_delete=models.CASCADE,
        related_name='coverages'
    )
    coverage_percent = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0')), MaxValueValidator(Decimal('100'))]
    )
    is_active = models.BooleanField(default=True)

    objects = InsuranceCoverageQuerySet.as_manager()

    class Meta:
        db_table = 'insurance_coverages'
        ordering = ['insurance__name', 'service__name']
        constraints = [
            models.UniqueConstraint(
                fields=['insurance', 'service'],
                name='unique_coverage_per_service'
            ),
        ]

    def __str__(self):
        return f"{self.insurance.name} - {self.service.code}: {self.coverage_percent}%"


def coverage_map(insurance, service_ids):
    return InsuranceCoverage.objects.coverage_map(insurance, service_ids)
