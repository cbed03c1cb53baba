#apps/billing/models.py

from django.db import models, transaction
from core.constants import InvoiceStatus, TERMINAL_STATUSES
from core.exceptions import InvalidStateError
from core.mixins.audit_fields import AuditFieldsMixin
from core.utils.money import to_money
from decimal import Decimal
from django.core.validators import MinValueValidator


class DocumentSequence(models.Model):
    """Monotonic counter per document prefix (INV-, PAY-). Numbers are never reused."""
    prefix = models.CharField(max_length=10, unique=True)
    last_value = models.PositiveBigIntegerField(default=0)

    class Meta:
        db_table = 'document_sequences'

    def __str__(self):
        return f"{self.prefix}{self.last_value}"

    @classmethod
    def next_number(cls, prefix, width=8):
        with transaction.atomic():
            seq, _ = cls.objects.select_for_update().get_or_create(prefix=prefix)
            seq.last_value += 1
            seq.save(update_fields=['last_value'])
        return f"{prefix}{seq.last_value:0{width}d}"


class Invoice(AuditFieldsMixin, models.Model):
    """
    Patient invoice.

    paid_amount, pending_amount and status are derived fields owned by
    apps.billing.ledger; nothing else writes them after creation.
    """
    invoice_number = models.CharField(max_length=20, unique=True, editable=False)
    patient = models.ForeignKey(
        'patients.Patient',
        on_delete=models.PROTECT,
        related_name='invoices'
    )
    insurance = models.ForeignKey(
        'insurance.Insurance',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='invoices'
    )

    due_date = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True)

    # Financial breakdown
    total_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text="Sum of line totals before insurance"
    )
    paid_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    pending_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    status = models.CharField(
        max_length=20,
        choices=InvoiceStatus.choices,
        default=InvoiceStatus.PENDING,
        db_index=True
    )

    # Coverage snapshot taken at creation; never recalculated
    insurance_calculation = models.JSONField(null=True, blank=True, editable=False)

    # Cancellation
    is_cancelled = models.BooleanField(default=False)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='cancelled_invoices'
    )
    cancel_reason = models.TextField(blank=True)

    paid_at = models.DateTimeField(null=True, blank=True)

    # Optimistic lock for ledger writes
    version = models.PositiveIntegerField(default=0, editable=False)

    class Meta:
        db_table = 'invoices'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['invoice_number']),
            models.Index(fields=['patient', 'status']),
            models.Index(fields=['status', 'due_date']),
            models.Index(fields=['created_at']),
        ]

    def __str__(self):
        return f"Invoice {self.invoice_number}: {self.patient} - {self.total_amount}"

    @property
    def calculation(self):
        from apps.insurance.calculator import InsuranceCalculation
        return InsuranceCalculation.from_snapshot(self.insurance_calculation)

    @property
    def total_owed(self):
        """What the patient owes: insurance-adjusted total when a snapshot exists"""
        if self.insurance_calculation:
            return to_money(self.insurance_calculation.get('total_patient_pays'))
        return to_money(self.total_amount)

    @property
    def insurance_covers(self):
        if self.insurance_calculation:
            return to_money(self.insurance_calculation.get('total_insurance_covers'))
        return Decimal('0.00')

    @property
    def exoneration_or_none(self):
        # reverse one-to-one raises RelatedObjectDoesNotExist (an AttributeError)
        return getattr(self, 'exoneration', None)

    @property
    def has_exoneration(self):
        return self.exoneration_or_none is not None

    @property
    def is_terminal(self):
        return self.status in TERMINAL_STATUSES


class InvoiceItem(models.Model):
    """Billed service line. Immutable once written."""
    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.CASCADE,
        related_name='items'
    )
    service = models.ForeignKey(
        'catalog.Service',
        on_delete=models.PROTECT,
        related_name='invoice_items'
    )
    description = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    line_total = models.DecimalField(max_digits=12, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'invoice_items'
        ordering = ['invoice', 'id']

    def __str__(self):
        return f"{self.description} x{self.quantity} - {self.line_total}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise InvalidStateError('Invoice items are immutable.')
        self.line_total = to_money(Decimal(self.quantity) * to_money(self.unit_price))
        super().save(*args, **kwargs)


class InvoiceExoneration(models.Model):
    """Authorized waiver of what a patient still owes. At most one per invoice."""
    invoice = models.OneToOneField(
        Invoice,
        on_delete=models.PROTECT,
        related_name='exoneration'
    )
    original_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Amount owed when the waiver was granted"
    )
    exonerated_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    reason = models.TextField()
    authorization_code = models.CharField(max_length=60, blank=True)
    notes = models.TextField(blank=True)
    authorized_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.PROTECT,
        related_name='authorized_exonerations'
    )

    is_printed = models.BooleanField(default=False)
    printed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'invoice_exonerations'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['created_at']),
            models.Index(fields=['is_printed']),
        ]

    def __str__(self):
        return f"Exoneration {self.invoice.invoice_number}: {self.exonerated_amount}"

    @property
    def remaining_amount(self):
        return max(Decimal('0.00'), to_money(self.original_amount) - to_money(self.exonerated_amount))

    @property
    def is_partial(self):
        return self.exonerated_amount < self.original_amount
