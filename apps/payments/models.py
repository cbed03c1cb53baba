# apps/payments/models.py
from django.db import models
from django.core.validators import MinValueValidator
from decimal import Decimal

from core.constants import PaymentMethods
from core.exceptions import InvalidStateError


class Payment(models.Model):
    """
    Money received against an invoice. Append-only: the ledger sums every
    row, so rows are never edited or removed.
    """
    payment_number = models.CharField(max_length=20, unique=True, editable=False)
    invoice = models.ForeignKey(
        'billing.Invoice',
        on_delete=models.PROTECT,
        related_name='payments'
    )
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    method = models.CharField(max_length=20, choices=PaymentMethods.choices)
    reference = models.CharField(max_length=100, blank=True, help_text="Card slip, transfer or check number")
    notes = models.TextField(blank=True)

    received_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='received_payments'
    )
    received_at = models.DateTimeField(auto_now_add=True)

    # Receipt printing is the only state that changes after creation
    is_printed = models.BooleanField(default=False)
    printed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'payments'
        ordering = ['-received_at', '-id']
        indexes = [
            models.Index(fields=['invoice', 'received_at']),
            models.Index(fields=['method', 'received_at']),
        ]

    def __str__(self):
        return f"{self.payment_number}: {self.amount} ({self.method})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise InvalidStateError('Payments are immutable.')
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise InvalidStateError('Payments cannot be deleted.')
