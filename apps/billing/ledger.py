# apps/billing/ledger.py
"""
Invoice ledger.

`compute_ledger` derives paid/pending/status from the facts of an invoice
and is pure. `recompute` is the only writer of those fields: it runs inside
the caller's transaction, re-reads payments and the exoneration, and writes
with an optimistic version check.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal

from django.db.models import F, Sum
from django.utils import timezone

from core.constants import InvoiceStatus
from core.exceptions import ConcurrencyConflictError
from core.utils.money import ZERO, to_money, money_tolerance

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerState:
    paid_amount: Decimal
    pending_amount: Decimal
    status: str


def compute_ledger(total_owed, paid_amount, *, has_exoneration, is_cancelled, exonerated_amount=ZERO):
    """
    Status order: exoneration, cancellation, degenerate (owed <= 0),
    paid within tolerance, partial, pending.
    """
    owed = to_money(total_owed)
    paid = to_money(paid_amount)

    if has_exoneration:
        pending = max(ZERO, owed - paid - to_money(exonerated_amount))
        return LedgerState(paid, pending, InvoiceStatus.EXONERATED)

    if is_cancelled:
        return LedgerState(paid, max(ZERO, owed - paid), InvoiceStatus.CANCELLED)

    if owed <= ZERO:
        return LedgerState(paid, ZERO, InvoiceStatus.PAID)

    if paid >= owed - money_tolerance():
        return LedgerState(paid, ZERO, InvoiceStatus.PAID)

    pending = max(ZERO, owed - paid)
    if paid > ZERO:
        return LedgerState(paid, pending, InvoiceStatus.PARTIAL)

    return LedgerState(paid, pending, InvoiceStatus.PENDING)


def recompute(invoice):
    """
    Re-derive and persist the ledger of `invoice`.

    Raises ConcurrencyConflictError when the row changed since `invoice`
    was read; callers wrap the whole operation in retry_on_conflict.
    """
    from apps.payments.models import Payment
    from .models import Invoice, InvoiceExoneration

    current_version = (
        Invoice.objects.select_for_update()
        .filter(pk=invoice.pk)
        .values_list('version', flat=True)
        .first()
    )
    if current_version is None or current_version != invoice.version:
        logger.warning(
            f"Ledger conflict on invoice {invoice.invoice_number}: "
            f"read version {invoice.version}, found {current_version}"
        )
        raise ConcurrencyConflictError()

    paid = Payment.objects.filter(invoice_id=invoice.pk).aggregate(total=Sum('amount'))['total'] or ZERO

    exoneration = InvoiceExoneration.objects.filter(invoice_id=invoice.pk).first()
    state = compute_ledger(
        invoice.total_owed,
        paid,
        has_exoneration=exoneration is not None,
        is_cancelled=invoice.is_cancelled,
        exonerated_amount=exoneration.exonerated_amount if exoneration else ZERO,
    )

    now = timezone.now()
    paid_at = invoice.paid_at
    if state.status == InvoiceStatus.PAID and paid_at is None:
        paid_at = now

    updated = Invoice.objects.filter(pk=invoice.pk, version=invoice.version).update(
        paid_amount=state.paid_amount,
        pending_amount=state.pending_amount,
        status=state.status,
        paid_at=paid_at,
        updated_at=now,
        version=F('version') + 1,
    )
    if updated != 1:
        raise ConcurrencyConflictError()

    invoice.paid_amount = state.paid_amount
    invoice.pending_amount = state.pending_amount
    invoice.status = state.status
    invoice.paid_at = paid_at
    invoice.updated_at = now
    invoice.version += 1
    if exoneration is not None:
        invoice.exoneration = exoneration

    return state
