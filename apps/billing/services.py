# apps/billing/services.py
import logging
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.audit.services import log_action, serialize_model
from apps.catalog.services import resolve_line_items
from apps.insurance.calculator import calculate_for_patient
from apps.insurance.models import Insurance
from apps.patients.models import Patient
from core.constants import AuditActions, InvoiceStatus
from core.exceptions import (
    AlreadyExoneratedError,
    InvalidAmountError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from core.utils.money import ZERO, to_money
from core.utils.retry import retry_on_conflict
from .ledger import recompute
from .models import DocumentSequence, Invoice, InvoiceItem, InvoiceExoneration

logger = logging.getLogger(__name__)


def parse_id(value, field='invoice_id', label='invoice'):
    """Primary keys arrive from URLs as strings; anything non-numeric is a client error"""
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'Invalid {label} id.', field=field)


def lock_invoice(invoice_id):
    """Fetch an invoice row under select_for_update; caller must be atomic"""
    invoice_id = parse_id(invoice_id)
    invoice = Invoice.objects.select_for_update().filter(pk=invoice_id).first()
    if invoice is None:
        raise NotFoundError('Invoice not found.')
    return invoice


def _require_reason(reason):
    reason = (reason or '').strip()
    if not reason:
        raise ValidationError('Reason is required.', field='reason')
    return reason


# ===========================================
# INVOICES
# ===========================================
class InvoiceService:

    @staticmethod
    @transaction.atomic
    def create_invoice(patient_id, items, created_by, due_date=None, notes='',
                       insurance_id=None, apply_insurance=True):
        """
        Create an invoice with its immutable items.

        Coverage is calculated once, here, and stored as a snapshot on the
        invoice; later changes to coverage rules do not touch it.
        """
        patient = Patient.objects.select_related('insurance').filter(pk=patient_id, is_active=True).first()
        if patient is None:
            raise NotFoundError('Patient not found.')

        insurance = None
        if insurance_id:
            insurance = Insurance.objects.filter(pk=insurance_id).first()
            if insurance is None:
                raise NotFoundError('Insurance not found.')
        elif apply_insurance:
            insurance = patient.insurance

        lines, services = resolve_line_items(items)
        total_amount = sum((line.base_price for line in lines), ZERO)

        calculation = None
        if apply_insurance and insurance is not None and insurance.is_active:
            calculation = calculate_for_patient(patient, lines, insurance=insurance)

        if due_date is None and settings.BILLING.get('DEFAULT_DUE_DAYS'):
            due_date = timezone.now().date() + timedelta(days=settings.BILLING['DEFAULT_DUE_DAYS'])

        invoice = Invoice.objects.create(
            invoice_number=DocumentSequence.next_number(
                settings.BILLING.get('INVOICE_PREFIX', 'INV-'),
                settings.BILLING.get('INVOICE_NUMBER_WIDTH', 8),
            ),
            patient=patient,
            insurance=insurance if calculation else None,
            due_date=due_date,
            notes=notes or '',
            total_amount=total_amount,
            pending_amount=calculation.total_patient_pays if calculation else total_amount,
            insurance_calculation=calculation.to_snapshot() if calculation else None,
            created_by=created_by,
        )

        for line in lines:
            InvoiceItem.objects.create(
                invoice=invoice,
                service=services[line.service_id],
                description=line.service_name,
                quantity=line.quantity,
                unit_price=line.unit_price,
            )

        state = recompute(invoice)

        log_action(
            instance=invoice,
            action=AuditActions.CREATE,
            user=created_by,
            metadata={'items': len(lines), 'total_owed': str(invoice.total_owed)},
        )
        logger.info(
            f"Invoice {invoice.invoice_number} created for {patient.patient_number}: "
            f"total {total_amount}, owed {invoice.total_owed}, status {state.status}"
        )
        return invoice

    @staticmethod
    @retry_on_conflict
    @transaction.atomic
    def cancel_invoice(invoice_id, reason, user):
        """Cancel from any non-terminal status (PENDING, PARTIAL, PAID)"""
        reason = _require_reason(reason)
        invoice = lock_invoice(invoice_id)
        if invoice.is_terminal:
            raise InvalidStateError(
                f"Invoice {invoice.invoice_number} is already {invoice.get_status_display().lower()}."
            )

        before = serialize_model(invoice)
        invoice.is_cancelled = True
        invoice.cancelled_at = timezone.now()
        invoice.cancelled_by = user
        invoice.cancel_reason = reason
        invoice.updated_by = user
        invoice.save(update_fields=['is_cancelled', 'cancelled_at', 'cancelled_by', 'cancel_reason', 'updated_by'])

        recompute(invoice)

        log_action(
            instance=invoice,
            action=AuditActions.UPDATE,
            user=user,
            before=before,
            metadata={'event': 'cancelled', 'reason': reason},
        )
        logger.info(f"Invoice {invoice.invoice_number} cancelled by {getattr(user, 'email', 'system')}")
        return invoice


# ===========================================
# EXONERATIONS
# ===========================================
class ExonerationService:

    @staticmethod
    @retry_on_conflict
    @transaction.atomic
    def exonerate(invoice_id, reason, authorized_by, exonerated_amount=None,
                  authorization_code='', notes=''):
        """
        Waive all or part of what is still owed. One-shot: the invoice becomes
        EXONERATED and leaves normal payment tracking.
        """
        reason = _require_reason(reason)
        invoice = lock_invoice(invoice_id)

        if InvoiceExoneration.objects.filter(invoice=invoice).exists():
            raise AlreadyExoneratedError(f"Invoice {invoice.invoice_number} already has an exoneration.")
        if invoice.status == InvoiceStatus.CANCELLED:
            raise InvalidStateError('Cannot exonerate a cancelled invoice.')
        if invoice.status == InvoiceStatus.PAID:
            raise InvalidStateError('Invoice is fully paid; there is nothing to exonerate.')

        original_amount = to_money(invoice.pending_amount)
        if exonerated_amount is None:
            amount = original_amount
        else:
            try:
                amount = to_money(exonerated_amount)
            except ValueError:
                raise InvalidAmountError('Exonerated amount must be a number.', field='exonerated_amount')
            if amount <= ZERO:
                raise InvalidAmountError('Exonerated amount must be greater than zero.', field='exonerated_amount')
            if amount > original_amount:
                raise InvalidAmountError(
                    f"Exonerated amount cannot exceed the amount owed ({original_amount}).",
                    field='exonerated_amount'
                )

        before = serialize_model(invoice)
        exoneration = InvoiceExoneration.objects.create(
            invoice=invoice,
            original_amount=original_amount,
            exonerated_amount=amount,
            reason=reason,
            authorization_code=authorization_code or '',
            notes=notes or '',
            authorized_by=authorized_by,
        )

        state = recompute(invoice)
        check_exoneration_consistency(invoice)

        log_action(
            instance=exoneration,
            action=AuditActions.CREATE,
            user=authorized_by,
            before=before,
            metadata={
                'invoice_number': invoice.invoice_number,
                'original_amount': str(original_amount),
                'exonerated_amount': str(amount),
            },
        )
        logger.info(
            f"Invoice {invoice.invoice_number} exonerated: {amount} of {original_amount} "
            f"by {getattr(authorized_by, 'email', 'system')}, pending {state.pending_amount}"
        )
        return exoneration

    @staticmethod
    @transaction.atomic
    def mark_printed(exoneration_id, user=None):
        """Idempotent: printed_at is set on the first call only"""
        exoneration_id = parse_id(exoneration_id, field='exoneration_id', label='exoneration')
        exoneration = (
            InvoiceExoneration.objects.select_for_update()
            .select_related('invoice')
            .filter(pk=exoneration_id)
            .first()
        )
        if exoneration is None:
            raise NotFoundError('Exoneration not found.')
        if exoneration.is_printed:
            return exoneration

        exoneration.is_printed = True
        exoneration.printed_at = timezone.now()
        exoneration.save(update_fields=['is_printed', 'printed_at'])

        log_action(
            instance=exoneration,
            action=AuditActions.UPDATE,
            user=user,
            metadata={'event': 'printed'},
        )
        logger.info(f"Exoneration for {exoneration.invoice.invoice_number} marked printed")
        return exoneration


def check_exoneration_consistency(invoice):
    """An invoice has an exoneration record if and only if it is EXONERATED"""
    has_record = InvoiceExoneration.objects.filter(invoice_id=invoice.pk).exists()
    is_exonerated = invoice.status == InvoiceStatus.EXONERATED
    if has_record != is_exonerated:
        logger.error(
            f"Exoneration mismatch on invoice {invoice.pk}: status {invoice.status}, record {has_record}"
        )
        raise InvalidStateError(
            f"Invoice {invoice.invoice_number} status {invoice.status} disagrees with its exoneration record."
        )
