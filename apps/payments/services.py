# apps/payments/services.py
import logging

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.audit.services import log_action
from apps.billing.ledger import recompute
from apps.billing.models import DocumentSequence
from apps.billing.services import lock_invoice, parse_id
from core.constants import AuditActions, PaymentMethods, TERMINAL_STATUSES
from core.exceptions import InvalidAmountError, InvalidStateError, NotFoundError, ValidationError
from core.utils.money import ZERO, to_money
from core.utils.retry import retry_on_conflict
from .models import Payment

logger = logging.getLogger(__name__)


class PaymentService:
    """Records payments against invoices"""

    @staticmethod
    @retry_on_conflict
    @transaction.atomic
    def record_payment(invoice_id, amount, method, notes='', received_by=None, reference=''):
        """
        Append a payment and recompute the invoice ledger in one transaction.

        Overpayment is accepted: pending floors at zero and the invoice is PAID.
        """
        try:
            amount = to_money(amount)
        except ValueError:
            raise InvalidAmountError('Amount must be a number.')
        if amount <= ZERO:
            raise InvalidAmountError('Amount must be greater than zero.')
        if method not in PaymentMethods.values:
            raise ValidationError(f"Unknown payment method: {method}", field='method')

        invoice = lock_invoice(invoice_id)
        if invoice.status in TERMINAL_STATUSES:
            raise InvalidStateError(
                f"Cannot record a payment on a {invoice.get_status_display().lower()} invoice."
            )

        prefix = settings.BILLING.get('PAYMENT_PREFIX', 'PAY-')
        width = settings.BILLING.get('INVOICE_NUMBER_WIDTH', 8)
        payment = Payment.objects.create(
            payment_number=DocumentSequence.next_number(prefix, width),
            invoice=invoice,
            amount=amount,
            method=method,
            reference=reference or '',
            notes=notes or '',
            received_by=received_by,
        )

        state = recompute(invoice)

        log_action(
            instance=payment,
            action=AuditActions.CREATE,
            user=received_by,
            metadata={
                'invoice_number': invoice.invoice_number,
                'status': state.status,
                'pending_amount': str(state.pending_amount),
            },
        )
        logger.info(
            f"Payment {payment.payment_number} of {amount} recorded on {invoice.invoice_number} "
            f"-> {state.status}, pending {state.pending_amount}"
        )
        return payment

    @staticmethod
    @transaction.atomic
    def mark_printed(payment_id, user=None):
        """Idempotent: only the first call sets printed_at"""
        payment_id = parse_id(payment_id, field='payment_id', label='payment')
        updated = Payment.objects.filter(pk=payment_id, is_printed=False).update(
            is_printed=True,
            printed_at=timezone.now(),
        )
        payment = Payment.objects.select_related('invoice').filter(pk=payment_id).first()
        if payment is None:
            raise NotFoundError('Payment not found.')

        if updated:
            log_action(
                instance=payment,
                action=AuditActions.UPDATE,
                user=user,
                metadata={'event': 'receipt_printed'},
            )
            logger.info(f"Receipt printed for payment {payment.payment_number}")
        return payment

    @staticmethod
    def list_for_invoice(invoice_id):
        return Payment.objects.filter(invoice_id=invoice_id).select_related('received_by').order_by('-received_at', '-id')
