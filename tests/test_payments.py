# tests/test_payments.py
from decimal import Decimal
from unittest import mock

import pytest

from apps.billing import ledger
from apps.billing.models import Invoice
from apps.billing.services import ExonerationService, InvoiceService
from apps.payments.models import Payment
from apps.payments.services import PaymentService
from core.constants import InvoiceStatus, PaymentMethods
from core.exceptions import (
    ConcurrencyConflictError,
    InvalidAmountError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)

pytestmark = pytest.mark.django_db


def pay(invoice, amount, method=PaymentMethods.CASH, **kwargs):
    return PaymentService.record_payment(invoice.pk, Decimal(amount), method, **kwargs)


class TestRecordPayment:

    def test_partial_then_full(self, invoice, billing_user):
        first = pay(invoice, '400.00', received_by=billing_user)
        invoice.refresh_from_db()
        assert invoice.status == InvoiceStatus.PARTIAL
        assert invoice.paid_amount == Decimal('400.00')
        assert invoice.pending_amount == Decimal('600.00')
        assert first.payment_number.startswith('PAY-')

        pay(invoice, '600.00', received_by=billing_user)
        invoice.refresh_from_db()
        assert invoice.status == InvoiceStatus.PAID
        assert invoice.pending_amount == Decimal('0.00')
        assert invoice.paid_at is not None

    def test_insured_invoice_paid_by_patient_share(self, patient, consultation, insurance, billing_user):
        from apps.insurance.models import InsuranceCoverage

        InsuranceCoverage.objects.filter(insurance=insurance, service=consultation).update(coverage_percent=Decimal('50'))
        patient.insurance = insurance
        patient.save()

        invoice = InvoiceService.create_invoice(patient.pk, [{'service_id': consultation.pk}], billing_user)
        assert invoice.total_owed == Decimal('500.00')

        pay(invoice, '500.00')
        invoice.refresh_from_db()
        assert invoice.status == InvoiceStatus.PAID

    def test_overpayment_is_absorbed(self, invoice):
        pay(invoice, '1200.00')
        invoice.refresh_from_db()
        assert invoice.status == InvoiceStatus.PAID
        assert invoice.paid_amount == Decimal('1200.00')
        assert invoice.pending_amount == Decimal('0.00')

    def test_within_tolerance_counts_as_paid(self, invoice):
        pay(invoice, '999.99')
        invoice.refresh_from_db()
        assert invoice.status == InvoiceStatus.PAID

    def test_paid_amount_never_decreases(self, invoice):
        seen = []
        for amount in ('100.00', '0.01', '250.00', '649.99'):
            pay(invoice, amount)
            invoice.refresh_from_db()
            seen.append(invoice.paid_amount)
        assert seen == sorted(seen)
        assert invoice.paid_amount == Decimal('1000.00')

    def test_ledger_invariant_holds(self, invoice):
        pay(invoice, '123.45')
        pay(invoice, '76.55')
        invoice.refresh_from_db()

        total = sum(p.amount for p in invoice.payments.all())
        assert invoice.paid_amount == total
        assert invoice.paid_amount + invoice.pending_amount == invoice.total_owed

    @pytest.mark.parametrize('amount', ['0', '-10.00'])
    def test_non_positive_amount(self, invoice, amount):
        with pytest.raises(InvalidAmountError):
            pay(invoice, amount)
        assert not Payment.objects.exists()

    def test_non_numeric_amount(self, invoice):
        with pytest.raises(InvalidAmountError):
            PaymentService.record_payment(invoice.pk, 'abc', PaymentMethods.CASH)

    def test_unknown_method(self, invoice):
        with pytest.raises(ValidationError):
            pay(invoice, '10.00', method='BITCOIN')

    def test_unknown_invoice(self):
        with pytest.raises(NotFoundError):
            PaymentService.record_payment(999999, Decimal('10.00'), PaymentMethods.CASH)

    def test_cancelled_invoice_rejects_payment(self, invoice, admin_user):
        InvoiceService.cancel_invoice(invoice.pk, 'Void', admin_user)
        with pytest.raises(InvalidStateError):
            pay(invoice, '10.00')

    def test_exonerated_invoice_rejects_payment(self, invoice, admin_user):
        ExonerationService.exonerate(invoice.pk, 'Charity case', admin_user)
        with pytest.raises(InvalidStateError):
            pay(invoice, '10.00')
        assert not Payment.objects.exists()

    def test_payment_is_audited(self, invoice, billing_user):
        from apps.audit.models import AuditLog

        payment = pay(invoice, '50.00', received_by=billing_user)
        log = AuditLog.objects.get(model_name='Payment', object_id=str(payment.pk))
        assert log.metadata['invoice_number'] == invoice.invoice_number
        assert log.metadata['status'] == InvoiceStatus.PARTIAL


class TestConflictRetry:

    def test_conflict_is_retried_and_rolled_back(self, invoice):
        real_recompute = ledger.recompute
        calls = {'count': 0}

        def flaky(inv):
            calls['count'] += 1
            if calls['count'] == 1:
                raise ConcurrencyConflictError()
            return real_recompute(inv)

        with mock.patch('apps.payments.services.recompute', side_effect=flaky):
            pay(invoice, '100.00')

        assert calls['count'] == 2
        assert Payment.objects.filter(invoice=invoice).count() == 1
        assert Invoice.objects.get(pk=invoice.pk).paid_amount == Decimal('100.00')

    def test_gives_up_after_max_attempts(self, invoice):
        with mock.patch('apps.payments.services.recompute', side_effect=ConcurrencyConflictError()) as patched:
            with pytest.raises(ConcurrencyConflictError):
                pay(invoice, '100.00')

        assert patched.call_count == 3
        assert not Payment.objects.exists()


class TestPaymentRecords:

    def test_payments_are_immutable(self, invoice):
        payment = pay(invoice, '10.00')
        payment.amount = Decimal('999.00')
        with pytest.raises(InvalidStateError):
            payment.save()
        with pytest.raises(InvalidStateError):
            payment.delete()

    def test_list_newest_first(self, invoice):
        first = pay(invoice, '10.00')
        second = pay(invoice, '20.00')

        assert list(PaymentService.list_for_invoice(invoice.pk)) == [second, first]

    def test_mark_printed_is_idempotent(self, invoice):
        payment = pay(invoice, '10.00')

        printed = PaymentService.mark_printed(payment.pk)
        assert printed.is_printed
        first_time = printed.printed_at

        again = PaymentService.mark_printed(payment.pk)
        assert again.printed_at == first_time

    def test_mark_printed_unknown(self):
        with pytest.raises(NotFoundError):
            PaymentService.mark_printed(999999)
