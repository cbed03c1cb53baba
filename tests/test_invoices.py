# tests/test_invoices.py
from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from apps.audit.models import AuditLog
from apps.billing.models import DocumentSequence, Invoice, InvoiceItem
from apps.billing.services import InvoiceService
from apps.insurance.models import InsuranceCoverage
from apps.payments.services import PaymentService
from core.constants import InvoiceStatus, PaymentMethods
from core.exceptions import InvalidStateError, NotFoundError, ValidationError

pytestmark = pytest.mark.django_db


def create(patient, items, user, **kwargs):
    return InvoiceService.create_invoice(patient_id=patient.pk, items=items, created_by=user, **kwargs)


class TestCreateInvoice:

    def test_self_pay_invoice(self, patient, consultation, lab_test, billing_user):
        invoice = create(patient, [
            {'service_id': consultation.pk, 'quantity': 1},
            {'service_id': lab_test.pk, 'quantity': 2},
        ], billing_user)

        assert invoice.invoice_number.startswith('INV-')
        assert len(invoice.invoice_number) == 12
        assert invoice.total_amount == Decimal('2000.00')
        assert invoice.total_owed == Decimal('2000.00')
        assert invoice.pending_amount == Decimal('2000.00')
        assert invoice.status == InvoiceStatus.PENDING
        assert invoice.insurance_calculation is None
        assert invoice.items.count() == 2
        assert invoice.created_by == billing_user

    def test_line_totals_and_price_override(self, patient, consultation, billing_user):
        invoice = create(patient, [
            {'service_id': consultation.pk, 'quantity': 3, 'unit_price': Decimal('250.50')},
        ], billing_user)

        item = invoice.items.get()
        assert item.unit_price == Decimal('250.50')
        assert item.line_total == Decimal('751.50')
        assert item.description == 'Consultation'
        assert invoice.total_amount == Decimal('751.50')

    def test_insured_patient_gets_snapshot(self, insured_patient, consultation, billing_user):
        invoice = create(insured_patient, [{'service_id': consultation.pk}], billing_user)

        assert invoice.total_amount == Decimal('1000.00')
        assert invoice.insurance_covers == Decimal('800.00')
        assert invoice.total_owed == Decimal('200.00')
        assert invoice.pending_amount == Decimal('200.00')
        assert invoice.insurance_id == insured_patient.insurance_id
        assert invoice.calculation.items[0].coverage_percent == Decimal('80')

    def test_insurance_can_be_skipped(self, insured_patient, consultation, billing_user):
        invoice = create(insured_patient, [{'service_id': consultation.pk}], billing_user, apply_insurance=False)

        assert invoice.insurance_calculation is None
        assert invoice.insurance is None
        assert invoice.total_owed == Decimal('1000.00')

    def test_snapshot_survives_rule_changes(self, insured_patient, consultation, billing_user):
        invoice = create(insured_patient, [{'service_id': consultation.pk}], billing_user)
        InsuranceCoverage.objects.filter(service=consultation).update(coverage_percent=Decimal('10'))

        invoice.refresh_from_db()
        assert invoice.total_owed == Decimal('200.00')

    def test_zero_total_invoice_is_paid(self, patient, consultation, billing_user):
        invoice = create(patient, [{'service_id': consultation.pk, 'unit_price': Decimal('0')}], billing_user)

        assert invoice.status == InvoiceStatus.PAID
        assert invoice.pending_amount == Decimal('0.00')
        assert invoice.paid_at is not None

    def test_numbers_are_sequential(self, patient, consultation, billing_user):
        first = create(patient, [{'service_id': consultation.pk}], billing_user)
        second = create(patient, [{'service_id': consultation.pk}], billing_user)

        assert int(second.invoice_number[4:]) == int(first.invoice_number[4:]) + 1
        assert DocumentSequence.objects.get(prefix='INV-').last_value == int(second.invoice_number[4:])

    def test_default_due_days(self, settings, patient, consultation, billing_user):
        settings.BILLING = {**settings.BILLING, 'DEFAULT_DUE_DAYS': 30}
        invoice = create(patient, [{'service_id': consultation.pk}], billing_user)

        assert invoice.due_date == timezone.now().date() + timedelta(days=30)

    def test_creation_is_audited(self, patient, consultation, billing_user):
        invoice = create(patient, [{'service_id': consultation.pk}], billing_user)

        log = AuditLog.objects.get(model_name='Invoice', object_id=str(invoice.pk))
        assert log.action == 'CREATE'
        assert log.user == billing_user
        assert log.metadata['total_owed'] == '1000.00'

    def test_empty_items_rejected(self, patient, billing_user):
        with pytest.raises(ValidationError):
            create(patient, [], billing_user)

    def test_unknown_service(self, patient, billing_user):
        with pytest.raises(NotFoundError):
            create(patient, [{'service_id': 999999}], billing_user)

    def test_inactive_service(self, patient, consultation, billing_user):
        consultation.delete()
        with pytest.raises(NotFoundError):
            create(patient, [{'service_id': consultation.pk}], billing_user)

    def test_unknown_patient(self, consultation, billing_user):
        with pytest.raises(NotFoundError):
            InvoiceService.create_invoice(999999, [{'service_id': consultation.pk}], billing_user)

    def test_bad_quantity_creates_nothing(self, patient, consultation, billing_user):
        with pytest.raises(ValidationError):
            create(patient, [{'service_id': consultation.pk, 'quantity': 0}], billing_user)
        assert not Invoice.objects.exists()


class TestImmutability:

    def test_items_cannot_be_changed(self, invoice):
        item = invoice.items.get()
        item.quantity = 5
        with pytest.raises(InvalidStateError):
            item.save()

    def test_items_cannot_be_deleted(self, invoice):
        with pytest.raises(InvalidStateError):
            invoice.items.get().delete()

    def test_invoice_cannot_be_deleted(self, invoice):
        with pytest.raises(InvalidStateError):
            invoice.delete()


class TestCancelInvoice:

    def test_cancel_pending(self, invoice, admin_user):
        InvoiceService.cancel_invoice(invoice.pk, 'Duplicated invoice', admin_user)

        invoice.refresh_from_db()
        assert invoice.status == InvoiceStatus.CANCELLED
        assert invoice.is_cancelled
        assert invoice.cancelled_by == admin_user
        assert invoice.cancel_reason == 'Duplicated invoice'

    def test_cancel_partial_keeps_payments(self, invoice, admin_user):
        PaymentService.record_payment(invoice.pk, Decimal('300.00'), PaymentMethods.CASH)
        InvoiceService.cancel_invoice(invoice.pk, 'Patient dispute', admin_user)

        invoice.refresh_from_db()
        assert invoice.status == InvoiceStatus.CANCELLED
        assert invoice.paid_amount == Decimal('300.00')
        assert invoice.pending_amount == Decimal('700.00')

    def test_cancel_paid(self, invoice, admin_user):
        PaymentService.record_payment(invoice.pk, Decimal('1000.00'), PaymentMethods.CARD)
        InvoiceService.cancel_invoice(invoice.pk, 'Refunded outside the system', admin_user)

        invoice.refresh_from_db()
        assert invoice.status == InvoiceStatus.CANCELLED

    def test_cannot_cancel_twice(self, invoice, admin_user):
        InvoiceService.cancel_invoice(invoice.pk, 'Error', admin_user)
        with pytest.raises(InvalidStateError):
            InvoiceService.cancel_invoice(invoice.pk, 'Again', admin_user)

    def test_reason_required(self, invoice, admin_user):
        with pytest.raises(ValidationError):
            InvoiceService.cancel_invoice(invoice.pk, '   ', admin_user)

        invoice.refresh_from_db()
        assert invoice.status == InvoiceStatus.PENDING

    def test_unknown_invoice(self, admin_user):
        with pytest.raises(NotFoundError):
            InvoiceService.cancel_invoice(999999, 'Missing', admin_user)
