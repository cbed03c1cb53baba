# tests/test_exonerations.py
from decimal import Decimal

import pytest

from apps.billing.models import Invoice, InvoiceExoneration
from apps.billing.services import ExonerationService, InvoiceService, check_exoneration_consistency
from apps.payments.services import PaymentService
from core.constants import InvoiceStatus, PaymentMethods
from core.exceptions import (
    AlreadyExoneratedError,
    InvalidAmountError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)

pytestmark = pytest.mark.django_db


@pytest.fixture
def invoice_780(patient, consultation, billing_user):
    return InvoiceService.create_invoice(
        patient_id=patient.pk,
        items=[{'service_id': consultation.pk, 'unit_price': Decimal('780.00')}],
        created_by=billing_user,
    )


class TestExonerate:

    def test_full_exoneration(self, invoice_780, admin_user):
        exoneration = ExonerationService.exonerate(invoice_780.pk, 'Low income patient', admin_user)

        assert exoneration.original_amount == Decimal('780.00')
        assert exoneration.exonerated_amount == Decimal('780.00')
        assert exoneration.authorized_by == admin_user
        assert not exoneration.is_partial

        invoice_780.refresh_from_db()
        assert invoice_780.status == InvoiceStatus.EXONERATED
        assert invoice_780.pending_amount == Decimal('0.00')
        assert invoice_780.has_exoneration

    def test_partial_exoneration(self, invoice_780, billing_user):
        exoneration = ExonerationService.exonerate(
            invoice_780.pk, 'Discount approved', billing_user,
            exonerated_amount=Decimal('300.00'), authorization_code='AUTH-9'
        )

        assert exoneration.is_partial
        assert exoneration.remaining_amount == Decimal('480.00')
        assert exoneration.authorization_code == 'AUTH-9'

        invoice_780.refresh_from_db()
        assert invoice_780.status == InvoiceStatus.EXONERATED
        assert invoice_780.pending_amount == Decimal('480.00')

    def test_original_amount_is_what_is_still_owed(self, invoice_780, admin_user):
        PaymentService.record_payment(invoice_780.pk, Decimal('180.00'), PaymentMethods.CASH)

        exoneration = ExonerationService.exonerate(invoice_780.pk, 'Hardship', admin_user)

        assert exoneration.original_amount == Decimal('600.00')
        invoice_780.refresh_from_db()
        assert invoice_780.paid_amount == Decimal('180.00')
        assert invoice_780.pending_amount == Decimal('0.00')

    def test_second_exoneration_rejected(self, invoice_780, admin_user):
        first = ExonerationService.exonerate(invoice_780.pk, 'First', admin_user, exonerated_amount=Decimal('100.00'))

        with pytest.raises(AlreadyExoneratedError):
            ExonerationService.exonerate(invoice_780.pk, 'Second', admin_user)

        assert InvoiceExoneration.objects.filter(invoice=invoice_780).count() == 1
        first.refresh_from_db()
        assert first.exonerated_amount == Decimal('100.00')
        assert first.reason == 'First'

    def test_cancelled_invoice_rejected(self, invoice_780, admin_user):
        InvoiceService.cancel_invoice(invoice_780.pk, 'Void', admin_user)
        with pytest.raises(InvalidStateError):
            ExonerationService.exonerate(invoice_780.pk, 'Too late', admin_user)

    def test_paid_invoice_rejected(self, invoice_780, admin_user):
        PaymentService.record_payment(invoice_780.pk, Decimal('780.00'), PaymentMethods.CASH)
        with pytest.raises(InvalidStateError):
            ExonerationService.exonerate(invoice_780.pk, 'Nothing owed', admin_user)

    def test_reason_required(self, invoice_780, admin_user):
        with pytest.raises(ValidationError):
            ExonerationService.exonerate(invoice_780.pk, '', admin_user)
        assert not InvoiceExoneration.objects.exists()

    @pytest.mark.parametrize('amount', ['0', '-1.00', '780.01'])
    def test_amount_bounds(self, invoice_780, admin_user, amount):
        with pytest.raises(InvalidAmountError) as excinfo:
            ExonerationService.exonerate(invoice_780.pk, 'Bad amount', admin_user, exonerated_amount=Decimal(amount))
        assert excinfo.value.field == 'exonerated_amount'
        assert Invoice.objects.get(pk=invoice_780.pk).status == InvoiceStatus.PENDING

    def test_unknown_invoice(self, admin_user):
        with pytest.raises(NotFoundError):
            ExonerationService.exonerate(999999, 'Missing', admin_user)

    def test_exoneration_cannot_be_deleted(self, invoice_780, admin_user):
        exoneration = ExonerationService.exonerate(invoice_780.pk, 'Charity', admin_user)
        with pytest.raises(InvalidStateError):
            exoneration.delete()


class TestConsistency:

    def test_status_and_record_agree(self, invoice_780, admin_user):
        check_exoneration_consistency(invoice_780)
        ExonerationService.exonerate(invoice_780.pk, 'Charity', admin_user)
        invoice_780.refresh_from_db()
        check_exoneration_consistency(invoice_780)

    def test_mismatch_is_reported(self, invoice_780):
        Invoice.objects.filter(pk=invoice_780.pk).update(status=InvoiceStatus.EXONERATED)
        invoice_780.refresh_from_db()
        with pytest.raises(InvalidStateError):
            check_exoneration_consistency(invoice_780)


class TestMarkPrinted:

    def test_idempotent(self, invoice_780, admin_user):
        exoneration = ExonerationService.exonerate(invoice_780.pk, 'Charity', admin_user)

        first = ExonerationService.mark_printed(exoneration.pk, user=admin_user)
        printed_at = first.printed_at
        assert first.is_printed and printed_at is not None

        second = ExonerationService.mark_printed(exoneration.pk, user=admin_user)
        assert second.is_printed
        assert second.printed_at == printed_at

    def test_unknown(self):
        with pytest.raises(NotFoundError):
            ExonerationService.mark_printed(999999)
