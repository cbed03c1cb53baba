from rest_framework import serializers
from django.utils import timezone

from .models import Invoice, InvoiceItem, InvoiceExoneration
from apps.insurance.serializers import ServiceLineSerializer
from apps.patients.models import Patient
from core.constants import PaymentMethods


# ===========================================
# UTILITY SERIALIZERS
# ===========================================
class MinimalPatientSerializer(serializers.ModelSerializer):
    """Minimal patient serializer"""

    class Meta:
        model = Patient
        fields = ['id', 'patient_number', 'name', 'cedula', 'phone']


# ===========================================
# INVOICE ITEM SERIALIZERS
# ===========================================
class InvoiceItemSerializer(serializers.ModelSerializer):
    service_code = serializers.CharField(source='service.code', read_only=True)

    class Meta:
        model = InvoiceItem
        fields = ['id', 'service', 'service_code', 'description', 'quantity', 'unit_price', 'line_total']
        read_only_fields = fields


# ===========================================
# EXONERATION SERIALIZERS
# ===========================================
class ExonerationSerializer(serializers.ModelSerializer):
    invoice_number = serializers.CharField(source='invoice.invoice_number', read_only=True)
    patient = MinimalPatientSerializer(source='invoice.patient', read_only=True)
    authorized_by_name = serializers.CharField(source='authorized_by.full_name', read_only=True)
    remaining_amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = InvoiceExoneration
        fields = [
            'id', 'invoice', 'invoice_number', 'patient',
            'original_amount', 'exonerated_amount', 'remaining_amount',
            'reason', 'authorization_code', 'notes',
            'authorized_by', 'authorized_by_name',
            'is_printed', 'printed_at', 'created_at',
        ]
        read_only_fields = fields


class ExonerateSerializer(serializers.Serializer):
    reason = serializers.CharField(allow_blank=True)
    exonerated_amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, allow_null=True
    )
    authorization_code = serializers.CharField(max_length=60, required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')


# ===========================================
# INVOICE SERIALIZERS
# ===========================================
class InvoiceSerializer(serializers.ModelSerializer):
    """Serializer for Invoice"""

    patient = MinimalPatientSerializer(read_only=True)
    insurance_name = serializers.CharField(source='insurance.name', read_only=True, default=None)
    items = InvoiceItemSerializer(many=True, read_only=True)
    exoneration = serializers.SerializerMethodField()

    # Calculated fields
    total_owed = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    insurance_covers = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = Invoice
        fields = [
            'id', 'invoice_number', 'patient', 'insurance', 'insurance_name',
            'status', 'total_amount', 'insurance_covers', 'total_owed',
            'paid_amount', 'pending_amount', 'due_date', 'notes',
            'insurance_calculation', 'items', 'exoneration',
            'is_cancelled', 'cancelled_at', 'cancelled_by', 'cancel_reason',
            'paid_at', 'created_at', 'updated_at', 'created_by',
        ]
        read_only_fields = fields

    def get_exoneration(self, obj):
        exoneration = obj.exoneration_or_none
        if exoneration is None:
            return None
        return {
            'id': exoneration.id,
            'original_amount': str(exoneration.original_amount),
            'exonerated_amount': str(exoneration.exonerated_amount),
            'reason': exoneration.reason,
            'is_printed': exoneration.is_printed,
            'printed_at': exoneration.printed_at,
        }


class InvoiceListSerializer(serializers.ModelSerializer):
    patient_name = serializers.CharField(source='patient.name', read_only=True)
    patient_number = serializers.CharField(source='patient.patient_number', read_only=True)
    total_owed = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = Invoice
        fields = [
            'id', 'invoice_number', 'patient', 'patient_name', 'patient_number',
            'status', 'total_amount', 'total_owed', 'paid_amount', 'pending_amount',
            'due_date', 'created_at',
        ]
        read_only_fields = fields


class InvoiceCreateSerializer(serializers.Serializer):
    """Serializer for creating invoices with items"""

    patient_id = serializers.IntegerField()
    insurance_id = serializers.IntegerField(required=False, allow_null=True)
    apply_insurance = serializers.BooleanField(default=True)
    due_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    items = ServiceLineSerializer(many=True, allow_empty=False)

    def validate_due_date(self, value):
        if value and value < timezone.now().date():
            raise serializers.ValidationError('Due date cannot be in the past')
        return value


class CancelInvoiceSerializer(serializers.Serializer):
    reason = serializers.CharField(allow_blank=True)


class RecordPaymentSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    method = serializers.ChoiceField(choices=PaymentMethods.choices, default=PaymentMethods.CASH)
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')
