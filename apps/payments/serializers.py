# apps/payments/serializers.py
from rest_framework import serializers

from .models import Payment


class PaymentSerializer(serializers.ModelSerializer):
    invoice_number = serializers.CharField(source='invoice.invoice_number', read_only=True)
    received_by_name = serializers.CharField(source='received_by.full_name', read_only=True, default=None)
    method_display = serializers.CharField(source='get_method_display', read_only=True)

    class Meta:
        model = Payment
        fields = [
            'id', 'payment_number', 'invoice', 'invoice_number',
            'amount', 'method', 'method_display', 'reference', 'notes',
            'received_by', 'received_by_name', 'received_at',
            'is_printed', 'printed_at',
        ]
        read_only_fields = fields
