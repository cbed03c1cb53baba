# apps/payments/views.py
from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from core.permissions import IsAuthenticatedAndActive, IsBillingStaff
from .models import Payment
from .serializers import PaymentSerializer
from .services import PaymentService


# ===========================================
# PAYMENT VIEWSET
# ===========================================
class PaymentViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Payments are created through POST /api/billing/invoices/{id}/payments/
    and are never edited, so this endpoint only reads.
    """
    queryset = Payment.objects.select_related('invoice', 'received_by')
    serializer_class = PaymentSerializer
    permission_classes = [IsAuthenticatedAndActive]
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ['invoice', 'method', 'is_printed', 'received_by']

    def get_permissions(self):
        if self.action == 'print_receipt':
            return [IsBillingStaff()]
        return super().get_permissions()

    @action(detail=True, methods=['post'], url_path='print')
    def print_receipt(self, request, pk=None):
        """Mark the receipt printed (idempotent)"""
        payment = PaymentService.mark_printed(pk, user=request.user)
        return Response({
            'message': 'Receipt marked as printed',
            'payment': PaymentSerializer(payment).data
        }, status=status.HTTP_200_OK)
