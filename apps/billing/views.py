from rest_framework import viewsets, mixins, status, filters
from rest_framework.decorators import action
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from core.permissions import IsAuthenticatedAndActive, IsBillingStaff, IsAdmin
from .models import Invoice, InvoiceExoneration
from .serializers import (
    InvoiceSerializer, InvoiceListSerializer, InvoiceCreateSerializer,
    CancelInvoiceSerializer, RecordPaymentSerializer,
    ExonerationSerializer, ExonerateSerializer,
)
from .services import InvoiceService, ExonerationService
from apps.payments.serializers import PaymentSerializer
from apps.payments.services import PaymentService


# ===========================================
# INVOICE VIEWSET
# ===========================================
class InvoiceViewSet(mixins.CreateModelMixin,
                     mixins.ListModelMixin,
                     mixins.RetrieveModelMixin,
                     viewsets.GenericViewSet):
    """
    Invoices and their items are immutable after creation; money moves only
    through the payments, exonerate and cancel actions.
    """

    queryset = Invoice.objects.select_related(
        'patient', 'insurance', 'exoneration'
    ).prefetch_related('items', 'items__service')

    serializer_class = InvoiceSerializer
    permission_classes = [IsAuthenticatedAndActive]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'patient', 'insurance', 'is_cancelled']
    search_fields = ['invoice_number', 'patient__name', 'patient__patient_number', 'patient__cedula']
    ordering_fields = ['created_at', 'total_amount', 'pending_amount', 'due_date']
    ordering = ['-created_at']

    def get_permissions(self):
        """Set permissions based on action"""
        if self.action in ['create', 'exonerate']:
            return [IsBillingStaff()]
        if self.action == 'payments' and self.request.method == 'POST':
            return [IsBillingStaff()]
        if self.action == 'cancel':
            return [IsAdmin()]
        return super().get_permissions()

    def get_serializer_class(self):
        if self.action == 'list':
            return InvoiceListSerializer
        return super().get_serializer_class()

    def get_queryset(self):
        queryset = super().get_queryset()

        # Filter by date range
        start_date = self.request.query_params.get('start_date')
        end_date = self.request.query_params.get('end_date')
        if start_date:
            queryset = queryset.filter(created_at__date__gte=start_date)
        if end_date:
            queryset = queryset.filter(created_at__date__lte=end_date)

        return queryset

    def create(self, request, *args, **kwargs):
        """Create invoice with items"""
        serializer = InvoiceCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        invoice = InvoiceService.create_invoice(
            patient_id=data['patient_id'],
            items=data['items'],
            created_by=request.user,
            due_date=data.get('due_date'),
            notes=data.get('notes', ''),
            insurance_id=data.get('insurance_id'),
            apply_insurance=data.get('apply_insurance', True),
        )

        invoice = self.get_queryset().get(pk=invoice.pk)
        return Response(InvoiceSerializer(invoice).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['get', 'post'])
    def payments(self, request, pk=None):
        """List payments (newest first) or record a new one"""
        if request.method == 'GET':
            invoice = self.get_object()
            payments = PaymentService.list_for_invoice(invoice.pk)
            return Response(PaymentSerializer(payments, many=True).data)

        serializer = RecordPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        payment = PaymentService.record_payment(
            invoice_id=pk,
            amount=serializer.validated_data['amount'],
            method=serializer.validated_data['method'],
            notes=serializer.validated_data.get('notes', ''),
            reference=serializer.validated_data.get('reference', ''),
            received_by=request.user,
        )
        invoice = self.get_queryset().get(pk=pk)

        return Response({
            'message': 'Payment recorded successfully',
            'payment': PaymentSerializer(payment).data,
            'invoice': InvoiceSerializer(invoice).data,
        }, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def exonerate(self, request, pk=None):
        """Waive all or part of the pending amount"""
        serializer = ExonerateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        exoneration = ExonerationService.exonerate(
            invoice_id=pk,
            reason=serializer.validated_data['reason'],
            authorized_by=request.user,
            exonerated_amount=serializer.validated_data.get('exonerated_amount'),
            authorization_code=serializer.validated_data.get('authorization_code', ''),
            notes=serializer.validated_data.get('notes', ''),
        )
        invoice = self.get_queryset().get(pk=pk)

        return Response({
            'message': 'Invoice exonerated successfully',
            'exoneration': ExonerationSerializer(exoneration).data,
            'invoice': InvoiceSerializer(invoice).data,
        }, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        """Cancel an invoice (administrators only)"""
        serializer = CancelInvoiceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        InvoiceService.cancel_invoice(pk, serializer.validated_data['reason'], request.user)
        invoice = self.get_queryset().get(pk=pk)

        return Response({
            'message': 'Invoice cancelled successfully',
            'invoice': InvoiceSerializer(invoice).data,
        }, status=status.HTTP_200_OK)


# ===========================================
# EXONERATION VIEWSET
# ===========================================
class ExonerationViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = InvoiceExoneration.objects.select_related(
        'invoice', 'invoice__patient', 'authorized_by'
    )
    serializer_class = ExonerationSerializer
    permission_classes = [IsAuthenticatedAndActive]
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ['is_printed', 'invoice', 'invoice__patient', 'authorized_by']

    def get_permissions(self):
        if self.action == 'mark_printed':
            return [IsBillingStaff()]
        return super().get_permissions()

    @action(detail=True, methods=['post'], url_path='mark-printed')
    def mark_printed(self, request, pk=None):
        exoneration = ExonerationService.mark_printed(pk, user=request.user)
        return Response({
            'message': 'Exoneration marked as printed',
            'exoneration': ExonerationSerializer(exoneration).data,
        }, status=status.HTTP_200_OK)
