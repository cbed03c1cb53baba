# apps/insurance/views.py
from rest_framework import viewsets, filters, status
from rest_framework.response import Response
from rest_framework.views import APIView
from django_filters.rest_framework import DjangoFilterBackend
import logging

from core.exceptions import NotFoundError
from core.permissions import IsBillingStaff, IsBillingStaffOrReadOnly
from apps.catalog.services import resolve_line_items
from apps.patients.models import Patient
from .calculator import calculate_for_patient
from .models import Insurance, InsuranceCoverage
from .serializers import (
    InsuranceSerializer,
    InsuranceCoverageSerializer,
    CoverageRequestSerializer,
    InsuranceCalculationSerializer,
)

logger = logging.getLogger(__name__)


class InsuranceViewSet(viewsets.ModelViewSet):
    queryset = Insurance.objects.all()
    serializer_class = InsuranceSerializer
    permission_classes = [IsBillingStaffOrReadOnly]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ['is_active']
    search_fields = ['name']

    def perform_create(self, serializer):
        serializer.save(created_by=self.request.user)

    def perform_update(self, serializer):
        serializer.save(updated_by=self.request.user)


class InsuranceCoverageViewSet(viewsets.ModelViewSet):
    """
    Coverage rules. POSTing a rule for an existing (insurance, service) pair
    updates that rule instead of failing.
    """
    queryset = InsuranceCoverage.objects.select_related('insurance', 'service')
    serializer_class = InsuranceCoverageSerializer
    permission_classes = [IsBillingStaffOrReadOnly]
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ['insurance', 'service', 'is_active']

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        rule = serializer.save(created_by=request.user)
        created = getattr(serializer, '_created', True)
        logger.info(
            f"Coverage rule {'created' if created else 'updated'}: "
            f"{rule.insurance.name}/{rule.service.code} = {rule.coverage_percent}%"
        )
        return Response(
            self.get_serializer(rule).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK
        )

    def perform_update(self, serializer):
        serializer.save(updated_by=self.request.user)


class CalculateCoverageView(APIView):
    """Preview the insurer/patient split before an invoice is created"""
    permission_classes = [IsBillingStaff]

    def post(self, request):
        serializer = CoverageRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        patient = Patient.objects.select_related('insurance').filter(pk=data['patient_id']).first()
        if patient is None:
            raise NotFoundError('Patient not found.')

        insurance = None
        if data.get('insurance_id'):
            insurance = Insurance.objects.filter(pk=data['insurance_id']).first()
            if insurance is None:
                raise NotFoundError('Insurance not found.')

        lines, _ = resolve_line_items(data['services'])
        calculation = calculate_for_patient(patient, lines, insurance=insurance)

        return Response(InsuranceCalculationSerializer(calculation).data)
