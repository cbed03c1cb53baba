# apps/patients/views.py
from rest_framework import viewsets, filters
from django_filters.rest_framework import DjangoFilterBackend
import logging

from core.permissions import IsAuthenticatedAndActive
from .models import Patient
from .serializers import PatientSerializer

logger = logging.getLogger(__name__)


class PatientViewSet(viewsets.ModelViewSet):
    """
    Patient directory. Any active staff member can register patients;
    deleting deactivates the record so existing invoices keep their patient.
    """
    queryset = Patient.objects.active().select_related('insurance')
    serializer_class = PatientSerializer
    permission_classes = [IsAuthenticatedAndActive]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['insurance', 'nationality']
    search_fields = ['patient_number', 'name', 'cedula', 'phone']
    ordering_fields = ['patient_number', 'name', 'created_at']
    ordering = ['-created_at']

    def perform_create(self, serializer):
        patient = serializer.save(created_by=self.request.user)
        logger.info(f"Patient registered: {patient.patient_number}")

    def perform_update(self, serializer):
        serializer.save(updated_by=self.request.user)

    def perform_destroy(self, instance):
        instance.delete()
        logger.info(f"Patient deactivated: {instance.patient_number}")
