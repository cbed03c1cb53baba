# apps/audit/views.py
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend
import logging

from core.permissions import IsAdmin
from .models import AuditLog
from .serializers import AuditLogSerializer
from .services import verify_chain

logger = logging.getLogger(__name__)


class AuditLogViewSet(viewsets.ReadOnlyModelViewSet):
    """Read-only access to the audit chain for administrators"""
    queryset = AuditLog.objects.select_related('user').order_by('-id')
    serializer_class = AuditLogSerializer
    permission_classes = [IsAdmin]
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ['action', 'model_name', 'object_id', 'user']

    @action(detail=False, methods=['get'])
    def verify(self, request):
        broken = verify_chain()
        if broken:
            logger.error(f"Audit chain verification failed: {len(broken)} broken link(s)")
        return Response({
            'valid': not broken,
            'checked': AuditLog.objects.count(),
            'broken': broken,
        })
