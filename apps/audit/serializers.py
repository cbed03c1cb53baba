# apps/audit/serializers.py
from rest_framework import serializers

from .models import AuditLog


class AuditLogSerializer(serializers.ModelSerializer):
    user_email = serializers.CharField(source='user.email', read_only=True, default=None)

    class Meta:
        model = AuditLog
        fields = [
            'id', 'timestamp', 'user', 'user_email', 'action',
            'model_name', 'object_id', 'object_repr',
            'before', 'after', 'metadata',
            'previous_hash', 'record_hash',
        ]
        read_only_fields = fields
