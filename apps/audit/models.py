# apps/audit/models.py
from django.db import models
from django.core.exceptions import PermissionDenied
from django.utils import timezone

from core.constants import AuditActions


class AuditLog(models.Model):
    user = models.ForeignKey('accounts.User', on_delete=models.SET_NULL, null=True, blank=True)

    action = models.CharField(max_length=20, choices=AuditActions.CHOICES, db_index=True)
    model_name = models.CharField(max_length=50)
    object_id = models.CharField(max_length=64)
    object_repr = models.CharField(max_length=255, blank=True)

    before = models.JSONField(null=True, blank=True)
    after = models.JSONField(null=True, blank=True)
    metadata = models.JSONField(default=dict, blank=True)

    # HASH CHAIN (IMMUTABLE)
    previous_hash = models.CharField(max_length=64, blank=True)
    record_hash = models.CharField(max_length=64, editable=False, db_index=True)

    timestamp = models.DateTimeField(default=timezone.now, editable=False)

    class Meta:
        verbose_name = "Audit Log"
        verbose_name_plural = "Audit Logs"

        # STRICT APPEND-ONLY ORDER
        ordering = ["id"]

        indexes = [
            models.Index(fields=["user", "timestamp"]),
            models.Index(fields=["model_name", "object_id"]),
        ]

    def __str__(self):
        return f"{self.id} | {self.action} | {self.model_name}:{self.object_id}"

    # ============================
    # IMMUTABILITY ENFORCEMENT
    # ============================

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise PermissionDenied("AuditLog is immutable (update forbidden)")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise PermissionDenied("AuditLog cannot be deleted")
