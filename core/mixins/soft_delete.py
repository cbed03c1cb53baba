# core/mixins/soft_delete.py

from django.db import models, transaction
from django.utils import timezone


class ActiveQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_active=True)


class SoftDeleteMixin(models.Model):
    """
    Directory records (patients, catalog services, insurance plans) are
    referenced by invoices, so they are deactivated instead of deleted.
    """
    is_active = models.BooleanField(default=True)
    deleted_at = models.DateTimeField(null=True, blank=True, editable=False)

    objects = ActiveQuerySet.as_manager()

    def delete(self, *args, **kwargs):
        with transaction.atomic():
            self.is_active = False
            self.deleted_at = timezone.now()
            self.save(update_fields=['is_active', 'deleted_at'])

    class Meta:
        abstract = True
