# apps/payments/signals.py

from django.db.models.signals import pre_delete
from django.dispatch import receiver

from core.exceptions import InvalidStateError
from .models import Payment


@receiver(pre_delete, sender=Payment)
def protect_payment_deletion(sender, instance, **kwargs):
    """Cascades and queryset deletes bypass Payment.delete()"""
    raise InvalidStateError('Payments cannot be deleted.')
