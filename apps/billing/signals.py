# apps/billing/signals.py

from django.db.models.signals import pre_delete
from django.dispatch import receiver

from core.exceptions import InvalidStateError
from .models import Invoice, InvoiceItem, InvoiceExoneration


@receiver(pre_delete, sender=Invoice)
def protect_invoice_deletion(sender, instance, **kwargs):
    raise InvalidStateError(
        f"Invoice {instance.invoice_number} cannot be deleted; cancel it instead."
    )


@receiver(pre_delete, sender=InvoiceItem)
def protect_invoice_item_deletion(sender, instance, **kwargs):
    raise InvalidStateError('Invoice items cannot be deleted.')


@receiver(pre_delete, sender=InvoiceExoneration)
def protect_exoneration_deletion(sender, instance, **kwargs):
    raise InvalidStateError('Exonerations cannot be deleted.')
