# apps/catalog/services.py
import logging

from core.exceptions import NotFoundError, ValidationError
from core.utils.money import to_money
from apps.insurance.calculator import LineInput
from .models import Service

logger = logging.getLogger(__name__)


def resolve_line_items(items):
    """
    Turn raw [{'service_id', 'quantity', 'unit_price'?}] into LineInput rows.

    Every service must exist and be active. The catalog price is used when
    no unit price is given. Returns (line_inputs, {service_id: Service}).
    """
    if not items:
        raise ValidationError('At least one service is required.', field='items')

    service_ids = {item['service_id'] for item in items}
    services = {s.pk: s for s in Service.objects.filter(pk__in=service_ids, is_active=True)}
    missing = service_ids - set(services)
    if missing:
        raise NotFoundError(f"Service not found or inactive: {', '.join(str(i) for i in sorted(missing))}")

    lines = []
    for item in items:
        service = services[item['service_id']]
        quantity = int(item.get('quantity', 1))
        if quantity < 1:
            raise ValidationError('Quantity must be at least 1.', field='quantity')

        unit_price = item.get('unit_price')
        unit_price = service.price if unit_price is None else to_money(unit_price)
        if unit_price < 0:
            raise ValidationError('Unit price cannot be negative.', field='unit_price')

        lines.append(LineInput(
            service_id=service.pk,
            quantity=quantity,
            unit_price=to_money(unit_price),
            service_name=service.name,
        ))

    return lines, services
