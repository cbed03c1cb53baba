# core/utils/money.py
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

from django.conf import settings

ZERO = Decimal('0.00')
CENT = Decimal('0.01')
HUNDRED = Decimal('100')


def to_money(value):
    """Coerce to a Decimal rounded half-up to cents"""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        try:
            # str() first so floats do not carry binary noise into the Decimal
            value = Decimal(str(value))
        except (InvalidOperation, ValueError) as e:
            raise ValueError(f"Invalid monetary value: {value!r}") from e
    if not value.is_finite():
        raise ValueError(f"Invalid monetary value: {value!r}")
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def money_tolerance():
    return Decimal(settings.BILLING.get('MONEY_TOLERANCE', '0.01'))


def clamp_percent(value):
    """Clamp a coverage percentage into [0, 100]"""
    if value is None:
        return Decimal('0')
    try:
        pct = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid percentage: {value!r}") from e
    if not pct.is_finite():
        raise ValueError(f"Invalid percentage: {value!r}")
    if pct < 0:
        return Decimal('0')
    if pct > HUNDRED:
        return HUNDRED
    return pct
