# apps/insurance/calculator.py
"""
Insurance coverage calculation.

`calculate` is a pure function: it never touches the database, so the same
inputs always give the same breakdown. `calculate_for_patient` is the thin
database-facing wrapper used by invoice creation and the preview endpoint.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

from core.utils.money import ZERO, HUNDRED, to_money, clamp_percent


@dataclass(frozen=True)
class LineInput:
    service_id: int
    quantity: int
    unit_price: Decimal
    service_name: str = ''

    @property
    def base_price(self):
        return to_money(Decimal(self.quantity) * to_money(self.unit_price))


@dataclass
class CoverageLine:
    service_id: int
    service_name: str
    quantity: int
    unit_price: Decimal
    base_price: Decimal
    coverage_percent: Decimal
    insurance_covers: Decimal
    patient_pays: Decimal


@dataclass
class InsuranceCalculation:
    items: List[CoverageLine] = field(default_factory=list)
    total_base_amount: Decimal = ZERO
    total_insurance_covers: Decimal = ZERO
    total_patient_pays: Decimal = ZERO
    insurance_id: Optional[int] = None
    insurance_name: str = ''

    def to_snapshot(self) -> dict:
        """JSON-safe dict stored on the invoice; money as strings"""
        return {
            'insurance_id': self.insurance_id,
            'insurance_name': self.insurance_name,
            'items': [
                {
                    'service_id': line.service_id,
                    'service_name': line.service_name,
                    'quantity': line.quantity,
                    'unit_price': str(line.unit_price),
                    'base_price': str(line.base_price),
                    'coverage_percent': str(line.coverage_percent),
                    'insurance_covers': str(line.insurance_covers),
                    'patient_pays': str(line.patient_pays),
                }
                for line in self.items
            ],
            'total_base_amount': str(self.total_base_amount),
            'total_insurance_covers': str(self.total_insurance_covers),
            'total_patient_pays': str(self.total_patient_pays),
        }

    @classmethod
    def from_snapshot(cls, data):
        if not data:
            return None
        items = [
            CoverageLine(
                service_id=item.get('service_id'),
                service_name=item.get('service_name', ''),
                quantity=int(item.get('quantity', 0)),
                unit_price=to_money(item.get('unit_price')),
                base_price=to_money(item.get('base_price')),
                coverage_percent=Decimal(str(item.get('coverage_percent', '0'))),
                insurance_covers=to_money(item.get('insurance_covers')),
                patient_pays=to_money(item.get('patient_pays')),
            )
            for item in data.get('items', [])
        ]
        return cls(
            items=items,
            total_base_amount=to_money(data.get('total_base_amount')),
            total_insurance_covers=to_money(data.get('total_insurance_covers')),
            total_patient_pays=to_money(data.get('total_patient_pays')),
            insurance_id=data.get('insurance_id'),
            insurance_name=data.get('insurance_name', ''),
        )


def calculate(insurance, line_items: List[LineInput], coverage_rules: Dict[int, Decimal]) -> InsuranceCalculation:
    """
    Split every line between insurer and patient.

    A missing or inactive plan means full self-pay. Services without a rule
    are covered at 0%. Percentages are clamped to [0, 100].
    """
    plan_active = insurance is not None and getattr(insurance, 'is_active', True)
    rules = coverage_rules if plan_active else {}

    lines = []
    for item in line_items:
        base = item.base_price
        pct = clamp_percent(rules.get(item.service_id, 0))
        covers = to_money(base * pct / HUNDRED)
        lines.append(CoverageLine(
            service_id=item.service_id,
            service_name=item.service_name,
            quantity=item.quantity,
            unit_price=to_money(item.unit_price),
            base_price=base,
            coverage_percent=pct,
            insurance_covers=covers,
            # subtraction keeps covers + pays == base exact per line
            patient_pays=base - covers,
        ))

    return InsuranceCalculation(
        items=lines,
        total_base_amount=sum((l.base_price for l in lines), ZERO),
        total_insurance_covers=sum((l.insurance_covers for l in lines), ZERO),
        total_patient_pays=sum((l.patient_pays for l in lines), ZERO),
        insurance_id=insurance.pk if plan_active else None,
        insurance_name=insurance.name if plan_active else '',
    )


def calculate_for_patient(patient, line_items, insurance=None):
    """Resolve the plan (explicit or the patient's own) and its rules, then calculate"""
    from .models import coverage_map

    plan = insurance if insurance is not None else getattr(patient, 'insurance', None)
    rules = {}
    if plan is not None and plan.is_active:
        rules = coverage_map(plan, [item.service_id for item in line_items])
    return calculate(plan, line_items, rules)
