# tests/test_calculator.py
from decimal import Decimal
from types import SimpleNamespace

import pytest

from apps.insurance.calculator import (
    InsuranceCalculation,
    LineInput,
    calculate,
    calculate_for_patient,
)
from apps.insurance.models import InsuranceCoverage

PLAN = SimpleNamespace(pk=7, name='Plan Oro', is_active=True)


def line(service_id, price, quantity=1, name=''):
    return LineInput(service_id=service_id, quantity=quantity, unit_price=Decimal(price), service_name=name)


class TestCalculate:

    def test_half_coverage_on_single_line(self):
        result = calculate(PLAN, [line(1, '1000.00')], {1: Decimal('50')})

        item = result.items[0]
        assert item.base_price == Decimal('1000.00')
        assert item.insurance_covers == Decimal('500.00')
        assert item.patient_pays == Decimal('500.00')
        assert result.total_patient_pays == Decimal('500.00')
        assert result.insurance_id == 7
        assert result.insurance_name == 'Plan Oro'

    def test_missing_rule_means_zero_coverage(self):
        result = calculate(PLAN, [line(1, '300.00'), line(2, '200.00')], {1: Decimal('100')})

        assert result.items[1].coverage_percent == Decimal('0')
        assert result.total_insurance_covers == Decimal('300.00')
        assert result.total_patient_pays == Decimal('200.00')

    @pytest.mark.parametrize('plan', [None, SimpleNamespace(pk=3, name='Old', is_active=False)])
    def test_no_plan_or_inactive_plan_is_self_pay(self, plan):
        result = calculate(plan, [line(1, '450.00', quantity=2)], {1: Decimal('90')})

        assert result.total_base_amount == Decimal('900.00')
        assert result.total_insurance_covers == Decimal('0.00')
        assert result.total_patient_pays == Decimal('900.00')
        assert result.insurance_id is None

    def test_percent_is_clamped(self):
        result = calculate(PLAN, [line(1, '100.00'), line(2, '100.00')], {1: Decimal('150'), 2: Decimal('-5')})

        assert result.items[0].coverage_percent == Decimal('100')
        assert result.items[0].patient_pays == Decimal('0.00')
        assert result.items[1].coverage_percent == Decimal('0')
        assert result.items[1].patient_pays == Decimal('100.00')

    @pytest.mark.parametrize('bad_percent', ['abc', Decimal('NaN'), float('inf')])
    def test_non_numeric_percent_is_a_value_error(self, bad_percent):
        with pytest.raises(ValueError):
            calculate(PLAN, [line(1, '100.00')], {1: bad_percent})

    def test_rounding_keeps_line_identity_exact(self):
        # 30.03 * 33.33% = 10.008999 -> 10.01
        result = calculate(PLAN, [line(1, '10.01', quantity=3)], {1: Decimal('33.33')})

        item = result.items[0]
        assert item.base_price == Decimal('30.03')
        assert item.insurance_covers == Decimal('10.01')
        assert item.insurance_covers + item.patient_pays == item.base_price

    def test_totals_equal_sum_of_lines(self):
        lines = [line(i, f'{i * 17}.35', quantity=i) for i in range(1, 6)]
        rules = {i: Decimal(i * 15) for i in range(1, 6)}
        result = calculate(PLAN, lines, rules)

        assert result.total_base_amount == sum(l.base_price for l in result.items)
        assert result.total_insurance_covers + result.total_patient_pays == result.total_base_amount

    def test_zero_price_line(self):
        result = calculate(PLAN, [line(1, '0.00')], {1: Decimal('80')})

        assert result.items[0].insurance_covers == Decimal('0.00')
        assert result.total_patient_pays == Decimal('0.00')

    def test_empty_lines(self):
        result = calculate(PLAN, [], {})
        assert result.items == []
        assert result.total_base_amount == Decimal('0.00')


class TestSnapshot:

    def test_snapshot_is_json_safe_and_reversible(self):
        result = calculate(PLAN, [line(1, '1000.00', name='Consultation')], {1: Decimal('80')})
        snapshot = result.to_snapshot()

        assert snapshot['total_patient_pays'] == '200.00'
        assert snapshot['items'][0]['service_name'] == 'Consultation'

        restored = InsuranceCalculation.from_snapshot(snapshot)
        assert restored.total_patient_pays == Decimal('200.00')
        assert restored.items[0].insurance_covers == Decimal('800.00')
        assert restored.insurance_name == 'Plan Oro'

    def test_empty_snapshot(self):
        assert InsuranceCalculation.from_snapshot(None) is None


@pytest.mark.django_db
class TestCalculateForPatient:

    def test_uses_patient_plan_and_active_rules(self, insured_patient, consultation, lab_test):
        lines = [line(consultation.pk, '1000.00'), line(lab_test.pk, '500.00')]
        result = calculate_for_patient(insured_patient, lines)

        assert result.total_insurance_covers == Decimal('1050.00')
        assert result.total_patient_pays == Decimal('450.00')

    def test_inactive_rule_is_ignored(self, insured_patient, consultation):
        InsuranceCoverage.objects.filter(service=consultation).update(is_active=False)

        result = calculate_for_patient(insured_patient, [line(consultation.pk, '1000.00')])

        assert result.total_patient_pays == Decimal('1000.00')

    def test_patient_without_plan(self, patient, consultation):
        result = calculate_for_patient(patient, [line(consultation.pk, '1000.00')])

        assert result.insurance_id is None
        assert result.total_patient_pays == Decimal('1000.00')
