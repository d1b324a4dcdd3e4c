"""Unit tests for income normalisation"""

import pytest

from cashflow_engine.domain.income import (
    TakeHomePay,
    net_income_streams,
    normalize_all_income,
    normalize_income_stream,
)
from cashflow_engine.domain.models import IncomeFrequency, IncomeStream, IncomeType


def flat_tax(gross: float, frequency: IncomeFrequency) -> TakeHomePay:
    """25% PAYG plus 2% Medicare, whatever the frequency"""
    payg = gross * 0.25
    medicare = gross * 0.02
    return TakeHomePay(
        gross_amount=gross,
        net_amount=gross - payg - medicare,
        payg_withholding=payg,
        medicare_levy=medicare,
        effective_tax_rate=27.0,
    )


@pytest.fixture
def gross_salary() -> IncomeStream:
    return IncomeStream(
        id="inc_salary",
        name="Salary",
        type=IncomeType.SALARY,
        monthly_amount=4_000.0,
        frequency=IncomeFrequency.FORTNIGHTLY,
    )


@pytest.fixture
def rental() -> IncomeStream:
    return IncomeStream(
        id="inc_rental",
        name="Unit rent",
        type=IncomeType.RENTAL,
        monthly_amount=2_000.0,
        frequency=IncomeFrequency.MONTHLY,
    )


def test_salary_is_replaced_by_net(gross_salary):
    normalized = normalize_income_stream(gross_salary, flat_tax)

    assert normalized.is_after_tax is True
    assert normalized.gross_amount == 4_000.0
    assert normalized.net_amount == pytest.approx(2_920.0)
    assert normalized.withholding == pytest.approx(1_080.0)
    assert normalized.stream.monthly_amount == pytest.approx(2_920.0)
    assert normalized.stream.frequency == IncomeFrequency.FORTNIGHTLY
    # source stream untouched
    assert gross_salary.monthly_amount == 4_000.0


def test_non_salary_passes_through_gross(rental):
    calls = []

    def tracking_tax(gross, frequency):
        calls.append(gross)
        return flat_tax(gross, frequency)

    normalized = normalize_income_stream(rental, tracking_tax)

    assert calls == []
    assert normalized.is_after_tax is False
    assert normalized.stream is rental
    assert normalized.withholding == 0.0


def test_totals_are_monthly_equivalents(gross_salary, rental):
    result = normalize_all_income([gross_salary, rental], flat_tax)

    # fortnightly amounts scale by 2.17
    assert result.total_gross_monthly == pytest.approx(4_000.0 * 2.17 + 2_000.0)
    assert result.total_net_monthly == pytest.approx(2_920.0 * 2.17 + 2_000.0)
    assert result.total_monthly_withholding == pytest.approx(1_080.0 * 2.17)
    assert len(result.income_streams) == 2


def test_net_income_streams_for_simulator(gross_salary, rental):
    streams = net_income_streams([gross_salary, rental], flat_tax)

    assert [s.monthly_amount for s in streams] == [pytest.approx(2_920.0), 2_000.0]
    assert [s.id for s in streams] == ["inc_salary", "inc_rental"]
