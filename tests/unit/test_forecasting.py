"""Unit tests for the forecast simulator and shortfall analysis"""

import math
from dataclasses import replace
from datetime import date, timedelta

import pytest

from cashflow_engine.domain.exceptions import InvalidForecastInputError
from cashflow_engine.domain.forecasting import (
    calculate_day_confidence,
    days_until_shortfall,
    generate_forecast,
    merge_account_forecasts,
    quick_forecast,
    validate_forecast_input,
)
from cashflow_engine.domain.models import (
    AccountBalance,
    AccountType,
    Direction,
    ExpenseAllocation,
    ForecastConfig,
    ForecastInput,
    IncomeFrequency,
    IncomeStream,
    IncomeType,
    LoanSchedule,
    PlannedExpense,
    RecurrencePattern,
    RecurringPaymentData,
    TransactionRecord,
)


@pytest.fixture
def two_account_input(today, spending_history) -> ForecastInput:
    """Everyday account with history, a loan and a planned expense, plus a savings account"""
    return ForecastInput(
        user_id="user_two_accounts",
        today=today,
        accounts=[
            AccountBalance("acc_everyday", "Everyday", AccountType.TRANSACTIONAL, 1_000.0),
            AccountBalance("acc_savings", "Savings", AccountType.SAVINGS, 5_000.0),
        ],
        transactions=spending_history,
        income_streams=[
            IncomeStream(
                id="inc_salary",
                name="Salary",
                type=IncomeType.SALARY,
                monthly_amount=2_000.0,
                frequency=IncomeFrequency.FORTNIGHTLY,
                next_expected=date(2025, 1, 10),
            )
        ],
        loan_schedules=[
            LoanSchedule(
                loan_id="loan_car",
                loan_name="Car Loan",
                principal=20_000.0,
                interest_rate=0.08,
                monthly_repayment=450.0,
                repayment_day=15,
                repayment_account_id="acc_everyday",
            )
        ],
        planned_expenses=[
            PlannedExpense(
                id="pe_holiday",
                description="Holiday",
                amount=2_500.0,
                date=date(2025, 2, 3),
                account_id="acc_everyday",
            )
        ],
        config=ForecastConfig(forecast_days=60),
    )


def test_baseline_forecast_scenario(baseline_input):
    """$10k balance, +$5k on the 1st, -$4.5k on the 5th for 90 days ends near $11.5k"""
    forecast = generate_forecast(baseline_input)

    assert len(forecast.global_forecast) == 90
    assert forecast.global_forecast[-1].predicted_balance == pytest.approx(11_500.0)
    assert forecast.shortfall_analysis.has_shortfall is False
    assert forecast.shortfall_analysis.first_shortfall_date is None
    assert forecast.generated_on == baseline_input.today


def test_shortfall_scenario(today, everyday_account):
    """$500 balance and a $1,000 bill on day 3 with no income"""
    forecast_input = ForecastInput(
        user_id="user_short",
        today=today,
        accounts=[replace(everyday_account, current_balance=500.0)],
        recurring_payments=[
            RecurringPaymentData(
                id="rp_bill",
                merchant="Energy Co",
                account_id="acc_everyday",
                pattern=RecurrencePattern.MONTHLY,
                expected_amount=1_000.0,
                last_occurrence=date(2024, 12, 3),
                next_expected=today + timedelta(days=2),
            )
        ],
        config=ForecastConfig(forecast_days=30),
    )

    forecast = generate_forecast(forecast_input)
    day_three = forecast.account_forecasts[0].forecasts[2]

    assert day_three.predicted_balance == pytest.approx(-500.0)
    assert day_three.shortfall_risk is True
    assert day_three.shortfall_amount == pytest.approx(500.0)
    assert forecast.shortfall_analysis.first_shortfall_date == today + timedelta(days=2)
    assert forecast.shortfall_analysis.max_shortfall_amount == pytest.approx(500.0)
    assert forecast.shortfall_analysis.accounts_at_risk == ["acc_everyday"]


def test_balance_recurrence(two_account_input):
    """Each day's balance is the previous balance plus income minus expenses"""
    forecast = generate_forecast(two_account_input)

    for account_forecast, account in zip(forecast.account_forecasts, two_account_input.accounts):
        previous = account.current_balance
        for point in account_forecast.forecasts:
            expected = previous + point.predicted_income - point.predicted_expenses
            assert point.predicted_balance == pytest.approx(expected)
            assert point.predicted_expenses == pytest.approx(
                point.predicted_recurring + point.predicted_non_recurring
            )
            previous = point.predicted_balance


def test_confidence_is_monotonic_and_bounded():
    for volatility in (0.0, 0.4, 1.0):
        scores = [calculate_day_confidence(day, volatility) for day in range(0, 2000, 7)]
        assert all(0.1 <= s <= 0.95 for s in scores)
        assert all(a >= b for a, b in zip(scores, scores[1:]))

    assert calculate_day_confidence(0, 0.0) == pytest.approx(0.95)
    assert calculate_day_confidence(5000, 0.0) == 0.1


def test_shortfall_consistency(two_account_input):
    forecast = generate_forecast(replace(two_account_input, planned_expenses=[
        replace(two_account_input.planned_expenses[0], amount=9_000.0)
    ]))

    any_short = False
    for account_forecast in forecast.account_forecasts:
        for point in account_forecast.forecasts:
            assert point.shortfall_risk == (point.predicted_balance < 0)
            any_short = any_short or point.shortfall_risk

    assert any_short is True
    assert forecast.shortfall_analysis.has_shortfall == any_short
    assert forecast.shortfall_analysis.total_shortfall_days == len(forecast.shortfall_analysis.shortfall_dates)


def test_global_aggregation(two_account_input):
    forecast = generate_forecast(two_account_input)

    for day, point in enumerate(forecast.global_forecast):
        total = sum(af.forecasts[day].predicted_balance for af in forecast.account_forecasts)
        assert point.predicted_balance == pytest.approx(total)


def test_merge_keys_by_date_when_lengths_differ(two_account_input):
    forecast = generate_forecast(two_account_input)
    long_series, short_series = forecast.account_forecasts
    truncated = replace(short_series, forecasts=short_series.forecasts[:10])

    merged = merge_account_forecasts([long_series, truncated])

    assert len(merged) == len(long_series.forecasts)
    assert merged[20].predicted_balance == pytest.approx(long_series.forecasts[20].predicted_balance)


def test_forecast_is_idempotent(two_account_input):
    assert generate_forecast(two_account_input) == generate_forecast(two_account_input)


def test_scoped_allocation_books_loans_and_spend_to_owner(two_account_input):
    forecast = generate_forecast(two_account_input)
    everyday, savings = forecast.account_forecasts

    loan_day = date(2025, 1, 15)
    everyday_point = next(p for p in everyday.forecasts if p.date == loan_day)
    savings_point = next(p for p in savings.forecasts if p.date == loan_day)

    assert everyday_point.predicted_recurring == pytest.approx(450.0)
    assert savings_point.predicted_recurring == 0.0
    # savings has no history, so no weekday estimate and no unassigned income
    assert all(p.predicted_non_recurring == 0.0 for p in savings.forecasts)
    assert all(p.predicted_income == 0.0 for p in savings.forecasts)
    assert savings.min_balance == savings.max_balance == 5_000.0


def test_uniform_allocation_applies_to_every_account(two_account_input):
    uniform = replace(
        two_account_input,
        config=replace(two_account_input.config, allocation=ExpenseAllocation.UNIFORM),
    )

    forecast = generate_forecast(uniform)
    everyday, savings = forecast.account_forecasts

    loan_day = date(2025, 1, 15)
    assert next(p for p in savings.forecasts if p.date == loan_day).predicted_recurring == pytest.approx(450.0)
    assert next(p for p in everyday.forecasts if p.date == loan_day).predicted_recurring == pytest.approx(450.0)
    # Wednesday groceries estimate is charged to savings too
    wednesday = next(p for p in savings.forecasts if p.date == date(2025, 1, 8))
    assert wednesday.predicted_non_recurring == pytest.approx(150.0)


def test_planned_expense_hits_its_date(two_account_input):
    forecast = generate_forecast(two_account_input)
    everyday = forecast.account_forecasts[0]

    point = next(p for p in everyday.forecasts if p.date == date(2025, 2, 3))
    day_before = next(p for p in everyday.forecasts if p.date == date(2025, 2, 2))

    assert point.predicted_non_recurring >= 2_500.0
    assert day_before.predicted_non_recurring < 2_500.0


def test_planned_expense_unknown_account_falls_back_to_primary(two_account_input):
    orphan = replace(two_account_input.planned_expenses[0], account_id="acc_closed")
    forecast = generate_forecast(replace(two_account_input, planned_expenses=[orphan]))

    savings = forecast.account_forecasts[1]
    assert all(p.predicted_non_recurring == 0.0 for p in savings.forecasts)


def test_recurring_payment_unknown_account_falls_back_to_primary(today, everyday_account, rent):
    """Bill booked to an account missing from the snapshot still reduces the balance"""
    orphan_bill = replace(rent, account_id="acc_missing")
    forecast_input = ForecastInput(
        user_id="user_orphan_bill",
        today=today,
        accounts=[everyday_account],
        recurring_payments=[orphan_bill],
        config=ForecastConfig(forecast_days=10),
    )

    forecast = generate_forecast(forecast_input)

    assert forecast.global_forecast[-1].predicted_balance == pytest.approx(5_500.0)
    bill_day = next(p for p in forecast.account_forecasts[0].forecasts if p.date == date(2025, 1, 5))
    assert bill_day.predicted_recurring == pytest.approx(4_500.0)


def test_spend_history_unknown_account_falls_back_to_primary(today, everyday_account):
    """Card spend without a card account is estimated on the primary account"""
    card_spend = [
        TransactionRecord(
            id=f"txn_card_{day}",
            account_id="acc_card",
            date=today - timedelta(days=day),
            amount=50.0,
            direction=Direction.OUT,
            category_level1="Dining Out",
        )
        for day in range(1, 29)
    ]
    forecast_input = ForecastInput(
        user_id="user_card",
        today=today,
        accounts=[everyday_account],
        transactions=card_spend,
        config=ForecastConfig(forecast_days=30),
    )

    forecast = generate_forecast(forecast_input)

    assert forecast.summary.total_expenses_30 == pytest.approx(1_500.0)
    assert forecast.global_forecast[-1].predicted_balance == pytest.approx(8_500.0)
    assert forecast.summary.monthly_burn_rate > 0


def test_confidence_bands_summed_globally(two_account_input):
    forecast = generate_forecast(two_account_input)

    for day, point in enumerate(forecast.global_forecast):
        upper = sum(af.forecasts[day].upper_bound for af in forecast.account_forecasts)
        assert point.upper_bound == pytest.approx(upper)
        assert point.lower_bound <= point.predicted_balance <= point.upper_bound


def test_confidence_bands_can_be_disabled(two_account_input):
    no_bands = replace(
        two_account_input,
        config=replace(two_account_input.config, include_confidence_bands=False),
    )

    forecast = generate_forecast(no_bands)

    assert all(p.upper_bound is None and p.lower_bound is None for p in forecast.global_forecast)


def test_summary_rollups(baseline_input):
    forecast = generate_forecast(baseline_input)
    summary = forecast.summary

    assert summary.total_income_30 == pytest.approx(5_000.0)
    assert summary.total_expenses_30 == pytest.approx(4_500.0)
    assert summary.net_cashflow_30 == pytest.approx(500.0)
    assert summary.net_cashflow_90 == pytest.approx(1_500.0)
    # no history: no burn, all cash withdrawable
    assert summary.monthly_burn_rate == 0.0
    assert summary.withdrawable_cash == pytest.approx(10_000.0)


def test_withdrawable_cash_never_negative(two_account_input):
    poor = replace(
        two_account_input,
        accounts=[replace(a, current_balance=10.0) for a in two_account_input.accounts],
    )

    assert generate_forecast(poor).summary.withdrawable_cash == 0.0


def test_no_accounts_yields_empty_forecast(today):
    forecast = generate_forecast(ForecastInput(user_id="nobody", today=today))

    assert forecast.global_forecast == []
    assert forecast.shortfall_analysis.has_shortfall is False
    assert forecast.summary.avg_daily_balance_30 == 0.0


@pytest.mark.parametrize("forecast_days", [0, -5, 5000])
def test_invalid_horizon_rejected(baseline_input, forecast_days):
    bad = replace(baseline_input, config=ForecastConfig(forecast_days=forecast_days))

    with pytest.raises(InvalidForecastInputError):
        generate_forecast(bad)


def test_duplicate_accounts_rejected(baseline_input, everyday_account):
    bad = replace(baseline_input, accounts=[everyday_account, everyday_account])

    with pytest.raises(InvalidForecastInputError, match="Duplicate"):
        validate_forecast_input(bad)


def test_non_finite_amounts_rejected(baseline_input, everyday_account):
    bad = replace(baseline_input, accounts=[replace(everyday_account, current_balance=math.nan)])

    with pytest.raises(InvalidForecastInputError, match="finite"):
        validate_forecast_input(bad)


def test_income_volatility_out_of_range_rejected(baseline_input, salary):
    bad = replace(baseline_input, income_streams=[replace(salary, volatility=1.5)])

    with pytest.raises(InvalidForecastInputError, match="volatility"):
        validate_forecast_input(bad)


def test_quick_forecast():
    assert quick_forecast(1_000.0, 3_000.0, 4_500.0, days=30) == (pytest.approx(-500.0), True)
    assert quick_forecast(1_000.0, 3_000.0, 3_000.0) == (1_000.0, False)


def test_days_until_shortfall():
    assert days_until_shortfall(1_000.0, 0.0) is None
    assert days_until_shortfall(-10.0, 50.0) == 0
    assert days_until_shortfall(1_000.0, 30.0) == 33
