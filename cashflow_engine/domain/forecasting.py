"""Cashflow forecasting engine - day-by-day balance simulation per account and globally"""

import logging
import math
from collections import defaultdict
from datetime import date
from itertools import accumulate
from typing import Dict, List, Optional

from cashflow_engine.config import settings
from cashflow_engine.domain.exceptions import InvalidForecastInputError
from cashflow_engine.domain.models import (
    AccountBalance,
    AccountForecast,
    AccountType,
    ExpenseAllocation,
    ForecastInput,
    ForecastMetadata,
    ForecastOutput,
    ForecastPoint,
    ForecastSummary,
    ShortfallAnalysis,
    SpendingPatterns,
    TransactionRecord,
)
from cashflow_engine.domain.patterns import analyze_spending_patterns
from cashflow_engine.domain.timelines import (
    generate_income_timeline,
    generate_loan_timeline,
    generate_recurring_timeline,
    index_by_date,
)
from cashflow_engine.utils.date_utils import add_days, generate_date_range, sunday_first_weekday

logger = logging.getLogger(__name__)

CONFIDENCE_BASE = 0.95
CONFIDENCE_DECAY_RATE = 0.002  # per day
CONFIDENCE_FLOOR = 0.1
VOLATILITY_WEIGHT = 0.3
BURN_BUFFER_MONTHS = 3


def validate_forecast_input(forecast_input: ForecastInput, max_forecast_days: Optional[int] = None) -> None:
    """
    Reject contract violations before simulating.

    Raises:
        InvalidForecastInputError: horizon out of range, duplicate accounts,
            non-finite amounts, bad repayment days or volatility outside [0, 1]
    """
    max_days = max_forecast_days or settings.max_forecast_days
    days = forecast_input.config.forecast_days

    if not isinstance(forecast_input.today, date):
        raise InvalidForecastInputError("today must be a date")
    if days <= 0:
        raise InvalidForecastInputError(f"forecast_days must be positive, got {days}")
    if days > max_days:
        raise InvalidForecastInputError(f"forecast_days {days} exceeds maximum of {max_days}")

    account_ids = [a.account_id for a in forecast_input.accounts]
    if len(account_ids) != len(set(account_ids)):
        raise InvalidForecastInputError("Duplicate account ids in forecast input")

    amounts = (
        [a.current_balance for a in forecast_input.accounts]
        + [t.amount for t in forecast_input.transactions]
        + [r.expected_amount for r in forecast_input.recurring_payments]
        + [i.monthly_amount for i in forecast_input.income_streams]
        + [l.monthly_repayment for l in forecast_input.loan_schedules]
        + [p.amount for p in forecast_input.planned_expenses]
    )
    if not all(math.isfinite(amount) for amount in amounts):
        raise InvalidForecastInputError("Amounts must be finite numbers")

    for loan in forecast_input.loan_schedules:
        if not 1 <= loan.repayment_day <= 31:
            raise InvalidForecastInputError(
                f"Loan {loan.loan_id} repayment_day must be 1-31, got {loan.repayment_day}"
            )

    for stream in forecast_input.income_streams:
        if not 0 <= stream.volatility <= 1:
            raise InvalidForecastInputError(
                f"Income stream {stream.id} volatility must be within [0, 1], got {stream.volatility}"
            )


def generate_forecast(forecast_input: ForecastInput) -> ForecastOutput:
    """
    Main entry point: simulate every account over the forecast horizon.

    Flow:
    1. Derive spending patterns from history
    2. Expand recurring, income and loan timelines (indexed by date)
    3. Simulate each account as a fold over the day index
    4. Merge account series by date into the global forecast
    5. Analyse shortfalls and summarise
    """
    validate_forecast_input(forecast_input)

    config = forecast_input.config
    today = forecast_input.today
    forecast_days = config.forecast_days

    patterns = analyze_spending_patterns(forecast_input.transactions)
    recurring_timeline = generate_recurring_timeline(forecast_input.recurring_payments, today, forecast_days)
    income_timeline = generate_income_timeline(forecast_input.income_streams, today, forecast_days)
    loan_timeline = generate_loan_timeline(forecast_input.loan_schedules, today, forecast_days)

    primary_id = primary_account_id(forecast_input.accounts)
    known_ids = {a.account_id for a in forecast_input.accounts}
    uniform = config.allocation == ExpenseAllocation.UNIFORM

    def owner(account_id: Optional[str]) -> Optional[str]:
        return account_id if account_id in known_ids else primary_id

    planned_by_account: Dict[Optional[str], Dict[date, float]] = defaultdict(lambda: defaultdict(float))
    for expense in forecast_input.planned_expenses:
        planned_by_account[owner(expense.account_id)][expense.date] += expense.amount

    transactions_by_account: Dict[Optional[str], List[TransactionRecord]] = defaultdict(list)
    for transaction in forecast_input.transactions:
        transactions_by_account[owner(transaction.account_id)].append(transaction)

    account_forecasts = []
    for account in forecast_input.accounts:
        account_id = account.account_id
        if uniform:
            income_by_date = index_by_date(income_timeline, "amount")
            loan_by_date = index_by_date(loan_timeline, "amount")
            account_patterns = patterns
        else:
            income_by_date = index_by_date(
                (e for e in income_timeline if owner(e.account_id) == account_id), "amount"
            )
            loan_by_date = index_by_date(
                (e for e in loan_timeline if owner(e.account_id) == account_id), "amount"
            )
            account_patterns = analyze_spending_patterns(transactions_by_account.get(account_id, []))

        account_forecasts.append(
            simulate_account(
                account=account,
                today=today,
                forecast_days=forecast_days,
                income_by_date=income_by_date,
                recurring_by_date=index_by_date(
                    (e for e in recurring_timeline if owner(e.account_id) == account_id), "expected_amount"
                ),
                loan_by_date=loan_by_date,
                planned_by_date=planned_by_account.get(account_id, {}),
                patterns=account_patterns,
                include_confidence_bands=config.include_confidence_bands,
            )
        )

    global_forecast = merge_account_forecasts(account_forecasts, config.include_confidence_bands)
    shortfall_analysis = analyse_shortfalls(account_forecasts, global_forecast)
    current_balance = sum(a.current_balance for a in forecast_input.accounts)
    summary = calculate_summary(global_forecast, patterns, current_balance)

    logger.debug(
        "Forecast simulated",
        extra={
            "user_id": forecast_input.user_id,
            "accounts": len(account_forecasts),
            "forecast_days": forecast_days,
            "has_shortfall": shortfall_analysis.has_shortfall,
        },
    )

    return ForecastOutput(
        user_id=forecast_input.user_id,
        generated_on=today,
        global_forecast=global_forecast,
        account_forecasts=account_forecasts,
        shortfall_analysis=shortfall_analysis,
        recurring_timeline=recurring_timeline,
        volatility_index=calculate_volatility_index(patterns),
        summary=summary,
        metadata=ForecastMetadata(
            input_transaction_count=len(forecast_input.transactions),
            recurring_payment_count=len(forecast_input.recurring_payments),
            forecast_days=forecast_days,
        ),
    )


def primary_account_id(accounts: List[AccountBalance]) -> Optional[str]:
    """First transactional account, falling back to the first account"""
    for account in accounts:
        if account.account_type == AccountType.TRANSACTIONAL:
            return account.account_id
    return accounts[0].account_id if accounts else None


def calculate_day_confidence(day: int, volatility: float) -> float:
    """Decays with elapsed days, penalised by volatility, floored at 0.1"""
    time_decay = math.exp(-CONFIDENCE_DECAY_RATE * day)
    volatility_penalty = 1 - volatility * VOLATILITY_WEIGHT
    return max(CONFIDENCE_FLOOR, CONFIDENCE_BASE * time_decay * volatility_penalty)


def simulate_account(
    account: AccountBalance,
    today: date,
    forecast_days: int,
    income_by_date: Dict[date, float],
    recurring_by_date: Dict[date, float],
    loan_by_date: Dict[date, float],
    planned_by_date: Dict[date, float],
    patterns: SpendingPatterns,
    include_confidence_bands: bool,
) -> AccountForecast:
    """
    Project one account's balance as a left fold over the day index.

    balance(d) = balance(d-1) + income(d) - expenses(d), balance(-1) = current balance
    """
    dates = generate_date_range(today, add_days(today, forecast_days - 1))
    incomes = [income_by_date.get(d, 0.0) for d in dates]
    recurring = [recurring_by_date.get(d, 0.0) + loan_by_date.get(d, 0.0) for d in dates]
    non_recurring = [
        patterns.weekday_averages[sunday_first_weekday(d)] + planned_by_date.get(d, 0.0)
        for d in dates
    ]
    expenses = [r + n for r, n in zip(recurring, non_recurring)]

    balances = list(
        accumulate(
            (income - expense for income, expense in zip(incomes, expenses)),
            initial=account.current_balance,
        )
    )[1:]

    forecasts = []
    for day, forecast_date in enumerate(dates):
        balance = balances[day]
        is_shortfall = balance < 0
        upper_bound = lower_bound = None
        if include_confidence_bands:
            half_width = patterns.daily_average * patterns.volatility * math.sqrt(day + 1)
            upper_bound = balance + half_width
            lower_bound = balance - half_width

        forecasts.append(
            ForecastPoint(
                date=forecast_date,
                predicted_balance=balance,
                predicted_income=incomes[day],
                predicted_expenses=expenses[day],
                predicted_recurring=recurring[day],
                predicted_non_recurring=non_recurring[day],
                confidence_score=calculate_day_confidence(day, patterns.volatility),
                volatility_factor=patterns.volatility,
                shortfall_risk=is_shortfall,
                shortfall_amount=abs(balance) if is_shortfall else None,
                upper_bound=upper_bound,
                lower_bound=lower_bound,
            )
        )

    return AccountForecast(
        account_id=account.account_id,
        account_name=account.account_name,
        account_type=account.account_type,
        forecasts=forecasts,
        average_balance=sum(balances) / len(balances) if balances else account.current_balance,
        min_balance=min([account.current_balance, *balances]),
        max_balance=max([account.current_balance, *balances]),
        shortfall_days=[p.date for p in forecasts if p.shortfall_risk],
    )


def merge_account_forecasts(
    account_forecasts: List[AccountForecast],
    include_confidence_bands: bool = True,
) -> List[ForecastPoint]:
    """
    Combine account series into one series keyed by date.

    Sums balances and flows, takes the weakest confidence and the highest
    volatility; a day is short if any account is short that day.
    """
    by_date: Dict[date, List[ForecastPoint]] = defaultdict(list)
    for account_forecast in account_forecasts:
        for point in account_forecast.forecasts:
            by_date[point.date].append(point)

    merged = []
    for forecast_date in sorted(by_date):
        points = by_date[forecast_date]
        shorting = [p for p in points if p.shortfall_risk]
        upper_bound = lower_bound = None
        if include_confidence_bands:
            upper_bound = sum(p.upper_bound if p.upper_bound is not None else p.predicted_balance for p in points)
            lower_bound = sum(p.lower_bound if p.lower_bound is not None else p.predicted_balance for p in points)

        merged.append(
            ForecastPoint(
                date=forecast_date,
                predicted_balance=sum(p.predicted_balance for p in points),
                predicted_income=sum(p.predicted_income for p in points),
                predicted_expenses=sum(p.predicted_expenses for p in points),
                predicted_recurring=sum(p.predicted_recurring for p in points),
                predicted_non_recurring=sum(p.predicted_non_recurring for p in points),
                confidence_score=min(p.confidence_score for p in points),
                volatility_factor=max(p.volatility_factor for p in points),
                shortfall_risk=bool(shorting),
                shortfall_amount=sum(p.shortfall_amount or 0.0 for p in shorting) if shorting else None,
                upper_bound=upper_bound,
                lower_bound=lower_bound,
            )
        )

    return merged


def analyse_shortfalls(
    account_forecasts: List[AccountForecast],
    global_forecast: List[ForecastPoint],
) -> ShortfallAnalysis:
    """Collect shortfall dates, worst amount and at-risk accounts"""
    shortfall_points = [p for p in global_forecast if p.shortfall_risk]
    shortfall_dates = [p.date for p in shortfall_points]

    return ShortfallAnalysis(
        has_shortfall=bool(shortfall_dates),
        shortfall_dates=shortfall_dates,
        max_shortfall_amount=max((p.shortfall_amount or 0.0 for p in shortfall_points), default=0.0),
        total_shortfall_days=len(shortfall_dates),
        first_shortfall_date=shortfall_dates[0] if shortfall_dates else None,
        accounts_at_risk=[af.account_id for af in account_forecasts if af.shortfall_days],
    )


def _window_totals(points: List[ForecastPoint]):
    if not points:
        return 0.0, 0.0, 0.0
    avg_balance = sum(p.predicted_balance for p in points) / len(points)
    income = sum(p.predicted_income for p in points)
    expenses = sum(p.predicted_expenses for p in points)
    return avg_balance, income, expenses


def calculate_summary(
    global_forecast: List[ForecastPoint],
    patterns: SpendingPatterns,
    current_balance: float,
) -> ForecastSummary:
    """
    30/90-day rollups plus burn rate.

    Withdrawable cash keeps a 3-month burn buffer and is never negative.
    """
    avg_30, income_30, expenses_30 = _window_totals(global_forecast[:30])
    avg_90, income_90, expenses_90 = _window_totals(global_forecast[:90])

    monthly_burn_rate = patterns.daily_average * 30
    three_month_burn_rate = monthly_burn_rate * BURN_BUFFER_MONTHS

    return ForecastSummary(
        avg_daily_balance_30=avg_30,
        total_income_30=income_30,
        total_expenses_30=expenses_30,
        net_cashflow_30=income_30 - expenses_30,
        avg_daily_balance_90=avg_90,
        total_income_90=income_90,
        total_expenses_90=expenses_90,
        net_cashflow_90=income_90 - expenses_90,
        monthly_burn_rate=monthly_burn_rate,
        three_month_burn_rate=three_month_burn_rate,
        withdrawable_cash=max(0.0, current_balance - three_month_burn_rate),
    )


def calculate_volatility_index(patterns: SpendingPatterns) -> float:
    """Coefficient of variation scaled to 0-100"""
    return min(100.0, patterns.volatility * 100)


def quick_forecast(
    current_balance: float,
    monthly_income: float,
    monthly_expenses: float,
    days: int = 30,
) -> tuple[float, bool]:
    """
    Straight-line projection for dashboards.

    Returns: (end_balance, has_shortfall)
    """
    daily_net = (monthly_income - monthly_expenses) / 30
    end_balance = current_balance + daily_net * days
    return end_balance, end_balance < 0


def days_until_shortfall(current_balance: float, daily_burn_rate: float) -> Optional[int]:
    """Whole days the balance lasts at a constant burn; None if not burning"""
    if daily_burn_rate <= 0:
        return None
    if current_balance <= 0:
        return 0
    return math.floor(current_balance / daily_burn_rate)
