"""Timeline generators - expand recurring payments, income and loans into dated events"""

from collections import defaultdict
from datetime import date, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from cashflow_engine.domain.models import (
    IncomeFrequency,
    IncomeStream,
    IncomeTimelineEntry,
    LoanSchedule,
    LoanTimelineEntry,
    RecurrencePattern,
    RecurringPaymentData,
    RecurringTimelineEntry,
)
from cashflow_engine.utils.date_utils import add_days, add_months, with_day

# Pattern -> (months, days) per step. Month-based patterns use calendar arithmetic.
RECURRENCE_STEPS: Dict[RecurrencePattern, Tuple[int, int]] = {
    RecurrencePattern.WEEKLY: (0, 7),
    RecurrencePattern.FORTNIGHTLY: (0, 14),
    RecurrencePattern.MONTHLY: (1, 0),
    RecurrencePattern.QUARTERLY: (3, 0),
    RecurrencePattern.ANNUALLY: (12, 0),
}

INCOME_STEPS: Dict[IncomeFrequency, Tuple[int, int]] = {
    IncomeFrequency.WEEKLY: (0, 7),
    IncomeFrequency.FORTNIGHTLY: (0, 14),
    IncomeFrequency.MONTHLY: (1, 0),
    IncomeFrequency.ANNUAL: (12, 0),
}

# Nominal interval used to spread the monthly amount across occurrences
INCOME_INTERVAL_DAYS: Dict[IncomeFrequency, int] = {
    IncomeFrequency.WEEKLY: 7,
    IncomeFrequency.FORTNIGHTLY: 14,
    IncomeFrequency.MONTHLY: 30,
    IncomeFrequency.ANNUAL: 365,
}

MONTHLY_EQUIVALENT: Dict[IncomeFrequency, Callable[[float], float]] = {
    IncomeFrequency.WEEKLY: lambda amount: amount * 4.33,
    IncomeFrequency.FORTNIGHTLY: lambda amount: amount * 2.17,
    IncomeFrequency.MONTHLY: lambda amount: amount,
    IncomeFrequency.ANNUAL: lambda amount: amount / 12,
}


def step_date(anchor: date, step: Tuple[int, int], count: int) -> date:
    """
    The count-th occurrence after anchor.

    Always computed from the anchor rather than the previous occurrence so that
    month-end clamping (Jan 31 -> Feb 28) does not drift later occurrences.
    """
    months, days = step
    if months:
        return add_months(anchor, months * count, day=anchor.day)
    return add_days(anchor, days * count)


def expand_occurrences(anchor: date, step: Tuple[int, int], start: date, end: date) -> List[date]:
    """All occurrences of anchor + k*step inside [start, end]; earlier ones only seed the sequence"""
    occurrences = []
    count = 0
    current = anchor
    while current <= end:
        if current >= start:
            occurrences.append(current)
        count += 1
        current = step_date(anchor, step, count)
    return occurrences


def generate_recurring_timeline(
    recurring_payments: Iterable[RecurringPaymentData],
    today: date,
    forecast_days: int,
) -> List[RecurringTimelineEntry]:
    """Expected occurrences of every active recurring payment within the horizon"""
    end_date = today + timedelta(days=forecast_days)
    timeline = []

    for payment in recurring_payments:
        if not payment.is_active:
            continue
        step = RECURRENCE_STEPS[payment.pattern]
        anchor = payment.next_expected or step_date(payment.last_occurrence, step, 1)

        for occurrence in expand_occurrences(anchor, step, today, end_date):
            timeline.append(
                RecurringTimelineEntry(
                    date=occurrence,
                    recurring_id=payment.id,
                    merchant=payment.merchant,
                    expected_amount=payment.expected_amount,
                    account_id=payment.account_id,
                    category=payment.category,
                )
            )

    return sorted(timeline, key=lambda entry: entry.date)


def income_per_occurrence(stream: IncomeStream) -> float:
    """Monthly-equivalent amount spread evenly across a month's worth of occurrences"""
    monthly_amount = MONTHLY_EQUIVALENT[stream.frequency](stream.monthly_amount)
    occurrences_per_month = 30 / INCOME_INTERVAL_DAYS[stream.frequency]
    return monthly_amount / occurrences_per_month


def generate_income_timeline(
    income_streams: Iterable[IncomeStream],
    today: date,
    forecast_days: int,
) -> List[IncomeTimelineEntry]:
    """Expected income payments within the horizon"""
    end_date = today + timedelta(days=forecast_days)
    timeline = []

    for stream in income_streams:
        step = INCOME_STEPS[stream.frequency]
        anchor = stream.next_expected or step_date(today, step, 1)
        amount = income_per_occurrence(stream)

        for occurrence in expand_occurrences(anchor, step, today, end_date):
            timeline.append(
                IncomeTimelineEntry(
                    date=occurrence,
                    amount=amount,
                    name=stream.name,
                    account_id=stream.account_id,
                )
            )

    return sorted(timeline, key=lambda entry: entry.date)


def generate_loan_timeline(
    loan_schedules: Iterable[LoanSchedule],
    today: date,
    forecast_days: int,
) -> List[LoanTimelineEntry]:
    """One repayment per loan per calendar month on its repayment day"""
    end_date = today + timedelta(days=forecast_days)
    timeline = []

    month_start = today.replace(day=1)

    for loan in loan_schedules:
        offset = 0 if with_day(today.year, today.month, loan.repayment_day) >= today else 1

        while True:
            occurrence = add_months(month_start, offset, day=loan.repayment_day)
            if occurrence > end_date:
                break
            offset += 1
            timeline.append(
                LoanTimelineEntry(
                    date=occurrence,
                    amount=loan.monthly_repayment,
                    loan_id=loan.loan_id,
                    loan_name=loan.loan_name,
                    account_id=loan.repayment_account_id or loan.offset_account_id,
                )
            )

    return sorted(timeline, key=lambda entry: entry.date)


def index_by_date(entries: Iterable, amount_attr: str, account_id: Optional[str] = None) -> Dict[date, float]:
    """
    Sum timeline amounts per date.

    When account_id is given only entries booked to that account are counted.
    """
    indexed: Dict[date, float] = defaultdict(float)
    for entry in entries:
        if account_id is not None and entry.account_id != account_id:
            continue
        indexed[entry.date] += getattr(entry, amount_attr)
    return indexed
