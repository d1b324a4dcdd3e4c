"""Spending pattern analysis - historical statistics from transaction history"""

import math
from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List

from cashflow_engine.domain.models import (
    CategoryAverage,
    Direction,
    SpendingPatterns,
    SpendingProfile,
    TransactionRecord,
    TrendDirection,
)
from cashflow_engine.utils.date_utils import month_key, sunday_first_weekday

UNCATEGORISED = "UNCATEGORISED"
TREND_THRESHOLD = 0.1  # ±10% change over the last 3 months


def empty_patterns() -> SpendingPatterns:
    return SpendingPatterns(
        daily_average=0.0,
        weekday_averages=[0.0] * 7,
        category_averages={},
        volatility=0.0,
        trend=TrendDirection.STABLE,
    )


def analyze_spending_patterns(transactions: Iterable[TransactionRecord]) -> SpendingPatterns:
    """
    Derive spending statistics from OUT transactions.

    - daily_average: total spend / days spanned by the history (min 1)
    - weekday_averages: mean transaction amount per weekday, index 0 = Sunday
    - category_averages: category totals / distinct calendar months observed
    - volatility: coefficient of variation of per-day spend totals
    - trend: direction of the last 3 monthly totals

    Empty history yields zeroed statistics rather than an error.
    """
    expenses = [t for t in transactions if t.direction == Direction.OUT]
    if not expenses:
        return empty_patterns()

    weekday_totals = [0.0] * 7
    weekday_counts = [0] * 7
    category_totals: Dict[str, float] = defaultdict(float)
    monthly_totals: Dict[str, float] = defaultdict(float)
    daily_totals: Dict[date, float] = defaultdict(float)

    for txn in expenses:
        amount = abs(txn.amount)
        weekday = sunday_first_weekday(txn.date)
        weekday_totals[weekday] += amount
        weekday_counts[weekday] += 1
        category_totals[txn.category_level1 or UNCATEGORISED] += amount
        monthly_totals[month_key(txn.date)] += amount
        daily_totals[txn.date] += amount

    weekday_averages = [
        total / count if count > 0 else 0.0
        for total, count in zip(weekday_totals, weekday_counts)
    ]

    months = len(monthly_totals) or 1
    category_averages = {category: total / months for category, total in category_totals.items()}

    total_spend = sum(daily_totals.values())
    first_day = min(daily_totals)
    last_day = max(daily_totals)
    days_spanned = (last_day - first_day).days or 1
    daily_average = total_spend / days_spanned

    return SpendingPatterns(
        daily_average=daily_average,
        weekday_averages=weekday_averages,
        category_averages=category_averages,
        volatility=coefficient_of_variation(list(daily_totals.values())),
        trend=classify_trend(monthly_totals),
    )


def coefficient_of_variation(values: List[float]) -> float:
    """Population stdDev / mean; 0 for fewer than 2 samples or a zero mean"""
    if len(values) < 2:
        return 0.0
    mean = sum(values) / len(values)
    if mean == 0:
        return 0.0
    variance = sum((value - mean) ** 2 for value in values) / len(values)
    return math.sqrt(variance) / mean


def classify_trend(monthly_totals: Dict[str, float]) -> TrendDirection:
    """Compare first and last of the most recent 3 monthly totals"""
    ordered = [monthly_totals[key] for key in sorted(monthly_totals)]
    if len(ordered) < 3:
        return TrendDirection.STABLE

    first, _, last = ordered[-3:]
    if first == 0:
        return TrendDirection.STABLE
    change = (last - first) / first

    if change > TREND_THRESHOLD:
        return TrendDirection.INCREASING
    if change < -TREND_THRESHOLD:
        return TrendDirection.DECREASING
    return TrendDirection.STABLE


def build_spending_profile(transactions: Iterable[TransactionRecord]) -> SpendingProfile:
    """Per-category monthly averages with their own trend and volatility"""
    expenses = [t for t in transactions if t.direction == Direction.OUT]
    if not expenses:
        return SpendingProfile()

    all_months = sorted({month_key(t.date) for t in expenses})
    by_category: Dict[str, Dict[str, float]] = defaultdict(lambda: defaultdict(float))
    for txn in expenses:
        by_category[txn.category_level1 or UNCATEGORISED][month_key(txn.date)] += abs(txn.amount)

    category_averages = {}
    for category, monthly in by_category.items():
        # months without spend in this category count as zero
        series = {key: monthly.get(key, 0.0) for key in all_months}
        category_averages[category] = CategoryAverage(
            avg_monthly=sum(series.values()) / len(all_months),
            trend=classify_trend(series),
            volatility=coefficient_of_variation(list(series.values())),
        )

    patterns = analyze_spending_patterns(expenses)
    return SpendingProfile(
        category_averages=category_averages,
        overall_volatility=patterns.volatility,
        predicted_monthly_spend=patterns.daily_average * 30,
    )
