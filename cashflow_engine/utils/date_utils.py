"""Date manipulation utilities"""

import calendar
from datetime import date, timedelta
from typing import List


def generate_date_range(start: date, end: date) -> List[date]:
    """Generate list of dates from start to end (inclusive)"""
    days = (end - start).days + 1
    return [start + timedelta(days=i) for i in range(days)]


def add_days(from_date: date, days: int) -> date:
    return from_date + timedelta(days=days)


def with_day(year: int, month: int, day: int) -> date:
    """Build a date, clamping the day to the last day of the month"""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


def add_months(from_date: date, months: int, day: int | None = None) -> date:
    """
    Calendar-month arithmetic.

    The day of month is clamped to the target month's length, so
    Jan 31 + 1 month = Feb 28/29. Pass `day` to anchor to an original
    day of month instead of from_date.day (avoids drift after clamping).
    """
    month_index = from_date.month - 1 + months
    year = from_date.year + month_index // 12
    month = month_index % 12 + 1
    return with_day(year, month, day if day is not None else from_date.day)


def month_key(value: date) -> str:
    """YYYY-MM bucket key"""
    return f"{value.year}-{value.month:02d}"


def sunday_first_weekday(value: date) -> int:
    """Weekday index with 0 = Sunday ... 6 = Saturday"""
    return (value.weekday() + 1) % 7
