"""
Chart age calculations.

Ages are fractional months: whole calendar months plus the elapsed share of
the event's calendar month. This is the same approximation the CDC infant
tables are keyed by, so it is kept as-is rather than converted to exact days.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime


def _as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def age_in_months(birth_date: date | datetime, event_date: date | datetime) -> float:
    """
    Fractional age in months at event_date.

    Args:
        birth_date: Date of birth
        event_date: Date the measurement was taken

    Returns:
        Age in months, never negative
    """
    birth = _as_date(birth_date)
    event = _as_date(event_date)

    total_months = (event.year - birth.year) * 12 + (event.month - birth.month)
    days = event.day - birth.day
    if days < 0:
        total_months -= 1

    days_in_month = calendar.monthrange(event.year, event.month)[1]
    day_fraction = (days if days >= 0 else days_in_month + days) / days_in_month

    return max(0.0, total_months + day_fraction)


def chart_window_months(birth_date: date | datetime, today: date | datetime | None = None) -> int:
    """
    Upper x-axis bound for a child's chart.

    Current age in whole months plus a one month buffer, kept within 3-36.
    """
    birth = _as_date(birth_date)
    now = _as_date(today) if today is not None else date.today()

    months = (now.year - birth.year) * 12 + (now.month - birth.month)
    if now.day < birth.day:
        months -= 1

    return max(3, min(36, months + 1))
