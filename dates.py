"""
Calendar helpers for monthly recurring obligations.

All functions work on ``datetime.date`` values (calendar dates, never
wall-clock instants) and take an optional ``today`` so callers and tests can
pin the reference date.
"""

from calendar import monthrange
from datetime import date
from typing import Optional

MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def _clamped(year: int, month: int, day: int) -> date:
    last_day = monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


def _shift_month(year: int, month: int, n: int):
    index = year * 12 + (month - 1) + n
    return index // 12, index % 12 + 1


def next_due_date(due_day: int, today: Optional[date] = None) -> date:
    """Next occurrence of ``due_day`` on or after ``today``.

    Days past the end of a short month are clamped to its last day, so a
    due day of 31 falls on 30 April.
    """
    if not 1 <= due_day <= 31:
        raise ValueError(f"due day must be between 1 and 31, got {due_day}")
    today = today or date.today()

    occurrence = _clamped(today.year, today.month, due_day)
    if occurrence < today:
        year, month = _shift_month(today.year, today.month, 1)
        occurrence = _clamped(year, month, due_day)
    return occurrence


def days_until_due(due_day: int, today: Optional[date] = None) -> int:
    today = today or date.today()
    return (next_due_date(due_day, today) - today).days


def add_months(value: date, n: int) -> date:
    year, month = _shift_month(value.year, value.month, n)
    return _clamped(year, month, value.day)


def month_key(value: Optional[date] = None) -> str:
    value = value or date.today()
    return f"{value.year:04d}-{value.month:02d}"


def month_label(value: date) -> str:
    return f"{MONTH_ABBR[value.month - 1]}/{value.year:04d}"


def current_month_key(today: Optional[date] = None) -> str:
    return month_key(today or date.today())


def parse_month_key(key: str) -> date:
    """First day of the month named by a ``YYYY-MM`` key."""
    try:
        year, month = key.split("-")
        return date(int(year), int(month), 1)
    except (ValueError, AttributeError) as exc:
        raise ValueError(f"invalid month key: {key!r}") from exc
