"""Aggregations over recurring expenses."""

from datetime import date
from typing import Dict, Iterable, List, Optional

from dates import days_until_due
from models import Category, Expense

UPCOMING_WINDOW_DAYS = 7


def active_expenses(expenses: Iterable[Expense]) -> List[Expense]:
    return [e for e in expenses if e.is_active]


def total_monthly(expenses: Iterable[Expense]) -> float:
    """Monthly obligation: sum of values of active expenses only."""
    return sum(e.value for e in active_expenses(expenses))


def by_category(expenses: Iterable[Expense]) -> Dict[Category, List[Expense]]:
    """Partition active expenses into the six category buckets.

    Every category key is present, empty buckets included. Input order is
    preserved within a bucket.
    """
    grouped = {category: [] for category in Category}
    for expense in active_expenses(expenses):
        grouped[expense.category].append(expense)
    return grouped


def upcoming(
    expenses: Iterable[Expense],
    window_days: int = UPCOMING_WINDOW_DAYS,
    today: Optional[date] = None,
) -> List[Expense]:
    """Active expenses due within ``window_days`` (inclusive), soonest first.

    Expenses without a due day never qualify. ``sorted`` is stable, so ties
    keep input order.
    """
    today = today or date.today()
    due = []
    for expense in active_expenses(expenses):
        if expense.due_day is None:
            continue
        days = days_until_due(expense.due_day, today)
        if 0 <= days <= window_days:
            due.append((days, expense))
    return [expense for _, expense in sorted(due, key=lambda pair: pair[0])]
