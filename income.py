"""Aggregations over income records."""

from datetime import date
from typing import Iterable, Optional

import pandas as pd

from dates import current_month_key
from models import Income


def total_income(incomes: Iterable[Income]) -> float:
    return sum(i.amount for i in incomes)


def current_month_income(incomes: Iterable[Income], today: Optional[date] = None) -> float:
    month = current_month_key(today)
    return sum(i.amount for i in incomes if i.month == month)


def income_by_month(incomes: Iterable[Income]) -> pd.Series:
    """
    Total income per ``YYYY-MM`` month, sorted by month.

    Several sources in the same month are summed together.
    """
    rows = [{"Month": i.month, "Amount": i.amount, "Source": i.source} for i in incomes]
    if not rows:
        return pd.Series(dtype=float, name="Amount")

    df = pd.DataFrame(rows)
    return df.groupby("Month")["Amount"].sum().sort_index()
