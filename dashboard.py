# dashboard.py: figures behind the overview screen, computed with pandas

from datetime import date
from typing import Iterable, List, Optional

import pandas as pd

from expenses import total_monthly, upcoming
from income import current_month_income, income_by_month
from models import Category, Expense, Income, PurchaseGoal

EXPENSE_COLUMNS = ["Id", "Name", "Value", "Category", "DueDay", "IsActive"]


def _prep(expenses: Iterable[Expense]) -> pd.DataFrame:
    """
    Prepares the expense dataframe for dashboarding.
    """
    df = pd.DataFrame(
        [
            {
                "Id": e.id,
                "Name": e.name,
                "Value": e.value,
                "Category": e.category.value,
                "DueDay": e.due_day,
                "IsActive": e.is_active,
            }
            for e in expenses
        ],
        columns=EXPENSE_COLUMNS,
    )
    df["Value"] = pd.to_numeric(df["Value"], errors="coerce").fillna(0.0)
    return df


def category_totals(expenses: Iterable[Expense]) -> pd.Series:
    """Monthly total per category over active expenses; all six categories, zeros included."""
    df = _prep(expenses)
    active = df[df["IsActive"].astype(bool)]
    totals = active.groupby("Category")["Value"].sum()
    return totals.reindex([c.value for c in Category], fill_value=0.0).astype(float)


def category_shares(expenses: Iterable[Expense]) -> pd.Series:
    """Share (0-100) of the monthly obligation taken by each category."""
    totals = category_totals(expenses)
    overall = totals.sum()
    if overall <= 0:
        return totals * 0.0
    return totals / overall * 100


def goal_progress_percent(goal: PurchaseGoal) -> float:
    return min(goal.current_saved / goal.target_amount * 100, 100.0)


def dashboard_summary(
    expenses: List[Expense],
    incomes: List[Income],
    goals: Optional[List[PurchaseGoal]] = None,
    today: Optional[date] = None,
    upcoming_days: int = 7,
) -> dict:
    """
    Top-level KPIs: monthly obligation, this month's income, what is left,
    how much of income the fixed bills take, per-category totals, bills due
    soon and progress of active goals.
    """
    today = today or date.today()
    obligation = total_monthly(expenses)
    income = current_month_income(incomes, today=today)
    balance = income - obligation

    # Commitment rate (guard against division by zero)
    commitment_rate = (obligation / income * 100) if income > 0 else 0.0

    return {
        "total_monthly": float(obligation),
        "monthly_income": float(income),
        "balance": float(balance),
        "commitment_rate": float(commitment_rate),
        "category_totals": category_totals(expenses).to_dict(),
        "income_by_month": {m: float(v) for m, v in income_by_month(incomes).items()},
        "upcoming": [e.id for e in upcoming(expenses, upcoming_days, today=today)],
        "goals": {
            g.id: goal_progress_percent(g) for g in (goals or []) if g.status == "active"
        },
    }
