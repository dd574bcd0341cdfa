from __future__ import annotations

import math
from datetime import date
from typing import List, Optional

from dates import add_months, month_key, month_label
from models import MonthlyBreakdown, PurchaseGoal, SavingsPlan

SAFETY_MARGIN = 0.9        # keep 10% of the surplus untouched
DEFAULT_SAVING_SHARE = 0.4  # share of the safe amount allocated to a goal
VARIABLE_EXPENSE_RATE = 0.3
MIN_TARGET_AMOUNT = 100.0
LONG_PLAN_MONTHS = 36
HIGH_SAVING_SHARE = 0.8   # of the monthly surplus

WARN_LONG_PLAN = "long_plan"
WARN_HIGH_SAVING_SHARE = "high_saving_share"


def estimate_variable_expenses(monthly_income: float, rate: float = VARIABLE_EXPENSE_RATE) -> float:
    """Rough monthly variable spending when no history is available."""
    return max(monthly_income, 0.0) * rate


def validate_goal_input(item: str, target_amount: float, monthly_income: float):
    """Reject planner input before any computation happens."""
    if not item or not item.strip():
        raise ValueError("item is required")
    if target_amount is None or target_amount < MIN_TARGET_AMOUNT:
        raise ValueError(f"target amount must be at least {MIN_TARGET_AMOUNT:,.2f}")
    if monthly_income is None or monthly_income <= 0:
        raise ValueError("a positive monthly income is required to plan a purchase")


def build_breakdown(
    start: date,
    months: int,
    monthly_amount: float,
    target_amount: float,
    already_saved: float = 0.0,
) -> List[MonthlyBreakdown]:
    """
    Month-by-month schedule of equal installments.

    The cumulative total is capped at the target and the percentage at 100,
    so the last entry of a complete schedule always reads target / 100%.
    """
    schedule = []
    cumulative = already_saved
    for i in range(months):
        month = add_months(start, i)
        cumulative += monthly_amount
        schedule.append(
            MonthlyBreakdown(
                month=month_key(month),
                month_label=month_label(month),
                planned_amount=monthly_amount,
                cumulative_total=min(cumulative, target_amount),
                percent_complete=min(cumulative / target_amount * 100, 100.0),
            )
        )
    return schedule


def calculate_savings_plan(
    item: str,
    target_amount: float,
    monthly_income: float,
    fixed_expenses: float,
    variable_expenses: float,
    custom_monthly_saving: Optional[float] = None,
    today: Optional[date] = None,
) -> Optional[SavingsPlan]:
    """Project how long saving for ``item`` takes.

    Surplus = income - fixed - variable. Without an override, 40% of 90% of
    the surplus goes to the goal each month. Returns ``None`` when no plan is
    possible: empty item, non-positive target or income, a surplus <= 0, or a
    saving rate <= 0.
    """
    if not item or target_amount <= 0 or monthly_income <= 0:
        return None

    monthly_surplus = monthly_income - fixed_expenses - variable_expenses
    if monthly_surplus <= 0:
        return None

    safe_amount = monthly_surplus * SAFETY_MARGIN
    if custom_monthly_saving is not None:
        suggested_saving = custom_monthly_saving
    else:
        suggested_saving = safe_amount * DEFAULT_SAVING_SHARE
    if suggested_saving <= 0:
        return None

    months_needed = math.ceil(target_amount / suggested_saving)
    start = today or date.today()

    return SavingsPlan(
        item=item,
        target_amount=target_amount,
        months_needed=months_needed,
        monthly_saving=suggested_saving,
        start_date=start,
        end_date=add_months(start, months_needed),
        monthly_surplus=monthly_surplus,
        suggested_saving=suggested_saving,
        breakdown=build_breakdown(start, months_needed, suggested_saving, target_amount),
    )


def plan_purchase(
    item: str,
    target_amount: float,
    monthly_income: float,
    fixed_expenses: float,
    variable_expenses: Optional[float] = None,
    custom_monthly_saving: Optional[float] = None,
    today: Optional[date] = None,
) -> Optional[SavingsPlan]:
    """Validated entry point used by the goal planner.

    Raises ``ValueError`` for bad input; returns ``None`` for an infeasible
    plan. Variable spending defaults to 30% of income.
    """
    validate_goal_input(item, target_amount, monthly_income)
    if variable_expenses is None:
        variable_expenses = estimate_variable_expenses(monthly_income)
    return calculate_savings_plan(
        item.strip(),
        target_amount,
        monthly_income,
        fixed_expenses,
        variable_expenses,
        custom_monthly_saving=custom_monthly_saving,
        today=today,
    )


def schedule_for_goal(goal: PurchaseGoal) -> List[MonthlyBreakdown]:
    """Rebuild the schedule of a committed goal from what is already saved."""
    remaining = max(goal.target_amount - goal.current_saved, 0.0)
    months = math.ceil(remaining / goal.monthly_saving)
    return build_breakdown(
        goal.start_date,
        months,
        goal.monthly_saving,
        goal.target_amount,
        already_saved=goal.current_saved,
    )


def plan_warnings(plan: SavingsPlan) -> List[str]:
    """Risk flags to confirm with the user before committing a plan.

    ``long_plan`` when the goal takes more than three years, and
    ``high_saving_share`` when the monthly saving takes more than 80% of the
    monthly surplus.
    """
    warnings = []
    if plan.months_needed > LONG_PLAN_MONTHS:
        warnings.append(WARN_LONG_PLAN)
    if plan.monthly_saving > plan.monthly_surplus * HIGH_SAVING_SHARE:
        warnings.append(WARN_HIGH_SAVING_SHARE)
    return warnings
