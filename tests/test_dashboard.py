from datetime import date

import pytest

from dashboard import category_shares, category_totals, dashboard_summary, goal_progress_percent
from models import Category, Income, PurchaseGoal

TODAY = date(2024, 11, 10)


def test_category_totals_has_all_categories(make_expense):
    totals = category_totals([
        make_expense(name="Rent", value=1000.0, category=Category.HOUSING),
        make_expense(name="Netflix", value=20.0),
        make_expense(name="Spotify", value=10.0),
        make_expense(name="Old", value=99.0, category=Category.HEALTH, is_active=False),
    ])
    assert list(totals.index) == [c.value for c in Category]
    assert totals["housing"] == 1000.0
    assert totals["subscriptions"] == 30.0
    assert totals["health"] == 0.0


def test_category_totals_empty():
    totals = category_totals([])
    assert len(totals) == 6
    assert totals.sum() == 0


def test_category_shares(make_expense):
    shares = category_shares([
        make_expense(value=25.0),
        make_expense(value=75.0, category=Category.TRANSPORT),
    ])
    assert shares["subscriptions"] == pytest.approx(25)
    assert shares["transport"] == pytest.approx(75)
    assert category_shares([]).sum() == 0


def test_dashboard_summary(make_expense):
    rent = make_expense(name="Rent", value=1500.0, due_day=12, category=Category.HOUSING)
    gym = make_expense(name="Gym", value=100.0, due_day=25)
    incomes = [
        Income(amount=5000.0, source="Salary", month="2024-11"),
        Income(amount=4800.0, source="Salary", month="2024-10"),
    ]
    goal = PurchaseGoal(item="Bike", target_amount=1000, monthly_saving=200, current_saved=250,
                        start_date=TODAY, estimated_end_date=date(2025, 4, 10))

    summary = dashboard_summary([rent, gym], incomes, goals=[goal], today=TODAY)

    assert summary["total_monthly"] == 1600.0
    assert summary["monthly_income"] == 5000.0
    assert summary["balance"] == 3400.0
    assert summary["commitment_rate"] == pytest.approx(32)
    assert summary["upcoming"] == [rent.id]
    assert summary["income_by_month"] == {"2024-10": 4800.0, "2024-11": 5000.0}
    assert summary["goals"] == {goal.id: pytest.approx(25)}


def test_dashboard_without_income(make_expense):
    summary = dashboard_summary([make_expense()], [], today=TODAY)
    assert summary["commitment_rate"] == 0.0
    assert summary["balance"] == -50.0


def test_goal_progress_is_capped():
    goal = PurchaseGoal(item="Bike", target_amount=1000, monthly_saving=200, current_saved=1200,
                        start_date=TODAY, estimated_end_date=TODAY)
    assert goal_progress_percent(goal) == 100
