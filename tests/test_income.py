from datetime import date

from income import current_month_income, income_by_month, total_income
from models import Income


def _incomes():
    return [
        Income(amount=4000.0, source="Salary", month="2024-11"),
        Income(amount=1000.0, source="Freelance", month="2024-11"),
        Income(amount=3800.0, source="Salary", month="2024-10"),
    ]


def test_total_income_sums_everything():
    assert total_income(_incomes()) == 8800.0


def test_current_month_income_sums_sources():
    assert current_month_income(_incomes(), today=date(2024, 11, 20)) == 5000.0
    assert current_month_income(_incomes(), today=date(2024, 12, 1)) == 0


def test_income_by_month():
    series = income_by_month(_incomes())
    assert list(series.index) == ["2024-10", "2024-11"]
    assert series["2024-11"] == 5000.0


def test_income_by_month_empty():
    assert income_by_month([]).empty
