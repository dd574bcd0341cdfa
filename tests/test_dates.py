from datetime import date

import pytest

from dates import (
    add_months,
    current_month_key,
    days_until_due,
    month_key,
    month_label,
    next_due_date,
    parse_month_key,
)


def test_due_today_is_zero():
    assert days_until_due(10, date(2024, 11, 10)) == 0


def test_due_later_this_month():
    assert days_until_due(15, date(2024, 11, 10)) == 5
    assert next_due_date(15, date(2024, 11, 10)) == date(2024, 11, 15)


def test_past_due_day_rolls_to_next_month():
    # November has 30 days: Nov 10 -> Dec 5 is 25 days
    assert next_due_date(5, date(2024, 11, 10)) == date(2024, 12, 5)
    assert days_until_due(5, date(2024, 11, 10)) == 25


def test_rollover_across_year_end():
    assert next_due_date(1, date(2024, 12, 31)) == date(2025, 1, 1)
    assert days_until_due(1, date(2024, 12, 31)) == 1


def test_due_day_31_clamps_to_short_month():
    assert next_due_date(31, date(2024, 4, 10)) == date(2024, 4, 30)
    assert days_until_due(31, date(2024, 4, 30)) == 0


def test_due_day_clamps_in_next_month_after_rollover():
    # Jan 30 has passed; February 2024 has no 30th
    assert next_due_date(30, date(2024, 1, 31)) == date(2024, 2, 29)


def test_days_until_due_bounds_over_a_year():
    start = date(2023, 1, 1)
    for offset in range(0, 366, 7):
        today = date.fromordinal(start.toordinal() + offset)
        for due_day in range(1, 32):
            days = days_until_due(due_day, today)
            assert 0 <= days <= 31
            if due_day == today.day:
                assert days == 0


def test_invalid_due_day():
    with pytest.raises(ValueError):
        next_due_date(0, date(2024, 1, 1))
    with pytest.raises(ValueError):
        next_due_date(32, date(2024, 1, 1))


def test_add_months_clamps_end_of_month():
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2024, 11, 10), 2) == date(2025, 1, 10)
    assert add_months(date(2024, 3, 15), -3) == date(2023, 12, 15)
    assert add_months(date(2024, 3, 15), 0) == date(2024, 3, 15)


def test_month_key_and_label():
    assert month_key(date(2024, 3, 9)) == "2024-03"
    assert month_label(date(2024, 11, 1)) == "Nov/2024"
    assert current_month_key(date(2025, 1, 31)) == "2025-01"


def test_parse_month_key():
    assert parse_month_key("2024-07") == date(2024, 7, 1)
    with pytest.raises(ValueError):
        parse_month_key("July 2024")
