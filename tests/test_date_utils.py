from datetime import date, datetime

import pandas as pd

from date_utils import add_months, coerce_date, is_weekend, span_days_inclusive, step_dates


def test_span_days_inclusive() -> None:
    assert span_days_inclusive(date(2024, 1, 3), date(2024, 1, 5)) == 3
    assert span_days_inclusive(date(2024, 1, 3), date(2024, 1, 3)) == 1


def test_add_months_clamps_day() -> None:
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)
    assert add_months(date(2024, 11, 15), 3) == date(2025, 2, 15)


def test_month_steps_do_not_drift() -> None:
    steps = step_dates(date(2024, 1, 31), date(2024, 4, 30), "MONTH")
    assert steps == [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31), date(2024, 4, 30)]


def test_day_and_week_steps() -> None:
    assert len(step_dates(date(2024, 1, 1), date(2024, 1, 8), "DAY")) == 8
    assert step_dates(date(2024, 1, 1), date(2024, 1, 20), "WEEK") == [
        date(2024, 1, 1),
        date(2024, 1, 8),
        date(2024, 1, 15),
    ]
    assert step_dates(date(2024, 1, 8), date(2024, 1, 1), "DAY") == []


def test_is_weekend() -> None:
    assert is_weekend(date(2024, 1, 6))
    assert is_weekend(date(2024, 1, 7))
    assert not is_weekend(date(2024, 1, 8))


def test_coerce_date_variants() -> None:
    expected = date(2024, 1, 3)
    assert coerce_date(expected) == expected
    assert coerce_date(datetime(2024, 1, 3, 9, 30)) == expected
    assert coerce_date(pd.Timestamp("2024-01-03")) == expected
    assert coerce_date("2024-01-03") == expected
    assert coerce_date("2024-01-03T09:00:00") == expected
    assert coerce_date("01/03/2024") == expected
    assert coerce_date("03-Jan-2024") == expected


def test_coerce_date_blanks_and_junk() -> None:
    assert coerce_date(None) is None
    assert coerce_date(float("nan")) is None
    assert coerce_date(pd.NaT) is None
    assert coerce_date("   ") is None
    assert coerce_date("not a date") is None
    assert coerce_date(12345) is None
