from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from typing import Any, List, Optional

import pandas as pd

# Accepted string layouts for loosely-typed records, tried in order.
_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%m/%d/%y", "%d-%b-%Y", "%b %d %Y")


def days_between(start: date, end: date) -> int:
    """Signed number of calendar days from start to end (end exclusive)."""
    return (end - start).days


def span_days_inclusive(start: date, end: date) -> int:
    """
    Inclusive day count:
      - A same-day task spans 1 day.
      - end < start yields zero or a negative count; callers decide what to do.
    """
    return days_between(start, end) + 1


def add_months(d: date, months: int) -> date:
    """Shift by whole calendar months, clamping the day to the target month's length."""
    month_index = d.month - 1 + months
    year = d.year + month_index // 12
    month = month_index % 12 + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def is_weekend(d: date) -> bool:
    return d.weekday() >= 5


def step_dates(start: date, end: date, view_mode: str) -> List[date]:
    """
    Timeline tick dates from start to end inclusive.

    DAY steps one day, WEEK seven days, MONTH one calendar month. Month steps
    are always computed from `start` so Jan 31 -> Feb 29 -> Mar 31 (no drift).
    """
    out: List[date] = []
    if view_mode == "MONTH":
        n = 0
        cur = start
        while cur <= end:
            out.append(cur)
            n += 1
            cur = add_months(start, n)
        return out

    step = timedelta(days=1 if view_mode == "DAY" else 7)
    cur = start
    while cur <= end:
        out.append(cur)
        cur += step
    return out


def coerce_date(value: Any) -> Optional[date]:
    """Convert a record value into a Python date (or None). Handles dates, datetimes, strings, and pandas timestamps."""
    if value is None:
        return None
    if isinstance(value, float) and pd.isna(value):
        return None
    if value is pd.NaT:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    # pandas Timestamp / numpy datetime64 wrappers
    if hasattr(value, "to_pydatetime"):
        try:
            dt = value.to_pydatetime()
        except (TypeError, ValueError):
            return None
        if isinstance(dt, datetime):
            return dt.date()
    if isinstance(value, str):
        v = value.strip()
        if not v:
            return None
        # ISO datetimes ("2024-01-03T09:00:00") are common in exported JSON.
        try:
            return datetime.fromisoformat(v).date()
        except ValueError:
            pass
        for fmt in _DATE_FORMATS:
            try:
                return datetime.strptime(v, fmt).date()
            except ValueError:
                continue
    return None
