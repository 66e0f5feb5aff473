from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo


def now_local(tz: Optional[ZoneInfo] = None) -> datetime:
    """Current wall-clock time in the reference timezone, as a naive datetime.

    Note: Wrapped so tests can patch/mock easier.
    """
    if tz is None:
        return datetime.now()
    return datetime.now(tz).replace(tzinfo=None)


def to_local(value: datetime, tz: Optional[ZoneInfo]) -> datetime:
    """Normalize a timestamp to naive reference-timezone wall-clock time.

    Naive values are taken to be in the reference timezone already.
    """
    if value.tzinfo is None or tz is None:
        return value.replace(tzinfo=None)
    return value.astimezone(tz).replace(tzinfo=None)


def minutes_between(a: datetime, b: datetime) -> float:
    """Absolute difference in minutes."""
    return abs((a - b).total_seconds()) / 60.0


def hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600.0


def month_bounds(year: int, month: int) -> tuple[date, date]:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def iter_dates(start: date, end: date):
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def working_days_in_month(year: int, month: int, *, weekly_off: int = calendar.SUNDAY) -> int:
    """Count calendar days of the month excluding the weekly off-day."""
    start, end = month_bounds(year, month)
    return sum(1 for d in iter_dates(start, end) if d.weekday() != weekly_off)
