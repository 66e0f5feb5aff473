"""Cell parsers for biometric spreadsheets.

Spreadsheet cells arrive as whatever pandas produced: strings (CSV), native
``datetime``/``time`` objects or ``pandas.Timestamp`` (xlsx), and numbers
for serial dates and fractions of a day. Every parser raises ``ValueError``
on input it cannot interpret; the pipeline turns that into a row error.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from numbers import Number
from typing import Any, Optional

import numpy as np
import pandas as pd

# Spreadsheet serial day 0 (accounts for the 1900 leap-year bug).
SERIAL_EPOCH = date(1899, 12, 30)
_MAX_SERIAL = 2958465  # 9999-12-31

DATE_FORMATS = (
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%m-%d-%Y",
    "%Y/%m/%d",
)

TIME_FORMATS = (
    "%H:%M:%S",
    "%H:%M",
    "%I:%M %p",
    "%I:%M:%S %p",
    "%I:%M%p",
    "%H.%M",
)


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _is_number(value: Any) -> bool:
    return isinstance(value, (Number, np.number)) and not isinstance(value, (bool, np.bool_))


def cell_text(value: Any) -> Optional[str]:
    """Render an identifier cell as text; 101.0 becomes "101"."""
    if is_blank(value):
        return None
    if _is_number(value):
        as_float = float(value)
        if as_float.is_integer():
            return str(int(as_float))
        return str(value)
    return str(value).strip()


def _serial_to_date(serial: float) -> date:
    if not (1 <= serial <= _MAX_SERIAL):
        raise ValueError(f"Serial date out of range: {serial}")
    return SERIAL_EPOCH + timedelta(days=int(serial))


def parse_date(value: Any) -> date:
    if is_blank(value):
        raise ValueError("Date is required")
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime().date()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, np.datetime64):
        return pd.Timestamp(value).to_pydatetime().date()
    if _is_number(value):
        return _serial_to_date(float(value))

    text = str(value).strip()
    # Some exports carry a midnight time part: "2024-01-15 00:00:00".
    if " " in text:
        text = text.split(" ", 1)[0]
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    if text.isdigit():
        return _serial_to_date(float(text))
    raise ValueError(f"Invalid date format: {value}")


def _fraction_to_time(fraction: float) -> time:
    seconds = int(round(fraction * 86400))
    if seconds >= 86400:
        seconds = 86399
    return time(seconds // 3600, (seconds % 3600) // 60, seconds % 60)


def parse_clock(value: Any) -> time:
    """Parse a time-of-day cell (no date part)."""
    if isinstance(value, time):
        return value.replace(microsecond=0)
    if _is_number(value):
        if float(value) < 0:
            raise ValueError(f"Invalid time value: {value}")
        return _fraction_to_time(float(value) % 1.0)

    text = str(value).strip().upper()
    for fmt in TIME_FORMATS:
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    if len(text) == 4 and text.isdigit():
        return datetime.strptime(text, "%H%M").time()
    try:
        fraction = float(text)
    except ValueError:
        raise ValueError(f"Invalid time format: {value}")
    if 0 <= fraction < 1:
        return _fraction_to_time(fraction)
    raise ValueError(f"Invalid time format: {value}")


def parse_time(value: Any, work_date: date) -> Optional[datetime]:
    """Time cell anchored on ``work_date``. Blank cells yield None."""
    if is_blank(value):
        return None
    if isinstance(value, pd.Timestamp):
        value = value.to_pydatetime()
    if isinstance(value, datetime):
        stamp = value.replace(tzinfo=None, microsecond=0)
        # Time-only cells read back as datetimes on the serial epoch.
        if stamp.date() in (SERIAL_EPOCH, date(1900, 1, 1)):
            return datetime.combine(work_date, stamp.time())
        return stamp
    if _is_number(value) and float(value) >= 1:
        whole = float(value)
        return datetime.combine(_serial_to_date(whole), _fraction_to_time(whole % 1.0))
    return datetime.combine(work_date, parse_clock(value))
