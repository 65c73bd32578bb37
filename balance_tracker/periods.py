"""
Period Keys

A period key is the ISO date (YYYY-MM-DD) of the Saturday that opens a
Saturday-to-Friday week. Every balance snapshot and period note is filed
under one.

DESIGN DECISION: Keys are recomputed on every call. There is no cached
"current period" anywhere in the process.
"""

from datetime import date, datetime, timedelta
from typing import Optional, Union

DateLike = Union[date, datetime]

SATURDAY = 5  # date.weekday(): Monday == 0


def _as_date(value: Optional[DateLike]) -> date:
    if value is None:
        return date.today()
    if isinstance(value, datetime):
        return value.date()
    return value


def current_period_key(value: Optional[DateLike] = None) -> str:
    """
    Get the period key for the week containing `value` (default: today).

    Saturday maps to itself; Sunday through Friday roll back to the
    preceding Saturday.
    """
    day = _as_date(value)
    days_since_saturday = (day.weekday() - SATURDAY) % 7
    return (day - timedelta(days=days_since_saturday)).isoformat()


def parse_period_key(key: str) -> date:
    """
    Parse a period key into a calendar date.

    Raises:
        ValueError: If the key is not an ISO calendar date
    """
    if not isinstance(key, str):
        raise ValueError(f"Period key must be a string, got {type(key).__name__}")
    try:
        return date.fromisoformat(key.strip())
    except ValueError:
        raise ValueError(f"Invalid period key: {key!r} (expected YYYY-MM-DD)")


def to_period_key(value: Union[str, DateLike]) -> str:
    """Normalize a date, datetime or ISO string to a period key string."""
    if isinstance(value, (date, datetime)):
        return _as_date(value).isoformat()
    return parse_period_key(value).isoformat()


def shift_period_key(key: str, weeks: int) -> str:
    """Move a period key by a whole number of weeks (negative = back in time)."""
    return (parse_period_key(key) + timedelta(weeks=weeks)).isoformat()


def week_of_year(value: Optional[DateLike] = None) -> int:
    """
    Week number within the year.

    Weeks start on Sunday and the (possibly partial) week holding
    1 January is week 1.
    """
    day = _as_date(value)
    first_day = date(day.year, 1, 1)
    past_days = (day - first_day).days
    # Sunday-based weekday of 1 January (Sunday == 0)
    offset = (first_day.weekday() + 1) % 7
    return (past_days + offset) // 7 + 1
