"""
Utility functions for the application.
"""

from datetime import date, datetime, time, timezone
from typing import Tuple


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form stored in period columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Normalize an aware datetime to naive UTC; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def period_window(start: date, end: date) -> Tuple[datetime, datetime]:
    """Inclusive calendar-day window: start at 00:00, end at the last microsecond of its day."""
    return datetime.combine(start, time.min), datetime.combine(end, time.max)
