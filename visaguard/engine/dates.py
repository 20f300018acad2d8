"""
Calendar-date helpers for document expiry.

All arithmetic is done on calendar dates: datetimes are truncated to
their date before subtraction, so the time of day never shifts a result.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Optional, Union

DateLike = Union[date, datetime, str]

# Upper bound (inclusive) of the warning window, in days
WARNING_WINDOW_DAYS = 30


class ExpiryStatus(Enum):
    SAFE = "safe"
    WARNING = "warning"
    EXPIRED = "expired"


def parse_date(value: Optional[DateLike]) -> Optional[date]:
    """Return value as a calendar date, or None if it cannot be read."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return datetime.strptime(text[:10], "%Y-%m-%d").date()
    except ValueError:
        return None


def days_left(expiration: DateLike, today: Optional[DateLike] = None) -> int:
    """
    Whole days from today until expiration.

    Positive means days remaining, 0 means it expires today, negative
    means days past expiry.
    """
    exp = parse_date(expiration)
    if exp is None:
        raise ValueError(f"Invalid expiration date: {expiration!r}")
    current = parse_date(today) if today is not None else date.today()
    if current is None:
        raise ValueError(f"Invalid reference date: {today!r}")
    return (exp - current).days


def status_of(days: int) -> ExpiryStatus:
    if days < 0:
        return ExpiryStatus.EXPIRED
    if days <= WARNING_WINDOW_DAYS:
        return ExpiryStatus.WARNING
    return ExpiryStatus.SAFE


def days_label(days: int) -> str:
    if days < 0:
        return f"Expired {abs(days)}d ago"
    if days == 0:
        return "Expires today!"
    return f"{days} day{'s' if days != 1 else ''} left"


def format_date(value: Optional[DateLike]) -> str:
    """Format as e.g. 'Oct 7, 2026'; unreadable input is returned as-is."""
    d = parse_date(value)
    if d is None:
        return "" if value is None else str(value)
    return f"{d:%b} {d.day}, {d.year}"


def plural_days(days: int) -> str:
    n = abs(days)
    return f"{n} day{'s' if n != 1 else ''}"
