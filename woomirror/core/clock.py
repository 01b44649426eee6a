"""WooMirror: UTC time helpers.

The mirror stores every timestamp as naive UTC so SQLite and PostgreSQL
round-trip identical values.
"""

from datetime import date, datetime, timezone


def utcnow() -> datetime:
    """Current time as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def start_of_month(value: datetime | date) -> date:
    return date(value.year, value.month, 1)


def month_diff(start: datetime | date, end: datetime | date) -> int:
    """Calendar-month offset from ``start`` to ``end`` (days are ignored)."""
    return (end.year - start.year) * 12 + (end.month - start.month)
