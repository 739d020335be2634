"""
Datetime utilities.

Timestamps are stored as naive UTC values so the same columns behave alike on
PostgreSQL and SQLite.
"""

from datetime import date, datetime, time, timedelta, timezone


def utcnow() -> datetime:
    """Get current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


def utcnow_naive() -> datetime:
    return utcnow().replace(tzinfo=None)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Return the [start, end) range covering the given UTC day."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)
