"""Shared utilities and helper functions for domain entities.

Pure utility functions with zero external dependencies.
"""

from datetime import UTC, date, datetime


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Ensure datetime is timezone-aware with UTC."""
    if dt is None:
        return None
    return dt.replace(tzinfo=UTC) if dt.tzinfo is None else dt.astimezone(UTC)


def utc_today() -> date:
    """Current calendar date in UTC."""
    return datetime.now(UTC).date()


def to_date(value: date | datetime | str) -> date:
    """Normalize a date-like value returned by the database.

    SQLite returns `date()` results as ISO strings while other backends
    return `date` objects.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value[:10])
