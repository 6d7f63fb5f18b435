# src/sugarpot/db/time.py
"""Time helpers for persisted timestamps."""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def isoformat(value: datetime | None) -> str | None:
    """Render a stored timestamp as ISO-8601 in UTC.

    SQLite drops tzinfo on round-trip, so naive values are treated as UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.isoformat()
