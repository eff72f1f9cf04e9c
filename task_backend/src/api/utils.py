from __future__ import annotations

from datetime import datetime, timezone


# PUBLIC_INTERFACE
def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


# PUBLIC_INTERFACE
def ensure_utc(value: datetime) -> datetime:
    """
    Normalize a stored timestamp to an aware UTC datetime.

    Some backends (SQLite) hand timestamps back without tzinfo; those values
    were written as UTC, so they are tagged rather than converted.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
