"""
Datetime utilities.

Provides timezone-aware datetime functions.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """
    Get current UTC datetime with timezone info.

    Returns:
        Current datetime in UTC with timezone awareness
    """
    return datetime.now(UTC)


def ensure_utc(value: datetime | None) -> datetime | None:
    """
    Attach UTC to naive datetimes read back from the database.

    Some drivers (SQLite) drop the offset of timezone-aware columns.

    Args:
        value: Datetime or None

    Returns:
        Timezone-aware datetime or None
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def expiry_passed(expires_at: datetime | None, now: datetime | None = None) -> bool:
    """
    Check whether an optional expiry moment has passed.

    Args:
        expires_at: Expiry moment (None means never expires)
        now: Reference time, defaults to current UTC time

    Returns:
        True if expired
    """
    if expires_at is None:
        return False
    return (now or utc_now()) > ensure_utc(expires_at)
