"""
Timezone utilities

Everything is stored in UTC as ISO-8601 text.
"""

from datetime import date, datetime, timezone


def now_utc() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)


def to_iso(dt: datetime) -> str:
    """Format a datetime for storage

    Args:
        dt: datetime (naive values are treated as UTC)

    Returns:
        ISO-8601 string with offset

    Example:
        >>> to_iso(datetime(2026, 2, 20, 16, 0, 0))
        '2026-02-20T16:00:00+00:00'
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def parse_iso(value: str | None) -> datetime | None:
    """Parse a stored timestamp

    Accepts the trailing "Z" form used by the Square API.

    Args:
        value: ISO-8601 string or None

    Returns:
        aware datetime, or None when value is empty
    """
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def today_utc() -> date:
    """Today's date in UTC"""
    return now_utc().date()
