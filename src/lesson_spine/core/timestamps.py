"""
UTC timestamp utilities.

All timestamps inside lesson-spine are timezone-aware UTC datetimes. Values
coming from callers (ISO strings, naive datetimes) and from databases that
drop the offset (SQLite) are normalized here.

STDLIB ONLY - NO PYDANTIC.
"""

from collections.abc import Callable
from datetime import UTC, datetime

#: Source of "now". Injected wherever time matters so tests can pin it.
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)


def ensure_utc(dt: datetime) -> datetime:
    """Return *dt* as an aware UTC datetime. Naive values are taken as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an ISO 8601 string (``Z`` suffix accepted) into aware UTC.

    Raises:
        ValueError: If *value* is empty or not a valid timestamp.
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    text = value.strip()
    if not text:
        raise ValueError("empty timestamp")
    return ensure_utc(datetime.fromisoformat(text))


def to_iso8601(dt: datetime | None) -> str | None:
    """Convert datetime to ISO 8601 string."""
    if dt is None:
        return None
    return dt.isoformat()


__all__ = [
    "Clock",
    "ensure_utc",
    "parse_timestamp",
    "to_iso8601",
    "utc_now",
]
