"""Centralized datetime utilities for consistent timezone handling.

All functions that feed the database return naive UTC datetimes (SQLAlchemy
models use naive UTC). Wire-facing helpers return ISO strings.

Usage:
    from guardit.core.datetime_utils import utc_now, day_bounds

    start, end = day_bounds(utc_now().date())
    events = await history.events_between(task_id, start, end)
"""

from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    """Get current UTC time as naive datetime.

    Returns naive datetime for database compatibility.
    """
    return datetime.now(UTC).replace(tzinfo=None)


def to_naive_utc(dt: datetime) -> datetime:
    """Convert a datetime to naive UTC.

    Args:
        dt: Datetime to convert (can be aware or naive)

    Returns:
        Naive UTC datetime for database compatibility
    """
    if dt.tzinfo is None:
        # Already naive, assume it's UTC
        return dt
    return dt.astimezone(UTC).replace(tzinfo=None)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Half-open [start, end) naive UTC bounds of a calendar day."""
    start = datetime(day.year, day.month, day.day)
    return start, start + timedelta(days=1)


def to_iso_utc(dt: datetime) -> str:
    """Render a naive UTC datetime as an ISO 8601 string with a Z suffix."""
    return to_naive_utc(dt).isoformat(timespec="milliseconds") + "Z"


def to_epoch_ms(dt: datetime) -> int:
    """Milliseconds since the epoch for a naive UTC datetime."""
    return int(to_naive_utc(dt).replace(tzinfo=UTC).timestamp() * 1000)


def is_valid_timezone(tz_name: str) -> bool:
    """Check if a timezone name is valid IANA identifier."""
    try:
        ZoneInfo(tz_name)
        return True
    except (KeyError, ValueError):
        return False


def format_local(dt: datetime, timezone: str = "UTC") -> str:
    """Human-readable local time for dashboards (``YYYY-MM-DD HH:MM:SS``).

    Falls back to UTC for an invalid timezone name.
    """
    try:
        tz = ZoneInfo(timezone)
    except (KeyError, ValueError):
        tz = ZoneInfo("UTC")

    aware = to_naive_utc(dt).replace(tzinfo=UTC)
    return aware.astimezone(tz).strftime("%Y-%m-%d %H:%M:%S")
