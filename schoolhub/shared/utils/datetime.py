"""
UTC datetime utilities for consistent timezone handling.

All datetime values in the system should be timezone-aware UTC.
Use these helpers instead of datetime.now() or datetime.utcnow().
"""

import re
from datetime import UTC, datetime

# Store timestamps carry up to nanosecond precision; datetime keeps microseconds.
_FRACTION_RE = re.compile(r"\.(\d{6})\d+")


def utc_now() -> datetime:
    """
    Return the current UTC datetime with timezone info.

    Returns:
        Timezone-aware datetime in UTC
    """
    return datetime.now(UTC)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """
    Ensure a datetime is UTC-aware.

    - If None, returns None
    - If naive, assumes UTC and attaches timezone
    - If aware, converts to UTC

    Use at repository/persistence boundaries to normalize datetimes.
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)

    return dt.astimezone(UTC)


def parse_utc(value: str) -> datetime:
    """
    Parse an RFC 3339 timestamp (e.g. Firestore timestampValue) into a UTC-aware datetime.

    Accepts a trailing 'Z' and fractional seconds beyond microseconds
    (truncated).

    Raises:
        ValueError: If value is not a valid timestamp
    """
    text = _FRACTION_RE.sub(r".\1", value.strip())
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(text))


def to_rfc3339(dt: datetime) -> str:
    """Format a datetime as RFC 3339 UTC with a 'Z' suffix (store wire format)."""
    return ensure_utc(dt).isoformat().replace("+00:00", "Z")
