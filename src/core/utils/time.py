"""Time utilities for consistent timezone handling."""

from datetime import UTC, datetime
from typing import Any


def utcnow() -> datetime:
    """
    Get current UTC time as a timezone-aware datetime.

    All timestamps in the application should use this function
    to ensure consistency.

    Returns:
        datetime: Current UTC time with timezone information.

    Example:
        >>> now = utcnow()
        >>> now.tzinfo == UTC
        True
    """
    return datetime.now(UTC)


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse a wire timestamp into a timezone-aware datetime.

    The backend emits timestamps either as RFC 3339 strings or as
    protobuf-style objects ({"seconds": ..., "nanos": ...}). Empty values
    and the zero timestamp are treated as "not set".

    Args:
        value: String, dict, number of seconds, datetime or None.

    Returns:
        datetime in UTC, or None if the value is empty or unparseable.

    Example:
        >>> parse_timestamp({"seconds": 0})
        >>> parse_timestamp("2020-01-02T03:04:05Z").year
        2020
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)

    if isinstance(value, dict):
        seconds = int(value.get("seconds", 0) or 0)
        nanos = int(value.get("nanos", 0) or 0)
        if seconds == 0 and nanos == 0:
            return None
        return datetime.fromtimestamp(seconds + nanos / 1e9, tz=UTC)

    if isinstance(value, (int, float)):
        if value == 0:
            return None
        return datetime.fromtimestamp(value, tz=UTC)

    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)

    return None


def format_timestamp(value: datetime | None) -> str | None:
    """Format a datetime as an RFC 3339 string in UTC (None passes through)."""
    if value is None:
        return None
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")
