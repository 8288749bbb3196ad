"""Timestamp parsing and formatting utilities.

History entries, checkpoints and notifications store ISO 8601 strings in UTC;
time-series documents are keyed by calendar day (YYYY-MM-DD).
"""

from __future__ import annotations

from datetime import date, datetime, timezone


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    """Return the current UTC time as an ISO 8601 string with a 'Z' suffix.

    Microsecond precision keeps consecutive appends strictly ordered.
    """
    return to_iso(utc_now())


def to_iso(dt: datetime) -> str:
    """Format a datetime as an ISO 8601 UTC string with a 'Z' suffix."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


def parse_to_datetime(ts_value: str | int | float | datetime) -> datetime:
    """Parse various timestamp formats to UTC datetime.

    Args:
        ts_value: Timestamp in one of:
            - datetime: returned as-is (UTC ensured)
            - int/float: Unix timestamp in milliseconds
            - str: ISO 8601 format string

    Returns:
        datetime object in UTC timezone.

    Raises:
        ValueError: If input is None, empty string, or invalid format.
    """
    if ts_value is None:
        raise ValueError("Timestamp cannot be None")

    if isinstance(ts_value, datetime):
        if ts_value.tzinfo is None:
            return ts_value.replace(tzinfo=timezone.utc)
        return ts_value

    if isinstance(ts_value, (int, float)):
        return datetime.fromtimestamp(ts_value / 1000, tz=timezone.utc)

    if isinstance(ts_value, str):
        ts_str = ts_value.strip()
        if not ts_str:
            raise ValueError("Timestamp string cannot be empty")

        # Handle ISO 8601 format with 'Z' suffix
        if ts_str.endswith("Z"):
            ts_str = ts_str[:-1] + "+00:00"

        try:
            parsed = datetime.fromisoformat(ts_str)
        except ValueError as exc:
            raise ValueError("Invalid timestamp format. Expected ISO 8601 string or UNIX milliseconds.") from exc

        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed

    raise ValueError(f"Unsupported timestamp type: {type(ts_value)}. Expected datetime, int, float, or ISO 8601 string.")


def date_key(ts_value: str | datetime | date) -> str:
    """Return the YYYY-MM-DD calendar day of a timestamp.

    ISO strings are cut at the 'T' separator rather than converted, so an
    entry is bucketed by the day written in its own timestamp.
    """
    if isinstance(ts_value, str):
        return ts_value.split("T")[0]
    if isinstance(ts_value, datetime):
        return parse_to_datetime(ts_value).date().isoformat()
    return ts_value.isoformat()


def today_utc() -> date:
    """Return the current UTC calendar day."""
    return utc_now().date()
