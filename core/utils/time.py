"""
Time Utilities

The stock provider reports `lastUpdatedAt` as an ISO-8601 string, often with
nanosecond precision and a trailing `Z` (e.g. "2025-05-08T04:11:42.465706306Z").
Cached or replayed data may instead carry epoch numbers in seconds or
milliseconds.

The utilities in this module normalize all of these into timezone-aware UTC
datetime objects for use in our Pydantic schemas.
"""

from datetime import datetime, timezone
from typing import Union

from dateutil import parser as dateparser


def to_utc_datetime(timestamp: Union[int, float]) -> datetime:
    """
    Convert a timestamp (seconds or milliseconds) to UTC datetime.

    Detection Logic:
        - If timestamp > 1e12 (1 trillion): Assumed to be milliseconds
        - Otherwise: Assumed to be seconds

    Raises:
        ValueError: If timestamp is negative or invalid

    Examples:
        >>> to_utc_datetime(1704110400000)
        datetime.datetime(2024, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)

        >>> to_utc_datetime(1704110400)
        datetime.datetime(2024, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)
    """
    if timestamp < 0:
        raise ValueError(f"Timestamp cannot be negative: {timestamp}")

    # Seconds are ~1.7e9 today, milliseconds ~1.7e12
    if timestamp > 1e12:
        timestamp = timestamp / 1000.0

    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc)
    except (OSError, OverflowError, ValueError) as e:
        raise ValueError(f"Invalid timestamp: {timestamp}. Error: {e}")


def parse_timestamp(value: Union[str, int, float, datetime]) -> datetime:
    """
    Normalize an upstream timestamp of any supported shape to UTC datetime.

    Args:
        value: ISO-8601 string, epoch seconds/milliseconds, or datetime

    Returns:
        datetime: Timezone-aware datetime object in UTC

    Raises:
        ValueError: If the value cannot be interpreted as a timestamp

    Examples:
        >>> parse_timestamp("2025-05-08T04:11:42.465706306Z")
        datetime.datetime(2025, 5, 8, 4, 11, 42, 465706, tzinfo=tzutc())

        >>> parse_timestamp(1704110400000)
        datetime.datetime(2024, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)

    Notes:
        - Fractional seconds beyond microseconds are truncated
        - Naive datetimes and strings without an offset are assumed to be UTC
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, bool):
        raise ValueError(f"Invalid timestamp: {value!r}")
    elif isinstance(value, (int, float)):
        return to_utc_datetime(value)
    elif isinstance(value, str):
        try:
            dt = dateparser.isoparse(value.strip())
        except (ValueError, OverflowError) as e:
            raise ValueError(f"Invalid timestamp: {value!r}. Error: {e}")
    else:
        raise ValueError(f"Unsupported timestamp type: {type(value).__name__}")

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
