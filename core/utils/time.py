"""
Time Utilities

Venues report times in different shapes:
- HuobiHadax: milliseconds since epoch in the "ts" field
- itBit: ISO-8601 strings such as "2015-05-22T17:45:34.7570000Z"
- Snapshots we build ourselves: "now"

The helpers below normalize all of them into timezone-aware UTC datetimes.
"""

from datetime import datetime, timezone
from typing import Union

from dateutil import parser as dateparser


def to_utc_datetime(timestamp: Union[int, float]) -> datetime:
    """
    Convert a timestamp (seconds or milliseconds) to UTC datetime.

    Values above 1e12 are treated as milliseconds, anything else as seconds.

    Raises:
        ValueError: If timestamp is negative or out of range

    Examples:
        >>> to_utc_datetime(1704110400000)
        datetime.datetime(2024, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)
        >>> to_utc_datetime(1704110400)
        datetime.datetime(2024, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)
    """
    if timestamp < 0:
        raise ValueError(f"Timestamp cannot be negative: {timestamp}")

    if timestamp > 1e12:
        timestamp = timestamp / 1000.0

    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc)
    except (OSError, OverflowError, ValueError) as e:
        raise ValueError(f"Invalid timestamp: {timestamp}. Error: {e}")


def parse_utc_datetime(value: str) -> datetime:
    """
    Parse an ISO-8601 style time string into a UTC datetime.

    Naive results are assumed to already be UTC.

    Raises:
        ValueError: If the string cannot be parsed

    Example:
        >>> parse_utc_datetime("2015-05-22T17:45:34.7570000Z")
        datetime.datetime(2015, 5, 22, 17, 45, 34, 757000, tzinfo=datetime.timezone.utc)
    """
    try:
        dt = dateparser.isoparse(value)
    except (TypeError, ValueError, OverflowError) as e:
        raise ValueError(f"Invalid datetime string: {value!r}. Error: {e}")

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def current_utc_datetime() -> datetime:
    """Get current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)
