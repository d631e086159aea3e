"""
Datetime utilities for consistent timezone and wall-clock handling.

All business logic runs on the clinic wall clock, a fixed UTC offset taken
from configuration (UTC+9 by default). Appointment times are stored as naive
dates and times interpreted in that timezone.

This module also holds the interval primitives shared by every scheduling
rule: wall-clock times are compared as integer minutes since midnight, and
intervals are half-open ``[start, end)``.
"""

import logging
from datetime import datetime, timezone, timedelta, date, time
from typing import Optional, Union

from core.config import CLINIC_UTC_OFFSET_HOURS

logger = logging.getLogger(__name__)

CLINIC_TZ = timezone(timedelta(hours=CLINIC_UTC_OFFSET_HOURS))

WallClock = Union[str, time]


def clinic_now() -> datetime:
    """
    Get the current datetime on the clinic wall clock.

    Returns:
        Current timezone-aware datetime in the clinic timezone
    """
    return datetime.now(CLINIC_TZ)


def clinic_today() -> date:
    """Get today's date on the clinic wall clock."""
    return clinic_now().date()


def ensure_clinic_tz(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure a datetime is timezone-aware in the clinic timezone.

    Naive datetimes are assumed to already be clinic wall-clock time.

    Args:
        dt: Datetime to normalize

    Returns:
        Timezone-aware datetime in the clinic timezone, or None if input is None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=CLINIC_TZ)
    return dt.astimezone(CLINIC_TZ)


def parse_date_string(date_str: str) -> date:
    """
    Parse a date string in YYYY-MM-DD format.

    Raises:
        ValueError: If the string is not a valid date
    """
    return datetime.strptime(date_str, "%Y-%m-%d").date()


def time_to_minutes(value: WallClock) -> int:
    """
    Convert a wall-clock time to minutes since midnight.

    Accepts a zero-padded ``HH:MM`` string (``HH:MM:SS`` as read back from
    the database is also accepted, seconds are ignored) or a ``time``.

    Malformed strings raise ValueError: the format is validated upstream, so
    reaching this point with bad input is a programming error.
    """
    if isinstance(value, time):
        return value.hour * 60 + value.minute

    parts = value.split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"Invalid wall-clock time: {value!r}")
    hours, minutes = int(parts[0]), int(parts[1])
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise ValueError(f"Invalid wall-clock time: {value!r}")
    return hours * 60 + minutes


def parse_time_string(value: str) -> time:
    """Parse an ``HH:MM`` string into a ``time``."""
    minutes = time_to_minutes(value)
    return time(minutes // 60, minutes % 60)


def format_time(value: WallClock) -> str:
    """Format a wall-clock time as zero-padded ``HH:MM``."""
    minutes = time_to_minutes(value)
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def intervals_overlap(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """
    Check whether two half-open intervals ``[a_start, a_end)`` and ``[b_start, b_end)`` overlap.

    Touching intervals (``a_end == b_start``) do not overlap. This is the only
    overlap rule used by the scheduling code.
    """
    return a_start < b_end and a_end > b_start


def times_overlap(a_start: WallClock, a_end: WallClock, b_start: WallClock, b_end: WallClock) -> bool:
    """Wall-clock variant of intervals_overlap."""
    return intervals_overlap(
        time_to_minutes(a_start), time_to_minutes(a_end),
        time_to_minutes(b_start), time_to_minutes(b_end),
    )


def day_of_week_index(value: date) -> int:
    """
    Day-of-week index used by business hours: 0=Sunday, 1=Monday, ..., 6=Saturday.

    Python's weekday() is 0=Monday, so it is shifted by one.
    """
    return (value.weekday() + 1) % 7


def combine_clinic_datetime(value: date, wall_clock: WallClock) -> datetime:
    """Combine a date and wall-clock time into an aware clinic datetime."""
    minutes = time_to_minutes(wall_clock)
    return datetime.combine(value, time(minutes // 60, minutes % 60), tzinfo=CLINIC_TZ)
