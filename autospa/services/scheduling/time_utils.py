# autospa/services/scheduling/time_utils.py
"""
Wall-clock helpers for the scheduling core.

Times are business-local "HH:MM" strings; no timezone handling happens here.
"""
from datetime import date, datetime
from typing import Tuple

from autospa.core.exceptions import InvalidTimeFormat, ValidationError

MINUTES_PER_DAY = 24 * 60

# Index matches day_of_week() below (0=Sunday)
DAY_NAMES: Tuple[str, ...] = (
    "sunday",
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
)


def time_to_minutes(time_str: str) -> int:
    """Parse "HH:MM" (optionally "HH:MM:SS") to minutes since midnight."""
    if not isinstance(time_str, str):
        raise InvalidTimeFormat(time_str)

    parts = time_str.strip().split(":")
    if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
        raise InvalidTimeFormat(time_str)

    hours, minutes = int(parts[0]), int(parts[1])
    if hours > 23 or minutes > 59 or len(parts[1]) != 2:
        raise InvalidTimeFormat(time_str)

    return hours * 60 + minutes


def minutes_to_time(minutes: int) -> str:
    """Inverse of time_to_minutes, wrapping at 24 hours."""
    minutes = minutes % MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def add_minutes_to_time(time_str: str, delta_minutes: int) -> str:
    return minutes_to_time(time_to_minutes(time_str) + delta_minutes)


def normalize_time(time_str: str) -> str:
    """Canonical zero-padded "HH:MM" form of a valid clock string."""
    return minutes_to_time(time_to_minutes(time_str))


def parse_date(value: str) -> date:
    """Parse a strict YYYY-MM-DD string"""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError("Invalid date format. Use YYYY-MM-DD.")


def day_of_week(target_date: date) -> int:
    """Day of week with 0=Sunday ... 6=Saturday."""
    # date.weekday() is 0=Monday
    return (target_date.weekday() + 1) % 7


def day_name(target_date: date) -> str:
    return DAY_NAMES[day_of_week(target_date)]
