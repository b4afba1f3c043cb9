# reservation_engine/domain/slots.py
"""
Normalization of the (table, date, time) slot used for conflict detection.

Times are compared at minute granularity as "HH:MM" strings and dates as
calendar days, so two requests for the same local day always land on the
same key no matter what time-of-day the date field carried.
"""
import re
from datetime import date, datetime
from typing import Union

TIME_PATTERN = re.compile(r'^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$')


def normalize_time(value: str) -> str:
    """
    Normalize a wall-clock time to zero-padded HH:MM.

    Args:
        value: Time like "9:05" or "19:00"

    Returns:
        Normalized time string

    Raises:
        ValueError: If value is not a valid HH:MM time
    """
    match = TIME_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"Invalid time '{value}', expected HH:MM")
    hours, minutes = match.groups()
    return f"{int(hours):02d}:{minutes}"


def to_calendar_date(value: Union[str, date, datetime]) -> date:
    """
    Reduce a date, datetime or ISO string to its calendar day.

    Args:
        value: Date-like input

    Returns:
        Calendar date

    Raises:
        ValueError: If value cannot be parsed
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = value.strip()
    if len(text) == 10:
        return date.fromisoformat(text)
    return datetime.fromisoformat(text.replace("Z", "+00:00")).date()


def slot_fingerprint(table_id: str, booking_date: date, booking_time: str) -> str:
    """Uniqueness key of a non-terminal reservation."""
    return f"{table_id}|{booking_date.isoformat()}|{booking_time}"
