"""Calendar-day helpers for phase scheduling.

Central helper for date operations used by the constraint engine:
- Normalize dates, datetimes and ISO strings to a calendar day
- Add or subtract whole days
- Measure the distance between two days

Phase dates carry day granularity. A datetime contributes only its own
calendar date: time-of-day and time zone are dropped, never converted, so
two values naming the same day always compare equal.
"""

from datetime import date, datetime, timedelta

DAY_FORMAT = "%Y-%m-%d"


def as_day(value: date | datetime | str) -> date:
    """Normalize a date-like value to a calendar day.

    Args:
        value: date, datetime (naive or aware) or ISO string
            ("2025-01-05", "2025-01-05T23:30:00-05:00", "2025-01-05T10:00:00Z")

    Returns:
        The calendar day named by the value

    Raises:
        ValueError: If the string is not an ISO date or timestamp
        TypeError: If the value is not date-like
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if "T" in text or " " in text:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        return datetime.strptime(text, DAY_FORMAT).date()
    raise TypeError(f"Expected a date, datetime or ISO string, got {type(value).__name__}")


def add_days(day: date, days: int) -> date:
    """Return the calendar day `days` days after `day` (negative moves back)."""
    return day + timedelta(days=days)


def days_between(start: date, end: date) -> int:
    """Return the number of whole days from start to end (negative if end is earlier)."""
    return (end - start).days


def format_day(day: date) -> str:
    """Format a calendar day as YYYY-MM-DD."""
    return day.strftime(DAY_FORMAT)
