"""
UTC timestamp helpers shared by the clock and maintenance modules.

Simulated time is always handled as timezone-aware UTC datetimes. Naive
values coming from the wire or the database are assumed to be UTC.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Union

MONTHS = ('Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
          'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec')

END_OF_DAY = time(23, 59, 59, 999000)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Union[str, datetime, date]) -> datetime:
    """
    Parse an ISO-8601 timestamp (or date) into an aware UTC datetime.

    Accepts the trailing 'Z' that JavaScript's toISOString() emits.
    Raises ValueError/TypeError for anything unparseable.
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time(0), tzinfo=timezone.utc)
    if not isinstance(value, str):
        raise TypeError(f'Expected ISO-8601 string, got {type(value).__name__}')

    text = value.strip()
    if text.endswith('Z') or text.endswith('z'):
        text = text[:-1] + '+00:00'
    return ensure_utc(datetime.fromisoformat(text))


def end_of_utc_day(day: date) -> datetime:
    """Final instant (23:59:59.999) of a UTC calendar day."""
    return datetime.combine(day, END_OF_DAY, tzinfo=timezone.utc)


def format_utc(value: datetime) -> str:
    """Format like '1 Mar 2024 23:59z'."""
    value = ensure_utc(value)
    return f'{value.day} {MONTHS[value.month - 1]} {value.year} {value.hour:02d}:{value.minute:02d}z'


def hours_between(start: datetime, end: datetime) -> float:
    """Signed number of hours from start to end."""
    return (end - start) / timedelta(hours=1)
