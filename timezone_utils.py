"""
Local calendar utilities for GreenMirror.
Daily habit completion and streaks are judged on the user's local calendar day,
never on UTC day boundaries. The zone comes from APP_TIMEZONE.
"""

import datetime
import os
import pytz
from typing import Union

DEFAULT_TIMEZONE = 'Asia/Jakarta'


def get_local_tz():
    """Returns the configured local timezone (read on every call so tests can override it)."""
    return pytz.timezone(os.environ.get('APP_TIMEZONE', DEFAULT_TIMEZONE))


def get_current_local_datetime() -> datetime.datetime:
    return datetime.datetime.now(get_local_tz())


def get_current_local_date() -> datetime.date:
    return get_current_local_datetime().date()


def utc_now_iso() -> str:
    """Current instant as an ISO-8601 string with an explicit UTC offset."""
    return datetime.datetime.now(pytz.utc).isoformat()


def parse_iso_datetime(value: str) -> datetime.datetime:
    """
    Parse an ISO-8601 timestamp as written by the log entries.
    A trailing 'Z' is accepted; naive values are taken to be UTC.
    """
    if value.endswith('Z'):
        value = value[:-1] + '+00:00'
    dt = datetime.datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = pytz.utc.localize(dt)
    return dt


def convert_to_local(dt: Union[datetime.datetime, datetime.date, str]) -> datetime.datetime:
    """
    Convert a datetime, date or ISO string to the local timezone.

    Args:
        dt: value to convert. A bare date means local midnight of that date.

    Returns:
        datetime.datetime: aware datetime in the local timezone
    """
    tz = get_local_tz()
    if isinstance(dt, str):
        dt = parse_iso_datetime(dt)
    if isinstance(dt, datetime.date) and not isinstance(dt, datetime.datetime):
        return tz.localize(datetime.datetime.combine(dt, datetime.time.min))
    if dt.tzinfo is None:
        return tz.localize(dt)
    return dt.astimezone(tz)


def to_local_date(value: Union[datetime.datetime, datetime.date, str, None] = None) -> datetime.date:
    """Local calendar date of the given value, or today when omitted."""
    if value is None:
        return get_current_local_date()
    if isinstance(value, datetime.date) and not isinstance(value, datetime.datetime):
        return value
    if isinstance(value, str) and 'T' not in value and ' ' not in value:
        # A bare YYYY-MM-DD is already a local calendar date.
        return datetime.date.fromisoformat(value)
    return convert_to_local(value).date()


def is_same_local_day(dt1, dt2) -> bool:
    return to_local_date(dt1) == to_local_date(dt2)


def days_between_local(earlier, later) -> int:
    """Whole local calendar days from `earlier` to `later` (negative if `later` is before)."""
    return (to_local_date(later) - to_local_date(earlier)).days


__all__ = [
    'DEFAULT_TIMEZONE',
    'get_local_tz',
    'get_current_local_datetime',
    'get_current_local_date',
    'utc_now_iso',
    'parse_iso_datetime',
    'convert_to_local',
    'to_local_date',
    'is_same_local_day',
    'days_between_local',
]
