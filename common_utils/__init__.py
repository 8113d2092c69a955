"""
Common utilities for the Trip Seat Manager application
"""
from datetime import date, datetime, time, timezone
from typing import Tuple, Union
from zoneinfo import ZoneInfo

from app.config import settings


def get_app_timezone() -> ZoneInfo:
    return ZoneInfo(settings.APP_TIMEZONE)


def utc_now() -> datetime:
    """
    Current time as a naive UTC datetime, the form every timestamp is stored in.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_storage_datetime(value: Union[datetime, date]) -> datetime:
    """
    Normalize a datetime (or date) to naive UTC.

    Naive input is interpreted as local time in APP_TIMEZONE; a bare date
    means local midnight of that day.
    """
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    if value.tzinfo is None:
        value = value.replace(tzinfo=get_app_timezone())
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def local_day_bounds(day: Union[datetime, date]) -> Tuple[datetime, datetime]:
    """
    Return the (start, end) of a local calendar day as naive UTC datetimes.

    Both bounds are inclusive: start is 00:00:00.000000 and end is
    23:59:59.999999 local time.
    """
    if isinstance(day, datetime):
        if day.tzinfo is not None:
            day = day.astimezone(get_app_timezone())
        day = day.date()
    start = datetime.combine(day, time.min)
    end = datetime.combine(day, time.max)
    return to_storage_datetime(start), to_storage_datetime(end)
