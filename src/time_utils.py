"""Local-calendar helpers for date comparisons shown to CRM users."""

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from config import settings


def get_local_timezone() -> ZoneInfo:
    """Return the configured user timezone."""
    timezone_name = settings.user.timezone
    try:
        return ZoneInfo(timezone_name)
    except ZoneInfoNotFoundError as exc:
        raise ValueError(f"Invalid timezone: {timezone_name}") from exc


def to_local(value: datetime) -> datetime:
    """Attach or convert a datetime to the user timezone.

    Naive values are read as wall-clock time in the user timezone.
    """
    local_tz = get_local_timezone()
    if value.tzinfo is None:
        return value.replace(tzinfo=local_tz)
    return value.astimezone(local_tz)


def to_utc(value: datetime) -> datetime:
    """Convert a datetime to UTC, reading naive values as local time."""
    return to_local(value).astimezone(timezone.utc)


def local_now() -> datetime:
    """Return the current time in the user timezone."""
    return datetime.now(get_local_timezone())


def start_of_local_day(value: datetime) -> datetime:
    """Return local midnight of the calendar day containing ``value``."""
    local_value = to_local(value)
    return datetime.combine(local_value.date(), time.min, tzinfo=local_value.tzinfo)


def start_of_local_week(value: datetime, week_starts_on: int = 6) -> datetime:
    """Return local midnight of the first day of the week containing ``value``.

    Args:
        value: Any datetime inside the week.
        week_starts_on: ``datetime.weekday()`` index of the first day
            (6 = Sunday, 0 = Monday).
    """
    day_start = start_of_local_day(value)
    offset = (day_start.weekday() - week_starts_on) % 7
    return day_start - timedelta(days=offset)
