"""Total date helpers that degrade to a fallback instead of raising.

Record payloads carry dates as ISO strings, loose date strings, epoch
milliseconds, or garbage. Every helper here first normalizes its input with
:func:`coerce_datetime`; when that fails it logs a warning and returns the
caller-supplied fallback. Naive values are read in the user timezone (see
``time_utils``), so calendar predicates such as :func:`safe_is_today` follow the
user's wall clock.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, TypeVar

from dateutil import parser as dateutil_parser

from time_utils import local_now, start_of_local_week, to_local, to_utc

logger = logging.getLogger(__name__)

T = TypeVar("T")

# datetime.weekday() index for Sunday
SUNDAY = 6


def coerce_datetime(value: Any) -> datetime | None:
    """Normalize a date-like value to an aware local datetime, or None.

    Accepts datetimes, dates, non-empty date strings, and finite non-zero
    epoch milliseconds. Booleans and every other type are rejected.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, datetime):
            return to_local(value)
        if isinstance(value, date):
            return to_local(datetime.combine(value, time.min))
        if isinstance(value, (int, float)):
            if not math.isfinite(value) or value == 0:
                return None
            return to_local(datetime.fromtimestamp(value / 1000, tz=timezone.utc))
        if isinstance(value, str):
            return to_local(_parse_text(value))
    except (ValueError, OverflowError, OSError):
        return None
    return None


def _parse_text(text: str) -> datetime:
    stripped = text.strip()
    if not stripped:
        raise ValueError("empty date string")
    try:
        return dateutil_parser.isoparse(stripped)
    except ValueError:
        return dateutil_parser.parse(stripped)


def is_valid_date(value: Any) -> bool:
    """Return True when ``value`` can be read as a real instant."""
    return coerce_datetime(value) is not None


def safe_format(value: Any, pattern: str, fallback: str = "Invalid date") -> str:
    """Format ``value`` with a strftime ``pattern``, or return ``fallback``."""
    parsed = coerce_datetime(value)
    if parsed is None:
        logger.warning("Invalid date provided to safe_format: %r", value)
        return fallback
    try:
        return parsed.strftime(pattern)
    except (TypeError, ValueError) as exc:
        logger.error("safe_format failed for %r with pattern %r: %s", value, pattern, exc)
        return fallback


def safe_parse_iso(text: Any, fallback: T | None = None) -> datetime | T | None:
    """Parse an ISO-8601 string, returning ``fallback`` on any failure."""
    if not isinstance(text, str) or not text.strip():
        logger.warning("Invalid date string provided to safe_parse_iso: %r", text)
        return fallback
    try:
        return to_local(dateutil_parser.isoparse(text.strip()))
    except (ValueError, OverflowError):
        logger.warning("Failed to parse ISO date: %r", text)
        return fallback


def safe_is_after(first: Any, second: Any, fallback: bool = False) -> bool:
    """Return whether ``first`` is strictly after ``second``."""
    first_dt = coerce_datetime(first)
    second_dt = coerce_datetime(second)
    if first_dt is None or second_dt is None:
        logger.warning("Invalid dates provided to safe_is_after: %r, %r", first, second)
        return fallback
    return first_dt > second_dt


def safe_is_before(first: Any, second: Any, fallback: bool = False) -> bool:
    """Return whether ``first`` is strictly before ``second``."""
    first_dt = coerce_datetime(first)
    second_dt = coerce_datetime(second)
    if first_dt is None or second_dt is None:
        logger.warning("Invalid dates provided to safe_is_before: %r, %r", first, second)
        return fallback
    return first_dt < second_dt


def _calendar_pair(
    name: str, value: Any, now: Any | None
) -> tuple[datetime, datetime] | None:
    """Coerce a value and its reference instant for calendar predicates."""
    parsed = coerce_datetime(value)
    if parsed is None:
        logger.warning("Invalid date provided to %s: %r", name, value)
        return None
    reference = local_now() if now is None else coerce_datetime(now)
    if reference is None:
        logger.warning("Invalid reference time provided to %s: %r", name, now)
        return None
    return parsed, reference


def safe_is_today(value: Any, fallback: bool = False, *, now: Any | None = None) -> bool:
    """Return whether ``value`` falls on the current local calendar day."""
    pair = _calendar_pair("safe_is_today", value, now)
    if pair is None:
        return fallback
    parsed, reference = pair
    return parsed.date() == to_local(reference).date()


def safe_is_tomorrow(value: Any, fallback: bool = False, *, now: Any | None = None) -> bool:
    """Return whether ``value`` falls on the next local calendar day."""
    pair = _calendar_pair("safe_is_tomorrow", value, now)
    if pair is None:
        return fallback
    parsed, reference = pair
    try:
        return parsed.date() == to_local(reference).date() + timedelta(days=1)
    except (OverflowError, ValueError):
        logger.warning("Date out of range in safe_is_tomorrow: %r, %r", value, now)
        return fallback


def safe_is_this_week(
    value: Any,
    fallback: bool = False,
    *,
    now: Any | None = None,
    week_starts_on: int = SUNDAY,
) -> bool:
    """Return whether ``value`` falls in the current local week (Sunday first)."""
    pair = _calendar_pair("safe_is_this_week", value, now)
    if pair is None:
        return fallback
    parsed, reference = pair
    try:
        return start_of_local_week(parsed, week_starts_on) == start_of_local_week(
            reference, week_starts_on
        )
    except (OverflowError, ValueError):
        logger.warning("Date out of range in safe_is_this_week: %r, %r", value, now)
        return fallback


def _iso_utc(value: datetime) -> str:
    return to_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def safe_to_iso_string(value: Any, fallback: str | None = None) -> str:
    """Render ``value`` as a UTC ISO string with millisecond precision.

    A ``None`` fallback stands for the current instant.
    """
    parsed = coerce_datetime(value)
    if parsed is None:
        logger.warning("Invalid date provided to safe_to_iso_string: %r", value)
    else:
        try:
            return _iso_utc(parsed)
        except (OverflowError, ValueError):
            logger.warning("Date out of range in safe_to_iso_string: %r", value)
    if fallback is None:
        return _iso_utc(local_now())
    return fallback


def safe_sub_days(value: Any, days: Any, fallback: T | None = None) -> datetime | T | None:
    """Subtract whole ``days`` from ``value``, or return ``fallback``."""
    parsed = coerce_datetime(value)
    if parsed is None or isinstance(days, bool) or not isinstance(days, (int, float)):
        logger.warning("Invalid inputs provided to safe_sub_days: %r, %r", value, days)
        return fallback
    try:
        return parsed - timedelta(days=int(days))
    except (ValueError, OverflowError) as exc:
        logger.error("safe_sub_days failed for %r minus %r days: %s", value, days, exc)
        return fallback


def safe_date_sort(first: Any, second: Any) -> int:
    """Comparator ordering newest first, with invalid dates last.

    Use with ``functools.cmp_to_key``. Two invalid dates compare equal.
    """
    first_dt = coerce_datetime(first)
    second_dt = coerce_datetime(second)
    if first_dt is None and second_dt is None:
        return 0
    if first_dt is None:
        return 1
    if second_dt is None:
        return -1
    return (second_dt > first_dt) - (second_dt < first_dt)
