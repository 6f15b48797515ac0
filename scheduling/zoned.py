# scheduling/zoned.py

"""Wall-clock ("zoned") time helpers.

A zoned value is a naive datetime whose fields are the wall-clock reading in a
named zone. Day and slot arithmetic happens on zoned values; real instants
(aware, UTC) only appear at the boundary via to_zoned / from_zoned.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from scheduling.data import engine_settings

logger = logging.getLogger(__name__)

UTC = ZoneInfo("UTC")


def get_zone(tz_name: Optional[str]) -> ZoneInfo:
    name = tz_name or engine_settings["default_timezone"]
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown time zone %r, falling back to UTC", name)
        return UTC


def as_utc(value: datetime) -> datetime:
    # Naive instants are read as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_zoned(instant: datetime, tz: ZoneInfo) -> datetime:
    """Wall-clock reading in ``tz`` at ``instant``, as a naive datetime.

    The offset is looked up for this exact instant, so values on either side
    of a DST transition come out right.
    """
    return as_utc(instant).astimezone(tz).replace(tzinfo=None)


def from_zoned(zoned: datetime, tz: ZoneInfo) -> datetime:
    """Inverse of to_zoned: the UTC instant showing ``zoned`` on a wall clock in ``tz``."""
    return zoned.replace(tzinfo=tz).astimezone(timezone.utc)


def start_of_day(zoned: datetime) -> datetime:
    return datetime.combine(zoned.date(), time.min)


def add_days(zoned: datetime, days: int) -> datetime:
    return zoned + timedelta(days=days)


def at_minutes(zoned: datetime, minutes: int) -> datetime:
    return start_of_day(zoned) + timedelta(minutes=minutes)


def minutes_of_day(zoned: datetime) -> int:
    return zoned.hour * 60 + zoned.minute


def date_key(zoned: datetime) -> str:
    return zoned.date().isoformat()


def day_key_of(value: Union[date, datetime], tz: ZoneInfo) -> str:
    """Calendar day of a stored block date, as seen in ``tz``."""
    if isinstance(value, datetime):
        return date_key(to_zoned(value, tz))
    return value.isoformat()


def zoned_day_of(value: Union[date, datetime], tz: ZoneInfo) -> datetime:
    if isinstance(value, datetime):
        return start_of_day(to_zoned(value, tz))
    return datetime.combine(value, time.min)


def parse_time_to_minutes(value: Optional[str]) -> Optional[int]:
    """Parse "HH:mm" into minutes from midnight, None if malformed."""
    if not value:
        return None
    parts = value.strip().split(":")
    if len(parts) != 2:
        return None
    try:
        hours, minutes = int(parts[0]), int(parts[1])
    except ValueError:
        return None
    if not (0 <= hours <= 24 and 0 <= minutes < 60):
        return None
    total = hours * 60 + minutes
    if total > 24 * 60:
        return None
    return total


def format_minutes(minutes_from_midnight: int) -> str:
    hours, minutes = divmod(int(minutes_from_midnight), 60)
    return f"{hours:02d}:{minutes:02d}"


def parse_date_key(value: Optional[str]) -> Optional[datetime]:
    """Parse "YYYY-MM-DD" into a zoned midnight, None if malformed."""
    if not value:
        return None
    try:
        return datetime.combine(date.fromisoformat(value.strip()[:10]), time.min)
    except ValueError:
        return None


def normalize_range_end_inclusive(range_end: datetime, tz: ZoneInfo) -> datetime:
    """Stretch a range ending exactly at UTC midnight to the end of that local day.

    Ranges entered as whole dates are stored with a midnight end and mean
    "through this date".
    """
    end = as_utc(range_end)
    if end.time() != time.min:
        return end
    end_day = start_of_day(to_zoned(end, tz))
    return from_zoned(add_days(end_day, 1), tz)


def local_day_bounds(zoned_day: datetime, tz: ZoneInfo):
    day_start = start_of_day(zoned_day)
    return from_zoned(day_start, tz), from_zoned(add_days(day_start, 1), tz)


def iter_days(start: datetime, count: int) -> Iterator[datetime]:
    """Finite run of ``count`` consecutive zoned days beginning at ``start``."""
    for offset in range(max(0, count)):
        yield add_days(start, offset)
