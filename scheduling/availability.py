# scheduling/availability.py

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Mapping, Optional, Tuple
from zoneinfo import ZoneInfo

from scheduling.data import DAY_KEYS, DEFAULT_AVAILABILITY, engine_settings
from scheduling.schemas import DayAvailability
from scheduling.zoned import at_minutes, from_zoned, parse_time_to_minutes


@dataclass(frozen=True)
class DayHours:
    available: bool
    start_minutes: Optional[int] = None
    end_minutes: Optional[int] = None


NOT_WORKING = DayHours(available=False)


def _resolve_day(entry: DayAvailability, default: DayAvailability) -> DayHours:
    start_time = entry.start_time or default.start_time or engine_settings["default_start_time"]
    end_time = entry.end_time or default.end_time or engine_settings["default_end_time"]
    start_minutes = parse_time_to_minutes(start_time)
    end_minutes = parse_time_to_minutes(end_time)

    if start_minutes is None or end_minutes is None or end_minutes <= start_minutes:
        return NOT_WORKING

    # Hours are kept on days off too; the preparation walk reads them.
    return DayHours(
        available=entry.available,
        start_minutes=start_minutes,
        end_minutes=end_minutes,
    )


class WeeklyHours:
    """A complete weekly pattern: one DayHours per weekday (0=Mon)."""

    def __init__(self, days: Dict[int, DayHours]):
        self._days = days

    def for_day(self, zoned_day: datetime) -> DayHours:
        return self._days.get(zoned_day.weekday(), NOT_WORKING)

    def working_hours(self, zoned_day: datetime) -> Optional[DayHours]:
        hours = self.for_day(zoned_day)
        if not hours.available or hours.start_minutes is None:
            return None
        return hours

    def is_working_day(self, zoned_day: datetime) -> bool:
        return self.working_hours(zoned_day) is not None

    def end_minutes(self, zoned_day: datetime) -> int:
        hours = self.working_hours(zoned_day)
        if hours is not None:
            return hours.end_minutes
        fallback = parse_time_to_minutes(DEFAULT_AVAILABILITY["monday"]["end_time"])
        return fallback if fallback is not None else 17 * 60


def resolve_availability(
    pattern: Optional[Mapping[str, DayAvailability]],
    defaults: Optional[Mapping[str, dict]] = None,
) -> WeeklyHours:
    """Merge a possibly-partial weekly pattern over the system defaults.

    Days missing from the pattern take the default day; days present but
    without times take the default times. Keys are weekday names
    ("monday" ... "sunday").
    """
    defaults = defaults or DEFAULT_AVAILABILITY
    pattern = pattern or {}
    days = {}
    for weekday, day_key in enumerate(DAY_KEYS):
        default = DayAvailability.model_validate(defaults.get(day_key, {"available": False}))
        entry = pattern.get(day_key)
        if entry is None:
            entry = default
        elif isinstance(entry, dict):
            entry = DayAvailability.model_validate(entry)
        days[weekday] = _resolve_day(entry, default)
    return WeeklyHours(days)


def working_range_utc(
    weekly: WeeklyHours, zoned_day: datetime, tz: ZoneInfo
) -> Optional[Tuple[datetime, datetime]]:
    hours = weekly.working_hours(zoned_day)
    if hours is None:
        return None
    start_utc = from_zoned(at_minutes(zoned_day, hours.start_minutes), tz)
    end_utc = from_zoned(at_minutes(zoned_day, hours.end_minutes), tz)
    if end_utc <= start_utc:
        return None
    return start_utc, end_utc
