# scheduling/calculators.py

import logging
import math
from datetime import datetime, timedelta
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from scheduling.availability import WeeklyHours
from scheduling.data import engine_settings
from scheduling.errors import ScheduleComputationError
from scheduling.predicates import AvailabilityView
from scheduling.schemas import Duration, DurationUnit
from scheduling.zoned import add_days, at_minutes, date_key, iter_days, minutes_of_day, start_of_day, to_zoned

logger = logging.getLogger(__name__)

WEEKEND = (5, 6)


def calculate_prep_end(
    preparation: Optional[Duration],
    weekly: WeeklyHours,
    tz: ZoneInfo,
    is_holiday: Callable[[datetime], bool],
    now: datetime,
) -> datetime:
    """Earliest zoned instant the search may begin.

    Hours are added straight onto now. Days count weekdays that are not company
    holidays; the result is midnight after the last counted day. Today only
    counts while its working day is still running.
    """
    zoned_now = to_zoned(now, tz)
    if preparation is None or preparation.value <= 0:
        return zoned_now

    if preparation.unit == DurationUnit.hours:
        return zoned_now + timedelta(hours=preparation.value)

    def is_prep_day(day: datetime) -> bool:
        return day.weekday() not in WEEKEND and not is_holiday(day)

    cursor = start_of_day(zoned_now)
    today_end = weekly.for_day(cursor).end_minutes
    if not is_prep_day(cursor) or today_end is None or minutes_of_day(zoned_now) >= today_end:
        cursor = add_days(cursor, 1)

    target = math.ceil(preparation.value)
    cap = engine_settings["safety_cap_days"]
    counted = 0
    iterations = 0
    last_prep_day = cursor
    for day in iter_days(cursor, cap):
        if counted >= target:
            break
        iterations += 1
        if is_prep_day(day):
            counted += 1
            last_prep_day = day

    if counted < target:
        error = ScheduleComputationError(
            "Preparation walk exceeded its safety cap",
            target=target,
            iterations=iterations,
            cursor=date_key(add_days(cursor, iterations)),
        )
        logger.error("%s", error)
        raise error

    return add_days(start_of_day(last_prep_day), 1)


def advance_working_days(start_zoned: datetime, working_days: int, view: AvailabilityView) -> Optional[datetime]:
    """Day on which the ``working_days``-th unblocked day falls, counting ``start_zoned``."""
    if working_days <= 0:
        return start_zoned

    counted = 0
    for day in iter_days(start_zoned, engine_settings["safety_cap_days"]):
        if not view.is_day_blocked(day):
            counted += 1
            if counted >= working_days:
                return day
    return None


def add_working_hours(start_zoned: datetime, hours: float, view: AvailabilityView) -> Optional[datetime]:
    """Consume ``hours`` of working time from ``start_zoned``, skipping blocked days."""
    remaining = hours * 60
    cursor = start_zoned
    for _ in range(engine_settings["working_hours_cap_days"]):
        if remaining <= 0:
            return cursor
        day_start = start_of_day(cursor)
        working = view.weekly.working_hours(day_start)
        if working is None or view.is_day_blocked(day_start):
            cursor = add_days(day_start, 1)
            continue

        current = max(minutes_of_day(cursor), working.start_minutes)
        if current >= working.end_minutes:
            cursor = add_days(day_start, 1)
            continue

        available = working.end_minutes - current
        if remaining <= available:
            return at_minutes(day_start, current) + timedelta(minutes=remaining)
        remaining -= available
        cursor = add_days(day_start, 1)

    return cursor if remaining <= 0 else None


def buffer_start(execution_end_zoned: datetime, mode: DurationUnit, buffer: Optional[Duration]) -> Optional[datetime]:
    if buffer is None or buffer.value <= 0:
        return None
    if mode == DurationUnit.hours and buffer.unit == DurationUnit.hours:
        return execution_end_zoned
    return add_days(start_of_day(execution_end_zoned), 1)


def calculate_buffer_end(
    execution_end_zoned: datetime,
    buffer: Optional[Duration],
    mode: DurationUnit,
    view: AvailabilityView,
) -> Optional[datetime]:
    """Zoned end of the post-execution hold, or execution end without one.

    None when the walk runs out before the buffer is consumed.
    """
    start = buffer_start(execution_end_zoned, mode, buffer)
    if start is None:
        return execution_end_zoned

    if buffer.unit == DurationUnit.hours:
        return add_working_hours(start, buffer.value, view)

    end_day = advance_working_days(start, math.ceil(buffer.value), view)
    if end_day is None:
        return None
    return at_minutes(end_day, view.weekly.end_minutes(end_day))
