# scheduling/predicates.py

"""Day and window blocking predicates.

Strict mode: any block source counts against the single merged view.
Multi-resource mode: a day or window stays usable as long as enough members
remain free (min_resources) or the overlap percentage holds.
"""

import math
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Tuple
from zoneinfo import ZoneInfo

from scheduling.availability import WeeklyHours, working_range_utc
from scheduling.blocks import BlockedData, BlockedInterval, PerMemberBlockedData
from scheduling.context import ResourcePolicy
from scheduling.data import engine_settings
from scheduling.zoned import date_key, iter_days, local_day_bounds, normalize_range_end_inclusive, to_zoned


def _merged_minutes(spans: List[Tuple[datetime, datetime]]) -> float:
    if not spans:
        return 0.0
    spans = sorted(spans)
    total = timedelta()
    current_start, current_end = spans[0]
    for start, end in spans[1:]:
        if start <= current_end:
            current_end = max(current_end, end)
        else:
            total += current_end - current_start
            current_start, current_end = start, end
    total += current_end - current_start
    return total.total_seconds() / 60


def blocked_working_minutes(
    intervals: Iterable[BlockedInterval],
    weekly: WeeklyHours,
    zoned_day: datetime,
    tz: ZoneInfo,
) -> Optional[float]:
    """Minutes of the day's working window covered by blocked intervals.

    Intervals are clipped to the local day, then to the working window, and
    merged before summing. None when the day has no working window.
    """
    working_range = working_range_utc(weekly, zoned_day, tz)
    if working_range is None:
        return None
    work_start, work_end = working_range
    day_start, day_end = local_day_bounds(zoned_day, tz)

    spans = []
    for interval in intervals:
        interval_end = normalize_range_end_inclusive(interval.end, tz)
        if interval_end <= day_start or interval.start >= day_end:
            continue
        start = max(interval.start, day_start, work_start)
        end = min(interval_end, day_end, work_end)
        if end > start:
            spans.append((start, end))
    return _merged_minutes(spans)


def is_day_blocked(blocked: BlockedData, weekly: WeeklyHours, zoned_day: datetime, tz: ZoneInfo) -> bool:
    """Whole-day check shared by strict mode and by each member in multi-resource mode."""
    if date_key(zoned_day) in blocked.dates:
        return True
    minutes = blocked_working_minutes(blocked.intervals, weekly, zoned_day, tz)
    if minutes is None:
        return True
    return minutes / 60 >= engine_settings["partial_block_threshold_hours"]


def window_overlaps(start_utc: datetime, end_utc: datetime, intervals: Iterable[BlockedInterval], tz: ZoneInfo) -> bool:
    return any(
        start_utc < normalize_range_end_inclusive(interval.end, tz) and end_utc > interval.start
        for interval in intervals
    )


def count_available_for_day(
    per_member: PerMemberBlockedData, weekly: WeeklyHours, zoned_day: datetime, tz: ZoneInfo
) -> int:
    return sum(
        1 for blocked in per_member.values() if not is_day_blocked(blocked, weekly, zoned_day, tz)
    )


def count_available_for_window(
    per_member: PerMemberBlockedData,
    weekly: WeeklyHours,
    start_utc: datetime,
    end_utc: datetime,
    tz: ZoneInfo,
) -> int:
    start_zoned = to_zoned(start_utc, tz)
    if not weekly.is_working_day(start_zoned):
        return 0
    key = date_key(start_zoned)
    count = 0
    for blocked in per_member.values():
        if key in blocked.dates:
            continue
        if not window_overlaps(start_utc, end_utc, blocked.intervals, tz):
            count += 1
    return count


def days_overlap_percentage(
    per_member: PerMemberBlockedData,
    weekly: WeeklyHours,
    start_zoned: datetime,
    execution_days: int,
    min_resources: int,
    tz: ZoneInfo,
) -> float:
    """Share of the next ``execution_days`` working days with enough members free."""
    if execution_days <= 0:
        return 100.0

    available_days = 0
    counted = 0
    for day in iter_days(start_zoned, engine_settings["safety_cap_days"]):
        if counted >= execution_days:
            break
        if not weekly.is_working_day(day):
            continue
        counted += 1
        if count_available_for_day(per_member, weekly, day, tz) >= min_resources:
            available_days += 1

    return available_days / execution_days * 100


def hours_overlap_percentage(
    per_member: PerMemberBlockedData,
    weekly: WeeklyHours,
    start_utc: datetime,
    end_utc: datetime,
    min_resources: int,
    tz: ZoneInfo,
) -> float:
    """Share of 30-minute samples across the window with enough members free."""
    total_minutes = (end_utc - start_utc).total_seconds() / 60
    if total_minutes <= 0:
        return 100.0

    sample_minutes = engine_settings["slot_minutes"]
    total_samples = max(1, math.ceil(total_minutes / sample_minutes))
    available_samples = 0
    for index in range(total_samples):
        sample_start = start_utc + timedelta(minutes=index * sample_minutes)
        if sample_start >= end_utc:
            break
        sample_end = min(sample_start + timedelta(minutes=sample_minutes), end_utc)
        if count_available_for_window(per_member, weekly, sample_start, sample_end, tz) >= min_resources:
            available_samples += 1

    return available_samples / total_samples * 100


class AvailabilityView:
    """Policy-aware predicates over one query's resolved hours and blocks."""

    def __init__(
        self,
        weekly: WeeklyHours,
        tz: ZoneInfo,
        blocked: BlockedData,
        per_member: Optional[PerMemberBlockedData] = None,
        policy: Optional[ResourcePolicy] = None,
    ):
        self.weekly = weekly
        self.tz = tz
        self.blocked = blocked
        self.per_member = per_member
        self.policy = policy

    @property
    def multi_resource(self) -> bool:
        return bool(self.per_member) and self.policy is not None and self.policy.multi_resource

    def is_day_blocked(self, zoned_day: datetime) -> bool:
        if self.multi_resource:
            if not self.weekly.is_working_day(zoned_day):
                return True
            available = count_available_for_day(self.per_member, self.weekly, zoned_day, self.tz)
            return available < self.policy.min_resources
        return is_day_blocked(self.blocked, self.weekly, zoned_day, self.tz)

    def is_date_excluded(self, zoned_day: datetime) -> bool:
        # Whole-day blocks only rule a date out for slot search in strict mode
        return not self.multi_resource and date_key(zoned_day) in self.blocked.dates

    def days_overlap_percentage(self, start_zoned: datetime, execution_days: int) -> float:
        if not self.multi_resource:
            return 100.0
        return days_overlap_percentage(
            self.per_member, self.weekly, start_zoned, execution_days,
            self.policy.min_resources, self.tz,
        )

    def meets_days_overlap(self, start_zoned: datetime, execution_days: int) -> bool:
        if not self.multi_resource:
            return True
        return self.days_overlap_percentage(start_zoned, execution_days) >= self.policy.min_overlap_percentage

    def window_usable(self, start_utc: datetime, end_utc: datetime) -> bool:
        if self.multi_resource:
            percentage = hours_overlap_percentage(
                self.per_member, self.weekly, start_utc, end_utc,
                self.policy.min_resources, self.tz,
            )
            return percentage >= self.policy.min_overlap_percentage
        return not window_overlaps(start_utc, end_utc, self.blocked.intervals, self.tz)
