from datetime import datetime, timedelta, timezone

from scheduling.availability import resolve_availability
from scheduling.blocks import BlockedData, BlockedInterval, FullDayBlock, RangeBlock
from scheduling.context import ResourcePolicy
from scheduling.predicates import (
    AvailabilityView,
    blocked_working_minutes,
    count_available_for_day,
    days_overlap_percentage,
    hours_overlap_percentage,
    is_day_blocked,
    window_overlaps,
)
from scheduling.zoned import UTC

WEEKLY = resolve_availability(None)
MONDAY = datetime(2026, 10, 19)
TUESDAY = datetime(2026, 10, 20)


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def blocked_from(start, duration):
    return BlockedData(intervals=[BlockedInterval(start, start + duration)])


class TestPartialBlockThreshold:

    def test_four_hours_blocks_the_day(self):
        blocked = blocked_from(utc(2026, 10, 19, 9), timedelta(hours=4))
        assert is_day_blocked(blocked, WEEKLY, MONDAY, UTC)

    def test_just_under_four_hours_keeps_the_day(self):
        blocked = blocked_from(utc(2026, 10, 19, 9), timedelta(hours=3.99))
        assert not is_day_blocked(blocked, WEEKLY, MONDAY, UTC)

    def test_overlapping_intervals_are_merged(self):
        blocked = BlockedData(intervals=[
            BlockedInterval(utc(2026, 10, 19, 9), utc(2026, 10, 19, 11)),
            BlockedInterval(utc(2026, 10, 19, 10), utc(2026, 10, 19, 12)),
        ])
        assert blocked_working_minutes(blocked.intervals, WEEKLY, MONDAY, UTC) == 180
        assert not is_day_blocked(blocked, WEEKLY, MONDAY, UTC)

    def test_time_outside_working_hours_does_not_count(self):
        blocked = blocked_from(utc(2026, 10, 19, 4), timedelta(hours=6))
        assert blocked_working_minutes(blocked.intervals, WEEKLY, MONDAY, UTC) == 60

    def test_midnight_range_end_blocks_through_that_day(self):
        blocked = BlockedData().extend([RangeBlock(utc(2026, 10, 20), utc(2026, 10, 20))])
        assert is_day_blocked(blocked, WEEKLY, TUESDAY, UTC)
        assert not is_day_blocked(blocked, WEEKLY, MONDAY, UTC)


def test_full_day_and_non_working_days_are_blocked():
    blocked = BlockedData().extend([FullDayBlock("2026-10-19")])
    assert is_day_blocked(blocked, WEEKLY, MONDAY, UTC)
    assert is_day_blocked(BlockedData(), WEEKLY, datetime(2026, 10, 24), UTC)


def test_window_overlaps_is_half_open():
    intervals = [BlockedInterval(utc(2026, 10, 19, 10), utc(2026, 10, 19, 13))]
    assert window_overlaps(utc(2026, 10, 19, 9), utc(2026, 10, 19, 11), intervals, UTC)
    assert not window_overlaps(utc(2026, 10, 19, 13), utc(2026, 10, 19, 16), intervals, UTC)
    assert not window_overlaps(utc(2026, 10, 19, 7), utc(2026, 10, 19, 10), intervals, UTC)


class TestTeamCounts:

    def per_member(self):
        return {
            "a": BlockedData().extend([FullDayBlock("2026-10-20")]),
            "b": blocked_from(utc(2026, 10, 19, 9), timedelta(hours=1)),
            "c": BlockedData(),
        }

    def test_count_available_for_day(self):
        per_member = self.per_member()
        assert count_available_for_day(per_member, WEEKLY, MONDAY, UTC) == 3
        assert count_available_for_day(per_member, WEEKLY, TUESDAY, UTC) == 2

    def test_days_overlap_percentage(self):
        per_member = self.per_member()
        assert days_overlap_percentage(per_member, WEEKLY, MONDAY, 2, 3, UTC) == 50
        assert days_overlap_percentage(per_member, WEEKLY, MONDAY, 2, 2, UTC) == 100

    def test_hours_overlap_percentage_samples_half_hours(self):
        per_member = self.per_member()
        percentage = hours_overlap_percentage(
            per_member, WEEKLY, utc(2026, 10, 19, 9), utc(2026, 10, 19, 11), 3, UTC
        )
        assert percentage == 50


class TestAvailabilityView:

    def test_min_resources_of_one_stays_strict(self):
        per_member = {"a": BlockedData().extend([FullDayBlock("2026-10-19")]), "b": BlockedData()}
        policy = ResourcePolicy(min_resources=1, min_overlap_percentage=90, total_resources=2)
        merged = BlockedData().extend([FullDayBlock("2026-10-19")])
        view = AvailabilityView(WEEKLY, UTC, merged, per_member=per_member, policy=policy)
        assert not view.multi_resource
        assert view.is_day_blocked(MONDAY)

    def test_multi_resource_tolerates_one_blocked_member(self):
        per_member = {
            "a": BlockedData().extend([FullDayBlock("2026-10-19")]),
            "b": BlockedData(),
            "c": BlockedData(),
        }
        policy = ResourcePolicy(min_resources=2, min_overlap_percentage=90, total_resources=3)
        merged = BlockedData().extend([FullDayBlock("2026-10-19")])
        view = AvailabilityView(WEEKLY, UTC, merged, per_member=per_member, policy=policy)
        assert view.multi_resource
        assert not view.is_day_blocked(MONDAY)
        assert not view.is_date_excluded(MONDAY)
        assert view.window_usable(utc(2026, 10, 19, 9), utc(2026, 10, 19, 12))
