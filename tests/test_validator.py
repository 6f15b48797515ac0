from datetime import date, datetime, timezone

import pytest

from scheduling.schemas import Booking, DurationUnit, Resource, ScheduleSelection
from scheduling.validator import build_schedule_window, validate_schedule_selection


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def hours_ctx(make_context, make_project):
    busy = Booking(
        id="b1",
        professional_id="pro-1",
        scheduled_start_date=utc(2026, 10, 19, 10),
        scheduled_execution_end_date=utc(2026, 10, 19, 13),
    )
    project = make_project(
        execution_duration={"value": 3, "unit": "hours"},
        buffer_duration={"value": 1, "unit": "hours"},
        resources=["m1", "m1"],
    )
    return make_context(project=project, bookings=[busy], now=utc(2026, 10, 19, 7))


@pytest.fixture
def team_ctx(make_context, make_project):
    members = [
        Resource(id="m1", blocked_dates=[{"date": date(2026, 10, 20)}]),
        Resource(id="m2", blocked_dates=[{"date": date(2026, 10, 20)}]),
    ]
    project = make_project(resources=["m1", "m2"], min_resources=2, min_overlap_percentage=70)
    return make_context(project=project, members=members)


def select(**fields):
    return ScheduleSelection(**fields)


class TestValidateHours:

    @pytest.mark.parametrize("fields, reason", [
        ({"start_date": "2026-10-19"}, "Start time required for hours mode"),
        ({"start_date": "2026-10-19", "start_time": "25:00"}, "Invalid start time"),
        ({"start_date": "19/10/2026", "start_time": "13:00"}, "Invalid start date"),
        ({"start_date": "2026-10-19", "start_time": "06:30"}, "Selected time is before prep window"),
        ({"start_date": "2026-10-19", "start_time": "10:00"}, "Selected time is not available"),
        ({"start_date": "2026-10-19", "start_time": "13:15"}, "Selected time is not available"),
        ({"start_date": "2026-10-19", "start_time": "13:00", "subproject_index": 2}, "Invalid subproject index"),
    ])
    def test_rejections(self, hours_ctx, fields, reason):
        result = validate_schedule_selection(hours_ctx, select(**fields))
        assert not result.valid
        assert result.reason == reason

    def test_free_slot_is_valid(self, hours_ctx):
        assert validate_schedule_selection(hours_ctx, select(start_date="2026-10-19", start_time="13:00")).valid

    def test_nothing_to_validate_without_date(self, hours_ctx):
        assert validate_schedule_selection(hours_ctx, select()).valid

    def test_customer_window_blocks_slot(self, hours_ctx):
        selection = select(
            start_date="2026-10-19",
            start_time="13:00",
            customer_blocks={"windows": [{"date": "2026-10-19", "start_time": "15:00", "end_time": "16:00"}]},
        )
        assert validate_schedule_selection(hours_ctx, selection).reason == "Selected time is not available"


class TestValidateDays:

    def test_overlap_shortfall_is_reported(self, team_ctx):
        result = validate_schedule_selection(team_ctx, select(start_date="2026-10-19"))
        assert result.reason == "Team availability (50%) is below required 70%"

    def test_short_staffed_day(self, team_ctx):
        result = validate_schedule_selection(team_ctx, select(start_date="2026-10-20"))
        assert result.reason == "Selected date does not have enough team members available"

    def test_valid_team_day(self, team_ctx):
        assert validate_schedule_selection(team_ctx, select(start_date="2026-10-21")).valid

    def test_strict_blocked_day(self, make_context):
        result = validate_schedule_selection(make_context(), select(start_date="2026-10-24"))
        assert result.reason == "Selected date is blocked"

    def test_before_prep_window(self, make_context, make_project):
        ctx = make_context(project=make_project(preparation_duration={"value": 2, "unit": "days"}))
        result = validate_schedule_selection(ctx, select(start_date="2026-10-20"))
        assert result.reason == "Selected date is before prep window"

    def test_day_already_over(self, make_context):
        ctx = make_context(now=utc(2026, 10, 19, 18))
        result = validate_schedule_selection(ctx, select(start_date="2026-10-19"))
        assert result.reason == "Selected date is before prep window"
        assert validate_schedule_selection(ctx, select(start_date="2026-10-20")).valid
        assert build_schedule_window(ctx, select(start_date="2026-10-19")) is None

    def test_missing_execution(self, make_context, make_project):
        ctx = make_context(project=make_project(execution_duration=None))
        assert validate_schedule_selection(ctx, select(start_date="2026-10-20")).reason == "Missing execution duration"


class TestScheduleWindow:

    def test_hours_window(self, hours_ctx):
        window = build_schedule_window(hours_ctx, select(start_date="2026-10-19", start_time="13:00"))

        assert window.scheduled_start_date == utc(2026, 10, 19, 13)
        assert window.scheduled_execution_end_date == utc(2026, 10, 19, 16)
        assert window.scheduled_buffer_start_date == utc(2026, 10, 19, 16)
        assert window.scheduled_buffer_end_date == utc(2026, 10, 19, 17)
        assert window.scheduled_buffer_unit == DurationUnit.hours
        assert window.scheduled_start_time == "13:00"
        assert window.scheduled_end_time == "16:00"
        assert window.assigned_team_members == ["m1"]

    def test_days_window_with_buffer(self, make_context, make_project):
        ctx = make_context(project=make_project(buffer_duration={"value": 1, "unit": "days"}))

        window = build_schedule_window(ctx, select(start_date="2026-10-20"))

        assert window.scheduled_start_date == utc(2026, 10, 20)
        assert window.scheduled_execution_end_date == utc(2026, 10, 21, 17)
        assert window.scheduled_buffer_start_date == utc(2026, 10, 22)
        assert window.scheduled_buffer_end_date == utc(2026, 10, 22, 17)
        assert window.scheduled_start_time is None

    def test_buffer_ignores_customer_preview_blocks(self, make_context, make_project):
        ctx = make_context(project=make_project(buffer_duration={"value": 1, "unit": "days"}))
        selection = select(start_date="2026-10-20", customer_blocks={"dates": [{"date": "2026-10-22"}]})

        window = build_schedule_window(ctx, selection)

        assert window.scheduled_buffer_end_date == utc(2026, 10, 22, 17)

    def test_unschedulable_selection_has_no_window(self, make_context):
        assert build_schedule_window(make_context(), select(start_date="2026-10-24")) is None
        assert build_schedule_window(make_context(), select(start_date="nope")) is None
        assert build_schedule_window(make_context(), select()) is None
