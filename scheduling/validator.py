# scheduling/validator.py

import logging
from datetime import datetime
from typing import Optional, Tuple

from scheduling.calculators import buffer_start, calculate_buffer_end
from scheduling.context import ScheduleContext, dedupe_ids
from scheduling.plan import SchedulePlan, unusable_reason
from scheduling.schemas import DurationUnit, ScheduleSelection, ScheduleWindow, ValidationResult
from scheduling.search import available_slots, end_of_working_day, execution_days, execution_end_day, hours_window
from scheduling.zoned import at_minutes, format_minutes, from_zoned, parse_date_key, parse_time_to_minutes

logger = logging.getLogger(__name__)


def _invalid(reason: str) -> ValidationResult:
    return ValidationResult(valid=False, reason=reason)


def _parse_selection(plan: SchedulePlan, selection: ScheduleSelection) -> Tuple[Optional[datetime], Optional[int], Optional[str]]:
    """(selected zoned start, start minutes, failure reason)."""
    selected_day = parse_date_key(selection.start_date)
    if selected_day is None:
        return None, None, "Invalid start date"

    if plan.durations.mode != DurationUnit.hours:
        return selected_day, None, None

    if not selection.start_time:
        return None, None, "Start time required for hours mode"
    minutes = parse_time_to_minutes(selection.start_time)
    if minutes is None:
        return None, None, "Invalid start time"
    return at_minutes(selected_day, minutes), minutes, None


def validate_schedule_selection(ctx: ScheduleContext, selection: ScheduleSelection) -> ValidationResult:
    """Confirm a chosen start exactly as the proposal search would have produced it."""
    if not selection.start_date:
        return ValidationResult(valid=True)

    reason = unusable_reason(ctx, selection.subproject_index)
    if reason is not None:
        return _invalid(reason)

    plan = SchedulePlan.build(ctx, selection.subproject_index, selection.customer_blocks)
    selected, _, reason = _parse_selection(plan, selection)
    if reason is not None:
        return _invalid(reason)

    view = plan.view
    if plan.durations.mode == DurationUnit.hours:
        if selected < plan.prep_end:
            return _invalid("Selected time is before prep window")
        if selected not in available_slots(plan, selected):
            if view.multi_resource:
                return _invalid("Selected time does not meet team availability requirements")
            return _invalid("Selected time is not available")
        return ValidationResult(valid=True)

    if selected < plan.first_day:
        return _invalid("Selected date is before prep window")

    if view.is_day_blocked(selected):
        if view.multi_resource:
            return _invalid("Selected date does not have enough team members available")
        return _invalid("Selected date is blocked")

    if view.multi_resource:
        percentage = view.days_overlap_percentage(selected, execution_days(plan))
        if percentage < plan.policy.min_overlap_percentage:
            return _invalid(
                f"Team availability ({round(percentage)}%) is below required "
                f"{plan.policy.min_overlap_percentage:g}%"
            )

    return ValidationResult(valid=True)


def build_schedule_window(ctx: ScheduleContext, selection: ScheduleSelection) -> Optional[ScheduleWindow]:
    """Concrete booking window for a selection, or None when it cannot be scheduled."""
    if not selection.start_date:
        return None

    plan = SchedulePlan.build(ctx, selection.subproject_index, selection.customer_blocks)
    if plan is None:
        return None
    selected, minutes, reason = _parse_selection(plan, selection)
    if reason is not None:
        logger.debug("Rejecting window for project %s: %s", ctx.project.id, reason)
        return None

    durations = plan.durations
    tz = plan.tz
    buffer_unit = durations.buffer.unit if durations.buffer is not None else None
    assigned = dedupe_ids(ctx.project.resources)

    if durations.mode == DurationUnit.hours:
        if selected < plan.prep_end:
            return None
        execution_end, buffer_begin, buffer_end = hours_window(plan, selected, view=plan.buffer_view)
        if buffer_end is None:
            return None
        return ScheduleWindow(
            scheduled_start_date=from_zoned(selected, tz),
            scheduled_execution_end_date=from_zoned(execution_end, tz),
            scheduled_buffer_start_date=from_zoned(buffer_begin, tz) if buffer_begin is not None else None,
            scheduled_buffer_end_date=from_zoned(buffer_end, tz) if buffer_begin is not None else None,
            scheduled_buffer_unit=buffer_unit,
            scheduled_start_time=format_minutes(minutes),
            scheduled_end_time=format_minutes(minutes + round(durations.execution.value * 60)),
            assigned_team_members=assigned,
        )

    if selected < plan.first_day or plan.view.is_day_blocked(selected):
        return None

    end_day = execution_end_day(plan, selected)
    if end_day is None:
        return None
    execution_end = end_of_working_day(plan, end_day)
    buffer_begin = buffer_start(execution_end, durations.mode, durations.buffer)
    buffer_end = calculate_buffer_end(execution_end, durations.buffer, durations.mode, plan.buffer_view)
    if buffer_end is None:
        return None

    return ScheduleWindow(
        scheduled_start_date=from_zoned(selected, tz),
        scheduled_execution_end_date=from_zoned(execution_end, tz),
        scheduled_buffer_start_date=from_zoned(buffer_begin, tz) if buffer_begin is not None else None,
        scheduled_buffer_end_date=from_zoned(buffer_end, tz) if buffer_begin is not None else None,
        scheduled_buffer_unit=buffer_unit,
        assigned_team_members=assigned,
    )
