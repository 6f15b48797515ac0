# scheduling/search.py

"""Proposal search over the per-member availability view.

Walks forward day by day from the preparation end over a bounded horizon and
returns the earliest and the shortest-throughput execution windows.
"""

import logging
import math
from datetime import datetime, timedelta
from typing import List, Optional

from scheduling.calculators import advance_working_days, buffer_start, calculate_buffer_end
from scheduling.context import ScheduleContext
from scheduling.data import engine_settings
from scheduling.plan import SchedulePlan
from scheduling.predicates import window_overlaps
from scheduling.schemas import DurationUnit, ProposalWindow, ScheduleProposals
from scheduling.zoned import at_minutes, date_key, from_zoned, iter_days, start_of_day

logger = logging.getLogger(__name__)


def _minutes_since_midnight(zoned: datetime) -> float:
    return (zoned - start_of_day(zoned)).total_seconds() / 60


def _round_up_to_slot(minutes: float) -> int:
    slot = engine_settings["slot_minutes"]
    return int(math.ceil(minutes / slot) * slot)


def execution_days(plan: SchedulePlan) -> int:
    return max(1, math.ceil(plan.durations.execution.value))


def hours_window(plan: SchedulePlan, start_zoned: datetime, view=None):
    """(execution_end, buffer_start, buffer_end) zoned for an hourly start.

    buffer_end is None when the buffer walk runs out.
    """
    view = view or plan.view
    durations = plan.durations
    execution_end = start_zoned + timedelta(hours=durations.execution.value)
    buffer_begin = buffer_start(execution_end, durations.mode, durations.buffer)
    buffer_end = calculate_buffer_end(execution_end, durations.buffer, durations.mode, view)
    return execution_end, buffer_begin, buffer_end


def available_slots(plan: SchedulePlan, zoned_day: datetime) -> List[datetime]:
    """Half-hour aligned zoned start times on ``zoned_day`` where the execution fits.

    A slot starts inside working hours, not before now or the preparation end,
    its execution window must be usable under the plan's view, and its buffer
    must stay clear of the merged blocks.
    """
    view = plan.view
    day = start_of_day(zoned_day)
    if view.is_date_excluded(day):
        return []

    hours = plan.weekly.working_hours(day)
    if hours is None:
        return []

    execution_minutes = plan.durations.execution.value * 60
    last_start = hours.end_minutes - execution_minutes
    if last_start < hours.start_minutes:
        return []

    not_before = max(plan.prep_end, plan.now_zoned)
    if day < start_of_day(not_before):
        return []
    first_start = hours.start_minutes
    if date_key(day) == date_key(not_before):
        first_start = max(first_start, _minutes_since_midnight(not_before))
    first_start = _round_up_to_slot(first_start)

    slots = []
    start_minutes = first_start
    while start_minutes <= last_start:
        slot_start = at_minutes(day, start_minutes)
        start_minutes += engine_settings["slot_minutes"]

        slot_start_utc = from_zoned(slot_start, plan.tz)
        slot_end_utc = slot_start_utc + timedelta(minutes=execution_minutes)
        if not view.window_usable(slot_start_utc, slot_end_utc):
            continue

        if plan.durations.has_buffer:
            _, buffer_begin, buffer_end = hours_window(plan, slot_start)
            if buffer_end is None:
                continue
            if buffer_begin is not None and buffer_end > buffer_begin:
                # Buffers are checked against the merged blocks in every mode
                if window_overlaps(from_zoned(buffer_begin, plan.tz), from_zoned(buffer_end, plan.tz), view.blocked.intervals, plan.tz):
                    continue

        slots.append(slot_start)
    return slots


def _hours_proposal(plan: SchedulePlan, slot_start: datetime) -> Optional[ProposalWindow]:
    execution_end, _, buffer_end = hours_window(plan, slot_start)
    if buffer_end is None:
        return None
    return ProposalWindow(
        start=from_zoned(slot_start, plan.tz),
        end=from_zoned(buffer_end, plan.tz),
        execution_end=from_zoned(execution_end, plan.tz),
    )


def execution_end_day(plan: SchedulePlan, start_day: datetime, view=None) -> Optional[datetime]:
    """Zoned day on which execution starting ``start_day`` completes."""
    return advance_working_days(start_day, execution_days(plan), view or plan.view)


def end_of_working_day(plan: SchedulePlan, zoned_day: datetime) -> datetime:
    return at_minutes(zoned_day, plan.weekly.end_minutes(zoned_day))


def _days_proposal(plan: SchedulePlan, start_day: datetime, execution_end: datetime) -> Optional[ProposalWindow]:
    durations = plan.durations
    buffer_end = calculate_buffer_end(execution_end, durations.buffer, durations.mode, plan.buffer_view)
    if buffer_end is None:
        return None
    return ProposalWindow(
        start=from_zoned(start_day, plan.tz),
        end=from_zoned(buffer_end, plan.tz),
        execution_end=from_zoned(execution_end, plan.tz),
    )


def _search_hours(plan: SchedulePlan, days):
    for day in days:
        for slot in available_slots(plan, day):
            proposal = _hours_proposal(plan, slot)
            if proposal is not None:
                return start_of_day(day), proposal, proposal
    return None, None, None


def _search_days(plan: SchedulePlan, days):
    view = plan.view
    needed = execution_days(plan)
    earliest_limit = needed * engine_settings["earliest_slack_factor"]
    shortest_limit = needed * engine_settings["shortest_slack_factor"]

    earliest_bookable = None
    earliest = None
    shortest = None
    shortest_throughput = None

    for day in days:
        if view.is_day_blocked(day):
            continue
        if earliest_bookable is None:
            earliest_bookable = day
        if not view.meets_days_overlap(day, needed):
            continue

        end_day = execution_end_day(plan, day)
        if end_day is None:
            continue
        execution_end = end_of_working_day(plan, end_day)
        throughput = (end_day - day).days + 1

        if earliest is None and throughput <= earliest_limit:
            earliest = _days_proposal(plan, day, execution_end)

        if throughput <= shortest_limit and (shortest_throughput is None or throughput < shortest_throughput):
            proposal = _days_proposal(plan, day, execution_end)
            if proposal is not None:
                shortest, shortest_throughput = proposal, throughput

        # Nothing later can beat an uninterrupted run
        if earliest is not None and shortest_throughput == needed:
            break

    return earliest_bookable, earliest, shortest


def build_schedule_proposals(ctx: ScheduleContext, subproject_index: Optional[int] = None) -> Optional[ScheduleProposals]:
    """Earliest and shortest-throughput windows for a project, or None if it cannot be scheduled."""
    plan = SchedulePlan.build(ctx, subproject_index)
    if plan is None:
        logger.debug("No schedule plan for project %s (subproject %s)", ctx.project.id, subproject_index)
        return None

    first_day = plan.first_day
    days = iter_days(first_day, engine_settings["search_horizon_days"] + 1)
    if plan.durations.mode == DurationUnit.hours:
        earliest_bookable, earliest, shortest = _search_hours(plan, days)
    else:
        earliest_bookable, earliest, shortest = _search_days(plan, days)

    logger.debug(
        "Project %s: earliest=%s shortest=%s (multi_resource=%s)",
        ctx.project.id,
        earliest.start if earliest else None,
        shortest.start if shortest else None,
        plan.view.multi_resource,
    )
    return ScheduleProposals(
        mode=plan.durations.mode,
        earliest_bookable_date=from_zoned(earliest_bookable or first_day, plan.tz),
        earliest_proposal=earliest,
        shortest_throughput_proposal=shortest,
    )
