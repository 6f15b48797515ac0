# scheduling/team_search.py

"""Primary-resource search over a shorter horizon.

Each member is judged on their own weekly pattern. With several required
members, one member is picked as primary and everybody else must overlap
the primary's available days by the project's overlap percentage.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Set

from scheduling.availability import WeeklyHours, resolve_availability
from scheduling.blocks import build_per_member_blocked_data
from scheduling.context import ScheduleContext
from scheduling.data import engine_settings
from scheduling.plan import SchedulePlan
from scheduling.predicates import is_day_blocked
from scheduling.schemas import Duration, DurationUnit, ProposalWindow, ScheduleProposals
from scheduling.zoned import add_days, at_minutes, from_zoned, iter_days, start_of_day

logger = logging.getLogger(__name__)

HOURS_PER_DAY = 24


@dataclass(frozen=True)
class DayAvailabilitySnapshot:
    day: datetime
    member_ids: Set[str]


def _to_hours(duration: Optional[Duration]) -> float:
    if duration is None:
        return 0
    return duration.value if duration.unit == DurationUnit.hours else duration.value * HOURS_PER_DAY


def member_weekly_hours(plan: SchedulePlan) -> Dict[str, WeeklyHours]:
    """Each member's own pattern, falling back to the company pattern."""
    ctx = plan.ctx
    company = ctx.professional.company_availability if ctx.professional else None
    weekly = {}
    for member_id in plan.team_ids:
        member = ctx.member(member_id)
        pattern = member.availability if member is not None and member.availability else company
        weekly[member_id] = resolve_availability(pattern)
    return weekly


def availability_by_day(plan: SchedulePlan, first_day: datetime, horizon: int) -> List[DayAvailabilitySnapshot]:
    per_member = build_per_member_blocked_data(plan.ctx, plan.team_ids)
    weekly = member_weekly_hours(plan)
    snapshots = []
    for day in iter_days(first_day, horizon):
        free = {
            member_id
            for member_id, blocked in per_member.items()
            if not is_day_blocked(blocked, weekly[member_id], day, plan.tz)
        }
        snapshots.append(DayAvailabilitySnapshot(day, free))
    return snapshots


def overlap_percentage(primary_id: str, other_id: str, window: Sequence[DayAvailabilitySnapshot]) -> float:
    primary_days = [snapshot for snapshot in window if primary_id in snapshot.member_ids]
    if not primary_days:
        return 0.0
    shared = sum(1 for snapshot in primary_days if other_id in snapshot.member_ids)
    return shared / len(primary_days) * 100


def _earliest_primary(team_ids: Sequence[str], snapshots: Sequence[DayAvailabilitySnapshot]) -> Optional[str]:
    for snapshot in snapshots:
        for member_id in team_ids:
            if member_id in snapshot.member_ids:
                return member_id
    return None


def _busiest_primary(team_ids: Sequence[str], snapshots: Sequence[DayAvailabilitySnapshot]) -> Optional[str]:
    primary, best = None, 0
    for member_id in team_ids:
        available = sum(1 for snapshot in snapshots if member_id in snapshot.member_ids)
        if available > best:
            primary, best = member_id, available
    return primary


def _window_fits(
    window: Sequence[DayAvailabilitySnapshot],
    primary_id: str,
    others: Sequence[str],
    total_days: int,
    min_resources: int,
    min_overlap: float,
) -> bool:
    primary_days = sum(1 for snapshot in window if primary_id in snapshot.member_ids)
    if primary_days < total_days:
        return False
    if any(len(snapshot.member_ids) < min_resources for snapshot in window):
        return False
    return all(overlap_percentage(primary_id, other, window) >= min_overlap for other in others)


def _find_window(snapshots, primary_id, plan: SchedulePlan, total_days: int, max_length: int) -> Optional[Sequence[DayAvailabilitySnapshot]]:
    others = [member_id for member_id in plan.team_ids if member_id != primary_id]
    for length in range(total_days, max_length + 1):
        for offset in range(0, len(snapshots) - length + 1):
            window = snapshots[offset:offset + length]
            if _window_fits(
                window, primary_id, others, total_days,
                plan.policy.min_resources, plan.policy.min_overlap_percentage,
            ):
                return window
    return None


def _days_proposal(plan: SchedulePlan, window, buffer_days: int) -> ProposalWindow:
    start = start_of_day(window[0].day)
    length = len(window)
    return ProposalWindow(
        start=from_zoned(start, plan.tz),
        end=from_zoned(add_days(start, length), plan.tz),
        execution_end=from_zoned(add_days(start, max(1, length - buffer_days)), plan.tz),
    )


def _search_hours(plan: SchedulePlan, snapshots, execution_hours: float, total_hours: float):
    required_days = max(1, math.ceil(total_hours / HOURS_PER_DAY))
    for offset in range(0, len(snapshots) - required_days + 1):
        window = snapshots[offset:offset + required_days]
        free_throughout = set.intersection(*(snapshot.member_ids for snapshot in window))
        if len(free_throughout) < plan.policy.min_resources:
            continue

        day = window[0].day
        hours = plan.weekly.working_hours(day)
        if hours is None:
            continue
        start = max(at_minutes(day, hours.start_minutes), plan.prep_end)
        closing = at_minutes(day, hours.end_minutes)
        if start >= closing:
            continue
        # An execution that fits a full working day has to finish before closing
        fits_one_day = execution_hours * 60 <= hours.end_minutes - hours.start_minutes
        if fits_one_day and start + timedelta(hours=execution_hours) > closing:
            continue
        proposal = ProposalWindow(
            start=from_zoned(start, plan.tz),
            end=from_zoned(start + timedelta(hours=total_hours), plan.tz),
            execution_end=from_zoned(start + timedelta(hours=execution_hours), plan.tz),
        )
        return proposal, proposal
    return None, None


def _search_days(plan: SchedulePlan, snapshots, execution_hours: float, buffer_hours: float):
    execution_days = max(1, math.ceil(execution_hours / HOURS_PER_DAY))
    buffer_days = math.ceil(buffer_hours / HOURS_PER_DAY)
    total_days = max(1, math.ceil((execution_hours + buffer_hours) / HOURS_PER_DAY))
    earliest_limit = execution_days * engine_settings["earliest_slack_factor"] + buffer_days
    shortest_limit = max(total_days, math.floor(execution_days * engine_settings["shortest_slack_factor"]) + buffer_days)

    if plan.policy.min_resources <= 1:
        for offset in range(0, len(snapshots) - total_days + 1):
            window = snapshots[offset:offset + total_days]
            if all(snapshot.member_ids for snapshot in window):
                proposal = _days_proposal(plan, window, buffer_days)
                return proposal, proposal
        return None, None

    earliest = shortest = None
    primary = _earliest_primary(plan.team_ids, snapshots)
    if primary is not None:
        window = _find_window(snapshots, primary, plan, total_days, earliest_limit)
        if window is not None:
            earliest = _days_proposal(plan, window, buffer_days)

    primary = _busiest_primary(plan.team_ids, snapshots)
    if primary is not None:
        window = _find_window(snapshots, primary, plan, total_days, shortest_limit)
        if window is not None:
            shortest = _days_proposal(plan, window, buffer_days)
    return earliest, shortest


def build_team_schedule_proposals(
    ctx: ScheduleContext, subproject_index: Optional[int] = None
) -> Optional[ScheduleProposals]:
    """Schedule proposals picked around a primary team member."""
    plan = SchedulePlan.build(
        ctx, subproject_index,
        default_overlap=engine_settings["team_search_min_overlap_percentage"],
    )
    if plan is None:
        logger.debug("No team schedule plan for project %s (subproject %s)", ctx.project.id, subproject_index)
        return None

    first_day = plan.first_day
    snapshots = availability_by_day(plan, first_day, engine_settings["team_search_horizon_days"])

    execution_hours = _to_hours(plan.durations.execution)
    buffer_hours = _to_hours(plan.durations.buffer)
    if plan.durations.mode == DurationUnit.hours:
        earliest, shortest = _search_hours(plan, snapshots, execution_hours, execution_hours + buffer_hours)
    else:
        earliest, shortest = _search_days(plan, snapshots, execution_hours, buffer_hours)

    earliest_bookable = next((snapshot.day for snapshot in snapshots if snapshot.member_ids), first_day)
    return ScheduleProposals(
        mode=plan.durations.mode,
        earliest_bookable_date=from_zoned(earliest_bookable, plan.tz),
        earliest_proposal=earliest,
        shortest_throughput_proposal=shortest,
    )
