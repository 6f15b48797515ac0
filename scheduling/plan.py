# scheduling/plan.py

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional
from zoneinfo import ZoneInfo

from scheduling.availability import WeeklyHours, resolve_availability
from scheduling.blocks import build_blocked_data, build_holiday_checker, build_per_member_blocked_data
from scheduling.calculators import calculate_prep_end
from scheduling.context import (
    EffectiveDurations,
    ResourcePolicy,
    ScheduleContext,
    select_subproject,
    subproject_index_valid,
)
from scheduling.predicates import AvailabilityView
from scheduling.schemas import CustomerBlocks, DurationUnit, Subproject
from scheduling.zoned import add_days, minutes_of_day, start_of_day, to_zoned


def unusable_reason(ctx: ScheduleContext, subproject_index: Optional[int]) -> Optional[str]:
    """Why no schedule can be computed for this query, or None if one can."""
    if not subproject_index_valid(ctx.project, subproject_index):
        return "Invalid subproject index"
    if EffectiveDurations.resolve(ctx.project, subproject_index) is None:
        return "Missing execution duration"
    if not ctx.team_ids(select_subproject(ctx.project, subproject_index)):
        return "Project has no resources"
    return None


def _view(ctx, team_ids, weekly, tz, policy, customer_blocks):
    blocked = build_blocked_data(ctx, team_ids, customer_blocks)
    per_member = None
    if policy.multi_resource:
        per_member = build_per_member_blocked_data(ctx, team_ids, customer_blocks)
    return AvailabilityView(weekly, tz, blocked, per_member=per_member, policy=policy)


@dataclass(frozen=True)
class SchedulePlan:
    """Everything derived once per query before searching or validating."""

    ctx: ScheduleContext
    subproject: Optional[Subproject]
    durations: EffectiveDurations
    team_ids: List[str]
    tz: ZoneInfo
    weekly: WeeklyHours
    policy: ResourcePolicy
    view: AvailabilityView
    buffer_view: AvailabilityView
    is_holiday: Callable[[datetime], bool]
    prep_end: datetime

    @property
    def now_zoned(self) -> datetime:
        return to_zoned(self.ctx.now_utc, self.tz)

    @property
    def first_day(self) -> datetime:
        """Local midnight of the first day the search may propose.

        A whole-day execution never starts on a day whose working hours are
        already over by the preparation end.
        """
        day = start_of_day(self.prep_end)
        if self.durations.mode == DurationUnit.days and minutes_of_day(self.prep_end) >= self.weekly.end_minutes(day):
            day = add_days(day, 1)
        return day

    @classmethod
    def build(
        cls,
        ctx: ScheduleContext,
        subproject_index: Optional[int] = None,
        customer_blocks: Optional[CustomerBlocks] = None,
        default_overlap: Optional[float] = None,
    ) -> Optional["SchedulePlan"]:
        if unusable_reason(ctx, subproject_index) is not None:
            return None

        subproject = select_subproject(ctx.project, subproject_index)
        durations = EffectiveDurations.resolve(ctx.project, subproject_index)
        team_ids = ctx.team_ids(subproject)
        tz = ctx.time_zone
        professional = ctx.professional
        weekly = resolve_availability(professional.company_availability if professional else None)
        policy = ResourcePolicy.for_project(
            ctx.project, len(team_ids), subproject=subproject, default_overlap=default_overlap
        )

        view = _view(ctx, team_ids, weekly, tz, policy, customer_blocks)
        # Buffers never see preview-only customer blocks
        buffer_view = _view(ctx, team_ids, weekly, tz, policy, None) if customer_blocks else view

        is_holiday = build_holiday_checker(professional, tz)
        prep_end = calculate_prep_end(durations.preparation, weekly, tz, is_holiday, ctx.now_utc)

        return cls(
            ctx=ctx,
            subproject=subproject,
            durations=durations,
            team_ids=team_ids,
            tz=tz,
            weekly=weekly,
            policy=policy,
            view=view,
            buffer_view=buffer_view,
            is_holiday=is_holiday,
            prep_end=prep_end,
        )
