# scheduling/blocks.py

"""Blocked-interval assembly.

Every reason a resource is unavailable becomes one of three block kinds and is
merged into BlockedData: a set of whole-day keys plus a list of absolute
intervals. Strict mode merges everything into one BlockedData; per-member mode
keeps one per resource id.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple, Union
from zoneinfo import ZoneInfo

from scheduling.context import ScheduleContext
from scheduling.schemas import (
    BlockedDate,
    BlockedRange,
    Booking,
    BookingBlockedRange,
    CustomerBlocks,
    Professional,
    Resource,
)
from scheduling.zoned import (
    as_utc,
    at_minutes,
    date_key,
    day_key_of,
    from_zoned,
    local_day_bounds,
    normalize_range_end_inclusive,
    parse_time_to_minutes,
    zoned_day_of,
)

logger = logging.getLogger(__name__)


class BlockReason(str, Enum):
    booking = "booking"
    booking_buffer = "booking-buffer"
    customer_block = "customer-block"


@dataclass(frozen=True)
class BlockedInterval:
    start: datetime
    end: datetime
    reason: Optional[BlockReason] = None


@dataclass(frozen=True)
class FullDayBlock:
    day_key: str


@dataclass(frozen=True)
class RangeBlock:
    start: datetime
    end: datetime
    reason: Optional[BlockReason] = None


@dataclass(frozen=True)
class BookingBlock:
    start: datetime
    end: datetime
    reason: BlockReason


Block = Union[FullDayBlock, RangeBlock, BookingBlock]


@dataclass
class BlockedData:
    dates: Set[str] = field(default_factory=set)
    intervals: List[BlockedInterval] = field(default_factory=list)

    def add(self, block: Block) -> None:
        if isinstance(block, FullDayBlock):
            self.dates.add(block.day_key)
        elif isinstance(block, (RangeBlock, BookingBlock)):
            self.intervals.append(BlockedInterval(block.start, block.end, block.reason))
        else:
            raise TypeError(f"Unknown block kind: {type(block).__name__}")

    def extend(self, blocks: Iterable[Block]) -> "BlockedData":
        for block in blocks:
            self.add(block)
        return self

    def copy(self) -> "BlockedData":
        return BlockedData(dates=set(self.dates), intervals=list(self.intervals))


PerMemberBlockedData = Dict[str, BlockedData]


def date_blocks(entries: Iterable[BlockedDate], tz: ZoneInfo) -> Iterator[FullDayBlock]:
    for blocked in entries:
        if blocked.date is None:
            continue
        yield FullDayBlock(day_key_of(blocked.date, tz))


def range_blocks(entries: Iterable[BlockedRange]) -> Iterator[RangeBlock]:
    for blocked in entries:
        start, end = as_utc(blocked.start_date), as_utc(blocked.end_date)
        if end < start:
            logger.warning("Skipping blocked range ending before it starts: %s -> %s", start, end)
            continue
        yield RangeBlock(start, end)


def customer_block_entries(customer_blocks: Optional[CustomerBlocks], tz: ZoneInfo) -> Iterator[Block]:
    if customer_blocks is None:
        return
    for blocked in customer_blocks.dates:
        yield FullDayBlock(day_key_of(blocked.date, tz))
    for window in customer_blocks.windows:
        start_minutes = parse_time_to_minutes(window.start_time)
        end_minutes = parse_time_to_minutes(window.end_time)
        if start_minutes is None or end_minutes is None or end_minutes <= start_minutes:
            logger.warning(
                "Skipping customer window with bad times: %s %s-%s",
                window.date, window.start_time, window.end_time,
            )
            continue
        day = zoned_day_of(window.date, tz)
        yield RangeBlock(
            from_zoned(at_minutes(day, start_minutes), tz),
            from_zoned(at_minutes(day, end_minutes), tz),
            BlockReason.customer_block,
        )


def booking_blocks(booking: Booking) -> Iterator[BookingBlock]:
    execution_end = booking.scheduled_execution_end_date
    if booking.scheduled_start_date is not None and execution_end is not None:
        yield BookingBlock(
            as_utc(booking.scheduled_start_date),
            as_utc(execution_end),
            BlockReason.booking,
        )
    if (
        booking.scheduled_buffer_start_date is not None
        and booking.scheduled_buffer_end_date is not None
        and execution_end is not None
    ):
        yield BookingBlock(
            as_utc(booking.scheduled_buffer_start_date),
            as_utc(booking.scheduled_buffer_end_date),
            BlockReason.booking_buffer,
        )


def is_active_booking(booking: Booking) -> bool:
    return booking.is_active


def build_booking_blocked_ranges(resource_id: str, bookings: Iterable[Booking]) -> List[BookingBlockedRange]:
    """Booking and booking-buffer ranges occupying one resource.

    A booking occupies the resource when it is its professional or when the
    resource is in its assignment list.
    """
    ranges = []
    for booking in bookings:
        if not is_active_booking(booking):
            continue
        if booking.professional_id != resource_id and resource_id not in booking.assigned_team_members:
            continue
        for block in booking_blocks(booking):
            ranges.append(BookingBlockedRange(
                start_date=block.start,
                end_date=block.end,
                reason=block.reason.value,
                booking_id=booking.id,
            ))
    return ranges


def touches_team(booking: Booking, team_ids: Set[str], project_id: Optional[str]) -> bool:
    if project_id is not None and booking.project_id == project_id:
        return True
    if team_ids.intersection(booking.assigned_team_members):
        return True
    return booking.professional_id in team_ids


def affected_members(booking: Booking, team_ids: Sequence[str], project_id: Optional[str]) -> Set[str]:
    """Team members a booking actually occupies.

    An explicit assignment list is authoritative. Without one the booking holds
    its own professional and, for older records on this same project, the
    whole team.
    """
    team = set(team_ids)
    if booking.assigned_team_members:
        return team.intersection(booking.assigned_team_members)

    affected = set()
    if booking.professional_id in team:
        affected.add(booking.professional_id)
    if project_id is not None and booking.project_id == project_id:
        affected.update(team)
    return affected


def company_blocks(professional: Optional[Professional], tz: ZoneInfo) -> List[Block]:
    if professional is None:
        return []
    blocks: List[Block] = []
    blocks.extend(date_blocks(professional.company_blocked_dates, tz))
    blocks.extend(range_blocks(professional.company_blocked_ranges))
    return blocks


def personal_blocks(member: Resource, tz: ZoneInfo) -> List[Block]:
    blocks: List[Block] = []
    blocks.extend(date_blocks(member.blocked_dates, tz))
    blocks.extend(range_blocks(member.blocked_ranges))
    return blocks


def _team_members(ctx: ScheduleContext, team_ids: Sequence[str]) -> Iterator[Tuple[str, Resource]]:
    for member_id in team_ids:
        member = ctx.member(member_id)
        if member is None:
            logger.warning("Project %s references unknown resource %s", ctx.project.id, member_id)
            continue
        yield member_id, member


def _active_bookings(ctx: ScheduleContext, team_ids: Sequence[str]) -> Iterator[Booking]:
    team = set(team_ids)
    for booking in ctx.bookings:
        if is_active_booking(booking) and touches_team(booking, team, ctx.project.id):
            yield booking


def build_blocked_data(
    ctx: ScheduleContext,
    team_ids: Sequence[str],
    customer_blocks: Optional[CustomerBlocks] = None,
) -> BlockedData:
    """Merged view of every block on the project's team (strict mode)."""
    tz = ctx.time_zone
    blocked = BlockedData()
    blocked.extend(company_blocks(ctx.professional, tz))
    for _, member in _team_members(ctx, team_ids):
        blocked.extend(personal_blocks(member, tz))
    for booking in _active_bookings(ctx, team_ids):
        blocked.extend(booking_blocks(booking))
    blocked.extend(customer_block_entries(customer_blocks, tz))
    return blocked


def build_per_member_blocked_data(
    ctx: ScheduleContext,
    team_ids: Sequence[str],
    customer_blocks: Optional[CustomerBlocks] = None,
) -> PerMemberBlockedData:
    """Blocked data keyed by resource id (multi-resource mode).

    Company and customer blocks apply to everyone; personal and booking blocks
    only to the members they belong to.
    """
    tz = ctx.time_zone
    shared = BlockedData()
    shared.extend(company_blocks(ctx.professional, tz))
    shared.extend(customer_block_entries(customer_blocks, tz))

    per_member: PerMemberBlockedData = {member_id: shared.copy() for member_id in team_ids}
    for member_id, member in _team_members(ctx, team_ids):
        per_member[member_id].extend(personal_blocks(member, tz))

    for booking in _active_bookings(ctx, team_ids):
        blocks = list(booking_blocks(booking))
        for member_id in affected_members(booking, team_ids, ctx.project.id):
            per_member[member_id].extend(blocks)

    return per_member


def build_holiday_checker(professional: Optional[Professional], tz: ZoneInfo) -> Callable[[datetime], bool]:
    """Predicate telling whether a zoned day is a company holiday."""
    holiday_dates = set()
    holiday_ranges = []
    if professional is not None:
        holiday_dates = {
            block.day_key
            for block in date_blocks(
                (entry for entry in professional.company_blocked_dates if entry.is_holiday), tz
            )
        }
        holiday_ranges = list(
            range_blocks(entry for entry in professional.company_blocked_ranges if entry.is_holiday)
        )

    def is_holiday(zoned_day: datetime) -> bool:
        if date_key(zoned_day) in holiday_dates:
            return True
        if not holiday_ranges:
            return False
        day_start_utc, day_end_utc = local_day_bounds(zoned_day, tz)
        return any(
            normalize_range_end_inclusive(block.end, tz) > day_start_utc and block.start < day_end_utc
            for block in holiday_ranges
        )

    return is_holiday
