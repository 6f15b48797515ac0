# scheduling/context.py

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo

from scheduling.data import engine_settings
from scheduling.schemas import Booking, Duration, DurationUnit, Professional, Project, Resource, Subproject
from scheduling.zoned import as_utc, get_zone


def subproject_index_valid(project: Project, subproject_index: Optional[int]) -> bool:
    if subproject_index is None:
        return True
    return 0 <= subproject_index < len(project.subprojects)


def select_subproject(project: Project, subproject_index: Optional[int]) -> Optional[Subproject]:
    if subproject_index is None or not subproject_index_valid(project, subproject_index):
        return None
    return project.subprojects[subproject_index]


def dedupe_ids(ids) -> List[str]:
    seen = set()
    result = []
    for raw in ids or []:
        if raw is None:
            continue
        value = str(raw).strip()
        if not value or value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result


@dataclass(frozen=True)
class ScheduleContext:
    """Everything one scheduling query reads, loaded once and never mutated."""

    project: Project
    professional: Optional[Professional] = None
    team_members: Dict[str, Resource] = field(default_factory=dict)
    bookings: List[Booking] = field(default_factory=list)
    now: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def time_zone(self) -> ZoneInfo:
        return get_zone(self.professional.timezone if self.professional else None)

    @property
    def now_utc(self) -> datetime:
        return as_utc(self.now)

    def resource_ids(self, subproject: Optional[Subproject] = None) -> List[str]:
        """Assigned team members, without the professional."""
        if subproject is not None and subproject.resources is not None:
            return dedupe_ids(subproject.resources)
        return dedupe_ids(self.project.resources)

    def team_ids(self, subproject: Optional[Subproject] = None) -> List[str]:
        """Assigned team members plus the project's professional."""
        ids = self.resource_ids(subproject)
        professional_id = self.project.professional_id or (
            self.professional.id if self.professional else None
        )
        return dedupe_ids(ids + [professional_id])

    def member(self, member_id: str) -> Optional[Resource]:
        if self.professional is not None and member_id in (self.professional.id, self.project.professional_id):
            return self.professional
        return self.team_members.get(member_id)


@dataclass(frozen=True)
class EffectiveDurations:
    execution: Duration
    buffer: Optional[Duration]
    preparation: Optional[Duration]

    @property
    def mode(self) -> DurationUnit:
        return self.execution.unit

    @property
    def has_buffer(self) -> bool:
        return self.buffer is not None and self.buffer.value > 0

    @classmethod
    def resolve(cls, project: Project, subproject_index: Optional[int] = None) -> Optional["EffectiveDurations"]:
        """Subproject values win over project values; None without a usable execution."""
        subproject = select_subproject(project, subproject_index)

        execution = (subproject and subproject.execution_duration) or project.execution_duration
        if execution is None or execution.value <= 0:
            return None

        buffer = (subproject and subproject.buffer) or project.buffer_duration
        preparation = (subproject and subproject.preparation_duration) or project.preparation_duration

        return cls(
            execution=execution,
            buffer=buffer if buffer is not None and buffer.value > 0 else None,
            preparation=preparation if preparation is not None and preparation.value > 0 else None,
        )


@dataclass(frozen=True)
class ResourcePolicy:
    min_resources: int
    min_overlap_percentage: float
    total_resources: int

    @property
    def multi_resource(self) -> bool:
        return self.min_resources > 1 and self.total_resources > 1

    @classmethod
    def for_project(
        cls,
        project: Project,
        total_resources: int,
        subproject: Optional[Subproject] = None,
        default_overlap: Optional[float] = None,
    ) -> "ResourcePolicy":
        if default_overlap is None:
            default_overlap = engine_settings["default_min_overlap_percentage"]

        min_resources = project.min_resources
        overlap = project.min_overlap_percentage
        if subproject is not None:
            if subproject.min_resources is not None:
                min_resources = subproject.min_resources
            if subproject.min_overlap_percentage is not None:
                overlap = subproject.min_overlap_percentage

        total = max(total_resources, 1)
        min_resources = min(max(min_resources or 1, 1), total)
        overlap = min(max(overlap if overlap is not None else default_overlap, 10), 100)
        return cls(
            min_resources=min_resources,
            min_overlap_percentage=overlap,
            total_resources=total,
        )
