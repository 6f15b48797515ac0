# scheduling/schemas.py

from datetime import date as Date, datetime
from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field, model_validator

from scheduling.data import TERMINAL_BOOKING_STATUSES


class DurationUnit(str, Enum):
    hours = "hours"
    days = "days"


class SearchStrategy(str, Enum):
    per_member = "per_member"
    primary_resource = "primary_resource"


class Duration(BaseModel):
    value: float = Field(ge=0)
    unit: DurationUnit


class DayAvailability(BaseModel):
    available: bool = True
    start_time: Optional[str] = None    # "HH:mm" in the professional's zone
    end_time: Optional[str] = None


class BlockedDate(BaseModel):
    date: Union[Date, datetime]
    reason: Optional[str] = None
    is_holiday: bool = False


class BlockedRange(BaseModel):
    start_date: datetime
    end_date: datetime
    reason: Optional[str] = None
    is_holiday: bool = False


class Resource(BaseModel):
    id: Optional[str] = None
    availability: Optional[Dict[str, DayAvailability]] = None
    blocked_dates: List[BlockedDate] = []
    blocked_ranges: List[BlockedRange] = []


class Professional(Resource):
    company_availability: Optional[Dict[str, DayAvailability]] = None
    company_blocked_dates: List[BlockedDate] = []
    company_blocked_ranges: List[BlockedRange] = []
    timezone: Optional[str] = None


class Subproject(BaseModel):
    name: Optional[str] = None
    execution_duration: Optional[Duration] = None
    buffer: Optional[Duration] = None
    preparation_duration: Optional[Duration] = None
    resources: Optional[List[str]] = None
    min_resources: Optional[int] = Field(default=None, ge=1)
    min_overlap_percentage: Optional[float] = Field(default=None, ge=0, le=100)


class Project(BaseModel):
    id: Optional[str] = None
    professional_id: Optional[str] = None
    execution_duration: Optional[Duration] = None
    buffer_duration: Optional[Duration] = None
    preparation_duration: Optional[Duration] = None
    subprojects: List[Subproject] = []
    resources: List[str] = []
    min_resources: Optional[int] = Field(default=None, ge=1)
    min_overlap_percentage: Optional[float] = Field(default=None, ge=0, le=100)


# canonical field -> name used by older booking records
LEGACY_BOOKING_FIELDS = {
    "scheduled_execution_end_date": "execution_end_date",
    "scheduled_buffer_start_date": "buffer_start_date",
    "scheduled_buffer_end_date": "scheduled_end_date",
}


class Booking(BaseModel):
    id: Optional[str] = None
    project_id: Optional[str] = None
    professional_id: Optional[str] = None
    status: str = "booked"
    scheduled_start_date: Optional[datetime] = None
    scheduled_execution_end_date: Optional[datetime] = None
    scheduled_buffer_start_date: Optional[datetime] = None
    scheduled_buffer_end_date: Optional[datetime] = None
    scheduled_buffer_unit: Optional[DurationUnit] = None
    assigned_team_members: List[str] = []

    @model_validator(mode="before")
    @classmethod
    def fold_legacy_fields(cls, data):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for canonical, legacy in LEGACY_BOOKING_FIELDS.items():
            legacy_value = data.pop(legacy, None)
            if data.get(canonical) is None and legacy_value is not None:
                data[canonical] = legacy_value
        return data

    @property
    def is_active(self) -> bool:
        if self.status in TERMINAL_BOOKING_STATUSES:
            return False
        if self.scheduled_start_date is None:
            return False
        return (
            self.scheduled_execution_end_date is not None
            or self.scheduled_buffer_end_date is not None
        )


class BookingBlockedRange(BaseModel):
    start_date: datetime
    end_date: datetime
    reason: str
    booking_id: Optional[str] = None


class CustomerBlockedDate(BaseModel):
    date: Union[Date, datetime]
    reason: Optional[str] = None


class CustomerBlockedWindow(BaseModel):
    date: Union[Date, datetime]
    start_time: str
    end_time: str
    reason: Optional[str] = None


class CustomerBlocks(BaseModel):
    dates: List[CustomerBlockedDate] = []
    windows: List[CustomerBlockedWindow] = []


class ProposalWindow(BaseModel):
    start: datetime
    end: datetime
    execution_end: datetime


class ScheduleProposals(BaseModel):
    mode: DurationUnit
    earliest_bookable_date: datetime
    earliest_proposal: Optional[ProposalWindow] = None
    shortest_throughput_proposal: Optional[ProposalWindow] = None


class ValidationResult(BaseModel):
    valid: bool
    reason: Optional[str] = None


class ScheduleWindow(BaseModel):
    scheduled_start_date: datetime
    scheduled_execution_end_date: datetime
    scheduled_buffer_start_date: Optional[datetime] = None
    scheduled_buffer_end_date: Optional[datetime] = None
    scheduled_buffer_unit: Optional[DurationUnit] = None
    scheduled_start_time: Optional[str] = None
    scheduled_end_time: Optional[str] = None
    assigned_team_members: List[str] = []


class ScheduleSelection(BaseModel):
    subproject_index: Optional[int] = None
    start_date: Optional[str] = None    # "YYYY-MM-DD" in the professional's zone
    start_time: Optional[str] = None    # "HH:mm", hours mode only
    customer_blocks: Optional[CustomerBlocks] = None
