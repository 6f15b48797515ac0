# scheduling/models.py

from typing import Optional

from sqlalchemy.types import JSON
from sqlmodel import SQLModel, Field, Column

# Records are stored as the JSON documents collaborators send; the engine
# parses them through scheduling.schemas on load.

class ProjectRecord(SQLModel, table=True):
    id: str = Field(primary_key=True)
    professional_id: Optional[str] = Field(default=None, index=True)
    data: dict = Field(default_factory=dict, sa_column=Column(JSON))

class ResourceRecord(SQLModel, table=True):
    id: str = Field(primary_key=True)
    data: dict = Field(default_factory=dict, sa_column=Column(JSON))

class BookingRecord(SQLModel, table=True):
    id: str = Field(primary_key=True)

    project_id: Optional[str] = Field(default=None, index=True)
    professional_id: Optional[str] = Field(default=None, index=True)
    status: str = Field(default="booked", index=True)
    data: dict = Field(default_factory=dict, sa_column=Column(JSON))

# One row per (booking, assigned resource) so bookings can be looked up by
# assignment without reading every JSON document.
class BookingAssignment(SQLModel, table=True):
    booking_id: str = Field(primary_key=True)
    resource_id: str = Field(primary_key=True, index=True)
