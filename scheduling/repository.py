# scheduling/repository.py

"""Stores record documents and loads one project's records into an immutable ScheduleContext."""

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Type

from pydantic import ValidationError
from sqlalchemy import or_
from sqlmodel import Session, SQLModel, col, select

from scheduling.context import ScheduleContext, dedupe_ids
from scheduling.data import TERMINAL_BOOKING_STATUSES
from scheduling.models import BookingAssignment, BookingRecord, ProjectRecord, ResourceRecord
from scheduling.schemas import Booking, Professional, Project, Resource

logger = logging.getLogger(__name__)


def upsert_record(session: Session, model: Type[SQLModel], record_id: str, data: dict, **columns) -> SQLModel:
    """Insert or replace one document record (one row per id)."""
    record = session.get(model, record_id)
    if record is None:
        record = model(id=record_id, data=data, **columns)
        session.add(record)
    else:
        record.data = data
        for name, value in columns.items():
            setattr(record, name, value)

    session.commit()
    session.refresh(record)
    return record


def get_project(session: Session, project_id: str) -> Optional[Project]:
    record = session.get(ProjectRecord, project_id)
    if record is None:
        return None
    return Project.model_validate({**record.data, "id": record.id})


def get_resource(session: Session, resource_id: str, schema=Resource):
    record = session.get(ResourceRecord, resource_id)
    if record is None:
        return None
    return schema.model_validate({**record.data, "id": record.id})


def _resource_ids(project: Project):
    ids = list(project.resources)
    for subproject in project.subprojects:
        ids.extend(subproject.resources or [])
    return dedupe_ids(ids)


def save_booking(session: Session, booking_id: str, booking: Booking) -> BookingRecord:
    """Store a booking document and index the resources it is assigned to."""
    assigned = set(booking.assigned_team_members)
    existing = session.exec(select(BookingAssignment).where(BookingAssignment.booking_id == booking_id)).all()
    for assignment in existing:
        if assignment.resource_id in assigned:
            assigned.discard(assignment.resource_id)
        else:
            session.delete(assignment)
    for resource_id in sorted(assigned):
        session.add(BookingAssignment(booking_id=booking_id, resource_id=resource_id))

    # Legacy field names are already folded into the canonical ones here
    return upsert_record(
        session, BookingRecord, booking_id,
        booking.model_dump(mode="json", exclude={"id"}),
        project_id=booking.project_id,
        professional_id=booking.professional_id,
        status=booking.status,
    )


def _assigned_to(resource_ids: Iterable[str]):
    return select(BookingAssignment.booking_id).where(col(BookingAssignment.resource_id).in_(list(resource_ids)))


def _active_bookings(session: Session, *criteria) -> List[Booking]:
    """Non-terminal bookings matching any of ``criteria``."""
    records = session.exec(
        select(BookingRecord)
        .where(col(BookingRecord.status).not_in(sorted(TERMINAL_BOOKING_STATUSES)))
        .where(or_(*criteria))
        .order_by(BookingRecord.id)
    ).all()
    bookings = []
    for record in records:
        try:
            bookings.append(Booking.model_validate({**record.data, "id": record.id}))
        except ValidationError as exc:
            logger.warning("Skipping unreadable booking %s: %s", record.id, exc)
    return bookings


def bookings_for_resource(session: Session, resource_id: str) -> List[Booking]:
    """Non-terminal bookings where the resource is the professional or is assigned."""
    return _active_bookings(
        session,
        BookingRecord.professional_id == resource_id,
        col(BookingRecord.id).in_(_assigned_to([resource_id])),
    )


def bookings_for_team(session: Session, project_id: str, team_ids: List[str]) -> List[Booking]:
    """Non-terminal bookings on the project or held by any team member."""
    return _active_bookings(
        session,
        BookingRecord.project_id == project_id,
        col(BookingRecord.professional_id).in_(team_ids),
        col(BookingRecord.id).in_(_assigned_to(team_ids)),
    )


def load_schedule_context(session: Session, project_id: str, now: Optional[datetime] = None) -> Optional[ScheduleContext]:
    """Everything a scheduling query needs for ``project_id``, or None if the project is unknown."""
    project = get_project(session, project_id)
    if project is None:
        return None

    professional = None
    if project.professional_id:
        professional = get_resource(session, project.professional_id, schema=Professional)
        if professional is None:
            logger.warning("Project %s references unknown professional %s", project_id, project.professional_id)

    resource_ids = _resource_ids(project)
    team_members = {}
    for resource_id in resource_ids:
        member = get_resource(session, resource_id)
        if member is not None:
            team_members[resource_id] = member

    # Bookings held by anyone on the team or by the professional
    team_ids = dedupe_ids([*resource_ids, project.professional_id])
    kwargs = {"now": now} if now is not None else {}
    return ScheduleContext(
        project=project,
        professional=professional,
        team_members=team_members,
        bookings=bookings_for_team(session, project_id, team_ids),
        **kwargs,
    )
