# scheduling/routers/records_routes.py

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from scheduling.blocks import build_booking_blocked_ranges
from scheduling.db import get_session
from scheduling.models import BookingRecord, ProjectRecord, ResourceRecord
from scheduling.repository import bookings_for_resource, get_project, get_resource, save_booking, upsert_record
from scheduling.schemas import Booking, BookingBlockedRange, Professional, Project

router = APIRouter(
    tags=["records"],
)

@router.put("/projects/{project_id}", response_model=Project)
def put_project(
    project_id: str,
    project: Project,
    session: Session = Depends(get_session),
):
    if project.id is not None and project.id != project_id:
        raise HTTPException(status_code=422, detail="Body id does not match path")

    # DB upsert: one document per project id
    upsert_record(
        session, ProjectRecord, project_id,
        project.model_dump(mode="json", exclude={"id"}),
        professional_id=project.professional_id,
    )
    return get_project(session, project_id)

@router.get("/projects/{project_id}", response_model=Project)
def read_project(project_id: str, session: Session = Depends(get_session)):
    project = get_project(session, project_id)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return project

# Professionals and team members share one table; team members simply
# leave the company fields empty.
@router.put("/resources/{resource_id}", response_model=Professional)
def put_resource(
    resource_id: str,
    resource: Professional,
    session: Session = Depends(get_session),
):
    if resource.id is not None and resource.id != resource_id:
        raise HTTPException(status_code=422, detail="Body id does not match path")

    upsert_record(
        session, ResourceRecord, resource_id,
        resource.model_dump(mode="json", exclude={"id"}, exclude_unset=True),
    )
    return get_resource(session, resource_id, schema=Professional)

@router.get("/resources/{resource_id}", response_model=Professional)
def read_resource(resource_id: str, session: Session = Depends(get_session)):
    resource = get_resource(session, resource_id, schema=Professional)
    if resource is None:
        raise HTTPException(status_code=404, detail="Resource not found")
    return resource

# Everything the resource's bookings hold, for calendars outside a project query
@router.get("/resources/{resource_id}/blocked-ranges", response_model=List[BookingBlockedRange])
def read_blocked_ranges(resource_id: str, session: Session = Depends(get_session)):
    if get_resource(session, resource_id) is None:
        raise HTTPException(status_code=404, detail="Resource not found")
    return build_booking_blocked_ranges(resource_id, bookings_for_resource(session, resource_id))

@router.put("/bookings/{booking_id}", response_model=Booking)
def put_booking(
    booking_id: str,
    booking: Booking,
    session: Session = Depends(get_session),
):
    if booking.id is not None and booking.id != booking_id:
        raise HTTPException(status_code=422, detail="Body id does not match path")

    record = save_booking(session, booking_id, booking)
    return Booking.model_validate({**record.data, "id": record.id})

@router.get("/bookings/{booking_id}", response_model=Booking)
def read_booking(booking_id: str, session: Session = Depends(get_session)):
    record = session.get(BookingRecord, booking_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Booking not found")
    return Booking.model_validate({**record.data, "id": record.id})
