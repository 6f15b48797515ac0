# scheduling/routers/scheduling_routes.py

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from scheduling.context import ScheduleContext
from scheduling.db import get_session
from scheduling.errors import ScheduleComputationError
from scheduling.repository import load_schedule_context
from scheduling.schemas import (
    ScheduleProposals,
    ScheduleSelection,
    ScheduleWindow,
    SearchStrategy,
    ValidationResult,
)
from scheduling.search import build_schedule_proposals
from scheduling.team_search import build_team_schedule_proposals
from scheduling.validator import build_schedule_window, validate_schedule_selection

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/projects",
    tags=["scheduling"],
)

def _load_context(session: Session, project_id: str) -> ScheduleContext:
    ctx = load_schedule_context(session, project_id)
    if ctx is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return ctx

def _run(operation, ctx: ScheduleContext, *args):
    try:
        return operation(ctx, *args)
    except ScheduleComputationError as exc:
        logger.error("Scheduling failed for project %s: %s", ctx.project.id, exc)
        raise HTTPException(status_code=500, detail="Schedule computation failed") from exc

@router.get("/{project_id}/schedule-proposals", response_model=ScheduleProposals)
def get_schedule_proposals(
    project_id: str,
    subproject_index: Optional[int] = None,
    strategy: SearchStrategy = SearchStrategy.per_member,
    session: Session = Depends(get_session),
):
    ctx = _load_context(session, project_id)
    if strategy == SearchStrategy.primary_resource:
        proposals = _run(build_team_schedule_proposals, ctx, subproject_index)
    else:
        proposals = _run(build_schedule_proposals, ctx, subproject_index)

    if proposals is None:
        raise HTTPException(status_code=404, detail="No availability")
    return proposals

@router.post("/{project_id}/schedule/validate", response_model=ValidationResult)
def validate_schedule(
    project_id: str,
    selection: ScheduleSelection,
    session: Session = Depends(get_session),
):
    ctx = _load_context(session, project_id)
    return _run(validate_schedule_selection, ctx, selection)

@router.post("/{project_id}/schedule/window", response_model=ScheduleWindow)
def schedule_window(
    project_id: str,
    selection: ScheduleSelection,
    session: Session = Depends(get_session),
):
    ctx = _load_context(session, project_id)
    window = _run(build_schedule_window, ctx, selection)
    if window is None:
        raise HTTPException(status_code=409, detail="Selected start cannot be scheduled")
    return window
