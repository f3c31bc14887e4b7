# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Visitation events and the merged calendar.
Thin HTTP layer — delegates ALL logic to ScheduleService.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from coparent.core.dependencies import get_current_user_id, get_schedule_service
from coparent.schemas.scheduling import (
    CalendarResponse,
    EventCreateRequest,
    EventListItem,
    EventResponse,
    EventUpdateRequest,
    SuccessResponse,
)
from coparent.services.schedule_service import ScheduleService

router = APIRouter(prefix="/api/v1", tags=["Schedule"])


@router.post("/events", status_code=201, response_model=EventResponse)
def create_event(
    payload: EventCreateRequest,
    user_id: str = Depends(get_current_user_id),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Create a visitation event; rejected with 409 when it overlaps the child's schedule."""
    return service.create_event(
        user_id=user_id,
        child_id=payload.child_id,
        parent_id=payload.parent_id,
        start_time=payload.start_time,
        end_time=payload.end_time,
        is_recurring=payload.is_recurring,
        recurrence_rule=(
            payload.recurrence_rule.model_dump(mode="json")
            if payload.recurrence_rule
            else None
        ),
        is_holiday_exception=payload.is_holiday_exception,
        notes=payload.notes,
    )


@router.get("/events", response_model=list[EventListItem])
def list_events(
    start: Optional[str] = Query(default=None, description="YYYY-MM-DD, default today"),
    end: Optional[str] = Query(default=None, description="YYYY-MM-DD, inclusive"),
    child_id: Optional[str] = Query(default=None),
    user_id: str = Depends(get_current_user_id),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Events overlapping the window, ordered by start time."""
    return service.list_events(user_id, start, end, child_id)


@router.patch("/events/{event_id}", response_model=EventResponse)
def update_event(
    event_id: str,
    payload: EventUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Partially update an event."""
    changes = payload.model_dump(exclude_unset=True)
    if payload.recurrence_rule is not None:
        changes["recurrence_rule"] = payload.recurrence_rule.model_dump(mode="json")
    return service.update_event(user_id, event_id, changes)


@router.delete("/events/{event_id}", response_model=SuccessResponse)
def delete_event(
    event_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Hard delete an event together with its swap requests."""
    return service.delete_event(user_id, event_id)


@router.get("/calendar", response_model=CalendarResponse)
def get_calendar(
    start: Optional[str] = Query(default=None, description="YYYY-MM-DD"),
    end: Optional[str] = Query(default=None, description="YYYY-MM-DD"),
    center: Optional[str] = Query(
        default=None, description="YYYY-MM-DD; window is one month back, two forward"
    ),
    user_id: str = Depends(get_current_user_id),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Manual events and rotation days merged into one ordered list."""
    return service.get_calendar(user_id, start, end, center)
