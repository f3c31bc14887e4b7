# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Rotation pattern endpoints.
Thin HTTP layer — delegates ALL logic to RotationService.
"""

from fastapi import APIRouter, Depends, Query

from coparent.core.dependencies import get_current_user_id, get_rotation_service
from coparent.schemas.scheduling import (
    PatternResponse,
    RotationCreateRequest,
    RotationDetailResponse,
    RotationEventResponse,
    RotationResponse,
    SuccessResponse,
)
from coparent.services.rotation_service import RotationService

router = APIRouter(prefix="/api/v1", tags=["Rotations"])


@router.get("/rotations/patterns", response_model=list[PatternResponse])
def list_patterns(
    _user_id: str = Depends(get_current_user_id),
    service: RotationService = Depends(get_rotation_service),
):
    """Catalog of supported custody cycles."""
    return service.list_patterns()


@router.post("/rotations", status_code=201, response_model=RotationResponse)
def create_rotation(
    payload: RotationCreateRequest,
    user_id: str = Depends(get_current_user_id),
    service: RotationService = Depends(get_rotation_service),
):
    """Create a rotation after the overlap check against active rotations."""
    return service.create_rotation(
        user_id=user_id,
        family_id=payload.family_id,
        name=payload.name,
        pattern_type=payload.pattern_type,
        start_date=payload.start_date,
        end_date=payload.end_date,
        primary_parent_id=payload.primary_parent_id,
        secondary_parent_id=payload.secondary_parent_id,
    )


@router.get("/rotations", response_model=list[RotationDetailResponse])
def list_rotations(
    user_id: str = Depends(get_current_user_id),
    service: RotationService = Depends(get_rotation_service),
):
    """Active rotations across the caller's families."""
    return service.list_rotations(user_id)


@router.get("/rotations/{rotation_id}/events", response_model=list[RotationEventResponse])
def get_rotation_events(
    rotation_id: str,
    start: str = Query(..., description="YYYY-MM-DD"),
    end: str = Query(..., description="YYYY-MM-DD"),
    user_id: str = Depends(get_current_user_id),
    service: RotationService = Depends(get_rotation_service),
):
    """Per-day parent assignments for the window. Unknown rotation ids yield []."""
    return service.get_calendar_events(user_id, rotation_id, start, end)


@router.delete("/rotations/{rotation_id}", response_model=SuccessResponse)
def delete_rotation(
    rotation_id: str,
    user_id: str = Depends(get_current_user_id),
    service: RotationService = Depends(get_rotation_service),
):
    """Soft delete (deactivate) a rotation."""
    return service.delete_rotation(user_id, rotation_id)
