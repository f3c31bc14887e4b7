# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Family and membership endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends

from coparent.core.dependencies import get_current_user_id, get_family_service
from coparent.schemas.family import (
    FamilyCreateRequest,
    FamilyDetailResponse,
    FamilyResponse,
    MemberAddRequest,
    MemberResponse,
    MemberUpdateRequest,
)
from coparent.schemas.scheduling import SuccessResponse
from coparent.services.family_service import FamilyService

router = APIRouter(prefix="/api/v1", tags=["Family"])


@router.post("/family", status_code=201, response_model=FamilyResponse)
def create_family(
    payload: FamilyCreateRequest,
    user_id: str = Depends(get_current_user_id),
    service: FamilyService = Depends(get_family_service),
):
    """Create a family with the caller as parent_1."""
    return service.create_family(user_id, payload.name)


@router.get("/family", response_model=Optional[FamilyDetailResponse])
def get_family(
    user_id: str = Depends(get_current_user_id),
    service: FamilyService = Depends(get_family_service),
):
    """The caller's family with members and children, or null."""
    return service.get_family(user_id)


@router.post("/family/members", status_code=201, response_model=MemberResponse)
def add_member(
    payload: MemberAddRequest,
    user_id: str = Depends(get_current_user_id),
    service: FamilyService = Depends(get_family_service),
):
    return service.add_member(user_id, payload.email, payload.role, payload.can_edit_schedule)


@router.patch("/family/members/{member_id}", response_model=MemberResponse)
def update_member(
    member_id: str,
    payload: MemberUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    service: FamilyService = Depends(get_family_service),
):
    return service.update_member(user_id, member_id, payload.role, payload.can_edit_schedule)


@router.delete("/family/members/{member_id}", response_model=SuccessResponse)
def remove_member(
    member_id: str,
    user_id: str = Depends(get_current_user_id),
    service: FamilyService = Depends(get_family_service),
):
    return service.remove_member(user_id, member_id)
