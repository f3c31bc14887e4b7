# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Schedule swap requests between co-parents.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from coparent.core.dependencies import get_current_user_id, get_swap_service
from coparent.schemas.scheduling import SwapCreateRequest, SwapListItem, SwapResponse
from coparent.services.swap_service import SwapService

router = APIRouter(prefix="/api/v1", tags=["Swaps"])


@router.post("/swaps", status_code=201, response_model=SwapResponse)
def create_swap(
    payload: SwapCreateRequest,
    user_id: str = Depends(get_current_user_id),
    service: SwapService = Depends(get_swap_service),
):
    """Propose new times for an existing visitation event."""
    return service.create_swap(
        user_id, payload.event_id, payload.new_start_time, payload.new_end_time, payload.reason
    )


@router.get("/swaps", response_model=list[SwapListItem])
def list_swaps(
    status: Optional[str] = Query(default=None, description="pending, approved, rejected, cancelled"),
    user_id: str = Depends(get_current_user_id),
    service: SwapService = Depends(get_swap_service),
):
    return service.list_swaps(user_id, status)


@router.post("/swaps/{swap_id}/approve", response_model=SwapResponse)
def approve_swap(
    swap_id: str,
    user_id: str = Depends(get_current_user_id),
    service: SwapService = Depends(get_swap_service),
):
    """Recipient approves; the event moves only if the new times are still free."""
    return service.approve_swap(user_id, swap_id)


@router.post("/swaps/{swap_id}/reject", response_model=SwapResponse)
def reject_swap(
    swap_id: str,
    user_id: str = Depends(get_current_user_id),
    service: SwapService = Depends(get_swap_service),
):
    return service.reject_swap(user_id, swap_id)


@router.post("/swaps/{swap_id}/cancel", response_model=SwapResponse)
def cancel_swap(
    swap_id: str,
    user_id: str = Depends(get_current_user_id),
    service: SwapService = Depends(get_swap_service),
):
    return service.cancel_swap(user_id, swap_id)
