# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Children of the caller's family.
"""

from fastapi import APIRouter, Depends

from coparent.core.dependencies import get_child_service, get_current_user_id
from coparent.schemas.family import ChildCreateRequest, ChildResponse, ChildUpdateRequest
from coparent.schemas.scheduling import SuccessResponse
from coparent.services.child_service import ChildService

router = APIRouter(prefix="/api/v1", tags=["Children"])


@router.post("/children", status_code=201, response_model=ChildResponse)
def create_child(
    payload: ChildCreateRequest,
    user_id: str = Depends(get_current_user_id),
    service: ChildService = Depends(get_child_service),
):
    return service.create_child(user_id, payload.first_name, payload.last_name,
                                payload.date_of_birth)


@router.get("/children", response_model=list[ChildResponse])
def list_children(
    user_id: str = Depends(get_current_user_id),
    service: ChildService = Depends(get_child_service),
):
    return service.list_children(user_id)


@router.patch("/children/{child_id}", response_model=ChildResponse)
def update_child(
    child_id: str,
    payload: ChildUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    service: ChildService = Depends(get_child_service),
):
    return service.update_child(user_id, child_id, payload.first_name, payload.last_name,
                                payload.date_of_birth)


@router.delete("/children/{child_id}", response_model=SuccessResponse)
def delete_child(
    child_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ChildService = Depends(get_child_service),
):
    return service.delete_child(user_id, child_id)
