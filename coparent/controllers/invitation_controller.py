# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Family invitations (email and shareable link).
The token preview is public so invitees can see what they are joining before sign-in.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from coparent.core.dependencies import get_current_user_id, get_invitation_service
from coparent.schemas.family import (
    EmailInvitationRequest,
    InvitationAcceptRequest,
    InvitationAcceptResponse,
    InvitationListItem,
    InvitationPreview,
    InvitationResponse,
    LinkInvitationRequest,
)
from coparent.services.invitation_service import InvitationService

router = APIRouter(prefix="/api/v1", tags=["Invitations"])


@router.post("/invitations/email", status_code=201, response_model=InvitationResponse)
def create_email_invitation(
    payload: EmailInvitationRequest,
    user_id: str = Depends(get_current_user_id),
    service: InvitationService = Depends(get_invitation_service),
):
    return service.create_email_invite(user_id, payload.email, payload.role,
                                       payload.can_edit_schedule)


@router.post("/invitations/link", status_code=201, response_model=InvitationResponse)
def create_link_invitation(
    payload: LinkInvitationRequest,
    user_id: str = Depends(get_current_user_id),
    service: InvitationService = Depends(get_invitation_service),
):
    return service.create_link_invite(user_id, payload.role, payload.can_edit_schedule)


@router.get("/invitations", response_model=list[InvitationListItem])
def list_invitations(
    status: Optional[str] = Query(default=None),
    user_id: str = Depends(get_current_user_id),
    service: InvitationService = Depends(get_invitation_service),
):
    return service.list_invitations(user_id, status)


@router.get("/invitations/token/{token}", response_model=InvitationPreview)
def preview_invitation(
    token: str,
    service: InvitationService = Depends(get_invitation_service),
):
    """Public lookup. Expired invitations are marked as such and rejected."""
    return service.get_by_token(token)


@router.post("/invitations/accept", response_model=InvitationAcceptResponse)
def accept_invitation(
    payload: InvitationAcceptRequest,
    user_id: str = Depends(get_current_user_id),
    service: InvitationService = Depends(get_invitation_service),
):
    return service.accept(user_id, payload.token)


@router.post("/invitations/{invitation_id}/revoke", response_model=InvitationResponse)
def revoke_invitation(
    invitation_id: str,
    user_id: str = Depends(get_current_user_id),
    service: InvitationService = Depends(get_invitation_service),
):
    return service.revoke(user_id, invitation_id)
