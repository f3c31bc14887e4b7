# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Request / Response schemas for families, members, children, invitations and audit.
"""

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


# ── Family Schemas ──

class FamilyCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="Family name")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Family name is required")
        return v


class FamilyResponse(BaseModel):
    id: str
    name: str
    created_at: datetime
    updated_at: datetime


class MemberAddRequest(BaseModel):
    email: str = Field(..., pattern=EMAIL_PATTERN)
    role: str = Field(..., description="parent_1, parent_2, attorney or grandparent")
    can_edit_schedule: bool = False


class MemberUpdateRequest(BaseModel):
    role: str
    can_edit_schedule: bool


class MemberResponse(BaseModel):
    id: str
    family_id: str
    user_id: str
    role: str
    can_edit_schedule: bool
    created_at: datetime
    updated_at: datetime


class MemberDetail(MemberResponse):
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    display_name: str
    role_label: str


# ── Child Schemas ──

class ChildCreateRequest(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    date_of_birth: str = Field(..., description="YYYY-MM-DD")


class ChildUpdateRequest(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    date_of_birth: Optional[str] = None


class ChildResponse(BaseModel):
    id: str
    family_id: str
    first_name: str
    last_name: str
    date_of_birth: date
    created_at: datetime
    updated_at: datetime


class FamilyDetailResponse(FamilyResponse):
    members: list[MemberDetail]
    children: list[ChildResponse]


# ── Invitation Schemas ──

class EmailInvitationRequest(BaseModel):
    email: str = Field(..., pattern=EMAIL_PATTERN)
    role: str = Field(..., description="parent_2, attorney or grandparent")
    can_edit_schedule: bool = False


class LinkInvitationRequest(BaseModel):
    role: str = Field(..., description="parent_2, attorney or grandparent")
    can_edit_schedule: bool = False


class InvitationAcceptRequest(BaseModel):
    token: str = Field(..., min_length=1)


class InvitationResponse(BaseModel):
    id: str
    family_id: str
    email: Optional[str] = None
    token: str
    role: str
    can_edit_schedule: bool
    status: str
    expires_at: datetime


class InvitationPreview(BaseModel):
    id: str
    family_name: str
    inviter_name: str
    role: str
    expires_at: datetime


class InvitationListItem(BaseModel):
    id: str
    email: Optional[str] = None
    role: str
    status: str
    can_edit_schedule: bool
    invited_by: str
    accepted_by: Optional[str] = None
    expires_at: datetime
    accepted_at: Optional[datetime] = None
    created_at: datetime


class InvitationAcceptResponse(BaseModel):
    family_id: str
    family_name: str
    role: str


# ── Audit Schemas ──

class AuditEntryResponse(BaseModel):
    id: str
    family_id: str
    user_id: str
    action: str
    entity_type: str
    entity_id: str
    old_data: Optional[dict[str, Any]] = None
    new_data: Optional[dict[str, Any]] = None
    created_at: datetime
