# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Request / Response schemas for rotations, visitation events, swaps and the calendar.
These are Pydantic models used ONLY at the controller (HTTP) boundary.

Calendar dates travel as ``YYYY-MM-DD`` strings and are parsed by the service layer,
so malformed dates surface as ``validation_error`` rather than a generic 422.
"""

import datetime as dt
from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from coparent.models.domain import RecurrenceFrequency


class SuccessResponse(BaseModel):
    success: bool


# ── Rotation Schemas ──

class RotationCreateRequest(BaseModel):
    family_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=255, description="Rotation name")
    pattern_type: str = Field(..., description="One of the catalog pattern names")
    start_date: str = Field(..., description="First day of the rotation (YYYY-MM-DD)")
    end_date: Optional[str] = Field(
        default=None, description="Last day, inclusive (YYYY-MM-DD). Omit for open-ended."
    )
    primary_parent_id: str = Field(..., min_length=1)
    secondary_parent_id: str = Field(..., min_length=1)


class RotationResponse(BaseModel):
    id: str
    family_id: str
    name: str
    pattern_type: str
    start_date: date
    end_date: Optional[date] = None
    primary_parent_id: str
    secondary_parent_id: str
    is_active: bool
    created_by: str
    created_at: datetime
    updated_at: datetime


class PersonSummary(BaseModel):
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None


class FamilySummary(BaseModel):
    id: str
    name: str


class RotationDetailResponse(RotationResponse):
    family: FamilySummary
    primary_parent: PersonSummary
    secondary_parent: PersonSummary


class RotationEventResponse(BaseModel):
    date: dt.date
    parent_id: str
    parent_name: str
    day_of_cycle: int
    rotation_id: str
    rotation_name: str


class PatternResponse(BaseModel):
    pattern_type: str
    display_name: str
    description: str
    cycle_days: int
    sequence: list[str]


# ── Visitation Event Schemas ──

class RecurrenceRule(BaseModel):
    frequency: RecurrenceFrequency
    interval: int = Field(default=1, ge=1, le=52)
    days_of_week: Optional[list[int]] = Field(
        default=None, description="0 = Sunday ... 6 = Saturday"
    )
    end_date: Optional[date] = None
    count: Optional[int] = Field(default=None, ge=1, le=365)

    @field_validator("days_of_week")
    @classmethod
    def check_days(cls, v: Optional[list[int]]) -> Optional[list[int]]:
        if v is not None and any(day < 0 or day > 6 for day in v):
            raise ValueError("days_of_week entries must be between 0 and 6")
        return v


class EventCreateRequest(BaseModel):
    child_id: str = Field(..., min_length=1)
    parent_id: str = Field(..., min_length=1)
    start_time: datetime
    end_time: datetime
    is_recurring: bool = False
    recurrence_rule: Optional[RecurrenceRule] = None
    is_holiday_exception: bool = False
    notes: Optional[str] = Field(default=None, max_length=500)


class EventUpdateRequest(BaseModel):
    """Partial update model for PATCH /api/v1/events/{id}."""
    child_id: Optional[str] = Field(default=None, min_length=1)
    parent_id: Optional[str] = Field(default=None, min_length=1)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    is_recurring: Optional[bool] = None
    recurrence_rule: Optional[RecurrenceRule] = None
    is_holiday_exception: Optional[bool] = None
    notes: Optional[str] = Field(default=None, max_length=500)


class EventResponse(BaseModel):
    id: str
    family_id: str
    child_id: str
    parent_id: str
    start_time: datetime
    end_time: datetime
    is_recurring: bool
    recurrence_rule: Optional[dict[str, Any]] = None
    is_holiday_exception: bool
    notes: Optional[str] = None
    created_by: str
    created_at: datetime
    updated_at: datetime


class EventListItem(EventResponse):
    child: dict[str, Any]
    parent: dict[str, Any]
    parent_name: str


# ── Calendar Schemas ──

class CalendarEntry(BaseModel):
    id: str
    source: str
    title: str
    start: datetime
    end: datetime
    all_day: bool
    child_id: Optional[str] = None
    parent_id: str
    rotation_id: Optional[str] = None
    day_of_cycle: Optional[int] = None
    notes: Optional[str] = None


class CalendarResponse(BaseModel):
    family_id: str
    start: date
    end: date
    entries: list[CalendarEntry]


# ── Swap Schemas ──

class SwapCreateRequest(BaseModel):
    event_id: str = Field(..., min_length=1)
    new_start_time: datetime
    new_end_time: datetime
    reason: str = Field(..., min_length=1, max_length=500)


class SwapResponse(BaseModel):
    id: str
    family_id: str
    event_id: str
    requested_by: str
    requested_to: str
    new_start_time: datetime
    new_end_time: datetime
    reason: str
    status: str
    responded_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class SwapListItem(SwapResponse):
    event: dict[str, Any]
