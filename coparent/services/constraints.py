# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Input invariants checked before any permission lookup or overlap guard."""

from datetime import date, datetime
from typing import Any, Optional

from coparent.core.errors import ConstraintError
from coparent.services.dates import today


def check_rotation_input(
    start_date: date,
    end_date: Optional[date],
    primary_parent_id: str,
    secondary_parent_id: str,
) -> None:
    if primary_parent_id == secondary_parent_id:
        raise ConstraintError("Primary and secondary parents must be different")
    if end_date is not None and end_date <= start_date:
        raise ConstraintError("End date must be after start date")


def check_event_times(start_time: datetime, end_time: datetime) -> None:
    if end_time <= start_time:
        raise ConstraintError("End time must be after start time")


def check_recurrence(is_recurring: bool, recurrence_rule: Optional[dict[str, Any]]) -> None:
    if is_recurring and not recurrence_rule:
        raise ConstraintError("Recurrence rule is required for recurring events")


def check_query_window(start: date, end: date) -> None:
    if end < start:
        raise ConstraintError("End date must be after or equal to start date")


def check_date_of_birth(date_of_birth: date) -> None:
    if date_of_birth > today():
        raise ConstraintError("Date of birth cannot be in the future")
