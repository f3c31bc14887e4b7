# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Error kinds raised by the scheduling core and services.
Each kind knows the HTTP status the transport layer maps it to.
"""

from datetime import date, datetime
from typing import Any, Optional


class SchedulingError(Exception):
    """Base class for every expected, user-facing failure."""

    code: str = "bad_request"
    status_code: int = 400

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "detail": self.message, **self.details}


class ValidationError(SchedulingError):
    """Malformed input: bad date strings, missing fields, unknown enum values."""

    code = "validation_error"
    status_code = 400


class ConstraintError(SchedulingError):
    """Well-formed input that breaks an entity invariant (end before start, ...)."""

    code = "constraint_violation"
    status_code = 400


class AuthenticationError(SchedulingError):
    code = "unauthenticated"
    status_code = 401


class PermissionDeniedError(SchedulingError):
    """Caller lacks edit rights or family membership."""

    code = "forbidden"
    status_code = 403


class NotFoundError(SchedulingError):
    code = "not_found"
    status_code = 404


class ConflictError(SchedulingError):
    """An overlap guard rejected the write. Carries the conflicting span."""

    code = "conflict"
    status_code = 409

    def __init__(
        self,
        message: str,
        conflict_start: date | datetime | None = None,
        conflict_end: date | datetime | None = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, details)
        self.conflict_start = conflict_start
        self.conflict_end = conflict_end
        if conflict_start is not None:
            self.details["conflict_start"] = conflict_start.isoformat()
            self.details["conflict_end"] = (
                conflict_end.isoformat() if conflict_end is not None else None
            )
