# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Domain enumerations — pure data, NO FastAPI or SQLAlchemy dependency.
"""

from enum import Enum


class FamilyRole(str, Enum):
    PARENT_1 = "parent_1"
    PARENT_2 = "parent_2"
    ATTORNEY = "attorney"
    GRANDPARENT = "grandparent"


PARENT_ROLES: frozenset[str] = frozenset({FamilyRole.PARENT_1.value, FamilyRole.PARENT_2.value})

ROLE_LABELS: dict[str, str] = {
    "parent_1": "Primary Parent",
    "parent_2": "Co-Parent",
    "attorney": "Attorney",
    "grandparent": "Grandparent",
}


class SwapStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class InvitationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"
    REVOKED = "revoked"


class RecurrenceFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class EventSource(str, Enum):
    """Origin of a calendar entry in the merged view."""
    MANUAL = "manual"
    ROTATION = "rotation"
