# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
FastAPI dependency injection — wire repositories and services.
"""

from fastapi import Request

from coparent.core.config import settings
from coparent.core.database import engine
from coparent.core.errors import AuthenticationError
from coparent.repositories.audit_repository import AuditRepository
from coparent.repositories.child_repository import ChildRepository
from coparent.repositories.event_repository import EventRepository
from coparent.repositories.family_repository import FamilyRepository
from coparent.repositories.invitation_repository import InvitationRepository
from coparent.repositories.rotation_repository import RotationRepository
from coparent.repositories.swap_repository import SwapRepository
from coparent.repositories.user_repository import UserRepository
from coparent.services.access import FamilyAccess
from coparent.services.audit_service import AuditService
from coparent.services.child_service import ChildService
from coparent.services.family_service import FamilyService
from coparent.services.invitation_service import InvitationService
from coparent.services.notification_client import NotificationClient
from coparent.services.rotation_service import RotationService
from coparent.services.schedule_service import ScheduleService
from coparent.services.swap_service import SwapService
from coparent.services.user_service import UserService

# ── Singleton repository instances (one shared engine) ──
_user_repo = UserRepository(engine)
_family_repo = FamilyRepository(engine)
_child_repo = ChildRepository(engine)
_rotation_repo = RotationRepository(engine)
_event_repo = EventRepository(engine)
_swap_repo = SwapRepository(engine)
_invitation_repo = InvitationRepository(engine)
_audit_repo = AuditRepository(engine)
_notification_client = NotificationClient()

# ── Service instances (with injected dependencies) ──
_access = FamilyAccess(_family_repo, _child_repo)
_rotation_service = RotationService(_rotation_repo, _family_repo, _audit_repo, _access)
_schedule_service = ScheduleService(
    event_repo=_event_repo,
    user_repo=_user_repo,
    audit_repo=_audit_repo,
    access=_access,
    rotation_service=_rotation_service,
    notification_client=_notification_client,
)
_swap_service = SwapService(
    swap_repo=_swap_repo,
    event_repo=_event_repo,
    user_repo=_user_repo,
    audit_repo=_audit_repo,
    access=_access,
    schedule_service=_schedule_service,
    notification_client=_notification_client,
)
_family_service = FamilyService(_family_repo, _child_repo, _user_repo, _audit_repo, _access)
_child_service = ChildService(_child_repo, _audit_repo, _access)
_invitation_service = InvitationService(
    invitation_repo=_invitation_repo,
    family_repo=_family_repo,
    user_repo=_user_repo,
    audit_repo=_audit_repo,
    access=_access,
    notification_client=_notification_client,
)
_audit_service = AuditService(_audit_repo, _access)
_user_service = UserService(_user_repo)


# ── FastAPI dependency functions ──
def get_current_user_id(request: Request) -> str:
    """Caller identity as forwarded by the upstream auth provider."""
    user_id = request.headers.get(settings.AUTH_USER_HEADER, "").strip()
    if not user_id:
        raise AuthenticationError("Not authenticated")
    return user_id


def get_rotation_service() -> RotationService:
    return _rotation_service


def get_schedule_service() -> ScheduleService:
    return _schedule_service


def get_swap_service() -> SwapService:
    return _swap_service


def get_family_service() -> FamilyService:
    return _family_service


def get_child_service() -> ChildService:
    return _child_service


def get_invitation_service() -> InvitationService:
    return _invitation_service


def get_audit_service() -> AuditService:
    return _audit_service


def get_user_service() -> UserService:
    return _user_service


def get_family_repo() -> FamilyRepository:
    return _family_repo


def get_notification_client() -> NotificationClient:
    return _notification_client
