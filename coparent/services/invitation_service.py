# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Family invitations by email or shareable link.
Tokens are random hex strings; a stale pending invitation is marked expired on first touch.
"""

import secrets
from datetime import timedelta
from typing import Any, Optional

from coparent.core.config import settings
from coparent.core.errors import (
    ConflictError,
    ConstraintError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from coparent.core.logging import get_logger
from coparent.models.domain import FamilyRole, InvitationStatus
from coparent.models.tables import utcnow
from coparent.repositories.audit_repository import AuditRepository
from coparent.repositories.family_repository import FamilyRepository
from coparent.repositories.invitation_repository import InvitationRepository
from coparent.repositories.user_repository import UserRepository
from coparent.services.access import FamilyAccess, assert_can_edit, format_user_display_name
from coparent.services.notification_client import NotificationClient

logger = get_logger(__name__)

INVITATION_ROLES = (FamilyRole.PARENT_2, FamilyRole.ATTORNEY, FamilyRole.GRANDPARENT)


def parse_invitation_role(value: str) -> FamilyRole:
    if value not in {r.value for r in INVITATION_ROLES}:
        raise ValidationError("Invalid role. Must be parent_2, attorney, or grandparent")
    return FamilyRole(value)


def parse_invitation_status(value: Optional[str]) -> Optional[InvitationStatus]:
    if value is None:
        return None
    try:
        return InvitationStatus(value)
    except ValueError:
        raise ValidationError(f"Invalid invitation status '{value}'")


def generate_invitation_token() -> str:
    return secrets.token_hex(settings.INVITATION_TOKEN_BYTES)


def invitation_expiry(is_email_invite: bool):
    days = (settings.EMAIL_INVITATION_EXPIRY_DAYS if is_email_invite
            else settings.LINK_INVITATION_EXPIRY_DAYS)
    return utcnow() + timedelta(days=days)


class InvitationService:
    def __init__(
        self,
        invitation_repo: InvitationRepository,
        family_repo: FamilyRepository,
        user_repo: UserRepository,
        audit_repo: AuditRepository,
        access: FamilyAccess,
        notification_client: NotificationClient,
    ) -> None:
        self._invitations = invitation_repo
        self._families = family_repo
        self._users = user_repo
        self._audit = audit_repo
        self._access = access
        self._notification = notification_client

    # ── Create ──

    def create_email_invite(self, user_id: str, email: str, role: str,
                            can_edit_schedule: bool = False) -> dict[str, Any]:
        invite_role = parse_invitation_role(role)
        with self._invitations.transaction() as conn:
            member = self._access.current_membership(conn, user_id)
            assert_can_edit(member, "invite family members")
            family_id = member["family_id"]
            if self._invitations.find_pending_for_email(conn, family_id, email):
                raise ConflictError("An invitation has already been sent to this email address")
            invitation = self._invitations.create(
                conn, family_id, user_id, email, generate_invitation_token(),
                invite_role.value, can_edit_schedule, invitation_expiry(True),
            )
            self._audit.record(conn, family_id, user_id, "invitation.create_email",
                               "family_invitation", invitation["id"], new_data={
                                   "email": email, "role": invite_role.value,
                                   "expires_at": invitation["expires_at"],
                               })
            family = self._families.get_family(conn, family_id)

        logger.info("Email invitation created id=%s role=%s",
                    invitation["id"], invite_role.value,
                    extra={"family_id": family_id})
        self._notification.notify(
            email,
            f"You're invited to join {family['name']}",
            f"Use invitation code {invitation['token']} to join the family calendar.",
            family_id=family_id,
        )
        return invitation

    def create_link_invite(self, user_id: str, role: str,
                           can_edit_schedule: bool = False) -> dict[str, Any]:
        invite_role = parse_invitation_role(role)
        with self._invitations.transaction() as conn:
            member = self._access.current_membership(conn, user_id)
            assert_can_edit(member, "invite family members")
            invitation = self._invitations.create(
                conn, member["family_id"], user_id, None, generate_invitation_token(),
                invite_role.value, can_edit_schedule, invitation_expiry(False),
            )
            self._audit.record(conn, member["family_id"], user_id, "invitation.create_link",
                               "family_invitation", invitation["id"], new_data={
                                   "role": invite_role.value,
                                   "expires_at": invitation["expires_at"],
                               })
        logger.info("Link invitation created id=%s", invitation["id"],
                    extra={"family_id": member["family_id"]})
        return invitation

    # ── Token flow ──

    def _expire_if_stale(self, conn, invitation: dict[str, Any]) -> bool:
        if (invitation["status"] == InvitationStatus.PENDING.value
                and utcnow() > invitation["expires_at"]):
            self._invitations.update(conn, invitation["id"],
                                     status=InvitationStatus.EXPIRED.value)
            logger.info("Invitation expired id=%s", invitation["id"])
            return True
        return False

    @staticmethod
    def _assert_pending(invitation: dict[str, Any]) -> None:
        if invitation["status"] != InvitationStatus.PENDING.value:
            raise ConstraintError(f"This invitation has already been {invitation['status']}")

    def _by_token(self, conn, token: str) -> dict[str, Any]:
        invitation = self._invitations.get_by_token(conn, token)
        if invitation is None:
            raise NotFoundError("Invitation not found")
        return invitation

    def get_by_token(self, token: str) -> dict[str, Any]:
        """Public preview of an invitation. Needs no authentication."""
        with self._invitations.transaction() as conn:
            invitation = self._by_token(conn, token)
            expired = self._expire_if_stale(conn, invitation)
        if expired:
            raise ConstraintError("This invitation has expired")
        self._assert_pending(invitation)
        return {
            "id": invitation["id"],
            "family_name": invitation["family_name"],
            "inviter_name": format_user_display_name(invitation["inviter"]),
            "role": invitation["role"],
            "expires_at": invitation["expires_at"],
        }

    def accept(self, user_id: str, token: str) -> dict[str, Any]:
        expired = False
        with self._invitations.transaction() as conn:
            invitation = self._by_token(conn, token)
            if self._expire_if_stale(conn, invitation):
                expired = True
            else:
                self._assert_pending(invitation)
                family_id = invitation["family_id"]
                if self._users.get(conn, user_id) is None:
                    raise NotFoundError("User not found. Complete sign-up first.")
                if self._families.find_membership(conn, family_id, user_id):
                    raise ConflictError("You are already a member of this family")
                if self._families.first_membership(conn, user_id):
                    raise ConflictError("You are already a member of another family")
                self._families.add_member(conn, family_id, user_id, invitation["role"],
                                          invitation["can_edit_schedule"])
                self._invitations.update(conn, invitation["id"],
                                         status=InvitationStatus.ACCEPTED.value,
                                         accepted_by=user_id, accepted_at=utcnow())
                self._audit.record(conn, family_id, user_id, "invitation.accept",
                                   "family_invitation", invitation["id"], new_data={
                                       "role": invitation["role"],
                                       "can_edit_schedule": invitation["can_edit_schedule"],
                                   })
        if expired:
            raise ConstraintError("This invitation has expired")

        logger.info("Invitation accepted id=%s", invitation["id"],
                    extra={"family_id": invitation["family_id"]})
        return {
            "family_id": invitation["family_id"],
            "family_name": invitation["family_name"],
            "role": invitation["role"],
        }

    # ── Manage ──

    def list_invitations(self, user_id: str,
                         status: Optional[str] = None) -> list[dict[str, Any]]:
        wanted = parse_invitation_status(status)
        with self._invitations.connection() as conn:
            member = self._access.current_membership(conn, user_id)
            rows = self._invitations.list_for_family(
                conn, member["family_id"], wanted.value if wanted else None
            )
        return [
            {
                "id": inv["id"],
                "email": inv["email"],
                "role": inv["role"],
                "status": inv["status"],
                "can_edit_schedule": inv["can_edit_schedule"],
                "invited_by": format_user_display_name(inv["inviter"]),
                "accepted_by": (format_user_display_name(inv["acceptor"])
                                if inv["acceptor"] else None),
                "expires_at": inv["expires_at"],
                "accepted_at": inv["accepted_at"],
                "created_at": inv["created_at"],
            }
            for inv in rows
        ]

    def revoke(self, user_id: str, invitation_id: str) -> dict[str, Any]:
        with self._invitations.transaction() as conn:
            member = self._access.current_membership(conn, user_id)
            invitation = self._invitations.get(conn, invitation_id)
            if invitation is None or invitation["family_id"] != member["family_id"]:
                raise NotFoundError("Invitation not found")
            if invitation["invited_by"] != user_id and not member["can_edit_schedule"]:
                raise PermissionDeniedError(
                    "Only the inviter or a family admin can revoke this invitation"
                )
            if invitation["status"] != InvitationStatus.PENDING.value:
                raise ConstraintError(
                    f"Cannot revoke an invitation that is already {invitation['status']}"
                )
            revoked = self._invitations.update(conn, invitation_id,
                                               status=InvitationStatus.REVOKED.value)
            self._audit.record(conn, member["family_id"], user_id, "invitation.revoke",
                               "family_invitation", invitation_id,
                               old_data={"status": "pending"}, new_data={"status": "revoked"})
        logger.info("Invitation revoked id=%s", invitation_id,
                    extra={"family_id": member["family_id"]})
        return revoked
