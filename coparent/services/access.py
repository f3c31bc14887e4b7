# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Family access checks shared by every orchestration service.
Membership and edit rights are checked before any mutation logic runs.
"""

from typing import Any, Dict, Optional

from coparent.core.errors import NotFoundError, PermissionDeniedError
from coparent.models.domain import PARENT_ROLES
from coparent.repositories.child_repository import ChildRepository
from coparent.repositories.family_repository import FamilyRepository


def format_user_display_name(user: Optional[Dict[str, Any]]) -> str:
    """``First Last`` when a first name is known, otherwise the email."""
    if not user:
        return "Unknown"
    if user.get("first_name"):
        return f"{user['first_name']} {user.get('last_name') or ''}".strip()
    return user.get("email") or "Unknown"


def assert_can_edit(member: Dict[str, Any], action: str = "perform this action") -> None:
    if not member.get("can_edit_schedule"):
        raise PermissionDeniedError(f"You do not have permission to {action}")


class FamilyAccess:
    def __init__(self, family_repo: FamilyRepository, child_repo: ChildRepository):
        self._families = family_repo
        self._children = child_repo

    def current_membership(self, conn, user_id: str) -> Dict[str, Any]:
        """The family the caller acts on. Raises when the caller has none."""
        member = self._families.first_membership(conn, user_id)
        if member is None:
            raise PermissionDeniedError("You must be a member of a family")
        return member

    def membership_in(self, conn, family_id: str, user_id: str) -> Dict[str, Any]:
        member = self._families.find_membership(conn, family_id, user_id)
        if member is None:
            raise PermissionDeniedError("You are not a member of this family")
        return member

    def child_in_family(self, conn, child_id: str, family_id: str,
                        lock: bool = False) -> Dict[str, Any]:
        child = (self._children.lock(conn, child_id) if lock
                 else self._children.get(conn, child_id))
        if child is None or child["family_id"] != family_id:
            raise NotFoundError("Child not found in your family")
        return child

    def parent_in_family(self, conn, user_id: str, family_id: str) -> Dict[str, Any]:
        member = self._families.find_membership(conn, family_id, user_id)
        if member is None or member["role"] not in PARENT_ROLES:
            raise NotFoundError("Invalid parent ID - must be a parent in this family")
        return member
