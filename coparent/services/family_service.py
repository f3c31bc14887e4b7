# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Family and membership management.
A user belongs to at most one family; the creator becomes ``parent_1`` with edit rights.
"""

from typing import Any, Optional

from coparent.core.errors import ConstraintError, NotFoundError, ValidationError
from coparent.core.logging import get_logger
from coparent.models.domain import ROLE_LABELS, FamilyRole
from coparent.repositories.audit_repository import AuditRepository
from coparent.repositories.child_repository import ChildRepository
from coparent.repositories.family_repository import FamilyRepository
from coparent.repositories.user_repository import UserRepository
from coparent.services.access import FamilyAccess, assert_can_edit, format_user_display_name

logger = get_logger(__name__)


def parse_role(value: str) -> FamilyRole:
    try:
        return FamilyRole(value)
    except ValueError:
        raise ValidationError(f"Invalid role '{value}'")


class FamilyService:
    def __init__(
        self,
        family_repo: FamilyRepository,
        child_repo: ChildRepository,
        user_repo: UserRepository,
        audit_repo: AuditRepository,
        access: FamilyAccess,
    ) -> None:
        self._families = family_repo
        self._children = child_repo
        self._users = user_repo
        self._audit = audit_repo
        self._access = access

    def create_family(self, user_id: str, name: str) -> dict[str, Any]:
        with self._families.transaction() as conn:
            if self._users.get(conn, user_id) is None:
                raise NotFoundError("User not found. Complete sign-up first.")
            if self._families.first_membership(conn, user_id) is not None:
                raise ConstraintError("You are already a member of a family")
            family = self._families.create_family(conn, name)
            self._families.add_member(conn, family["id"], user_id,
                                      FamilyRole.PARENT_1.value, can_edit_schedule=True)
            self._audit.record(conn, family["id"], user_id, "family.create", "family",
                               family["id"], new_data={"name": name})
        logger.info("Family created id=%s", family["id"], extra={"family_id": family["id"]})
        return family

    def get_family(self, user_id: str) -> Optional[dict[str, Any]]:
        """The caller's family with members and children, or None before onboarding."""
        with self._families.connection() as conn:
            member = self._families.first_membership(conn, user_id)
            if member is None:
                return None
            family = self._families.get_family(conn, member["family_id"])
            members = self._families.list_members(conn, family["id"])
            family_children = self._children.list_for_family(conn, family["id"])
        for m in members:
            m["display_name"] = format_user_display_name(m)
            m["role_label"] = ROLE_LABELS.get(m["role"], m["role"])
        return {**family, "members": members, "children": family_children}

    def add_member(self, user_id: str, email: str, role: str,
                   can_edit_schedule: bool = False) -> dict[str, Any]:
        family_role = parse_role(role)
        with self._families.transaction() as conn:
            member = self._access.current_membership(conn, user_id)
            assert_can_edit(member, "manage family members")
            user = self._users.get_by_email(conn, email)
            if user is None:
                raise NotFoundError("User not found. They must sign up first.")
            if self._families.first_membership(conn, user["id"]) is not None:
                raise ConstraintError("User is already a member of a family")
            added = self._families.add_member(conn, member["family_id"], user["id"],
                                              family_role.value, can_edit_schedule)
            self._audit.record(conn, member["family_id"], user_id, "family.addMember",
                               "family_member", added["id"], new_data={
                                   "user_id": user["id"], "role": family_role.value,
                                   "can_edit_schedule": can_edit_schedule,
                               })
        logger.info("Member added user=%s role=%s", user["id"], family_role.value,
                    extra={"family_id": member["family_id"]})
        return added

    def _member_in_family(self, conn, member_id: str, family_id: str) -> dict[str, Any]:
        target = self._families.get_member(conn, member_id)
        if target is None or target["family_id"] != family_id:
            raise NotFoundError("Family member not found")
        return target

    def update_member(self, user_id: str, member_id: str, role: str,
                      can_edit_schedule: bool) -> dict[str, Any]:
        family_role = parse_role(role)
        with self._families.transaction() as conn:
            member = self._access.current_membership(conn, user_id)
            assert_can_edit(member, "manage family members")
            target = self._member_in_family(conn, member_id, member["family_id"])
            updated = self._families.update_member(conn, member_id, family_role.value,
                                                   can_edit_schedule)
            self._audit.record(
                conn, member["family_id"], user_id, "family.updateMemberRole",
                "family_member", member_id,
                old_data={"role": target["role"],
                          "can_edit_schedule": target["can_edit_schedule"]},
                new_data={"role": family_role.value, "can_edit_schedule": can_edit_schedule},
            )
        logger.info("Member updated id=%s role=%s can_edit=%s",
                    member_id, family_role.value, can_edit_schedule,
                    extra={"family_id": member["family_id"]})
        return updated

    def remove_member(self, user_id: str, member_id: str) -> dict[str, Any]:
        with self._families.transaction() as conn:
            member = self._access.current_membership(conn, user_id)
            assert_can_edit(member, "manage family members")
            target = self._member_in_family(conn, member_id, member["family_id"])
            if target["user_id"] == user_id:
                raise ConstraintError("You cannot remove yourself from the family")
            self._audit.record(conn, member["family_id"], user_id, "family.removeMember",
                               "family_member", member_id,
                               old_data={"user_id": target["user_id"], "role": target["role"]})
            self._families.delete_member(conn, member_id)
        logger.info("Member removed id=%s", member_id, extra={"family_id": member["family_id"]})
        return {"success": True}
