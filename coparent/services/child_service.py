# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Service: Children of a family. Deleting a child removes its events and swaps."""

from typing import Any, Optional

from coparent.core.errors import NotFoundError
from coparent.core.logging import get_logger
from coparent.repositories.audit_repository import AuditRepository
from coparent.repositories.child_repository import ChildRepository
from coparent.services.access import FamilyAccess, assert_can_edit
from coparent.services.constraints import check_date_of_birth
from coparent.services.dates import parse_date

logger = get_logger(__name__)

CHILD_FIELDS = ("first_name", "last_name", "date_of_birth")


def _snapshot(child: dict[str, Any]) -> dict[str, Any]:
    return {field: child[field] for field in CHILD_FIELDS}


class ChildService:
    def __init__(self, child_repo: ChildRepository, audit_repo: AuditRepository,
                 access: FamilyAccess) -> None:
        self._children = child_repo
        self._audit = audit_repo
        self._access = access

    def create_child(self, user_id: str, first_name: str, last_name: str,
                     date_of_birth: str) -> dict[str, Any]:
        dob = parse_date(date_of_birth)
        check_date_of_birth(dob)
        with self._children.transaction() as conn:
            member = self._access.current_membership(conn, user_id)
            assert_can_edit(member, "manage children")
            child = self._children.create(conn, member["family_id"], first_name, last_name, dob)
            self._audit.record(conn, member["family_id"], user_id, "child.create", "child",
                               child["id"], new_data=_snapshot(child))
        logger.info("Child created id=%s", child["id"],
                    extra={"family_id": member["family_id"]})
        return child

    def list_children(self, user_id: str) -> list[dict[str, Any]]:
        with self._children.connection() as conn:
            member = self._access.current_membership(conn, user_id)
            return self._children.list_for_family(conn, member["family_id"])

    def update_child(self, user_id: str, child_id: str, first_name: Optional[str] = None,
                     last_name: Optional[str] = None,
                     date_of_birth: Optional[str] = None) -> dict[str, Any]:
        values: dict[str, Any] = {}
        if first_name is not None:
            values["first_name"] = first_name
        if last_name is not None:
            values["last_name"] = last_name
        if date_of_birth is not None:
            values["date_of_birth"] = parse_date(date_of_birth)
            check_date_of_birth(values["date_of_birth"])

        with self._children.transaction() as conn:
            member = self._access.current_membership(conn, user_id)
            assert_can_edit(member, "manage children")
            existing = self._children.get(conn, child_id)
            if existing is None or existing["family_id"] != member["family_id"]:
                raise NotFoundError("Child not found")
            if not values:
                return existing
            updated = self._children.update(conn, child_id, **values)
            self._audit.record(conn, member["family_id"], user_id, "child.update", "child",
                               child_id, old_data=_snapshot(existing),
                               new_data=_snapshot(updated))
        logger.info("Child updated id=%s fields=%s", child_id, sorted(values),
                    extra={"family_id": member["family_id"]})
        return updated

    def delete_child(self, user_id: str, child_id: str) -> dict[str, Any]:
        with self._children.transaction() as conn:
            member = self._access.current_membership(conn, user_id)
            assert_can_edit(member, "manage children")
            existing = self._children.get(conn, child_id)
            if existing is None or existing["family_id"] != member["family_id"]:
                raise NotFoundError("Child not found")
            self._audit.record(conn, member["family_id"], user_id, "child.delete", "child",
                               child_id, old_data=_snapshot(existing))
            self._children.delete(conn, child_id)
        logger.info("Child deleted id=%s", child_id, extra={"family_id": member["family_id"]})
        return {"success": True}
