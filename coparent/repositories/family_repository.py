# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Data-access layer for families and their members."""
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func, insert, select, update

from coparent.models.tables import families, family_members, users, utcnow
from coparent.repositories.base import BaseRepository, new_id, row_to_dict

MEMBER_COLS = (
    family_members.c.id,
    family_members.c.family_id,
    family_members.c.user_id,
    family_members.c.role,
    family_members.c.can_edit_schedule,
    family_members.c.created_at,
    family_members.c.updated_at,
    users.c.email,
    users.c.first_name,
    users.c.last_name,
)


class FamilyRepository(BaseRepository):

    # ── Families ───────────────────────────────────────────────────────

    def create_family(self, conn, name: str) -> Dict[str, Any]:
        now = utcnow()
        record = {"id": new_id(), "name": name, "created_at": now, "updated_at": now}
        conn.execute(insert(families).values(**record))
        return record

    def get_family(self, conn, family_id: str) -> Optional[Dict[str, Any]]:
        row = conn.execute(select(families).where(families.c.id == family_id)).fetchone()
        return row_to_dict(row)

    def lock_family(self, conn, family_id: str) -> Optional[Dict[str, Any]]:
        """Row lock that serialises rotation writers for one family."""
        row = conn.execute(
            select(families).where(families.c.id == family_id).with_for_update()
        ).fetchone()
        return row_to_dict(row)

    # ── Members ────────────────────────────────────────────────────────

    def add_member(self, conn, family_id: str, user_id: str, role: str,
                   can_edit_schedule: bool) -> Dict[str, Any]:
        now = utcnow()
        record = {
            "id": new_id(), "family_id": family_id, "user_id": user_id,
            "role": role, "can_edit_schedule": can_edit_schedule,
            "created_at": now, "updated_at": now,
        }
        conn.execute(insert(family_members).values(**record))
        return record

    def get_member(self, conn, member_id: str) -> Optional[Dict[str, Any]]:
        row = conn.execute(
            select(family_members).where(family_members.c.id == member_id)
        ).fetchone()
        return row_to_dict(row)

    def find_membership(self, conn, family_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        row = conn.execute(
            select(family_members).where(
                family_members.c.family_id == family_id,
                family_members.c.user_id == user_id,
            )
        ).fetchone()
        return row_to_dict(row)

    def first_membership(self, conn, user_id: str) -> Optional[Dict[str, Any]]:
        """Oldest membership of a user; the family a request acts on."""
        row = conn.execute(
            select(family_members)
            .where(family_members.c.user_id == user_id)
            .order_by(family_members.c.created_at, family_members.c.id)
            .limit(1)
        ).fetchone()
        return row_to_dict(row)

    def memberships_for_user(self, conn, user_id: str) -> List[Dict[str, Any]]:
        rows = conn.execute(
            select(family_members).where(family_members.c.user_id == user_id)
        ).fetchall()
        return [dict(r._mapping) for r in rows]

    def list_members(self, conn, family_id: str) -> List[Dict[str, Any]]:
        rows = conn.execute(
            select(*MEMBER_COLS)
            .select_from(family_members.join(users, users.c.id == family_members.c.user_id))
            .where(family_members.c.family_id == family_id)
            .order_by(family_members.c.created_at)
        ).fetchall()
        return [dict(r._mapping) for r in rows]

    def update_member(self, conn, member_id: str, role: str,
                      can_edit_schedule: bool) -> Dict[str, Any]:
        conn.execute(
            update(family_members)
            .where(family_members.c.id == member_id)
            .values(role=role, can_edit_schedule=can_edit_schedule, updated_at=utcnow())
        )
        return self.get_member(conn, member_id)

    def delete_member(self, conn, member_id: str) -> None:
        conn.execute(delete(family_members).where(family_members.c.id == member_id))

    def count_families(self, conn) -> int:
        return conn.execute(select(func.count()).select_from(families)).scalar_one()
