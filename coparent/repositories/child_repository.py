# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Data-access layer for children."""
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, insert, select, update

from coparent.models.tables import children, utcnow
from coparent.repositories.base import BaseRepository, new_id, row_to_dict


class ChildRepository(BaseRepository):

    def create(self, conn, family_id: str, first_name: str, last_name: str,
               date_of_birth: date) -> Dict[str, Any]:
        now = utcnow()
        record = {
            "id": new_id(), "family_id": family_id,
            "first_name": first_name, "last_name": last_name,
            "date_of_birth": date_of_birth,
            "created_at": now, "updated_at": now,
        }
        conn.execute(insert(children).values(**record))
        return record

    def get(self, conn, child_id: str) -> Optional[Dict[str, Any]]:
        row = conn.execute(select(children).where(children.c.id == child_id)).fetchone()
        return row_to_dict(row)

    def lock(self, conn, child_id: str) -> Optional[Dict[str, Any]]:
        """Row lock that serialises visitation writers for one child."""
        row = conn.execute(
            select(children).where(children.c.id == child_id).with_for_update()
        ).fetchone()
        return row_to_dict(row)

    def list_for_family(self, conn, family_id: str) -> List[Dict[str, Any]]:
        rows = conn.execute(
            select(children)
            .where(children.c.family_id == family_id)
            .order_by(children.c.first_name)
        ).fetchall()
        return [dict(r._mapping) for r in rows]

    def update(self, conn, child_id: str, **values: Any) -> Dict[str, Any]:
        values["updated_at"] = utcnow()
        conn.execute(update(children).where(children.c.id == child_id).values(**values))
        return self.get(conn, child_id)

    def delete(self, conn, child_id: str) -> None:
        conn.execute(delete(children).where(children.c.id == child_id))
