# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Data-access layer for users mirrored from the identity provider."""
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import delete, insert, select, update

from coparent.models.tables import users, utcnow
from coparent.repositories.base import BaseRepository, row_to_dict


class UserRepository(BaseRepository):

    def get(self, conn, user_id: str) -> Optional[Dict[str, Any]]:
        row = conn.execute(select(users).where(users.c.id == user_id)).fetchone()
        return row_to_dict(row)

    def get_by_email(self, conn, email: str) -> Optional[Dict[str, Any]]:
        row = conn.execute(select(users).where(users.c.email == email)).fetchone()
        return row_to_dict(row)

    def get_many(self, conn, user_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        ids = list(set(user_ids))
        if not ids:
            return {}
        rows = conn.execute(select(users).where(users.c.id.in_(ids))).fetchall()
        return {row.id: dict(row._mapping) for row in rows}

    def list_all(self, conn) -> List[Dict[str, Any]]:
        rows = conn.execute(select(users).order_by(users.c.created_at)).fetchall()
        return [dict(r._mapping) for r in rows]

    def create(self, conn, user_id: str, email: str,
               first_name: Optional[str] = None,
               last_name: Optional[str] = None) -> Dict[str, Any]:
        now = utcnow()
        record = {
            "id": user_id, "email": email,
            "first_name": first_name, "last_name": last_name,
            "created_at": now, "updated_at": now,
        }
        conn.execute(insert(users).values(**record))
        return record

    def update(self, conn, user_id: str, **values: Any) -> Optional[Dict[str, Any]]:
        values["updated_at"] = utcnow()
        result = conn.execute(update(users).where(users.c.id == user_id).values(**values))
        if result.rowcount == 0:
            return None
        return self.get(conn, user_id)

    def delete(self, conn, user_id: str) -> bool:
        result = conn.execute(delete(users).where(users.c.id == user_id))
        return result.rowcount > 0
