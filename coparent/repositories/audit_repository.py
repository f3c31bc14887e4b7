# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Append-only audit trail. Written in the same transaction as the change it records."""
from typing import Any, Dict, List, Optional

from sqlalchemy import insert, select

from coparent.models.tables import audit_logs, utcnow
from coparent.repositories.base import BaseRepository, jsonable, new_id


class AuditRepository(BaseRepository):

    def record(self, conn, family_id: str, user_id: str, action: str,
               entity_type: str, entity_id: str,
               old_data: Optional[Dict[str, Any]] = None,
               new_data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        record = {
            "id": new_id(), "family_id": family_id, "user_id": user_id,
            "action": action, "entity_type": entity_type, "entity_id": entity_id,
            "old_data": jsonable(old_data) if old_data is not None else None,
            "new_data": jsonable(new_data) if new_data is not None else None,
            "created_at": utcnow(),
        }
        conn.execute(insert(audit_logs).values(**record))
        return record

    def list_for_family(self, conn, family_id: str, action: Optional[str] = None,
                        limit: int = 100) -> List[Dict[str, Any]]:
        stmt = select(audit_logs).where(audit_logs.c.family_id == family_id)
        if action:
            stmt = stmt.where(audit_logs.c.action == action)
        rows = conn.execute(
            stmt.order_by(audit_logs.c.created_at.desc()).limit(limit)
        ).fetchall()
        return [dict(r._mapping) for r in rows]
