# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Data-access layer for swap requests."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import insert, or_, select, update

from coparent.models.tables import swap_requests, utcnow, visitation_events
from coparent.repositories.base import BaseRepository, new_id, row_to_dict

_WITH_EVENT = (
    select(
        swap_requests,
        visitation_events.c.child_id.label("event_child_id"),
        visitation_events.c.parent_id.label("event_parent_id"),
        visitation_events.c.start_time.label("event_start_time"),
        visitation_events.c.end_time.label("event_end_time"),
    )
    .select_from(
        swap_requests.join(
            visitation_events, visitation_events.c.id == swap_requests.c.event_id
        )
    )
)


def _with_event_to_dict(row) -> Dict[str, Any]:
    data = dict(row._mapping)
    data["event"] = {
        "id": data["event_id"],
        "child_id": data.pop("event_child_id"),
        "parent_id": data.pop("event_parent_id"),
        "start_time": data.pop("event_start_time"),
        "end_time": data.pop("event_end_time"),
    }
    return data


class SwapRepository(BaseRepository):

    def create(self, conn, family_id: str, event_id: str, requested_by: str,
               requested_to: str, new_start_time: datetime, new_end_time: datetime,
               reason: str) -> Dict[str, Any]:
        now = utcnow()
        record = {
            "id": new_id(), "family_id": family_id, "event_id": event_id,
            "requested_by": requested_by, "requested_to": requested_to,
            "new_start_time": new_start_time, "new_end_time": new_end_time,
            "reason": reason, "status": "pending", "responded_at": None,
            "created_at": now, "updated_at": now,
        }
        conn.execute(insert(swap_requests).values(**record))
        return self.get(conn, record["id"])

    def get(self, conn, swap_id: str) -> Optional[Dict[str, Any]]:
        row = conn.execute(
            select(swap_requests).where(swap_requests.c.id == swap_id)
        ).fetchone()
        return row_to_dict(row)

    def list_for_user(self, conn, family_id: str, user_id: str,
                      status: Optional[str] = None) -> List[Dict[str, Any]]:
        """Swaps the user sent or received, newest first."""
        stmt = _WITH_EVENT.where(
            swap_requests.c.family_id == family_id,
            or_(swap_requests.c.requested_by == user_id,
                swap_requests.c.requested_to == user_id),
        )
        if status:
            stmt = stmt.where(swap_requests.c.status == status)
        rows = conn.execute(stmt.order_by(swap_requests.c.created_at.desc())).fetchall()
        return [_with_event_to_dict(r) for r in rows]

    def set_status(self, conn, swap_id: str, status: str,
                   responded: bool = False) -> Dict[str, Any]:
        now = utcnow()
        values: Dict[str, Any] = {"status": status, "updated_at": now}
        if responded:
            values["responded_at"] = now
        conn.execute(update(swap_requests).where(swap_requests.c.id == swap_id).values(**values))
        return self.get(conn, swap_id)
