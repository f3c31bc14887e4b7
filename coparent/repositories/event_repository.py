# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Data-access layer for persisted visitation events."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, insert, select, update

from coparent.models.tables import children, users, utcnow, visitation_events
from coparent.repositories.base import BaseRepository, new_id, row_to_dict

_ENRICHED = (
    select(
        visitation_events,
        children.c.first_name.label("child_first_name"),
        children.c.last_name.label("child_last_name"),
        users.c.first_name.label("parent_first_name"),
        users.c.last_name.label("parent_last_name"),
    )
    .select_from(
        visitation_events
        .join(children, children.c.id == visitation_events.c.child_id)
        .outerjoin(users, users.c.id == visitation_events.c.parent_id)
    )
)


def _enriched_to_dict(row) -> Dict[str, Any]:
    data = dict(row._mapping)
    data["child"] = {
        "id": data["child_id"],
        "first_name": data.pop("child_first_name"),
        "last_name": data.pop("child_last_name"),
    }
    data["parent"] = {
        "id": data["parent_id"],
        "first_name": data.pop("parent_first_name"),
        "last_name": data.pop("parent_last_name"),
    }
    return data


class EventRepository(BaseRepository):

    def create(self, conn, family_id: str, child_id: str, parent_id: str,
               start_time: datetime, end_time: datetime, created_by: str,
               is_recurring: bool = False,
               recurrence_rule: Optional[Dict[str, Any]] = None,
               is_holiday_exception: bool = False,
               notes: Optional[str] = None) -> Dict[str, Any]:
        now = utcnow()
        record = {
            "id": new_id(), "family_id": family_id, "child_id": child_id,
            "parent_id": parent_id, "start_time": start_time, "end_time": end_time,
            "is_recurring": is_recurring, "recurrence_rule": recurrence_rule,
            "is_holiday_exception": is_holiday_exception, "notes": notes,
            "created_by": created_by, "created_at": now, "updated_at": now,
        }
        conn.execute(insert(visitation_events).values(**record))
        return self.get(conn, record["id"])

    def get(self, conn, event_id: str) -> Optional[Dict[str, Any]]:
        row = conn.execute(
            select(visitation_events).where(visitation_events.c.id == event_id)
        ).fetchone()
        return row_to_dict(row)

    def find_overlapping(self, conn, child_id: str, start_time: datetime,
                         end_time: datetime,
                         exclude_event_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Events of one child whose stored interval intersects ``[start_time, end_time)``."""
        stmt = select(visitation_events).where(
            visitation_events.c.child_id == child_id,
            visitation_events.c.start_time < end_time,
            visitation_events.c.end_time > start_time,
        )
        if exclude_event_id is not None:
            stmt = stmt.where(visitation_events.c.id != exclude_event_id)
        rows = conn.execute(stmt.order_by(visitation_events.c.start_time)).fetchall()
        return [dict(r._mapping) for r in rows]

    def list_in_window(self, conn, family_id: str, start: datetime, end: datetime,
                       child_id: Optional[str] = None) -> List[Dict[str, Any]]:
        stmt = _ENRICHED.where(
            visitation_events.c.family_id == family_id,
            visitation_events.c.start_time < end,
            visitation_events.c.end_time > start,
        )
        if child_id:
            stmt = stmt.where(visitation_events.c.child_id == child_id)
        rows = conn.execute(stmt.order_by(visitation_events.c.start_time)).fetchall()
        return [_enriched_to_dict(r) for r in rows]

    def update(self, conn, event_id: str, **values: Any) -> Dict[str, Any]:
        values["updated_at"] = utcnow()
        conn.execute(
            update(visitation_events)
            .where(visitation_events.c.id == event_id)
            .values(**values)
        )
        return self.get(conn, event_id)

    def delete(self, conn, event_id: str) -> None:
        conn.execute(delete(visitation_events).where(visitation_events.c.id == event_id))
