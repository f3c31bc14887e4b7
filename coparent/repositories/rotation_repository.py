# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Data-access layer for rotation patterns. Rows are never deleted, only deactivated."""
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import insert, select, update

from coparent.models.tables import families, rotation_patterns, users, utcnow
from coparent.repositories.base import BaseRepository, new_id, row_to_dict

_primary = users.alias("primary_parent")
_secondary = users.alias("secondary_parent")

_ENRICHED = (
    select(
        rotation_patterns,
        families.c.name.label("family_name"),
        _primary.c.first_name.label("primary_first_name"),
        _primary.c.last_name.label("primary_last_name"),
        _primary.c.email.label("primary_email"),
        _secondary.c.first_name.label("secondary_first_name"),
        _secondary.c.last_name.label("secondary_last_name"),
        _secondary.c.email.label("secondary_email"),
    )
    .select_from(
        rotation_patterns
        .join(families, families.c.id == rotation_patterns.c.family_id)
        .outerjoin(_primary, _primary.c.id == rotation_patterns.c.primary_parent_id)
        .outerjoin(_secondary, _secondary.c.id == rotation_patterns.c.secondary_parent_id)
    )
)


def _enriched_to_dict(row) -> Dict[str, Any]:
    data = dict(row._mapping)
    for side in ("primary", "secondary"):
        data[f"{side}_parent"] = {
            "id": data[f"{side}_parent_id"],
            "first_name": data.pop(f"{side}_first_name"),
            "last_name": data.pop(f"{side}_last_name"),
            "email": data.pop(f"{side}_email"),
        }
    data["family"] = {"id": data["family_id"], "name": data.pop("family_name")}
    return data


class RotationRepository(BaseRepository):

    def create(self, conn, family_id: str, name: str, pattern_type: str,
               start_date: date, end_date: Optional[date],
               primary_parent_id: str, secondary_parent_id: str,
               created_by: str) -> Dict[str, Any]:
        now = utcnow()
        record = {
            "id": new_id(), "family_id": family_id, "name": name,
            "pattern_type": pattern_type, "start_date": start_date, "end_date": end_date,
            "primary_parent_id": primary_parent_id,
            "secondary_parent_id": secondary_parent_id,
            "is_active": True, "created_by": created_by,
            "created_at": now, "updated_at": now,
        }
        conn.execute(insert(rotation_patterns).values(**record))
        return record

    def get(self, conn, rotation_id: str) -> Optional[Dict[str, Any]]:
        row = conn.execute(
            select(rotation_patterns).where(rotation_patterns.c.id == rotation_id)
        ).fetchone()
        return row_to_dict(row)

    def get_enriched(self, conn, rotation_id: str) -> Optional[Dict[str, Any]]:
        row = conn.execute(
            _ENRICHED.where(rotation_patterns.c.id == rotation_id)
        ).fetchone()
        return _enriched_to_dict(row) if row else None

    def list_active(self, conn, family_id: str) -> List[Dict[str, Any]]:
        rows = conn.execute(
            select(rotation_patterns).where(
                rotation_patterns.c.family_id == family_id,
                rotation_patterns.c.is_active.is_(True),
            )
        ).fetchall()
        return [dict(r._mapping) for r in rows]

    def list_active_enriched(self, conn, family_ids: List[str]) -> List[Dict[str, Any]]:
        if not family_ids:
            return []
        rows = conn.execute(
            _ENRICHED.where(
                rotation_patterns.c.family_id.in_(family_ids),
                rotation_patterns.c.is_active.is_(True),
            ).order_by(rotation_patterns.c.start_date)
        ).fetchall()
        return [_enriched_to_dict(r) for r in rows]

    def deactivate(self, conn, rotation_id: str) -> Dict[str, Any]:
        conn.execute(
            update(rotation_patterns)
            .where(rotation_patterns.c.id == rotation_id)
            .values(is_active=False, updated_at=utcnow())
        )
        return self.get(conn, rotation_id)
