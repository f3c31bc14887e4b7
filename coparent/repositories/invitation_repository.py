# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Data-access layer for family invitations."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import insert, select, update

from coparent.models.tables import families, family_invitations, users, utcnow
from coparent.repositories.base import BaseRepository, new_id, row_to_dict

_inviter = users.alias("inviter")
_acceptor = users.alias("acceptor")

_ENRICHED = (
    select(
        family_invitations,
        families.c.name.label("family_name"),
        _inviter.c.email.label("inviter_email"),
        _inviter.c.first_name.label("inviter_first_name"),
        _inviter.c.last_name.label("inviter_last_name"),
        _acceptor.c.email.label("acceptor_email"),
        _acceptor.c.first_name.label("acceptor_first_name"),
        _acceptor.c.last_name.label("acceptor_last_name"),
    )
    .select_from(
        family_invitations
        .join(families, families.c.id == family_invitations.c.family_id)
        .outerjoin(_inviter, _inviter.c.id == family_invitations.c.invited_by)
        .outerjoin(_acceptor, _acceptor.c.id == family_invitations.c.accepted_by)
    )
)


def _person(data: Dict[str, Any], prefix: str) -> Optional[Dict[str, Any]]:
    person = {
        "email": data.pop(f"{prefix}_email"),
        "first_name": data.pop(f"{prefix}_first_name"),
        "last_name": data.pop(f"{prefix}_last_name"),
    }
    return person if person["email"] is not None else None


def _enriched_to_dict(row) -> Dict[str, Any]:
    data = dict(row._mapping)
    data["inviter"] = _person(data, "inviter")
    data["acceptor"] = _person(data, "acceptor")
    return data


class InvitationRepository(BaseRepository):

    def create(self, conn, family_id: str, invited_by: str, email: Optional[str],
               token: str, role: str, can_edit_schedule: bool,
               expires_at: datetime) -> Dict[str, Any]:
        record = {
            "id": new_id(), "family_id": family_id, "invited_by": invited_by,
            "email": email, "token": token, "role": role,
            "can_edit_schedule": can_edit_schedule, "status": "pending",
            "expires_at": expires_at, "accepted_by": None, "accepted_at": None,
            "created_at": utcnow(),
        }
        conn.execute(insert(family_invitations).values(**record))
        return record

    def get(self, conn, invitation_id: str) -> Optional[Dict[str, Any]]:
        row = conn.execute(
            select(family_invitations).where(family_invitations.c.id == invitation_id)
        ).fetchone()
        return row_to_dict(row)

    def get_by_token(self, conn, token: str) -> Optional[Dict[str, Any]]:
        row = conn.execute(
            _ENRICHED.where(family_invitations.c.token == token)
        ).fetchone()
        return _enriched_to_dict(row) if row else None

    def find_pending_for_email(self, conn, family_id: str,
                               email: str) -> Optional[Dict[str, Any]]:
        row = conn.execute(
            select(family_invitations).where(
                family_invitations.c.family_id == family_id,
                family_invitations.c.email == email,
                family_invitations.c.status == "pending",
            )
        ).fetchone()
        return row_to_dict(row)

    def list_for_family(self, conn, family_id: str,
                        status: Optional[str] = None) -> List[Dict[str, Any]]:
        stmt = _ENRICHED.where(family_invitations.c.family_id == family_id)
        if status:
            stmt = stmt.where(family_invitations.c.status == status)
        rows = conn.execute(stmt.order_by(family_invitations.c.created_at.desc())).fetchall()
        return [_enriched_to_dict(r) for r in rows]

    def update(self, conn, invitation_id: str, **values: Any) -> Dict[str, Any]:
        conn.execute(
            update(family_invitations)
            .where(family_invitations.c.id == invitation_id)
            .values(**values)
        )
        return self.get(conn, invitation_id)
