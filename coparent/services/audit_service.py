# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Service: Read side of the family audit trail."""

from typing import Any, Optional

from coparent.core.config import settings
from coparent.repositories.audit_repository import AuditRepository
from coparent.services.access import FamilyAccess

MAX_AUDIT_LIMIT = 500


class AuditService:
    def __init__(self, audit_repo: AuditRepository, access: FamilyAccess) -> None:
        self._audit = audit_repo
        self._access = access

    def list_entries(self, user_id: str, action: Optional[str] = None,
                     limit: Optional[int] = None) -> list[dict[str, Any]]:
        limit = min(limit or settings.DEFAULT_AUDIT_LIMIT, MAX_AUDIT_LIMIT)
        with self._audit.connection() as conn:
            member = self._access.current_membership(conn, user_id)
            return self._audit.list_for_family(conn, member["family_id"], action, limit)
