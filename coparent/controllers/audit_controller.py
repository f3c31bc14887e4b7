# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Read-only audit trail for the caller's family.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from coparent.core.dependencies import get_audit_service, get_current_user_id
from coparent.schemas.family import AuditEntryResponse
from coparent.services.audit_service import AuditService

router = APIRouter(prefix="/api/v1", tags=["Audit"])


@router.get("/audit", response_model=list[AuditEntryResponse])
def list_audit_entries(
    action: Optional[str] = Query(default=None, description="e.g. rotation.create"),
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    user_id: str = Depends(get_current_user_id),
    service: AuditService = Depends(get_audit_service),
):
    """Newest first."""
    return service.list_entries(user_id, action, limit)
