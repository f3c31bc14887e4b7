# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Identity-provider webhooks that keep the local users table in sync.
"""

from fastapi import APIRouter, Depends, HTTPException, Request

from coparent.core.dependencies import get_user_service
from coparent.core.logging import get_logger
from coparent.services.user_service import UserService

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Webhooks"])


@router.post("/webhooks/users")
async def user_webhook(
    request: Request,
    service: UserService = Depends(get_user_service),
):
    """Verify the signature over the raw body, then upsert or delete the user."""
    if not service.webhook_enabled:
        logger.error("Webhook received but WEBHOOK_SECRET is not configured")
        raise HTTPException(status_code=503, detail="Webhook secret not configured")
    body = await request.body()
    return service.handle_webhook(request.headers, body)
