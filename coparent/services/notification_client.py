# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""HTTP client to dispatch notifications. Delivery failures are logged, never raised."""
from typing import Optional

import httpx

from coparent.core.config import settings
from coparent.core.logging import get_logger
from coparent.metrics.prometheus import NOTIFICATIONS_SENT

logger = get_logger(__name__)


class NotificationClient:
    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 enabled: Optional[bool] = None):
        self._base_url = base_url or settings.NOTIFICATION_SERVICE_URL
        self._timeout = timeout if timeout is not None else settings.NOTIFICATION_TIMEOUT
        self._enabled = settings.NOTIFICATIONS_ENABLED if enabled is None else enabled

    def notify(self, recipient: str, subject: str, message: str,
               family_id: Optional[str] = None, channel: str = "email") -> bool:
        if not self._enabled or not recipient:
            return False
        try:
            with httpx.Client(timeout=self._timeout) as client:
                response = client.post(
                    f"{self._base_url}/api/v1/notify",
                    json={
                        "channel": channel,
                        "recipient": recipient,
                        "subject": subject,
                        "message": message,
                        "family_id": family_id,
                    },
                )
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Notification to %s failed: %s", recipient, exc)
            return False
        NOTIFICATIONS_SENT.labels(channel=channel).inc()
        return True

    # ── Message helpers ──

    def swap_requested(self, recipient: str, requester_name: str, family_id: str) -> bool:
        return self.notify(
            recipient,
            "New schedule swap request",
            f"{requester_name} asked to swap a visitation. Review it in your swap requests.",
            family_id=family_id,
        )

    def swap_resolved(self, recipient: str, status: str, family_id: str) -> bool:
        return self.notify(
            recipient,
            f"Swap request {status}",
            f"Your schedule swap request was {status}.",
            family_id=family_id,
        )

    def schedule_changed(self, recipient: str, summary: str, family_id: str) -> bool:
        return self.notify(recipient, "Schedule updated", summary, family_id=family_id)
