# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Mirror identity-provider users into the local ``users`` table.
Driven by signed ``user.created`` / ``user.updated`` / ``user.deleted`` webhooks.
"""

import json
from typing import Any, Mapping

from sqlalchemy.exc import IntegrityError

from coparent.core.config import settings
from coparent.core.errors import ConflictError, ValidationError
from coparent.core.logging import get_logger
from coparent.repositories.user_repository import UserRepository
from coparent.services.webhook_security import verify_webhook

logger = get_logger(__name__)


def primary_email(data: dict[str, Any]) -> str:
    primary_id = data.get("primary_email_address_id")
    for entry in data.get("email_addresses") or []:
        if entry.get("id") == primary_id and entry.get("email_address"):
            return entry["email_address"]
    raise ValidationError("No primary email found")


class UserService:
    def __init__(self, user_repo: UserRepository, secret: str = settings.WEBHOOK_SECRET,
                 max_age: int = settings.WEBHOOK_MAX_AGE_SECONDS) -> None:
        self._users = user_repo
        self._secret = secret
        self._max_age = max_age

    @property
    def webhook_enabled(self) -> bool:
        return bool(self._secret)

    def handle_webhook(self, headers: Mapping[str, str], body: bytes) -> dict[str, Any]:
        webhook_id = verify_webhook(headers, body, self._secret, self._max_age)
        try:
            event = json.loads(body)
        except ValueError:
            raise ValidationError("Webhook body is not valid JSON")
        if not isinstance(event, dict):
            raise ValidationError("Webhook body must be a JSON object")
        result = self.apply_event(event.get("type", ""), event.get("data") or {})
        logger.info("Webhook processed id=%s type=%s result=%s",
                    webhook_id, event.get("type"), result["status"])
        return result

    def apply_event(self, event_type: str, data: dict[str, Any]) -> dict[str, Any]:
        if event_type in ("user.created", "user.updated"):
            return self._upsert(data)
        if event_type == "user.deleted":
            return self._delete(data)
        return {"status": "ignored", "type": event_type}

    def _upsert(self, data: dict[str, Any]) -> dict[str, Any]:
        user_id = data.get("id")
        if not user_id:
            raise ValidationError("No user ID provided")
        email = primary_email(data)
        first_name, last_name = data.get("first_name"), data.get("last_name")
        with self._users.transaction() as conn:
            if self._users.get(conn, user_id) is None:
                self._users.create(conn, user_id, email, first_name, last_name)
                status = "created"
            else:
                self._users.update(conn, user_id, email=email,
                                   first_name=first_name, last_name=last_name)
                status = "updated"
        logger.info("User %s id=%s", status, user_id)
        return {"status": status, "user_id": user_id}

    def _delete(self, data: dict[str, Any]) -> dict[str, Any]:
        user_id = data.get("id")
        if not user_id:
            raise ValidationError("No user ID provided")
        try:
            with self._users.transaction() as conn:
                deleted = self._users.delete(conn, user_id)
        except IntegrityError:
            logger.warning("User delete refused id=%s: still referenced by schedule records",
                           user_id)
            raise ConflictError("User is still referenced by schedule records")
        logger.info("User deleted id=%s found=%s", user_id, deleted)
        return {"status": "deleted" if deleted else "missing", "user_id": user_id}
