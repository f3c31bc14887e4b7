# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Signature verification for identity-provider webhooks (Standard Webhooks / Svix).

Signed message is ``{id}.{timestamp}.{raw body}``; the signature header holds one
or more space separated ``v1,<base64 HMAC-SHA256>`` entries.
"""

import base64
import binascii
import hashlib
import hmac
import time
from typing import Mapping, Optional

from coparent.core.errors import AuthenticationError
from coparent.core.logging import get_logger

logger = get_logger(__name__)

HEADER_PREFIXES = ("webhook", "svix")


def extract_signing_key(secret: str) -> bytes:
    """``whsec_<base64>`` secrets are base64-decoded; anything else is used as raw bytes."""
    if secret.startswith("whsec_"):
        try:
            return base64.b64decode(secret[len("whsec_"):], validate=True)
        except binascii.Error:
            logger.warning("Webhook secret has whsec_ prefix but is not valid base64")
    return secret.encode("utf-8")


def compute_signature(key: bytes, webhook_id: str, timestamp: str, body: bytes) -> str:
    message = b".".join([webhook_id.encode("utf-8"), timestamp.encode("utf-8"), body])
    return base64.b64encode(hmac.new(key, message, hashlib.sha256).digest()).decode("utf-8")


def verify_timestamp(timestamp: str, max_age: int, now: Optional[float] = None) -> bool:
    try:
        sent = int(timestamp)
    except (TypeError, ValueError):
        return False
    current = int(now if now is not None else time.time())
    return abs(current - sent) <= max_age


def _header(headers: Mapping[str, str], name: str) -> str:
    for prefix in HEADER_PREFIXES:
        value = headers.get(f"{prefix}-{name}")
        if value:
            return value
    return ""


def verify_webhook(headers: Mapping[str, str], body: bytes, secret: str, max_age: int,
                   now: Optional[float] = None) -> str:
    """Return the webhook id when the request is authentic; raise AuthenticationError otherwise."""
    webhook_id = _header(headers, "id")
    timestamp = _header(headers, "timestamp")
    signature_header = _header(headers, "signature")
    if not (webhook_id and timestamp and signature_header):
        raise AuthenticationError("Missing webhook signature headers")
    if not verify_timestamp(timestamp, max_age, now):
        logger.warning("Webhook %s rejected: timestamp outside replay window", webhook_id)
        raise AuthenticationError("Webhook timestamp expired or invalid")

    expected = compute_signature(extract_signing_key(secret), webhook_id, timestamp, body)
    for entry in signature_header.split():
        version, _, signature = entry.partition(",")
        if version == "v1" and hmac.compare_digest(expected, signature):
            return webhook_id

    logger.warning("Webhook %s rejected: signature mismatch", webhook_id)
    raise AuthenticationError("Invalid webhook signature")
