# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Structured JSON logging for the scheduler.

Each record is one JSON line on stdout. Records carry the caller context
(``request_id``, ``user_id``, ``family_id``) taken either from ``extra=`` on the
log call or from the context bound for the current request by the middleware.
"""

import json
import logging
import sys
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Optional

from coparent.core.config import settings

CONTEXT_FIELDS: tuple[str, ...] = ("request_id", "user_id", "family_id")

_log_context: ContextVar[dict[str, str]] = ContextVar("coparent_log_context", default={})


def bind_log_context(**fields: Optional[str]) -> Token:
    """Merge fields into the current context; pass the token to ``reset_log_context``."""
    merged = dict(_log_context.get())
    merged.update({k: v for k, v in fields.items() if k in CONTEXT_FIELDS and v})
    return _log_context.set(merged)


def reset_log_context(token: Token) -> None:
    _log_context.reset(token)


def current_log_context() -> dict[str, str]:
    return dict(_log_context.get())


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with the request context folded in."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": settings.SERVICE_NAME,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = _log_context.get()
        for field in CONTEXT_FIELDS:
            # explicit extra= wins over the bound request context
            value = getattr(record, field, None) or context.get(field)
            if value:
                log_data[field] = value
        if record.exc_info and record.exc_info[1]:
            log_data["error"] = str(record.exc_info[1])
            log_data["error_type"] = type(record.exc_info[1]).__name__
        return json.dumps(log_data, default=str)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger writing JSON lines to stdout at ``LOG_LEVEL``."""
    logger = logging.getLogger(name or settings.SERVICE_NAME)
    if not logger.handlers:
        logger.setLevel(getattr(logging, settings.LOG_LEVEL, logging.INFO))
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
        logger.propagate = False
    return logger
