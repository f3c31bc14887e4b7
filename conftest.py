# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Test environment: in-memory sqlite, no outbound notifications, a known webhook secret.
Set before any ``coparent`` module reads its settings.
"""

import base64
import os

WEBHOOK_SIGNING_KEY = b"coparent-test-signing-key"

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["NOTIFICATIONS_ENABLED"] = "false"
os.environ["CREATE_SCHEMA"] = "true"
os.environ["WEBHOOK_SECRET"] = "whsec_" + base64.b64encode(WEBHOOK_SIGNING_KEY).decode()
os.environ.setdefault("LOG_LEVEL", "WARNING")
