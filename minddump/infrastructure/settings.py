"""
Application-wide settings and environment configuration
"""

from __future__ import annotations

import os

# Environment
ENV = os.getenv("MINDDUMP_ENV", "development")

# API Configuration
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Google Cloud / Gemini (analysis provider)
GOOGLE_CLOUD_PROJECT = os.getenv("GOOGLE_CLOUD_PROJECT")
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash-001")
GEMINI_LOCATION = os.getenv("GEMINI_LOCATION", "us-central1")
GEMINI_MAX_TOKENS = int(os.getenv("GEMINI_MAX_TOKENS", "4000"))
GEMINI_TEMPERATURE = float(os.getenv("GEMINI_TEMPERATURE", "0.1"))

# Google Sheets
SHEETS_SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
MASTER_SHEET_PLACEHOLDER = "your-master-sheet-id-here"
MASTER_SHEET_RANGE = "Master Log!A:F"
MASTER_SHEET_SECURE_RANGE = "Master Log!A:H"

# Webhooks
WEBHOOK_USER_AGENT = "MindDumpApp-Webhook/2.0"
WEBHOOK_SOURCE = "minddumpapp"


def is_production() -> bool:
    """Check if running in production"""
    return os.getenv("MINDDUMP_ENV", ENV) == "production"


def is_development() -> bool:
    """Check if running in development"""
    return os.getenv("MINDDUMP_ENV", ENV) == "development"


# Credential presence checks read the environment on every call so that
# values loaded by dotenv after import (or patched in tests) are honoured.


def has_llm_credentials() -> bool:
    """True when either a Gemini API key or a Vertex AI project is configured."""
    return bool(os.getenv("GOOGLE_API_KEY") or os.getenv("GOOGLE_CLOUD_PROJECT"))


def has_sheets_credentials() -> bool:
    """True when the service-account email and private key are both set."""
    return bool(os.getenv("GOOGLE_SHEETS_CLIENT_EMAIL") and os.getenv("GOOGLE_SHEETS_PRIVATE_KEY"))


def get_master_sheet_id() -> str | None:
    """Return the master log spreadsheet id, or None when unset/placeholder."""
    sheet_id = os.getenv("MASTER_SHEET_ID", "").strip()
    if not sheet_id or sheet_id == MASTER_SHEET_PLACEHOLDER:
        return None
    return sheet_id


def webhooks_enabled() -> bool:
    """Webhooks are on unless ENABLE_WEBHOOKS is explicitly "false"."""
    return os.getenv("ENABLE_WEBHOOKS", "true").strip().lower() != "false"


def demo_storage_enabled() -> bool:
    return os.getenv("MINDDUMP_DEMO_STORAGE", "false").lower() == "true"
