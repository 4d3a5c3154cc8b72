"""Health check endpoint for the MindDump API.

Reports credential readiness for each integration without calling any of
them. ``status`` is ``degraded`` when the analysis provider is missing,
since POST /thoughts can then only serve requests that supply an analysis.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter

from minddump.config import APP_VERSION, CATEGORIZATION_SYSTEM
from minddump.infrastructure.settings import (
    get_master_sheet_id,
    has_llm_credentials,
    has_sheets_credentials,
)
from minddump.sheets.security import security_warnings
from minddump.webhooks.dispatcher import WebhookConfig

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict[str, Any]:
    llm_ready = has_llm_credentials()
    webhook_config = WebhookConfig.from_env()

    warnings: list[str] = []
    if not llm_ready:
        warnings.append("No analysis provider configured - requests must supply an analysis")
    if has_sheets_credentials():
        warnings.extend(security_warnings())
    else:
        warnings.append("Google Sheets credentials not configured")
    if webhook_config.enabled:
        warnings.extend(webhook_config.warnings())

    return {
        "status": "healthy" if llm_ready else "degraded",
        "service": "MindDump API",
        "version": APP_VERSION,
        "timestamp": datetime.now(UTC).isoformat(),
        "categorization": CATEGORIZATION_SYSTEM,
        "llm": {"ready": llm_ready},
        "sheets": {
            "ready": has_sheets_credentials(),
            "masterSheet": get_master_sheet_id() is not None,
        },
        "webhooks": {
            "enabled": webhook_config.enabled,
            "configured": webhook_config.configured_count(),
            "signed": bool(webhook_config.secret),
        },
        "warnings": warnings,
    }
