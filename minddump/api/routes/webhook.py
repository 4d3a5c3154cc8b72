"""
Inbound webhook endpoint and webhook status lookups.

``POST /webhook`` accepts a thought that was categorized elsewhere and routes
it through the same dispatcher the pipeline uses. When WEBHOOK_SECRET is set
the payload must carry a fresh timestamp and a valid signature, either in the
body or in the ``X-Webhook-Signature`` header.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field

from minddump.observability.logging import get_logger
from minddump.observability.telemetry import counter
from minddump.thoughts.errors import (
    InvalidSignature,
    InvalidTimestamp,
    MissingSignature,
    NotFound,
    WebhookDeliveryError,
    WebhookProcessingFailed,
)
from minddump.thoughts.models import utc_now_iso
from minddump.thoughts.service import ThoughtPipeline, get_pipeline
from minddump.thoughts.taxonomy import find_category, parse_legacy_type
from minddump.utils.error_sanitizer import sanitize_error_message
from minddump.webhooks.dispatcher import ROUTABLE_CATEGORIES, legacy_event
from minddump.webhooks.security import validate_timestamp, verify_signature

router = APIRouter(prefix="/webhook", tags=["webhooks"])
logger = get_logger(__name__)


class InboundWebhook(BaseModel):
    model_config = ConfigDict(extra="allow")

    input: str = Field(min_length=1, max_length=10_000)
    category: str | None = Field(default=None, max_length=100)
    type: str | None = None
    subcategory: str | None = Field(default=None, max_length=100)
    priority: str | None = Field(default=None, max_length=20)
    timestamp: str | None = None
    expanded: str | None = Field(default=None, max_length=50_000)
    nonce: str | None = None
    signature: str | None = None


def _check_signature(payload: InboundWebhook, header_signature: str | None, secret: str) -> None:
    if not payload.timestamp or not validate_timestamp(payload.timestamp):
        counter("webhook.inbound.invalid_timestamp")
        raise InvalidTimestamp("Webhook timestamp is missing or outside the allowed window")

    signature = payload.signature or header_signature
    if not signature:
        counter("webhook.inbound.missing_signature")
        raise MissingSignature("Webhook signature required")

    if not verify_signature(payload.model_dump(), signature, secret):
        counter("webhook.inbound.invalid_signature")
        raise InvalidSignature("Invalid webhook signature")


@router.post("")
async def receive_webhook(
    payload: InboundWebhook,
    request: Request,
    pipeline: ThoughtPipeline = Depends(get_pipeline),
) -> dict[str, Any]:
    received_at = utc_now_iso()
    dispatcher = pipeline.webhooks
    config = dispatcher.config_provider()

    if config.secret:
        _check_signature(payload, request.headers.get("X-Webhook-Signature"), config.secret)

    info = find_category(payload.category)
    event = legacy_event(
        info.category if info else None,
        parse_legacy_type(payload.type),
        subcategory=payload.subcategory,
        priority=payload.priority,
        expanded=payload.expanded,
    )

    try:
        state = await dispatcher.dispatch(payload.input, event)
    except WebhookDeliveryError as e:
        logger.warning("Inbound webhook delivery failed: %s", e)
        raise WebhookProcessingFailed(
            "Failed to process webhook",
            details={"originalError": sanitize_error_message(str(e))},
        ) from e

    counter("webhook.inbound.processed")
    return {
        "success": True,
        "message": "Webhook processed successfully",
        "category": event.category.value,
        "state": state,
        "timestamp": payload.timestamp,
        "receivedAt": received_at,
    }


@router.get("")
async def webhook_info(pipeline: ThoughtPipeline = Depends(get_pipeline)) -> dict[str, Any]:
    config = pipeline.webhooks.config_provider()
    return {
        "enabled": config.enabled,
        "signatureRequired": bool(config.secret),
        "configured": {c.value: config.url_for(c) is not None for c in ROUTABLE_CATEGORIES},
        "warnings": config.warnings(),
    }


@router.get("/status/{thought_id}")
async def webhook_status(
    thought_id: str, pipeline: ThoughtPipeline = Depends(get_pipeline)
) -> dict[str, Any]:
    status = pipeline.webhooks.get_status(thought_id)
    if status is None:
        raise NotFound(f"No webhook status for thought {thought_id}")
    return {"thoughtId": thought_id, **status.model_dump(mode="json", by_alias=True)}
