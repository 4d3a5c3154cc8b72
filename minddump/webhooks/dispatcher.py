"""Webhook Dispatcher.

Sends a signed, category-routed notification for each processed thought.
The pipeline calls ``spawn``, which schedules delivery as a detached task and
returns a ``WebhookStatus`` immediately; the task updates that status when it
finishes and never raises into the request. Statuses are kept for an hour so
``GET /webhook/status/{thought_id}`` can report the outcome.

Destination URLs come from ``WEBHOOK_<CATEGORY>`` env vars (e.g.
``WEBHOOK_PROJECT_IDEA``). Unset or placeholder URLs mean "not configured" and
the delivery is skipped rather than sent to a placeholder host.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import httpx
from cachetools import TTLCache

from minddump.config import (
    WEBHOOK_MAX_ATTEMPTS,
    WEBHOOK_SENDS_PER_MINUTE,
    WEBHOOK_STATUS_MAX_ENTRIES,
    WEBHOOK_STATUS_TTL_SECONDS,
    WEBHOOK_TIMEOUT_SECONDS,
)
from minddump.infrastructure.limiter import SlidingWindowLimiter
from minddump.infrastructure.retry import AdapterError, RetryPolicy
from minddump.infrastructure.settings import webhooks_enabled
from minddump.observability.logging import get_logger
from minddump.observability.telemetry import counter, log_event
from minddump.thoughts.errors import WebhookDeliveryError
from minddump.thoughts.models import Thought, WebhookStatus, utc_now_iso
from minddump.thoughts.taxonomy import (
    LEGACY_TYPE_TO_CATEGORY,
    Category,
    LegacyType,
    legacy_type_for,
)
from minddump.utils.error_sanitizer import sanitize_error_message
from minddump.webhooks.security import (
    UnsafeWebhookURL,
    build_headers,
    check_destination,
    generate_nonce,
    generate_signature,
)

logger = get_logger(__name__)

PLACEHOLDER_URL_PREFIX = "https://webhook.site/placeholder-"

# Placeholder slugs; ProjectIdea historically used "project"
_PLACEHOLDER_SLUGS = {Category.PROJECT_IDEA: "project"}


def webhook_env_var(category: Category) -> str:
    return f"WEBHOOK_{category.name}"


def placeholder_url(category: Category) -> str:
    return PLACEHOLDER_URL_PREFIX + _PLACEHOLDER_SLUGS.get(category, category.value.lower())


ROUTABLE_CATEGORIES = tuple(c for c in Category if c != Category.UNCATEGORIZED)


@dataclass
class WebhookConfig:
    enabled: bool
    urls: dict[Category, str]
    secret: str | None = None

    @classmethod
    def from_env(cls) -> WebhookConfig:
        urls = {c: os.getenv(webhook_env_var(c)) or placeholder_url(c) for c in ROUTABLE_CATEGORIES}
        return cls(
            enabled=webhooks_enabled(),
            urls=urls,
            secret=os.getenv("WEBHOOK_SECRET") or None,
        )

    def url_for(self, category: Category) -> str | None:
        url = self.urls.get(category)
        if not url or url.startswith(PLACEHOLDER_URL_PREFIX):
            return None
        return url

    def configured_count(self) -> int:
        return sum(1 for c in ROUTABLE_CATEGORIES if self.url_for(c) is not None)

    def warnings(self) -> list[str]:
        warnings = []
        if not self.secret:
            warnings.append("WEBHOOK_SECRET not set - signatures will not be generated")
        elif len(self.secret) < 32:
            warnings.append("WEBHOOK_SECRET should be at least 32 characters long")
        placeholders = len(ROUTABLE_CATEGORIES) - self.configured_count()
        if placeholders:
            warnings.append(f"{placeholders} webhook URLs are not configured")
        return warnings


@dataclass
class WebhookEvent:
    """The subset of a thought that is forwarded to webhooks."""

    category: Category
    legacy_type: LegacyType
    subcategory: str | None = None
    priority: str | None = None
    expanded: str | None = None

    @classmethod
    def from_thought(cls, thought: Thought) -> WebhookEvent:
        level = thought.priority or thought.urgency
        return cls(
            category=thought.category,
            legacy_type=thought.legacy_type,
            subcategory=thought.subcategory,
            priority=level.value if level else None,
            expanded=thought.expanded_text,
        )

    @property
    def route(self) -> Category:
        """Uncategorized thoughts are routed by their legacy type."""
        if self.category != Category.UNCATEGORIZED:
            return self.category
        return LEGACY_TYPE_TO_CATEGORY[self.legacy_type]


def build_payload(raw_text: str, event: WebhookEvent, secret: str | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "input": raw_text.strip()[:10_000],
        "category": event.category.value[:100],
        "type": event.legacy_type.value,
        "subcategory": event.subcategory.strip()[:100] if event.subcategory else None,
        "priority": event.priority.strip()[:20] if event.priority else None,
        "timestamp": utc_now_iso(),
        "expanded": event.expanded.strip()[:50_000] if event.expanded else None,
        "nonce": generate_nonce(),
    }
    if secret:
        payload["signature"] = generate_signature(payload, secret)
    return payload


def _default_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=WEBHOOK_TIMEOUT_SECONDS)


@dataclass
class WebhookDispatcher:
    config_provider: Callable[[], WebhookConfig] = WebhookConfig.from_env
    client_factory: Callable[[], httpx.AsyncClient] = _default_client
    retry_policy: RetryPolicy = field(
        default_factory=lambda: RetryPolicy(stage="webhook", max_attempts=WEBHOOK_MAX_ATTEMPTS)
    )
    limiter: SlidingWindowLimiter = field(
        default_factory=lambda: SlidingWindowLimiter(WEBHOOK_SENDS_PER_MINUTE, 60.0)
    )
    statuses: TTLCache = field(
        default_factory=lambda: TTLCache(
            maxsize=WEBHOOK_STATUS_MAX_ENTRIES, ttl=WEBHOOK_STATUS_TTL_SECONDS
        )
    )
    _tasks: set[asyncio.Task] = field(default_factory=set, init=False, repr=False)

    def enabled(self) -> bool:
        return self.config_provider().enabled

    async def dispatch(self, raw_text: str, event: WebhookEvent) -> str:
        """
        Deliver one event. Returns "sent", or "skipped" when no URL is configured.

        Raises:
            WebhookDeliveryError: rate limited, unsafe URL, or every attempt failed
        """
        config = self.config_provider()
        url = config.url_for(event.route)
        if url is None:
            logger.info("No webhook configured for category: %s", event.route.value)
            counter("webhook.skipped")
            return "skipped"

        try:
            check_destination(url)
        except UnsafeWebhookURL as e:
            counter("webhook.unsafe_url")
            raise WebhookDeliveryError(str(e)) from e

        if not self.limiter.allow("webhook_system"):
            counter("webhook.rate_limited")
            raise WebhookDeliveryError("Webhook rate limit exceeded")

        payload = build_payload(raw_text, event, config.secret)
        await self.send(url, payload)
        counter("webhook.sent")
        log_event("webhook.sent", category=event.category.value, route=event.route.value)
        return "sent"

    async def send(self, url: str, payload: dict[str, Any]) -> None:
        headers = build_headers(payload)

        async def attempt() -> None:
            async with self.client_factory() as client:
                try:
                    response = await client.post(url, json=payload, headers=headers)
                except httpx.TimeoutException as e:
                    raise AdapterError("Webhook request timed out") from e
                except httpx.RequestError as e:
                    raise AdapterError(f"Webhook request failed: {type(e).__name__}") from e
            if response.is_error:
                raise AdapterError(
                    f"HTTP {response.status_code}: {response.reason_phrase}",
                    status_code=response.status_code,
                )

        try:
            await self.retry_policy.execute(attempt)
        except AdapterError as e:
            counter("webhook.failed")
            raise WebhookDeliveryError(str(e)) from e

    def spawn(self, thought_id: str, raw_text: str, event: WebhookEvent) -> WebhookStatus:
        """Schedule delivery without awaiting it; the returned status is updated in place."""
        status = WebhookStatus(state="pending", category=event.category.value)
        self.statuses[thought_id] = status
        task = asyncio.create_task(self._deliver(status, raw_text, event))
        # The loop only keeps weak references to tasks
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return status

    async def _deliver(self, status: WebhookStatus, raw_text: str, event: WebhookEvent) -> None:
        try:
            state = await self.dispatch(raw_text, event)
        except WebhookDeliveryError as e:
            logger.warning("Webhook delivery failed for %s: %s", event.category.value, e)
            status.mark("failed", sanitize_error_message(str(e)))
        except Exception as e:
            logger.exception("Background webhook processing failed")
            status.mark("failed", sanitize_error_message(str(e)))
        else:
            status.mark(state)

    def get_status(self, thought_id: str) -> WebhookStatus | None:
        return self.statuses.get(thought_id)

    async def drain(self) -> None:
        """Wait for in-flight deliveries; used at shutdown and in tests."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


def disabled_status() -> WebhookStatus:
    return WebhookStatus(state="disabled")


def legacy_event(
    category: Category | None, legacy: LegacyType | None, **fields: Any
) -> WebhookEvent:
    """Event for a payload that may only carry a legacy type (inbound webhooks)."""
    if category is None:
        category = LEGACY_TYPE_TO_CATEGORY[legacy] if legacy else Category.UNCATEGORIZED
    return WebhookEvent(
        category=category,
        legacy_type=legacy or legacy_type_for(category),
        **fields,
    )
