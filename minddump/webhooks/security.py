"""Signing and transport safety for outbound and inbound webhooks.

Signatures are HMAC-SHA256 over the canonical JSON of the payload (sorted
keys, compact separators, ``signature`` and null fields excluded) and are
rendered as ``sha256=<hex>``. The same canonical form is used to verify
payloads arriving at ``POST /webhook``.
"""

from __future__ import annotations

import hashlib
import hmac
import ipaddress
import json
import re
import secrets
from datetime import UTC, datetime
from typing import Any
from urllib.parse import urlparse

from minddump.config import WEBHOOK_TIMESTAMP_TOLERANCE_SECONDS
from minddump.infrastructure.settings import WEBHOOK_SOURCE, WEBHOOK_USER_AGENT

ALLOWED_CUSTOM_HEADERS = frozenset(
    {
        "x-webhook-source",
        "x-webhook-category",
        "x-webhook-priority",
        "x-webhook-timestamp",
        "x-webhook-signature",
    }
)

_HEADER_UNSAFE = re.compile(r"[\r\n\t]")

# 172.16.0.0/12 and friends; literal IPs only, hostnames are not resolved
_PRIVATE_NETWORKS = (
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("127.0.0.0/8"),
)


class UnsafeWebhookURL(ValueError):
    """The destination URL is malformed, non-HTTP, or points at a private host."""


def canonical_payload(payload: dict[str, Any]) -> str:
    body = {k: v for k, v in payload.items() if k != "signature" and v is not None}
    return json.dumps(body, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def generate_signature(payload: dict[str, Any], secret: str) -> str:
    digest = hmac.new(
        secret.encode("utf-8"), canonical_payload(payload).encode("utf-8"), hashlib.sha256
    ).hexdigest()
    return f"sha256={digest}"


def verify_signature(payload: dict[str, Any], signature: str, secret: str) -> bool:
    return hmac.compare_digest(signature, generate_signature(payload, secret))


def generate_nonce() -> str:
    return secrets.token_hex(16)


def validate_timestamp(
    timestamp: str, tolerance_seconds: int = WEBHOOK_TIMESTAMP_TOLERANCE_SECONDS
) -> bool:
    """True when ``timestamp`` (ISO 8601) is within the tolerance of now, either direction."""
    try:
        sent_at = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return False
    if sent_at.tzinfo is None:
        sent_at = sent_at.replace(tzinfo=UTC)
    return abs((datetime.now(UTC) - sent_at).total_seconds()) <= tolerance_seconds


def sanitize_headers(headers: dict[str, str]) -> dict[str, str]:
    """Fixed base headers plus allow-listed custom headers with control chars stripped."""
    safe = {
        "Content-Type": "application/json",
        "User-Agent": WEBHOOK_USER_AGENT,
        "Accept": "application/json",
        "Cache-Control": "no-cache",
    }
    for key, value in headers.items():
        if key.lower() in ALLOWED_CUSTOM_HEADERS:
            safe[key] = _HEADER_UNSAFE.sub("", str(value))[:256]
    return safe


def build_headers(payload: dict[str, Any]) -> dict[str, str]:
    headers = {
        "X-Webhook-Source": WEBHOOK_SOURCE,
        "X-Webhook-Category": payload.get("category", ""),
        "X-Webhook-Timestamp": payload.get("timestamp", ""),
    }
    if payload.get("priority"):
        headers["X-Webhook-Priority"] = payload["priority"]
    if payload.get("signature"):
        headers["X-Webhook-Signature"] = payload["signature"]
    return sanitize_headers(headers)


def check_destination(url: str) -> None:
    """
    Reject destinations that could be used for SSRF.

    Raises:
        UnsafeWebhookURL: non-http(s) scheme, missing host, localhost or a private IPv4
    """
    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise UnsafeWebhookURL("Invalid URL format") from e

    if parsed.scheme not in ("http", "https"):
        raise UnsafeWebhookURL("Invalid URL protocol")
    host = (parsed.hostname or "").lower()
    if not host:
        raise UnsafeWebhookURL("Invalid URL format")
    if host == "localhost":
        raise UnsafeWebhookURL("Private IP addresses not allowed")
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return
    if address.is_loopback or any(address in network for network in _PRIVATE_NETWORKS):
        raise UnsafeWebhookURL("Private IP addresses not allowed")
