"""Tests for webhook signing, timestamp checks and SSRF guards"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from minddump.webhooks.security import (
    UnsafeWebhookURL,
    build_headers,
    canonical_payload,
    check_destination,
    generate_nonce,
    generate_signature,
    sanitize_headers,
    validate_timestamp,
    verify_signature,
)

SECRET = "s" * 32


class TestSignatures:
    def test_signature_format(self):
        signature = generate_signature({"input": "hello"}, SECRET)
        assert signature.startswith("sha256=")
        assert len(signature) == len("sha256=") + 64

    def test_canonical_form_ignores_key_order_nulls_and_signature(self):
        a = {"input": "x", "category": "Task", "expanded": None}
        b = {"category": "Task", "input": "x", "signature": "sha256=old"}
        assert canonical_payload(a) == canonical_payload(b) == '{"category":"Task","input":"x"}'

    def test_verify_round_trip(self):
        payload = {"input": "hello", "category": "Idea", "nonce": generate_nonce()}
        payload["signature"] = generate_signature(payload, SECRET)
        assert verify_signature(payload, payload["signature"], SECRET)

    def test_tampered_payload_fails(self):
        payload = {"input": "hello", "category": "Idea"}
        signature = generate_signature(payload, SECRET)
        payload["input"] = "goodbye"
        assert not verify_signature(payload, signature, SECRET)

    def test_wrong_secret_fails(self):
        payload = {"input": "hello"}
        assert not verify_signature(payload, generate_signature(payload, SECRET), "t" * 32)


class TestTimestamps:
    def test_fresh_timestamp(self):
        assert validate_timestamp(datetime.now(UTC).isoformat())

    def test_zulu_suffix(self):
        stamp = datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
        assert validate_timestamp(stamp)

    def test_stale_and_future_timestamps(self):
        assert not validate_timestamp((datetime.now(UTC) - timedelta(minutes=10)).isoformat())
        assert not validate_timestamp((datetime.now(UTC) + timedelta(minutes=10)).isoformat())

    def test_garbage(self):
        assert not validate_timestamp("yesterday")


class TestDestinations:
    @pytest.mark.parametrize(
        "url",
        [
            "https://hooks.example.com/minddump",
            "http://8.8.8.8/hook",
        ],
    )
    def test_public_destinations_allowed(self, url):
        check_destination(url)

    @pytest.mark.parametrize(
        "url",
        [
            "ftp://example.com/hook",
            "https://localhost/hook",
            "http://127.0.0.1:8080/hook",
            "http://10.1.2.3/hook",
            "http://172.20.0.1/hook",
            "http://192.168.1.10/hook",
            "http://[::1]/hook",
            "not a url",
        ],
    )
    def test_unsafe_destinations_rejected(self, url):
        with pytest.raises(UnsafeWebhookURL):
            check_destination(url)


def test_headers_are_allow_listed_and_stripped():
    headers = sanitize_headers(
        {"X-Webhook-Category": "Task\r\nInjected: yes", "X-Evil": "1", "Host": "attacker"}
    )
    assert headers["X-Webhook-Category"] == "TaskInjected: yes"
    assert "X-Evil" not in headers
    assert "Host" not in headers
    assert headers["Content-Type"] == "application/json"


def test_build_headers_carries_signature_and_priority():
    headers = build_headers(
        {"category": "Task", "timestamp": "t", "priority": "high", "signature": "sha256=abc"}
    )
    assert headers["X-Webhook-Source"] == "minddumpapp"
    assert headers["X-Webhook-Priority"] == "high"
    assert headers["X-Webhook-Signature"] == "sha256=abc"
