"""Unit tests for rate limiting middleware

Tests cover:
- Separate write and read minute buckets
- Hour limit enforcement
- Health endpoint bypass
- Per-IP isolation
- Rate limit headers
"""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from minddump.api.middleware.rate_limit import RateLimitMiddleware, client_ip


@pytest.fixture
def app():
    """Create test FastAPI app with rate limiting"""
    test_app = FastAPI()

    # Use low limits for testing
    test_app.add_middleware(
        RateLimitMiddleware,
        writes_per_minute=2,
        reads_per_minute=4,
        requests_per_hour=20,
    )

    @test_app.get("/thoughts")
    async def read_endpoint():
        return {"status": "ok"}

    @test_app.post("/thoughts")
    async def write_endpoint():
        return {"status": "created"}

    @test_app.get("/health")
    async def health():
        return {"status": "healthy"}

    return test_app


def test_requests_under_limit_allowed(app):
    client = TestClient(app)
    for _ in range(3):
        response = client.get("/thoughts")
        assert response.status_code == 200
        assert response.headers["X-RateLimit-Limit"] == "4"
        assert "X-RateLimit-Remaining" in response.headers
        assert response.headers["X-RateLimit-Limit-Hour"] == "20"


def test_write_limit_enforced(app):
    client = TestClient(app)
    for _ in range(2):
        assert client.post("/thoughts").status_code == 200

    response = client.post("/thoughts")
    assert response.status_code == 429
    body = response.json()
    assert body["code"] == "RATE_LIMIT_EXCEEDED"
    assert "per minute" in body["error"]
    assert body["details"] == {"retryAfter": 60}
    assert response.headers["Retry-After"] == "60"


def test_reads_have_their_own_bucket(app):
    client = TestClient(app)
    for _ in range(2):
        client.post("/thoughts")
    assert client.post("/thoughts").status_code == 429
    assert client.get("/thoughts").status_code == 200


def test_hour_limit_enforced():
    test_app = FastAPI()
    test_app.add_middleware(
        RateLimitMiddleware, writes_per_minute=100, reads_per_minute=100, requests_per_hour=3
    )

    @test_app.get("/thoughts")
    async def read_endpoint():
        return {"status": "ok"}

    client = TestClient(test_app)
    for _ in range(3):
        assert client.get("/thoughts").status_code == 200

    response = client.get("/thoughts")
    assert response.status_code == 429
    assert "per hour" in response.json()["error"]
    assert response.headers["Retry-After"] == "3600"


def test_health_endpoint_bypasses_rate_limit(app):
    client = TestClient(app)
    for _ in range(6):
        client.get("/thoughts")
    response = client.get("/health")
    assert response.status_code == 200
    assert "X-RateLimit-Limit" not in response.headers


def test_per_ip_isolation_in_development(app):
    client = TestClient(app)
    for _ in range(2):
        client.post("/thoughts", headers={"X-Forwarded-For": "203.0.113.1"})
    assert client.post("/thoughts", headers={"X-Forwarded-For": "203.0.113.1"}).status_code == 429
    assert client.post("/thoughts", headers={"X-Forwarded-For": "203.0.113.2"}).status_code == 200


def test_forwarded_header_ignored_in_production(app, monkeypatch):
    monkeypatch.setenv("MINDDUMP_ENV", "production")
    client = TestClient(app)
    for ip in ("203.0.113.1", "203.0.113.2"):
        assert client.post("/thoughts", headers={"X-Forwarded-For": ip}).status_code == 200
    assert client.post("/thoughts", headers={"X-Forwarded-For": "203.0.113.3"}).status_code == 429


def test_invalid_forwarded_ip_falls_back_to_peer():
    class FakeRequest:
        headers = {"X-Forwarded-For": "not-an-ip"}
        client = type("Peer", (), {"host": "198.51.100.7"})()

    assert client_ip(FakeRequest()) == "198.51.100.7"
