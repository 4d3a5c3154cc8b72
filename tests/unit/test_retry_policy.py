from __future__ import annotations

import asyncio

import pytest

from minddump.infrastructure.retry import AdapterError, RetryPolicy
from minddump.observability.telemetry import counter


def test_retry_policy_retries_retryable_errors(instant_retry):
    attempts = {"count": 0}
    delays: list[float] = []

    async def flaky():
        attempts["count"] += 1
        if attempts["count"] < 3:
            raise AdapterError("server error", status_code=503)
        return "ok"

    policy = instant_retry(delays=delays)
    result = asyncio.run(policy.execute(flaky))
    assert result == "ok"
    assert attempts["count"] == 3
    assert delays == [1.0, 2.0]
    assert counter("retry_count", 0) >= 2


def test_retry_policy_stops_on_non_retryable_error(instant_retry):
    attempts = {"count": 0}

    async def bad_request():
        attempts["count"] += 1
        raise AdapterError("bad request", status_code=404)

    with pytest.raises(AdapterError):
        asyncio.run(instant_retry().execute(bad_request))
    assert attempts["count"] == 1


def test_retry_policy_retries_rate_limit_and_plain_exceptions(instant_retry):
    errors = [AdapterError("quota", status_code=429), ConnectionError("reset")]

    async def operation():
        if errors:
            raise errors.pop(0)
        return "done"

    assert asyncio.run(instant_retry().execute(operation)) == "done"


def test_retry_policy_reraises_last_error_when_exhausted(instant_retry):
    attempts = {"count": 0}

    async def always_fails():
        attempts["count"] += 1
        raise RuntimeError(f"attempt {attempts['count']}")

    with pytest.raises(RuntimeError, match="attempt 3"):
        asyncio.run(instant_retry().execute(always_fails))
    assert attempts["count"] == 3


def test_delay_is_exponential_and_capped():
    policy = RetryPolicy(stage="test", base_delay=1.0, max_delay=10.0)
    assert [policy.delay_for(n) for n in range(1, 6)] == [1.0, 2.0, 4.0, 8.0, 10.0]
