"""
Retry helper with exponential backoff for external-call legs.

``RetryPolicy`` wraps any zero-argument coroutine factory. Delays double each
attempt from ``base_delay`` and are capped at ``max_delay``; jitter is off by
default so the master-log schedule is exactly 1s, 2s (then give up).
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from minddump.observability.logging import get_logger
from minddump.observability.telemetry import counter, log_event

T = TypeVar("T")

logger = get_logger(__name__)


class AdapterError(RuntimeError):
    """Failure from an external adapter, optionally tagged with an HTTP status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class RetryPolicy:
    stage: str
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    jitter: float = 0.0
    sleep_fn: Callable[[float], Awaitable[None]] = asyncio.sleep

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run ``operation`` until it succeeds or attempts are exhausted.

        Non-retryable ``AdapterError`` (4xx other than 429) is raised at once.
        The last error is re-raised after the final attempt.
        """
        attempt = 0
        last_error: Exception | None = None

        while attempt < self.max_attempts:
            attempt += 1
            try:
                return await operation()
            except AdapterError as exc:
                if not self._should_retry(exc):
                    log_event(
                        "stage_error",
                        stage=self.stage,
                        error=str(exc),
                        status=exc.status_code,
                        attempt=attempt,
                    )
                    raise
                last_error = exc
            except Exception as exc:
                last_error = exc
                log_event("stage_error", stage=self.stage, error=str(exc), attempt=attempt)

            if attempt >= self.max_attempts:
                break

            await self._backoff(attempt)

        assert last_error is not None
        raise last_error

    def delay_for(self, attempt: int) -> float:
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)

    def _should_retry(self, exc: AdapterError) -> bool:
        status = exc.status_code
        if status is None:
            return True
        return bool(status == 429 or 500 <= status < 600)

    async def _backoff(self, attempt: int) -> None:
        counter("retry_count")
        delay = self.delay_for(attempt)
        if self.jitter:
            delay += random.uniform(0, self.jitter)
        logger.warning(
            "%s attempt %d failed, retrying in %.2fs", self.stage, attempt, delay
        )
        log_event("retry_scheduled", stage=self.stage, attempt=attempt, delay=round(delay, 3))
        await self.sleep_fn(delay)
