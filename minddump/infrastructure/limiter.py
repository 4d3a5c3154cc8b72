"""In-process sliding-window limiter for outbound integrations.

Timestamps per identifier live in a TTLCache, the same bucket scheme the HTTP
rate-limit middleware uses, so idle identifiers expire without a sweeper.
"""

from __future__ import annotations

import time
from collections.abc import Callable

from cachetools import TTLCache


class SlidingWindowLimiter:
    def __init__(
        self,
        max_events: int,
        window_seconds: float = 60.0,
        max_keys: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_events = max_events
        self.window_seconds = window_seconds
        self._clock = clock
        self._buckets: TTLCache[str, list[float]] = TTLCache(
            maxsize=max_keys, ttl=window_seconds * 2, timer=clock
        )

    def allow(self, identifier: str = "global") -> bool:
        """Record an event and return True, or return False if the window is full."""
        now = self._clock()
        bucket = [ts for ts in self._buckets.get(identifier, []) if now - ts < self.window_seconds]
        if len(bucket) >= self.max_events:
            self._buckets[identifier] = bucket
            return False
        bucket.append(now)
        self._buckets[identifier] = bucket
        return True

    def remaining(self, identifier: str = "global") -> int:
        now = self._clock()
        used = sum(1 for ts in self._buckets.get(identifier, []) if now - ts < self.window_seconds)
        return max(self.max_events - used, 0)

    def reset(self) -> None:
        self._buckets.clear()
