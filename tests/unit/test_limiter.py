from __future__ import annotations

from minddump.infrastructure.limiter import SlidingWindowLimiter


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_allows_up_to_max_events_per_window():
    clock = FakeClock()
    limiter = SlidingWindowLimiter(max_events=2, window_seconds=60, clock=clock)
    assert limiter.allow()
    assert limiter.allow()
    assert not limiter.allow()
    assert limiter.remaining() == 0


def test_window_slides():
    clock = FakeClock()
    limiter = SlidingWindowLimiter(max_events=1, window_seconds=60, clock=clock)
    assert limiter.allow()
    clock.now += 61
    assert limiter.allow()


def test_identifiers_are_isolated():
    limiter = SlidingWindowLimiter(max_events=1, window_seconds=60, clock=FakeClock())
    assert limiter.allow("a")
    assert limiter.allow("b")
    assert not limiter.allow("a")


def test_reset():
    limiter = SlidingWindowLimiter(max_events=1, window_seconds=60, clock=FakeClock())
    limiter.allow()
    limiter.reset()
    assert limiter.remaining() == 1
