"""
Thought storage port.

The pipeline itself is stateless; it hands each processed thought to a
``ThoughtStore`` and ``GET /thoughts`` reads back through the same port.

Implementations:
- NullThoughtStore: default, keeps nothing (listing is always empty)
- InMemoryThoughtStore: bounded, newest-first demo storage (MINDDUMP_DEMO_STORAGE=true)

A database-backed store only needs to satisfy the protocol.
"""

from __future__ import annotations

from collections import deque
from typing import Protocol

from minddump.config import DEMO_STORAGE_MAX_THOUGHTS
from minddump.infrastructure.settings import demo_storage_enabled
from minddump.observability.logging import get_logger
from minddump.thoughts.models import Thought

logger = get_logger(__name__)


class ThoughtStore(Protocol):
    """Protocol for thought persistence."""

    def save(self, thought: Thought) -> None:
        """Persist a processed thought.

        Side Effects:
            Implementation-defined; the null store does nothing
        """
        ...

    def list(self, limit: int, offset: int) -> list[Thought]:
        """Return up to ``limit`` thoughts after skipping ``offset``, newest first."""
        ...

    def count(self) -> int: ...


class NullThoughtStore:
    def save(self, thought: Thought) -> None:
        return None

    def list(self, limit: int, offset: int) -> list[Thought]:
        return []

    def count(self) -> int:
        return 0


class InMemoryThoughtStore:
    """Newest-first ring buffer; the oldest thought is dropped when full."""

    def __init__(self, max_thoughts: int = DEMO_STORAGE_MAX_THOUGHTS):
        self._thoughts: deque[Thought] = deque(maxlen=max_thoughts)

    def save(self, thought: Thought) -> None:
        self._thoughts.appendleft(thought)

    def list(self, limit: int, offset: int) -> list[Thought]:
        return list(self._thoughts)[offset : offset + limit]

    def count(self) -> int:
        return len(self._thoughts)

    def clear(self) -> None:
        self._thoughts.clear()


def create_thought_store() -> ThoughtStore:
    if demo_storage_enabled():
        logger.info("Using in-memory demo storage for thoughts")
        return InMemoryThoughtStore()
    return NullThoughtStore()
