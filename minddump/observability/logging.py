"""Process-wide logging setup.

Every module calls ``get_logger(__name__)``. The first call attaches a single
stream handler to the root logger; later calls only refresh the level. Log
lines carry the id of the thought being processed (``-`` outside a request) so
the legs of one pipeline run can be correlated.
"""

from __future__ import annotations

import contextlib
import contextvars
import logging
import os
from collections.abc import Iterator
from typing import Final

_HANDLER_ATTACHED: bool = False
_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - [%(thought_id)s] %(message)s"

_current_thought_id: contextvars.ContextVar[str] = contextvars.ContextVar(
    "minddump_thought_id", default="-"
)


class ThoughtContextFilter(logging.Filter):
    """Stamp each record with the thought id bound to the current task."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "thought_id"):
            record.thought_id = _current_thought_id.get()
        return True


def _resolve_level() -> int:
    level_name = os.getenv("MINDDUMP_LOG_LEVEL", os.getenv("LOG_LEVEL", "INFO")).upper()
    return getattr(logging, level_name, logging.INFO)


def get_logger(name: str) -> logging.Logger:
    """Return a module logger configured with a single stream handler."""
    global _HANDLER_ATTACHED

    level = _resolve_level()

    if not _HANDLER_ATTACHED:
        handler = logging.StreamHandler()
        handler.addFilter(ThoughtContextFilter())
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        root = logging.getLogger()
        root.addHandler(handler)
        root.setLevel(level)
        _HANDLER_ATTACHED = True
    else:
        logging.getLogger().setLevel(level)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    return logger


@contextlib.contextmanager
def bind_thought_id(thought_id: str) -> Iterator[None]:
    """Bind ``thought_id`` to log records emitted inside the block.

    Tasks spawned inside the block copy the context, so a detached webhook
    task keeps logging under the same id after the block exits.
    """
    token = _current_thought_id.set(thought_id)
    try:
        yield
    finally:
        _current_thought_id.reset(token)


def current_thought_id() -> str:
    return _current_thought_id.get()
