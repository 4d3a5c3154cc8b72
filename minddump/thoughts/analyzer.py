"""Analysis Gateway: turns raw thought text into a normalized AnalysisResult.

Two modes:
  - provider mode: the analysis provider (Gemini by default) is raced against
    ANALYSIS_TIMEOUT_SECONDS; a timeout or any provider failure becomes
    AnalysisFailed (503).
  - bypass mode: the caller supplied a precomputed analysis object; the
    provider is skipped and the object only has to name a category or type.

An explicit category override replaces whatever category the analysis chose
and recomputes the legacy type from the taxonomy table.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import re
from collections.abc import Awaitable, Callable
from typing import Any

from cachetools import TTLCache

from minddump.config import (
    ANALYSIS_CACHE_SIZE,
    ANALYSIS_CACHE_TTL_SECONDS,
    ANALYSIS_TIMEOUT_SECONDS,
    THOUGHT_TEXT_MAX_CHARS,
)
from minddump.llm.prompts import build_analysis_prompt
from minddump.observability.logging import get_logger
from minddump.observability.telemetry import counter, log_event, time_block
from minddump.thoughts.errors import AnalysisFailed, InvalidAnalysis, ValidationFailed
from minddump.thoughts.models import AnalysisResult
from minddump.thoughts.taxonomy import Category
from minddump.utils.error_sanitizer import sanitize_error_message
from minddump.utils.validators import sanitize_text

logger = get_logger(__name__)

AnalysisProvider = Callable[[str], Awaitable[dict[str, Any]]]

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


def parse_analysis_response(raw: str) -> dict[str, Any]:
    """Parse provider output into a dict, tolerating markdown code fences."""
    text = _CODE_FENCE.sub("", raw.strip())
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON response from analysis provider: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("Analysis response must be a JSON object")
    return data


def check_provider_payload(data: dict[str, Any]) -> None:
    """Provider output must name a category or type; everything else is optional."""
    if not data.get("category") and not data.get("type"):
        raise ValueError("Analysis must include either category or type field")


def require_expansion(data: dict[str, Any]) -> dict[str, Any]:
    """Gemini replies must carry the expansion fields the prompt asks for."""
    if not data.get("expandedThought") or not data.get("urgency"):
        raise ValueError("Incomplete analysis from provider")
    return data


async def gemini_provider(text: str) -> dict[str, Any]:
    """Default provider: one Gemini call on a worker thread."""
    # Imported here so the gateway can be built without the Google SDKs installed
    from minddump.llm.retry import call_llm

    raw = await asyncio.to_thread(call_llm, build_analysis_prompt(text))
    return require_expansion(parse_analysis_response(raw))


class AnalysisGateway:
    """Resolve the analysis for one thought, from the provider or from the caller."""

    def __init__(
        self,
        provider: AnalysisProvider | None = None,
        timeout_seconds: float = ANALYSIS_TIMEOUT_SECONDS,
        cache: TTLCache | None = None,
    ):
        self.provider = provider or gemini_provider
        self.timeout_seconds = timeout_seconds
        self._cache: TTLCache = (
            cache
            if cache is not None
            else TTLCache(maxsize=ANALYSIS_CACHE_SIZE, ttl=ANALYSIS_CACHE_TTL_SECONDS)
        )

    async def resolve(
        self,
        raw_text: str,
        supplied: dict[str, Any] | None = None,
        category_override: Category | None = None,
    ) -> AnalysisResult:
        if supplied is not None:
            result = self.from_supplied(supplied)
        else:
            result = await self.analyze(raw_text)

        if category_override is not None:
            logger.info(
                "Category override: %s -> %s", result.category.value, category_override.value
            )
            result = result.with_category(category_override)
        return result

    def from_supplied(self, supplied: dict[str, Any]) -> AnalysisResult:
        if not supplied.get("category") and not supplied.get("type"):
            counter("analysis.invalid_supplied")
            raise InvalidAnalysis("Invalid analysis format - must include category or type field")
        log_event("analysis.bypassed", category=supplied.get("category"), type=supplied.get("type"))
        return AnalysisResult.from_payload(supplied)

    async def analyze(self, raw_text: str) -> AnalysisResult:
        text = sanitize_text(raw_text, THOUGHT_TEXT_MAX_CHARS)
        if not text:
            raise ValidationFailed("Input text is empty after sanitization")

        key = hashlib.sha256(text.encode("utf-8")).hexdigest()
        cached = self._cache.get(key)
        if cached is not None:
            counter("analysis.cache_hit")
            return cached

        try:
            with time_block("analysis.provider"):
                payload = await asyncio.wait_for(self.provider(text), timeout=self.timeout_seconds)
            check_provider_payload(payload)
        except TimeoutError as e:
            # asyncio.TimeoutError is an alias of the builtin on 3.11+
            counter("analysis.timeout")
            logger.warning("Analysis timed out after %ss", self.timeout_seconds)
            raise AnalysisFailed(
                "Failed to analyze thought",
                details={"originalError": "Analysis timeout"},
            ) from e
        except Exception as e:
            counter("analysis.failed")
            logger.error("Analysis provider failed: %s", type(e).__name__)
            raise AnalysisFailed(
                "Failed to analyze thought",
                details={"originalError": sanitize_error_message(str(e), 503)},
            ) from e

        result = AnalysisResult.from_payload(payload)
        self._cache[key] = result
        log_event("analysis.completed", category=result.category.value, length=len(text))
        return result

    def clear_cache(self) -> None:
        self._cache.clear()
