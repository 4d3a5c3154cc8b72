"""Tests for the analysis gateway"""

from __future__ import annotations

import asyncio

import pytest

from minddump.observability.telemetry import get_counters
from minddump.thoughts.analyzer import (
    AnalysisGateway,
    check_provider_payload,
    gemini_provider,
    parse_analysis_response,
    require_expansion,
)
from minddump.thoughts.errors import AnalysisFailed, InvalidAnalysis, ValidationFailed
from minddump.thoughts.taxonomy import Category, LegacyType


class TestParseResponse:
    def test_plain_json(self):
        assert parse_analysis_response('{"category": "Task"}') == {"category": "Task"}

    def test_markdown_fenced_json(self):
        raw = '```json\n{"category": "Idea", "urgency": "low"}\n```'
        assert parse_analysis_response(raw) == {"category": "Idea", "urgency": "low"}

    def test_invalid_json(self):
        with pytest.raises(ValueError, match="Invalid JSON"):
            parse_analysis_response("not json")

    def test_non_object(self):
        with pytest.raises(ValueError, match="JSON object"):
            parse_analysis_response("[1, 2]")


def test_provider_payload_only_needs_category_or_type():
    with pytest.raises(ValueError, match="category or type"):
        check_provider_payload({"expandedThought": "x", "urgency": "low"})
    check_provider_payload({"category": "Task"})
    check_provider_payload({"type": "task"})


def test_gemini_reply_requires_expansion_fields():
    with pytest.raises(ValueError, match="Incomplete"):
        require_expansion({"category": "Task"})
    payload = {"category": "Task", "expandedThought": "x", "urgency": "low"}
    assert require_expansion(payload) is payload


def test_gemini_provider_rejects_incomplete_reply(monkeypatch):
    monkeypatch.setattr(
        "minddump.llm.retry.call_llm", lambda prompt: '{"category": "Task", "title": "t"}'
    )
    gateway = AnalysisGateway(provider=gemini_provider)
    with pytest.raises(AnalysisFailed):
        asyncio.run(gateway.analyze("thought"))


def test_gemini_provider_parses_fenced_reply(monkeypatch):
    reply = '''```json
{"category": "Idea", "expandedThought": "More", "urgency": "low"}
```'''
    monkeypatch.setattr("minddump.llm.retry.call_llm", lambda prompt: reply)
    result = asyncio.run(AnalysisGateway(provider=gemini_provider).analyze("thought"))
    assert result.category == Category.IDEA
    assert result.expanded_thought == "More"


def test_provider_result_is_normalized(provider_factory):
    gateway = AnalysisGateway(provider=provider_factory())
    result = asyncio.run(gateway.analyze("Build a habit tracker"))
    assert result.category == Category.PROJECT_IDEA
    assert result.title == "Habit Tracker"
    assert result.legacy_type == LegacyType.PROJECT


def test_timeout_becomes_analysis_failed(provider_factory):
    gateway = AnalysisGateway(provider=provider_factory(delay=1.0), timeout_seconds=0.05)
    with pytest.raises(AnalysisFailed) as exc_info:
        asyncio.run(gateway.analyze("slow thought"))
    assert exc_info.value.status_code == 503
    assert exc_info.value.code == "ANALYSIS_FAILED"
    assert exc_info.value.details == {"originalError": "Analysis timeout"}
    assert get_counters("analysis.timeout") == {"analysis.timeout": 1}


def test_provider_error_is_sanitized(provider_factory):
    error = RuntimeError('File "/srv/minddump/llm/retry.py", line 3')
    gateway = AnalysisGateway(provider=provider_factory(error=error))
    with pytest.raises(AnalysisFailed) as exc_info:
        asyncio.run(gateway.analyze("thought"))
    assert exc_info.value.details == {"originalError": "Service temporarily unavailable."}


def test_minimal_provider_payload_is_accepted(provider_factory):
    payload = {"category": "Project Idea", "title": "Password Manager Extension"}
    gateway = AnalysisGateway(provider=provider_factory(payload=payload))
    result = asyncio.run(gateway.analyze("Build a Chrome extension for password management"))
    assert result.category == Category.PROJECT_IDEA
    assert result.expanded_thought is None
    assert result.urgency is None
    assert result.is_project()


def test_provider_payload_without_category_or_type_fails(provider_factory):
    gateway = AnalysisGateway(provider=provider_factory(payload={"title": "t"}))
    with pytest.raises(AnalysisFailed):
        asyncio.run(gateway.analyze("thought"))


def test_identical_text_is_served_from_cache(provider_factory):
    provider = provider_factory()
    gateway = AnalysisGateway(provider=provider)
    asyncio.run(gateway.analyze("same thought"))
    asyncio.run(gateway.analyze("  same thought  "))
    assert len(provider.calls) == 1
    gateway.clear_cache()
    asyncio.run(gateway.analyze("same thought"))
    assert len(provider.calls) == 2


def test_empty_after_sanitization(provider_factory):
    gateway = AnalysisGateway(provider=provider_factory())
    with pytest.raises(ValidationFailed):
        asyncio.run(gateway.analyze("<<>>"))


class TestResolve:
    def test_supplied_analysis_bypasses_provider(self, provider_factory):
        provider = provider_factory()
        gateway = AnalysisGateway(provider=provider)
        result = asyncio.run(gateway.resolve("x", supplied={"category": "Note"}))
        assert result.category == Category.NOTE
        assert provider.calls == []

    def test_supplied_analysis_needs_category_or_type(self, provider_factory):
        gateway = AnalysisGateway(provider=provider_factory())
        with pytest.raises(InvalidAnalysis) as exc_info:
            asyncio.run(gateway.resolve("x", supplied={"title": "no category"}))
        assert exc_info.value.code == "INVALID_ANALYSIS"

    def test_override_applies_to_provider_result(self, provider_factory):
        gateway = AnalysisGateway(provider=provider_factory())
        result = asyncio.run(gateway.resolve("x", category_override=Category.TASK))
        assert result.category == Category.TASK
        assert result.legacy_type == LegacyType.TASK

    def test_override_applies_to_supplied_analysis(self, provider_factory):
        gateway = AnalysisGateway(provider=provider_factory())
        result = asyncio.run(
            gateway.resolve(
                "x", supplied={"type": "vent"}, category_override=Category.PROJECT_IDEA
            )
        )
        assert result.category == Category.PROJECT_IDEA
        assert result.legacy_type == LegacyType.PROJECT
