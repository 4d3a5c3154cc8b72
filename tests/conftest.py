"""
Pytest configuration for MindDump tests

Provides fakes for the external collaborators (Sheets, the analysis provider,
webhook transport) and resets process-wide state between tests.
"""

from __future__ import annotations

import asyncio
import os
from typing import Any

import httpx
import pytest

from minddump.infrastructure.retry import RetryPolicy
from minddump.llm.gemini import clear_model_cache
from minddump.observability.telemetry import reset_telemetry
from minddump.thoughts.service import reset_pipeline

# 44 url-safe characters, the shape of a real spreadsheet id
SHEET_ID = "1AbCdEfGhIjKlMnOpQrStUvWxYz0123456789_-abcde"

_ENV_VARS = (
    "GOOGLE_API_KEY",
    "GOOGLE_CLOUD_PROJECT",
    "GOOGLE_SHEETS_CLIENT_EMAIL",
    "GOOGLE_SHEETS_PRIVATE_KEY",
    "MASTER_SHEET_ID",
    "SHEETS_ENCRYPTION_KEY",
    "ENABLE_WEBHOOKS",
    "WEBHOOK_SECRET",
    "MINDDUMP_DEMO_STORAGE",
    "MINDDUMP_ENV",
)


@pytest.fixture(autouse=True)
def clean_state(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    for name in list(os.environ):
        if name.startswith("WEBHOOK_"):
            monkeypatch.delenv(name, raising=False)
    reset_telemetry()
    reset_pipeline()
    clear_model_cache()
    yield
    reset_telemetry()
    reset_pipeline()


class FakeSheetsClient:
    """In-memory stand-in for SheetsClient; set ``fail_*`` to an exception to make a call raise."""

    def __init__(self, existing_rows: int = 0, create_delay: float = 0.0):
        self.appended: list[tuple[str, str, list[list[Any]]]] = []
        self.updated: list[tuple[str, str, list[list[Any]]]] = []
        self.created: list[dict[str, Any]] = []
        self.batch_requests: list[tuple[str, list[dict[str, Any]]]] = []
        self.existing_rows = existing_rows
        self.create_delay = create_delay
        self.fail_append: dict[str, Exception] = {}
        self.fail_get: Exception | None = None
        self.fail_create: Exception | None = None
        self.append_attempts: dict[str, int] = {}

    async def append_rows(self, spreadsheet_id: str, range_: str, rows: list[list[Any]]) -> dict:
        self.append_attempts[range_] = self.append_attempts.get(range_, 0) + 1
        if range_ in self.fail_append:
            raise self.fail_append[range_]
        self.appended.append((spreadsheet_id, range_, rows))
        return {"updates": {"updatedRows": len(rows)}}

    async def get_values(self, spreadsheet_id: str, range_: str) -> list[list[Any]]:
        if self.fail_get is not None:
            raise self.fail_get
        return [["row"]] * self.existing_rows

    async def update_values(self, spreadsheet_id: str, range_: str, rows: list[list[Any]]) -> dict:
        self.updated.append((spreadsheet_id, range_, rows))
        return {}

    async def create_spreadsheet(self, body: dict[str, Any]) -> str:
        if self.create_delay:
            await asyncio.sleep(self.create_delay)
        if self.fail_create is not None:
            raise self.fail_create
        self.created.append(body)
        return f"sheet-{len(self.created)}"

    async def batch_update(self, spreadsheet_id: str, requests: list[dict[str, Any]]) -> dict:
        self.batch_requests.append((spreadsheet_id, requests))
        return {}


@pytest.fixture
def fake_sheets():
    return FakeSheetsClient()


@pytest.fixture
def fake_sheets_factory():
    return FakeSheetsClient


async def _no_sleep(_delay: float) -> None:
    return None


@pytest.fixture
def instant_retry():
    """Factory for retry policies that record their delays instead of sleeping."""

    def make(stage: str = "test", max_attempts: int = 3, delays: list[float] | None = None):
        async def record(delay: float) -> None:
            if delays is not None:
                delays.append(delay)

        return RetryPolicy(
            stage=stage,
            max_attempts=max_attempts,
            base_delay=1.0,
            max_delay=10.0,
            sleep_fn=record if delays is not None else _no_sleep,
        )

    return make


def project_analysis(**overrides: Any) -> dict[str, Any]:
    analysis = {
        "category": "ProjectIdea",
        "subcategory": "mobile app",
        "priority": "high",
        "title": "Habit Tracker",
        "summary": "A habit tracking app with streaks",
        "actions": ["Sketch screens", "Pick a stack"],
        "expandedThought": "Build a habit tracker that rewards streaks.",
        "urgency": "medium",
        "sentiment": "positive",
        "techStack": ["React Native", "Firebase"],
        "features": ["Streaks", "Reminders"],
        "markdown": {"readme": "# Habit Tracker", "projectOverview": "Overview"},
    }
    analysis.update(overrides)
    return analysis


@pytest.fixture
def project_payload():
    return project_analysis


@pytest.fixture
def provider_factory():
    """Build an async analysis provider returning ``payload`` after ``delay`` seconds."""

    def make(
        payload: dict[str, Any] | None = None,
        delay: float = 0.0,
        error: Exception | None = None,
    ):
        calls: list[str] = []

        async def provider(text: str) -> dict[str, Any]:
            calls.append(text)
            if delay:
                await asyncio.sleep(delay)
            if error is not None:
                raise error
            return payload if payload is not None else project_analysis()

        provider.calls = calls  # type: ignore[attr-defined]
        return provider

    return make


@pytest.fixture
def mock_transport_client():
    """Factory for httpx clients backed by a MockTransport handler."""

    def make(handler):
        def factory() -> httpx.AsyncClient:
            return httpx.AsyncClient(transport=httpx.MockTransport(handler))

        return factory

    return make
