"""Thought processing pipeline.

Steps run strictly in order for one request:

  1. validate         ValidationFailed (400)
  2. precondition     ServiceUnavailable (503) unless an analysis was supplied
  3. analyze          AnalysisFailed (503) / InvalidAnalysis (400)
  4. build Thought
  5. master log       best effort
  6. project + sheet  best effort, only for project ideas with a title
  7. webhook          fire-and-forget
  8. respond

Only steps 1-3 can fail the request. Each of steps 5-7 records its own
outcome in the ``integrations`` block and never affects the others.
"""

from __future__ import annotations

import secrets
import time
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from minddump.config import (
    API_LIST_LIMIT_DEFAULT,
    API_LIST_LIMIT_MAX,
    PROJECT_SHEET_EXPANDED_MAX,
    THOUGHT_TEXT_MAX_CHARS,
)
from minddump.infrastructure.settings import has_llm_credentials, has_sheets_credentials
from minddump.observability.logging import bind_thought_id, get_logger
from minddump.observability.telemetry import counter, log_event, time_block
from minddump.sheets.client import SheetsClient
from minddump.sheets.master_log import MasterLogWriter
from minddump.sheets.project_sheet import (
    ProjectSheetOptions,
    ProjectSheetWriter,
    generate_sheet_title,
)
from minddump.storage.thoughts import ThoughtStore, create_thought_store
from minddump.thoughts.analyzer import AnalysisGateway
from minddump.thoughts.errors import ServiceUnavailable, ValidationFailed
from minddump.thoughts.models import (
    AnalysisResult,
    AnalysisSummary,
    Integrations,
    MasterSheetEntry,
    MasterSheetStatus,
    Pagination,
    Project,
    ProjectSheetStatus,
    Thought,
    ThoughtListResponse,
    ThoughtResponse,
    ThoughtSubmission,
    WebhookStatus,
)
from minddump.thoughts.taxonomy import Category
from minddump.utils.error_sanitizer import describe_error
from minddump.utils.validators import sanitize_text
from minddump.webhooks.dispatcher import WebhookDispatcher, WebhookEvent, disabled_status

logger = get_logger(__name__)


def _generate_id(prefix: str) -> str:
    return f"{prefix}_{int(time.time() * 1000)}_{secrets.token_hex(5)[:9]}"


def new_thought_id() -> str:
    return _generate_id("thought")


def new_project_id() -> str:
    return _generate_id("project")


def _coerce_int(value: Any, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def clamp_pagination(limit: Any = None, offset: Any = None) -> tuple[int, int]:
    """limit -> [1, API_LIST_LIMIT_MAX] (default 50); offset -> >= 0 (default 0)."""
    limit_value = _coerce_int(limit, API_LIST_LIMIT_DEFAULT)
    offset_value = _coerce_int(offset, 0)
    return max(1, min(limit_value, API_LIST_LIMIT_MAX)), max(offset_value, 0)


def parse_submission(body: Any) -> ThoughtSubmission:
    """Validate a POST body; text is sanitized and must survive sanitization."""
    if not isinstance(body, dict):
        raise ValidationFailed("Validation failed", details={"errors": ["Invalid request body"]})
    try:
        submission = ThoughtSubmission.model_validate(body)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(loc) for loc in err['loc']) or 'body'}: {err['msg']}"
            for err in e.errors()
        ]
        counter("pipeline.validation_error")
        raise ValidationFailed("Validation failed", details={"errors": errors}) from e

    text = sanitize_text(submission.text, THOUGHT_TEXT_MAX_CHARS)
    if not text:
        counter("pipeline.validation_error")
        raise ValidationFailed(
            "Validation failed", details={"errors": ["text: must not be empty"]}
        )
    return submission.model_copy(update={"text": text})


def build_thought(thought_id: str, text: str, analysis: AnalysisResult) -> Thought:
    return Thought(
        id=thought_id,
        raw_text=text,
        category=analysis.category,
        legacy_type=analysis.legacy_type,
        subcategory=analysis.subcategory,
        priority=analysis.priority,
        title=analysis.title,
        summary=analysis.summary,
        expanded_text=analysis.expanded_thought,
        actions=analysis.actions,
        urgency=analysis.urgency,
        sentiment=analysis.sentiment,
    )


def summarize(analysis: AnalysisResult) -> AnalysisSummary:
    return AnalysisSummary(
        category=analysis.category,
        subcategory=analysis.subcategory,
        priority=analysis.priority,
        type=analysis.legacy_type,
        title=analysis.title,
        summary=analysis.summary,
        urgency=analysis.urgency,
        sentiment=analysis.sentiment,
    )


class ThoughtPipeline:
    """
    Orchestrates analysis and the three integration legs for one thought.

    Collaborators are injectable; the defaults share one lazily-built Sheets
    client and read credentials from the environment on every request.
    """

    def __init__(
        self,
        analyzer: AnalysisGateway | None = None,
        master_log: MasterLogWriter | None = None,
        project_sheets: ProjectSheetWriter | None = None,
        webhooks: WebhookDispatcher | None = None,
        store: ThoughtStore | None = None,
        llm_configured: Callable[[], bool] = has_llm_credentials,
        sheets_configured: Callable[[], bool] = has_sheets_credentials,
    ):
        sheets_client = None
        if master_log is None or project_sheets is None:
            sheets_client = SheetsClient()
        self.analyzer = analyzer or AnalysisGateway()
        self.master_log = master_log or MasterLogWriter(client=sheets_client)
        self.project_sheets = project_sheets or ProjectSheetWriter(client=sheets_client)
        self.webhooks = webhooks or WebhookDispatcher()
        self.store = store if store is not None else create_thought_store()
        self.llm_configured = llm_configured
        self.sheets_configured = sheets_configured

    async def process(self, body: Any) -> ThoughtResponse:
        submission = parse_submission(body)

        if submission.analysis is None and not self.llm_configured():
            counter("pipeline.service_unavailable")
            raise ServiceUnavailable("Analysis provider not configured")

        thought_id = new_thought_id()
        with bind_thought_id(thought_id), time_block("pipeline.process"):
            analysis = await self.analyzer.resolve(
                submission.text,
                supplied=submission.analysis,
                category_override=submission.category,
            )
            thought = build_thought(thought_id, submission.text, analysis)

            master_status = await self._log_to_master(thought)
            project, project_status = await self._create_project(thought, analysis)
            webhook_status = self._dispatch_webhook(thought)

            self._store(thought)

            response = ThoughtResponse(
                thought=thought,
                project=project,
                analysis=summarize(analysis),
                integrations=Integrations(
                    master_sheet=master_status,
                    webhook=webhook_status,
                    project_sheet=project_status,
                ),
                sheets_url=project.sheets_url if project else None,
                actions_created=len(thought.actions),
            )

            log_event(
                "thought.processed",
                category=thought.category.value,
                type=thought.legacy_type.value,
                length=len(thought.raw_text),
                master_sheet=master_status.success,
                project=project is not None,
                webhook=webhook_status.state,
            )
        return response

    def list_thoughts(self, limit: Any = None, offset: Any = None) -> ThoughtListResponse:
        limit_value, offset_value = clamp_pagination(limit, offset)
        thoughts = self.store.list(limit_value, offset_value)
        total = self.store.count()
        return ThoughtListResponse(
            thoughts=thoughts,
            pagination=Pagination(
                limit=limit_value,
                offset=offset_value,
                total=total,
                has_more=offset_value + len(thoughts) < total,
            ),
        )

    async def _log_to_master(self, thought: Thought) -> MasterSheetStatus:
        try:
            outcome = await self.master_log.log(MasterSheetEntry.for_thought(thought))
        except Exception as e:
            counter("pipeline.leg_failed.master_sheet")
            logger.warning("Master sheet logging failed: %s", e)
            return MasterSheetStatus(success=False, error=describe_error(e))
        return MasterSheetStatus(success=True, path=outcome.path)

    async def _create_project(
        self, thought: Thought, analysis: AnalysisResult
    ) -> tuple[Project | None, ProjectSheetStatus | None]:
        if not (analysis.is_project() and thought.title):
            return None, None

        sheets_url = None
        sheet_status = None
        if self.sheets_configured():
            options = ProjectSheetOptions(
                title=generate_sheet_title(thought.title, Category.PROJECT_IDEA.value.lower()),
                category=Category.PROJECT_IDEA,
                description=thought.summary or "",
                expanded_text=(
                    (analysis.expanded_thought or "")[:PROJECT_SHEET_EXPANDED_MAX] or None
                ),
                actions=thought.actions,
                priority=analysis.urgency.value if analysis.urgency else None,
                tags=analysis.tech_stack,
            )
            sheets_url = await self.project_sheets.create_project_sheet(options)
            if sheets_url:
                sheet_status = ProjectSheetStatus(success=True, url=sheets_url)
            else:
                counter("pipeline.leg_failed.project_sheet")
                sheet_status = ProjectSheetStatus(
                    success=False, error="Project sheet creation failed or timed out"
                )

        project = Project(
            id=new_project_id(),
            thought_id=thought.id,
            title=thought.title,
            summary=thought.summary or "",
            readme=analysis.readme,
            overview=analysis.project_overview,
            sheets_url=sheets_url,
            category=thought.category,
            subcategory=thought.subcategory,
            priority=thought.priority,
            tech_stack=analysis.tech_stack,
            features=analysis.features,
        )
        return project, sheet_status

    def _dispatch_webhook(self, thought: Thought) -> WebhookStatus:
        try:
            if not self.webhooks.enabled():
                logger.info("Webhooks disabled - skipping webhook processing")
                return disabled_status()
            return self.webhooks.spawn(
                thought.id, thought.raw_text, WebhookEvent.from_thought(thought)
            )
        except Exception as e:
            counter("pipeline.leg_failed.webhook")
            logger.error("Webhook setup error: %s", e)
            return WebhookStatus(state="failed", error="Webhook setup error")

    def _store(self, thought: Thought) -> None:
        try:
            self.store.save(thought)
        except Exception as e:
            counter("pipeline.store_failed")
            logger.error("Failed to store thought: %s", e)


_pipeline: ThoughtPipeline | None = None


def get_pipeline() -> ThoughtPipeline:
    """Get or create the process-wide ThoughtPipeline (FastAPI dependency)."""
    global _pipeline
    if _pipeline is None:
        _pipeline = ThoughtPipeline()
    return _pipeline


def reset_pipeline() -> None:
    global _pipeline
    _pipeline = None


async def drain_pipeline() -> None:
    """Wait for background webhook deliveries of the live pipeline, if one was built."""
    if _pipeline is not None:
        await _pipeline.webhooks.drain()
