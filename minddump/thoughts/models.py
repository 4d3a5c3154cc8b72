"""Pydantic models for thought processing.

Request models validate at the HTTP boundary; ``AnalysisResult`` normalizes the
untrusted analysis payload (LLM output or caller-supplied) with every string
capped; ``Thought``/``Project`` are the per-request records owned by the
pipeline; the envelope models serialize with the camelCase keys the web
client reads.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from minddump.config import (
    CATEGORIZATION_SYSTEM,
    PROJECT_FEATURE_CHARS_MAX,
    PROJECT_FEATURES_MAX,
    PROJECT_MARKDOWN_MAX,
    PROJECT_TECH_CHARS_MAX,
    PROJECT_TECH_STACK_MAX,
    THOUGHT_ACTION_CHARS_MAX,
    THOUGHT_ACTIONS_MAX,
    THOUGHT_EXPANDED_MAX,
    THOUGHT_SUBCATEGORY_MAX,
    THOUGHT_SUMMARY_MAX,
    THOUGHT_TEXT_MAX_CHARS,
    THOUGHT_TITLE_MAX,
)
from minddump.thoughts.taxonomy import (
    AUTO_DETECT,
    LEGACY_TYPE_MAP,
    Category,
    LegacyType,
    available_categories,
    find_category,
    parse_legacy_type,
)
from minddump.utils.validators import cap_str, cap_str_list, validate_dict_structure


def utc_now() -> datetime:
    return datetime.now(UTC)


def utc_now_iso() -> str:
    return utc_now().isoformat()


class Level(str, Enum):
    """Shared low/medium/high scale for priority and urgency."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


def _parse_enum(enum_cls: type[Enum], value: Any) -> Any:
    if not isinstance(value, str):
        return None
    try:
        return enum_cls(value.strip().lower())
    except ValueError:
        return None


# =============================================================================
# REQUEST
# =============================================================================


class ThoughtSubmission(BaseModel):
    """Body of ``POST /thoughts``."""

    model_config = ConfigDict(extra="ignore")

    text: str = Field(..., min_length=1, max_length=THOUGHT_TEXT_MAX_CHARS)
    category: Category | None = None
    analysis: dict[str, Any] | None = None

    @field_validator("category", mode="before")
    @classmethod
    def validate_category(cls, v: Any) -> Category | None:
        """Closed set: "auto-detect" or a taxonomy entry; anything else is rejected."""
        if v is None:
            return None
        if not isinstance(v, str):
            raise ValueError("category must be a string")
        if v.strip().lower() == AUTO_DETECT:
            return None
        info = find_category(v)
        if info is None:
            raise ValueError(f"Unknown category: {v[:50]}")
        return info.category

    @field_validator("analysis")
    @classmethod
    def validate_analysis(cls, v: dict[str, Any] | None) -> dict[str, Any] | None:
        if v is not None:
            validate_dict_structure(v)
        return v


# =============================================================================
# ANALYSIS
# =============================================================================


class AnalysisResult(BaseModel):
    """Normalized analysis of one thought.

    Built with ``from_payload`` from an untrusted dict; the category is resolved
    through the taxonomy (display names and any case accepted) and every string
    field is length-capped.
    """

    category: Category = Category.UNCATEGORIZED
    type: LegacyType | None = None
    subcategory: str | None = None
    priority: Level | None = None
    title: str | None = None
    summary: str | None = None
    actions: list[str] = Field(default_factory=list)
    expanded_thought: str | None = None
    urgency: Level | None = None
    sentiment: Sentiment | None = None
    tech_stack: list[str] = Field(default_factory=list)
    features: list[str] = Field(default_factory=list)
    readme: str | None = None
    project_overview: str | None = None

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> AnalysisResult:
        info = find_category(data.get("category"))
        markdown = data.get("markdown") if isinstance(data.get("markdown"), dict) else {}
        return cls(
            category=info.category if info else Category.UNCATEGORIZED,
            type=parse_legacy_type(data.get("type")),
            subcategory=cap_str(data.get("subcategory"), THOUGHT_SUBCATEGORY_MAX),
            priority=_parse_enum(Level, data.get("priority")),
            title=cap_str(data.get("title"), THOUGHT_TITLE_MAX),
            summary=cap_str(data.get("summary"), THOUGHT_SUMMARY_MAX),
            actions=cap_str_list(
                data.get("actions"), THOUGHT_ACTIONS_MAX, THOUGHT_ACTION_CHARS_MAX
            ),
            expanded_thought=cap_str(data.get("expandedThought"), THOUGHT_EXPANDED_MAX),
            urgency=_parse_enum(Level, data.get("urgency")),
            sentiment=_parse_enum(Sentiment, data.get("sentiment")),
            tech_stack=cap_str_list(
                data.get("techStack"), PROJECT_TECH_STACK_MAX, PROJECT_TECH_CHARS_MAX
            ),
            features=cap_str_list(
                data.get("features"), PROJECT_FEATURES_MAX, PROJECT_FEATURE_CHARS_MAX
            ),
            readme=cap_str(markdown.get("readme"), PROJECT_MARKDOWN_MAX),
            project_overview=cap_str(markdown.get("projectOverview"), PROJECT_MARKDOWN_MAX),
        )

    @property
    def legacy_type(self) -> LegacyType:
        """The analysis' own type wins; the taxonomy table fills in when it is absent."""
        if self.type is not None:
            return self.type
        if self.category != Category.UNCATEGORIZED:
            return LEGACY_TYPE_MAP[self.category]
        return LegacyType.REFLECTION

    def with_category(self, category: Category) -> AnalysisResult:
        """Manual override: replace the category and recompute the legacy type."""
        return self.model_copy(update={"category": category, "type": LEGACY_TYPE_MAP[category]})

    def is_project(self) -> bool:
        return self.category == Category.PROJECT_IDEA or self.legacy_type == LegacyType.PROJECT


# =============================================================================
# RECORDS
# =============================================================================


class Thought(BaseModel):
    """One processed submission. Lives only for the duration of the request."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    raw_text: str = Field(alias="rawText")
    category: Category
    legacy_type: LegacyType = Field(alias="legacyType")
    subcategory: str | None = None
    priority: Level | None = None
    title: str | None = None
    summary: str | None = None
    expanded_text: str | None = Field(default=None, alias="expandedText")
    actions: list[str] = Field(default_factory=list)
    urgency: Level | None = None
    sentiment: Sentiment | None = None
    created_at: str = Field(default_factory=utc_now_iso, alias="createdAt")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def type(self) -> str:
        """Legacy ``type`` key read by pre-taxonomy clients."""
        return self.legacy_type.value


class Project(BaseModel):
    """Derived from a project-idea thought; never persisted."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    thought_id: str = Field(alias="thoughtId")
    title: str
    summary: str = ""
    readme: str | None = None
    overview: str | None = None
    sheets_url: str | None = Field(default=None, alias="sheetsUrl")
    category: Category
    subcategory: str | None = None
    priority: Level | None = None
    tech_stack: list[str] = Field(default_factory=list, alias="techStack")
    features: list[str] = Field(default_factory=list)
    created_at: str = Field(default_factory=utc_now_iso, alias="createdAt")


class MasterSheetEntry(BaseModel):
    """Row appended to the master log, one per processed thought."""

    model_config = ConfigDict(populate_by_name=True)

    raw_input: str = Field(alias="rawInput")
    category: str
    subcategory: str | None = None
    priority: Literal["Low", "Medium", "High"] | None = None
    expanded_text: str | None = Field(default=None, alias="expandedText")
    timestamp: str = Field(default_factory=utc_now_iso)

    @classmethod
    def for_thought(cls, thought: Thought) -> MasterSheetEntry:
        return cls(
            raw_input=thought.raw_text,
            category=thought.category.value,
            subcategory=thought.subcategory,
            priority=thought.priority.value.capitalize() if thought.priority else None,
            expanded_text=thought.expanded_text,
        )

    def as_row(self) -> list[str]:
        return [
            self.raw_input,
            self.category,
            self.subcategory or "",
            self.priority or "",
            self.expanded_text or "",
            self.timestamp,
        ]


# =============================================================================
# RESPONSE ENVELOPE
# =============================================================================


class LegStatus(BaseModel):
    success: bool = False
    error: str | None = None


class MasterSheetStatus(LegStatus):
    # "fallback" means the row went through the unencrypted direct-append path
    path: Literal["secure", "fallback", "skipped"] | None = None


class ProjectSheetStatus(LegStatus):
    url: str | None = None


WebhookState = Literal["disabled", "pending", "sent", "skipped", "failed"]


class WebhookStatus(LegStatus):
    """Mutable: the detached dispatch task updates it after the response is built."""

    state: WebhookState = "pending"
    category: str | None = None
    updated_at: str = Field(default_factory=utc_now_iso, alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True)

    def mark(self, state: WebhookState, error: str | None = None) -> None:
        self.state = state
        self.success = state in ("sent", "skipped")
        self.error = error
        self.updated_at = utc_now_iso()


class AnalysisSummary(BaseModel):
    category: Category
    subcategory: str | None = None
    priority: Level | None = None
    type: LegacyType
    title: str | None = None
    summary: str | None = None
    urgency: Level | None = None
    sentiment: Sentiment | None = None


class Integrations(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    master_sheet: MasterSheetStatus = Field(alias="masterSheet")
    webhook: WebhookStatus
    project_sheet: ProjectSheetStatus | None = Field(default=None, alias="projectSheet")


class Categorization(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    system: str = CATEGORIZATION_SYSTEM
    available_categories: list[str] = Field(
        default_factory=available_categories, alias="availableCategories"
    )


class ThoughtResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    thought: Thought
    project: Project | None = None
    analysis: AnalysisSummary
    integrations: Integrations
    sheets_url: str | None = Field(default=None, alias="sheetsUrl")
    actions_created: int = Field(default=0, alias="actionsCreated")
    timestamp: str = Field(default_factory=utc_now_iso)
    categorization: Categorization = Field(default_factory=Categorization)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class Pagination(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    limit: int
    offset: int
    total: int
    has_more: bool = Field(alias="hasMore")


class ThoughtListResponse(BaseModel):
    thoughts: list[Thought]
    pagination: Pagination
    timestamp: str = Field(default_factory=utc_now_iso)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
