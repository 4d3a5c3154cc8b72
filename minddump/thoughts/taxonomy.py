"""
Category taxonomy for captured thoughts.

Fifteen canonical categories plus ``Uncategorized``. Each maps onto the older
five-value legacy type enum that pre-taxonomy consumers (webhooks, the project
flow) still key on. Lookups are pure and accept the canonical id, the slug id
or the display name in any case.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum


class Category(str, Enum):
    """Canonical thought categories (closed set)."""

    GOAL = "Goal"
    HABIT = "Habit"
    PROJECT_IDEA = "ProjectIdea"
    TASK = "Task"
    REMINDER = "Reminder"
    NOTE = "Note"
    INSIGHT = "Insight"
    LEARNING = "Learning"
    CAREER = "Career"
    METRIC = "Metric"
    IDEA = "Idea"
    SYSTEM = "System"
    AUTOMATION = "Automation"
    PERSON = "Person"
    SENSITIVE = "Sensitive"
    UNCATEGORIZED = "Uncategorized"


class LegacyType(str, Enum):
    """Pre-taxonomy thought types kept for backward-compatible consumers."""

    IDEA = "idea"
    TASK = "task"
    PROJECT = "project"
    VENT = "vent"
    REFLECTION = "reflection"


AUTO_DETECT = "auto-detect"


@dataclass(frozen=True)
class CategoryInfo:
    category: Category
    id: str
    name: str
    color: str
    description: str
    legacy_type: LegacyType

    def as_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "category": self.category.value,
            "name": self.name,
            "color": self.color,
            "description": self.description,
            "legacyType": self.legacy_type.value,
        }


# Several categories share a legacy type (Goal/Habit/Task/Reminder/Career -> task);
# the old enum simply has fewer buckets.
CATEGORIES: tuple[CategoryInfo, ...] = (
    CategoryInfo(Category.GOAL, "goal", "Goal", "#FF6B6B",
                 "Personal or professional objectives", LegacyType.TASK),
    CategoryInfo(Category.HABIT, "habit", "Habit", "#4ECDC4",
                 "New routines or behavioral tracking", LegacyType.TASK),
    CategoryInfo(Category.PROJECT_IDEA, "projectidea", "Project Idea", "#45B7D1",
                 "Apps, tools, features, or businesses", LegacyType.PROJECT),
    CategoryInfo(Category.TASK, "task", "Task", "#96CEB4",
                 "Simple, actionable to-dos", LegacyType.TASK),
    CategoryInfo(Category.REMINDER, "reminder", "Reminder", "#FFEAA7",
                 "Time-based notes or scheduling needs", LegacyType.TASK),
    CategoryInfo(Category.NOTE, "note", "Note", "#DDA0DD",
                 "General or unstructured information", LegacyType.REFLECTION),
    CategoryInfo(Category.INSIGHT, "insight", "Insight", "#98D8C8",
                 "Personal realizations or journal-style reflections", LegacyType.REFLECTION),
    CategoryInfo(Category.LEARNING, "learning", "Learning", "#F7DC6F",
                 "Topics to study, courses to take, research leads", LegacyType.REFLECTION),
    CategoryInfo(Category.CAREER, "career", "Career", "#85C1E9",
                 "Job goals, application ideas, networking plans", LegacyType.TASK),
    CategoryInfo(Category.METRIC, "metric", "Metric", "#F8C471",
                 "Self-tracking data (e.g. sleep, gym, mood logs)", LegacyType.REFLECTION),
    CategoryInfo(Category.IDEA, "idea", "Idea", "#BB8FCE",
                 "Broad creative thoughts that don't fit elsewhere", LegacyType.IDEA),
    CategoryInfo(Category.SYSTEM, "system", "System", "#7DCEA0",
                 "Frameworks, workflows, and organizational logic", LegacyType.PROJECT),
    CategoryInfo(Category.AUTOMATION, "automation", "Automation", "#F1C40F",
                 "Specific automations or bots to build", LegacyType.PROJECT),
    CategoryInfo(Category.PERSON, "person", "Person", "#E74C3C",
                 "Notes about people, meetings, or conversations", LegacyType.REFLECTION),
    CategoryInfo(Category.SENSITIVE, "sensitive", "Sensitive", "#34495E",
                 "Private, non-routable entries", LegacyType.VENT),
    CategoryInfo(Category.UNCATEGORIZED, "uncategorized", "Uncategorized", "#95A5A6",
                 "Fallback if categorization fails", LegacyType.REFLECTION),
)

UNCATEGORIZED_INFO = CATEGORIES[-1]

LEGACY_TYPE_MAP: dict[Category, LegacyType] = {
    info.category: info.legacy_type for info in CATEGORIES
}

# Used to route a thought that only carries a legacy type
LEGACY_TYPE_TO_CATEGORY: dict[LegacyType, Category] = {
    LegacyType.IDEA: Category.IDEA,
    LegacyType.TASK: Category.TASK,
    LegacyType.PROJECT: Category.PROJECT_IDEA,
    LegacyType.VENT: Category.NOTE,
    LegacyType.REFLECTION: Category.INSIGHT,
}

_NORMALIZE = re.compile(r"[\s_\-]+")


def _key(identifier: str) -> str:
    return _NORMALIZE.sub("", identifier).lower()


_LOOKUP: dict[str, CategoryInfo] = {}
for _info in CATEGORIES:
    _LOOKUP[_key(_info.id)] = _info
    _LOOKUP[_key(_info.name)] = _info
    _LOOKUP[_key(_info.category.value)] = _info


def find_category(identifier: str | None) -> CategoryInfo | None:
    """Return the entry for ``identifier`` or None when it is not in the taxonomy."""
    if not identifier or not isinstance(identifier, str):
        return None
    return _LOOKUP.get(_key(identifier))


def get_category(identifier: str | None) -> CategoryInfo:
    """Look up by id or display name (case-insensitive); unknown -> Uncategorized."""
    return find_category(identifier) or UNCATEGORIZED_INFO


def is_valid_category(identifier: str | None) -> bool:
    return find_category(identifier) is not None


def legacy_type_for(category: Category | str | None) -> LegacyType:
    """Legacy type for a category; anything unmapped is a reflection."""
    info = find_category(category.value if isinstance(category, Category) else category)
    return info.legacy_type if info else LegacyType.REFLECTION


def parse_legacy_type(value: str | None) -> LegacyType | None:
    if not value or not isinstance(value, str):
        return None
    try:
        return LegacyType(value.strip().lower())
    except ValueError:
        return None


def available_categories() -> list[str]:
    """Canonical category ids in taxonomy order."""
    return [info.category.value for info in CATEGORIES]


def category_description(category: Category | str) -> str:
    return get_category(category.value if isinstance(category, Category) else category).description
