"""Category taxonomy endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from minddump.config import CATEGORIZATION_SYSTEM
from minddump.thoughts.taxonomy import CATEGORIES, LEGACY_TYPE_MAP

router = APIRouter(tags=["categories"])


@router.get("/categories")
async def list_categories() -> dict[str, Any]:
    return {
        "system": CATEGORIZATION_SYSTEM,
        "categories": [info.as_dict() for info in CATEGORIES],
        "legacyTypeMap": {
            category.value: legacy.value for category, legacy in LEGACY_TYPE_MAP.items()
        },
    }
