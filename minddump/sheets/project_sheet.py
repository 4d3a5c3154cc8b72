"""Project Sheet Writer.

Creates a dedicated spreadsheet for a project-idea thought: a single
"Project Details" tab tinted with the category colour, a bold header row and
one data row. The whole creation is raced against PROJECT_SHEET_TIMEOUT_SECONDS;
on timeout or any failure the writer returns None and the caller carries on.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, field
from datetime import date

from minddump.config import PROJECT_SHEET_TIMEOUT_SECONDS
from minddump.observability.logging import get_logger
from minddump.observability.telemetry import counter, log_event, time_block
from minddump.sheets.client import SheetsClient
from minddump.sheets.security import header_format_request
from minddump.thoughts.errors import ProjectSheetError
from minddump.thoughts.models import utc_now_iso
from minddump.thoughts.taxonomy import Category, get_category

logger = get_logger(__name__)

PROJECT_TAB = "Project Details"
PROJECT_HEADERS = [
    "Timestamp",
    "Original Idea",
    "Expanded Description",
    "Category",
    "Priority",
    "Tags",
    "Actions",
    "Status",
    "Notes",
]

_NON_ALNUM_SPACE = re.compile(r"[^a-z0-9\s]")
_NON_WORD = re.compile(r"[^\w\s-]")
_WHITESPACE = re.compile(r"\s+")


def generate_sheet_title(text: str, category: str, today: date | None = None) -> str:
    """``<category>-<slug of first 30 chars>-<YYYYMMDD>``."""
    stamp = (today or date.today()).strftime("%Y%m%d")
    slug = _WHITESPACE.sub("-", _NON_ALNUM_SPACE.sub("", text.lower()))[:30]
    return f"{category}-{slug}-{stamp}"


def sanitize_sheet_name(name: str) -> str:
    cleaned = _NON_WORD.sub("", name.strip())
    return _WHITESPACE.sub("-", cleaned)[:100].lower()


def spreadsheet_url(spreadsheet_id: str) -> str:
    return f"https://docs.google.com/spreadsheets/d/{spreadsheet_id}/edit"


def _hex_to_rgb(color: str) -> dict[str, float]:
    return {
        "red": int(color[1:3], 16) / 255,
        "green": int(color[3:5], 16) / 255,
        "blue": int(color[5:7], 16) / 255,
    }


@dataclass
class ProjectSheetOptions:
    title: str
    category: Category = Category.PROJECT_IDEA
    description: str = ""
    expanded_text: str | None = None
    actions: list[str] = field(default_factory=list)
    priority: str | None = None
    tags: list[str] = field(default_factory=list)


class ProjectSheetWriter:
    def __init__(
        self,
        client: SheetsClient | None = None,
        timeout_seconds: float = PROJECT_SHEET_TIMEOUT_SECONDS,
    ):
        self.client = client or SheetsClient()
        self.timeout_seconds = timeout_seconds

    async def create_project_sheet(self, options: ProjectSheetOptions) -> str | None:
        """Return the edit URL of the new spreadsheet, or None on timeout/failure."""
        try:
            with time_block("project_sheet.create"):
                url = await asyncio.wait_for(self._create(options), timeout=self.timeout_seconds)
        except TimeoutError:
            counter("project_sheet.timeout")
            logger.warning("Project sheet creation timed out after %ss", self.timeout_seconds)
            return None
        except Exception as e:
            counter("project_sheet.failed")
            logger.warning("Project sheet creation failed: %s", e)
            return None

        log_event("project_sheet.created", title_length=len(options.title))
        return url

    async def _create(self, options: ProjectSheetOptions) -> str:
        info = get_category(options.category)
        spreadsheet_id = await self.client.create_spreadsheet(
            {
                "properties": {"title": f"MindDump: {options.title}"},
                "sheets": [
                    {
                        "properties": {
                            "sheetId": 0,
                            "title": PROJECT_TAB,
                            "tabColor": _hex_to_rgb(info.color),
                        }
                    }
                ],
            }
        )
        if not spreadsheet_id:
            raise ProjectSheetError("Spreadsheet creation returned no id")

        data_row = [
            utc_now_iso(),
            options.title,
            options.expanded_text or "",
            info.name,
            options.priority or "medium",
            ", ".join(options.tags),
            "; ".join(options.actions),
            "Active",
            options.description,
        ]
        await self.client.update_values(
            spreadsheet_id, f"{PROJECT_TAB}!A1:I2", [PROJECT_HEADERS, data_row]
        )
        await self.client.batch_update(
            spreadsheet_id,
            [
                header_format_request(),
                {"autoResizeDimensions": {"dimensions": {"sheetId": 0, "dimension": "COLUMNS"}}},
            ],
        )
        return spreadsheet_url(spreadsheet_id)
