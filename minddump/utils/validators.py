"""
Input validation and sanitization utilities.

Thought text and analysis payloads come from the browser or from the LLM, so
both are treated as untrusted: strings are trimmed and capped, nested payloads
are bounded before they are walked.
"""

from __future__ import annotations

import re
from typing import Any

# Dict validation constants to prevent DoS via oversized analysis payloads
MAX_DICT_SIZE = 100
MAX_STRING_LENGTH = 100_000
MAX_DICT_DEPTH = 5

# Google spreadsheet ids are 44 url-safe characters
SHEET_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{44}$")
SHEET_URL_ID_PATTERN = re.compile(r"/spreadsheets/d/([a-zA-Z0-9_-]+)")

_ANGLE_BRACKETS = re.compile(r"[<>]")


def validate_dict_structure(
    data: dict[str, Any],
    max_keys: int = MAX_DICT_SIZE,
    max_str_len: int = MAX_STRING_LENGTH,
    max_depth: int = MAX_DICT_DEPTH,
    current_depth: int = 0,
) -> None:
    """
    Validate dict structure to prevent DoS attacks.

    Raises:
        ValueError: If nesting, key count or string length exceed the limits
    """
    if current_depth > max_depth:
        raise ValueError(f"Dict nesting exceeds maximum depth of {max_depth}")

    if len(data) > max_keys:
        raise ValueError(f"Dict has too many keys: {len(data)} > {max_keys}")

    for key, value in data.items():
        if isinstance(key, str) and len(key) > 100:
            raise ValueError(f"Dict key too long: {len(key)} > 100")

        if isinstance(value, str):
            if len(value) > max_str_len:
                raise ValueError(f"String value too long: {len(value)} > {max_str_len}")
        elif isinstance(value, dict):
            validate_dict_structure(value, max_keys, max_str_len, max_depth, current_depth + 1)
        elif isinstance(value, list):
            _validate_list_structure(value, max_keys, max_str_len, max_depth, current_depth + 1)


def _validate_list_structure(
    data: list[Any],
    max_keys: int,
    max_str_len: int,
    max_depth: int,
    current_depth: int,
) -> None:
    if current_depth > max_depth:
        raise ValueError(f"List nesting exceeds maximum depth of {max_depth}")

    if len(data) > max_keys:
        raise ValueError(f"List too long: {len(data)} > {max_keys}")

    for item in data:
        if isinstance(item, dict):
            validate_dict_structure(item, max_keys, max_str_len, max_depth, current_depth + 1)
        elif isinstance(item, list):
            _validate_list_structure(item, max_keys, max_str_len, max_depth, current_depth + 1)
        elif isinstance(item, str) and len(item) > max_str_len:
            raise ValueError(f"String value too long in list: {len(item)} > {max_str_len}")


def sanitize_text(value: str, max_length: int) -> str:
    """Trim, drop angle brackets (HTML injection) and cap length."""
    return _ANGLE_BRACKETS.sub("", value.strip())[:max_length]


def cap_str(value: Any, max_length: int) -> str | None:
    """Coerce an untrusted scalar to a capped string; None and blanks stay None."""
    if value is None:
        return None
    text = value if isinstance(value, str) else str(value)
    text = text[:max_length]
    return text or None


def cap_str_list(value: Any, max_items: int, max_length: int) -> list[str]:
    """Keep the first ``max_items`` entries of a list, each capped to ``max_length``."""
    if not isinstance(value, list):
        return []
    return [
        (item if isinstance(item, str) else str(item))[:max_length]
        for item in value[:max_items]
    ]


def validate_sheet_id(sheet_id: str | None) -> bool:
    return bool(sheet_id) and SHEET_ID_PATTERN.match(sheet_id) is not None


def extract_sheet_id(url: str) -> str | None:
    """Pull the spreadsheet id out of a Google Sheets URL."""
    match = SHEET_URL_ID_PATTERN.search(url or "")
    return match.group(1) if match else None
