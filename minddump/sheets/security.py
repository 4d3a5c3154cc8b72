"""Hardened master-log writer.

The primary write path for the master log. Every entry is sanitized and
length-capped, stamped with a sha256 integrity hash, and its raw input is
Fernet-encrypted when it looks sensitive and SHEETS_ENCRYPTION_KEY is set.
Writes are rate limited per process and refused once the log reaches its row
ceiling.

``secure_log_to_master_sheet`` never raises: every failure comes back as
``SecureWriteResult(success=False, error=...)`` so the caller can decide to
fall back.
"""

from __future__ import annotations

import hashlib
import json
import os
import re
from dataclasses import dataclass

from cryptography.fernet import Fernet, InvalidToken

from minddump.config import SECURE_SHEET_MAX_ROWS, SECURE_SHEET_WRITES_PER_MINUTE
from minddump.infrastructure.limiter import SlidingWindowLimiter
from minddump.infrastructure.settings import MASTER_SHEET_SECURE_RANGE, get_master_sheet_id
from minddump.observability.logging import get_logger
from minddump.observability.telemetry import counter, log_event
from minddump.sheets.client import SheetsClient
from minddump.thoughts.models import MasterSheetEntry

logger = get_logger(__name__)

SECURE_HEADERS = [
    "Raw Input",
    "Category",
    "Subcategory",
    "Priority",
    "Expanded Text",
    "Timestamp",
    "Data Hash",
    "Encrypted",
]

SENSITIVE_CATEGORIES = frozenset({"sensitive", "person", "private"})

SENSITIVE_CONTENT_PATTERNS = [
    re.compile(r"password", re.IGNORECASE),
    re.compile(r"secret", re.IGNORECASE),
    re.compile(r"token", re.IGNORECASE),
    re.compile(r"key", re.IGNORECASE),
    re.compile(r"ssn", re.IGNORECASE),
    re.compile(r"social.security", re.IGNORECASE),
    re.compile(r"credit.card", re.IGNORECASE),
    re.compile(r"bank.account", re.IGNORECASE),
    re.compile(r"\b\d{4}\s?\d{4}\s?\d{4}\s?\d{4}\b"),  # card number
    re.compile(r"\b\d{3}-\d{2}-\d{4}\b"),  # SSN
]

RAW_INPUT_MAX = 10_000
CATEGORY_MAX = 100
SUBCATEGORY_MAX = 100
EXPANDED_TEXT_MAX = 50_000


class SheetsEncryption:
    """
    Fernet encryption for sensitive master-log cells.

    Without a key, encryption is disabled and sensitive rows are written in
    plain text with ``Encrypted=NO``. A malformed key is a configuration error.
    """

    def __init__(self, key: str | None = None):
        key = key if key is not None else os.getenv("SHEETS_ENCRYPTION_KEY")
        self._cipher: Fernet | None = None
        if key:
            try:
                self._cipher = Fernet(key.encode())
            except (ValueError, TypeError) as e:
                raise ValueError(f"Invalid SHEETS_ENCRYPTION_KEY format: {e}") from e

    @property
    def enabled(self) -> bool:
        return self._cipher is not None

    @staticmethod
    def should_encrypt(text: str, category: str) -> bool:
        if category.lower() in SENSITIVE_CATEGORIES:
            return True
        return any(pattern.search(text) for pattern in SENSITIVE_CONTENT_PATTERNS)

    def encrypt(self, text: str) -> str:
        if self._cipher is None:
            raise RuntimeError("Encryption key not configured")
        return self._cipher.encrypt(text.encode("utf-8")).decode("ascii")

    def decrypt(self, token: str) -> str:
        if self._cipher is None:
            raise RuntimeError("Encryption key not configured")
        try:
            return self._cipher.decrypt(token.encode("ascii")).decode("utf-8")
        except InvalidToken as e:
            raise ValueError("Ciphertext could not be decrypted") from e


@dataclass
class SecureWriteResult:
    success: bool
    error: str | None = None


def entry_hash(entry: MasterSheetEntry) -> str:
    """Integrity hash over the fields that identify a log row."""
    payload = json.dumps(
        {"rawInput": entry.raw_input, "category": entry.category, "timestamp": entry.timestamp},
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def sanitize_entry(entry: MasterSheetEntry) -> MasterSheetEntry:
    return entry.model_copy(
        update={
            "raw_input": entry.raw_input[:RAW_INPUT_MAX].strip(),
            "category": entry.category[:CATEGORY_MAX].strip(),
            "subcategory": (
                entry.subcategory[:SUBCATEGORY_MAX].strip() if entry.subcategory else None
            ),
            "expanded_text": (
                entry.expanded_text[:EXPANDED_TEXT_MAX].strip() if entry.expanded_text else None
            ),
        }
    )


class SecureSheetsWriter:
    def __init__(
        self,
        client: SheetsClient | None = None,
        encryption: SheetsEncryption | None = None,
        limiter: SlidingWindowLimiter | None = None,
        max_rows: int = SECURE_SHEET_MAX_ROWS,
    ):
        self.client = client or SheetsClient()
        self._encryption = encryption
        self.limiter = limiter or SlidingWindowLimiter(SECURE_SHEET_WRITES_PER_MINUTE, 60.0)
        self.max_rows = max_rows

    @property
    def encryption(self) -> SheetsEncryption:
        if self._encryption is None:
            self._encryption = SheetsEncryption()
        return self._encryption

    def build_row(self, entry: MasterSheetEntry) -> list[str]:
        sanitized = sanitize_entry(entry)
        digest = entry_hash(entry)
        raw_input = sanitized.raw_input
        encrypted = False
        encryption = self.encryption
        if encryption.enabled and encryption.should_encrypt(raw_input, sanitized.category):
            raw_input = encryption.encrypt(raw_input)
            encrypted = True
        return [
            raw_input,
            sanitized.category,
            sanitized.subcategory or "",
            sanitized.priority or "",
            sanitized.expanded_text or "",
            sanitized.timestamp,
            digest,
            "YES" if encrypted else "NO",
        ]

    async def secure_log_to_master_sheet(self, entry: MasterSheetEntry) -> SecureWriteResult:
        try:
            if not self.limiter.allow():
                counter("sheets.secure.rate_limited")
                return SecureWriteResult(False, "Rate limit exceeded")

            sheet_id = get_master_sheet_id()
            if sheet_id is None:
                return SecureWriteResult(False, "Master sheet not configured")

            row = self.build_row(entry)

            try:
                existing = await self.client.get_values(sheet_id, "Master Log!A:A")
            except Exception as e:
                # Size check is advisory; the append below still decides success
                logger.info("Could not read master log size: %s", type(e).__name__)
            else:
                if len(existing) >= self.max_rows:
                    counter("sheets.secure.size_limit")
                    return SecureWriteResult(False, "Sheet size limit exceeded")

            await self.client.append_rows(sheet_id, MASTER_SHEET_SECURE_RANGE, [row])
            log_event(
                "sheets.secure.appended",
                category=row[1],
                timestamp=row[5],
                encrypted=row[7] == "YES",
            )
            return SecureWriteResult(True)
        except Exception as e:
            logger.error("Secure sheets operation failed: %s", e)
            return SecureWriteResult(False, str(e) or type(e).__name__)

    async def initialize_headers(self) -> SecureWriteResult:
        """Write the 8-column header row if the log is empty."""
        sheet_id = get_master_sheet_id()
        if sheet_id is None:
            return SecureWriteResult(False, "Master sheet ID not configured")
        try:
            existing = await self.client.get_values(sheet_id, "Master Log!A1:H1")
            if existing:
                return SecureWriteResult(True)
            await self.client.update_values(sheet_id, "Master Log!A1:H1", [SECURE_HEADERS])
            await self.client.batch_update(
                sheet_id, [header_format_request(background=(0.8, 0.9, 0.8))]
            )
            logger.info("Master sheet initialized with headers")
            return SecureWriteResult(True)
        except Exception as e:
            logger.error("Master sheet initialization failed: %s", e)
            return SecureWriteResult(False, str(e) or type(e).__name__)


def header_format_request(
    sheet_id: int = 0, background: tuple[float, float, float] = (0.9, 0.9, 0.9)
) -> dict:
    """Bold header row; the master log uses a green tint, project sheets grey."""
    red, green, blue = background
    return {
        "repeatCell": {
            "range": {"sheetId": sheet_id, "startRowIndex": 0, "endRowIndex": 1},
            "cell": {
                "userEnteredFormat": {
                    "backgroundColor": {"red": red, "green": green, "blue": blue},
                    "textFormat": {"bold": True},
                }
            },
            "fields": "userEnteredFormat(backgroundColor,textFormat)",
        }
    }


def security_warnings() -> list[str]:
    """Configuration problems worth surfacing on /health; no API calls are made."""
    warnings = []
    if not os.getenv("SHEETS_ENCRYPTION_KEY"):
        warnings.append("SHEETS_ENCRYPTION_KEY not set - sensitive data will not be encrypted")
    if get_master_sheet_id() is None:
        warnings.append("Master sheet ID not configured")
    return warnings
