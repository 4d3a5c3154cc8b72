"""Master Log Writer.

Every processed thought is appended to the master log exactly once:

  1. secure path - SecureSheetsWriter (sanitized, hashed, encrypted if sensitive)
  2. fallback    - plain 6-column append, retried by RetryPolicy (3 attempts,
                   1s base, 10s cap)

A missing/placeholder/malformed sheet id is "not configured" and skips the
write. The path that actually wrote the row is returned so callers can report
when the unencrypted fallback was used. Failure of both paths raises
MasterLogError.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from minddump.config import (
    MASTER_LOG_RETRY_ATTEMPTS,
    MASTER_LOG_RETRY_BASE_DELAY,
    MASTER_LOG_RETRY_MAX_DELAY,
)
from minddump.infrastructure.retry import RetryPolicy
from minddump.infrastructure.settings import MASTER_SHEET_RANGE, get_master_sheet_id
from minddump.observability.logging import get_logger
from minddump.observability.telemetry import counter, log_event
from minddump.sheets.client import SheetsClient
from minddump.sheets.security import SecureSheetsWriter, SecureWriteResult
from minddump.thoughts.errors import MasterLogError
from minddump.thoughts.models import MasterSheetEntry
from minddump.utils.validators import validate_sheet_id

logger = get_logger(__name__)

MasterLogPath = Literal["secure", "fallback", "skipped"]


@dataclass
class MasterLogOutcome:
    path: MasterLogPath
    secure_error: str | None = None


def master_log_retry_policy() -> RetryPolicy:
    return RetryPolicy(
        stage="master_log",
        max_attempts=MASTER_LOG_RETRY_ATTEMPTS,
        base_delay=MASTER_LOG_RETRY_BASE_DELAY,
        max_delay=MASTER_LOG_RETRY_MAX_DELAY,
    )


class MasterLogWriter:
    def __init__(
        self,
        client: SheetsClient | None = None,
        secure_writer: SecureSheetsWriter | None = None,
        retry_policy: RetryPolicy | None = None,
    ):
        self.client = client or SheetsClient()
        self.secure_writer = secure_writer or SecureSheetsWriter(client=self.client)
        self.retry_policy = retry_policy or master_log_retry_policy()

    @staticmethod
    def configured_sheet_id() -> str | None:
        sheet_id = get_master_sheet_id()
        if sheet_id is None:
            return None
        if not validate_sheet_id(sheet_id):
            logger.error("Invalid master sheet ID format")
            counter("master_log.invalid_sheet_id")
            return None
        return sheet_id

    async def log(self, entry: MasterSheetEntry) -> MasterLogOutcome:
        sheet_id = self.configured_sheet_id()
        if sheet_id is None:
            logger.warning("Master sheet not configured, skipping master sheet logging")
            return MasterLogOutcome(path="skipped")

        result: SecureWriteResult = await self.secure_writer.secure_log_to_master_sheet(entry)
        if result.success:
            log_event("master_log.written", path="secure", category=entry.category)
            return MasterLogOutcome(path="secure")

        logger.error("Secure master sheet write failed: %s", result.error)
        counter("master_log.fallback")
        log_event("master_log.fallback", category=entry.category, reason=result.error)

        row = entry.as_row()
        try:
            await self.retry_policy.execute(
                lambda: self.client.append_rows(sheet_id, MASTER_SHEET_RANGE, [row])
            )
        except Exception as e:
            counter("master_log.failed")
            logger.error("Both secure and fallback logging failed: %s", e)
            raise MasterLogError(str(e) or "Unknown master sheet error") from e

        log_event("master_log.written", path="fallback", category=entry.category)
        return MasterLogOutcome(path="fallback", secure_error=result.error)


async def initialize_master_sheet(writer: MasterLogWriter | None = None) -> bool:
    """Ensure the master log has its header row. Returns False when not configured or on failure."""
    writer = writer or MasterLogWriter()
    if writer.configured_sheet_id() is None:
        logger.warning("Master sheet ID not configured, skipping initialization")
        return False
    result = await writer.secure_writer.initialize_headers()
    if not result.success:
        logger.error("Error initializing master sheet: %s", result.error)
    return result.success
