"""Google Sheets v4 client.

Wraps the discovery-built service from googleapiclient. Requests are built and
executed on a worker thread so the event loop is never blocked; HttpError is
converted to AdapterError carrying the HTTP status so RetryPolicy can tell
quota/5xx failures from permanent ones.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable
from typing import Any

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from minddump.infrastructure.retry import AdapterError
from minddump.infrastructure.settings import SHEETS_SCOPES
from minddump.observability.logging import get_logger
from minddump.observability.telemetry import counter

logger = get_logger(__name__)

TOKEN_URI = "https://oauth2.googleapis.com/token"


class SheetsConfigurationError(RuntimeError):
    """Raised when service-account credentials are missing or malformed."""


def load_service_account_credentials() -> service_account.Credentials:
    """
    Build service-account credentials from the environment.

    GOOGLE_SHEETS_PRIVATE_KEY is usually stored with literal ``\\n`` sequences
    (single-line env files); they are unescaped before parsing.

    Raises:
        SheetsConfigurationError: If email/key are missing or the key is not PEM
    """
    client_email = os.getenv("GOOGLE_SHEETS_CLIENT_EMAIL")
    private_key = os.getenv("GOOGLE_SHEETS_PRIVATE_KEY")

    missing = [
        name
        for name, value in (
            ("GOOGLE_SHEETS_CLIENT_EMAIL", client_email),
            ("GOOGLE_SHEETS_PRIVATE_KEY", private_key),
        )
        if not value
    ]
    if missing:
        raise SheetsConfigurationError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    private_key = private_key.replace("\\n", "\n")
    if "BEGIN PRIVATE KEY" not in private_key:
        raise SheetsConfigurationError("Invalid private key format - must be a valid PEM key")

    if "@" not in client_email:
        logger.warning("Service account email format may be invalid")

    info = {
        "type": "service_account",
        "client_email": client_email,
        "private_key": private_key,
        "token_uri": TOKEN_URI,
    }
    try:
        return service_account.Credentials.from_service_account_info(info, scopes=SHEETS_SCOPES)
    except ValueError as e:
        raise SheetsConfigurationError(f"Invalid service account credentials: {e}") from e


def build_sheets_service() -> Any:
    credentials = load_service_account_credentials()
    return build("sheets", "v4", credentials=credentials, cache_discovery=False)


class SheetsClient:
    """
    Async facade over the Sheets API.

    The underlying service is built lazily on first use so that constructing a
    client never touches credentials; pass ``service`` to inject a fake.
    """

    def __init__(self, service: Any | None = None):
        self._service = service

    @property
    def service(self) -> Any:
        if self._service is None:
            self._service = build_sheets_service()
        return self._service

    async def append_rows(self, spreadsheet_id: str, range_: str, rows: list[list[Any]]) -> dict:
        return await self._execute(
            "append",
            lambda: self.service.spreadsheets()
            .values()
            .append(
                spreadsheetId=spreadsheet_id,
                range=range_,
                valueInputOption="RAW",
                body={"values": rows},
            ),
        )

    async def get_values(self, spreadsheet_id: str, range_: str) -> list[list[Any]]:
        response = await self._execute(
            "get",
            lambda: self.service.spreadsheets()
            .values()
            .get(spreadsheetId=spreadsheet_id, range=range_),
        )
        return response.get("values", [])

    async def update_values(self, spreadsheet_id: str, range_: str, rows: list[list[Any]]) -> dict:
        return await self._execute(
            "update",
            lambda: self.service.spreadsheets()
            .values()
            .update(
                spreadsheetId=spreadsheet_id,
                range=range_,
                valueInputOption="RAW",
                body={"values": rows},
            ),
        )

    async def create_spreadsheet(self, body: dict[str, Any]) -> str:
        """Create a spreadsheet and return its id."""
        response = await self._execute(
            "create",
            lambda: self.service.spreadsheets().create(body=body, fields="spreadsheetId"),
        )
        return response["spreadsheetId"]

    async def batch_update(self, spreadsheet_id: str, requests: list[dict[str, Any]]) -> dict:
        return await self._execute(
            "batch_update",
            lambda: self.service.spreadsheets().batchUpdate(
                spreadsheetId=spreadsheet_id, body={"requests": requests}
            ),
        )

    async def _execute(self, operation: str, build_request: Callable[[], Any]) -> dict:
        def run() -> dict:
            return build_request().execute()

        try:
            return await asyncio.to_thread(run)
        except HttpError as e:
            status = getattr(e.resp, "status", None)
            counter(f"sheets.{operation}.http_error")
            logger.warning("Sheets %s failed with status %s", operation, status)
            raise AdapterError(
                f"Sheets {operation} failed: {e}", status_code=int(status) if status else None
            ) from e
