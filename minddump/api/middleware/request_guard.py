"""Content-Type and body-size guard for write requests.

POST/PUT/PATCH bodies must be JSON (415 otherwise) and must not declare a
Content-Length above the configured ceiling (413). The ceiling can be
tightened per path; ``/webhook`` accepts at most 1 MB.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from minddump.config import API_MAX_BODY_BYTES
from minddump.observability.telemetry import counter

WRITE_METHODS = frozenset({"POST", "PUT", "PATCH"})

PATH_BODY_LIMITS = {"/webhook": 1024 * 1024}


class RequestGuardMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: Any,
        max_body_bytes: int = API_MAX_BODY_BYTES,
        path_limits: dict[str, int] | None = None,
    ) -> None:
        super().__init__(app)
        self.max_body_bytes = max_body_bytes
        self.path_limits = PATH_BODY_LIMITS if path_limits is None else path_limits

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.method not in WRITE_METHODS:
            return await call_next(request)

        content_type = request.headers.get("content-type", "")
        if not content_type.lower().startswith("application/json"):
            counter("api.unsupported_media_type")
            return JSONResponse(
                status_code=415,
                content={
                    "error": "Unsupported content type",
                    "code": "UNSUPPORTED_MEDIA_TYPE",
                    "details": {"allowed": ["application/json"]},
                },
            )

        limit = self.path_limits.get(request.url.path, self.max_body_bytes)
        declared = request.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > limit:
            counter("api.payload_too_large")
            return JSONResponse(
                status_code=413,
                content={
                    "error": "Request body too large",
                    "code": "PAYLOAD_TOO_LARGE",
                    "details": {"maxBytes": limit},
                },
            )

        return await call_next(request)
