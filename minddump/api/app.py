"""FastAPI server for MindDump"""

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from minddump.api.middleware.rate_limit import RateLimitMiddleware
from minddump.api.middleware.request_guard import RequestGuardMiddleware
from minddump.api.middleware.security_headers import SecurityHeadersMiddleware
from minddump.api.routes.categories import router as categories_router
from minddump.api.routes.health import router as health_router
from minddump.api.routes.thoughts import router as thoughts_router
from minddump.api.routes.webhook import router as webhook_router
from minddump.config import APP_VERSION
from minddump.infrastructure.settings import (
    API_HOST,
    API_PORT,
    has_sheets_credentials,
    is_development,
)
from minddump.observability.logging import get_logger
from minddump.observability.telemetry import counter, log_event
from minddump.sheets.master_log import initialize_master_sheet
from minddump.thoughts.errors import ThoughtPipelineError
from minddump.thoughts.service import drain_pipeline

# Load environment variables from .env file
load_dotenv()

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    if has_sheets_credentials():
        try:
            initialized = await initialize_master_sheet()
            logger.info("Master sheet initialization: %s", "ok" if initialized else "skipped")
        except Exception as e:
            logger.error("Master sheet initialization failed: %s", e)
    log_event("api.startup", service="minddump", version=APP_VERSION)
    yield
    # Let in-flight webhook deliveries finish before the loop closes
    await drain_pipeline()


app = FastAPI(title="MindDump API", version=APP_VERSION, lifespan=lifespan)


@app.exception_handler(ThoughtPipelineError)
async def pipeline_exception_handler(request: Request, exc: ThoughtPipelineError) -> JSONResponse:
    counter(f"api.error.{exc.code.lower()}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Custom validation error handler to prevent information leakage
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    logger.warning("Validation error on %s: %s", request.url.path, exc.errors())
    counter("api.validation_errors")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "Validation failed",
            "code": "VALIDATION_ERROR",
            "details": {
                "invalidFields": [str(err["loc"][-1]) for err in exc.errors() if err.get("loc")]
            },
        },
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s", request.url.path)
    counter("api.internal_errors")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error", "code": "INTERNAL_ERROR"},
    )


ALLOWED_ORIGINS = [
    origin.strip() for origin in os.getenv("CORS_ALLOWED_ORIGINS", "").split(",") if origin.strip()
]

# Allow localhost in development only
if is_development():
    ALLOWED_ORIGINS.extend(
        [
            "http://localhost:3000",
            "http://localhost:8000",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:8000",
        ]
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID", "X-Webhook-Signature"],
)

# Rate limiting - prevent abuse
app.add_middleware(RateLimitMiddleware)

# Reject non-JSON and oversized bodies before they are read
app.add_middleware(RequestGuardMiddleware)

# Security headers
app.add_middleware(SecurityHeadersMiddleware)

# Include routers
app.include_router(health_router)
app.include_router(categories_router)
app.include_router(thoughts_router)
app.include_router(webhook_router)


@app.get("/")
def root() -> dict[str, Any]:
    return {
        "service": "MindDump API",
        "version": APP_VERSION,
        "status": "running",
        "endpoints": {
            "health": "/health",
            "categories": "/categories",
            "thoughts": "/thoughts",
            "webhook": "/webhook",
            "webhook_status": "/webhook/status/{thought_id}",
        },
    }


def main() -> None:
    import uvicorn

    uvicorn.run("minddump.api.app:app", host=API_HOST, port=API_PORT)


if __name__ == "__main__":
    main()
