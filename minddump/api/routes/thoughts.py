"""Thought submission and listing endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from minddump.observability.logging import get_logger
from minddump.thoughts.errors import InvalidJSON
from minddump.thoughts.service import ThoughtPipeline, get_pipeline

router = APIRouter(tags=["thoughts"])
logger = get_logger(__name__)


@router.post("/thoughts")
async def submit_thought(
    request: Request,
    pipeline: ThoughtPipeline = Depends(get_pipeline),
) -> JSONResponse:
    """
    Analyze a thought and fan it out to the master log, project sheet and webhooks.

    Body: ``{"text": str, "category"?: str, "analysis"?: object}``. Supplying
    ``analysis`` bypasses the LLM; ``category`` overrides whatever it decides.
    """
    try:
        body: Any = await request.json()
    except ValueError as e:
        raise InvalidJSON("Invalid JSON in request body") from e

    response = await pipeline.process(body)
    return JSONResponse(status_code=200, content=response.to_json())


@router.get("/thoughts")
async def list_thoughts(
    # Raw strings so out-of-range or junk values clamp instead of 422-ing
    limit: str | None = Query(None, description="Page size, clamped to 1..100"),
    offset: str | None = Query(None, description="Items to skip, clamped to >= 0"),
    pipeline: ThoughtPipeline = Depends(get_pipeline),
) -> JSONResponse:
    result = pipeline.list_thoughts(limit, offset)
    return JSONResponse(content=result.to_json())
