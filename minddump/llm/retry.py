"""Gemini call with retry logic.

Transient provider failures (deadline, unavailable, rate limited, internal)
are converted to builtin exception types and retried with exponential
backoff. Anything else propagates on the first attempt; the analysis
gateway decides what a final failure means for the request.
"""

from __future__ import annotations

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from minddump.config import LLM_MAX_RETRIES
from minddump.infrastructure.settings import GEMINI_MAX_TOKENS, GEMINI_TEMPERATURE
from minddump.llm.gemini import get_gemini_model
from minddump.observability.logging import get_logger
from minddump.observability.telemetry import counter

logger = get_logger(__name__)


@retry(
    stop=stop_after_attempt(LLM_MAX_RETRIES + 1),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((TimeoutError, ConnectionError, OSError)),
    reraise=True,
)
def call_llm(prompt: str, counter_prefix: str = "analysis") -> str:
    """Send ``prompt`` to Gemini and return the response text.

    Raises:
        TimeoutError: Deadline exceeded (retried).
        ConnectionError: Service unavailable or internal error (retried).
        OSError: Resource exhausted / rate limited (retried).
        GeminiInitializationError: No usable backend (not retried).
    """
    from google.api_core.exceptions import (
        DeadlineExceeded,
        InternalServerError,
        ResourceExhausted,
        ServiceUnavailable,
    )

    model = get_gemini_model()
    generation_config = {
        "temperature": GEMINI_TEMPERATURE,
        "max_output_tokens": GEMINI_MAX_TOKENS,
        "response_mime_type": "application/json",
    }

    try:
        response = model.generate_content(prompt, generation_config=generation_config)
        return response.text
    except DeadlineExceeded as e:
        counter(f"{counter_prefix}.llm.timeout")
        logger.warning("LLM deadline exceeded, will retry: %s", e)
        raise TimeoutError(f"LLM call timed out: {e}") from e
    except ServiceUnavailable as e:
        counter(f"{counter_prefix}.llm.service_unavailable")
        logger.warning("LLM service unavailable, will retry: %s", e)
        raise ConnectionError(f"LLM service unavailable: {e}") from e
    except ResourceExhausted as e:
        counter(f"{counter_prefix}.llm.rate_limited")
        logger.warning("LLM rate limited (429), will retry: %s", e)
        raise OSError(f"LLM rate limited: {e}") from e
    except InternalServerError as e:
        counter(f"{counter_prefix}.llm.internal_error")
        logger.warning("LLM internal error (500), will retry: %s", e)
        raise ConnectionError(f"LLM internal error: {e}") from e
