"""
Gemini model access for thought analysis.

One cached model instance serves every request. Two backends are supported:
  1. Vertex AI SDK (deployed) - GOOGLE_CLOUD_PROJECT + service account
  2. google-generativeai (local dev) - GOOGLE_API_KEY
"""

from __future__ import annotations

import os
from functools import lru_cache

from minddump.infrastructure.settings import GEMINI_LOCATION, GEMINI_MODEL
from minddump.observability.logging import get_logger

logger = get_logger(__name__)


class GeminiInitializationError(RuntimeError):
    """Raised when no Gemini backend can be initialized."""


def _init_vertex(project: str, location: str):
    import vertexai
    from vertexai.generative_models import GenerativeModel

    vertexai.init(project=project, location=location)
    logger.info(
        "Initialized Gemini model (Vertex AI): project=%s, location=%s, model=%s",
        project,
        location,
        GEMINI_MODEL,
    )
    return GenerativeModel(GEMINI_MODEL)


def _init_genai(api_key: str):
    import google.generativeai as genai

    genai.configure(api_key=api_key)
    logger.info("Initialized Gemini model (google-generativeai): model=%s", GEMINI_MODEL)
    return genai.GenerativeModel(GEMINI_MODEL)


@lru_cache(maxsize=1)
def get_gemini_model():
    """
    Return the shared Gemini model.

    Vertex AI is preferred when a project is configured and the SDK is
    installed; otherwise the API-key client is used.

    Raises:
        GeminiInitializationError: If neither backend is usable
    """
    # Read env fresh; dotenv may have loaded after settings was imported
    project = os.getenv("GOOGLE_CLOUD_PROJECT")
    location = os.getenv("GEMINI_LOCATION") or GEMINI_LOCATION
    api_key = os.getenv("GOOGLE_API_KEY")

    if project:
        try:
            return _init_vertex(project, location)
        except ImportError:
            logger.info("Vertex AI SDK not installed, trying google-generativeai fallback")
        except Exception as e:
            if not api_key:
                raise GeminiInitializationError(f"Failed to initialize Vertex AI: {e}") from e
            logger.warning("Vertex AI init failed, falling back to API key: %s", e)

    if not api_key:
        raise GeminiInitializationError(
            "No analysis credentials: set GOOGLE_CLOUD_PROJECT or GOOGLE_API_KEY."
        )

    try:
        return _init_genai(api_key)
    except ImportError as e:
        raise GeminiInitializationError(
            "No Gemini SDK available. Install google-cloud-aiplatform or google-generativeai."
        ) from e
    except Exception as e:
        logger.error("Failed to initialize Gemini model: %s", e)
        raise GeminiInitializationError(f"Failed to initialize Gemini: {e}") from e


def clear_model_cache() -> None:
    """Drop the cached model so the next call re-reads configuration."""
    get_gemini_model.cache_clear()
