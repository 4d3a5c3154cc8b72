"""
Error message sanitization utility.

Integration errors are copied into the response envelope and fatal errors into
the error body; neither may leak file paths, stack traces, credentials or
internal module names to the client.
"""

from __future__ import annotations

import re

from minddump.observability.logging import get_logger

logger = get_logger(__name__)

# Patterns that might leak sensitive information
SENSITIVE_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        # File paths
        r"/[^\s]+\.py",
        r"[A-Za-z]:\\[^\s]+",
        # Stack trace indicators
        r"Traceback \(most recent call last\)",
        r"File \".*\"",
        # Credentials
        r"-----BEGIN [A-Z ]*PRIVATE KEY-----",
        r"Bearer [A-Za-z0-9._-]+",
        r"AIza[0-9A-Za-z_-]{20,}",  # Google API keys
        r"[A-Za-z0-9_-]{40,}",  # Long opaque tokens
        # Internal module names
        r"minddump\.[a-z_.]+",
    )
]

GENERIC_MESSAGES = {
    400: "Invalid request. Please check your input and try again.",
    404: "Resource not found.",
    429: "Too many requests. Please try again later.",
    500: "An internal error occurred. Please try again later.",
    502: "Upstream integration failed.",
    503: "Service temporarily unavailable.",
}

MAX_MESSAGE_LENGTH = 300


def sanitize_error_message(message: str | None, status_code: int = 502) -> str:
    """
    Return ``message`` if it is safe to show a client, otherwise a generic message.

    Args:
        message: The original error message
        status_code: Selects the generic fallback text

    Returns:
        Sanitized error message safe for client consumption
    """
    generic = GENERIC_MESSAGES.get(status_code, "An error occurred.")
    if not message:
        return generic

    for pattern in SENSITIVE_PATTERNS:
        if pattern.search(message):
            logger.warning("Sanitized sensitive error pattern: %s", pattern.pattern)
            return generic

    message = " ".join(message.split())
    if len(message) > MAX_MESSAGE_LENGTH:
        message = message[:MAX_MESSAGE_LENGTH] + "..."
    return message


def describe_error(error: BaseException, status_code: int = 502) -> str:
    """Safe one-line description of an exception for the response envelope."""
    text = str(error) or type(error).__name__
    return sanitize_error_message(text, status_code)
