"""Error taxonomy for thought processing.

Fatal errors (``ThoughtPipelineError`` subclasses) abort the request and are
rendered by the API as ``{error, code, details}`` with their status code.
``IntegrationFailure`` subclasses come from the best-effort legs; the pipeline
records them in the response envelope and never lets them escape.
"""

from __future__ import annotations

from typing import Any


class ThoughtPipelineError(Exception):
    """Fatal request error carrying an HTTP status and a stable error code."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class ValidationFailed(ThoughtPipelineError):
    status_code = 400
    code = "VALIDATION_ERROR"


class InvalidJSON(ThoughtPipelineError):
    status_code = 400
    code = "INVALID_JSON"


class InvalidAnalysis(ThoughtPipelineError):
    status_code = 400
    code = "INVALID_ANALYSIS"


class ServiceUnavailable(ThoughtPipelineError):
    status_code = 503
    code = "SERVICE_UNAVAILABLE"


class AnalysisFailed(ThoughtPipelineError):
    status_code = 503
    code = "ANALYSIS_FAILED"


class IntegrationFailure(Exception):
    """Non-fatal failure of a master-log, project-sheet or webhook leg."""


class MasterLogError(IntegrationFailure):
    """Both the secure and the fallback master-log writes failed."""


class ProjectSheetError(IntegrationFailure):
    pass


class WebhookDeliveryError(IntegrationFailure):
    pass


class NotFound(ThoughtPipelineError):
    status_code = 404
    code = "NOT_FOUND"


class MissingSignature(ThoughtPipelineError):
    status_code = 403
    code = "MISSING_SIGNATURE"


class InvalidSignature(ThoughtPipelineError):
    status_code = 403
    code = "INVALID_SIGNATURE"


class InvalidTimestamp(ThoughtPipelineError):
    status_code = 400
    code = "INVALID_TIMESTAMP"


class WebhookProcessingFailed(ThoughtPipelineError):
    status_code = 500
    code = "PROCESSING_FAILED"
