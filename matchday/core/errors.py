"""
Exception hierarchy for the sync and settlement pipelines.

Every error carries a ``step`` tag naming the pipeline stage that failed.
Routes translate these into HTTP 500 responses shaped as
``{"step": ..., "error": ..., "details": ...}``.
"""
from typing import Any, Optional


class MatchdayError(Exception):
    """Base class for pipeline failures."""

    step: str = "internal"

    def __init__(self, message: str, step: Optional[str] = None, details: Any = None):
        super().__init__(message)
        self.message = message
        if step is not None:
            self.step = step
        self.details = details

    def to_dict(self) -> dict:
        """Serialize for an error response body."""
        body = {"step": self.step, "error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ConfigurationError(MatchdayError):
    """A required setting (provider key, host, URL) is missing."""

    step = "config"


class ProviderError(MatchdayError):
    """
    Failure talking to a third-party data provider.

    Steps:
        api_fetch: transport error, timeout or open circuit breaker
        api_response: non-2xx status (``status_code`` is set)
        api_json: body is not JSON or not the expected envelope
        api_payload: envelope parsed but items fail schema validation
    """

    step = "api_fetch"

    def __init__(
        self,
        message: str,
        step: Optional[str] = None,
        details: Any = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, step=step, details=details)
        self.status_code = status_code

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.status_code is not None:
            body["status"] = self.status_code
        return body


class PayloadValidationError(ProviderError):
    """Provider payload does not match the expected schema."""

    step = "api_payload"


class StoreError(MatchdayError):
    """Persistence failure (query or upsert)."""

    step = "db_query"
