"""Exception hierarchy for reporting failures and their HTTP-facing payloads."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict


class InsightsError(Exception):
    """Base class for all domain-level errors in the reporting engine."""

    default_message = "Reporting error occurred"
    status_code = 500
    code = "INTERNAL_ERROR"
    public_message = "Something went wrong while building the report"

    def __init__(
        self, message: str | None = None, *, context: Mapping[str, Any] | None = None
    ):
        self.message = message or self.default_message
        self.context: Mapping[str, Any] = dict(context or {})
        formatted = self._format_message()
        super().__init__(formatted)

    def _format_message(self) -> str:
        if self.context:
            return f"{self.message} | context={self.context}"
        return self.message


class ValidationError(InsightsError):
    """Malformed or missing filter, date or pagination input."""

    default_message = "Invalid report parameters"
    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str | None = None,
        *,
        field: str | None = None,
        context: Mapping[str, Any] | None = None,
    ):
        self.field = field
        merged = dict(context or {})
        if field is not None:
            merged.setdefault("field", field)
        super().__init__(message, context=merged)


class DependencyError(InsightsError):
    """The event store is unreachable, timed out or returned an error."""

    default_message = "Event store unavailable"
    status_code = 503
    code = "DEPENDENCY_UNAVAILABLE"
    public_message = "Reporting data is temporarily unavailable, please try again"


class CacheError(InsightsError):
    """The cache is unreachable or erroring. Always recovered locally."""

    default_message = "Cache unavailable"
    status_code = 503
    code = "CACHE_UNAVAILABLE"


class DataIntegrityWarning(InsightsError):
    """A grouped result carried a key that maps outside the bucket range."""

    default_message = "Grouped key does not map to a bucket"
    code = "DATA_INTEGRITY"


class ErrorResponse(BaseModel):
    """Wire shape of an error surfaced to the HTTP layer."""

    model_config = ConfigDict(frozen=True)

    status: int
    code: str
    message: str
    field: Optional[str] = None


def error_response(exc: BaseException) -> ErrorResponse:
    """Map an exception onto the public error taxonomy."""

    if isinstance(exc, ValidationError):
        return ErrorResponse(
            status=exc.status_code,
            code=exc.code,
            message=exc.message,
            field=exc.field,
        )
    if isinstance(exc, InsightsError):
        return ErrorResponse(
            status=exc.status_code, code=exc.code, message=exc.public_message
        )
    return ErrorResponse(
        status=InsightsError.status_code,
        code=InsightsError.code,
        message=InsightsError.public_message,
    )
