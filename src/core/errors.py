# src/core/errors.py — v1
"""Error taxonomy for the generation router.

Every error carries a stable ``code`` and a ``kind``: CALLER errors (bad
request, nothing eligible) are never retried; EXTERNAL errors (provider or
status-check failures) may be. The router and tracker convert them to
envelopes; they never escape to the caller.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from genrouter.core.models import ErrorInfo


class ErrorKind(str, Enum):
    CALLER = "caller"
    EXTERNAL = "external"
    CONFIGURATION = "configuration"


class GenerationError(Exception):
    """Base class for all router errors."""

    code = "GENERATION_ERROR"
    kind = ErrorKind.EXTERNAL
    retryable = False

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class RequestValidationError(GenerationError):
    """Request shape or parameters are invalid."""

    code = "VALIDATION_ERROR"
    kind = ErrorKind.CALLER

    def __init__(self, errors: list[str], warnings: list[str] | None = None) -> None:
        super().__init__(f"Validation failed: {', '.join(errors)}", details=errors)
        self.errors = list(errors)
        self.warnings = list(warnings or [])


class SelectionError(GenerationError):
    """No eligible model/provider for the request."""

    code = "SELECTION_ERROR"
    kind = ErrorKind.CALLER


class ExecutionError(GenerationError):
    """A provider call failed. Eligible for one fallback attempt."""

    code = "EXECUTION_ERROR"
    retryable = True

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        model: str | None = None,
        details: Any = None,
    ) -> None:
        super().__init__(message, details=details)
        self.provider = provider
        self.model = model


class NormalizationError(GenerationError):
    """A provider payload could not be mapped to the envelope."""

    code = "NORMALIZATION_ERROR"


class PollingError(GenerationError):
    """A status check failed or the attempt budget ran out."""

    code = "POLLING_ERROR"
    retryable = True

    def __init__(self, message: str, job_id: str, attempts: int) -> None:
        super().__init__(message)
        self.job_id = job_id
        self.attempts = attempts


class JobTimeoutError(GenerationError):
    """A job exceeded its wall-clock budget. Always terminal."""

    code = "JOB_TIMEOUT"

    def __init__(self, job_id: str, timeout_s: float, attempts: int) -> None:
        super().__init__(f"Job timed out after {timeout_s:g}s")
        self.job_id = job_id
        self.timeout_s = timeout_s
        self.attempts = attempts


class HandlerNotFoundError(GenerationError):
    """No handler registered for a capability/use case."""

    code = "HANDLER_NOT_FOUND"
    kind = ErrorKind.CONFIGURATION


def error_info(exc: BaseException) -> ErrorInfo:
    """Map any exception to the envelope's error block."""
    if isinstance(exc, GenerationError):
        return ErrorInfo(
            message=exc.message,
            code=exc.code,
            type=type(exc).__name__,
            details=exc.details,
        )
    code = getattr(exc, "code", None)
    return ErrorInfo(
        message=str(exc) or type(exc).__name__,
        code=str(code) if code not in (None, "") else "UNKNOWN_ERROR",
        type=type(exc).__name__,
    )
