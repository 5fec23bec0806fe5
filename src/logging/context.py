# src/logging/context.py — v2
"""Per-request and per-job logging context carried in contextvars.

asyncio tasks copy the context at creation, so a polling task started
inside a request keeps that request's id unless it sets its own.
"""

from __future__ import annotations

import contextvars
from dataclasses import asdict, dataclass
from typing import Any

_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_job_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "job_id", default=None
)
_capability: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "capability", default=None
)
_provider: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "provider", default=None
)


@dataclass(frozen=True)
class LogContext:
    """Snapshot of the current logging context."""

    request_id: str | None = None
    job_id: str | None = None
    capability: str | None = None
    provider: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Non-None fields only."""
        return {k: v for k, v in asdict(self).items() if v is not None}


def get_context() -> LogContext:
    return LogContext(
        request_id=_request_id.get(),
        job_id=_job_id.get(),
        capability=_capability.get(),
        provider=_provider.get(),
    )


def set_request_context(
    request_id: str,
    capability: str | None = None,
    provider: str | None = None,
) -> None:
    """Set request-level context (once per routed request)."""
    _request_id.set(request_id)
    _capability.set(capability)
    _provider.set(provider)


def set_provider_context(provider: str | None) -> None:
    _provider.set(provider)


def set_job_context(job_id: str, provider: str | None = None) -> None:
    """Set job-level context (inside a polling task)."""
    _job_id.set(job_id)
    if provider is not None:
        _provider.set(provider)


def clear_context() -> None:
    _request_id.set(None)
    _job_id.set(None)
    _capability.set(None)
    _provider.set(None)
