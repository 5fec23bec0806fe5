# src/handlers/base_handler.py — v1
"""Capability handler interface.

A handler performs the provider call for one (capability, use case) pair
and returns the raw provider payload; the router normalizes it. Handlers
for long-running providers also implement check_status/cancel_job and
report ``supports_async``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from genrouter.core.models import GenerationRequest, SelectionResult, ValidationReport
from genrouter.jobs.models import JobStatusUpdate


class BaseCapabilityHandler(ABC):
    """Unified interface for provider integrations."""

    @abstractmethod
    async def execute(
        self,
        request: GenerationRequest,
        selection: SelectionResult,
        metadata: dict[str, Any],
    ) -> dict[str, Any]:
        """Run the generation and return the raw provider payload.

        Raises:
            Exception: Any failure; the router treats it as an execution
                error eligible for one fallback attempt.
        """

    @property
    def supports_async(self) -> bool:
        """Whether check_status/cancel_job are implemented."""
        return False

    async def check_status(self, job_id: str, metadata: dict[str, Any]) -> JobStatusUpdate:
        raise NotImplementedError(f"{type(self).__name__} does not track async jobs")

    async def cancel_job(self, job_id: str, metadata: dict[str, Any]) -> bool:
        raise NotImplementedError(f"{type(self).__name__} does not support cancellation")

    def validate_request(
        self, request: GenerationRequest, selection: SelectionResult
    ) -> ValidationReport:
        """Handler-specific request checks. Default: always valid."""
        return ValidationReport()

    @property
    def name(self) -> str:
        return type(self).__name__
