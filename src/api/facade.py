# src/api/facade.py — v2
"""Public service facade: the generation HTTP surface without a framework.

Usage:
    from genrouter.api.facade import build_service
    service = build_service(handlers=my_handlers)
    reply = await service.generate({"capability": ..., "useCase": ..., "prompt": ...})
    reply.status_code, reply.body

Each method returns an ApiResponse whose body is JSON-ready. A web layer
only has to map paths to methods.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Mapping

from genrouter.api.models import (
    HTTP_ACCEPTED,
    HTTP_BAD_GATEWAY,
    HTTP_BAD_REQUEST,
    HTTP_NOT_FOUND,
    HTTP_OK,
    HTTP_SERVER_ERROR,
    HTTP_UNAVAILABLE,
    ApiResponse,
)
from genrouter.config.credentials import ProviderCredentials
from genrouter.config.settings import Settings, load_settings
from genrouter.handlers.registry import HandlerRegistry
from genrouter.jobs.models import PollingConfig
from genrouter.jobs.tracker import AsyncJobTracker
from genrouter.registry.capability_registry import CapabilityRegistry, RegistryLookupError
from genrouter.registry.model_registry import ModelRegistry
from genrouter.routing.router import GenerationRouter

logger = logging.getLogger(__name__)

_CALLER_ERROR_CODES = frozenset({"VALIDATION_ERROR", "SELECTION_ERROR"})
_UPSTREAM_ERROR_CODES = frozenset({
    "EXECUTION_ERROR", "NORMALIZATION_ERROR", "POLLING_ERROR", "JOB_TIMEOUT",
})


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class GenerationService:
    """HTTP-shaped operations over a GenerationRouter."""

    def __init__(self, router: GenerationRouter, tracker: AsyncJobTracker | None = None) -> None:
        self.router = router
        self.tracker = tracker

    async def generate(self, body: Mapping[str, Any]) -> ApiResponse:
        """POST /generate: 200 completed, 202 processing, 4xx/5xx failed."""
        try:
            response = await self.router.route(body)
        except Exception as exc:
            logger.exception("Generation failed unexpectedly")
            return ApiResponse(
                status_code=HTTP_SERVER_ERROR,
                body={"success": False, "error": str(exc), "timestamp": _now()},
            )

        payload = response.to_dict()
        if response.status == "processing" and response.async_info is not None:
            payload["message"] = "Generation started - use job ID to check status"
            payload["statusUrl"] = response.async_info.status_url
            return ApiResponse(status_code=HTTP_ACCEPTED, body=payload)

        if response.success:
            return ApiResponse(status_code=HTTP_OK, body=payload)

        code = response.error.code if response.error else ""
        if code in _CALLER_ERROR_CODES:
            status = HTTP_BAD_REQUEST
        elif code in _UPSTREAM_ERROR_CODES:
            status = HTTP_BAD_GATEWAY
        else:
            status = HTTP_SERVER_ERROR
        return ApiResponse(status_code=status, body=payload)

    def job_status(self, job_id: str) -> ApiResponse:
        """GET /status/{job_id}"""
        status = self.router.job_status(job_id)
        if status.get("status") == "not_found":
            return ApiResponse(
                status_code=HTTP_NOT_FOUND,
                body={"success": False, "jobId": job_id, **status},
            )
        return ApiResponse(body={"success": True, "jobId": job_id, **status})

    async def cancel(self, job_id: str) -> ApiResponse:
        """POST /cancel/{job_id}"""
        result = await self.router.cancel_job(job_id)
        body = {**result.as_dict(), "timestamp": _now()}
        if not result.success:
            return ApiResponse(status_code=HTTP_BAD_REQUEST, body=body)
        return ApiResponse(body={**body, "message": "Job cancelled successfully"})

    def capabilities(self) -> ApiResponse:
        """GET /capabilities"""
        return ApiResponse(
            body={"success": True, "capabilities": self.router.list_capabilities()}
        )

    def capability(self, capability: str, use_case: str | None = None) -> ApiResponse:
        """GET /capabilities/{capability}[/{use_case}]"""
        try:
            info = self.router.capability_info(capability, use_case)
        except RegistryLookupError as exc:
            return ApiResponse(
                status_code=HTTP_NOT_FOUND,
                body={"success": False, "error": str(exc)},
            )
        return ApiResponse(body={"success": True, **info})

    def health(self) -> ApiResponse:
        """GET /health: 200 when every component is healthy, else 503."""
        try:
            health = self.router.health_check()
        except Exception as exc:
            logger.exception("Health check failed")
            return ApiResponse(
                status_code=HTTP_UNAVAILABLE,
                body={"status": "error", "error": str(exc), "timestamp": _now()},
            )
        status = HTTP_OK if health["status"] == "healthy" else HTTP_UNAVAILABLE
        return ApiResponse(status_code=status, body=health)

    def jobs(self) -> ApiResponse:
        """GET /jobs"""
        if self.tracker is None:
            return ApiResponse(body={"success": True, "activeJobs": [], "stats": None})
        return ApiResponse(
            body={
                "success": True,
                "activeJobs": [job.as_dict() for job in self.tracker.active_jobs()],
                "stats": self.tracker.stats(),
            }
        )

    def validate(self, body: Mapping[str, Any]) -> ApiResponse:
        """POST /validate: validator dry-run, nothing is executed."""
        report = self.router.validator.validate(body)
        return ApiResponse(
            body={
                "success": True,
                "validation": report.model_dump(),
            }
        )

    def stats(self) -> ApiResponse:
        """GET /stats"""
        return ApiResponse(
            body={"success": True, "timestamp": _now(), **self.router.stats()}
        )


def build_tracker(settings: Settings) -> AsyncJobTracker:
    return AsyncJobTracker(
        config=PollingConfig.from_settings(settings),
        history_size=settings.polling_history_size,
        stuck_after_s=settings.polling_stuck_after_s,
        max_active_jobs=settings.polling_max_active_jobs,
    )


def build_service(
    settings: Settings | None = None,
    handlers: HandlerRegistry | None = None,
    capabilities: CapabilityRegistry | None = None,
    models: ModelRegistry | None = None,
    credentials: ProviderCredentials | None = None,
    tracker: AsyncJobTracker | None = None,
) -> GenerationService:
    """Wire a GenerationService from settings and the bundled registries.

    Args:
        settings: Loaded from .env if None.
        handlers: Provider handlers; an empty registry when None.
        capabilities: Defaults to the bundled capability matrix.
        models: Defaults to the bundled model catalog.
        credentials: Built from settings if None.
        tracker: Built from the settings' polling values if None.
    """
    settings = settings or load_settings()
    if capabilities is None:
        capabilities = CapabilityRegistry.default()
    if models is None:
        models = ModelRegistry.default()
    if credentials is None:
        credentials = ProviderCredentials(settings)
    if tracker is None:
        tracker = build_tracker(settings)

    router = GenerationRouter(
        capabilities=capabilities,
        models=models,
        handlers=handlers if handlers is not None else HandlerRegistry(),
        credentials=credentials,
        job_tracker=tracker,
        settings=settings,
    )
    logger.debug("Generation service ready (%d models)", len(models))
    return GenerationService(router, tracker)
