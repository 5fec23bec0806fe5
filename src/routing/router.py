# src/routing/router.py — v2
"""GenerationRouter: validate -> select -> dispatch -> normalize.

Per request:
  1. Assign a request id (before anything else; echoed on every path).
  2. Validate (errors -> failed envelope, no fallback).
  3. Select a model (SelectionError -> failed envelope, no fallback).
  4. Re-check parameters against the chosen model; on errors re-select the
     first fallback model (validation_fallback).
  5. Dispatch to the handler for the pair and normalize its payload.
  6. On an execution failure, try the first fallback model once, unless
     ``preferences.fallback`` is False. The fallback request carries
     ``fallback=False``.

route() never raises. Async responses (status ``processing`` with a job
id) are handed to the AsyncJobTracker when the handler supports it.
"""

from __future__ import annotations

import functools
import itertools
import logging
import time
from typing import Any, Callable, Mapping

from genrouter.config.credentials import ProviderCredentials
from genrouter.config.settings import Settings, load_settings
from genrouter.core.errors import (
    ErrorKind,
    ExecutionError,
    GenerationError,
    HandlerNotFoundError,
    RequestValidationError,
    error_info,
)
from genrouter.core.models import (
    FallbackInfo,
    GenerationRequest,
    NormalizedResponse,
    SelectionReason,
    SelectionResult,
)
from genrouter.handlers.base_handler import BaseCapabilityHandler
from genrouter.handlers.registry import HandlerRegistry
from genrouter.jobs.models import CancelResult
from genrouter.jobs.tracker import AsyncJobTracker
from genrouter.logging.context import set_provider_context, set_request_context
from genrouter.registry.capability_registry import CapabilityRegistry
from genrouter.registry.model_registry import ModelRegistry
from genrouter.routing.normalizer import ResponseNormalizer, coerce_request
from genrouter.routing.selector import ModelSelector
from genrouter.routing.validator import RequestValidator
from genrouter.tracking.metrics import MetricsCollector, estimate_cost

logger = logging.getLogger(__name__)


class GenerationRouter:
    """Routes generation requests to provider handlers.

    Args:
        capabilities: Capability registry.
        models: Model registry.
        handlers: Handler registry keyed by (capability, use case).
        credentials: Provider credential table.
        job_tracker: Tracker for async jobs; async responses are returned
            without polling when None.
        settings: Router limits (prompt soft limit, fallback chain length,
            status URL prefix, metrics history).
        clock: Monotonic clock in seconds, for processing times.
        strict_handlers: Raise HandlerNotFoundError at construction when
            a capability/use case pair has no handler.
    """

    def __init__(
        self,
        capabilities: CapabilityRegistry,
        models: ModelRegistry,
        handlers: HandlerRegistry,
        credentials: ProviderCredentials,
        job_tracker: AsyncJobTracker | None = None,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.monotonic,
        strict_handlers: bool = False,
    ) -> None:
        settings = settings or load_settings()
        self._capabilities = capabilities
        self._models = models
        self._handlers = handlers
        self._credentials = credentials
        self._tracker = job_tracker
        self._clock = clock

        self.validator = RequestValidator(
            capabilities, models, prompt_soft_limit=settings.prompt_soft_limit
        )
        self.selector = ModelSelector(
            capabilities, models, credentials,
            max_fallbacks=settings.fallback_max_candidates,
        )
        self.normalizer = ResponseNormalizer(settings.status_url_prefix)
        self.metrics = MetricsCollector(settings.metrics_history_size)

        self._counter = itertools.count(1)
        self._request_count = 0

        missing = handlers.missing_for(capabilities)
        if missing:
            if strict_handlers:
                raise HandlerNotFoundError(f"No handler registered for: {', '.join(missing)}")
            logger.warning("No handler registered for: %s", ", ".join(missing))

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    def next_request_id(self) -> str:
        """``req_<epoch-ms>_<counter>``, unique per router."""
        self._request_count = next(self._counter)
        return f"req_{int(time.time() * 1000)}_{self._request_count:04d}"

    async def route(
        self, request: GenerationRequest | Mapping[str, Any]
    ) -> NormalizedResponse:
        """Route one request. Never raises."""
        started = self._clock()
        request_id = self.next_request_id()
        set_request_context(request_id)

        label = _label_request(request, request_id)
        selection: SelectionResult | None = None
        warnings: list[str] = []
        rejected: list[str] = []

        try:
            logger.info(
                "Processing request %s for %s/%s",
                request_id, label.capability, label.use_case,
            )
            parsed, report = self.validator.check(request, check_preferences=False)
            warnings.extend(report.warnings)
            if parsed is None or not report.valid:
                raise RequestValidationError(report.errors, report.warnings)
            label = parsed.with_request_id(request_id)
            set_request_context(request_id, capability=label.capability)
            if report.warnings:
                logger.warning("Request warnings: %s", "; ".join(report.warnings))

            selection = self.selector.select(label)
            set_provider_context(selection.provider)

            model_report = self.validator.validate_against_model(label, selection.model_id)
            warnings.extend(model_report.warnings)
            if not model_report.valid:
                logger.warning("Model validation failed: %s", "; ".join(model_report.errors))
                warnings.extend(model_report.errors)
                fallbacks = self.selector.fallback_models(label, selection.model_id)
                if fallbacks:
                    rejected.append(selection.model_id)
                    selection = SelectionResult.of(
                        fallbacks[0], SelectionReason.VALIDATION_FALLBACK
                    )
                    set_provider_context(selection.provider)
                    logger.info("Validation fallback to %s", selection.model_id)

            response = await self._dispatch(label, selection, started)
            response.warnings = _dedupe(warnings + response.warnings)

        except Exception as exc:
            response = await self._handle_failure(
                exc, label, selection, started, warnings, rejected
            )

        self._record(response, started)
        return response

    async def _dispatch(
        self,
        request: GenerationRequest,
        selection: SelectionResult,
        started: float,
        original_error: str | None = None,
    ) -> NormalizedResponse:
        """Resolve the handler, execute, normalize and start polling if async."""
        capability, use_case = request.capability or "", request.use_case or ""
        handler = self._handlers.resolve(capability, use_case)

        handler_report = handler.validate_request(request, selection)
        if not handler_report.valid:
            raise RequestValidationError(handler_report.errors, handler_report.warnings)

        metadata: dict[str, Any] = {
            "request_id": request.request_id,
            "provider": selection.provider,
            "model": selection.model_id,
            "model_name": selection.model_name,
            "is_fallback": original_error is not None,
        }
        if original_error is not None:
            metadata["original_error"] = original_error

        logger.info(
            "Executing %s/%s with %s (%s)",
            capability, use_case, selection.provider, selection.model_id,
        )
        try:
            payload = await handler.execute(request, selection, metadata)
        except GenerationError:
            raise
        except Exception as exc:
            raise ExecutionError(
                str(exc) or type(exc).__name__,
                provider=selection.provider,
                model=selection.model_id,
                details=getattr(exc, "details", None),
            ) from exc

        metadata["processing_time_ms"] = self._elapsed_ms(started)
        response = self.normalizer.normalize(payload, request, metadata)
        response.warnings.extend(handler_report.warnings)

        if response.success and response.usage is not None and response.usage.cost is None:
            response.usage.cost = estimate_cost(selection.pricing, request, response.usage)

        self._maybe_track(response, handler, request, selection)
        return response

    def _maybe_track(
        self,
        response: NormalizedResponse,
        handler: BaseCapabilityHandler,
        request: GenerationRequest,
        selection: SelectionResult,
    ) -> None:
        if (
            self._tracker is None
            or response.status != "processing"
            or response.async_info is None
            or not handler.supports_async
        ):
            return

        job_id = response.async_info.job_id
        job_metadata = {
            "request_id": request.request_id,
            "capability": request.capability,
            "use_case": request.use_case,
            "provider": selection.provider,
            "model": selection.model_id,
        }
        try:
            self._tracker.start_polling(
                job_id,
                selection.provider,
                functools.partial(handler.check_status, metadata=job_metadata),
                metadata=job_metadata,
            )
        except Exception as exc:
            logger.exception("Could not start polling for job %s", job_id)
            response.warnings.append(f"Job polling could not be started: {exc}")

    async def _handle_failure(
        self,
        exc: Exception,
        request: GenerationRequest,
        selection: SelectionResult | None,
        started: float,
        warnings: list[str],
        rejected: list[str] | None = None,
    ) -> NormalizedResponse:
        logger.error("Request %s failed: %s", request.request_id, exc)

        if (
            selection is not None
            and request.preferences.fallback
            and _can_fall_back(exc)
        ):
            try:
                return await self._attempt_fallback(
                    request, selection, exc, started, warnings, rejected
                )
            except Exception as fallback_exc:
                logger.error("Fallback also failed: %s", fallback_exc)
                response = self._error_response(exc, request, selection, started, warnings)
                response.fallback = FallbackInfo(
                    original_provider=selection.provider,
                    original_model=selection.model_id,
                    original_error=_message(exc),
                    fallback_error=_message(fallback_exc),
                    fallback_provider=getattr(fallback_exc, "provider", None),
                    fallback_model=getattr(fallback_exc, "model", None),
                )
                return response

        if isinstance(exc, RequestValidationError):
            warnings = _dedupe(warnings + exc.warnings)
        return self._error_response(exc, request, selection, started, warnings)

    async def _attempt_fallback(
        self,
        request: GenerationRequest,
        failed: SelectionResult,
        error: Exception,
        started: float,
        warnings: list[str],
        rejected: list[str] | None = None,
    ) -> NormalizedResponse:
        candidates = self.selector.fallback_models(
            request, failed.model_id, also_exclude=rejected or (),
        )
        if not candidates:
            raise ExecutionError(
                f"No fallback models available. Original error: {_message(error)}"
            )

        fallback = SelectionResult.of(candidates[0], SelectionReason.ERROR_FALLBACK)
        fallback_request = request.with_preferences(fallback=False)
        set_provider_context(fallback.provider)
        logger.info("Attempting fallback with %s (%s)", fallback.model_id, fallback.provider)

        response = await self._dispatch(
            fallback_request, fallback, started, original_error=_message(error)
        )
        response.warnings = _dedupe(warnings + response.warnings)
        response.warnings.append(
            f"Used fallback provider {fallback.provider} due to {failed.provider} failure"
        )
        response.fallback = FallbackInfo(
            original_provider=failed.provider,
            original_model=failed.model_id,
            original_error=_message(error),
            fallback_provider=fallback.provider,
            fallback_model=fallback.model_id,
        )
        return response

    def _error_response(
        self,
        exc: Exception,
        request: GenerationRequest,
        selection: SelectionResult | None,
        started: float,
        warnings: list[str],
    ) -> NormalizedResponse:
        metadata = {
            "request_id": request.request_id,
            "provider": selection.provider if selection else None,
            "model": selection.model_id if selection else None,
            "processing_time_ms": self._elapsed_ms(started),
        }
        response = self.normalizer.create_error_response(exc, request, metadata)
        response.warnings = _dedupe(list(warnings))
        return response

    def _record(self, response: NormalizedResponse, started: float) -> None:
        cost = response.usage.cost if response.usage is not None else None
        self.metrics.record(response, self._elapsed_ms(started), estimated_cost=cost)

    def _elapsed_ms(self, started: float) -> float:
        return round((self._clock() - started) * 1000, 3)

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    def job_status(self, job_id: str) -> dict[str, Any]:
        if self._tracker is None:
            return {"status": "not_found", "error": "Job not found"}
        return self._tracker.get_job_status(job_id)

    async def cancel_job(self, job_id: str) -> CancelResult:
        """Cancel a tracked job, asking its handler to cancel remotely."""
        if self._tracker is None:
            return CancelResult(success=False, job_id=job_id, error="Job not found")

        metadata = self._tracker.job_metadata(job_id)
        cancel_fn = None
        if metadata is not None:
            try:
                handler = self._handlers.resolve(
                    metadata.get("capability") or "", metadata.get("use_case") or ""
                )
                if handler.supports_async:
                    cancel_fn = functools.partial(handler.cancel_job, metadata=metadata)
            except HandlerNotFoundError as exc:
                logger.warning("No handler to cancel job %s remotely: %s", job_id, exc)
        return await self._tracker.cancel_job(job_id, cancel_fn)

    # ------------------------------------------------------------------
    # Introspection and operations
    # ------------------------------------------------------------------

    def list_capabilities(self) -> list[dict[str, Any]]:
        return self._capabilities.list_capabilities()

    def capability_info(self, capability: str, use_case: str | None = None) -> dict[str, Any]:
        """Description of a capability, or of one of its use cases.

        Raises:
            RegistryLookupError: Unknown capability or use case.
        """
        if use_case is None:
            cap = self._capabilities.get_capability(capability)
            return {
                "capability": capability,
                "description": cap.description,
                "useCases": self._capabilities.list_use_cases(capability),
            }

        uc = self._capabilities.get_use_case(capability, use_case)
        return {
            "capability": capability,
            "useCase": use_case,
            "description": uc.description,
            "activeProviders": uc.active_providers,
            "requirements": uc.requirements.model_dump(),
            "fallbackOrder": list(uc.fallback_order),
            "models": [
                {
                    "id": m.id,
                    "name": m.display_name,
                    "provider": m.provider,
                    "tier": m.tier,
                    "priority": m.priority,
                }
                for m in self.selector.available_models(capability, use_case)
            ],
        }

    def stats(self) -> dict[str, Any]:
        return {
            "requestCount": self._request_count,
            "cachedHandlers": self._handlers.cached_count,
            "capabilities": self._capabilities.stats().as_dict(),
            "requests": self.metrics.as_dict(),
            "jobs": self._tracker.stats() if self._tracker is not None else None,
        }

    def health_check(self) -> dict[str, Any]:
        """Component-wise health; overall is the worst component status."""
        components: dict[str, dict[str, Any]] = {}

        cap_stats = self._capabilities.stats()
        components["capabilityRegistry"] = {
            "status": "healthy" if cap_stats.active_providers > 0 else "warning",
            "stats": cap_stats.as_dict(),
        }

        missing = self._handlers.missing_for(self._capabilities)
        components["handlers"] = {
            "status": "warning" if missing else "healthy",
            "registered": len(self._handlers.registered),
            "cached": self._handlers.cached_count,
            "missing": missing,
        }

        configured = self._credentials.configured_providers()
        components["providers"] = {
            "status": "healthy" if configured else "error",
            "configured": len(configured),
            "available": configured,
        }

        if self._tracker is not None:
            components["jobTracker"] = self._tracker.health_check()

        statuses = {c["status"] for c in components.values()}
        if "error" in statuses:
            overall = "error"
        elif "warning" in statuses:
            overall = "warning"
        else:
            overall = "healthy"

        return {
            "status": overall,
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "components": components,
        }

    def clear_cache(self) -> int:
        return self._handlers.clear_cache()

    def preload_handlers(self) -> dict[str, str | None]:
        return self._handlers.preload()


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _can_fall_back(exc: Exception) -> bool:
    """Only external failures are worth a second provider."""
    if isinstance(exc, GenerationError):
        return exc.kind is ErrorKind.EXTERNAL
    return True


def _label_request(request: Any, request_id: str) -> GenerationRequest:
    """Request used to label envelopes before (or without) validation."""
    return coerce_request(request).with_request_id(request_id)


def _message(exc: BaseException) -> str:
    return error_info(exc).message


def _dedupe(items: list[str]) -> list[str]:
    return list(dict.fromkeys(items))
