# tests/unit/routing/test_unit_router.py — v2
"""Tests for routing/router.py — end-to-end routing with a fake handler."""

from __future__ import annotations

import re

import pytest

from genrouter.config.credentials import ProviderCredentials
from genrouter.core.errors import HandlerNotFoundError, SelectionError
from genrouter.core.models import GenerationRequest
from genrouter.handlers.registry import HandlerRegistry
from genrouter.registry.capability_registry import RegistryLookupError
from genrouter.routing.router import GenerationRouter


def _router(capability_registry, model_registry, settings, handlers=None, creds=None, **kwargs):
    return GenerationRouter(
        capabilities=capability_registry,
        models=model_registry,
        handlers=handlers if handlers is not None else HandlerRegistry(),
        credentials=creds or ProviderCredentials.from_providers({"google", "azure"}),
        settings=settings,
        **kwargs,
    )


class TestScenarios:
    @pytest.mark.asyncio
    async def test_selects_premium_lowest_priority(self, router, fake_handler, video_request):
        response = await router.route(video_request)

        assert response.success is True
        assert response.status == "completed"
        assert response.provider == "google"
        assert response.model == "veo-3.1-generate-001"
        assert fake_handler.calls[0][0] == "veo-3.1-generate-001"
        assert response.usage.cost == 0.25

    @pytest.mark.asyncio
    async def test_unknown_provider_preference_is_selection_error(
        self, router, fake_handler, video_request
    ):
        video_request["preferences"] = {"provider": "nonexistent"}
        response = await router.route(video_request)

        assert response.success is False
        assert response.status == "failed"
        assert response.error.code == "SELECTION_ERROR"
        assert response.error.type == SelectionError.__name__
        assert re.match(r"^req_\d+_\d{4}$", response.request_id)
        assert router.metrics.records[-1].request_id == response.request_id
        assert response.capability == "video-generation"
        assert response.use_case == "text-to-video"
        assert fake_handler.calls == []

    @pytest.mark.asyncio
    async def test_execution_failure_falls_back_once(self, router, fake_handler, video_request):
        fake_handler.outcomes["veo-3.1-generate-001"] = RuntimeError("provider down")

        response = await router.route(video_request)

        assert response.success is True
        assert response.model == "veo-3.1-fast-generate-001"
        assert response.fallback.original_provider == "google"
        assert response.fallback.original_model == "veo-3.1-generate-001"
        assert response.fallback.original_error == "provider down"
        assert response.to_dict()["fallback"]["originalProvider"] == "google"
        assert "Used fallback provider google due to google failure" in response.warnings
        assert [call[0] for call in fake_handler.calls] == [
            "veo-3.1-generate-001", "veo-3.1-fast-generate-001",
        ]
        assert fake_handler.calls[1][1]["is_fallback"] is True
        assert fake_handler.calls[1][1]["original_error"] == "provider down"


class TestFallback:
    @pytest.mark.asyncio
    async def test_disabled_by_preference(self, router, fake_handler, video_request):
        fake_handler.outcomes["veo-3.1-generate-001"] = RuntimeError("provider down")
        video_request["preferences"] = {"fallback": False}

        response = await router.route(video_request)

        assert response.success is False
        assert response.error.code == "EXECUTION_ERROR"
        assert response.fallback is None
        assert len(fake_handler.calls) == 1

    @pytest.mark.asyncio
    async def test_fallback_also_fails(self, router, fake_handler, video_request):
        fake_handler.outcomes["veo-3.1-generate-001"] = RuntimeError("provider down")
        fake_handler.outcomes["veo-3.1-fast-generate-001"] = RuntimeError("also down")

        response = await router.route(video_request)

        assert response.success is False
        assert response.error.message == "provider down"
        assert response.error.code == "EXECUTION_ERROR"
        assert response.fallback.original_error == "provider down"
        assert response.fallback.fallback_error == "also down"
        assert response.fallback.fallback_model == "veo-3.1-fast-generate-001"
        assert len(fake_handler.calls) == 2

    @pytest.mark.asyncio
    async def test_no_fallback_candidates(self, router, fake_handler):
        fake_handler.outcomes["gpt-image-1"] = RuntimeError("boom")
        response = await router.route({
            "capability": "image-generation", "useCase": "multiple-images",
            "prompt": "cats", "parameters": {"count": 2},
        })

        assert response.success is False
        assert response.fallback.fallback_error == (
            "No fallback models available. Original error: boom"
        )
        assert len(fake_handler.calls) == 1

    @pytest.mark.asyncio
    async def test_caller_errors_not_retried(self, router, fake_handler, video_request):
        fake_handler.outcomes["veo-3.1-generate-001"] = SelectionError("quota plan missing")
        response = await router.route(video_request)

        assert response.error.code == "SELECTION_ERROR"
        assert response.fallback is None
        assert len(fake_handler.calls) == 1

    @pytest.mark.asyncio
    async def test_validation_fallback_to_compatible_model(self, router, fake_handler, video_request):
        video_request["parameters"] = {"duration": 7}
        video_request["preferences"] = {"model": "veo-3.1-fast-generate-001"}

        response = await router.route(video_request)

        assert response.success is True
        assert response.model == "veo-3.1-generate-001"
        assert "Duration 7s exceeds model limit of 6s" in response.warnings

    @pytest.mark.asyncio
    async def test_replaced_model_not_retried_after_validation_fallback(
        self, router, fake_handler, video_request
    ):
        video_request["parameters"] = {"duration": 7}
        video_request["preferences"] = {"model": "veo-3.1-fast-generate-001"}
        fake_handler.outcomes["veo-3.1-generate-001"] = RuntimeError("provider down")

        response = await router.route(video_request)

        assert response.success is False
        assert [call[0] for call in fake_handler.calls] == ["veo-3.1-generate-001"]
        assert response.fallback.original_model == "veo-3.1-generate-001"
        assert response.fallback.fallback_error == (
            "No fallback models available. Original error: provider down"
        )


class TestValidationPath:
    @pytest.mark.asyncio
    async def test_missing_prompt(self, router, fake_handler):
        response = await router.route({"capability": "video-generation", "useCase": "text-to-video"})

        assert response.success is False
        assert response.error.code == "VALIDATION_ERROR"
        assert "Missing required field: prompt" in response.error.details
        assert fake_handler.calls == []

    @pytest.mark.asyncio
    async def test_never_raises_on_garbage(self, router):
        response = await router.route("not a request")  # type: ignore[arg-type]
        assert response.status == "failed"
        assert response.request_id.startswith("req_")

    @pytest.mark.asyncio
    async def test_validator_warnings_carried(self, router, video_request):
        video_request["media"] = [{"type": "image", "data": "aGk=", "role": "hero"}]
        response = await router.route(video_request)
        assert response.success
        assert any('Unknown role "hero"' in w for w in response.warnings)

    @pytest.mark.asyncio
    async def test_accepts_parsed_request(self, router):
        request = GenerationRequest(
            capability="text-generation", use_case="conversation", prompt="hello",
        )
        response = await router.route(request)
        assert response.success
        assert response.model == "gpt-4.1"


class TestHandlers:
    @pytest.mark.asyncio
    async def test_missing_handler_is_configuration_error(
        self, capability_registry, model_registry, settings, video_request
    ):
        router = _router(capability_registry, model_registry, settings)
        response = await router.route(video_request)
        assert response.error.code == "HANDLER_NOT_FOUND"
        assert response.fallback is None

    def test_strict_handlers(self, capability_registry, model_registry, settings):
        with pytest.raises(HandlerNotFoundError, match="video-generation/text-to-video"):
            _router(capability_registry, model_registry, settings, strict_handlers=True)

    def test_preload_and_clear(self, router):
        results = router.preload_handlers()
        assert all(error is None for error in results.values())
        assert router.clear_cache() == 7


class TestAsyncJobs:
    @pytest.mark.asyncio
    async def test_processing_response_is_tracked(self, router, fake_handler, tracker, video_request):
        fake_handler.async_enabled = True
        fake_handler.default_payload = {"name": "operations/op-1", "done": False}
        fake_handler.statuses = [{"status": "completed", "result": {"gcsUri": "gs://v.mp4"}}]

        response = await router.route(video_request)

        assert response.status == "processing"
        assert response.async_info.job_id == "operations/op-1"
        assert "operations/op-1" in tracker

        outcome = await tracker.wait_for_job("operations/op-1", timeout=5)
        assert outcome.status == "completed"
        assert outcome.result == {"gcsUri": "gs://v.mp4"}
        assert router.job_status("operations/op-1")["status"] == "completed"

    @pytest.mark.asyncio
    async def test_malformed_estimate_still_tracked(self, router, fake_handler, tracker, video_request):
        fake_handler.async_enabled = True
        fake_handler.default_payload = {
            "name": "operations/op-9", "done": False, "estimated_time": "about 2 minutes",
        }

        response = await router.route(video_request)

        assert response.success is True
        assert response.status == "processing"
        assert "operations/op-9" in tracker
        assert any("estimated_time" in w for w in response.warnings)
        assert len(fake_handler.calls) == 1
        await tracker.shutdown()

    @pytest.mark.asyncio
    async def test_sync_only_handler_not_tracked(self, router, fake_handler, tracker, video_request):
        fake_handler.default_payload = {"name": "operations/op-1", "done": False}
        response = await router.route(video_request)
        assert response.status == "processing"
        assert len(tracker) == 0

    @pytest.mark.asyncio
    async def test_cancel_calls_handler(self, router, fake_handler, tracker, video_request):
        fake_handler.async_enabled = True
        fake_handler.default_payload = {"name": "operations/op-2", "done": False}
        await router.route(video_request)

        result = await router.cancel_job("operations/op-2")

        assert result.success is True
        assert result.remote_cancelled is True
        assert fake_handler.cancelled == ["operations/op-2"]
        assert router.job_status("operations/op-2")["reason"] == "cancelled"

    @pytest.mark.asyncio
    async def test_cancel_remote_failure(self, router, fake_handler, video_request):
        fake_handler.async_enabled = True
        fake_handler.default_payload = {"name": "operations/op-3", "done": False}
        fake_handler.cancel_error = RuntimeError("provider refused")
        await router.route(video_request)

        result = await router.cancel_job("operations/op-3")

        assert result.success is True
        assert result.remote_cancelled is False
        assert result.error == "provider refused"

    @pytest.mark.asyncio
    async def test_cancel_unknown(self, router):
        result = await router.cancel_job("missing")
        assert result.success is False
        assert result.error == "Job not found"

    def test_no_tracker(self, capability_registry, model_registry, settings):
        router = _router(capability_registry, model_registry, settings)
        assert router.job_status("x") == {"status": "not_found", "error": "Job not found"}


class TestIntrospection:
    def test_request_ids_unique(self, router):
        ids = {router.next_request_id() for _ in range(50)}
        assert len(ids) == 50

    @pytest.mark.asyncio
    async def test_every_outcome_recorded(self, router, video_request):
        await router.route(video_request)
        await router.route({"prompt": "missing capability"})
        summary = router.metrics.summary()
        assert summary.total_requests == 2
        assert summary.failed == 1

    def test_capability_info(self, router):
        info = router.capability_info("video-generation", "text-to-video")
        assert info["activeProviders"] == ["google"]
        assert [m["id"] for m in info["models"]] == [
            "veo-3.1-generate-001", "veo-3.1-fast-generate-001",
        ]

    def test_capability_info_unknown(self, router):
        with pytest.raises(RegistryLookupError):
            router.capability_info("nope")

    def test_list_capabilities(self, router):
        assert len(router.list_capabilities()) == 3

    def test_stats(self, router):
        stats = router.stats()
        assert stats["capabilities"]["capabilities"] == 3
        assert stats["requests"]["totalRequests"] == 0
        assert stats["jobs"]["activeJobs"] == 0

    def test_health_all_good(self, router):
        health = router.health_check()
        assert health["status"] == "healthy"
        assert set(health["components"]) == {
            "capabilityRegistry", "handlers", "providers", "jobTracker",
        }

    def test_health_missing_handlers_warns(self, capability_registry, model_registry, settings):
        health = _router(capability_registry, model_registry, settings).health_check()
        assert health["status"] == "warning"
        assert len(health["components"]["handlers"]["missing"]) == 7

    def test_health_no_credentials_errors(
        self, capability_registry, model_registry, settings, handler_registry
    ):
        router = _router(
            capability_registry, model_registry, settings,
            handlers=handler_registry, creds=ProviderCredentials.from_providers(set()),
        )
        assert router.health_check()["status"] == "error"
