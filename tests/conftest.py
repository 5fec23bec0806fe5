# tests/conftest.py — v2
"""Shared test fixtures for the unit tests.

Provides the bundled registries, a credential table with google and azure
configured, a scriptable fake handler, and a fake clock/sleep pair for
deterministic polling. No network, no .env.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import pytest

from genrouter.config.credentials import ProviderCredentials
from genrouter.config.settings import Settings
from genrouter.core.models import GenerationRequest, SelectionResult
from genrouter.handlers.base_handler import BaseCapabilityHandler
from genrouter.handlers.registry import HandlerRegistry
from genrouter.jobs.models import PollingConfig
from genrouter.jobs.tracker import AsyncJobTracker
from genrouter.registry.capability_registry import CapabilityRegistry
from genrouter.registry.model_registry import ModelRegistry
from genrouter.routing.router import GenerationRouter


# === Fakes ===


class FakeClock:
    """Monotonic clock under test control."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSleep:
    """Records requested delays and advances the paired clock instead of waiting."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        self.clock.advance(delay)
        await asyncio.sleep(0)


class FakeHandler(BaseCapabilityHandler):
    """Scriptable handler.

    ``outcomes`` maps model id -> payload dict or exception instance;
    models without an entry return ``default_payload``.
    """

    def __init__(self) -> None:
        self.outcomes: dict[str, Any] = {}
        self.default_payload: dict[str, Any] = {"data": "generated"}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.async_enabled = False
        self.statuses: list[dict[str, Any]] = []
        self.status_calls = 0
        self.cancelled: list[str] = []
        self.cancel_error: Exception | None = None

    async def execute(
        self,
        request: GenerationRequest,
        selection: SelectionResult,
        metadata: dict[str, Any],
    ) -> dict[str, Any]:
        self.calls.append((selection.model_id, dict(metadata)))
        outcome = self.outcomes.get(selection.model_id, self.default_payload)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    @property
    def supports_async(self) -> bool:
        return self.async_enabled

    async def check_status(self, job_id: str, metadata: dict[str, Any]) -> Any:
        self.status_calls += 1
        if self.statuses:
            return self.statuses.pop(0)
        return {"status": "processing"}

    async def cancel_job(self, job_id: str, metadata: dict[str, Any]) -> bool:
        self.cancelled.append(job_id)
        if self.cancel_error is not None:
            raise self.cancel_error
        return True


# === FIXTURES: Isolation ===


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Drop handlers installed by setup_logging() so later tests start clean."""
    yield
    logging.getLogger("genrouter").handlers.clear()


# === FIXTURES: Configuration and registries ===


@pytest.fixture
def settings() -> Settings:
    """Settings that ignore any local .env file."""
    return Settings(_env_file=None)  # type: ignore[call-arg]


@pytest.fixture
def capability_registry() -> CapabilityRegistry:
    return CapabilityRegistry.default()


@pytest.fixture
def model_registry() -> ModelRegistry:
    return ModelRegistry.default()


@pytest.fixture
def credentials() -> ProviderCredentials:
    """google and azure configured; every other provider missing."""
    return ProviderCredentials.from_providers({"google", "azure"})


@pytest.fixture
def small_capability_registry() -> CapabilityRegistry:
    """One use case with two active providers and one planned provider."""
    return CapabilityRegistry.from_dict({
        "video-generation": {
            "description": "Video",
            "use_cases": {
                "text-to-video": {
                    "description": "Text to video",
                    "providers": {
                        "alpha": {"status": "active", "models": ["a-1", "a-2"]},
                        "beta": {"status": "active", "models": ["b-1"]},
                        "gamma": {"status": "planned", "models": ["g-1"]},
                    },
                    "fallback_order": ["beta", "alpha", "gamma"],
                    "requirements": {"essential": ["prompt"]},
                },
            },
        },
    })


@pytest.fixture
def small_model_registry() -> ModelRegistry:
    return ModelRegistry.from_dict({
        "video-generation": {
            "text-to-video": {
                "alpha": [
                    {"id": "a-1", "tier": "premium", "priority": 1,
                     "capabilities": {"max_duration": 8}, "pricing": {"per_second": 0.05}},
                    {"id": "a-2", "tier": "standard", "priority": 3,
                     "capabilities": {"max_duration": 4}, "pricing": {"per_second": 0.02}},
                ],
                "beta": [
                    {"id": "b-1", "tier": "standard", "priority": 2,
                     "capabilities": {"max_duration": 10}, "pricing": {"per_second": 0.03}},
                ],
                "gamma": [
                    {"id": "g-1", "tier": "budget", "priority": 1, "status": "planned"},
                ],
            },
        },
    })


# === FIXTURES: Handlers, clock, tracker, router ===


@pytest.fixture
def fake_handler() -> FakeHandler:
    return FakeHandler()


@pytest.fixture
def handler_registry(
    fake_handler: FakeHandler, capability_registry: CapabilityRegistry
) -> HandlerRegistry:
    """The same fake handler registered for every capability/use case."""
    registry = HandlerRegistry()
    for capability, use_case in capability_registry.iter_use_cases():
        registry.register(capability, use_case, lambda: fake_handler)
    return registry


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_sleep(fake_clock: FakeClock) -> FakeSleep:
    return FakeSleep(fake_clock)


@pytest.fixture
def polling_config() -> PollingConfig:
    return PollingConfig(
        initial_delay_s=5.0,
        max_delay_s=30.0,
        backoff_multiplier=1.5,
        max_attempts=10,
        timeout_s=3600.0,
    )


@pytest.fixture
def tracker(
    polling_config: PollingConfig, fake_clock: FakeClock, fake_sleep: FakeSleep
) -> AsyncJobTracker:
    return AsyncJobTracker(config=polling_config, clock=fake_clock, sleep=fake_sleep)


@pytest.fixture
def router(
    capability_registry: CapabilityRegistry,
    model_registry: ModelRegistry,
    handler_registry: HandlerRegistry,
    credentials: ProviderCredentials,
    tracker: AsyncJobTracker,
    settings: Settings,
) -> GenerationRouter:
    return GenerationRouter(
        capabilities=capability_registry,
        models=model_registry,
        handlers=handler_registry,
        credentials=credentials,
        job_tracker=tracker,
        settings=settings,
    )


@pytest.fixture
def video_request() -> dict[str, Any]:
    """Wire-form text-to-video request."""
    return {
        "capability": "video-generation",
        "useCase": "text-to-video",
        "prompt": "sunset",
        "parameters": {"duration": 5, "quality": "high"},
    }
