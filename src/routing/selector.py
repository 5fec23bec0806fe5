# src/routing/selector.py — v2
"""Model selection with strategy scoring and an ordered fallback chain.

Selection order:
  1. Candidates: registry models for the pair, minus non-routable statuses,
     inactive providers and providers without credentials.
  2. Explicit model preference (must match exactly).
  3. Explicit provider preference (restricts candidates).
  4. Capability-fit filter on request parameters (falls back to the
     unfiltered list when nothing fits).
  5. Strategy: cost tier > quality > speed > balanced score.

Every step is a pure function of (request, registries, credentials), so the
same inputs always yield the same model.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Collection

from genrouter.core.errors import SelectionError
from genrouter.core.models import (
    GenerationRequest,
    SelectionExplanation,
    SelectionReason,
    SelectionResult,
)
from genrouter.registry.capability_registry import CapabilityRegistry, RegistryLookupError
from genrouter.registry.model_registry import ModelRegistry
from genrouter.registry.models import ModelDescriptor

if TYPE_CHECKING:
    from genrouter.config.credentials import ProviderCredentials

logger = logging.getLogger(__name__)

NON_ROUTABLE_STATUSES = frozenset({"deprecated", "disabled", "planned"})

_STATUS_BONUS = {"active": 5, "beta": 2}
_TIER_BONUS = {"premium": 3, "standard": 4, "budget": 1}


class Strategy(str, Enum):
    COST = "cost"
    QUALITY = "quality"
    SPEED = "speed"
    BALANCED = "balanced"


def _by_priority(models: list[ModelDescriptor]) -> list[ModelDescriptor]:
    return sorted(models, key=lambda m: m.priority)


class ModelSelector:
    """Chooses a model for a validated request.

    Args:
        capabilities: Capability registry (provider status, fallback order).
        models: Model registry.
        credentials: Credential table; models of unconfigured providers are
            never candidates.
        max_fallbacks: Upper bound on the fallback chain length.
    """

    def __init__(
        self,
        capabilities: CapabilityRegistry,
        models: ModelRegistry,
        credentials: ProviderCredentials,
        max_fallbacks: int = 3,
    ) -> None:
        self._capabilities = capabilities
        self._models = models
        self._credentials = credentials
        self._max_fallbacks = max_fallbacks

    # ------------------------------------------------------------------
    # Candidates
    # ------------------------------------------------------------------

    def available_models(self, capability: str, use_case: str) -> list[ModelDescriptor]:
        """Routable models for the pair, ordered by ascending priority."""
        try:
            models = self._models.models_for(capability, use_case)
        except RegistryLookupError:
            return []

        active_providers = set(self._capabilities.active_providers(capability, use_case)) \
            if self._capabilities.has_use_case(capability, use_case) else set()

        return [
            m for m in models
            if m.status not in NON_ROUTABLE_STATUSES
            and m.provider in active_providers
            and self._credentials.is_configured(m.provider)
        ]

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select(self, request: GenerationRequest) -> SelectionResult:
        """Pick the model for a request.

        Raises:
            SelectionError: No candidate at all, or the requested
                model/provider is not available.
        """
        capability, use_case = request.capability or "", request.use_case or ""
        candidates = self.available_models(capability, use_case)
        if not candidates:
            raise SelectionError(f"No models available for {capability}/{use_case}")

        prefs = request.preferences
        if prefs.model:
            for model in candidates:
                if model.id == prefs.model:
                    return self._result(model, SelectionReason.SPECIFIC_REQUEST)
            raise SelectionError(f'Requested model "{prefs.model}" not available')

        if prefs.provider:
            provider_models = [m for m in candidates if m.provider == prefs.provider]
            if not provider_models:
                raise SelectionError(
                    f'No models available from provider "{prefs.provider}"'
                )
            chosen = self.select_from(provider_models, request)
            return self._result(chosen, SelectionReason.PROVIDER_PREFERENCE)

        chosen = self.select_from(candidates, request)
        return self._result(chosen, SelectionReason.AUTO_SELECTED)

    def select_from(
        self, models: list[ModelDescriptor], request: GenerationRequest
    ) -> ModelDescriptor:
        """Apply the capability-fit filter, then the request's strategy."""
        compatible = self.filter_by_capabilities(models, request)
        if not compatible:
            logger.debug("No model fits the parameters; using unfiltered candidates")
            compatible = models

        strategy = self.strategy_for(request)
        if strategy is Strategy.COST:
            return self.select_by_cost(compatible, request.preferences.cost_tier)
        if strategy is Strategy.QUALITY:
            return self.select_by_quality(compatible)
        if strategy is Strategy.SPEED:
            return self.select_by_speed(compatible)
        return self.select_balanced(compatible, request)

    @staticmethod
    def filter_by_capabilities(
        models: list[ModelDescriptor], request: GenerationRequest
    ) -> list[ModelDescriptor]:
        """Models whose declared limits accommodate the request parameters."""
        params = request.parameters
        compatible = []
        for model in models:
            caps = model.capabilities
            duration = params.get("duration")
            if duration and caps.max_duration and duration > caps.max_duration:
                continue
            if params.get("resolution") and caps.resolutions \
                    and params["resolution"] not in caps.resolutions:
                continue
            if params.get("aspectRatio") and caps.aspect_ratios \
                    and params["aspectRatio"] not in caps.aspect_ratios:
                continue
            if params.get("quality") and caps.quality and params["quality"] not in caps.quality:
                continue
            if params.get("audio") is True and caps.audio is False:
                continue
            compatible.append(model)
        return compatible

    @staticmethod
    def strategy_for(request: GenerationRequest) -> Strategy:
        prefs = request.preferences
        params = request.parameters
        if prefs.cost_tier:
            return Strategy.COST
        if params.get("quality") in ("high", "ultra"):
            return Strategy.QUALITY
        if prefs.priority == "speed" or params.get("fast") is True:
            return Strategy.SPEED
        return Strategy.BALANCED

    @staticmethod
    def select_by_cost(models: list[ModelDescriptor], tier: str | None) -> ModelDescriptor:
        """Best-priority model in the tier, else the globally cheapest."""
        in_tier = [m for m in models if m.tier == tier]
        if in_tier:
            return _by_priority(in_tier)[0]
        return sorted(models, key=lambda m: m.pricing.unit_cost)[0]

    @staticmethod
    def select_by_quality(models: list[ModelDescriptor]) -> ModelDescriptor:
        premium = [m for m in models if m.tier == "premium"]
        return _by_priority(premium or models)[0]

    @staticmethod
    def select_by_speed(models: list[ModelDescriptor]) -> ModelDescriptor:
        fast = [
            m for m in models
            if "fast" in m.id.lower() or "fast" in m.name.lower()
        ]
        if fast:
            return _by_priority(fast)[0]
        standard = [m for m in models if m.tier == "standard"]
        if standard:
            return _by_priority(standard)[0]
        return models[0]

    def select_balanced(
        self, models: list[ModelDescriptor], request: GenerationRequest
    ) -> ModelDescriptor:
        """Max balanced score; ties go to lower priority, then first seen."""
        best_index = max(
            range(len(models)),
            key=lambda i: (
                self.balanced_score(models[i], request),
                -models[i].priority,
                -i,
            ),
        )
        return models[best_index]

    @staticmethod
    def balanced_score(model: ModelDescriptor, request: GenerationRequest) -> int:
        """(10 - priority) * 2 + status bonus + tier bonus + capability fit."""
        score = (10 - model.priority) * 2
        score += _STATUS_BONUS.get(model.status, 0)
        score += _TIER_BONUS.get(model.tier, 0)

        params = request.parameters
        caps = model.capabilities
        duration = params.get("duration")
        if duration and caps.max_duration:
            if caps.max_duration >= duration * 1.5:
                score += 2
            elif caps.max_duration >= duration:
                score += 1

        if params.get("quality") and caps.quality and params["quality"] in caps.quality:
            score += 2

        if params.get("audio") and caps.audio is True:
            score += 1

        return score

    # ------------------------------------------------------------------
    # Fallback chain
    # ------------------------------------------------------------------

    def fallback_models(
        self,
        request: GenerationRequest,
        exclude_model_id: str | None = None,
        also_exclude: Collection[str] = (),
    ) -> list[ModelDescriptor]:
        """Alternates in provider fallback order, priority within provider.

        ``also_exclude`` lists further model ids already ruled out for this
        request (e.g. a model replaced by a validation fallback).
        """
        capability, use_case = request.capability or "", request.use_case or ""
        excluded = {exclude_model_id, *also_exclude}
        candidates = [
            m for m in self.available_models(capability, use_case)
            if m.id not in excluded
        ]
        if not candidates:
            return []

        ordered: list[ModelDescriptor] = []
        for provider in self._capabilities.fallback_order(capability, use_case):
            ordered.extend(_by_priority([m for m in candidates if m.provider == provider]))

        listed = {id(m) for m in ordered}
        ordered.extend(m for m in candidates if id(m) not in listed)
        return ordered[: self._max_fallbacks]

    def explain_selection(
        self, selection: SelectionResult, request: GenerationRequest
    ) -> SelectionExplanation:
        """Human-readable factors behind a selection."""
        factors: list[str] = []
        prefs = request.preferences
        if prefs.model:
            factors.append("Specific model requested by user")
        elif prefs.provider:
            factors.append(f"Provider preference: {prefs.provider}")
        else:
            factors.append("Automatically selected based on requirements")
            factors.append(f"Strategy: {self.strategy_for(request).value}")
            if selection.tier == "premium":
                factors.append("Premium tier selected for high quality")
            if selection.capabilities.max_duration:
                duration = request.parameters.get("duration", "default")
                factors.append(f"Supports requested duration: {duration}s")

        available = self.available_models(request.capability or "", request.use_case or "")
        return SelectionExplanation(
            model_id=selection.model_id,
            model_name=selection.model_name,
            provider=selection.provider,
            reason=selection.selection_reason,
            factors=factors,
            alternatives_count=max(len(available) - 1, 0),
        )

    @staticmethod
    def _result(model: ModelDescriptor, reason: SelectionReason) -> SelectionResult:
        logger.info(
            "Selected model %s (%s) reason=%s", model.id, model.provider, reason.value,
        )
        return SelectionResult.of(model, reason)
