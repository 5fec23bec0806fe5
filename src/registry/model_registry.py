# src/registry/model_registry.py — v1
"""Model registry — capability -> use case -> provider -> model descriptors.

Descriptors are immutable once loaded. The same model id may be offered for
several use cases (e.g. gpt-image-1); scoped lookups prefer the entry that
matches the requested capability/use case.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from genrouter.registry.capability_registry import RegistryLookupError
from genrouter.registry.models import ModelCapabilities, ModelDescriptor

logger = logging.getLogger(__name__)


class ModelRegistry:
    """Read-only catalog of model descriptors."""

    def __init__(self, models: list[ModelDescriptor]) -> None:
        self._models = list(models)
        self._index: dict[tuple[str, str], dict[str, list[ModelDescriptor]]] = {}
        for model in self._models:
            by_provider = self._index.setdefault((model.capability, model.use_case), {})
            by_provider.setdefault(model.provider, []).append(model)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ModelRegistry:
        """Build from a capability -> use case -> provider -> [model] mapping."""
        models: list[ModelDescriptor] = []
        for capability, use_cases in data.items():
            for use_case, providers in use_cases.items():
                for provider, entries in providers.items():
                    for entry in entries:
                        models.append(
                            ModelDescriptor(
                                provider=provider,
                                capability=capability,
                                use_case=use_case,
                                **entry,
                            )
                        )
        logger.debug("Model registry loaded: %d model entries", len(models))
        return cls(models)

    @classmethod
    def default(cls) -> ModelRegistry:
        """Registry built from the bundled model catalog."""
        from genrouter.config.model_catalog import MODEL_CATALOG

        return cls.from_dict(MODEL_CATALOG)

    def models_for(
        self,
        capability: str,
        use_case: str,
        provider: str | None = None,
    ) -> list[ModelDescriptor]:
        """All models for a pair, sorted by ascending priority (stable).

        Raises:
            RegistryLookupError: If the pair (or provider) is unknown.
        """
        by_provider = self._index.get((capability, use_case))
        if by_provider is None:
            raise RegistryLookupError(
                f"No models registered for {capability}/{use_case}"
            )
        if provider is not None:
            if provider not in by_provider:
                raise RegistryLookupError(
                    f"Provider '{provider}' not found for {capability}/{use_case}"
                )
            return sorted(by_provider[provider], key=lambda m: m.priority)

        models = [m for entries in by_provider.values() for m in entries]
        return sorted(models, key=lambda m: m.priority)

    def get_model(
        self,
        model_id: str,
        capability: str | None = None,
        use_case: str | None = None,
    ) -> ModelDescriptor:
        """Find a model by id, preferring the entry for the given scope."""
        matches = [m for m in self._models if m.id == model_id]
        if not matches:
            raise RegistryLookupError(f"Model '{model_id}' not found in registry")
        for model in matches:
            if (capability is None or model.capability == capability) and (
                use_case is None or model.use_case == use_case
            ):
                return model
        return matches[0]

    def has_model(self, model_id: str) -> bool:
        return any(m.id == model_id for m in self._models)

    def model_capabilities(
        self,
        model_id: str,
        capability: str | None = None,
        use_case: str | None = None,
    ) -> ModelCapabilities:
        return self.get_model(model_id, capability, use_case).capabilities

    def providers_for(self, capability: str, use_case: str) -> list[str]:
        return list(self._index.get((capability, use_case), {}))

    def supports_provider(self, provider: str, capability: str, use_case: str) -> bool:
        return provider in self._index.get((capability, use_case), {})

    def all_models(self) -> list[ModelDescriptor]:
        return list(self._models)

    def __len__(self) -> int:
        return len(self._models)
