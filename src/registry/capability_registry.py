# src/registry/capability_registry.py — v1
"""Capability registry — capability -> use case -> provider lookup.

Built from config.capabilities.CAPABILITY_MATRIX (or any mapping of the same
shape) and read-only afterwards, so it can be shared across concurrent
requests without locking.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from genrouter.registry.models import (
    CapabilityDescriptor,
    ProviderEntry,
    RegistryStats,
    Requirements,
    UseCaseDescriptor,
)

logger = logging.getLogger(__name__)


class RegistryLookupError(KeyError):
    """Raised when a capability, use case, provider or model is unknown."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Registry lookup failed"


class CapabilityRegistry:
    """Read-only view over the capability matrix."""

    def __init__(self, capabilities: dict[str, CapabilityDescriptor]) -> None:
        self._capabilities = capabilities

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CapabilityRegistry:
        """Build a registry from a raw capability matrix mapping."""
        capabilities: dict[str, CapabilityDescriptor] = {}
        for cap_name, cap_data in data.items():
            use_cases: dict[str, UseCaseDescriptor] = {}
            for uc_name, uc_data in cap_data.get("use_cases", {}).items():
                providers = {
                    p_name: ProviderEntry(name=p_name, **p_data)
                    for p_name, p_data in uc_data.get("providers", {}).items()
                }
                use_cases[uc_name] = UseCaseDescriptor(
                    name=uc_name,
                    capability=cap_name,
                    description=uc_data.get("description", ""),
                    providers=providers,
                    fallback_order=tuple(uc_data.get("fallback_order", ())),
                    requirements=Requirements(**uc_data.get("requirements", {})),
                )
            capabilities[cap_name] = CapabilityDescriptor(
                name=cap_name,
                description=cap_data.get("description", ""),
                use_cases=use_cases,
            )
        logger.debug("Capability registry loaded: %d capabilities", len(capabilities))
        return cls(capabilities)

    @classmethod
    def default(cls) -> CapabilityRegistry:
        """Registry built from the bundled capability matrix."""
        from genrouter.config.capabilities import CAPABILITY_MATRIX

        return cls.from_dict(CAPABILITY_MATRIX)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_capability(self, capability: str) -> CapabilityDescriptor:
        cap = self._capabilities.get(capability)
        if cap is None:
            raise RegistryLookupError(f"Capability '{capability}' not found in matrix")
        return cap

    def get_use_case(self, capability: str, use_case: str) -> UseCaseDescriptor:
        cap = self.get_capability(capability)
        uc = cap.use_cases.get(use_case)
        if uc is None:
            raise RegistryLookupError(
                f"Use case '{use_case}' not found for capability '{capability}'"
            )
        return uc

    def has_use_case(self, capability: str, use_case: str) -> bool:
        cap = self._capabilities.get(capability)
        return cap is not None and use_case in cap.use_cases

    def list_capabilities(self) -> list[dict[str, Any]]:
        """Summaries of every capability with its use case names."""
        return [
            {
                "name": cap.name,
                "description": cap.description,
                "useCases": list(cap.use_cases),
            }
            for cap in self._capabilities.values()
        ]

    def list_use_cases(self, capability: str) -> list[dict[str, Any]]:
        cap = self.get_capability(capability)
        return [
            {
                "name": uc.name,
                "description": uc.description,
                "providers": list(uc.providers),
            }
            for uc in cap.use_cases.values()
        ]

    def iter_use_cases(self) -> list[tuple[str, str]]:
        """All (capability, use_case) pairs in declaration order."""
        return [
            (cap.name, uc_name)
            for cap in self._capabilities.values()
            for uc_name in cap.use_cases
        ]

    def active_providers(self, capability: str, use_case: str) -> list[str]:
        return self.get_use_case(capability, use_case).active_providers

    def fallback_order(self, capability: str, use_case: str) -> list[str]:
        return list(self.get_use_case(capability, use_case).fallback_order)

    def requirements(self, capability: str, use_case: str) -> Requirements:
        return self.get_use_case(capability, use_case).requirements

    def supports_provider(self, provider: str, capability: str, use_case: str) -> bool:
        """Whether the provider is listed for the pair (any status)."""
        if not self.has_use_case(capability, use_case):
            return False
        return provider in self.get_use_case(capability, use_case).providers

    def provider_info(self, provider: str, capability: str, use_case: str) -> ProviderEntry:
        uc = self.get_use_case(capability, use_case)
        entry = uc.providers.get(provider)
        if entry is None:
            raise RegistryLookupError(
                f"Provider '{provider}' not found for {capability}/{use_case}"
            )
        return entry

    def recommended_provider(
        self,
        capability: str,
        use_case: str,
        provider: str | None = None,
        cost_tier: str | None = None,
    ) -> str:
        """Pick an active provider: explicit > matching cost tier > fallback order.

        Raises:
            RegistryLookupError: If the pair has no active provider.
        """
        uc = self.get_use_case(capability, use_case)
        active = uc.active_providers
        if not active:
            raise RegistryLookupError(
                f"No active providers available for {capability}/{use_case}"
            )

        if provider and provider in active:
            return provider

        if cost_tier:
            for name in active:
                if uc.providers[name].cost_tier == cost_tier:
                    return name

        for name in uc.fallback_order:
            if name in active:
                return name

        return active[0]

    def stats(self) -> RegistryStats:
        """Counts of capabilities, use cases and provider entries."""
        stats = RegistryStats(capabilities=len(self._capabilities))
        for cap in self._capabilities.values():
            stats.use_cases += len(cap.use_cases)
            for uc in cap.use_cases.values():
                stats.providers += len(uc.providers)
                stats.active_providers += len(uc.active_providers)
        return stats
