# src/registry/models.py — v1
"""Registry descriptors: capabilities, use cases, providers and models.

All descriptors are frozen; they are built once from configuration data and
shared read-only for the life of the process.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

ProviderStatus = Literal["active", "planned", "deprecated", "disabled", "beta"]
ModelTier = Literal["budget", "standard", "premium"]


class ModelCapabilities(BaseModel):
    """Declared limits of a single model. Unknown keys are preserved."""

    model_config = ConfigDict(frozen=True, extra="allow")

    max_duration: float | None = None
    resolutions: tuple[str, ...] | None = None
    aspect_ratios: tuple[str, ...] | None = None
    audio: bool | None = None
    quality: tuple[str, ...] | None = None
    max_prompt_length: int | None = None


class ModelPricing(BaseModel):
    """Unit pricing. Only one of the per-unit fields is normally set."""

    model_config = ConfigDict(frozen=True)

    per_second: float | None = None
    per_image: float | None = None
    per_1k_tokens: float | None = None
    currency: str = "USD"

    @property
    def unit_cost(self) -> float:
        """First non-zero unit price, used for cost ordering."""
        return self.per_second or self.per_image or self.per_1k_tokens or 0.0


class ModelDescriptor(BaseModel):
    """One concrete model offered by a provider for a capability/use case."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    provider: str
    capability: str
    use_case: str
    tier: ModelTier = "standard"
    priority: int = 5
    status: ProviderStatus = "active"
    capabilities: ModelCapabilities = Field(default_factory=ModelCapabilities)
    pricing: ModelPricing = Field(default_factory=ModelPricing)
    description: str = ""

    @property
    def display_name(self) -> str:
        return self.name or self.id


class ProviderEntry(BaseModel):
    """A provider's participation in one use case."""

    model_config = ConfigDict(frozen=True)

    name: str
    status: ProviderStatus = "active"
    models: tuple[str, ...] = ()
    strengths: tuple[str, ...] = ()
    limitations: tuple[str, ...] = ()
    cost_tier: ModelTier = "standard"


class Requirements(BaseModel):
    """Request fields a use case needs."""

    model_config = ConfigDict(frozen=True)

    essential: tuple[str, ...] = ("prompt",)
    optional: tuple[str, ...] = ()


class UseCaseDescriptor(BaseModel):
    """A specific mode within a capability."""

    model_config = ConfigDict(frozen=True)

    name: str
    capability: str
    description: str = ""
    providers: dict[str, ProviderEntry] = Field(default_factory=dict)
    fallback_order: tuple[str, ...] = ()
    requirements: Requirements = Field(default_factory=Requirements)

    @property
    def active_providers(self) -> list[str]:
        return [n for n, p in self.providers.items() if p.status == "active"]


class CapabilityDescriptor(BaseModel):
    """A top-level generation domain."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    use_cases: dict[str, UseCaseDescriptor] = Field(default_factory=dict)


class RegistryStats(BaseModel):
    """Aggregate counts over the capability registry."""

    capabilities: int = 0
    use_cases: int = 0
    providers: int = 0
    active_providers: int = 0

    def as_dict(self) -> dict[str, Any]:
        return self.model_dump()
