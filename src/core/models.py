# src/core/models.py — v2
"""Domain models shared across the router: requests, selections, envelopes.

Python attributes are snake_case; the wire form (what callers send and
receive) is camelCase via the alias generator, e.g. ``use_case`` <->
``useCase``. The envelope's ``async`` key is aliased explicitly.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr
from pydantic.alias_generators import to_camel

from genrouter.registry.models import ModelCapabilities, ModelDescriptor, ModelPricing

ResponseStatus = Literal["completed", "processing", "failed"]

# Generation knobs that callers sometimes send at the request root instead of
# under ``parameters``. canonicalize_request() folds them into ``parameters``.
GENERATION_KNOBS: frozenset[str] = frozenset({
    "duration", "resolution", "aspectRatio", "quality", "audio", "fps",
    "count", "variations", "fast", "style", "strength", "guidance", "mask",
    "motionIntensity", "contentType", "tone", "length", "audience",
    "maxTokens", "temperature", "systemPrompt", "image",
})


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# === Request side ===


class MediaInput(_WireModel):
    """One media attachment. Fields are loose; the validator checks them."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    type: str | None = None
    data: Any = None
    role: str | None = None


class GenerationPreferences(_WireModel):
    """Caller preferences steering model selection and fallback."""

    provider: StrictStr | None = None
    model: StrictStr | None = None
    cost_tier: Literal["budget", "standard", "premium"] | None = None
    fallback: StrictBool = True
    priority: str | None = None


class GenerationRequest(_WireModel):
    """A single generation request as received from the caller.

    Unknown root keys are kept in ``model_extra`` so that requirement fields
    sent at the root (``contentType``, ``image``...) stay visible.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    capability: StrictStr | None = None
    use_case: StrictStr | None = None
    prompt: StrictStr | None = None
    media: list[MediaInput] = Field(default_factory=list)
    parameters: dict[str, Any] = Field(default_factory=dict)
    preferences: GenerationPreferences = Field(default_factory=GenerationPreferences)
    request_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def root_extras(self) -> dict[str, Any]:
        return dict(self.model_extra or {})

    def with_request_id(self, request_id: str) -> GenerationRequest:
        """Copy of the request carrying ``request_id``."""
        return self.model_copy(update={"request_id": request_id})

    def with_preferences(self, **updates: Any) -> GenerationRequest:
        prefs = self.preferences.model_copy(update=updates)
        return self.model_copy(update={"preferences": prefs})

    def image_media(self) -> list[MediaInput]:
        return [m for m in self.media if m.type == "image"]


def resolve_field(request: GenerationRequest, name: str) -> Any:
    """Read a requirement field: parameters, then root extras, then media.

    ``image`` is also satisfied by the first image media entry carrying data.
    Returns None when absent.
    """
    if name == "prompt":
        return request.prompt or None
    value = request.parameters.get(name)
    if value not in (None, ""):
        return value
    value = request.root_extras.get(name)
    if value not in (None, ""):
        return value
    if name == "image":
        for media in request.image_media():
            if media.data:
                return media.data
    return None


def canonicalize_request(request: GenerationRequest) -> GenerationRequest:
    """Fold root-level generation knobs into ``parameters``.

    ``parameters`` wins when both locations define the same key.
    """
    extras = request.root_extras
    moved = {
        key: value
        for key, value in extras.items()
        if key in GENERATION_KNOBS and key not in request.parameters
    }
    if not moved:
        return request
    return request.model_copy(update={"parameters": {**moved, **request.parameters}})


class ValidationReport(BaseModel):
    """Outcome of a validation stage: errors block, warnings annotate."""

    valid: bool = True
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    def add_error(self, message: str) -> None:
        self.errors.append(message)
        self.valid = False

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)

    def merge(self, other: ValidationReport) -> ValidationReport:
        """Fold another report into this one and return self."""
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        self.valid = not self.errors
        return self


# === Selection ===


class SelectionReason(str, Enum):
    SPECIFIC_REQUEST = "specific_request"
    PROVIDER_PREFERENCE = "provider_preference"
    AUTO_SELECTED = "auto_selected"
    VALIDATION_FALLBACK = "validation_fallback"
    ERROR_FALLBACK = "error_fallback"


class SelectionResult(BaseModel):
    """The chosen model snapshot for one request."""

    model_config = ConfigDict(frozen=True)

    descriptor: ModelDescriptor
    selection_reason: SelectionReason
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def of(cls, model: ModelDescriptor, reason: SelectionReason) -> SelectionResult:
        return cls(descriptor=model, selection_reason=reason)

    @property
    def model_id(self) -> str:
        return self.descriptor.id

    @property
    def model_name(self) -> str:
        return self.descriptor.display_name

    @property
    def provider(self) -> str:
        return self.descriptor.provider

    @property
    def tier(self) -> str:
        return self.descriptor.tier

    @property
    def capabilities(self) -> ModelCapabilities:
        return self.descriptor.capabilities

    @property
    def pricing(self) -> ModelPricing:
        return self.descriptor.pricing

    def as_dict(self) -> dict[str, Any]:
        return {
            "modelId": self.model_id,
            "modelName": self.model_name,
            "provider": self.provider,
            "tier": self.tier,
            "priority": self.descriptor.priority,
            "selectionReason": self.selection_reason.value,
            "timestamp": self.timestamp.isoformat(),
        }


class SelectionExplanation(BaseModel):
    """Human-readable account of why a model was chosen."""

    model_id: str
    model_name: str
    provider: str
    reason: SelectionReason
    factors: list[str] = Field(default_factory=list)
    alternatives_count: int = 0


# === Response envelope ===


class OutputArtifact(_WireModel):
    """A generated artifact. Provider-specific extras (duration, size...) allowed."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    type: str
    format: str = "unknown"
    data: Any = None


class UsageInfo(_WireModel):
    tokens_used: int | None = None
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    credits: int | None = None
    cost: float | None = None


class AsyncInfo(_WireModel):
    job_id: str
    status_url: str | None = None
    estimated_time: float | None = None


class ErrorInfo(_WireModel):
    message: str
    code: str = "UNKNOWN_ERROR"
    type: str = "Error"
    details: Any = None


class FallbackInfo(_WireModel):
    original_provider: str
    original_model: str | None = None
    original_error: str
    fallback_provider: str | None = None
    fallback_model: str | None = None
    fallback_error: str | None = None


class NormalizedResponse(_WireModel):
    """The only shape returned to callers, whatever the provider."""

    request_id: str
    success: bool = True
    status: ResponseStatus = "completed"
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    processing_time_ms: float | None = None
    provider: str = "unknown"
    model: str = "unknown"
    capability: str | None = None
    use_case: str | None = None
    output: OutputArtifact | None = None
    outputs: list[OutputArtifact] | None = None
    usage: UsageInfo | None = None
    async_info: AsyncInfo | None = Field(default=None, alias="async")
    error: ErrorInfo | None = None
    warnings: list[str] = Field(default_factory=list)
    fallback: FallbackInfo | None = None

    def to_dict(self) -> dict[str, Any]:
        """Wire representation (camelCase keys, JSON-safe values)."""
        return self.model_dump(by_alias=True, mode="json")
