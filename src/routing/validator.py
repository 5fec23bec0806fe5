# src/routing/validator.py — v1
"""Request validation against the capability and model registries.

Stages run in order: structure, capability, parameters, media, preferences.
A structural failure short-circuits the rest. Everything here is a pure
function of the request and the (read-only) registries.

validate_against_model() is a second entry point, run after selection,
that checks parameters against one model's declared limits.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Mapping

from pydantic import ValidationError as PydanticValidationError

from genrouter.core.models import (
    GenerationRequest,
    ValidationReport,
    canonicalize_request,
    resolve_field,
)
from genrouter.registry.capability_registry import CapabilityRegistry, RegistryLookupError
from genrouter.registry.model_registry import ModelRegistry

logger = logging.getLogger(__name__)

VALID_RESOLUTIONS = ("480p", "720p", "1080p", "4k", "512x512", "1024x1024", "1536x1536")
VALID_ASPECT_RATIOS = ("16:9", "9:16", "1:1", "4:3", "3:4")
VALID_QUALITIES = ("low", "standard", "high", "ultra")
VALID_MEDIA_TYPES = ("image", "video", "audio")
KNOWN_MEDIA_ROLES = ("subject", "background", "style", "reference", "mask")
REQUIRED_FIELDS = ("capability", "use_case", "prompt")

LONG_DURATION_S = 60
LARGE_BASE64_CHARS = 10_000_000  # ~7MB decoded

_BASE64_RE = re.compile(r"^[A-Za-z0-9+/]+={0,2}$")
_WIRE_NAMES = {"use_case": "useCase"}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class RequestValidator:
    """Validates generation requests. Stateless apart from the registries."""

    def __init__(
        self,
        capabilities: CapabilityRegistry,
        models: ModelRegistry,
        prompt_soft_limit: int = 5000,
    ) -> None:
        self._capabilities = capabilities
        self._models = models
        self._prompt_soft_limit = prompt_soft_limit

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def parse(
        self, request: GenerationRequest | Mapping[str, Any]
    ) -> tuple[GenerationRequest | None, ValidationReport]:
        """Structure stage: coerce to a GenerationRequest and canonicalize it.

        Returns:
            (request, report). ``request`` is None when the payload could not
            be parsed at all.
        """
        report = ValidationReport()
        if isinstance(request, GenerationRequest):
            parsed = request
        elif isinstance(request, Mapping):
            try:
                parsed = GenerationRequest.model_validate(dict(request))
            except PydanticValidationError as exc:
                for err in exc.errors():
                    report.add_error(_describe_pydantic_error(err))
                return None, report
        else:
            report.add_error("Request must be an object")
            return None, report

        parsed = canonicalize_request(parsed)
        report.merge(self.validate_structure(parsed))
        return parsed, report

    def check(
        self,
        request: GenerationRequest | Mapping[str, Any],
        check_preferences: bool = True,
    ) -> tuple[GenerationRequest | None, ValidationReport]:
        """Run the stages and return the canonical request with the report.

        The router passes ``check_preferences=False`` and leaves preference
        consistency to the selector, which fails with SelectionError.
        """
        parsed, report = self.parse(request)
        if parsed is None or not report.valid:
            return parsed, report

        report.merge(self.validate_capability(parsed))
        report.merge(self.validate_parameters(parsed))
        if parsed.media:
            report.merge(self.validate_media(parsed))
        if check_preferences:
            report.merge(self.validate_preferences(parsed))
        return parsed, report

    def validate(self, request: GenerationRequest | Mapping[str, Any]) -> ValidationReport:
        """Run all validation stages and return the combined report."""
        return self.check(request)[1]

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def validate_structure(self, request: GenerationRequest) -> ValidationReport:
        report = ValidationReport()
        for field in REQUIRED_FIELDS:
            if getattr(request, field) is None:
                report.add_error(f"Missing required field: {_WIRE_NAMES.get(field, field)}")

        if request.prompt is not None:
            if not request.prompt.strip():
                report.add_error("Prompt cannot be empty")
            elif len(request.prompt) > self._prompt_soft_limit:
                report.add_warning(
                    "Prompt is very long and may be truncated by some providers"
                )
        return report

    def validate_capability(self, request: GenerationRequest) -> ValidationReport:
        report = ValidationReport()
        capability, use_case = request.capability or "", request.use_case or ""
        try:
            requirements = self._capabilities.requirements(capability, use_case)
            active = self._capabilities.active_providers(capability, use_case)
        except RegistryLookupError as exc:
            report.add_error(f"Invalid capability/use case: {exc}")
            return report

        for field in requirements.essential:
            if resolve_field(request, field) is None:
                report.add_error(f"Missing required field: {field}")

        if not active:
            report.add_error(f"No active providers available for {capability}/{use_case}")
        return report

    def validate_parameters(self, request: GenerationRequest) -> ValidationReport:
        report = ValidationReport()
        params = request.parameters

        if "duration" in params:
            duration = params["duration"]
            if not _is_number(duration) or duration <= 0:
                report.add_error('Parameter "duration" must be a positive number')
            elif duration > LONG_DURATION_S:
                report.add_warning(
                    "Duration over 60 seconds may not be supported by all providers"
                )

        _check_choice(report, params, "resolution", VALID_RESOLUTIONS)
        _check_choice(report, params, "aspectRatio", VALID_ASPECT_RATIOS, label="aspect ratio")
        _check_choice(report, params, "quality", VALID_QUALITIES)

        if "audio" in params and not isinstance(params["audio"], bool):
            report.add_error('Parameter "audio" must be a boolean')

        if request.capability == "video-generation":
            _check_range(report, params, "fps", 1, 60)

        if request.capability == "image-generation":
            _check_range(report, params, "variations", 1, 10)
            _check_range(report, params, "count", 1, 10)

        return report

    def validate_media(self, request: GenerationRequest) -> ValidationReport:
        report = ValidationReport()

        for i, media in enumerate(request.media):
            prefix = f"Media[{i}]"
            if not media.type:
                report.add_error(f'{prefix}: Missing required field "type"')
                continue
            if not media.data:
                report.add_error(f'{prefix}: Missing required field "data"')
                continue
            if media.type not in VALID_MEDIA_TYPES:
                report.add_error(
                    f'{prefix}: Invalid type "{media.type}". '
                    f"Valid types: {', '.join(VALID_MEDIA_TYPES)}"
                )

            if not isinstance(media.data, str):
                report.add_error(f'{prefix}: Field "data" must be a string (base64 or URL)')
            else:
                is_base64 = media.data.startswith("data:") or bool(_BASE64_RE.match(media.data))
                is_url = media.data.startswith(("http://", "https://"))
                if not is_base64 and not is_url:
                    report.add_error(
                        f"{prefix}: Data must be a data URL, base64 string or HTTP(S) URL"
                    )
                elif is_base64 and len(media.data) > LARGE_BASE64_CHARS:
                    report.add_warning(f"{prefix}: Large media file may cause timeout issues")

            if media.role and media.role not in KNOWN_MEDIA_ROLES:
                report.add_warning(
                    f'{prefix}: Unknown role "{media.role}". '
                    f"Common roles: {', '.join(KNOWN_MEDIA_ROLES)}"
                )

        if request.use_case == "image-to-video" and not request.image_media():
            report.add_error("Image-to-video generation requires at least one image input")

        return report

    def validate_preferences(self, request: GenerationRequest) -> ValidationReport:
        report = ValidationReport()
        prefs = request.preferences
        capability, use_case = request.capability or "", request.use_case or ""

        if prefs.provider and not self._capabilities.supports_provider(
            prefs.provider, capability, use_case
        ):
            report.add_error(
                f'Provider "{prefs.provider}" does not support {capability}/{use_case}'
            )

        if prefs.model:
            if not self._models.has_model(prefs.model):
                report.add_error(f"Unknown model: {prefs.model}")
            else:
                model = self._models.get_model(prefs.model, capability, use_case)
                if model.capability != capability:
                    report.add_error(
                        f'Model "{prefs.model}" is for {model.capability}, not {capability}'
                    )
        return report

    # ------------------------------------------------------------------
    # Post-selection
    # ------------------------------------------------------------------

    def validate_against_model(
        self, request: GenerationRequest, model_id: str
    ) -> ValidationReport:
        """Check parameters against one model's declared limits."""
        report = ValidationReport()
        try:
            caps = self._models.model_capabilities(
                model_id, request.capability, request.use_case
            )
        except RegistryLookupError as exc:
            report.add_error(f"Model validation error: {exc}")
            return report

        params = request.parameters
        duration = params.get("duration")
        if _is_number(duration) and caps.max_duration and duration > caps.max_duration:
            report.add_error(
                f"Duration {duration:g}s exceeds model limit of {caps.max_duration:g}s"
            )

        resolution = params.get("resolution")
        if resolution and caps.resolutions and resolution not in caps.resolutions:
            report.add_error(
                f'Resolution "{resolution}" not supported. '
                f"Supported: {', '.join(caps.resolutions)}"
            )

        ratio = params.get("aspectRatio")
        if ratio and caps.aspect_ratios and ratio not in caps.aspect_ratios:
            report.add_error(
                f'Aspect ratio "{ratio}" not supported. '
                f"Supported: {', '.join(caps.aspect_ratios)}"
            )

        if params.get("audio") is True and caps.audio is False:
            report.add_warning("Audio generation requested but not supported by this model")

        if request.prompt and caps.max_prompt_length:
            if len(request.prompt) > caps.max_prompt_length:
                report.add_warning(
                    f"Prompt length {len(request.prompt)} exceeds recommended "
                    f"{caps.max_prompt_length} characters"
                )
        return report


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _check_choice(
    report: ValidationReport,
    params: dict[str, Any],
    name: str,
    allowed: tuple[str, ...],
    label: str | None = None,
) -> None:
    if name in params and params[name] not in allowed:
        report.add_error(
            f'Invalid {label or name} "{params[name]}". Valid options: {", ".join(allowed)}'
        )


def _check_range(
    report: ValidationReport,
    params: dict[str, Any],
    name: str,
    low: int,
    high: int,
) -> None:
    if name not in params:
        return
    value = params[name]
    if not _is_number(value) or not low <= value <= high:
        report.add_error(f'Parameter "{name}" must be between {low} and {high}')


def _describe_pydantic_error(err: dict[str, Any]) -> str:
    """Turn a pydantic error entry into a caller-facing message."""
    loc = ".".join(str(part) for part in err.get("loc", ()))
    err_type = err.get("type", "")
    if err_type.startswith("string_type"):
        return f'Field "{loc}" must be a string'
    if err_type.startswith("bool_type"):
        return f'Field "{loc}" must be a boolean'
    if err_type in ("dict_type", "model_type", "model_attributes_type"):
        return f'Field "{loc}" must be an object'
    if err_type == "list_type":
        return f'Field "{loc}" must be an array'
    return f'Field "{loc}": {err.get("msg", "invalid value")}'
