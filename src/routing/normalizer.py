# src/routing/normalizer.py — v2
"""Maps raw provider payloads onto the NormalizedResponse envelope.

Classification happens first and returns one tag from a closed set
(PayloadFamily); a family mapper then extracts the dominant artifact for
the request's capability. Usage and async markers are normalized
independently of the family; a malformed usage or async field is dropped
with a warning and the output is kept. normalize() never raises: any internal
failure becomes a failed envelope.
"""

from __future__ import annotations

import logging
import math
import time
import uuid
from enum import Enum
from typing import Any, Mapping

from genrouter.core.errors import ExecutionError, error_info
from genrouter.core.models import (
    AsyncInfo,
    ErrorInfo,
    GenerationRequest,
    NormalizedResponse,
    OutputArtifact,
    UsageInfo,
)

logger = logging.getLogger(__name__)

_OUTPUT_TYPES = {
    "video-generation": "video",
    "image-generation": "image",
    "text-generation": "text",
}

_PROVIDER_ERROR_TYPES = {
    "google": "GoogleCloudError",
    "openai": "OpenAIError",
    "azure": "AzureOpenAIError",
    "runway": "RunwayError",
}


class PayloadFamily(str, Enum):
    """Structural families of provider payloads."""

    GOOGLE = "google"    # predictions / long-running operation name
    OPENAI = "openai"    # choices, or data + object
    RUNWAY = "runway"    # output + id
    GENERIC = "generic"


def classify_payload(payload: Any) -> PayloadFamily:
    """Return the structural family of a raw provider payload."""
    if not isinstance(payload, Mapping):
        return PayloadFamily.GENERIC
    if "predictions" in payload or "name" in payload:
        return PayloadFamily.GOOGLE
    if "choices" in payload or (payload.get("data") and payload.get("object")):
        return PayloadFamily.OPENAI
    if "output" in payload and "id" in payload:
        return PayloadFamily.RUNWAY
    return PayloadFamily.GENERIC


def infer_output_type(capability: str | None) -> str:
    return _OUTPUT_TYPES.get(capability or "", "unknown")


def detect_image_format(data: Any) -> str:
    """Guess an image format from the head of a base64/data-URL string."""
    if not isinstance(data, str) or not data:
        return "unknown"
    head = data[:50].lower()
    if "jpeg" in head or "jpg" in head:
        return "jpeg"
    if "png" in head:
        return "png"
    if "webp" in head:
        return "webp"
    if "gif" in head:
        return "gif"
    return "jpeg"


def generate_request_id() -> str:
    return f"req_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def _first(*values: Any) -> Any:
    for value in values:
        if value not in (None, ""):
            return value
    return None


class ResponseNormalizer:
    """Builds NormalizedResponse envelopes from provider payloads.

    Args:
        status_url_prefix: Prefix for async status URLs; the job id is
            appended as the last path segment.
    """

    def __init__(self, status_url_prefix: str = "/api/ai-generators/status") -> None:
        self._status_url_prefix = status_url_prefix.rstrip("/")

    def normalize(
        self,
        payload: Any,
        request: GenerationRequest | Mapping[str, Any] | None,
        metadata: Mapping[str, Any] | None = None,
    ) -> NormalizedResponse:
        """Normalize a raw payload. Total: returns an envelope for any input.

        Args:
            payload: Raw provider payload (normally a dict).
            request: The originating request, parsed or raw.
            metadata: Optional ``provider``, ``model``, ``request_id`` and
                ``processing_time_ms``.
        """
        metadata = metadata or {}
        try:
            req = coerce_request(request)
            body: Mapping[str, Any] = payload if isinstance(payload, Mapping) else {}
            family = classify_payload(payload)

            artifacts = self._map_outputs(family, payload, req)
            output = artifacts[0] if artifacts else None
            outputs = artifacts if len(artifacts) > 1 else None
            warnings: list[str] = []
            async_info, processing = self._extract_async(body, warnings)
            usage = self._extract_usage(body, warnings)

            response = NormalizedResponse(
                request_id=_first(req.request_id, metadata.get("request_id"))
                or generate_request_id(),
                success=True,
                status="processing" if processing else "completed",
                processing_time_ms=_first(
                    metadata.get("processing_time_ms"), _extract_processing_time(body)
                ),
                provider=metadata.get("provider") or "unknown",
                model=metadata.get("model") or "unknown",
                capability=req.capability,
                use_case=req.use_case,
                output=output,
                outputs=outputs,
                usage=usage,
                async_info=async_info,
                warnings=warnings,
            )
            response.warnings.extend(self.validate_response(response))
            return response
        except Exception as exc:
            logger.warning("Normalization failed, returning error envelope: %s", exc)
            return self.create_error_response(exc, request, metadata)

    # ------------------------------------------------------------------
    # Family mappers
    # ------------------------------------------------------------------

    def _map_outputs(
        self, family: PayloadFamily, payload: Any, request: GenerationRequest
    ) -> list[OutputArtifact]:
        if family is PayloadFamily.GOOGLE:
            return self._map_google(payload, request)
        if family is PayloadFamily.OPENAI:
            return self._map_openai(payload, request)
        if family is PayloadFamily.RUNWAY:
            return self._map_runway(payload, request)
        return self._map_generic(payload, request)

    @staticmethod
    def _map_google(payload: Mapping[str, Any], request: GenerationRequest) -> list[OutputArtifact]:
        predictions = payload.get("predictions") or []
        if not isinstance(predictions, list) or not predictions:
            return []

        params = request.parameters
        first = predictions[0] if isinstance(predictions[0], Mapping) else {}
        capability = request.capability

        if capability == "video-generation":
            base: dict[str, Any] = {
                "type": "video",
                "format": "mp4",
                "data": _first(first.get("gcsUri"), first.get("bytesBase64Encoded")),
                "duration": _first(first.get("durationSeconds"), params.get("duration")),
                "resolution": params.get("resolution") or "1080p",
                "size": first.get("sizeBytes"),
                "thumbnail": first.get("thumbnail"),
            }
        elif capability == "image-generation":
            width, height = first.get("width"), first.get("height")
            base = {
                "type": "image",
                "format": detect_image_format(first.get("bytesBase64Encoded")),
                "data": _first(first.get("bytesBase64Encoded"), first.get("gcsUri")),
                "resolution": f"{width}x{height}" if width and height
                else params.get("resolution"),
                "size": first.get("sizeBytes"),
            }
        elif capability == "text-generation":
            text = _first(first.get("content"), first.get("text"))
            base = {
                "type": "text",
                "format": "plain",
                "data": text,
                "length": len(text) if isinstance(text, str) else None,
            }
        else:
            return []

        if len(predictions) == 1:
            return [OutputArtifact(**base)]

        artifacts = []
        for index, pred in enumerate(predictions):
            pred = pred if isinstance(pred, Mapping) else {}
            data = _first(
                pred.get("bytesBase64Encoded"), pred.get("gcsUri"),
                pred.get("content"), pred.get("text"),
            )
            artifacts.append(OutputArtifact(**{**base, "data": data, "variation": index + 1}))
        return artifacts

    @staticmethod
    def _map_openai(payload: Mapping[str, Any], request: GenerationRequest) -> list[OutputArtifact]:
        data = payload.get("data")
        choices = payload.get("choices")

        if data and isinstance(data, list) and request.capability == "image-generation":
            resolution = request.parameters.get("resolution") or "1024x1024"
            items = [item if isinstance(item, Mapping) else {} for item in data]
            artifacts = [
                OutputArtifact(
                    type="image",
                    format="png",
                    data=_first(item.get("url"), item.get("b64_json")),
                    resolution=resolution,
                    **({"variation": i + 1} if len(items) > 1 else {}),
                )
                for i, item in enumerate(items)
            ]
            return artifacts

        if choices and isinstance(choices, list) and request.capability == "text-generation":
            artifacts = []
            for i, choice in enumerate(choices):
                message = choice.get("message") if isinstance(choice, Mapping) else None
                content = message.get("content") if isinstance(message, Mapping) else None
                extra = {"variation": i + 1} if len(choices) > 1 else {}
                artifacts.append(
                    OutputArtifact(
                        type="text",
                        format="plain",
                        data=content,
                        length=len(content) if isinstance(content, str) else None,
                        **extra,
                    )
                )
            return artifacts

        return []

    @staticmethod
    def _map_runway(payload: Mapping[str, Any], request: GenerationRequest) -> list[OutputArtifact]:
        output = payload.get("output")
        if not output or request.capability != "video-generation":
            return []
        if isinstance(output, list):
            output = {"url": output[0]} if output else {}
        if not isinstance(output, Mapping):
            output = {"url": output}
        params = request.parameters
        return [
            OutputArtifact(
                type="video",
                format="mp4",
                data=output.get("url"),
                duration=_first(output.get("duration"), params.get("duration")),
                resolution=_first(output.get("resolution"), params.get("resolution")),
                thumbnail=output.get("thumbnail"),
            )
        ]

    @staticmethod
    def _map_generic(payload: Any, request: GenerationRequest) -> list[OutputArtifact]:
        if isinstance(payload, Mapping):
            data = _first(payload.get("data"), payload.get("output"), payload.get("result"))
            if data is None:
                data = dict(payload)
        else:
            data = payload
        return [
            OutputArtifact(type=infer_output_type(request.capability), format="unknown", data=data)
        ]

    # ------------------------------------------------------------------
    # Usage and async markers
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_usage(payload: Mapping[str, Any], warnings: list[str]) -> UsageInfo:
        meta = payload.get("metadata")
        if isinstance(meta, Mapping) and meta.get("billableCharacterCount"):
            count = _as_int(meta["billableCharacterCount"], "billableCharacterCount", warnings)
            if count is not None:
                return UsageInfo(tokens_used=count, credits=math.ceil(count / 1000))

        usage = payload.get("usage")
        if isinstance(usage, Mapping):
            return UsageInfo(
                tokens_used=_as_int(usage.get("total_tokens"), "total_tokens", warnings),
                prompt_tokens=_as_int(usage.get("prompt_tokens"), "prompt_tokens", warnings),
                completion_tokens=_as_int(
                    usage.get("completion_tokens"), "completion_tokens", warnings
                ),
            )

        return UsageInfo(credits=1)

    def _extract_async(
        self, payload: Mapping[str, Any], warnings: list[str]
    ) -> tuple[AsyncInfo | None, bool]:
        job_id = _first(payload.get("name"), payload.get("operation_id"), payload.get("job_id"))
        if job_id is None:
            return None, False
        job_id = str(job_id)
        info = AsyncInfo(
            job_id=job_id,
            status_url=self.build_status_url(job_id),
            estimated_time=_as_float(payload.get("estimated_time"), "estimated_time", warnings),
        )
        processing = payload.get("done") is False or payload.get("status") == "processing"
        return info, processing

    def build_status_url(self, job_id: str) -> str:
        return f"{self._status_url_prefix}/{job_id}"

    # ------------------------------------------------------------------
    # Envelope checks and errors
    # ------------------------------------------------------------------

    @staticmethod
    def validate_response(response: NormalizedResponse) -> list[str]:
        """Structural warnings for an envelope. Never blocks."""
        warnings = []
        if not response.request_id:
            warnings.append("Missing requestId")
        if not response.provider or response.provider == "unknown":
            warnings.append("Missing provider information")
        if not response.model or response.model == "unknown":
            warnings.append("Missing model information")
        if response.success and response.output is None and response.async_info is None:
            warnings.append("No output or async information provided")
        if response.status == "processing" and (
            response.async_info is None or not response.async_info.job_id
        ):
            warnings.append("Processing status but no job ID provided")
        return warnings

    def create_error_response(
        self,
        error: BaseException,
        request: GenerationRequest | Mapping[str, Any] | None,
        metadata: Mapping[str, Any] | None = None,
    ) -> NormalizedResponse:
        """Failed envelope for an exception. Never raises."""
        metadata = metadata or {}
        try:
            req = coerce_request(request)
        except Exception:
            req = GenerationRequest()

        info = error_info(error)
        if isinstance(error, ExecutionError) and error.provider:
            info = normalize_provider_error(error, error.provider)

        return NormalizedResponse(
            request_id=_first(req.request_id, metadata.get("request_id")) or generate_request_id(),
            success=False,
            status="failed",
            processing_time_ms=metadata.get("processing_time_ms"),
            provider=metadata.get("provider") or "unknown",
            model=metadata.get("model") or "unknown",
            capability=req.capability,
            use_case=req.use_case,
            error=info,
        )


def normalize_provider_error(error: ExecutionError, provider: str) -> ErrorInfo:
    """Lift a provider error body (``error.details``) into ErrorInfo.

    Google and OpenAI-style bodies nest the error under ``error``; Runway
    puts ``message`` at the top level. Anything else keeps the exception's
    own code and message.
    """
    info = error_info(error)
    body = error.details if isinstance(error.details, Mapping) else None
    if body is None or provider not in _PROVIDER_ERROR_TYPES:
        return info

    nested = body.get("error") if isinstance(body.get("error"), Mapping) else None
    if nested is not None:
        return ErrorInfo(
            message=nested.get("message") or info.message,
            code=str(_first(nested.get("code"), body.get("status"), info.code)),
            type=_PROVIDER_ERROR_TYPES[provider],
            details=nested.get("details", nested),
        )
    return ErrorInfo(
        message=body.get("message") or info.message,
        code=str(_first(body.get("status"), info.code)),
        type=_PROVIDER_ERROR_TYPES[provider],
        details=dict(body),
    )


def coerce_request(request: Any) -> GenerationRequest:
    """Best-effort GenerationRequest from any input, for labelling envelopes."""
    if isinstance(request, GenerationRequest):
        return request
    if isinstance(request, Mapping):
        try:
            return GenerationRequest.model_validate(dict(request))
        except Exception:
            # Keep only the fields needed to label the envelope
            return GenerationRequest(
                capability=_str_or_none(request.get("capability")),
                use_case=_str_or_none(request.get("useCase", request.get("use_case"))),
                request_id=_str_or_none(request.get("requestId", request.get("request_id"))),
            )
    return GenerationRequest()


def _as_int(value: Any, field: str, warnings: list[str]) -> int | None:
    """Integer from a provider field; None plus a warning when malformed."""
    if value is None:
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return _ignore(value, field, warnings)


def _as_float(value: Any, field: str, warnings: list[str]) -> float | None:
    """Float from a provider field; None plus a warning when malformed."""
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value) if math.isfinite(value) else _ignore(value, field, warnings)
    if isinstance(value, str):
        try:
            parsed = float(value)
        except ValueError:
            return _ignore(value, field, warnings)
        return parsed if math.isfinite(parsed) else _ignore(value, field, warnings)
    return _ignore(value, field, warnings)


def _ignore(value: Any, field: str, warnings: list[str]) -> None:
    warnings.append(f"Ignored malformed provider field {field}: {value!r}")
    return None


def _str_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _extract_processing_time(payload: Mapping[str, Any]) -> float | None:
    for value in (
        payload.get("processing_time"),
        (payload.get("metadata") or {}).get("processing_time")
        if isinstance(payload.get("metadata"), Mapping) else None,
        payload.get("duration"),
    ):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    return None
