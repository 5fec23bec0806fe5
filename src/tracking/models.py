# src/tracking/models.py — v2
"""Request metrics and aggregated router statistics."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RequestMetric(BaseModel):
    """One routed request, recorded on every code path."""

    request_id: str
    timestamp: datetime
    capability: str | None = None
    use_case: str | None = None
    provider: str = "unknown"
    model: str = "unknown"
    status: str = "failed"
    success: bool = False
    processing_time_ms: float = 0.0
    fallback_used: bool = False
    error_code: str | None = None
    estimated_cost: float | None = None


class ProviderStats(BaseModel):
    """Per-provider counters."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    requests: int = 0
    succeeded: int = 0
    failed: int = 0
    avg_latency_ms: float = 0.0


class RouterStats(BaseModel):
    """Aggregate over the recorded request history."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_requests: int = 0
    succeeded: int = 0
    failed: int = 0
    processing: int = 0
    fallbacks_used: int = 0
    avg_latency_ms: float = 0.0
    max_latency_ms: float = 0.0
    estimated_cost: float = 0.0
    by_provider: dict[str, ProviderStats] = Field(default_factory=dict)
    by_capability: dict[str, int] = Field(default_factory=dict)
    error_codes: dict[str, int] = Field(default_factory=dict)

    @property
    def success_rate(self) -> float:
        return self.succeeded / self.total_requests if self.total_requests else 0.0

    def as_dict(self) -> dict[str, Any]:
        data = self.model_dump(by_alias=True, mode="json")
        data["successRate"] = round(self.success_rate, 4)
        return data
