# src/tracking/metrics.py — v1
"""Request metrics collection and cost estimation.

MetricsCollector keeps a bounded in-memory history of RequestMetric
entries; summary() aggregates it into RouterStats.
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict, deque
from datetime import datetime, timezone
from typing import Any

from genrouter.core.models import GenerationRequest, NormalizedResponse, UsageInfo
from genrouter.registry.models import ModelPricing
from genrouter.tracking.models import ProviderStats, RequestMetric, RouterStats

logger = logging.getLogger(__name__)


def estimate_cost(
    pricing: ModelPricing,
    request: GenerationRequest,
    usage: UsageInfo | None = None,
) -> float | None:
    """Estimated cost of one generation from unit pricing.

    per_second uses ``parameters.duration``; per_image uses ``count`` or
    ``variations`` (default 1); per_1k_tokens uses ``usage.tokens_used``.
    None when the matching quantity is unknown.
    """
    params = request.parameters
    if pricing.per_second:
        duration = params.get("duration")
        if isinstance(duration, (int, float)) and not isinstance(duration, bool):
            return round(pricing.per_second * duration, 6)
        return None
    if pricing.per_image:
        count = params.get("count") or params.get("variations") or 1
        if not isinstance(count, int) or isinstance(count, bool):
            count = 1
        return round(pricing.per_image * count, 6)
    if pricing.per_1k_tokens:
        if usage is not None and usage.tokens_used:
            return round(pricing.per_1k_tokens * usage.tokens_used / 1000, 6)
        return None
    return None


class MetricsCollector:
    """Bounded history of request metrics."""

    def __init__(self, max_history: int = 1000) -> None:
        self._history: deque[RequestMetric] = deque(maxlen=max_history)

    def record(
        self,
        response: NormalizedResponse,
        processing_time_ms: float,
        estimated_cost: float | None = None,
    ) -> RequestMetric:
        """Record the outcome of one routed request and log it."""
        metric = RequestMetric(
            request_id=response.request_id,
            timestamp=datetime.now(timezone.utc),
            capability=response.capability,
            use_case=response.use_case,
            provider=response.provider,
            model=response.model,
            status=response.status,
            success=response.success,
            processing_time_ms=round(processing_time_ms, 3),
            fallback_used=response.fallback is not None and response.success,
            error_code=response.error.code if response.error else None,
            estimated_cost=estimated_cost,
        )
        self._history.append(metric)
        logger.info(
            "Request metrics %s: %s/%s provider=%s model=%s status=%s time=%.1fms",
            metric.request_id, metric.capability, metric.use_case,
            metric.provider, metric.model, metric.status, metric.processing_time_ms,
        )
        return metric

    @property
    def records(self) -> list[RequestMetric]:
        return list(self._history)

    def __len__(self) -> int:
        return len(self._history)

    def clear(self) -> None:
        self._history.clear()

    def summary(self) -> RouterStats:
        """Aggregate the current history."""
        records = list(self._history)
        stats = RouterStats(total_requests=len(records))
        if not records:
            return stats

        latencies = [r.processing_time_ms for r in records]
        stats.succeeded = sum(1 for r in records if r.success)
        stats.failed = stats.total_requests - stats.succeeded
        stats.processing = sum(1 for r in records if r.status == "processing")
        stats.fallbacks_used = sum(1 for r in records if r.fallback_used)
        stats.avg_latency_ms = round(sum(latencies) / len(latencies), 3)
        stats.max_latency_ms = max(latencies)
        stats.estimated_cost = round(sum(r.estimated_cost or 0.0 for r in records), 6)

        by_provider: dict[str, list[RequestMetric]] = defaultdict(list)
        for r in records:
            by_provider[r.provider].append(r)
        stats.by_provider = {
            provider: ProviderStats(
                requests=len(items),
                succeeded=sum(1 for r in items if r.success),
                failed=sum(1 for r in items if not r.success),
                avg_latency_ms=round(
                    sum(r.processing_time_ms for r in items) / len(items), 3
                ),
            )
            for provider, items in by_provider.items()
        }
        stats.by_capability = dict(
            Counter(f"{r.capability}/{r.use_case}" for r in records)
        )
        stats.error_codes = dict(Counter(r.error_code for r in records if r.error_code))
        return stats

    def as_dict(self) -> dict[str, Any]:
        return self.summary().as_dict()
