# src/jobs/models.py — v1
"""Async job models: polling config, status updates, snapshots, outcomes.

All durations are in seconds. Wire output (``as_dict``) is camelCase.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

if TYPE_CHECKING:
    from genrouter.config.settings import Settings

JobState = Literal["polling", "completed", "failed"]
OutcomeReason = Literal["completed", "failed", "timeout", "max_attempts", "cancelled"]

TERMINAL_SUCCESS = frozenset({"completed", "succeeded", "success"})
TERMINAL_FAILURE = frozenset({"failed", "error", "cancelled"})


class _JobModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def as_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class PollingConfig(BaseModel):
    """Backoff and budget for one job."""

    model_config = ConfigDict(frozen=True)

    initial_delay_s: float = Field(default=5.0, gt=0)
    max_delay_s: float = Field(default=30.0, gt=0)
    backoff_multiplier: float = Field(default=1.5, ge=1)
    max_attempts: int = Field(default=120, ge=1)
    timeout_s: float = Field(default=600.0, gt=0)

    @model_validator(mode="after")
    def check_delays(self) -> PollingConfig:
        if self.max_delay_s < self.initial_delay_s:
            raise ValueError("max_delay_s must be >= initial_delay_s")
        return self

    @classmethod
    def from_settings(cls, settings: Settings) -> PollingConfig:
        return cls(
            initial_delay_s=settings.polling_initial_delay_s,
            max_delay_s=settings.polling_max_delay_s,
            backoff_multiplier=settings.polling_backoff_multiplier,
            max_attempts=settings.polling_max_attempts,
            timeout_s=settings.polling_timeout_s,
        )

    def delay_after(self, checks: int) -> float:
        """Delay in effect after ``checks`` non-terminal results."""
        return min(self.initial_delay_s * self.backoff_multiplier ** checks, self.max_delay_s)


class JobStatusUpdate(_JobModel):
    """One status check result as reported by a provider handler."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    status: str
    progress: float | None = None
    result: Any = None
    error: Any = None
    estimated_time_s: float | None = None

    @classmethod
    def from_raw(cls, raw: JobStatusUpdate | Mapping[str, Any]) -> JobStatusUpdate:
        """Accept a model or a plain mapping (``estimatedTime`` also read)."""
        if isinstance(raw, JobStatusUpdate):
            return raw
        data = dict(raw)
        if "estimatedTime" in data and "estimatedTimeS" not in data:
            data["estimated_time_s"] = data.pop("estimatedTime")
        return cls.model_validate(data)

    @property
    def is_completed(self) -> bool:
        return self.status.lower() in TERMINAL_SUCCESS

    @property
    def is_failed(self) -> bool:
        return self.status.lower() in TERMINAL_FAILURE


class JobSnapshot(_JobModel):
    """Read-only view of an active job."""

    job_id: str
    provider: str
    status: JobState
    attempts: int
    max_attempts: int
    running_time_s: float
    current_delay_s: float
    last_status: JobStatusUpdate | None = None
    last_error: str | None = None
    estimated_time_remaining_s: float | None = None


class JobOutcome(_JobModel):
    """Terminal result of a job."""

    job_id: str
    provider: str
    status: Literal["completed", "failed"]
    reason: OutcomeReason
    result: Any = None
    error: str | None = None
    attempts: int = 0
    elapsed_s: float = 0.0


class CancelResult(_JobModel):
    success: bool
    job_id: str | None = None
    attempts: int | None = None
    error: str | None = None
    remote_cancelled: bool | None = None
