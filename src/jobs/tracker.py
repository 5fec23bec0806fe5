# src/jobs/tracker.py — v2
"""AsyncJobTracker: lifecycle of long-running provider jobs.

Each job is owned by exactly one polling task. The task runs the first
status check immediately, then waits ``current_delay`` between checks and
grows the delay by ``backoff_multiplier`` up to ``max_delay``. A job-wide
timeout timer (loop.call_later) bounds wall-clock lifetime; the injected
clock is also checked before every attempt.

Terminal transitions go through _finish(), which removes the job from the
active store, cancels both timers, resolves the job's future and records
a JobOutcome in a bounded history. Results arriving for a job that is no
longer in the store are dropped.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import Counter, OrderedDict
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping

from genrouter.core.errors import JobTimeoutError, PollingError
from genrouter.jobs.models import (
    CancelResult,
    JobOutcome,
    JobSnapshot,
    JobState,
    JobStatusUpdate,
    OutcomeReason,
    PollingConfig,
)
from genrouter.logging.context import set_job_context

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]
StatusChecker = Callable[[str], Awaitable["JobStatusUpdate | Mapping[str, Any]"]]
CancelFn = Callable[[str], Awaitable[Any]]


@dataclass
class _Job:
    job_id: str
    provider: str
    checker: StatusChecker
    config: PollingConfig
    start_time: float
    current_delay: float
    future: asyncio.Future[JobOutcome]
    attempts: int = 0
    status: JobState = "polling"
    last_status: JobStatusUpdate | None = None
    last_error: str | None = None
    last_update: float = 0.0
    task: asyncio.Task[None] | None = None
    timeout_handle: asyncio.TimerHandle | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class AsyncJobTracker:
    """Polls provider jobs to a terminal state.

    Args:
        config: Default polling config for jobs started without one.
        clock: Monotonic time source in seconds.
        sleep: Awaitable delay function; tests inject a fake that advances
            a fake clock.
        history_size: Terminal outcomes kept for status lookups.
        stuck_after_s: Running time after which health_check flags a job.
        max_active_jobs: Active job count above which health_check warns.
    """

    def __init__(
        self,
        config: PollingConfig | None = None,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
        history_size: int = 200,
        stuck_after_s: float = 900.0,
        max_active_jobs: int = 100,
    ) -> None:
        self._config = config or PollingConfig()
        self._clock = clock
        self._sleep = sleep
        self._history_size = history_size
        self._stuck_after_s = stuck_after_s
        self._max_active_jobs = max_active_jobs
        self._jobs: dict[str, _Job] = {}
        self._history: OrderedDict[str, JobOutcome] = OrderedDict()

    @property
    def default_config(self) -> PollingConfig:
        return self._config

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start_polling(
        self,
        job_id: str,
        provider: str,
        status_checker: StatusChecker,
        config: PollingConfig | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> JobSnapshot:
        """Register a job and spawn its polling task.

        Must be called from a running event loop. Starting a job id that is
        already active returns the existing job's snapshot.
        """
        existing = self._jobs.get(job_id)
        if existing is not None:
            logger.warning("Job %s is already being polled", job_id)
            return self._snapshot(existing)

        loop = asyncio.get_running_loop()
        cfg = config or self._config
        now = self._clock()
        job = _Job(
            job_id=job_id,
            provider=provider,
            checker=status_checker,
            config=cfg,
            start_time=now,
            last_update=now,
            current_delay=cfg.initial_delay_s,
            future=loop.create_future(),
            metadata=dict(metadata or {}),
        )
        self._jobs[job_id] = job
        self._history.pop(job_id, None)

        job.timeout_handle = loop.call_later(cfg.timeout_s, self._on_timeout, job)
        job.task = loop.create_task(self._run(job), name=f"poll:{job_id}")

        logger.info("Started polling job %s (%s)", job_id, provider)
        return self._snapshot(job)

    async def _run(self, job: _Job) -> None:
        set_job_context(job.job_id, job.provider)
        cfg = job.config
        while self._owns(job):
            if self._clock() - job.start_time >= cfg.timeout_s:
                self._timeout(job)
                return

            job.attempts += 1
            job.last_update = self._clock()
            logger.debug("Polling job %s (attempt %d)", job.job_id, job.attempts)

            try:
                raw = await job.checker(job.job_id)
                update = JobStatusUpdate.from_raw(raw)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                if not self._owns(job):
                    return
                job.last_error = str(exc)
                logger.warning(
                    "Status check failed for job %s (attempt %d): %s",
                    job.job_id, job.attempts, exc,
                )
                if job.attempts >= cfg.max_attempts:
                    error = PollingError(
                        f"Polling failed after {job.attempts} attempts: {exc}",
                        job_id=job.job_id,
                        attempts=job.attempts,
                    )
                    self._finish(job, "failed", "max_attempts", error=error.message)
                    return
                await self._backoff(job)
                continue

            if not self._owns(job):
                logger.debug("Dropping late status for job %s", job.job_id)
                return

            job.last_status = update
            if update.is_completed:
                self._finish(job, "completed", "completed", result=update.result)
                return
            if update.is_failed:
                self._finish(job, "failed", "failed", error=_error_text(update.error))
                return
            if update.status.lower() not in ("processing", "pending", "running", "queued"):
                logger.warning("Unknown status for job %s: %s", job.job_id, update.status)

            if job.attempts >= cfg.max_attempts:
                error = PollingError(
                    f"Exceeded maximum polling attempts ({cfg.max_attempts})",
                    job_id=job.job_id,
                    attempts=job.attempts,
                )
                self._finish(job, "failed", "max_attempts", error=error.message)
                return
            await self._backoff(job)

    async def _backoff(self, job: _Job) -> None:
        delay = job.current_delay
        job.current_delay = min(delay * job.config.backoff_multiplier, job.config.max_delay_s)
        logger.debug("Next poll for job %s in %.1fs", job.job_id, delay)
        await self._sleep(delay)

    def _owns(self, job: _Job) -> bool:
        return self._jobs.get(job.job_id) is job

    def _on_timeout(self, job: _Job) -> None:
        if self._owns(job):
            self._timeout(job)

    def _timeout(self, job: _Job) -> None:
        error = JobTimeoutError(job.job_id, job.config.timeout_s, job.attempts)
        self._finish(job, "failed", "timeout", error=error.message)

    def _finish(
        self,
        job: _Job,
        status: JobState,
        reason: OutcomeReason,
        result: Any = None,
        error: str | None = None,
    ) -> JobOutcome | None:
        if not self._owns(job):
            return None
        del self._jobs[job.job_id]
        job.status = status

        if job.timeout_handle is not None:
            job.timeout_handle.cancel()
            job.timeout_handle = None
        if job.task is not None and job.task is not _current_task():
            job.task.cancel()

        outcome = JobOutcome(
            job_id=job.job_id,
            provider=job.provider,
            status="completed" if status == "completed" else "failed",
            reason=reason,
            result=result,
            error=error,
            attempts=job.attempts,
            elapsed_s=max(self._clock() - job.start_time, 0.0),
        )
        self._history[job.job_id] = outcome
        while len(self._history) > self._history_size:
            self._history.popitem(last=False)

        if not job.future.done():
            job.future.set_result(outcome)

        if status == "completed":
            logger.info("Job %s completed after %d attempts", job.job_id, job.attempts)
        else:
            logger.info("Job %s ended (%s): %s", job.job_id, reason, error or "no error")
        return outcome

    # ------------------------------------------------------------------
    # Queries and control
    # ------------------------------------------------------------------

    def get_job_status(self, job_id: str) -> dict[str, Any]:
        """Active snapshot, else terminal outcome, else a not_found marker."""
        job = self._jobs.get(job_id)
        if job is not None:
            return self._snapshot(job).as_dict()
        outcome = self._history.get(job_id)
        if outcome is not None:
            return outcome.as_dict()
        return {"status": "not_found", "error": "Job not found"}

    def get_outcome(self, job_id: str) -> JobOutcome | None:
        return self._history.get(job_id)

    def job_metadata(self, job_id: str) -> dict[str, Any] | None:
        """Metadata passed to start_polling for an active job."""
        job = self._jobs.get(job_id)
        return dict(job.metadata) if job is not None else None

    async def wait_for_job(self, job_id: str, timeout: float | None = None) -> JobOutcome | None:
        """Wait for a job's terminal outcome. None when the id is unknown."""
        job = self._jobs.get(job_id)
        if job is None:
            return self._history.get(job_id)
        return await asyncio.wait_for(asyncio.shield(job.future), timeout)

    async def cancel_job(self, job_id: str, cancel_fn: CancelFn | None = None) -> CancelResult:
        """Stop tracking a job, asking the provider to cancel first.

        Local cleanup happens even when the remote cancel fails; the result
        is still a success.
        """
        job = self._jobs.get(job_id)
        if job is None:
            return CancelResult(success=False, job_id=job_id, error="Job not found")

        remote_cancelled: bool | None = None
        remote_error: str | None = None
        if cancel_fn is not None:
            try:
                answer = await cancel_fn(job_id)
                remote_cancelled = True if answer is None else bool(answer)
            except Exception as exc:
                remote_cancelled = False
                remote_error = str(exc)
                logger.warning("Remote cancel failed for job %s: %s", job_id, exc)

        attempts = job.attempts
        if self._finish(job, "failed", "cancelled", error="Job cancelled") is None:
            # Reached a terminal state while the remote cancel was in flight
            outcome = self._history.get(job_id)
            state = outcome.reason if outcome is not None else "finished"
            logger.info("Job %s ended (%s) before it could be cancelled", job_id, state)
            return CancelResult(
                success=False,
                job_id=job_id,
                attempts=job.attempts,
                error=f"Job already {state}",
                remote_cancelled=remote_cancelled,
            )
        logger.info("Cancelled job %s after %d attempts", job_id, attempts)
        return CancelResult(
            success=True,
            job_id=job_id,
            attempts=attempts,
            error=remote_error,
            remote_cancelled=remote_cancelled,
        )

    def active_jobs(self) -> list[JobSnapshot]:
        return [self._snapshot(job) for job in list(self._jobs.values())]

    def estimated_time_remaining(self, job_id: str) -> float | None:
        job = self._jobs.get(job_id)
        return self._estimate(job) if job is not None else None

    def _estimate(self, job: _Job) -> float:
        running = self._clock() - job.start_time
        last = job.last_status
        if last is not None and last.estimated_time_s:
            return last.estimated_time_s
        if last is not None and last.progress and last.progress > 0:
            total = running / (last.progress / 100)
            return max(total - running, 0.0)
        return max(job.config.timeout_s * 0.5 - running, 0.0)

    def stats(self) -> dict[str, Any]:
        jobs = list(self._jobs.values())
        return {
            "activeJobs": len(jobs),
            "completedJobs": len(self._history),
            "armedTimeouts": sum(1 for j in jobs if j.timeout_handle is not None),
            "pollingTasks": sum(1 for j in jobs if j.task is not None and not j.task.done()),
            "byProvider": dict(Counter(j.provider for j in jobs)),
            "byStatus": dict(Counter(j.status for j in jobs)),
        }

    def health_check(self) -> dict[str, Any]:
        jobs = list(self._jobs.values())
        now = self._clock()
        stuck = [
            {
                "jobId": j.job_id,
                "runningTimeS": round(now - j.start_time, 3),
                "attempts": j.attempts,
                "provider": j.provider,
            }
            for j in jobs
            if now - j.start_time > self._stuck_after_s
        ]
        issues = []
        if stuck:
            issues.append(f"{len(stuck)} jobs running longer than {self._stuck_after_s:g}s")
        if len(jobs) > self._max_active_jobs:
            issues.append(f"High number of active jobs: {len(jobs)}")
        return {
            "status": "warning" if issues else "healthy",
            "activeJobs": len(jobs),
            "stuckJobs": stuck,
            "issues": issues,
        }

    async def shutdown(self) -> None:
        """Cancel every active job and wait for the polling tasks to exit."""
        jobs = list(self._jobs.values())
        tasks = [j.task for j in jobs if j.task is not None]
        for job in jobs:
            self._finish(job, "failed", "cancelled", error="Tracker shut down")
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Job tracker shut down (%d jobs cancelled)", len(jobs))

    def _snapshot(self, job: _Job) -> JobSnapshot:
        return JobSnapshot(
            job_id=job.job_id,
            provider=job.provider,
            status=job.status,
            attempts=job.attempts,
            max_attempts=job.config.max_attempts,
            running_time_s=max(self._clock() - job.start_time, 0.0),
            current_delay_s=job.current_delay,
            last_status=job.last_status,
            last_error=job.last_error,
            estimated_time_remaining_s=self._estimate(job),
        )

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, job_id: object) -> bool:
        return job_id in self._jobs


def _current_task() -> asyncio.Task[Any] | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


def _error_text(error: Any) -> str:
    if error is None:
        return "Job failed"
    if isinstance(error, Mapping):
        return str(error.get("message") or error)
    return str(error)
