# tests/unit/jobs/test_unit_job_models.py — v1
"""Tests for jobs/models.py."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from genrouter.jobs.models import CancelResult, JobStatusUpdate, PollingConfig


class TestPollingConfig:
    def test_defaults(self):
        cfg = PollingConfig()
        assert (cfg.initial_delay_s, cfg.max_delay_s) == (5.0, 30.0)
        assert cfg.max_attempts == 120
        assert cfg.timeout_s == 600.0

    def test_max_below_initial_rejected(self):
        with pytest.raises(ValidationError):
            PollingConfig(initial_delay_s=10, max_delay_s=5)

    def test_non_positive_timeout_rejected(self):
        with pytest.raises(ValidationError):
            PollingConfig(timeout_s=0)

    def test_from_settings(self, settings):
        cfg = PollingConfig.from_settings(settings)
        assert cfg.backoff_multiplier == settings.polling_backoff_multiplier
        assert cfg.max_attempts == settings.polling_max_attempts


class TestJobStatusUpdate:
    def test_from_mapping(self):
        update = JobStatusUpdate.from_raw({"status": "processing", "estimatedTime": 30, "extra": 1})
        assert update.estimated_time_s == 30
        assert update.model_extra == {"extra": 1}

    def test_passthrough(self):
        update = JobStatusUpdate(status="completed")
        assert JobStatusUpdate.from_raw(update) is update

    @pytest.mark.parametrize("status", ["completed", "SUCCEEDED", "success"])
    def test_completed(self, status):
        assert JobStatusUpdate(status=status).is_completed

    @pytest.mark.parametrize("status", ["failed", "error", "cancelled"])
    def test_failed(self, status):
        assert JobStatusUpdate(status=status).is_failed

    def test_processing_neither(self):
        update = JobStatusUpdate(status="processing")
        assert not update.is_completed
        assert not update.is_failed


class TestCancelResult:
    def test_wire_keys(self):
        data = CancelResult(success=False, job_id="j", error="Job not found").as_dict()
        assert data["success"] is False
        assert data["jobId"] == "j"
        assert data["error"] == "Job not found"
