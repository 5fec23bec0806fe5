# tests/unit/core/test_unit_models.py — v2
"""Tests for core/models.py — request parsing, canonicalization, envelope."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from genrouter.core.models import (
    AsyncInfo,
    GenerationRequest,
    MediaInput,
    NormalizedResponse,
    OutputArtifact,
    SelectionReason,
    SelectionResult,
    ValidationReport,
    canonicalize_request,
    resolve_field,
)


class TestGenerationRequest:
    def test_parse_wire_form(self):
        req = GenerationRequest.model_validate({
            "capability": "video-generation",
            "useCase": "text-to-video",
            "prompt": "sunset",
            "preferences": {"costTier": "budget", "fallback": False},
        })
        assert req.use_case == "text-to-video"
        assert req.preferences.cost_tier == "budget"
        assert req.preferences.fallback is False

    def test_fallback_defaults_true(self):
        assert GenerationRequest(prompt="x").preferences.fallback is True

    def test_prompt_must_be_string(self):
        with pytest.raises(ValidationError):
            GenerationRequest.model_validate({"prompt": 42})

    def test_root_extras_kept(self):
        req = GenerationRequest.model_validate({"prompt": "x", "contentType": "blog"})
        assert req.root_extras == {"contentType": "blog"}

    def test_with_request_id_copies(self):
        req = GenerationRequest(prompt="x")
        tagged = req.with_request_id("req_1")
        assert tagged.request_id == "req_1"
        assert req.request_id is None

    def test_with_preferences(self):
        req = GenerationRequest.model_validate({"prompt": "x", "preferences": {"provider": "google"}})
        updated = req.with_preferences(fallback=False)
        assert updated.preferences.fallback is False
        assert updated.preferences.provider == "google"
        assert req.preferences.fallback is True

    def test_image_media(self):
        req = GenerationRequest(media=[
            MediaInput(type="audio", data="aGVsbG8="),
            MediaInput(type="image", data="https://x/img.png"),
        ])
        assert [m.type for m in req.image_media()] == ["image"]


class TestCanonicalize:
    def test_root_knobs_moved_to_parameters(self):
        req = GenerationRequest.model_validate({"prompt": "x", "duration": 5, "count": 2})
        out = canonicalize_request(req)
        assert out.parameters == {"duration": 5, "count": 2}

    def test_parameters_win_on_conflict(self):
        req = GenerationRequest.model_validate({
            "prompt": "x", "duration": 5, "parameters": {"duration": 8},
        })
        assert canonicalize_request(req).parameters["duration"] == 8

    def test_unknown_root_keys_stay_out(self):
        req = GenerationRequest.model_validate({"prompt": "x", "tracking": "abc"})
        out = canonicalize_request(req)
        assert out is req
        assert out.parameters == {}

    def test_idempotent(self):
        req = GenerationRequest.model_validate({"prompt": "x", "contentType": "blog"})
        once = canonicalize_request(req)
        assert canonicalize_request(once).parameters == once.parameters


class TestResolveField:
    def test_parameters_first(self):
        req = GenerationRequest.model_validate({
            "prompt": "x", "contentType": "root", "parameters": {"contentType": "param"},
        })
        assert resolve_field(req, "contentType") == "param"

    def test_root_extra(self):
        req = GenerationRequest.model_validate({"prompt": "x", "contentType": "blog"})
        assert resolve_field(req, "contentType") == "blog"

    def test_image_from_media(self):
        req = GenerationRequest(prompt="x", media=[MediaInput(type="image", data="aGk=")])
        assert resolve_field(req, "image") == "aGk="

    def test_empty_prompt_is_missing(self):
        assert resolve_field(GenerationRequest(prompt=""), "prompt") is None

    def test_absent(self):
        assert resolve_field(GenerationRequest(prompt="x"), "count") is None


class TestValidationReport:
    def test_add_error_invalidates(self):
        report = ValidationReport()
        report.add_error("bad")
        assert report.valid is False

    def test_warning_keeps_valid(self):
        report = ValidationReport()
        report.add_warning("hmm")
        assert report.valid is True

    def test_merge(self):
        a, b = ValidationReport(), ValidationReport()
        a.add_warning("w1")
        b.add_error("e1")
        merged = a.merge(b)
        assert merged is a
        assert merged.valid is False
        assert merged.errors == ["e1"]
        assert merged.warnings == ["w1"]


class TestSelectionResult:
    def test_snapshot_properties(self, model_registry):
        model = model_registry.get_model("veo-3.1-generate-001")
        result = SelectionResult.of(model, SelectionReason.AUTO_SELECTED)
        assert result.model_id == "veo-3.1-generate-001"
        assert result.model_name == "Veo 3.1 Stable"
        assert result.provider == "google"
        assert result.tier == "premium"
        data = result.as_dict()
        assert data["selectionReason"] == "auto_selected"
        assert data["priority"] == 1


class TestNormalizedResponse:
    def test_wire_keys(self):
        resp = NormalizedResponse(
            request_id="req_1",
            use_case="text-to-video",
            processing_time_ms=12.5,
            output=OutputArtifact(type="video", format="mp4", data="gs://x", duration=5),
            async_info=AsyncInfo(job_id="op-1", status_url="/status/op-1"),
        )
        data = resp.to_dict()
        assert data["requestId"] == "req_1"
        assert data["useCase"] == "text-to-video"
        assert data["processingTimeMs"] == 12.5
        assert data["async"] == {"jobId": "op-1", "statusUrl": "/status/op-1",
                                 "estimatedTime": None}
        assert data["output"]["duration"] == 5

    def test_warnings_default_empty(self):
        assert NormalizedResponse(request_id="r").warnings == []
