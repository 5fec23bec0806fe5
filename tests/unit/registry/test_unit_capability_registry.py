# tests/unit/registry/test_unit_capability_registry.py — v1
"""Tests for registry/capability_registry.py."""

from __future__ import annotations

import pytest

from genrouter.registry.capability_registry import CapabilityRegistry, RegistryLookupError


class TestLookups:
    def test_default_capabilities(self, capability_registry):
        names = [c["name"] for c in capability_registry.list_capabilities()]
        assert names == ["video-generation", "image-generation", "text-generation"]

    def test_use_case_descriptor(self, capability_registry):
        uc = capability_registry.get_use_case("video-generation", "image-to-video")
        assert uc.capability == "video-generation"
        assert uc.requirements.essential == ("prompt", "image")
        assert uc.fallback_order == ("google", "runway")

    def test_unknown_capability(self, capability_registry):
        with pytest.raises(RegistryLookupError, match="audio-generation"):
            capability_registry.get_capability("audio-generation")

    def test_unknown_use_case(self, capability_registry):
        with pytest.raises(RegistryLookupError):
            capability_registry.get_use_case("video-generation", "video-to-video")

    def test_lookup_error_is_key_error(self):
        assert issubclass(RegistryLookupError, KeyError)
        assert str(RegistryLookupError("plain message")) == "plain message"

    def test_list_use_cases(self, capability_registry):
        use_cases = capability_registry.list_use_cases("image-generation")
        assert [u["name"] for u in use_cases] == [
            "text-to-image", "image-to-image", "multiple-images",
        ]

    def test_iter_use_cases(self, capability_registry):
        pairs = capability_registry.iter_use_cases()
        assert len(pairs) == 7
        assert ("text-generation", "content-creation") in pairs

    def test_has_use_case(self, capability_registry):
        assert capability_registry.has_use_case("video-generation", "text-to-video")
        assert not capability_registry.has_use_case("video-generation", "nope")
        assert not capability_registry.has_use_case("nope", "text-to-video")


class TestProviders:
    def test_active_providers_skip_planned(self, capability_registry):
        assert capability_registry.active_providers("video-generation", "text-to-video") == [
            "google"
        ]

    def test_supports_provider_any_status(self, capability_registry):
        assert capability_registry.supports_provider("runway", "video-generation", "text-to-video")
        assert not capability_registry.supports_provider(
            "azure", "video-generation", "text-to-video"
        )
        assert not capability_registry.supports_provider("google", "nope", "nope")

    def test_provider_info(self, capability_registry):
        entry = capability_registry.provider_info("azure", "image-generation", "text-to-image")
        assert entry.cost_tier == "premium"
        assert entry.models == ("gpt-image-1",)

    def test_provider_info_unknown(self, capability_registry):
        with pytest.raises(RegistryLookupError):
            capability_registry.provider_info("runway", "image-generation", "text-to-image")


class TestRecommendedProvider:
    def test_explicit_active(self, capability_registry):
        assert capability_registry.recommended_provider(
            "image-generation", "text-to-image", provider="google"
        ) == "google"

    def test_explicit_planned_ignored(self, capability_registry):
        assert capability_registry.recommended_provider(
            "image-generation", "text-to-image", provider="openai"
        ) == "azure"

    def test_cost_tier(self, capability_registry):
        assert capability_registry.recommended_provider(
            "image-generation", "text-to-image", cost_tier="standard"
        ) == "google"

    def test_fallback_order(self, small_capability_registry):
        assert small_capability_registry.recommended_provider(
            "video-generation", "text-to-video"
        ) == "beta"

    def test_no_active_provider(self):
        registry = CapabilityRegistry.from_dict({
            "x": {"use_cases": {"y": {"providers": {"p": {"status": "planned"}}}}},
        })
        with pytest.raises(RegistryLookupError, match="No active providers"):
            registry.recommended_provider("x", "y")


class TestStats:
    def test_counts(self, small_capability_registry):
        stats = small_capability_registry.stats()
        assert stats.as_dict() == {
            "capabilities": 1,
            "use_cases": 1,
            "providers": 3,
            "active_providers": 2,
        }

    def test_descriptors_frozen(self, capability_registry):
        uc = capability_registry.get_use_case("video-generation", "text-to-video")
        with pytest.raises(Exception):
            uc.description = "changed"
