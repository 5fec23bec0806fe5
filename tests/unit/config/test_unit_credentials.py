# tests/unit/config/test_unit_credentials.py — v1
"""Tests for config/credentials.py."""

from __future__ import annotations

import pytest

from genrouter.config.credentials import CredentialsError, ProviderAuth, ProviderCredentials
from genrouter.config.settings import Settings


def _creds(**kwargs) -> ProviderCredentials:
    return ProviderCredentials(Settings(_env_file=None, **kwargs))  # type: ignore[call-arg]


class TestProviderAuth:
    def test_api_key_valid(self):
        assert ProviderAuth("azure", "Azure", "api_key", api_key="k").is_valid

    def test_api_key_missing(self):
        assert not ProviderAuth("azure", "Azure", "api_key").is_valid

    def test_service_account_needs_project(self):
        auth = ProviderAuth("google", "Google", "service_account", api_key="k")
        assert not auth.is_valid

    def test_service_account_with_path(self):
        auth = ProviderAuth(
            "google", "Google", "service_account",
            project_id="p", service_account_path="/tmp/sa.json",
        )
        assert auth.is_valid


class TestProviderCredentials:
    def test_nothing_configured(self):
        creds = _creds()
        assert creds.configured_providers() == []
        assert "google" in creds.known_providers

    def test_configured_from_settings(self):
        creds = _creds(azure_openai_api_key="k", google_cloud_project_id="p",
                       vertex_ai_api_key="v")
        assert creds.configured_providers() == ["azure", "google"]
        assert creds.is_configured("azure")
        assert not creds.is_configured("runway")

    def test_unknown_provider_not_configured(self):
        assert not _creds().is_configured("acme")

    def test_require_unknown(self):
        with pytest.raises(CredentialsError, match="not found"):
            _creds().require("acme")

    def test_require_missing_key(self):
        with pytest.raises(CredentialsError, match="missing credentials"):
            _creds().require("openai")

    def test_require_ok(self):
        auth = _creds(openai_api_key="sk").require("openai")
        assert auth.auth_type == "bearer_token"
        assert auth.api_key == "sk"

    def test_from_providers(self):
        creds = ProviderCredentials.from_providers({"google"})
        assert creds.configured_providers() == ["google"]
        assert not creds.is_configured("azure")
