# src/config/credentials.py — v1
"""Provider credential presence checks.

Decides which providers are usable from the configured Settings. Obtaining
access tokens is the provider clients' business; this module only answers
"is this provider configured?".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from genrouter.config.settings import Settings

logger = logging.getLogger(__name__)

AuthType = Literal["api_key", "bearer_token", "service_account"]


class CredentialsError(Exception):
    """Raised when a provider is unknown or has no usable credentials."""


@dataclass(frozen=True)
class ProviderAuth:
    """Resolved authentication material for a provider."""

    provider: str
    display_name: str
    auth_type: AuthType
    api_key: str = ""
    project_id: str = ""
    service_account_path: str = ""
    endpoint: str = ""

    @property
    def is_valid(self) -> bool:
        """Whether the required fields for the auth scheme are present."""
        if self.auth_type in ("api_key", "bearer_token"):
            return bool(self.api_key)
        if self.auth_type == "service_account":
            return bool(self.project_id and (self.api_key or self.service_account_path))
        return False


class ProviderCredentials:
    """Per-provider credential table built from Settings."""

    def __init__(self, settings: Settings | None = None) -> None:
        settings = settings or Settings()
        self._auth: dict[str, ProviderAuth] = {
            "google": ProviderAuth(
                provider="google",
                display_name="Google Cloud Vertex AI",
                auth_type="service_account",
                api_key=settings.vertex_ai_api_key,
                project_id=settings.google_cloud_project_id,
                service_account_path=settings.google_service_account_path,
            ),
            "azure": ProviderAuth(
                provider="azure",
                display_name="Azure OpenAI",
                auth_type="api_key",
                api_key=settings.azure_openai_api_key,
                endpoint=settings.azure_openai_endpoint,
            ),
            "openai": ProviderAuth(
                provider="openai",
                display_name="OpenAI",
                auth_type="bearer_token",
                api_key=settings.openai_api_key,
            ),
            "runway": ProviderAuth(
                provider="runway",
                display_name="Runway ML",
                auth_type="api_key",
                api_key=settings.runway_api_key,
            ),
            "stability": ProviderAuth(
                provider="stability",
                display_name="Stability AI",
                auth_type="api_key",
                api_key=settings.stability_api_key,
            ),
        }

    @classmethod
    def from_providers(cls, providers: set[str] | list[str]) -> ProviderCredentials:
        """Build a table where exactly the given providers are configured."""
        creds = cls(Settings(_env_file=None))  # type: ignore[call-arg]
        creds._auth = {
            name: ProviderAuth(
                provider=name, display_name=name, auth_type="api_key", api_key="set",
            )
            for name in providers
        }
        return creds

    @property
    def known_providers(self) -> list[str]:
        """All providers with a credential entry, configured or not."""
        return sorted(self._auth)

    def is_configured(self, provider: str) -> bool:
        """Whether the provider exists and has valid credentials."""
        auth = self._auth.get(provider)
        return auth is not None and auth.is_valid

    def configured_providers(self) -> list[str]:
        """Sorted names of every provider with valid credentials."""
        return [name for name in sorted(self._auth) if self._auth[name].is_valid]

    def require(self, provider: str) -> ProviderAuth:
        """Return the provider's auth material or raise CredentialsError."""
        auth = self._auth.get(provider)
        if auth is None:
            raise CredentialsError(f"Provider '{provider}' not found in configuration")
        if not auth.is_valid:
            raise CredentialsError(
                f"Invalid or missing credentials for provider '{provider}'"
            )
        return auth
