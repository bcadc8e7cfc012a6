"""Provider registry keyed by provider identifier."""

from __future__ import annotations

import httpx

from chatmeter.config import Settings
from chatmeter.core import NotFoundError, get_logger
from chatmeter.providers.anthropic import AnthropicProvider
from chatmeter.providers.base import BaseProvider
from chatmeter.providers.mock import MockProvider
from chatmeter.providers.openai import OpenAIProvider
from chatmeter.providers.openrouter import OpenRouterProvider

logger = get_logger(__name__)


class ProviderRegistry:
    """Instantiate and manage provider clients."""

    def __init__(
        self,
        settings: Settings,
        transport_overrides: dict[str, httpx.AsyncBaseTransport] | None = None,
    ):
        self.settings = settings
        self.providers: dict[str, BaseProvider] = {}
        self._transport_overrides = transport_overrides or {}
        self._initialize()

    def _transport(self, provider_id: str) -> httpx.AsyncBaseTransport | None:
        return self._transport_overrides.get(provider_id)

    def _initialize(self) -> None:
        timeout = self.settings.effective_provider_timeout

        self.register(
            "openai",
            OpenAIProvider(
                base_url=self.settings.openai_base_url,
                api_key=self.settings.openai_api_key or None,
                timeout=timeout,
                transport=self._transport("openai"),
            ),
        )
        self.register(
            "openrouter",
            OpenRouterProvider(
                base_url=self.settings.openrouter_base_url,
                api_key=self.settings.openrouter_api_key or None,
                timeout=timeout,
                transport=self._transport("openrouter"),
            ),
        )
        self.register(
            "anthropic",
            AnthropicProvider(
                base_url=self.settings.anthropic_base_url,
                api_key=self.settings.anthropic_api_key or None,
                timeout=timeout,
                max_tokens=self.settings.anthropic_max_tokens,
                transport=self._transport("anthropic"),
            ),
        )
        self.register("mock", MockProvider())

        configured = [
            provider_id
            for provider_id, provider in self.providers.items()
            if getattr(provider, "api_key", True)
        ]
        logger.info(
            "Provider registry initialized",
            data={"providers": list(self.providers.keys()), "configured": configured},
        )

    def register(self, provider_id: str, provider: BaseProvider) -> None:
        """Add or replace the client for a provider id."""
        self.providers[provider_id.lower()] = provider

    def get(self, provider_id: str) -> BaseProvider:
        """Resolve a provider by ID or raise NotFoundError."""
        provider = self.providers.get(provider_id.lower())
        if not provider:
            raise NotFoundError(f"Provider '{provider_id}' not found")
        return provider

    async def aclose(self) -> None:
        """Close all provider clients."""
        for provider_id, provider in self.providers.items():
            try:
                await provider.aclose()
            except Exception:  # pragma: no cover
                logger.warning("Error closing provider client", data={"provider": provider_id})
