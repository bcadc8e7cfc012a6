"""OpenRouter provider (OpenAI-compatible) adapter."""

from __future__ import annotations

import httpx

from chatmeter.providers.base import ProviderType
from chatmeter.providers.openai import OpenAIProvider


class OpenRouterProvider(OpenAIProvider):
    """OpenRouter uses the OpenAI-compatible API surface."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None,
        timeout: int,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(
            base_url=base_url,
            api_key=api_key,
            timeout=timeout,
            provider_type=ProviderType.OPENROUTER,
            display_name="OpenRouter",
            transport=transport,
        )
