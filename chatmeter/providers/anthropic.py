"""
Anthropic (Claude) messages API adapter.
"""

from __future__ import annotations

from typing import Any

import httpx

from chatmeter.core import ProviderNotConfiguredError
from chatmeter.providers.base import BaseProvider, ProviderRequest, ProviderResult, ProviderType
from chatmeter.providers.http_client import (
    create_http_client,
    parse_json,
    parse_usage,
    post_json,
    raise_for_status,
)
from chatmeter.providers.messages import joined_history, to_anthropic_messages
from chatmeter.providers.text import estimate_tokens

API_VERSION = "2023-06-01"


class AnthropicProvider(BaseProvider):
    """Adapter for Anthropic's ``/v1/messages`` endpoint."""

    provider_type = ProviderType.ANTHROPIC
    display_name = "Anthropic"

    def __init__(
        self,
        base_url: str,
        api_key: str | None,
        timeout: int,
        max_tokens: int = 2048,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.max_tokens = max_tokens
        headers = {
            "anthropic-version": API_VERSION,
            "Content-Type": "application/json",
        }
        if api_key:
            headers["x-api-key"] = api_key
        self._client = create_http_client(base_url, timeout, headers=headers, transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def complete(self, request: ProviderRequest) -> ProviderResult:
        if not self.api_key:
            raise ProviderNotConfiguredError(
                "Anthropic API key is not configured.",
                details={"provider": self.provider_type.value},
            )

        payload: dict[str, Any] = {
            "model": request.model,
            "max_tokens": self.max_tokens,
            "messages": to_anthropic_messages(request),
        }
        if request.system_prompt:
            payload["system"] = request.system_prompt

        response = await post_json(self._client, "/v1/messages", payload)
        raise_for_status(response)
        data = parse_json(response)

        # Only the first content block is read
        text = ""
        content = data.get("content")
        if isinstance(content, list) and content and isinstance(content[0], dict):
            text = content[0].get("text") or ""

        input_tokens, output_tokens = parse_usage(data, "input_tokens", "output_tokens")
        if input_tokens is None:
            input_tokens = estimate_tokens(joined_history(request))
        if output_tokens is None:
            output_tokens = estimate_tokens(text)

        return ProviderResult(
            text=text,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            raw_payload=data,
        )
