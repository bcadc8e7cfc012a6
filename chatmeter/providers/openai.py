"""OpenAI chat completions adapter."""

from __future__ import annotations

import httpx

from chatmeter.core import ProviderBadResponseError, ProviderNotConfiguredError, get_logger
from chatmeter.providers.base import BaseProvider, ProviderRequest, ProviderResult, ProviderType
from chatmeter.providers.http_client import (
    create_http_client,
    parse_json,
    parse_usage,
    post_json,
    raise_for_status,
)
from chatmeter.providers.messages import joined_history, to_openai_messages
from chatmeter.providers.text import estimate_tokens

logger = get_logger(__name__)


class OpenAIProvider(BaseProvider):
    """Adapter for ``/v1/chat/completions`` style APIs."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None,
        timeout: int,
        provider_type: ProviderType = ProviderType.OPENAI,
        display_name: str = "OpenAI",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.provider_type = provider_type
        self.display_name = display_name
        self.api_key = api_key
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = create_http_client(base_url, timeout, headers=headers, transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def complete(self, request: ProviderRequest) -> ProviderResult:
        if not self.api_key:
            raise ProviderNotConfiguredError(
                f"{self.display_name} API key is not configured.",
                details={"provider": self.provider_type.value},
            )

        payload = {
            "model": request.model,
            "messages": to_openai_messages(request),
            "stream": False,
        }
        response = await post_json(self._client, "/v1/chat/completions", payload)
        raise_for_status(response)
        data = parse_json(response)

        try:
            text = data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderBadResponseError(
                details={"provider": self.provider_type.value, "reason": "missing choices"}
            ) from exc

        input_tokens, output_tokens = parse_usage(data, "prompt_tokens", "completion_tokens")
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
