"""Tests for provider adapters and the registry."""

from __future__ import annotations

import json

import httpx
import pytest

from chatmeter.config import Settings
from chatmeter.core import (
    NotFoundError,
    ProviderAuthError,
    ProviderBadResponseError,
    ProviderError,
    ProviderErrorKind,
    ProviderNotConfiguredError,
    ProviderRateLimitedError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)
from chatmeter.providers import (
    AnthropicProvider,
    ChatMessage,
    MockProvider,
    OpenAIProvider,
    OpenRouterProvider,
    ProviderAttachment,
    ProviderRegistry,
    ProviderRequest,
)
from chatmeter.providers.text import chunk_text, estimate_tokens


def _request(**overrides) -> ProviderRequest:
    values = {
        "model": "gpt-test",
        "messages": [
            ChatMessage(role="user", content="Hello"),
            ChatMessage(role="assistant", content="Hi"),
            ChatMessage(role="user", content="Summarize this"),
        ],
        "system_prompt": "You are a helpful AI assistant.",
    }
    values.update(overrides)
    return ProviderRequest(**values)


def _openai(handler, api_key: str | None = "test-key") -> OpenAIProvider:
    return OpenAIProvider(
        base_url="http://openai.test",
        api_key=api_key,
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


def test_estimate_tokens() -> None:
    assert estimate_tokens("") == 0
    assert estimate_tokens("   ") == 0
    assert estimate_tokens("abc") == 1
    assert estimate_tokens("a" * 40) == 10


def test_chunk_text() -> None:
    assert chunk_text("abcdefg", 3) == ["abc", "def", "g"]
    assert chunk_text("  ", 3) == []


@pytest.mark.asyncio
async def test_openai_parses_text_and_usage() -> None:
    captured: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["path"] = request.url.path
        captured["auth"] = request.headers.get("Authorization")
        captured["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "choices": [{"message": {"role": "assistant", "content": "Sure."}}],
                "usage": {"prompt_tokens": 42, "completion_tokens": 7},
            },
        )

    provider = _openai(handler)
    attachment = ProviderAttachment(file_name="notes.txt", mime_type="text/plain", extracted_text="alpha")
    result = await provider.complete(_request(attachments=[attachment]))

    assert result.text == "Sure."
    assert (result.input_tokens, result.output_tokens) == (42, 7)
    assert captured["path"] == "/v1/chat/completions"
    assert captured["auth"] == "Bearer test-key"
    messages = captured["body"]["messages"]
    assert messages[0] == {"role": "system", "content": "You are a helpful AI assistant."}
    assert messages[-1] == {
        "role": "user",
        "content": "Attachment context:\nFile: notes.txt (text/plain)\nalpha",
    }
    assert captured["body"]["stream"] is False
    await provider.aclose()


@pytest.mark.asyncio
async def test_openai_estimates_tokens_without_usage() -> None:
    provider = _openai(
        lambda request: httpx.Response(
            200, json={"choices": [{"message": {"content": "x" * 20}}]}
        )
    )
    request = _request()

    result = await provider.complete(request)

    assert result.output_tokens == 5
    assert result.input_tokens == estimate_tokens("Hello\nHi\nSummarize this")
    await provider.aclose()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "usage",
    [
        {"prompt_tokens": "n/a", "completion_tokens": 3},
        {"prompt_tokens": 4, "completion_tokens": 2.5},
        {"prompt_tokens": True},
        "none",
        [12, 3],
    ],
)
async def test_openai_malformed_usage_is_permanent_bad_response(usage) -> None:
    provider = _openai(
        lambda request: httpx.Response(
            200, json={"choices": [{"message": {"content": "ok"}}], "usage": usage}
        )
    )

    with pytest.raises(ProviderBadResponseError) as exc_info:
        await provider.complete(_request())

    assert exc_info.value.kind is ProviderErrorKind.PERMANENT
    await provider.aclose()


@pytest.mark.asyncio
async def test_anthropic_malformed_usage_is_permanent_bad_response() -> None:
    provider = AnthropicProvider(
        base_url="http://anthropic.test",
        api_key="secret",
        timeout=5,
        transport=httpx.MockTransport(
            lambda request: httpx.Response(
                200,
                json={
                    "content": [{"type": "text", "text": "Bonjour"}],
                    "usage": {"input_tokens": "eleven", "output_tokens": 2},
                },
            )
        ),
    )

    with pytest.raises(ProviderBadResponseError) as exc_info:
        await provider.complete(_request(model="claude-test"))

    assert exc_info.value.kind is ProviderErrorKind.PERMANENT
    await provider.aclose()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "error_type", "kind"),
    [
        (401, ProviderAuthError, ProviderErrorKind.PERMANENT),
        (403, ProviderAuthError, ProviderErrorKind.PERMANENT),
        (429, ProviderRateLimitedError, ProviderErrorKind.TRANSIENT),
        (500, ProviderUnavailableError, ProviderErrorKind.TRANSIENT),
        (503, ProviderUnavailableError, ProviderErrorKind.TRANSIENT),
        (400, ProviderError, ProviderErrorKind.PERMANENT),
    ],
)
async def test_openai_maps_http_status(status, error_type, kind) -> None:
    provider = _openai(lambda request: httpx.Response(status, json={"error": "nope"}))

    with pytest.raises(error_type) as exc_info:
        await provider.complete(_request())

    assert exc_info.value.kind is kind
    await provider.aclose()


@pytest.mark.asyncio
async def test_network_errors_are_transient() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    def stall(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    for handler, error_type in ((refuse, ProviderUnavailableError), (stall, ProviderTimeoutError)):
        provider = _openai(handler)
        with pytest.raises(error_type) as exc_info:
            await provider.complete(_request())
        assert exc_info.value.is_transient
        await provider.aclose()


@pytest.mark.asyncio
async def test_malformed_body_is_permanent() -> None:
    for response in (
        httpx.Response(200, text="<html>oops</html>"),
        httpx.Response(200, json=["not", "an", "object"]),
        httpx.Response(200, json={"choices": []}),
    ):
        provider = _openai(lambda request, response=response: response)
        with pytest.raises(ProviderBadResponseError) as exc_info:
            await provider.complete(_request())
        assert not exc_info.value.is_transient
        await provider.aclose()


@pytest.mark.asyncio
async def test_missing_api_key_fails_without_request() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    provider = _openai(handler, api_key=None)

    with pytest.raises(ProviderNotConfiguredError):
        await provider.complete(_request())
    assert calls == []
    await provider.aclose()


@pytest.mark.asyncio
async def test_anthropic_sends_system_field_and_headers() -> None:
    captured: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["path"] = request.url.path
        captured["headers"] = request.headers
        captured["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "content": [{"type": "text", "text": "Bonjour"}, {"type": "text", "text": "ignored"}],
                "usage": {"input_tokens": 11, "output_tokens": 2},
            },
        )

    provider = AnthropicProvider(
        base_url="http://anthropic.test",
        api_key="secret",
        timeout=5,
        max_tokens=512,
        transport=httpx.MockTransport(handler),
    )
    result = await provider.complete(_request(model="claude-test"))

    assert result.text == "Bonjour"
    assert (result.input_tokens, result.output_tokens) == (11, 2)
    assert captured["path"] == "/v1/messages"
    assert captured["headers"]["x-api-key"] == "secret"
    assert captured["headers"]["anthropic-version"] == "2023-06-01"
    body = captured["body"]
    assert body["system"] == "You are a helpful AI assistant."
    assert body["max_tokens"] == 512
    assert [message["role"] for message in body["messages"]] == ["user", "assistant", "user"]
    await provider.aclose()


@pytest.mark.asyncio
async def test_openrouter_uses_openai_surface() -> None:
    captured: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        return httpx.Response(200, json={"choices": [{"message": {"content": "routed"}}]})

    provider = OpenRouterProvider(
        base_url="http://openrouter.test/api",
        api_key="or-key",
        timeout=5,
        transport=httpx.MockTransport(handler),
    )
    result = await provider.complete(_request(model="openrouter/auto"))

    assert result.text == "routed"
    assert captured["url"] == "http://openrouter.test/api/v1/chat/completions"
    await provider.aclose()


@pytest.mark.asyncio
async def test_mock_provider_echoes_latest_prompt() -> None:
    provider = MockProvider()

    result = await provider.complete(_request())
    empty = await provider.complete(_request(messages=[]))

    assert "You said: Summarize this" in result.text
    assert result.input_tokens == estimate_tokens("Summarize this")
    assert empty.text == "I did not receive a prompt."


@pytest.mark.asyncio
async def test_stream_restarts_from_scratch() -> None:
    provider = MockProvider()
    request = _request()

    first = [fragment async for fragment in provider.stream(request, chunk_size=7)]
    second = [fragment async for fragment in provider.stream(request, chunk_size=7)]

    assert first == second
    assert "".join(first) == (await provider.complete(request)).text


@pytest.mark.asyncio
async def test_registry_lookup_is_case_insensitive() -> None:
    registry = ProviderRegistry(Settings(openai_api_key="k"))

    assert isinstance(registry.get("OpenAI"), OpenAIProvider)
    assert isinstance(registry.get("mock"), MockProvider)
    with pytest.raises(NotFoundError):
        registry.get("ollama")
    await registry.aclose()
