"""Deterministic offline provider."""

from chatmeter.providers.base import BaseProvider, ProviderRequest, ProviderResult, ProviderType
from chatmeter.providers.text import estimate_tokens

NO_PROMPT_REPLY = "I did not receive a prompt."


class MockProvider(BaseProvider):
    """Echoes the latest user prompt without any network I/O."""

    provider_type = ProviderType.MOCK
    display_name = "Mock"

    async def complete(self, request: ProviderRequest) -> ProviderResult:
        latest_prompt = next(
            (message.content for message in reversed(request.messages) if message.role == "user"),
            "",
        )
        if latest_prompt:
            answer = (
                f"(Mock provider) You said: {latest_prompt}\n\n"
                "This is a placeholder response. Configure OpenAI/Anthropic/OpenRouter "
                "API keys to get real model output."
            )
        else:
            answer = NO_PROMPT_REPLY

        return ProviderResult(
            text=answer,
            input_tokens=estimate_tokens(latest_prompt),
            output_tokens=estimate_tokens(answer),
        )
