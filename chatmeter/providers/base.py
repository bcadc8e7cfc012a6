"""
Base provider interface.

Defines the contract that all upstream model providers must implement.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from chatmeter.providers.text import chunk_text


class ProviderType(str, Enum):
    """Supported provider types."""

    OPENAI = "openai"
    OPENROUTER = "openrouter"
    ANTHROPIC = "anthropic"
    MOCK = "mock"


@dataclass
class ChatMessage:
    """A single chat message."""

    role: str  # "system", "user", "assistant"
    content: str


@dataclass
class ProviderAttachment:
    """Attachment text handed to the model as context."""

    file_name: str
    mime_type: str
    extracted_text: str | None = None


@dataclass
class ProviderRequest:
    """Request for a chat completion against one provider-native model."""

    model: str
    messages: list[ChatMessage]
    system_prompt: str | None = None
    attachments: list[ProviderAttachment] = field(default_factory=list)

    def retarget(self, model: str) -> ProviderRequest:
        """Same conversation, different provider-native model id."""
        return replace(self, model=model)


@dataclass
class ProviderResult:
    """Complete provider response with token usage."""

    text: str
    input_tokens: int
    output_tokens: int
    raw_payload: dict[str, Any] = field(default_factory=dict)


class BaseProvider(ABC):
    """
    Abstract base class for model providers.

    Implementations map transport failures to ``ProviderError`` subclasses
    so callers can tell transient failures from permanent ones.
    """

    provider_type: ProviderType
    display_name: str = ""

    async def aclose(self) -> None:
        """Close any underlying resources (optional)."""
        return None

    @abstractmethod
    async def complete(self, request: ProviderRequest) -> ProviderResult:
        """
        Send a chat request and wait for the complete response.

        Raises:
            ProviderError: permanent failures (auth, malformed response)
            ProviderUnavailableError: transient failures (network, 5xx)
            ProviderTimeoutError: transient timeout
        """
        ...

    def stream(self, request: ProviderRequest, chunk_size: int = 20) -> AsyncIterator[str]:
        """
        Lazily yield text fragments of a completion.

        Each call starts from scratch with a new completion.
        """

        async def fragments() -> AsyncIterator[str]:
            result = await self.complete(request)
            for fragment in chunk_text(result.text, chunk_size):
                yield fragment

        return fragments()
