"""Model provider interfaces and implementations."""

from chatmeter.providers.anthropic import AnthropicProvider
from chatmeter.providers.base import (
    BaseProvider,
    ChatMessage,
    ProviderAttachment,
    ProviderRequest,
    ProviderResult,
    ProviderType,
)
from chatmeter.providers.mock import MockProvider
from chatmeter.providers.openai import OpenAIProvider
from chatmeter.providers.openrouter import OpenRouterProvider
from chatmeter.providers.registry import ProviderRegistry

__all__ = [
    "BaseProvider",
    "ChatMessage",
    "ProviderAttachment",
    "ProviderRequest",
    "ProviderResult",
    "ProviderType",
    "AnthropicProvider",
    "MockProvider",
    "OpenAIProvider",
    "OpenRouterProvider",
    "ProviderRegistry",
]
