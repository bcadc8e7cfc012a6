"""Business services: admission, accounting, memory, provider fallback, streaming."""

from chatmeter.services.chat_service import ChatService, StreamContext
from chatmeter.services.credits import compute_credits
from chatmeter.services.memory import MemoryService, extract_facts
from chatmeter.services.plans import get_active_subscription, get_free_plan, get_limits
from chatmeter.services.provider_gateway import GatewayResult, ProviderAttempt, ProviderGateway
from chatmeter.services.quota import (
    PlanLimits,
    QuotaAccountant,
    QuotaDecision,
    QuotaSnapshot,
    UsageRecord,
)
from chatmeter.services.rate_limiter import RateLimiter
from chatmeter.services.stream_dispatcher import (
    StreamDispatcher,
    StreamEmitter,
    format_sse_comment,
    format_sse_event,
)

__all__ = [
    "ChatService",
    "StreamContext",
    "compute_credits",
    "MemoryService",
    "extract_facts",
    "get_active_subscription",
    "get_free_plan",
    "get_limits",
    "GatewayResult",
    "ProviderAttempt",
    "ProviderGateway",
    "PlanLimits",
    "QuotaAccountant",
    "QuotaDecision",
    "QuotaSnapshot",
    "UsageRecord",
    "RateLimiter",
    "StreamDispatcher",
    "StreamEmitter",
    "format_sse_comment",
    "format_sse_event",
]
