"""Chat orchestration: admission, provider completion, accounting, SSE streaming."""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy.orm import Session, sessionmaker

from chatmeter.config import Settings, get_settings
from chatmeter.core import (
    ChatNotFoundError,
    ModelNotPermittedError,
    ModelUnavailableError,
    QuotaExceededError,
    RateLimitError,
    ValidationError,
    get_logger,
    request_id_ctx,
    user_id_ctx,
)
from chatmeter.core.metrics import metrics
from chatmeter.db.models import ModelCatalogEntry
from chatmeter.db.repositories import (
    build_chat_title,
    count_chat_messages,
    create_message,
    get_enabled_fallback,
    get_enabled_model,
    get_ready_attachments,
    get_recent_messages,
    get_user_chat,
    is_model_allowed_for_plan,
    update_chat_title,
)
from chatmeter.providers import ChatMessage, ProviderAttachment, ProviderRegistry, ProviderRequest
from chatmeter.services.memory import MemoryService
from chatmeter.services.plans import get_limits
from chatmeter.services.provider_gateway import GatewayResult, ProviderGateway
from chatmeter.services.quota import PlanLimits, QuotaAccountant, QuotaSnapshot, UsageRecord
from chatmeter.services.rate_limiter import RateLimiter
from chatmeter.services.stream_dispatcher import StreamDispatcher, StreamEmitter

logger = get_logger(__name__)


@dataclass
class StreamContext:
    """Everything the stream producer needs once admission has passed."""

    user_id: str
    chat_id: str
    limits: PlanLimits
    model: ModelCatalogEntry
    fallback: ModelCatalogEntry | None
    history: list[ChatMessage]
    attachments: list[ProviderAttachment] = field(default_factory=list)
    request_id: str | None = None


@dataclass(frozen=True)
class ExchangeOutcome:
    message_id: str
    credits: Decimal
    snapshot: QuotaSnapshot


class ChatService:
    """Admits chat requests and streams model replies as server-sent events."""

    def __init__(
        self,
        registry: ProviderRegistry,
        *,
        session_factory: sessionmaker[Session],
        settings: Settings | None = None,
        rate_limiter: RateLimiter | None = None,
        accountant: QuotaAccountant | None = None,
    ):
        self.settings = settings or get_settings()
        self.session_factory = session_factory
        self.gateway = ProviderGateway(registry)
        self.rate_limiter = rate_limiter or RateLimiter()
        self.accountant = accountant or QuotaAccountant()
        self.memory = MemoryService(
            fact_limit=self.settings.memory_fact_limit,
            summary_max_chars=self.settings.summary_max_chars,
            summary_history_lines=self.settings.summary_history_lines,
        )
        self.dispatcher = StreamDispatcher(
            queue_size=self.settings.stream_queue_size,
            ping_interval_seconds=self.settings.sse_ping_interval_seconds,
            chunk_size=self.settings.stream_chunk_size,
            delta_delay_seconds=self.settings.stream_delta_delay_ms / 1000,
        )

    def prepare_stream(
        self,
        db: Session,
        *,
        user_id: str,
        chat_id: str,
        model_key: str,
        text: str,
        attachment_ids: list[str] | None = None,
    ) -> StreamContext:
        """
        Run every pre-stream check, then store the user message.

        Checks run in a fixed order and the first failure is raised as an
        ``AppError``; nothing is written until all of them pass.
        """
        if not text or not text.strip():
            raise ValidationError("Message text cannot be empty.")

        chat = get_user_chat(db, user_id, chat_id)
        if chat is None:
            raise ChatNotFoundError()

        limits = get_limits(db, user_id)
        if not self.rate_limiter.admit(user_id, limits.requests_per_minute):
            metrics.increment("rate_limit_blocks_total")
            logger.info(
                "Rate limit exceeded",
                data={"plan": limits.plan_name, "limit": limits.requests_per_minute},
            )
            raise RateLimitError(details={"limit": limits.requests_per_minute})

        decision = self.accountant.evaluate(db, user_id, limits)
        if not decision.allowed:
            metrics.increment("quota_blocks_total")
            logger.info("Quota exceeded", data={"plan": limits.plan_name, "reason": decision.reason})
            raise QuotaExceededError(decision.reason)

        model = get_enabled_model(db, model_key)
        if model is None:
            raise ModelUnavailableError(details={"modelKey": model_key})
        if not is_model_allowed_for_plan(model, limits.plan_name):
            raise ModelNotPermittedError(details={"modelKey": model_key, "plan": limits.plan_name})

        fallback = get_enabled_fallback(db, model)
        attachments = get_ready_attachments(db, user_id, attachment_ids or [])

        text = text.strip()
        is_first_message = count_chat_messages(db, chat.id) == 0
        create_message(db, chat.id, "user", text, model_key=model.model_key)
        if is_first_message:
            update_chat_title(db, chat, build_chat_title(text))
        self.memory.extract_facts(db, user_id, text)

        history = get_recent_messages(db, chat.id, self.settings.chat_history_window)
        max_chars = self.settings.attachment_text_max_chars
        return StreamContext(
            user_id=user_id,
            chat_id=chat.id,
            limits=limits,
            model=model,
            fallback=fallback,
            history=[ChatMessage(role=message.role, content=message.text) for message in history],
            attachments=[
                ProviderAttachment(
                    file_name=attachment.file_name,
                    mime_type=attachment.mime_type,
                    extracted_text=(attachment.extracted_text or "")[:max_chars] or None,
                )
                for attachment in attachments
            ],
            request_id=request_id_ctx.get(),
        )

    def stream(self, context: StreamContext) -> AsyncIterator[str]:
        """SSE frames for one admitted request."""

        async def produce(emitter: StreamEmitter) -> None:
            request_id_ctx.set(context.request_id)
            user_id_ctx.set(context.user_id)

            system_prompt = await asyncio.to_thread(self._build_system_prompt, context)
            request = ProviderRequest(
                model=context.model.provider_model_id or context.model.model_key,
                messages=context.history,
                system_prompt=system_prompt,
                attachments=context.attachments,
            )
            completion = await self.gateway.complete_with_fallback(
                context.model, context.fallback, request
            )
            outcome = await asyncio.to_thread(self._finish_exchange, context, completion)

            await emitter.deltas(completion.result.text)
            await emitter.completed(
                message_id=outcome.message_id,
                input_tokens=completion.result.input_tokens,
                output_tokens=completion.result.output_tokens,
                credits_used=float(outcome.credits),
            )
            await emitter.usage_updated(
                daily_used=float(outcome.snapshot.daily_credits),
                monthly_used=float(outcome.snapshot.monthly_credits),
            )

        return self.dispatcher.dispatch(produce)

    def _build_system_prompt(self, context: StreamContext) -> str:
        with self.session_factory() as db:
            return self.memory.build_system_prompt(db, context.user_id, context.chat_id)

    def _finish_exchange(self, context: StreamContext, completion: GatewayResult) -> ExchangeOutcome:
        """Persist the reply, charge usage, refresh the summary."""
        result = completion.result
        with self.session_factory() as db:
            assistant_message = create_message(
                db,
                context.chat_id,
                "assistant",
                result.text,
                model_key=completion.model_key,
                input_tokens=result.input_tokens,
                output_tokens=result.output_tokens,
                raw_payload_json=json.dumps(result.raw_payload, default=str),
            )

            credits = self.accountant.record(
                db,
                UsageRecord(
                    user_id=context.user_id,
                    model_key=completion.model_key,
                    cycle_key=context.limits.cycle_key,
                    input_tokens=result.input_tokens,
                    output_tokens=result.output_tokens,
                    input_weight=completion.model.input_weight,
                    output_weight=completion.model.output_weight,
                    message_id=assistant_message.id,
                ),
            )

            summary = self.memory.build_summary_text(
                [(message.role, message.content) for message in context.history], result.text
            )
            self.memory.update_summary(db, context.chat_id, summary)

            snapshot = self.accountant.settled_snapshot(db, context.user_id, context.limits)

        if completion.used_fallback:
            logger.info(
                "Reply served by fallback model",
                data={"primary": context.model.model_key, "fallback": completion.model_key},
            )
        return ExchangeOutcome(message_id=assistant_message.id, credits=credits, snapshot=snapshot)
