"""
Server-sent event dispatch for chat streams.

A producer coroutine runs as its own task and pushes events into a bounded
queue; the async generator returned by ``StreamDispatcher.dispatch`` drains
the queue into ``data: <json>`` frames. Closing the generator (client
disconnect) cancels the producer. Every stream ends with exactly one
terminal event: ``assistant.completed`` or ``error``.
"""

from __future__ import annotations

import asyncio
import json
import time
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from enum import Enum
from typing import Any

from chatmeter.core import AppError, ErrorCode, get_logger, stream_id_ctx
from chatmeter.core.metrics import metrics
from chatmeter.providers.text import chunk_text

logger = get_logger(__name__)

DELTA = "assistant.delta"
COMPLETED = "assistant.completed"
USAGE_UPDATED = "usage.updated"
ERROR = "error"

_END = object()


class StreamState(str, Enum):
    OPENING = "opening"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"


def format_sse_event(payload: dict[str, Any]) -> str:
    """Serialize an event payload to an SSE data frame."""
    data = json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str)
    return f"data: {data}\n\n"


def format_sse_comment(comment: str = "ping") -> str:
    """Serialize an SSE comment (used for keep-alives)."""
    return f": {comment}\n\n"


class StreamEmitter:
    """Producer-side handle that enforces event order and a single terminal event."""

    def __init__(
        self,
        queue: asyncio.Queue,
        *,
        chunk_size: int = 20,
        delta_delay_seconds: float = 0.012,
    ):
        self._queue = queue
        self.chunk_size = chunk_size
        self.delta_delay_seconds = delta_delay_seconds
        self.state = StreamState.OPENING

    @property
    def finished(self) -> bool:
        return self.state in (StreamState.COMPLETED, StreamState.FAILED)

    async def _put(self, payload: dict[str, Any]) -> None:
        await self._queue.put(payload)

    async def delta(self, text: str) -> None:
        if self.finished:
            raise RuntimeError("stream already finished")
        self.state = StreamState.STREAMING
        await self._put({"type": DELTA, "text": text})

    async def deltas(self, text: str) -> None:
        """Emit ``text`` as fixed-size fragments with a short pause between them."""
        for index, fragment in enumerate(chunk_text(text, self.chunk_size)):
            if index and self.delta_delay_seconds > 0:
                await asyncio.sleep(self.delta_delay_seconds)
            await self.delta(fragment)

    async def completed(
        self,
        *,
        message_id: str,
        input_tokens: int,
        output_tokens: int,
        credits_used: float,
    ) -> None:
        if self.finished:
            raise RuntimeError("stream already finished")
        self.state = StreamState.COMPLETED
        await self._put(
            {
                "type": COMPLETED,
                "messageId": message_id,
                "inputTokens": input_tokens,
                "outputTokens": output_tokens,
                "creditsUsed": credits_used,
            }
        )

    async def usage_updated(self, *, daily_used: float, monthly_used: float) -> None:
        if self.state is not StreamState.COMPLETED:
            raise RuntimeError("usage update must follow completion")
        await self._put({"type": USAGE_UPDATED, "dailyUsed": daily_used, "monthlyUsed": monthly_used})

    async def error(self, code: ErrorCode, message: str) -> bool:
        """Emit the terminal error event. Returns False if the stream already ended."""
        if self.finished:
            return False
        self.state = StreamState.FAILED
        await self._put({"type": ERROR, "code": code.value, "message": message})
        return True


Producer = Callable[[StreamEmitter], Awaitable[None]]


class StreamDispatcher:
    """Runs a producer task and relays its events as SSE frames."""

    def __init__(
        self,
        *,
        queue_size: int = 32,
        ping_interval_seconds: float = 10.0,
        chunk_size: int = 20,
        delta_delay_seconds: float = 0.012,
    ):
        self.queue_size = queue_size
        self.ping_interval_seconds = ping_interval_seconds
        self.chunk_size = chunk_size
        self.delta_delay_seconds = delta_delay_seconds

    async def _run_producer(
        self, produce: Producer, emitter: StreamEmitter, queue: asyncio.Queue, stream_id: str
    ) -> None:
        stream_token = stream_id_ctx.set(stream_id)
        try:
            await produce(emitter)
            if not emitter.finished:
                raise RuntimeError("stream producer returned without a terminal event")
        except asyncio.CancelledError:
            raise
        except AppError as exc:
            metrics.increment("stream_errors_total")
            logger.warning(
                "Chat stream failed",
                data={"code": exc.code.value, "message": exc.message, "details": exc.details},
            )
            if not await emitter.error(exc.code, exc.message):
                logger.warning("Error raised after stream completed", data={"code": exc.code.value})
        except Exception as exc:
            metrics.increment("stream_errors_total")
            logger.exception("Unexpected error during chat stream", exc_info=exc)
            await emitter.error(ErrorCode.INTERNAL_ERROR, "An unexpected error occurred")
        finally:
            stream_id_ctx.reset(stream_token)
        await queue.put(_END)

    async def dispatch(self, produce: Producer) -> AsyncIterator[str]:
        """Start ``produce`` and yield SSE frames until the stream ends."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        emitter = StreamEmitter(
            queue,
            chunk_size=self.chunk_size,
            delta_delay_seconds=self.delta_delay_seconds,
        )
        stream_id = str(uuid.uuid4())
        ping_interval = float(self.ping_interval_seconds or 0)
        use_ping = ping_interval > 0

        task = asyncio.create_task(self._run_producer(produce, emitter, queue, stream_id))
        metrics.add_gauge("active_streams", 1)
        started = time.perf_counter()
        try:
            while True:
                try:
                    if use_ping:
                        item = await asyncio.wait_for(queue.get(), timeout=ping_interval)
                    else:
                        item = await queue.get()
                except TimeoutError:
                    metrics.increment("sse_pings_sent")
                    yield format_sse_comment()
                    continue
                if item is _END:
                    break
                yield format_sse_event(item)
        finally:
            if not task.done():
                task.cancel()
                logger.info("Chat stream closed by client", data={"stream_id": stream_id})
            await asyncio.gather(task, return_exceptions=True)
            metrics.add_gauge("active_streams", -1)
            metrics.observe("stream_duration_seconds", time.perf_counter() - started)
