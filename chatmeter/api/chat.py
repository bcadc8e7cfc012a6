"""Chat and message endpoints, including the SSE message stream."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Request, status
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from chatmeter.auth import RequireUser
from chatmeter.config import get_settings
from chatmeter.core import ChatNotFoundError
from chatmeter.core.logging import request_id_ctx
from chatmeter.db import get_db, get_session_factory
from chatmeter.db.models import Chat, Message
from chatmeter.db.repositories import (
    create_chat,
    get_chat_messages,
    get_user_chat,
    list_user_chats,
)
from chatmeter.providers import ProviderRegistry
from chatmeter.services.chat_service import ChatService

router = APIRouter(tags=["chat"])


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateChatRequest(CamelModel):
    title: str | None = Field(None, max_length=255)


class ChatResponse(CamelModel):
    id: str
    title: str
    created_at: str
    updated_at: str


class MessageResponse(CamelModel):
    id: str
    role: str
    text: str
    model_key: str | None
    input_tokens: int | None
    output_tokens: int | None
    created_at: str


class SendMessageRequest(CamelModel):
    model_key: str = Field(..., min_length=1, max_length=64)
    text: str
    attachment_ids: list[str] = Field(default_factory=list)


def get_chat_service(request: Request) -> ChatService:
    service = getattr(request.app.state, "chat_service", None)
    if service:
        return service
    registry = getattr(request.app.state, "provider_registry", None)
    if registry is None:
        registry = ProviderRegistry(get_settings())
        request.app.state.provider_registry = registry
    session_factory = getattr(request.app.state, "session_factory", None) or get_session_factory()
    service = ChatService(
        registry,
        session_factory=session_factory,
        rate_limiter=getattr(request.app.state, "rate_limiter", None),
    )
    request.app.state.chat_service = service
    return service


def _chat_to_response(chat: Chat) -> ChatResponse:
    return ChatResponse(
        id=chat.id,
        title=chat.title,
        created_at=chat.created_at.isoformat(),
        updated_at=chat.updated_at.isoformat(),
    )


def _message_to_response(message: Message) -> MessageResponse:
    return MessageResponse(
        id=message.id,
        role=message.role,
        text=message.text,
        model_key=message.model_key,
        input_tokens=message.input_tokens,
        output_tokens=message.output_tokens,
        created_at=message.created_at.isoformat(),
    )


@router.post("/chats", status_code=status.HTTP_201_CREATED)
def create_chat_route(
    user: RequireUser,
    body: CreateChatRequest | None = Body(None),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    chat = create_chat(db, user.id, title=body.title if body else None)
    return {"chat": _chat_to_response(chat)}


@router.get("/chats")
def list_chats_route(
    user: RequireUser,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    chats = list_user_chats(db, user.id)
    return {"chats": [_chat_to_response(chat) for chat in chats]}


@router.get("/chats/{chat_id}/messages")
def list_messages_route(
    chat_id: str,
    user: RequireUser,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    chat = get_user_chat(db, user.id, chat_id)
    if not chat:
        raise ChatNotFoundError()
    messages = get_chat_messages(db, chat.id)
    return {
        "chatId": chat.id,
        "messages": [_message_to_response(message) for message in messages],
    }


@router.post("/chats/{chat_id}/messages/stream")
def stream_message_route(
    chat_id: str,
    user: RequireUser,
    body: SendMessageRequest = Body(...),
    chat_service: ChatService = Depends(get_chat_service),
    db: Session = Depends(get_db),
) -> StreamingResponse:
    context = chat_service.prepare_stream(
        db,
        user_id=user.id,
        chat_id=chat_id,
        model_key=body.model_key,
        text=body.text,
        attachment_ids=body.attachment_ids,
    )
    headers = {"Cache-Control": "no-cache", "Connection": "keep-alive"}
    request_id = request_id_ctx.get()
    if request_id:
        headers["X-Request-ID"] = request_id
    return StreamingResponse(
        chat_service.stream(context), media_type="text/event-stream", headers=headers
    )
