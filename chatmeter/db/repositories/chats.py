"""Repository helpers for chats and messages."""

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from chatmeter.core.time import utcnow
from chatmeter.db.models import Chat, Message

DEFAULT_CHAT_TITLE = "New chat"


def create_chat(db: Session, user_id: str, title: str | None = None) -> Chat:
    """Create a new chat for the given user."""
    chat = Chat(
        user_id=user_id,
        title=title.strip() if title and title.strip() else DEFAULT_CHAT_TITLE,
    )
    db.add(chat)
    db.commit()
    db.refresh(chat)
    return chat


def get_user_chat(db: Session, user_id: str, chat_id: str) -> Chat | None:
    """Fetch chat owned by user."""
    stmt = select(Chat).where(Chat.id == chat_id, Chat.user_id == user_id)
    return db.execute(stmt).scalar_one_or_none()


def list_user_chats(db: Session, user_id: str) -> list[Chat]:
    """List chats belonging to the user, most recently updated first."""
    stmt = (
        select(Chat)
        .where(Chat.user_id == user_id)
        .order_by(Chat.updated_at.desc())
    )
    return list(db.execute(stmt).scalars().all())


def count_chat_messages(db: Session, chat_id: str) -> int:
    stmt = select(func.count(Message.id)).where(Message.chat_id == chat_id)
    return db.execute(stmt).scalar_one()


def create_message(
    db: Session,
    chat_id: str,
    role: str,
    text: str,
    *,
    model_key: str | None = None,
    input_tokens: int | None = None,
    output_tokens: int | None = None,
    raw_payload_json: str | None = None,
) -> Message:
    """Insert a chat message and bump the chat's updated_at."""
    message = Message(
        chat_id=chat_id,
        role=role,
        text=text,
        model_key=model_key,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        raw_payload_json=raw_payload_json,
    )
    db.add(message)
    chat = db.get(Chat, chat_id)
    if chat is not None:
        chat.updated_at = utcnow()
    db.commit()
    db.refresh(message)
    return message


def get_chat_messages(db: Session, chat_id: str) -> list[Message]:
    """Get all messages for a chat ordered by creation time."""
    stmt = (
        select(Message)
        .where(Message.chat_id == chat_id)
        .order_by(Message.created_at.asc())
    )
    return list(db.execute(stmt).scalars().all())


def get_recent_messages(db: Session, chat_id: str, limit: int) -> list[Message]:
    """Get the trailing ``limit`` messages of a chat, oldest first."""
    stmt = (
        select(Message)
        .where(Message.chat_id == chat_id)
        .order_by(Message.created_at.desc())
        .limit(limit)
    )
    messages = list(db.execute(stmt).scalars().all())
    messages.reverse()
    return messages


def build_chat_title(text: str) -> str:
    """First eight words of a message, capped at 72 characters."""
    words = text.split()
    if not words:
        return DEFAULT_CHAT_TITLE
    return " ".join(words[:8])[:72]


def update_chat_title(db: Session, chat: Chat, title: str) -> Chat:
    """Rename a chat."""
    chat.title = title.strip() or chat.title
    db.commit()
    db.refresh(chat)
    return chat
