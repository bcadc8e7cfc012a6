"""
SQLAlchemy ORM models.

Defines all database tables for chatmeter.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Date,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chatmeter.core.time import utcnow
from chatmeter.db.base import Base, TimestampMixin

# Credits are money-like; keep them exact.
Credits = Numeric(18, 4)
Weight = Numeric(10, 4)

ATTACHMENT_READY = "ready"


def generate_uuid() -> str:
    """Generate a UUID string for primary keys."""
    return str(uuid4())


class User(Base, TimestampMixin):
    """Subject tracked by rate limits and quotas."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    external_id: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default="user"
    )  # admin, user

    chats: Mapped[list[Chat]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )
    subscriptions: Mapped[list[Subscription]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )


class Plan(Base, TimestampMixin):
    """Subscription plan with its rate and credit limits."""

    __tablename__ = "plans"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    name: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    requests_per_minute: Mapped[int] = mapped_column(Integer, nullable=False)
    requests_per_day: Mapped[int] = mapped_column(Integer, nullable=False)
    requests_per_month: Mapped[int] = mapped_column(Integer, nullable=False)
    credits_per_day: Mapped[Decimal] = mapped_column(Credits, nullable=False)
    credits_per_month: Mapped[Decimal] = mapped_column(Credits, nullable=False)
    monthly_price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0")
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Subscription(Base, TimestampMixin):
    """A user's paid plan for one billing period."""

    __tablename__ = "subscriptions"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    plan_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("plans.id", ondelete="RESTRICT"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="active"
    )  # active, canceled, expired
    period_start: Mapped[datetime] = mapped_column(nullable=False)
    period_end: Mapped[datetime] = mapped_column(nullable=False)

    user: Mapped[User] = relationship(back_populates="subscriptions")
    plan: Mapped[Plan] = relationship()

    __table_args__ = (
        Index("ix_subscriptions_user_id", "user_id"),
        Index("ix_subscriptions_period_end", "period_end"),
    )


class ModelCatalogEntry(Base, TimestampMixin):
    """Model descriptor: provider routing, credit weights, plan access."""

    __tablename__ = "model_catalog"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    model_key: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(128), nullable=False)
    provider: Mapped[str] = mapped_column(String(32), nullable=False)
    provider_model_id: Mapped[str] = mapped_column(String(128), nullable=False)
    fallback_model_key: Mapped[str | None] = mapped_column(String(64), nullable=True)
    input_weight: Mapped[Decimal] = mapped_column(Weight, nullable=False, default=Decimal("1"))
    output_weight: Mapped[Decimal] = mapped_column(Weight, nullable=False, default=Decimal("1"))
    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    plan_access_csv: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    @property
    def plan_access(self) -> list[str]:
        return [name.strip() for name in self.plan_access_csv.split(",") if name.strip()]


class Chat(Base, TimestampMixin):
    """Chat conversation owned by one user."""

    __tablename__ = "chats"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="New chat")

    user: Mapped[User] = relationship(back_populates="chats")
    messages: Mapped[list[Message]] = relationship(
        back_populates="chat", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_chats_user_id", "user_id"),
        Index("ix_chats_updated_at", "updated_at"),
    )


class Message(Base):
    """Chat message."""

    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    chat_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("chats.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[str] = mapped_column(
        String(20), nullable=False
    )  # system, user, assistant
    text: Mapped[str] = mapped_column(Text, nullable=False)
    model_key: Mapped[str | None] = mapped_column(String(64), nullable=True)
    input_tokens: Mapped[int | None] = mapped_column(Integer, nullable=True)
    output_tokens: Mapped[int | None] = mapped_column(Integer, nullable=True)
    raw_payload_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    chat: Mapped[Chat] = relationship(back_populates="messages")

    __table_args__ = (
        Index("ix_messages_chat_id", "chat_id"),
        Index("ix_messages_created_at", "created_at"),
    )


class Attachment(Base):
    """Uploaded file with text extracted for prompt context."""

    __tablename__ = "attachments"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    chat_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("chats.id", ondelete="SET NULL"), nullable=True
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(128), nullable=False)
    size_bytes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    storage_key: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending"
    )  # pending, uploaded, ready, failed
    extracted_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    __table_args__ = (Index("ix_attachments_user_id", "user_id"),)


class MemoryFact(Base):
    """Durable key/value fact about a user."""

    __tablename__ = "memory_facts"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    key: Mapped[str] = mapped_column(String(64), nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False, default=0.5)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    __table_args__ = (UniqueConstraint("user_id", "key"),)


class ChatSummary(Base):
    """Rolling summary of one chat."""

    __tablename__ = "chat_summaries"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    chat_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("chats.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    summary_text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)


class DailyCounter(Base):
    """Requests and credits used by a user on one UTC day."""

    __tablename__ = "daily_counters"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    day_utc: Mapped[date] = mapped_column(Date, nullable=False)
    request_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    credits_used: Mapped[Decimal] = mapped_column(Credits, nullable=False, default=Decimal("0"))

    __table_args__ = (UniqueConstraint("user_id", "day_utc"),)


class MonthlyCounter(Base):
    """Requests and credits used by a user in one billing cycle."""

    __tablename__ = "monthly_counters"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    cycle_key: Mapped[str] = mapped_column(String(16), nullable=False)
    request_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    credits_used: Mapped[Decimal] = mapped_column(Credits, nullable=False, default=Decimal("0"))

    __table_args__ = (UniqueConstraint("user_id", "cycle_key"),)


class UsageLedgerEntry(Base):
    """Append-only usage charge. Counters are an aggregate of these rows."""

    __tablename__ = "usage_ledger"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    day_utc: Mapped[date] = mapped_column(Date, nullable=False)
    cycle_key: Mapped[str] = mapped_column(String(16), nullable=False)
    model_key: Mapped[str] = mapped_column(String(64), nullable=False)
    request_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    credits: Mapped[Decimal] = mapped_column(Credits, nullable=False)
    message_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_usage_ledger_user_day", "user_id", "day_utc"),
        Index("ix_usage_ledger_user_cycle", "user_id", "cycle_key"),
    )
