"""Database models, engine, and session management."""

from chatmeter.db.base import Base, TimestampMixin
from chatmeter.db.engine import dispose_engine, get_engine, verify_database_connection
from chatmeter.db.models import (
    Attachment,
    Chat,
    ChatSummary,
    DailyCounter,
    MemoryFact,
    Message,
    ModelCatalogEntry,
    MonthlyCounter,
    Plan,
    Subscription,
    UsageLedgerEntry,
    User,
)
from chatmeter.db.session import get_db, get_session_factory, reset_session_factory

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # Engine
    "get_engine",
    "verify_database_connection",
    "dispose_engine",
    # Session
    "get_db",
    "get_session_factory",
    "reset_session_factory",
    # Models
    "Attachment",
    "Chat",
    "ChatSummary",
    "DailyCounter",
    "MemoryFact",
    "Message",
    "ModelCatalogEntry",
    "MonthlyCounter",
    "Plan",
    "Subscription",
    "UsageLedgerEntry",
    "User",
]
