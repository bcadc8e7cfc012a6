"""Durable user facts and per-chat rolling summaries."""

from sqlalchemy import select
from sqlalchemy.orm import Session

from chatmeter.core.time import utcnow
from chatmeter.db.models import ChatSummary, MemoryFact


def list_recent_facts(db: Session, user_id: str, limit: int) -> list[MemoryFact]:
    """Most recently updated facts first."""
    stmt = (
        select(MemoryFact)
        .where(MemoryFact.user_id == user_id)
        .order_by(MemoryFact.updated_at.desc())
        .limit(limit)
    )
    return list(db.execute(stmt).scalars().all())


def upsert_fact(
    db: Session, user_id: str, key: str, value: str, confidence: float
) -> MemoryFact:
    """Insert or replace the value stored under ``key`` for the user."""
    stmt = select(MemoryFact).where(MemoryFact.user_id == user_id, MemoryFact.key == key)
    fact = db.execute(stmt).scalar_one_or_none()
    if fact is None:
        fact = MemoryFact(user_id=user_id, key=key)
        db.add(fact)
    fact.value = value
    fact.confidence = confidence
    fact.updated_at = utcnow()
    db.commit()
    return fact


def get_summary(db: Session, chat_id: str) -> ChatSummary | None:
    stmt = select(ChatSummary).where(ChatSummary.chat_id == chat_id)
    return db.execute(stmt).scalar_one_or_none()


def upsert_summary(db: Session, chat_id: str, summary_text: str) -> ChatSummary:
    """Store the one summary row a chat may have."""
    summary = get_summary(db, chat_id)
    if summary is None:
        summary = ChatSummary(chat_id=chat_id)
        db.add(summary)
    summary.summary_text = summary_text
    summary.updated_at = utcnow()
    db.commit()
    return summary
