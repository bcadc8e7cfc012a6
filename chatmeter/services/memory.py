"""
Conversation context: system prompt, durable user facts, rolling summary.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from sqlalchemy.orm import Session

from chatmeter.core import get_logger
from chatmeter.db.repositories import (
    get_summary,
    list_recent_facts,
    upsert_fact,
    upsert_summary,
)

logger = get_logger(__name__)

PREAMBLE = "You are a helpful AI assistant."
FACT_CONFIDENCE = 0.85

_NAME_PATTERN = re.compile(r"my name is\s+([A-Za-z\-']{2,40})", re.IGNORECASE)
_PREFERENCE_PATTERN = re.compile(r"i (?:prefer|like)\s+([^\.\!\?]{3,80})", re.IGNORECASE)


class MemoryService:
    """Builds the system prompt and maintains per-user/per-chat memory."""

    def __init__(
        self,
        fact_limit: int = 8,
        summary_max_chars: int = 1500,
        summary_history_lines: int = 12,
    ):
        self.fact_limit = fact_limit
        self.summary_max_chars = summary_max_chars
        self.summary_history_lines = summary_history_lines

    def build_system_prompt(self, db: Session, user_id: str, chat_id: str) -> str:
        """Preamble, then the newest facts, then the chat summary."""
        lines = [PREAMBLE]

        facts = list_recent_facts(db, user_id, self.fact_limit)
        if facts:
            lines.append("Known user facts:")
            lines.extend(f"- {fact.key}: {fact.value}" for fact in facts)

        summary = get_summary(db, chat_id)
        if summary is not None and summary.summary_text.strip():
            lines.append("Conversation summary:")
            lines.append(summary.summary_text)

        return "\n".join(lines).strip()

    def update_summary(self, db: Session, chat_id: str, text: str) -> None:
        """Store the tail of ``text`` as the chat summary. Blank text is ignored."""
        if not text or not text.strip():
            return
        if len(text) > self.summary_max_chars:
            text = text[-self.summary_max_chars :]
        upsert_summary(db, chat_id, text)

    def extract_facts(self, db: Session, user_id: str, message: str) -> dict[str, str]:
        """Remember names and preferences stated in a user message."""
        found = extract_facts(message)
        for key, value in found.items():
            upsert_fact(db, user_id, key, value, FACT_CONFIDENCE)
        if found:
            logger.debug("Memory facts updated", data={"keys": sorted(found)})
        return found

    def build_summary_text(
        self, history: Sequence[tuple[str, str]], assistant_reply: str
    ) -> str:
        """Last history lines as ``role: text`` followed by the new reply."""
        recent = list(history)[-self.summary_history_lines :]
        lines = [f"{role}: {text}" for role, text in recent]
        lines.append(f"assistant: {assistant_reply}")
        return "\n".join(lines)


def extract_facts(message: str) -> dict[str, str]:
    if not message or not message.strip():
        return {}

    facts: dict[str, str] = {}
    name = _NAME_PATTERN.search(message)
    if name:
        facts["name"] = name.group(1).strip()
    preference = _PREFERENCE_PATTERN.search(message)
    if preference:
        facts["preference"] = preference.group(1).strip()
    return facts
