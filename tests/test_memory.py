"""Tests for the system prompt, rolling summary, and fact extraction."""

from __future__ import annotations

from chatmeter.db.repositories import get_summary, list_recent_facts, upsert_fact
from chatmeter.services.memory import PREAMBLE, MemoryService, extract_facts


def test_prompt_is_preamble_only_for_new_user(db_session, make_user, make_chat) -> None:
    user_id = make_user()
    chat_id = make_chat(user_id)

    prompt = MemoryService().build_system_prompt(db_session, user_id, chat_id)

    assert prompt == PREAMBLE


def test_prompt_lists_facts_then_summary(db_session, make_user, make_chat) -> None:
    user_id = make_user()
    chat_id = make_chat(user_id)
    upsert_fact(db_session, user_id, "name", "Ada", 0.85)
    service = MemoryService()
    service.update_summary(db_session, chat_id, "user: hi\nassistant: hello")

    prompt = service.build_system_prompt(db_session, user_id, chat_id)

    assert prompt.splitlines() == [
        PREAMBLE,
        "Known user facts:",
        "- name: Ada",
        "Conversation summary:",
        "user: hi",
        "assistant: hello",
    ]


def test_prompt_caps_number_of_facts(db_session, make_user, make_chat) -> None:
    user_id = make_user()
    chat_id = make_chat(user_id)
    for index in range(5):
        upsert_fact(db_session, user_id, f"fact{index}", str(index), 0.5)

    prompt = MemoryService(fact_limit=2).build_system_prompt(db_session, user_id, chat_id)

    assert sum(1 for line in prompt.splitlines() if line.startswith("- ")) == 2


def test_summary_keeps_tail_when_too_long(db_session, make_user, make_chat) -> None:
    chat_id = make_chat(make_user())
    service = MemoryService(summary_max_chars=10)

    service.update_summary(db_session, chat_id, "abcdefghij0123456789")

    assert get_summary(db_session, chat_id).summary_text == "0123456789"


def test_blank_summary_is_ignored(db_session, make_user, make_chat) -> None:
    chat_id = make_chat(make_user())
    service = MemoryService()
    service.update_summary(db_session, chat_id, "kept")

    service.update_summary(db_session, chat_id, "   ")

    assert get_summary(db_session, chat_id).summary_text == "kept"


def test_summary_text_uses_recent_history_and_reply() -> None:
    history = [("user", f"q{index}") for index in range(20)]

    text = MemoryService(summary_history_lines=3).build_summary_text(history, "answer")

    assert text == "user: q17\nuser: q18\nuser: q19\nassistant: answer"


def test_extract_facts_finds_name_and_preference() -> None:
    facts = extract_facts("Hi, my name is Grace. I prefer short answers!")

    assert facts == {"name": "Grace", "preference": "short answers"}


def test_extract_facts_ignores_plain_messages() -> None:
    assert extract_facts("What is the weather like?") == {}
    assert extract_facts("   ") == {}


def test_extracted_facts_are_stored(db_session, make_user) -> None:
    user_id = make_user()

    MemoryService().extract_facts(db_session, user_id, "my name is Linus")
    MemoryService().extract_facts(db_session, user_id, "My name is Ken")

    facts = list_recent_facts(db_session, user_id, 8)
    assert [(fact.key, fact.value, fact.confidence) for fact in facts] == [("name", "Ken", 0.85)]


def test_truncated_summary_appears_in_prompt(db_session, make_user, make_chat) -> None:
    user_id = make_user()
    chat_id = make_chat(user_id)
    service = MemoryService(summary_max_chars=11)

    service.update_summary(db_session, chat_id, "old context | new context")

    assert service.build_system_prompt(db_session, user_id, chat_id).endswith("\nnew context")
