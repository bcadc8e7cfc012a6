"""HTTP-level tests for identity, chats, admission, and the SSE message stream."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from chatmeter.core import ErrorCode, ProviderAuthError, ProviderUnavailableError
from chatmeter.db.models import DailyCounter, Message, ModelCatalogEntry, UsageLedgerEntry, User
from chatmeter.db.repositories import create_attachment, get_summary
from chatmeter.providers import ProviderResult
from tests.conftest import auth_headers, parse_sse


def _create_chat(client: TestClient, user: str = "alice") -> str:
    response = client.post("/chats", json={}, headers=auth_headers(user))
    assert response.status_code == 201
    return response.json()["chat"]["id"]


def _send(client: TestClient, chat_id: str, text: str = "Hello there", *, user: str = "alice", **body):
    payload = {"modelKey": body.pop("model_key", "chatgpt-5.3"), "text": text}
    payload.update(body)
    return client.post(
        f"/chats/{chat_id}/messages/stream", json=payload, headers=auth_headers(user)
    )


def _error_code(response) -> str:
    return response.json()["error"]["code"]


def test_missing_identity_is_unauthorized(client) -> None:
    response = client.get("/chats")

    assert response.status_code == 401
    assert _error_code(response) == ErrorCode.UNAUTHORIZED.value
    assert response.headers["X-Request-ID"]


def test_first_request_provisions_user(client, db_session) -> None:
    client.get("/chats", headers=auth_headers("new-user", **{"X-User-Email": "n@example.com"}))

    user = db_session.query(User).filter(User.external_id == "new-user").one()
    assert user.email == "n@example.com"
    assert user.role == "user"


def test_chats_are_listed_newest_first_and_scoped(client) -> None:
    older = _create_chat(client)
    newer = _create_chat(client)
    _create_chat(client, user="bob")

    chats = client.get("/chats", headers=auth_headers()).json()["chats"]

    assert [chat["id"] for chat in chats] == [newer, older]
    assert set(chats[0]) == {"id", "title", "createdAt", "updatedAt"}


def test_messages_of_foreign_chat_are_not_found(client) -> None:
    chat_id = _create_chat(client, user="bob")

    response = client.get(f"/chats/{chat_id}/messages", headers=auth_headers())

    assert response.status_code == 404
    assert _error_code(response) == ErrorCode.CHAT_NOT_FOUND.value


def test_stream_emits_deltas_completion_and_usage(client, db_session, openai_stub) -> None:
    chat_id = _create_chat(client)

    response = _send(client, chat_id, "Tell me about Python generators please")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["cache-control"] == "no-cache"
    events = parse_sse(response.text)
    types = [event["type"] for event in events]
    assert types[-2:] == ["assistant.completed", "usage.updated"]
    assert set(types[:-2]) == {"assistant.delta"}
    assert "".join(event["text"] for event in events[:-2]) == "Hello there!"

    completed, usage = events[-2], events[-1]
    assert completed["inputTokens"] == 12
    assert completed["outputTokens"] == 3
    assert completed["creditsUsed"] == 18.0
    assert usage == {"type": "usage.updated", "dailyUsed": 18.0, "monthlyUsed": 18.0}

    messages = db_session.query(Message).filter(Message.chat_id == chat_id).order_by(Message.created_at).all()
    assert [(message.role, message.model_key) for message in messages] == [
        ("user", "chatgpt-5.3"),
        ("assistant", "chatgpt-5.3"),
    ]
    assert messages[1].id == completed["messageId"]
    assert messages[1].input_tokens == 12
    assert get_summary(db_session, chat_id).summary_text.endswith("assistant: Hello there!")

    chat = client.get("/chats", headers=auth_headers()).json()["chats"][0]
    assert chat["title"] == "Tell me about Python generators please"

    sent = openai_stub.requests[0]
    assert sent.model == "gpt-5.3"
    assert sent.system_prompt.startswith("You are a helpful AI assistant.")
    assert sent.messages[-1].content == "Tell me about Python generators please"


def test_message_history_is_returned_in_order(client) -> None:
    chat_id = _create_chat(client)
    _send(client, chat_id, "first")

    body = client.get(f"/chats/{chat_id}/messages", headers=auth_headers()).json()

    assert [(message["role"], message["text"]) for message in body["messages"]] == [
        ("user", "first"),
        ("assistant", "Hello there!"),
    ]
    assert body["messages"][1]["modelKey"] == "chatgpt-5.3"


@pytest.mark.parametrize("text", ["", "   "])
def test_empty_text_is_rejected(client, text) -> None:
    chat_id = _create_chat(client)

    response = _send(client, chat_id, text)

    assert response.status_code == 400
    assert _error_code(response) == ErrorCode.VALIDATION_ERROR.value


def test_unknown_chat_is_not_found(client) -> None:
    response = _send(client, "does-not-exist")

    assert response.status_code == 404
    assert _error_code(response) == ErrorCode.CHAT_NOT_FOUND.value


def test_unknown_or_disabled_model_is_rejected(client, db_session) -> None:
    chat_id = _create_chat(client)
    assert _send(client, chat_id, model_key="gpt-9").status_code == 400

    db_session.query(ModelCatalogEntry).filter(
        ModelCatalogEntry.model_key == "chatgpt-5.3"
    ).update({"is_enabled": False})
    db_session.commit()

    response = _send(client, chat_id)
    assert response.status_code == 400
    assert _error_code(response) == ErrorCode.MODEL_UNAVAILABLE.value


def test_model_outside_plan_is_forbidden(client, anthropic_stub) -> None:
    chat_id = _create_chat(client)

    response = _send(client, chat_id, model_key="claude-sonnet-4")

    assert response.status_code == 403
    assert _error_code(response) == ErrorCode.MODEL_NOT_PERMITTED.value
    assert anthropic_stub.calls == 0


def test_rate_limit_is_enforced_per_minute(client, openai_stub) -> None:
    chat_id = _create_chat(client)
    statuses = [_send(client, chat_id, f"message {index}").status_code for index in range(21)]

    assert statuses[:20] == [200] * 20
    assert statuses[20] == 429
    assert openai_stub.calls == 20


def test_invalid_attachment_rejects_request(client, db_session) -> None:
    chat_id = _create_chat(client)
    owner = db_session.query(User).filter(User.external_id == "alice").one()
    pending = create_attachment(
        db_session, owner.id, file_name="a.txt", mime_type="text/plain", status="pending"
    )

    for attachment_id in ("missing-id", pending.id):
        response = _send(client, chat_id, attachmentIds=[attachment_id])
        assert response.status_code == 400
        assert _error_code(response) == ErrorCode.INVALID_ATTACHMENT.value


def test_ready_attachment_is_sent_to_provider(client, db_session, openai_stub) -> None:
    chat_id = _create_chat(client)
    owner = db_session.query(User).filter(User.external_id == "alice").one()
    attachment = create_attachment(
        db_session,
        owner.id,
        file_name="report.md",
        mime_type="text/markdown",
        extracted_text="x" * 20000,
    )

    response = _send(client, chat_id, "Summarize", attachmentIds=[attachment.id])

    assert response.status_code == 200
    sent = openai_stub.requests[0].attachments
    assert [item.file_name for item in sent] == ["report.md"]
    assert len(sent[0].extracted_text) == 12000


def test_free_plan_daily_credit_limit_blocks_next_call(client, db_session, openai_stub) -> None:
    """80000 credits on a 60000/day plan: the first call succeeds, the second is refused."""
    chat_id = _create_chat(client)
    openai_stub.queue(ProviderResult(text="A long answer.", input_tokens=40000, output_tokens=20000))

    first = _send(client, chat_id, "Write me an essay")
    assert parse_sse(first.text)[-2]["creditsUsed"] == 80000.0

    second = _send(client, chat_id, "And another one")

    assert second.status_code == 402
    assert second.json()["error"]["message"] == "Daily credit limit reached."
    assert openai_stub.calls == 1
    counter = db_session.query(DailyCounter).one()
    assert counter.request_count == 1
    assert db_session.query(UsageLedgerEntry).count() == 1


def test_transient_failure_falls_back_and_charges_fallback(
    client, db_session, openai_stub, anthropic_stub
) -> None:
    db_session.query(ModelCatalogEntry).filter(
        ModelCatalogEntry.model_key == "chatgpt-5.3"
    ).update({"fallback_model_key": "claude-sonnet-4"})
    db_session.commit()
    chat_id = _create_chat(client)
    openai_stub.queue(ProviderUnavailableError())
    anthropic_stub.queue(ProviderResult(text="Claude here.", input_tokens=10, output_tokens=10))

    events = parse_sse(_send(client, chat_id).text)

    assert "".join(e["text"] for e in events if e["type"] == "assistant.delta") == "Claude here."
    assert events[-2]["creditsUsed"] == pytest.approx(34.0)
    entry = db_session.query(UsageLedgerEntry).one()
    assert entry.model_key == "claude-sonnet-4"


def test_permanent_provider_failure_is_terminal_error_event(client, db_session, openai_stub) -> None:
    chat_id = _create_chat(client)
    openai_stub.queue(ProviderAuthError())

    response = _send(client, chat_id)

    assert response.status_code == 200
    events = parse_sse(response.text)
    assert events == [
        {
            "type": "error",
            "code": ErrorCode.PROVIDER_AUTH_FAILED.value,
            "message": "Provider authentication failed",
        }
    ]
    assert db_session.query(UsageLedgerEntry).count() == 0


def test_models_and_usage_endpoints(client) -> None:
    chat_id = _create_chat(client)
    _send(client, chat_id)

    models = client.get("/models", headers=auth_headers()).json()
    usage = client.get("/usage", headers=auth_headers()).json()

    assert models["plan"] == "Free"
    assert [model["modelKey"] for model in models["models"]] == ["chatgpt-5.3", "mock-echo"]
    assert usage["daily"]["requests"] == 1
    assert usage["daily"]["creditsUsed"] == 18.0
    assert usage["monthly"]["creditLimit"] == 1200000.0


def test_health_reports_metrics(client) -> None:
    body = client.get("/health").json()

    assert body["status"] == "ok"
    assert "rate_limit_blocks_total" in body["metrics"]["counters"]
    assert "active_streams" in body["metrics"]["gauges"]
