"""Shared fixtures: a throwaway SQLite database per test and a wired app."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from chatmeter.config import get_settings
from chatmeter.core import ProviderError
from chatmeter.db import Base, dispose_engine, get_engine, get_session_factory, reset_session_factory
from chatmeter.db.repositories import create_chat, get_or_create_user
from chatmeter.db.seed import seed_defaults
from chatmeter.providers import BaseProvider, ProviderRegistry, ProviderRequest, ProviderResult, ProviderType


class ScriptedProvider(BaseProvider):
    """Provider stub that replays queued results or errors and records requests."""

    def __init__(self, provider_type: ProviderType = ProviderType.OPENAI, *, text: str = "Hello there!"):
        self.provider_type = provider_type
        self.default_text = text
        self.default_tokens = (12, 3)
        self.script: list[ProviderResult | ProviderError] = []
        self.requests: list[ProviderRequest] = []

    def queue(self, *outcomes: ProviderResult | ProviderError) -> None:
        self.script.extend(outcomes)

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def complete(self, request: ProviderRequest) -> ProviderResult:
        self.requests.append(request)
        if self.script:
            outcome = self.script.pop(0)
            if isinstance(outcome, ProviderError):
                raise outcome
            return outcome
        input_tokens, output_tokens = self.default_tokens
        return ProviderResult(
            text=self.default_text,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            raw_payload={"stub": True},
        )


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Point settings at a per-test database and fast streaming."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'chatmeter-test.db'}")
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.setenv("STREAM_DELTA_DELAY_MS", "0")
    monkeypatch.setenv("OPENAI_API_KEY", "")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "")
    monkeypatch.setenv("OPENROUTER_API_KEY", "")
    get_settings.cache_clear()
    dispose_engine()
    reset_session_factory()
    yield get_settings()
    dispose_engine()
    reset_session_factory()
    get_settings.cache_clear()


@pytest.fixture
def session_factory(isolated_settings):
    Base.metadata.create_all(get_engine())
    factory = get_session_factory()
    with factory() as db:
        seed_defaults(db)
    return factory


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_user(db_session) -> Callable[..., str]:
    def _make(external_id: str = "user-1") -> str:
        return get_or_create_user(db_session, external_id).id

    return _make


@pytest.fixture
def make_chat(db_session) -> Callable[[str], str]:
    def _make(user_id: str) -> str:
        return create_chat(db_session, user_id).id

    return _make


@pytest.fixture
def openai_stub() -> ScriptedProvider:
    return ScriptedProvider(ProviderType.OPENAI)


@pytest.fixture
def anthropic_stub() -> ScriptedProvider:
    return ScriptedProvider(ProviderType.ANTHROPIC, text="Claude here.")


@pytest.fixture
def registry(isolated_settings, openai_stub, anthropic_stub) -> ProviderRegistry:
    registry = ProviderRegistry(isolated_settings)
    registry.register("openai", openai_stub)
    registry.register("anthropic", anthropic_stub)
    return registry


@pytest.fixture
def client(session_factory, registry):
    from chatmeter.main import create_app

    app = create_app()
    app.state.provider_registry = registry
    with TestClient(app) as test_client:
        yield test_client


def auth_headers(user: str = "alice", **extra: str) -> dict[str, str]:
    headers = {"X-User-Id": user}
    headers.update(extra)
    return headers


def parse_sse(body: str) -> list[dict]:
    """Decode ``data:`` frames, skipping comments."""
    import json

    events = []
    for frame in body.split("\n\n"):
        frame = frame.strip()
        if frame.startswith("data: "):
            events.append(json.loads(frame[len("data: "):]))
    return events
