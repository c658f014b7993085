from __future__ import annotations

import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from api.chat.service import ChatRelay, CredentialPool, get_chat_relay  # noqa: E402
from app import app  # noqa: E402


class FakeChat:
    def __init__(self, backend: "FakeGemini", api_key: str, model: str, history: list) -> None:
        self._backend = backend
        self.api_key = api_key
        self.model = model
        self.history = history

    def send_message(self, message: str):
        self._backend.sent.append(
            {"api_key": self.api_key, "model": self.model, "history": self.history, "message": message}
        )
        outcome = self._backend.next_outcome(self.api_key)
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, str):
            return SimpleNamespace(text=outcome, prompt_feedback=None, candidates=[])
        return outcome


class FakeChats:
    def __init__(self, backend: "FakeGemini", api_key: str) -> None:
        self._backend = backend
        self._api_key = api_key

    def create(self, model: str, history: list | None = None):
        if model in self._backend.unconstructible_models:
            raise ValueError(f"unknown model {model}")
        return FakeChat(self._backend, self._api_key, model, list(history or []))


class FakeGemini:
    """Stands in for ``genai.Client``; outcomes are queued per API key."""

    def __init__(self, outcomes: dict[str, list[Any]] | None = None) -> None:
        self.outcomes = {key: list(values) for key, values in (outcomes or {}).items()}
        self.clients: list[str] = []
        self.sent: list[dict[str, Any]] = []
        self.unconstructible_models: set[str] = set()

    def next_outcome(self, api_key: str):
        queue = self.outcomes.get(api_key) or []
        if not queue:
            return "ok"
        return queue.pop(0)

    def client_factory(self, api_key: str):
        self.clients.append(api_key)
        return SimpleNamespace(chats=FakeChats(self, api_key))


@pytest.fixture
def fake_gemini() -> FakeGemini:
    return FakeGemini()


@pytest.fixture
def make_relay(fake_gemini: FakeGemini):
    def _make(*api_keys: str) -> ChatRelay:
        return ChatRelay(CredentialPool(api_keys), client_factory=fake_gemini.client_factory)

    return _make


@pytest.fixture
def client():
    c = TestClient(app)
    yield c
    app.dependency_overrides.clear()


@pytest.fixture
def use_relay(client: TestClient):
    def _use(relay: ChatRelay) -> TestClient:
        app.dependency_overrides[get_chat_relay] = lambda: relay
        return client

    return _use
