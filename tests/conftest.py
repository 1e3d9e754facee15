"""
Pytest configuration and shared fixtures.

The completion API is never contacted: every ``CompletionClient`` used in the
tests talks to an ``httpx.MockTransport`` backed by ``CompletionStub``.
"""

import json
import os

import httpx
import pytest

os.environ.setdefault("PERPLEXITY_API_KEY", "test-key")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from fastapi.testclient import TestClient

from app import create_app
from backend import SessionStore
from completion import CompletionClient
from connections import ConnectionRegistry

COMPLETION_URL = "https://completion.test/chat/completions"


class CompletionStub:
    """Answers chat-completion requests with canned text and records the request bodies."""

    def __init__(self, reply: str = "[⭐⭐⭐⭐] Nice world-building detail!", status_code: int = 200):
        self.reply = reply
        self.status_code = status_code
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        if self.status_code >= 400:
            return httpx.Response(self.status_code, text="upstream exploded")
        return httpx.Response(
            200,
            json={"choices": [{"message": {"role": "assistant", "content": self.reply}}]},
        )

    @property
    def prompts(self):
        return [body["messages"][0]["content"] for body in self.requests]


@pytest.fixture
def completion_stub():
    return CompletionStub()


@pytest.fixture
def completion_client(completion_stub):
    return CompletionClient(
        api_url=COMPLETION_URL,
        api_key="test-key",
        model="test-model",
        transport=httpx.MockTransport(completion_stub),
    )


@pytest.fixture
def store():
    return SessionStore()


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def test_app(store, registry, completion_client):
    return create_app(store=store, registry=registry, completion=completion_client, static_dir=None)


@pytest.fixture
def client(test_app):
    """TestClient with lifespan running, so websockets share one event loop."""
    with TestClient(test_app) as test_client:
        yield test_client


@pytest.fixture
def game_session(client):
    response = client.post(
        "/api/game/session",
        json={"player1Name": "Ada", "player2Name": "Grace", "gameType": "space opera"},
    )
    assert response.status_code == 200
    return response.json()["sessionId"]


@pytest.fixture
def room(client):
    response = client.post("/api/rooms", json={"hostName": "Ada", "guestName": "Grace"})
    assert response.status_code == 200
    return response.json()["roomId"]
