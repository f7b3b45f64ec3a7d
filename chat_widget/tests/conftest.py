from __future__ import annotations

from typing import Any, List

import pytest

from chat_widget import create_app
from chat_widget.client import TransportError
from chat_widget.config import TestingConfig
from chat_widget.storage import MemoryStorage, MemoryStorageRegistry


class FakeChatClient:
    """Stands in for ChatClient; replies are popped in order."""

    def __init__(self, *replies: Any):
        self.replies: List[Any] = list(replies)
        self.calls: List[tuple] = []
        self.gate = None  # optional asyncio.Event to hold the request open

    async def send(self, message: str, session_id: str) -> Any:
        self.calls.append((message, session_id))
        if self.gate is not None:
            await self.gate.wait()
        reply = self.replies.pop(0) if self.replies else "ok"
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture()
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture()
def fake_client() -> FakeChatClient:
    return FakeChatClient()


@pytest.fixture()
def make_chat_client():
    """Build a FakeChatClient with scripted replies: make_chat_client("hi", TransportError(...))."""
    return FakeChatClient


@pytest.fixture()
def transport_error() -> TransportError:
    return TransportError("HTTP error! status: 502", status=502)


@pytest.fixture()
def cfg() -> TestingConfig:
    c = TestingConfig()
    c.WEBHOOK_URL = "http://workflow.test/webhook"
    c.WEBHOOK_SESSION_FIELD = ""
    return c


@pytest.fixture()
def app(cfg):
    app = create_app(cfg, tab_storage=MemoryStorageRegistry())
    app.config.update(TESTING=True)
    return app


@pytest.fixture()
def client(app):
    return app.test_client()
