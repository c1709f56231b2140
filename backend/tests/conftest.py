"""Shared test fixtures for the chat core and its FastAPI surface."""
import threading
from typing import List, Tuple

import pytest
from fastapi.testclient import TestClient

from core.config import Settings
from main import create_app
from models.models import ChatMessage
from services.chat_service import ChatService
from services.delivery import DeliverySink


class RecordingSink(DeliverySink):
    """Delivery sink that remembers every publish instead of sending it."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.deliveries: List[Tuple[str, str, ChatMessage]] = []

    def publish_to_room(self, room_id: str, message: ChatMessage) -> None:
        with self._lock:
            self.deliveries.append(("room", room_id, message.model_copy()))

    def publish_to_user(self, username: str, message: ChatMessage) -> None:
        with self._lock:
            self.deliveries.append(("user", username, message.model_copy()))

    def to_room(self, room_id: str) -> List[ChatMessage]:
        return [m for kind, target, m in self.deliveries if kind == "room" and target == room_id]

    def to_user(self, username: str) -> List[ChatMessage]:
        return [m for kind, target, m in self.deliveries if kind == "user" and target == username]

    def clear(self) -> None:
        with self._lock:
            self.deliveries.clear()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def chat(sink):
    """A fresh chat core publishing into a RecordingSink."""
    return ChatService(sink)


@pytest.fixture
def app(monkeypatch):
    monkeypatch.setenv("DELIVERY_BACKEND", "local")
    return create_app(Settings())


@pytest.fixture
def api_client(app):
    """TestClient bound to one event loop for the whole test (lifespan on)."""
    with TestClient(app) as client:
        yield client
