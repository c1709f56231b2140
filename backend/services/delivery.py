# backend/services/delivery.py

from __future__ import annotations

from abc import ABC, abstractmethod

from models.models import ChatMessage


def room_channel(room_id: str) -> str:
    return f"room:{room_id}"


def user_channel(username: str) -> str:
    return f"user:{username}"


class DeliverySink(ABC):
    """
    Outbound half of the transport, as seen by the chat core.

    Both calls are fire-and-forget: they must not block on I/O and must
    tolerate destinations nobody is listening on (no-op). The transport
    owns mapping channels to actual connected sockets.
    """

    @abstractmethod
    def publish_to_room(self, room_id: str, message: ChatMessage) -> None:
        """Hand a message to everyone subscribed to the room channel."""

    @abstractmethod
    def publish_to_user(self, username: str, message: ChatMessage) -> None:
        """Hand a message to every session of one user."""
