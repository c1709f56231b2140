# backend/services/chat_service.py

from __future__ import annotations

import logging
from typing import List, Optional

from core.config import Settings
from models.models import ChatMessage, MessageType, Room, User
from services.delivery import DeliverySink
from services.message_router import MessageRouter
from services.metrics import ChatMetrics
from services.presence import PresenceManager
from services.room_registry import DEFAULT_ROOM_ID, DEFAULT_ROOM_NAME, RoomRegistry
from services.user_registry import UserRegistry

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50

# ============================================================================
# CHAT CORE
# ============================================================================


class ChatService:
    """
    The chat core: one object owning users, rooms, presence and routing.

    Built once per application with the delivery sink the transport
    provides, then handed to command handlers explicitly (it lives on
    `app.state`, see api/deps.py). There is no module-level state.

    Every command is a short in-memory mutation and is safe to call from
    any thread. Commands naming an unknown user or room never raise; they
    are dropped and counted in `metrics`.
    """

    def __init__(
        self,
        sink: DeliverySink,
        default_room_id: str = DEFAULT_ROOM_ID,
        default_room_name: str = DEFAULT_ROOM_NAME,
        history_retention: int = 1000,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        metrics: Optional[ChatMetrics] = None,
    ) -> None:
        self.metrics = metrics or ChatMetrics()
        self.users = UserRegistry()
        self.rooms = RoomRegistry(
            default_room_id=default_room_id,
            default_room_name=default_room_name,
            history_retention=history_retention,
        )
        self.router = MessageRouter(self.rooms, sink, self.metrics)
        self.presence = PresenceManager(self.users, self.rooms, self.router, self.metrics)
        self.history_limit = history_limit

    @classmethod
    def from_settings(cls, settings: Settings, sink: DeliverySink) -> "ChatService":
        return cls(
            sink,
            default_room_id=settings.DEFAULT_ROOM_ID,
            default_room_name=settings.DEFAULT_ROOM_NAME,
            history_retention=settings.HISTORY_RETENTION,
            history_limit=settings.HISTORY_PAGE_SIZE,
        )

    @property
    def default_room_id(self) -> str:
        return self.rooms.default_room_id

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def register(self, username: str, session_id: Optional[str] = None) -> User:
        """Bind a session to `username` and drop the user into the default room."""
        self.users.register(username, session_id)
        self.presence.join(username, self.default_room_id)
        return self.users.get(username)

    def disconnect(self, username: str) -> None:
        """Mark the user offline and announce a LEAVE in each of their rooms."""
        if self.users.disconnect(username) is None:
            self.metrics.record_drop("disconnect", "unknown user", username=username)
            return
        self.presence.disconnect_cascade(username)

    # ------------------------------------------------------------------
    # Messaging
    # ------------------------------------------------------------------

    def send_room_message(self, room_id: str, sender: str, content: str) -> Optional[ChatMessage]:
        return self.router.broadcast(
            ChatMessage(room_id=room_id, sender=sender, content=content, type=MessageType.CHAT)
        )

    def send_private_message(self, sender: str, recipient: str, content: str) -> ChatMessage:
        return self.router.send_private(
            ChatMessage(sender=sender, recipient=recipient, content=content, type=MessageType.PRIVATE)
        )

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def join_room(self, username: str, room_id: str) -> None:
        self.presence.join(username, room_id)

    def leave_room(self, username: str, room_id: str) -> None:
        self.presence.leave(username, room_id)

    def create_room(self, name: str, created_by: Optional[str] = None) -> Room:
        """
        Create a room. When `created_by` is given the creator joins it
        right away and the returned snapshot includes them.
        """
        room = self.rooms.create(name)
        if created_by:
            self.presence.join(created_by, room.id)
            room = self.rooms.get(room.id)
        return room

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_room(self, room_id: str) -> Optional[Room]:
        return self.rooms.get(room_id)

    def get_user(self, username: str) -> Optional[User]:
        return self.users.get(username)

    def list_rooms(self) -> List[Room]:
        return self.rooms.list()

    def list_online_users(self) -> List[User]:
        return self.users.list_online()

    def get_room_history(self, room_id: str, limit: Optional[int] = None) -> List[ChatMessage]:
        if limit is None:
            limit = self.history_limit
        return self.router.history(room_id, limit)
