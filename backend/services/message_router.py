# backend/services/message_router.py

from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from models.models import ChatMessage, MessageType
from services.delivery import DeliverySink
from services.metrics import ChatMetrics
from services.room_registry import RoomRegistry

logger = logging.getLogger(__name__)

# ============================================================================
# MESSAGE ROUTER
# ============================================================================


class MessageRouter:
    """
    Stamps, stores and dispatches chat messages.

    Room messages (CHAT/JOIN/LEAVE):
        1. Resolve the room; unknown rooms are dropped silently
        2. Take the room's sequencing lock
        3. Stamp a fresh id, append to history, publish to the room channel

    Private messages:
        Forced to PRIVATE, stamped, never stored, published to the
        recipient and echoed to the sender. Neither identity is checked;
        the sink treats unknown users as no-ops.
    """

    def __init__(self, rooms: RoomRegistry, sink: DeliverySink, metrics: ChatMetrics) -> None:
        self.rooms = rooms
        self.sink = sink
        self.metrics = metrics

    def broadcast(self, message: ChatMessage) -> Optional[ChatMessage]:
        """
        Broadcast a room scoped message.

        Returns:
            A copy of the stamped message, or None if the room does not
            exist. The stored instance stays private to the history.
        """
        if not self.rooms.exists(message.room_id):
            self.metrics.record_drop(
                "broadcast",
                "unknown room",
                room_id=str(message.room_id),
                sender=message.sender,
            )
            return None

        with self.rooms.history.sequence(message.room_id):
            message.id = str(uuid.uuid4())
            self.rooms.history.append(message.room_id, message)
            self.sink.publish_to_room(message.room_id, message)

        self.metrics.record_room_message()
        logger.debug("📨 %s %s -> room %s", message.type.value, message.id, message.room_id)
        return message.model_copy()

    def send_private(self, message: ChatMessage) -> ChatMessage:
        """Deliver to the recipient, then echo to the sender."""
        message.type = MessageType.PRIVATE
        message.id = str(uuid.uuid4())

        self.sink.publish_to_user(message.recipient, message)
        self.sink.publish_to_user(message.sender, message)

        self.metrics.record_private_message()
        logger.debug("📨 PRIVATE %s %s -> %s", message.id, message.sender, message.recipient)
        return message

    def history(self, room_id: str, count: int) -> List[ChatMessage]:
        """Most recent `count` messages of a room, oldest first."""
        if not self.rooms.exists(room_id):
            return []
        return self.rooms.history.recent(room_id, count)
