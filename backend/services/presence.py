# backend/services/presence.py

from __future__ import annotations

import logging

from models.models import ChatMessage, MessageType
from services.message_router import MessageRouter
from services.metrics import ChatMetrics
from services.room_registry import RoomRegistry
from services.user_registry import UserRegistry

logger = logging.getLogger(__name__)


def join_notice(username: str) -> str:
    return f"{username} has joined the room"


def leave_notice(username: str) -> str:
    return f"{username} has left the room"


class PresenceManager:
    """
    Keeps user memberships and room member sets in step, and announces
    joins/leaves to the room.

    The user side and the room side are updated under separate locks, one
    after the other. A concurrent join/leave/disconnect on the same
    (user, room) pair can therefore briefly show membership on one side
    only; both sides agree once the calls have returned.

    Joins and leaves are not idempotency-guarded: joining a room twice
    announces it twice.
    """

    def __init__(
        self,
        users: UserRegistry,
        rooms: RoomRegistry,
        router: MessageRouter,
        metrics: ChatMetrics,
    ) -> None:
        self.users = users
        self.rooms = rooms
        self.router = router
        self.metrics = metrics

    def _resolves(self, command: str, username: str, room_id: str) -> bool:
        if not self.users.exists(username):
            self.metrics.record_drop(command, "unknown user", username=username, room_id=room_id)
            return False
        if not self.rooms.exists(room_id):
            self.metrics.record_drop(command, "unknown room", username=username, room_id=room_id)
            return False
        return True

    def join(self, username: str, room_id: str) -> None:
        if not self._resolves("join", username, room_id):
            return

        self.rooms.add_member(room_id, username)
        self.users.add_room(username, room_id)
        logger.info("→ %s joined room %s", username, room_id)

        self.router.broadcast(
            ChatMessage(
                content=join_notice(username),
                sender=username,
                room_id=room_id,
                type=MessageType.JOIN,
            )
        )

    def leave(self, username: str, room_id: str) -> None:
        if not self._resolves("leave", username, room_id):
            return

        self.rooms.remove_member(room_id, username)
        self.users.remove_room(username, room_id)
        logger.info("← %s left room %s", username, room_id)

        self._announce_leave(username, room_id)

    def disconnect_cascade(self, username: str) -> None:
        """
        Drop a disconnected user from every room's member set and announce it.

        The user's own room set is left untouched, so memberships are still
        listed after a reconnect.
        """
        for room_id in sorted(self.users.rooms_of(username)):
            if self.rooms.remove_member(room_id, username):
                self._announce_leave(username, room_id)

    def _announce_leave(self, username: str, room_id: str) -> None:
        self.router.broadcast(
            ChatMessage(
                content=leave_notice(username),
                sender=username,
                room_id=room_id,
                type=MessageType.LEAVE,
            )
        )
