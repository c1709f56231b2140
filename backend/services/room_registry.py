# backend/services/room_registry.py

from __future__ import annotations

import logging
import threading
import uuid
from typing import Dict, List, Optional

from models.models import Room
from services.history import MessageHistory

logger = logging.getLogger(__name__)

DEFAULT_ROOM_ID = "general"
DEFAULT_ROOM_NAME = "General"

# ============================================================================
# ROOM REGISTRY
# ============================================================================


class RoomRegistry:
    """
    Manages room metadata, membership sets and message history (in memory).

    Rooms are never deleted. Exactly one room exists at startup: the
    default room, under a fixed well-known id. Every other room gets a
    generated uuid4 id.

    Attributes:
        default_room_id: id of the room every registered user lands in
        history: bounded per-room message log

    Usage:
        rooms = RoomRegistry()
        room = rooms.create("Product Team")
        all_rooms = rooms.list()
    """

    def __init__(
        self,
        default_room_id: str = DEFAULT_ROOM_ID,
        default_room_name: str = DEFAULT_ROOM_NAME,
        history_retention: int = 1000,
    ) -> None:
        self._rooms: Dict[str, Room] = {}
        self._lock = threading.Lock()
        self.history = MessageHistory(retention=history_retention)
        self.default_room_id = default_room_id

        self._rooms[default_room_id] = Room(id=default_room_id, name=default_room_name)
        logger.info("✓ Created default room '%s' (%s)", default_room_name, default_room_id)

    def create(self, name: str) -> Room:
        """Create a room with a fresh id, no members and no history."""
        room = Room(id=str(uuid.uuid4()), name=name)
        with self._lock:
            self._rooms[room.id] = room
        logger.info("✓ Created room: %s (%s)", room.name, room.id)
        return room.model_copy(deep=True)

    def get(self, room_id: Optional[str]) -> Optional[Room]:
        if room_id is None:
            return None
        with self._lock:
            room = self._rooms.get(room_id)
            return room.model_copy(deep=True) if room else None

    def exists(self, room_id: Optional[str]) -> bool:
        with self._lock:
            return room_id in self._rooms

    def list(self) -> List[Room]:
        """All rooms in creation order."""
        with self._lock:
            return [r.model_copy(deep=True) for r in self._rooms.values()]

    def add_member(self, room_id: str, username: str) -> bool:
        with self._lock:
            room = self._rooms.get(room_id)
            if room is None:
                return False
            room.users.add(username)
            return True

    def remove_member(self, room_id: str, username: str) -> bool:
        with self._lock:
            room = self._rooms.get(room_id)
            if room is None:
                return False
            room.users.discard(username)
            return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)
