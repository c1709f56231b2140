# backend/services/user_registry.py

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional, Set

from models.models import User

logger = logging.getLogger(__name__)

# ============================================================================
# USER REGISTRY
# ============================================================================


class UserRegistry:
    """
    Tracks chat participants by username.

    Users are created on first registration and never removed; a
    disconnect only flips `online` to False. Room memberships survive a
    disconnect so a reconnecting user still shows prior rooms.

    All reads hand out deep copies, so callers can't mutate registry state
    behind the lock.
    """

    def __init__(self) -> None:
        self._users: Dict[str, User] = {}
        self._lock = threading.Lock()

    def register(self, username: str, session_id: Optional[str]) -> User:
        """
        Create the user if absent, otherwise rebind the existing record.

        Always sets the session id and marks the user online. Prior room
        memberships are kept.
        """
        with self._lock:
            user = self._users.get(username)
            if user is None:
                user = User(username=username)
                self._users[username] = user
                logger.info("✓ Registered new user %s", username)
            else:
                logger.info("↻ Re-registered user %s (rooms=%d)", username, len(user.rooms))

            user.session_id = session_id
            user.online = True
            return user.model_copy(deep=True)

    def disconnect(self, username: str) -> Optional[User]:
        """Mark a user offline. Returns the updated snapshot, or None if unknown."""
        with self._lock:
            user = self._users.get(username)
            if user is None:
                return None
            user.online = False
            logger.info("✗ User %s went offline", username)
            return user.model_copy(deep=True)

    def get(self, username: str) -> Optional[User]:
        with self._lock:
            user = self._users.get(username)
            return user.model_copy(deep=True) if user else None

    def exists(self, username: str) -> bool:
        with self._lock:
            return username in self._users

    def list_online(self) -> List[User]:
        with self._lock:
            online = [u.model_copy(deep=True) for u in self._users.values() if u.online]
        return sorted(online, key=lambda u: u.username)

    def rooms_of(self, username: str) -> Set[str]:
        with self._lock:
            user = self._users.get(username)
            return set(user.rooms) if user else set()

    def add_room(self, username: str, room_id: str) -> bool:
        with self._lock:
            user = self._users.get(username)
            if user is None:
                return False
            user.rooms.add(room_id)
            return True

    def remove_room(self, username: str, room_id: str) -> bool:
        with self._lock:
            user = self._users.get(username)
            if user is None:
                return False
            user.rooms.discard(room_id)
            return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._users)
