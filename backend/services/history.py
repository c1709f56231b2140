# backend/services/history.py

from __future__ import annotations

import threading
from collections import deque
from typing import Deque, Dict, List

from models.models import ChatMessage

# ============================================================================
# BOUNDED MESSAGE HISTORY
# ============================================================================


class _RoomLog:
    def __init__(self, retention: int) -> None:
        self.lock = threading.RLock()
        self.messages: Deque[ChatMessage] = deque(maxlen=retention)


class MessageHistory:
    """
    Per-room append log with a retention cap.

    Each room gets its own re-entrant lock. The message router holds it
    across append + publish (see `sequence`) so that concurrent senders to
    one room land in history in the same order they are delivered.

    Storage is capped at `retention` messages per room; the oldest entries
    fall off first. Reads are further truncated to the requested count.
    """

    def __init__(self, retention: int = 1000) -> None:
        if retention < 1:
            raise ValueError("retention must be at least 1")
        self.retention = retention
        self._logs: Dict[str, _RoomLog] = {}
        self._guard = threading.Lock()

    def _log(self, room_id: str) -> _RoomLog:
        with self._guard:
            log = self._logs.get(room_id)
            if log is None:
                log = _RoomLog(self.retention)
                self._logs[room_id] = log
            return log

    def sequence(self, room_id: str) -> threading.RLock:
        """Lock that serializes append + publish for one room."""
        return self._log(room_id).lock

    def append(self, room_id: str, message: ChatMessage) -> None:
        log = self._log(room_id)
        with log.lock:
            log.messages.append(message)

    def recent(self, room_id: str, count: int) -> List[ChatMessage]:
        """Return the last `count` messages, oldest first."""
        if count <= 0:
            return []

        with self._guard:
            log = self._logs.get(room_id)
        if log is None:
            return []

        with log.lock:
            messages = list(log.messages)
        return [m.model_copy() for m in messages[-count:]]

    def size(self, room_id: str) -> int:
        with self._guard:
            log = self._logs.get(room_id)
        if log is None:
            return 0
        with log.lock:
            return len(log.messages)
