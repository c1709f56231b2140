# backend/services/metrics.py

from __future__ import annotations

import logging
import threading
from collections import Counter
from datetime import datetime, timezone
from typing import Dict

logger = logging.getLogger(__name__)


class ChatMetrics:
    """
    Counters for routed messages and dropped commands.

    The core never raises for unknown users/rooms; it drops the command
    instead. `record_drop` is the single place those drops become visible:
    they are logged and counted per command name.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.start_time: datetime = datetime.now(timezone.utc)
        self.room_messages: int = 0
        self.private_messages: int = 0
        self._dropped: Counter = Counter()

    def record_room_message(self) -> None:
        with self._lock:
            self.room_messages += 1

    def record_private_message(self) -> None:
        with self._lock:
            self.private_messages += 1

    def record_drop(self, command: str, reason: str, **context: str) -> None:
        with self._lock:
            self._dropped[command] += 1
        details = ", ".join(f"{k}={v!r}" for k, v in context.items())
        logger.info("Dropped %s: %s (%s)", command, reason, details)

    @property
    def total_messages(self) -> int:
        with self._lock:
            return self.room_messages + self.private_messages

    def dropped(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._dropped)

    def uptime_seconds(self) -> float:
        return (datetime.now(timezone.utc) - self.start_time).total_seconds()
