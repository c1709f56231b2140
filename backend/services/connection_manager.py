# backend/services/connection_manager.py

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from fastapi import WebSocket

from models.models import ChatMessage
from services.delivery import DeliverySink

logger = logging.getLogger(__name__)

# ============================================================================
# WEBSOCKET CONNECTION MANAGER
# ============================================================================


class ConnectionManager(DeliverySink):
    """
    Maps room and user channels onto live WebSocket connections.

    This is the local delivery sink: the chat core decides who should get
    a message, this class finds the sockets. Room channel subscriptions
    follow core membership per user: whichever surface joins or leaves a
    room (WebSocket action or REST route) updates every session of that
    user. User channels follow the username a socket connected with.

    Data Structures:
        rooms: Maps room_id -> Set of WebSocket connections subscribed to it
               Example: {"general": {websocket1, websocket2}}

        connection_rooms: Maps WebSocket -> Set of room_ids it's subscribed to
                          Example: {websocket1: {"general", "uuid-456"}}

        connection_users: Maps WebSocket -> username

        user_connections: Maps username -> Set of WebSocket connections
                          (one user may have several sessions open)

    Threading:
        The chat core may call publish_to_room/publish_to_user from any
        thread. Those calls only schedule the sends on the event loop the
        connections live on (asyncio.run_coroutine_threadsafe), so the
        dictionaries above are only ever touched from that loop.
    """

    def __init__(self) -> None:
        self.rooms: Dict[str, Set[WebSocket]] = {}
        self.connection_rooms: Dict[WebSocket, Set[str]] = {}
        self.connection_users: Dict[WebSocket, str] = {}
        self.user_connections: Dict[str, Set[WebSocket]] = {}
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    async def connect(self, websocket: WebSocket, username: str) -> None:
        """
        Accept a new WebSocket connection for `username`.

        The connection starts without room subscriptions.
        """
        self.bind_loop(asyncio.get_running_loop())

        await websocket.accept()

        self.connection_rooms[websocket] = set()
        self.connection_users[websocket] = username
        self.user_connections.setdefault(username, set()).add(websocket)

        logger.info("✓ User %s connected. Total: %d", username, len(self.connection_rooms))

    def disconnect(self, websocket: WebSocket) -> Optional[str]:
        """
        Forget a connection and all of its subscriptions.

        Returns:
            The username the connection belonged to, or None if it was
            already gone.
        """
        if websocket not in self.connection_rooms:
            return None

        username = self.connection_users.get(websocket, "unknown")

        for room_id in self.connection_rooms[websocket]:
            if room_id in self.rooms:
                self.rooms[room_id].discard(websocket)
                if not self.rooms[room_id]:
                    del self.rooms[room_id]

        sessions = self.user_connections.get(username)
        if sessions is not None:
            sessions.discard(websocket)
            if not sessions:
                del self.user_connections[username]

        del self.connection_rooms[websocket]
        del self.connection_users[websocket]

        logger.info("✗ User %s disconnected. Total: %d", username, len(self.connection_rooms))
        return username

    def is_connected(self, username: str) -> bool:
        return bool(self.user_connections.get(username))

    def subscribe(self, websocket: WebSocket, room_id: str) -> None:
        if websocket not in self.connection_rooms:
            return  # Connection already closed

        self.rooms.setdefault(room_id, set()).add(websocket)
        self.connection_rooms[websocket].add(room_id)

    def unsubscribe(self, websocket: WebSocket, room_id: str) -> None:
        if websocket not in self.connection_rooms:
            return  # Connection already closed

        self.connection_rooms[websocket].discard(room_id)
        if room_id in self.rooms:
            self.rooms[room_id].discard(websocket)
            if not self.rooms[room_id]:
                del self.rooms[room_id]

    def subscribe_user(self, username: str, room_id: str) -> None:
        """Subscribe every open session of `username` to a room channel."""
        for websocket in self.user_connections.get(username, set()).copy():
            self.subscribe(websocket, room_id)

    def unsubscribe_user(self, username: str, room_id: str) -> None:
        """Unsubscribe every open session of `username` from a room channel."""
        for websocket in self.user_connections.get(username, set()).copy():
            self.unsubscribe(websocket, room_id)

    # ------------------------------------------------------------------
    # Async fan-out
    # ------------------------------------------------------------------

    async def _send_all(self, connections: Set[WebSocket], message: dict) -> None:
        disconnected = set()

        for connection in connections:
            try:
                await connection.send_json(message)
            except Exception as e:
                logger.error(f"Send error: {e}")
                disconnected.add(connection)

        # Clean up failed connections
        for conn in disconnected:
            self.disconnect(conn)

    async def broadcast_to_room(self, room_id: str, message: dict) -> None:
        """Send a message to every connection subscribed to a room channel."""
        if room_id not in self.rooms:
            logger.debug("[routing] Skipped broadcast: room=%s has 0 subscribers", room_id)
            return

        connections = self.rooms[room_id].copy()  # Copy to avoid modification during iteration
        logger.debug("📨 Broadcasting to room %s: %d clients", room_id, len(connections))
        await self._send_all(connections, message)

    async def send_to_user(self, username: str, message: dict) -> None:
        """Send a message to every open session of a user."""
        if username not in self.user_connections:
            logger.debug("[routing] Skipped direct send: user=%s has no sessions", username)
            return

        await self._send_all(self.user_connections[username].copy(), message)

    async def broadcast_all(self, message: dict) -> None:
        """Send a message to every open connection (room list updates)."""
        await self._send_all(set(self.connection_rooms.keys()), message)

    # ------------------------------------------------------------------
    # DeliverySink
    # ------------------------------------------------------------------

    def _schedule(self, send: Callable[..., Awaitable[Any]], *args: Any) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.debug("No event loop bound - delivery skipped")
            return

        coro = send(*args)
        try:
            asyncio.run_coroutine_threadsafe(coro, loop)
        except RuntimeError as e:
            # Loop shut down between the check and the call
            coro.close()
            logger.warning(f"Delivery skipped: {e}")

    def publish_to_room(self, room_id: str, message: ChatMessage) -> None:
        self._schedule(self.broadcast_to_room, room_id, message.model_dump(mode="json"))

    def publish_to_user(self, username: str, message: ChatMessage) -> None:
        self._schedule(self.send_to_user, username, message.model_dump(mode="json"))
