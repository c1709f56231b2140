# backend/api/websocket.py

from __future__ import annotations

import json
import logging
import uuid

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from api.routes.utils import (
    broadcast_room_list_update,
    sync_room_subscription,
    sync_user_subscriptions,
)
from services.chat_service import ChatService
from services.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)

router = APIRouter()


async def _send_error(websocket: WebSocket, message: str) -> None:
    await websocket.send_json({"type": "error", "message": message})


async def _handle_action(
    websocket: WebSocket,
    username: str,
    message: dict,
    chat: ChatService,
    connections: ConnectionManager,
) -> None:
    action = message.get("action")

    if action == "join":
        room_id = message.get("room_id")
        if not room_id:
            await _send_error(websocket, "room_id is required")
            return
        chat.join_room(username, room_id)
        sync_room_subscription(chat, connections, username, room_id)

    elif action == "leave":
        room_id = message.get("room_id")
        if not room_id:
            await _send_error(websocket, "room_id is required")
            return
        chat.leave_room(username, room_id)
        sync_room_subscription(chat, connections, username, room_id)

    elif action == "create_room":
        name = (message.get("name") or "").strip()
        if not name:
            await _send_error(websocket, "Room name required")
            return
        room = chat.create_room(name, created_by=username)
        sync_room_subscription(chat, connections, username, room.id)
        await websocket.send_json({"type": "room_created", "room": room.model_dump(mode="json")})
        await broadcast_room_list_update(chat, connections)

    elif action == "send":
        room_id = message.get("room_id")
        content = message.get("content")
        if not room_id or content is None:
            await _send_error(websocket, "room_id and content are required")
            return
        chat.send_room_message(room_id, username, content)

    elif action == "private":
        recipient = message.get("recipient")
        content = message.get("content")
        if not recipient or content is None:
            await _send_error(websocket, "recipient and content are required")
            return
        chat.send_private_message(username, recipient, content)

    elif action == "list_rooms":
        rooms_data = [r.model_dump(mode="json") for r in chat.list_rooms()]
        await websocket.send_json({"type": "rooms_list", "rooms": rooms_data})

    elif action == "list_users":
        users_data = [u.model_dump(mode="json") for u in chat.list_online_users()]
        await websocket.send_json({"type": "users_list", "users": users_data})

    elif action == "history":
        room_id = message.get("room_id")
        limit = message.get("limit", chat.history_limit)
        if not room_id or not isinstance(limit, int):
            await _send_error(websocket, "room_id and an integer limit are required")
            return
        messages = [m.model_dump(mode="json") for m in chat.get_room_history(room_id, limit)]
        await websocket.send_json({"type": "history", "room_id": room_id, "messages": messages})

    else:
        await _send_error(websocket, f"Unknown action: {action}")


# ============================================================================
# WEBSOCKET ENDPOINT
# ============================================================================

@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, username: str):
    """
    WebSocket endpoint for real-time chat.

    Protocol:
    =========

    Connect:
        /ws?username=alice
        The user is registered (new session id) and joined to the default
        room. The socket is subscribed to every room the user is currently
        a member of. A blank username is refused with a policy violation
        close (1008) before the socket is accepted.
        Response: {"type": "registered", "user": {...}}

    Client -> Server Actions:
    -------------------------
    Join / Leave Room:
        {"action": "join", "room_id": "general"}
        {"action": "leave", "room_id": "general"}
        The JOIN/LEAVE notification arrives through the room channel.

    Create Room (creator joins it):
        {"action": "create_room", "name": "Dev"}
        Response: {"type": "room_created", "room": {...}}
        Everyone: {"type": "rooms_updated", "rooms": [...]}

    Room Message:
        {"action": "send", "room_id": "general", "content": "hi"}

    Private Message (echoed back to the sender):
        {"action": "private", "recipient": "bob", "content": "psst"}

    Queries:
        {"action": "list_rooms"}  -> {"type": "rooms_list", "rooms": [...]}
        {"action": "list_users"}  -> {"type": "users_list", "users": [...]}
        {"action": "history", "room_id": "general", "limit": 50}
                                  -> {"type": "history", "room_id": ..., "messages": [...]}

    Server -> Client Messages:
    -------------------------
    Chat events are sent as serialized messages:
        {"id": "...", "room_id": "general", "sender": "alice", "recipient": null,
         "content": "hi", "type": "CHAT", "timestamp": "..."}

    Error:
        {"type": "error", "message": "..."}

    Lifecycle:
    ==========
    When the last socket of a user closes, the user is marked offline and
    a LEAVE notification goes to each of their rooms.
    """
    chat: ChatService = websocket.app.state.chat_service
    connections: ConnectionManager = websocket.app.state.connection_manager

    if not username.strip():
        logger.info("Refused websocket with blank username")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await connections.connect(websocket, username)

    try:
        user = chat.register(username, session_id=uuid.uuid4().hex)
        sync_user_subscriptions(chat, connections, username)
        await websocket.send_json({"type": "registered", "user": user.model_dump(mode="json")})

        while True:
            data = await websocket.receive_text()

            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                await _send_error(websocket, "Invalid JSON")
                continue

            if not isinstance(message, dict):
                await _send_error(websocket, "Invalid message")
                continue

            logger.debug("Websocket input from %s: %s", username, message)
            await _handle_action(websocket, username, message, chat, connections)

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error("WebSocket error: %s", e)
    finally:
        connections.disconnect(websocket)
        if not connections.is_connected(username):
            chat.disconnect(username)
