# backend/api/routes/utils.py

from __future__ import annotations

from services.chat_service import ChatService
from services.connection_manager import ConnectionManager


async def broadcast_room_list_update(chat: ChatService, connections: ConnectionManager):
    """
    Helper function to notify all clients that the room list has changed.

    Sends "rooms_updated" message with full room list to all connected
    WebSocket clients. Used after room creation.

    Side Effects:
        Sends JSON message to all WebSocket connections:
        {
            "type": "rooms_updated",
            "rooms": [list of room objects]
        }
    """
    rooms_data = [r.model_dump(mode="json") for r in chat.list_rooms()]
    await connections.broadcast_all({"type": "rooms_updated", "rooms": rooms_data})


def sync_room_subscription(
    chat: ChatService, connections: ConnectionManager, username: str, room_id: str
) -> None:
    """
    Align the room channel subscriptions of all of a user's sockets with
    core membership.

    Called after every join, leave or create, whichever surface issued it,
    so a user's other sessions never miss (or keep receiving) a room.
    """
    room = chat.get_room(room_id)
    if room is not None and username in room.users:
        connections.subscribe_user(username, room_id)
    else:
        connections.unsubscribe_user(username, room_id)


def sync_user_subscriptions(chat: ChatService, connections: ConnectionManager, username: str) -> None:
    """Apply sync_room_subscription to every room the user has on record."""
    user = chat.get_user(username)
    if user is None:
        return
    for room_id in sorted(user.rooms):
        sync_room_subscription(chat, connections, username, room_id)
