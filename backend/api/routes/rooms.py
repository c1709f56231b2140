# backend/api/routes/rooms.py

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from api.deps import get_chat_service, get_connection_manager
from api.routes.utils import broadcast_room_list_update, sync_room_subscription
from models.models import ChatMessage, CreateRoomRequest, MembershipRequest, Room
from services.chat_service import ChatService
from services.connection_manager import ConnectionManager

router = APIRouter(prefix="/rooms", tags=["Rooms"])

# ============================================================================
# ROOM ENDPOINTS
# ============================================================================

@router.get("", response_model=List[Room])
async def list_rooms(chat: ChatService = Depends(get_chat_service)):
    """
    List all rooms with their current members.

    Returns:
        List[Room]: All rooms in creation order
    """
    return chat.list_rooms()


@router.post("", response_model=Room)
async def create_room(
    request: CreateRoomRequest,
    chat: ChatService = Depends(get_chat_service),
    connections: ConnectionManager = Depends(get_connection_manager),
):
    """
    Create a new chatroom.

    When `created_by` is given the creator joins the room immediately and
    their open WebSocket sessions are subscribed to it.
    Room names need not be unique; rooms are told apart by id.

    Raises:
        HTTPException: 400 if name is empty

    Side Effects:
        - "rooms_updated" message sent to all WebSocket clients
    """
    if not request.name.strip():
        raise HTTPException(status_code=400, detail="Room name required")

    room = chat.create_room(request.name.strip(), created_by=request.created_by)
    if request.created_by:
        sync_room_subscription(chat, connections, request.created_by, room.id)
    await broadcast_room_list_update(chat, connections)
    return room


@router.get("/{room_id}", response_model=Room)
async def get_room(room_id: str, chat: ChatService = Depends(get_chat_service)):
    """
    Get details of a specific room.

    Raises:
        HTTPException: 404 if room not found
    """
    room = chat.get_room(room_id)
    if not room:
        raise HTTPException(status_code=404, detail="Room not found")
    return room


@router.get("/{room_id}/history", response_model=List[ChatMessage])
async def get_room_history(
    room_id: str,
    limit: Optional[int] = Query(None, ge=0),
    chat: ChatService = Depends(get_chat_service),
):
    """
    Most recent messages of a room, oldest first.

    Without `limit` the configured HISTORY_PAGE_SIZE applies.
    Unknown rooms yield an empty list rather than a 404.
    """
    return chat.get_room_history(room_id, limit)


@router.post("/{room_id}/join")
async def join_room(
    room_id: str,
    request: MembershipRequest,
    chat: ChatService = Depends(get_chat_service),
    connections: ConnectionManager = Depends(get_connection_manager),
):
    """Join a user to a room. Unknown users or rooms are ignored."""
    chat.join_room(request.username, room_id)
    sync_room_subscription(chat, connections, request.username, room_id)
    return {"status": "accepted", "room_id": room_id}


@router.post("/{room_id}/leave")
async def leave_room(
    room_id: str,
    request: MembershipRequest,
    chat: ChatService = Depends(get_chat_service),
    connections: ConnectionManager = Depends(get_connection_manager),
):
    """Remove a user from a room. Unknown users or rooms are ignored."""
    chat.leave_room(request.username, room_id)
    sync_room_subscription(chat, connections, request.username, room_id)
    return {"status": "accepted", "room_id": room_id}
