# backend/api/routes/health.py

from fastapi import APIRouter, Depends

from api.deps import get_chat_service, get_connection_manager
from services.chat_service import ChatService
from services.connection_manager import ConnectionManager

router = APIRouter()

@router.get("/health")
async def health(
    chat: ChatService = Depends(get_chat_service),
    connections: ConnectionManager = Depends(get_connection_manager),
):
    """
    Health check endpoint.

    Returns current system status, connection counts, and room counts.

    Returns:
        dict: Status, connection count, room count, online user count
    """
    return {
        "status": "healthy",
        "connections": len(connections.connection_rooms),
        "rooms": len(chat.rooms),
        "online_users": len(chat.list_online_users()),
    }
