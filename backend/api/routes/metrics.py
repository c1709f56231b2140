# backend/api/routes/metrics.py
from fastapi import APIRouter, Depends

from api.deps import get_chat_service, get_connection_manager
from services.chat_service import ChatService
from services.connection_manager import ConnectionManager

router = APIRouter()

@router.get("/metrics")
async def get_metrics(
    chat: ChatService = Depends(get_chat_service),
    connections: ConnectionManager = Depends(get_connection_manager),
):
    """
    Message throughput, capacity and dropped-command counters.

    Example Response:
        {
            "total_messages": 1200,
            "room_messages": 1100,
            "private_messages": 100,
            "uptime_hours": 2.5,
            "messages_per_second": 0.13,
            "concurrent_connections": 40,
            "registered_users": 55,
            "online_users": 38,
            "total_rooms": 6,
            "active_rooms_with_subscribers": 4,
            "dropped_commands": {"join": 2, "broadcast": 1}
        }

    `dropped_commands` counts commands the core ignored because the user
    or room they named does not exist.
    """
    metrics = chat.metrics
    uptime_seconds = metrics.uptime_seconds()
    total = metrics.total_messages

    if uptime_seconds > 0:
        messages_per_second = total / uptime_seconds
    else:
        messages_per_second = 0

    return {
        # Statistics
        "total_messages": total,
        "room_messages": metrics.room_messages,
        "private_messages": metrics.private_messages,
        "uptime_hours": round(uptime_seconds / 3600, 2) if uptime_seconds > 0 else 0,
        "messages_per_second": round(messages_per_second, 2),

        # Capacity
        "concurrent_connections": len(connections.connection_rooms),
        "registered_users": len(chat.users),
        "online_users": len(chat.list_online_users()),
        "total_rooms": len(chat.rooms),
        "active_rooms_with_subscribers": len(connections.rooms),

        # Ignored commands
        "dropped_commands": metrics.dropped(),
    }
