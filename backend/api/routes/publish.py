# backend/api/routes/publish.py

from fastapi import APIRouter, Depends, HTTPException

from api.deps import get_chat_service
from models.models import PrivateMessageRequest, SendMessageRequest
from services.chat_service import ChatService

# ============================================================================
# MESSAGE PUBLISHING ENDPOINTS
# ============================================================================

router = APIRouter(prefix="/publish", tags=["Messages"])


@router.post("")
async def publish_message(request: SendMessageRequest, chat: ChatService = Depends(get_chat_service)):
    """
    Publish a chat message to a room.

    Flow:
        1. Router resolves the room (unknown rooms are dropped, not rejected)
        2. Message gets an id and is appended to the room history
        3. Message is handed to the delivery sink for the room channel

    Returns:
        dict: "published" with the message id, or "dropped"

    Raises:
        HTTPException: 400 if content is empty
    """
    if not request.content.strip():
        raise HTTPException(status_code=400, detail="Message content required")

    message = chat.send_room_message(request.room_id, request.sender, request.content)
    if message is None:
        return {"status": "dropped", "room_id": request.room_id}
    return {"status": "published", "id": message.id, "room_id": message.room_id}


@router.post("/private")
async def publish_private(request: PrivateMessageRequest, chat: ChatService = Depends(get_chat_service)):
    """
    Send a private message; the sender receives an echo of it.

    Recipients are not checked: unknown users simply receive nothing.
    """
    if not request.content.strip():
        raise HTTPException(status_code=400, detail="Message content required")

    message = chat.send_private_message(request.sender, request.recipient, request.content)
    return {"status": "published", "id": message.id, "recipient": message.recipient}
