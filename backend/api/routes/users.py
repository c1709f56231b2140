# backend/api/routes/users.py

import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from api.deps import get_chat_service, get_connection_manager
from api.routes.utils import sync_user_subscriptions
from models.models import RegisterRequest, User
from services.chat_service import ChatService
from services.connection_manager import ConnectionManager

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/online", response_model=List[User])
async def list_online_users(chat: ChatService = Depends(get_chat_service)):
    """Users whose session is currently connected, sorted by username."""
    return chat.list_online_users()


@router.post("/register", response_model=User)
async def register_user(
    request: RegisterRequest,
    chat: ChatService = Depends(get_chat_service),
    connections: ConnectionManager = Depends(get_connection_manager),
):
    """
    Register (or re-register) a user and join them to the default room.

    A session id is generated when the caller doesn't bring one.
    """
    if not request.username.strip():
        raise HTTPException(status_code=400, detail="Username required")
    user = chat.register(request.username, request.session_id or uuid.uuid4().hex)
    sync_user_subscriptions(chat, connections, request.username)
    return user


@router.post("/{username}/disconnect")
async def disconnect_user(
    username: str,
    chat: ChatService = Depends(get_chat_service),
    connections: ConnectionManager = Depends(get_connection_manager),
):
    """
    Mark a user offline. Unknown users are ignored.

    Any sockets the user still has open stop receiving their rooms, since
    the core no longer counts them as members.
    """
    chat.disconnect(username)
    sync_user_subscriptions(chat, connections, username)
    return {"status": "accepted", "username": username}


@router.get("/{username}", response_model=User)
async def get_user(username: str, chat: ChatService = Depends(get_chat_service)):
    user = chat.get_user(username)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user
