# backend/models/models.py
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Set

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MessageType(str, Enum):
    CHAT = "CHAT"
    JOIN = "JOIN"
    LEAVE = "LEAVE"
    PRIVATE = "PRIVATE"


class ChatMessage(BaseModel):
    """
    A chat event routed by the core.

    `id` is left empty by whoever builds the message; the router stamps it
    right before dispatch. `room_id` is only meaningful for room scoped
    types, `recipient` only for PRIVATE.
    """
    id: Optional[str] = None
    room_id: Optional[str] = None
    sender: str
    recipient: Optional[str] = None
    content: str
    type: MessageType = MessageType.CHAT
    timestamp: datetime = Field(default_factory=_utcnow)


class User(BaseModel):
    username: str
    session_id: Optional[str] = None
    online: bool = True
    rooms: Set[str] = Field(default_factory=set)


class Room(BaseModel):
    id: str
    name: str
    users: Set[str] = Field(default_factory=set)
    created_at: datetime = Field(default_factory=_utcnow)


# ============================================================================
# REQUEST BODIES (REST surface)
# ============================================================================

class RegisterRequest(BaseModel):
    username: str
    session_id: Optional[str] = None


class CreateRoomRequest(BaseModel):
    name: str
    created_by: Optional[str] = None


class MembershipRequest(BaseModel):
    username: str


class SendMessageRequest(BaseModel):
    room_id: str
    content: str
    sender: str = "anonymous"


class PrivateMessageRequest(BaseModel):
    sender: str
    recipient: str
    content: str
