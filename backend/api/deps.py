# backend/api/deps.py

from __future__ import annotations

from fastapi import Request

from services.chat_service import ChatService
from services.connection_manager import ConnectionManager


def get_chat_service(request: Request) -> ChatService:
    """The chat core built for this app (see main.create_app)."""
    return request.app.state.chat_service


def get_connection_manager(request: Request) -> ConnectionManager:
    return request.app.state.connection_manager
