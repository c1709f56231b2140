# backend/api/routes/root.py

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/")
async def root(request: Request):
    """
    Root endpoint - API information.

    Returns basic info about the API and its features.
    """
    return {
        "message": "Simple Chat - coordination core",
        "version": "1.0",
        "delivery_backend": request.app.state.settings.DELIVERY_BACKEND,
        "features": ["rooms", "private_messages", "presence", "room_history"],
        "endpoints": {
            "websocket": "/ws?username=<name>",
            "rooms": "/rooms",
            "users": "/users/online",
            "publish": "/publish",
            "health": "/health",
            "metrics": "/metrics",
        },
    }
