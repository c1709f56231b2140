# backend/main.py

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager, suppress
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import Settings, settings as default_settings
from core.logging import setup_logging, get_logger
from services.chat_service import ChatService
from services.connection_manager import ConnectionManager
from services.delivery import DeliverySink
from services.redis_pub_sub import AsyncRedisPubSubService
from api.routes import root, health, metrics, rooms, users, publish
from api import websocket as websocket_module

# Configure logging first
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.connection_manager.bind_loop(asyncio.get_running_loop())
    logger.info("🚀 Application starting - delivery backend: %s", app.state.settings.DELIVERY_BACKEND)

    redis_service: Optional[AsyncRedisPubSubService] = app.state.redis_service
    listener: Optional[asyncio.Task] = None

    if redis_service is not None:
        await redis_service.connect()
        # Start subscriber in background
        listener = asyncio.create_task(redis_service.listen())

    try:
        yield
    finally:
        if listener is not None:
            listener.cancel()
            with suppress(asyncio.CancelledError):
                await listener
        if redis_service is not None:
            await redis_service.close()
        logger.info("Application stopped")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI app and its chat core.

    The ChatService is created here, once per app, and stored on
    `app.state` together with the sink it publishes through.
    """
    settings = settings or default_settings

    connection_manager = ConnectionManager()
    redis_service: Optional[AsyncRedisPubSubService] = None
    sink: DeliverySink = connection_manager

    if settings.DELIVERY_BACKEND == "redis":
        redis_service = AsyncRedisPubSubService(
            connection_manager,
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            access_key=settings.REDIS_ACCESS_KEY,
            ssl=settings.REDIS_SSL,
        )
        sink = redis_service
    elif settings.DELIVERY_BACKEND != "local":
        raise ValueError(f"Unknown DELIVERY_BACKEND: {settings.DELIVERY_BACKEND!r}")

    app = FastAPI(title="Simple Chat", lifespan=lifespan)

    app.state.settings = settings
    app.state.connection_manager = connection_manager
    app.state.redis_service = redis_service
    app.state.chat_service = ChatService.from_settings(settings, sink)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # REST routes
    app.include_router(root.router)
    app.include_router(health.router)
    app.include_router(metrics.router)
    app.include_router(rooms.router)
    app.include_router(users.router)
    app.include_router(publish.router)

    # WebSocket routes
    app.include_router(websocket_module.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000)
