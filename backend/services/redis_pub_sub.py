# backend/services/redis_pub_sub.py
import asyncio
import json
import logging
from typing import Optional

import redis.asyncio as redis

from models.models import ChatMessage
from services.connection_manager import ConnectionManager
from services.delivery import DeliverySink, room_channel, user_channel

logger = logging.getLogger(__name__)

ROOM_PATTERN = room_channel("*")
USER_PATTERN = user_channel("*")


class AsyncRedisPubSubService(DeliverySink):
    """
    Delivery sink that goes through Redis Pub/Sub.

    Publishing:
        publish_to_room -> channel "room:<room_id>"
        publish_to_user -> channel "user:<username>"

    Listening:
        `listen()` pattern-subscribes to both channel families and hands
        every payload to the local ConnectionManager, which owns the
        sockets.
    """

    def __init__(
        self,
        connections: ConnectionManager,
        host: str = "localhost",
        port: int = 6379,
        access_key: str = "",
        ssl: bool = False,
    ):
        self.connections = connections
        self.host = host
        self.port = port
        self.access_key = access_key
        self.ssl = ssl
        self.client = None
        self.pubsub = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def url(self) -> str:
        scheme = "rediss" if self.ssl else "redis"
        auth = f":{self.access_key}@" if self.access_key else ""
        return f"{scheme}://{auth}{self.host}:{self.port}"

    async def connect(self):
        """Establish async connection to Redis."""
        self._loop = asyncio.get_running_loop()
        self.client = redis.from_url(self.url, decode_responses=True)
        await self.client.ping()
        logger.info(f"✓ Connected to Redis at {self.host}:{self.port}")

    async def publish(self, channel: str, message: dict):
        """Publish message to channel."""
        try:
            await self.client.publish(channel, json.dumps(message))
            logger.debug(f"📤 Published to Redis channel '{channel}'")
        except Exception as e:
            logger.error(f"Error publishing to Redis channel '{channel}': {e}")

    def _schedule_publish(self, channel: str, message: ChatMessage) -> None:
        if self.client is None or self._loop is None or self._loop.is_closed():
            logger.warning("Redis not connected - message to '%s' not sent", channel)
            return

        coro = self.publish(channel, message.model_dump(mode="json"))
        try:
            asyncio.run_coroutine_threadsafe(coro, self._loop)
        except RuntimeError as e:
            coro.close()
            logger.warning(f"Redis publish skipped: {e}")

    def publish_to_room(self, room_id: str, message: ChatMessage) -> None:
        self._schedule_publish(room_channel(room_id), message)

    def publish_to_user(self, username: str, message: ChatMessage) -> None:
        self._schedule_publish(user_channel(username), message)

    async def dispatch(self, channel: str, data: str) -> None:
        """Route one raw Redis payload to local sockets."""
        try:
            payload = json.loads(data)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON on Redis channel '{channel}': {e}")
            return

        family, _, target = channel.partition(":")
        if not target:
            logger.warning("Redis message on '%s' without target - ignoring", channel)
        elif family == "room":
            await self.connections.broadcast_to_room(target, payload)
        elif family == "user":
            await self.connections.send_to_user(target, payload)
        else:
            logger.warning("Redis message on unknown channel '%s' - ignoring", channel)

    async def listen(self):
        """
        Listen to room and user channels and forward to WebSockets.

        Runs until cancelled; started as a background task on startup.
        """
        self.pubsub = self.client.pubsub()
        await self.pubsub.psubscribe(ROOM_PATTERN, USER_PATTERN)
        logger.info(f"✓ Subscribed to Redis patterns '{ROOM_PATTERN}', '{USER_PATTERN}'")

        async for message in self.pubsub.listen():
            if message["type"] in ("message", "pmessage"):
                try:
                    await self.dispatch(message["channel"], message["data"])
                except Exception as e:
                    logger.error(f"Error processing Redis message: {e}")

    async def close(self):
        """Close connections."""
        if self.pubsub:
            await self.pubsub.punsubscribe()
            await self.pubsub.aclose()
        if self.client:
            await self.client.aclose()
        logger.info("Redis connection closed")
