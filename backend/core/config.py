# backend/core/config.py
import os
from typing import List, Literal
from dotenv import load_dotenv


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """
    Setup environment variables.
        - DELIVERY_BACKEND how outbound messages reach sockets: "local" or "redis"
        - DEFAULT_ROOM_ID / DEFAULT_ROOM_NAME the room every user lands in
        - HISTORY_PAGE_SIZE default number of messages returned by history reads
        - HISTORY_RETENTION messages kept per room (oldest are dropped first)
    """

    def __init__(self) -> None:
        # Load environment variables from the .env file
        load_dotenv()

        self.DELIVERY_BACKEND: Literal["local", "redis"] = os.getenv("DELIVERY_BACKEND", "local")

        self.REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
        self.REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
        self.REDIS_ACCESS_KEY: str = os.getenv("REDIS_ACCESS_KEY", "")
        self.REDIS_SSL: bool = _as_bool(os.getenv("REDIS_SSL", "false"))

        self.DEFAULT_ROOM_ID: str = os.getenv("DEFAULT_ROOM_ID", "general")
        self.DEFAULT_ROOM_NAME: str = os.getenv("DEFAULT_ROOM_NAME", "General")

        self.HISTORY_PAGE_SIZE: int = int(os.getenv("HISTORY_PAGE_SIZE", "50"))
        self.HISTORY_RETENTION: int = int(os.getenv("HISTORY_RETENTION", "1000"))

        self.CORS_ALLOW_ORIGINS: List[str] = [
            origin.strip()
            for origin in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",")
            if origin.strip()
        ]


settings = Settings()
