"""Environment-driven settings for the Starbridge server.

Values are read once from the process environment (after loading a local
``.env`` file) and exposed through :func:`get_settings`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Union

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _cors_origins() -> Union[str, List[str]]:
    """CORS origins for Socket.IO, defaulting to * for dev."""
    origins = os.getenv("WS_ALLOWED_ORIGINS", "")
    if not origins:
        return "*"
    return [o.strip() for o in origins.split(",") if o.strip()]


@dataclass(frozen=True)
class Settings:
    environment: str = "development"
    database_url: str = "sqlite+aiosqlite:///./starbridge.db"
    require_database_on_startup: bool = True
    cors_origins: Union[str, List[str]] = "*"
    socketio_namespace: str = "/ops"
    log_level: str = "INFO"
    order_log_cap: int = 50
    fuel_processing_rate: int = 1
    port: int = 8000

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            environment=os.getenv("ENVIRONMENT", "development").lower(),
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            require_database_on_startup=_env_bool("REQUIRE_DATABASE_ON_STARTUP", True),
            cors_origins=_cors_origins(),
            socketio_namespace=os.getenv("SOCKETIO_NAMESPACE", cls.socketio_namespace),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
            order_log_cap=int(os.getenv("ORDER_LOG_CAP", str(cls.order_log_cap))),
            fuel_processing_rate=int(os.getenv("FUEL_PROCESSING_RATE", str(cls.fuel_processing_rate))),
            port=int(os.getenv("PORT", str(cls.port))),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
