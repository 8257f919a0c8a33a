from __future__ import annotations

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    API_BASE_URL: str = "http://localhost:8080"
    AUTH_TOKEN: str = ""
    AUTH_COOKIE_NAME: str = "auth_id"
    HTTP_TIMEOUT_SECONDS: float = 10.0

    CACHE_DATABASE_URL: str = "sqlite+aiosqlite:///chat_cache.db"
    PURGE_CACHE_ON_UNLOAD: bool = False

    MAX_MESSAGE_LENGTH: int = 10_000
    HISTORY_LIMIT: int = 50
    HISTORY_CACHE_TTL_SECONDS: float = 30.0
    REFRESH_AFTER_SEND_SECONDS: float = 0.5
    PENDING_MATCH_WINDOW_MS: int = 10_000
    SEND_ERROR_DISMISS_SECONDS: float = 4.0

    SYNC_POLL_INTERVAL: float = 15.0

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
