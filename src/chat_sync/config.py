from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    API_BASE_URL: str = "http://localhost:5001"
    REALTIME_URL: str = "ws://localhost:5001/ws"
    ACCESS_TOKEN: str = ""
    HTTP_TIMEOUT_SECONDS: float = 10.0

    CONVERSATION_PAGE_SIZE: int = 20
    MESSAGE_PAGE_SIZE: int = 20

    TYPING_EXPIRY_SECONDS: float = 3.0
    TYPING_IDLE_SECONDS: float = 2.0

    RECONNECT_ATTEMPTS: int = 5
    RECONNECT_DELAY_SECONDS: float = 1.0
    RECONNECT_DELAY_MAX_SECONDS: float = 5.0
    WS_HEARTBEAT_SECONDS: float = 20.0

    RESYNC_ON_RECONNECT: bool = True

    RELAY_HOST: str = "0.0.0.0"
    RELAY_PORT: int = 5001

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
