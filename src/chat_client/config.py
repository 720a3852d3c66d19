from __future__ import annotations

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    TYPING_QUIET_WINDOW_MS: int = 2000
    ROOM_OPERATION_TIMEOUT: float | None = None

    ROOM_ID_BYTES: int = 8
    SYSTEM_JOIN_TEMPLATE: str = "{nickname} joined the party"

    @property
    def typing_quiet_window_seconds(self) -> float:
        return self.TYPING_QUIET_WINDOW_MS / 1000

    model_config = ConfigDict(
        env_file=".env",
        env_prefix="CHAT_CLIENT_",
        extra="ignore",
    )


settings = Settings()
