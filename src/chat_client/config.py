from __future__ import annotations

from dataclasses import dataclass

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    API_BASE_URL: str = "https://localhost:3443"
    API_TOKEN: str = ""
    HTTP_TIMEOUT_SECONDS: float = 10.0

    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_EVENTS_CHANNEL: str = "chat.events.{user_id}"
    REDIS_COMMANDS_CHANNEL: str = "chat.commands"

    CURRENT_USER_ID: int | None = None

    GLOBAL_FEED_CAPACITY: int = 50
    MESSAGE_MAX_CHARS: int = 500
    HISTORY_PAGE_SIZE: int = 50

    TYPING_TIMEOUT_MS: int = 3000
    TYPING_COOLDOWN_MS: int = 1000

    BADGE_MIN_INTERVAL_MS: int = 1000
    BADGE_COALESCE_MS: int = 200
    BADGE_TICK_MS: int = 5000

    UNREAD_REFRESH_INTERVAL_MS: int = 30000

    LOG_LEVEL: str = "INFO"

    @property
    def events_channel(self) -> str:
        return self.REDIS_EVENTS_CHANNEL.format(user_id=self.CURRENT_USER_ID or 0)

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


@dataclass(frozen=True, slots=True)
class ChatOptions:
    """Limits and timings for the chat core, in milliseconds where timed."""

    global_feed_capacity: int = 50
    message_max_chars: int = 500
    history_page_size: int = 50
    typing_timeout_ms: int = 3000
    typing_cooldown_ms: int = 1000
    badge_min_interval_ms: int = 1000
    badge_coalesce_ms: int = 200
    badge_tick_ms: int = 5000
    unread_refresh_interval_ms: int = 30000

    @classmethod
    def from_settings(cls, s: Settings) -> ChatOptions:
        return cls(
            global_feed_capacity=s.GLOBAL_FEED_CAPACITY,
            message_max_chars=s.MESSAGE_MAX_CHARS,
            history_page_size=s.HISTORY_PAGE_SIZE,
            typing_timeout_ms=s.TYPING_TIMEOUT_MS,
            typing_cooldown_ms=s.TYPING_COOLDOWN_MS,
            badge_min_interval_ms=s.BADGE_MIN_INTERVAL_MS,
            badge_coalesce_ms=s.BADGE_COALESCE_MS,
            badge_tick_ms=s.BADGE_TICK_MS,
            unread_refresh_interval_ms=s.UNREAD_REFRESH_INTERVAL_MS,
        )


settings = Settings()  # type: ignore[call-arg]
