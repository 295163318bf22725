"""Set up configuration variables."""

import logging
from pathlib import Path

from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


EVENT_SCROBBLE = "media.scrobble"
EVENT_RATE = "media.rate"
EVENT_PLAY = "media.play"
EVENT_NEW = "library.new"

SEVEN_DAYS = 7 * 24 * 60 * 60  # in seconds


class Settings(BaseSettings):
    """Define the settings we need."""

    # Default values
    APP_PORT: int = 11000
    LOG_LEVEL: str = "INFO"
    APP_URL: str = "http://localhost:11000"
    REDIS_URL: str = "redis://localhost:6379/0"
    EVENT_WHITELIST: str = f"{EVENT_SCROBBLE},{EVENT_RATE},{EVENT_NEW}"
    IMAGE_TTL_SECONDS: int = SEVEN_DAYS
    HTTP_TIMEOUT_SECONDS: float = 10.0
    REDIS_TIMEOUT_SECONDS: float = 2.0

    # Optional integrations (disabled when unset)
    SLACK_URL: str | None = None
    SLACK_CHANNEL: str | None = None
    IPSTACK_KEY: str | None = None

    class Config:
        """Define our settings file."""
        env_file = str(Path("plex-slack-data/.env") if Path("plex-slack-data/.env").exists() else Path(".env"))

    @property
    def event_whitelist(self) -> list[str]:
        """Return the accepted event names. Play is always accepted so images can be cached."""
        events = [name.strip() for name in self.EVENT_WHITELIST.split(",") if name.strip()]
        if EVENT_PLAY not in events:
            events.append(EVENT_PLAY)
        return events

    @property
    def base_url(self) -> str:
        """Return APP_URL without a trailing slash."""
        return self.APP_URL.rstrip("/")


settings = Settings()
logging.basicConfig(level=settings.LOG_LEVEL.upper())
