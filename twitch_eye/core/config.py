"""Runtime configuration, read from the environment and an optional ``.env``"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[2]
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """twitch-eye settings. Names map to upper-case environment variables."""

    model_config = SettingsConfigDict(
        env_file=PROJECT_ROOT / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Twitch application credentials (required)
    client_id: str = Field(..., description="Twitch application client id")
    client_secret: str = Field(..., description="Twitch application client secret")

    # Session cookie
    session_secret: str = Field(..., description="HMAC key for signing session tokens")
    session_expire_hours: int = Field(default=24, description="Session lifetime in hours")

    # Where the browser reaches the dashboard; the OAuth redirect hangs off it
    app_base_url: str = Field(default="", description="Public base URL, no trailing slash")

    environment: str = Field(default="development", description="development | production")
    log_level: str = Field(default="INFO", description="Root log level")
    log_buffer_size: int = Field(default=100, description="Entries kept for GET /logs")

    http_timeout: float = Field(default=10.0, description="Upstream request timeout (s)")

    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=8000, description="Bind port")

    @field_validator("log_level")
    @classmethod
    def known_log_level(cls, v: str) -> str:
        level = v.upper()
        if level in LOG_LEVELS:
            return level
        logger.warning(f"Unknown LOG_LEVEL '{v}', using INFO")
        return "INFO"

    @field_validator("app_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def redirect_uri(self) -> str:
        """Must match the redirect URI registered on the Twitch application."""
        return f"{self.app_base_url}/auth/callback"

    @property
    def cors_origins(self) -> list[str]:
        # Only the dashboard itself may call with credentials
        return [self.app_base_url] if self.app_base_url else []

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
