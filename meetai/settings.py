from __future__ import annotations

import logging
import sys

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Core
    ENV: str = Field(default="dev")  # dev|prod
    LOG_LEVEL: str = Field(default="INFO")  # INFO|DEBUG
    LOG_SQL: bool = Field(default=False)
    BASE_URL: str = Field(default="http://localhost:8000")

    # Dev-only
    ALLOW_DEBUG_ENDPOINTS: bool = Field(default=False)

    # Database
    DATABASE_URL: str = Field(default="sqlite:///./meetai.db")
    DB_AUTO_CREATE: bool = Field(default=True)

    # Redis / Queue
    REDIS_URL: str = Field(default="redis://redis:6379/0")
    RQ_QUEUE_NAME: str = Field(default="default")

    # Stream (video + chat share one app)
    STREAM_API_KEY: str = Field(default="")
    STREAM_API_SECRET: str = Field(default="")
    STREAM_BASE_URL: str = Field(default="https://chat.stream-io-api.com")
    STREAM_REALTIME_URL: str = Field(default="wss://video.stream-io-api.com/video/connect_agent")
    STREAM_CALL_TYPE: str = Field(default="default")
    STREAM_CHANNEL_TYPE: str = Field(default="messaging")

    # LLM (OpenAI)
    OPENAI_API_KEY: str = Field(default="")
    OPENAI_BASE_URL: str = Field(default="https://api.openai.com/v1")
    OPENAI_CHAT_MODEL: str = Field(default="gpt-4o-mini")
    OPENAI_REALTIME_MODEL: str = Field(default="gpt-4o-realtime-preview")
    CHAT_HISTORY_LIMIT: int = Field(default=5)

    # Avatars
    AVATAR_BASE_URL: str = Field(default="https://api.dicebear.com/9.x")

    def _config_problems(self) -> tuple[list[str], list[str]]:
        errors: list[str] = []
        warnings: list[str] = []
        strict = self.ENV != "dev"

        for key in ("DATABASE_URL", "REDIS_URL", "STREAM_BASE_URL", "STREAM_REALTIME_URL"):
            if not getattr(self, key):
                errors.append(f"{key} is required")

        if self.STREAM_REALTIME_URL and not self.STREAM_REALTIME_URL.startswith(("ws://", "wss://")):
            errors.append("STREAM_REALTIME_URL must be a ws:// or wss:// URL")
        if self.CHAT_HISTORY_LIMIT < 0:
            errors.append("CHAT_HISTORY_LIMIT must be >= 0")

        # Webhook auth fails closed without these; agent connect and chat replies need the OpenAI key.
        credentials = {
            "STREAM_API_KEY": "every webhook will be rejected",
            "STREAM_API_SECRET": "every webhook will be rejected",
            "OPENAI_API_KEY": "agent connection, chat follow-up and summaries will fail",
        }
        for key, effect in credentials.items():
            if getattr(self, key):
                continue
            if strict:
                errors.append(f"{key} is required when ENV is not dev")
            else:
                warnings.append(f"{key} not set - {effect}")

        if strict and self.ALLOW_DEBUG_ENDPOINTS:
            warnings.append("ALLOW_DEBUG_ENDPOINTS is on outside dev")

        return errors, warnings

    def validate_configuration(self) -> list[str]:
        """ERROR:/WARNING: prefixed messages; ERROR entries block startup."""
        errors, warnings = self._config_problems()
        return [f"ERROR: {e}" for e in errors] + [f"WARNING: {w}" for w in warnings]

    def validate_and_fail_fast(self) -> None:
        errors, warnings = self._config_problems()
        for warning in warnings:
            logger.warning("Config: %s", warning)
        if errors:
            for error in errors:
                logger.error("Config: %s", error)
            logger.error("Refusing to start with %d configuration error(s). env=%s", len(errors), self.ENV)
            sys.exit(1)
        logger.info("Configuration OK. env=%s debug_endpoints=%s", self.ENV, self.ALLOW_DEBUG_ENDPOINTS)


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
