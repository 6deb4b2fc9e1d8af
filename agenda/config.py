# agenda/config.py

from __future__ import annotations

import logging
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

log = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Project-wide configuration, read from environment variables.
    Pydantic v2 + pydantic-settings.

    ``DATABASE_URL`` and ``JWT_SECRET_KEY`` have no defaults on purpose:
    the process refuses to start instead of running with a guessed value.
    """
    model_config = SettingsConfigDict(
        case_sensitive=False,
        extra="ignore",
    )

    # --- Core ---
    ENVIRONMENT: str = Field("dev", description="Application environment (dev, test, prod)")
    LOG_LEVEL: str = Field("INFO", description="Root logging level")

    # --- Database ---
    DATABASE_URL: str = Field(..., description="Async database URL (postgresql+asyncpg://... or sqlite+aiosqlite://...)")
    DB_ISOLATION_LEVEL: str = Field("SERIALIZABLE", description="Transaction isolation level for PostgreSQL engines")

    # --- Redis / Celery ---
    REDIS_URL: str = Field("redis://redis:6379/0", description="URL for Redis connection")
    CELERY_BROKER_URL: Optional[str] = Field(None, description="Celery broker URL (defaults to REDIS_URL)")
    CELERY_RESULT_BACKEND: Optional[str] = Field(None, description="Celery result backend URL (defaults to REDIS_URL)")

    # --- JWT ---
    JWT_SECRET_KEY: str = Field(..., description="Secret key for signing JWT tokens")
    JWT_ALGORITHM: str = Field("HS256", description="Algorithm for JWT signing")
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(60 * 24 * 7, description="JWT access token lifetime in minutes")

    # --- Scheduling ---
    RECURRENCE_ENGINE: str = Field("dateutil", description="Recurrence rule engine ('dateutil')")
    CONFLICT_CHECK_OCCURRENCES: bool = Field(
        True, description="Also check new bookings against expanded occurrences of recurring series"
    )
    DEFAULT_CALENDAR_NAME: str = Field("My Calendar", description="Name of the calendar created at registration")

    # --- Reminders ---
    REMINDER_POLL_INTERVAL_SECONDS: int = Field(60, ge=1, description="Beat interval of the reminder poller")

    @model_validator(mode='after')
    def set_celery_defaults(self) -> 'Settings':
        if self.CELERY_BROKER_URL is None:
            log.debug("Setting CELERY_BROKER_URL default from REDIS_URL")
            self.CELERY_BROKER_URL = self.REDIS_URL
        if self.CELERY_RESULT_BACKEND is None:
            log.debug("Setting CELERY_RESULT_BACKEND default from REDIS_URL")
            self.CELERY_RESULT_BACKEND = self.REDIS_URL
        return self


try:
    settings = Settings()
    log.info("Settings loaded successfully for ENVIRONMENT=%s", settings.ENVIRONMENT)
    log.debug("Loaded settings: DB URL=%s..., Redis URL=%s, recurrence engine=%s",
              settings.DATABASE_URL[:25],
              settings.REDIS_URL,
              settings.RECURRENCE_ENGINE)
except Exception:
    log.exception("Failed to instantiate Settings.")
    raise
