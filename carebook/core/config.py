# carebook/core/config.py
"""
Application settings for the CareBook scheduling core.

Values are read from the environment (and a local ``.env`` file when present).
Field names map to upper-case environment variables, e.g. ``DATABASE_URL``.
"""

from decimal import Decimal
import logging
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "test", "staging", "production"] = Field(
        default="development",
        description="Deployment environment name",
    )

    # Database
    database_url: str = Field(
        default="sqlite:///./carebook.db",
        description="SQLAlchemy database URL",
    )
    database_echo: bool = Field(default=False, description="Echo SQL statements to the log")
    sqlite_busy_timeout_seconds: float = Field(
        default=30.0,
        description="How long a SQLite writer waits for the database lock",
    )

    # Lock contention handling (never applied to business errors)
    lock_retry_attempts: int = Field(default=5, ge=1, le=50)
    lock_retry_backoff_seconds: float = Field(default=0.05, ge=0)

    # Slot defaults used when a caregiver omits them
    default_hourly_rate: Decimal = Field(default=Decimal("25.00"), gt=0)
    default_slot_capacity: int = Field(default=3, ge=1)

    # API / logging
    api_prefix: str = "/api/v1"
    log_level: str = "INFO"
    slow_operation_threshold_seconds: float = 1.0

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


settings = Settings()
