"""
Configuration Management for Money Manager

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see which knobs the ledger exposes and
ensures every value is validated at startup.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Local SQLite database configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MONEY_DB_",
        extra="ignore"
    )

    path: str = Field(
        default="money_manager.db",
        description="Path to the SQLite database file (':memory:' for tests)"
    )
    busy_timeout_seconds: float = Field(
        default=5.0,
        ge=0.0,
        le=120.0,
        description="How long SQLite waits on a locked database"
    )
    connect_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts made to open the database before giving up"
    )


class LedgerSettings(BaseSettings):
    """Ledger engine configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        extra="ignore"
    )

    transfer_category_id: str = Field(
        default="cat_transfer",
        min_length=1,
        description="Reserved category every transfer is filed under"
    )
    default_alert_threshold: int = Field(
        default=80,
        ge=1,
        le=100,
        description="Budget usage percent that triggers a warning alert"
    )
    currency_symbol: str = Field(
        default="₹",
        description="Symbol used when printing amounts"
    )


class SchedulerSettings(BaseSettings):
    """Recurring scheduler configuration."""

    model_config = SettingsConfigDict(
        env_prefix="RECURRING_",
        extra="ignore"
    )

    run_on_startup: bool = Field(
        default=True,
        description="Run a catch-up pass when the app starts"
    )
    # None keeps retrying a failed occurrence on every pass
    max_failed_attempts: Optional[int] = Field(
        default=None,
        ge=1,
        description="Disable a schedule after this many failed attempts on one date"
    )


class LoggingSettings(BaseSettings):
    """Structured logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        extra="ignore"
    )

    level: str = Field(
        default="INFO",
        description="Minimum log level"
    )
    json_output: bool = Field(
        default=True,
        description="Render logs as JSON (False renders for the console)"
    )

    @field_validator('level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Only accept standard logging level names."""
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def database(self) -> DatabaseSettings:
        return DatabaseSettings()

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def scheduler(self) -> SchedulerSettings:
        return SchedulerSettings()

    @property
    def logging(self) -> LoggingSettings:
        return LoggingSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("database", "ledger", "scheduler", "logging"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
