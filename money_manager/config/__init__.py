"""Configuration package."""

from money_manager.config.settings import (
    DatabaseSettings,
    LedgerSettings,
    LoggingSettings,
    SchedulerSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "DatabaseSettings",
    "LedgerSettings",
    "LoggingSettings",
    "SchedulerSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
