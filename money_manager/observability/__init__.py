"""Structured logging package."""

from money_manager.observability.logger import (
    LedgerEventLogger,
    configure_logging,
    create_correlation_id,
)

__all__ = ["LedgerEventLogger", "configure_logging", "create_correlation_id"]
