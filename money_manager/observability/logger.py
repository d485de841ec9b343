"""
Ledger Event Logger

DESIGN DECISION: Every balance-affecting action is logged as a structured
event. This provides:
1. Traceability of every mutation and scheduler occurrence
2. Debugging capability when a recurring schedule keeps failing
3. Correlation ids that group one scheduler pass

The logger writes to the structlog stream only. Nothing here can fail a
ledger operation.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from money_manager.config import LoggingSettings, get_settings
from money_manager.models.events import (
    EventSeverity,
    LedgerEvent,
    LedgerEventBuilder,
    LedgerEventType,
)


def configure_logging(settings: Optional[LoggingSettings] = None) -> None:
    """
    Configure structlog on top of the stdlib logging module.

    Safe to call more than once; the last call wins.
    """
    settings = settings or get_settings().logging

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, settings.level),
        force=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.json_output
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class LedgerEventLogger:
    """
    Central ledger event logging service.

    Routes each LedgerEvent to the structured log at the event's severity.
    """

    def __init__(self, logger_name: str = "money_manager.ledger"):
        self._logger = structlog.get_logger(logger_name)

    def log(self, event: LedgerEvent) -> None:
        """Log a ledger event at its own severity."""
        log_dict = event.to_log_dict()

        if event.severity in (EventSeverity.ERROR, EventSeverity.CRITICAL):
            self._logger.error("ledger_event", **log_dict)
        elif event.severity == EventSeverity.WARNING:
            self._logger.warning("ledger_event", **log_dict)
        elif event.severity == EventSeverity.DEBUG:
            self._logger.debug("ledger_event", **log_dict)
        else:
            self._logger.info("ledger_event", **log_dict)

    def log_account_changed(
        self,
        event_type: LedgerEventType,
        account_id: str,
        account_type: str,
    ) -> None:
        self.log(LedgerEventBuilder.account_changed(event_type, account_id, account_type))

    def log_target_changed(
        self,
        event_type: LedgerEventType,
        target_kind: str,
        target_id: str,
    ) -> None:
        self.log(LedgerEventBuilder.target_changed(event_type, target_kind, target_id))

    def log_transaction_changed(
        self,
        event_type: LedgerEventType,
        transaction_id: str,
        transaction_type: str,
        amount: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(LedgerEventBuilder.transaction_changed(
            event_type=event_type,
            transaction_id=transaction_id,
            transaction_type=transaction_type,
            amount=amount,
            correlation_id=correlation_id,
        ))

    def log_transaction_rejected(
        self,
        transaction_type: str,
        amount: Decimal,
        error: Exception,
    ) -> None:
        """Log a manual mutation that the ledger refused."""
        self.log(LedgerEventBuilder.transaction_rejected(
            transaction_type=transaction_type,
            amount=amount,
            error_code=type(error).__name__,
            error_message=str(error),
        ))

    def log_pass_started(self, today: date, due_count: int, correlation_id: UUID) -> None:
        self.log(LedgerEventBuilder.scheduler_pass_started(today, due_count, correlation_id))

    def log_pass_completed(
        self,
        today: date,
        materialized: int,
        failed: int,
        correlation_id: UUID,
    ) -> None:
        self.log(LedgerEventBuilder.scheduler_pass_completed(
            today, materialized, failed, correlation_id
        ))

    def log_occurrence_materialized(
        self,
        recurring_id: str,
        run_date: date,
        transaction_id: str,
        correlation_id: UUID,
    ) -> None:
        self.log(LedgerEventBuilder.occurrence_materialized(
            recurring_id, run_date, transaction_id, correlation_id
        ))

    def log_occurrence_failed(
        self,
        recurring_id: str,
        run_date: date,
        error: Exception,
        attempts: int,
        correlation_id: UUID,
    ) -> None:
        self.log(LedgerEventBuilder.occurrence_failed(
            recurring_id=recurring_id,
            run_date=run_date,
            error_code=type(error).__name__,
            reason=str(error),
            attempts=attempts,
            correlation_id=correlation_id,
        ))

    def log_occurrence_skipped(
        self,
        recurring_id: str,
        run_date: date,
        reason: Optional[str],
    ) -> None:
        self.log(LedgerEventBuilder.occurrence_skipped(recurring_id, run_date, reason))

    def log_schedule_disabled(
        self,
        recurring_id: str,
        run_date: date,
        attempts: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(LedgerEventBuilder.schedule_disabled(
            recurring_id, run_date, attempts, correlation_id
        ))

    def log_budget_alert(
        self,
        alert_id: str,
        alert_type: str,
        category_id: str,
        percent: int,
    ) -> None:
        self.log(LedgerEventBuilder.budget_alert_raised(
            alert_id, alert_type, category_id, percent
        ))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        self.log(LedgerEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a scheduler pass and pass it to every
    occurrence processed in that pass.
    """
    return uuid4()
