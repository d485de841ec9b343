"""
Ledger Event Models for Money Manager

Every balance-affecting action emits one structured event.
This provides:
1. Traceability of what the ledger did and why
2. Debugging information when a recurring occurrence fails
3. A correlation id that ties one scheduler pass together

DESIGN DECISION: Events are logged, not stored. The ledger is not an
audit-trail system; the log stream is the record.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from money_manager.models.ledger import utc_now


class LedgerEventType(str, Enum):
    """
    Types of events the ledger emits.

    Each mutation path and each scheduler step has its own type.
    """
    # Accounts
    ACCOUNT_CREATED = "account_created"
    ACCOUNT_UPDATED = "account_updated"
    ACCOUNT_DELETED = "account_deleted"

    # Transactions
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    TRANSACTION_REJECTED = "transaction_rejected"

    # Goals, investments, debts
    TARGET_CREATED = "target_created"
    TARGET_UPDATED = "target_updated"
    TARGET_DELETED = "target_deleted"

    # Recurring
    SCHEDULER_PASS_STARTED = "scheduler_pass_started"
    SCHEDULER_PASS_COMPLETED = "scheduler_pass_completed"
    OCCURRENCE_MATERIALIZED = "occurrence_materialized"
    OCCURRENCE_FAILED = "occurrence_failed"
    OCCURRENCE_SKIPPED = "occurrence_skipped"
    SCHEDULE_DISABLED = "schedule_disabled"

    # Side effects
    BUDGET_ALERT_RAISED = "budget_alert_raised"

    # System events
    SYSTEM_ERROR = "system_error"


class EventSeverity(str, Enum):
    """Severity level for ledger events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class LedgerEvent(BaseModel):
    """
    A single ledger event.

    Every significant action creates one of these.
    """

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    event_type: LedgerEventType
    severity: EventSeverity = EventSeverity.INFO

    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'account', 'recurring')"
    )
    entity_id: Optional[str] = None

    correlation_id: Optional[UUID] = Field(
        default=None,
        description="Ties related events together (e.g., one scheduler pass)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action (vs. the scheduler)?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class LedgerEventBuilder:
    """
    Helper class to build ledger events with common patterns.

    Usage:
        event = LedgerEventBuilder.transaction_created(txn_id, "expense", amount)
        event = LedgerEventBuilder.occurrence_failed(rec_id, run_date, reason, correlation_id)
    """

    @staticmethod
    def account_changed(
        event_type: LedgerEventType,
        account_id: str,
        account_type: str,
    ) -> LedgerEvent:
        verb = event_type.value.split("_", 1)[1]
        return LedgerEvent(
            event_type=event_type,
            entity_type="account",
            entity_id=account_id,
            description=f"Account {verb}: {account_type}",
            details={"account_type": account_type},
            is_user_action=True,
        )

    @staticmethod
    def target_changed(
        event_type: LedgerEventType,
        target_kind: str,
        target_id: str,
    ) -> LedgerEvent:
        verb = event_type.value.split("_", 1)[1]
        return LedgerEvent(
            event_type=event_type,
            entity_type=target_kind,
            entity_id=target_id,
            description=f"{target_kind.capitalize()} {verb}",
            is_user_action=True,
        )

    @staticmethod
    def transaction_changed(
        event_type: LedgerEventType,
        transaction_id: str,
        transaction_type: str,
        amount: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        verb = event_type.value.split("_", 1)[1]
        return LedgerEvent(
            event_type=event_type,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction {verb}: {transaction_type} {amount}",
            details={
                "transaction_type": transaction_type,
                "amount": str(amount),
            },
            is_user_action=correlation_id is None,
        )

    @staticmethod
    def transaction_rejected(
        transaction_type: str,
        amount: Decimal,
        error_code: str,
        error_message: str,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.TRANSACTION_REJECTED,
            severity=EventSeverity.WARNING,
            entity_type="transaction",
            description=f"Transaction rejected: {error_code}",
            details={
                "transaction_type": transaction_type,
                "amount": str(amount),
            },
            error_code=error_code,
            error_message=error_message,
            is_user_action=True,
        )

    @staticmethod
    def scheduler_pass_started(
        today: date,
        due_count: int,
        correlation_id: UUID,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.SCHEDULER_PASS_STARTED,
            correlation_id=correlation_id,
            description=f"Recurring pass for {today.isoformat()}: {due_count} due schedules",
            details={"today": today.isoformat(), "due_count": due_count},
        )

    @staticmethod
    def scheduler_pass_completed(
        today: date,
        materialized: int,
        failed: int,
        correlation_id: UUID,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.SCHEDULER_PASS_COMPLETED,
            severity=EventSeverity.WARNING if failed else EventSeverity.INFO,
            correlation_id=correlation_id,
            description=(
                f"Recurring pass for {today.isoformat()} done: "
                f"{materialized} materialized, {failed} failed"
            ),
            details={
                "today": today.isoformat(),
                "materialized": materialized,
                "failed": failed,
            },
        )

    @staticmethod
    def occurrence_materialized(
        recurring_id: str,
        run_date: date,
        transaction_id: str,
        correlation_id: UUID,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.OCCURRENCE_MATERIALIZED,
            entity_type="recurring",
            entity_id=recurring_id,
            correlation_id=correlation_id,
            description=f"Occurrence {run_date.isoformat()} materialized",
            details={
                "run_date": run_date.isoformat(),
                "transaction_id": transaction_id,
            },
        )

    @staticmethod
    def occurrence_failed(
        recurring_id: str,
        run_date: date,
        error_code: str,
        reason: str,
        attempts: int,
        correlation_id: UUID,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.OCCURRENCE_FAILED,
            severity=EventSeverity.WARNING,
            entity_type="recurring",
            entity_id=recurring_id,
            correlation_id=correlation_id,
            description=f"Occurrence {run_date.isoformat()} failed (attempt {attempts})",
            details={"run_date": run_date.isoformat(), "attempts": attempts},
            error_code=error_code,
            error_message=reason,
        )

    @staticmethod
    def occurrence_skipped(
        recurring_id: str,
        run_date: date,
        reason: Optional[str],
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.OCCURRENCE_SKIPPED,
            entity_type="recurring",
            entity_id=recurring_id,
            description=f"Occurrence {run_date.isoformat()} skipped",
            details={
                "run_date": run_date.isoformat(),
                "reason": reason or "No reason provided",
            },
            is_user_action=True,
        )

    @staticmethod
    def schedule_disabled(
        recurring_id: str,
        run_date: date,
        attempts: int,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.SCHEDULE_DISABLED,
            severity=EventSeverity.ERROR,
            entity_type="recurring",
            entity_id=recurring_id,
            correlation_id=correlation_id,
            description=f"Schedule disabled after {attempts} failed attempts",
            details={"run_date": run_date.isoformat(), "attempts": attempts},
        )

    @staticmethod
    def budget_alert_raised(
        alert_id: str,
        alert_type: str,
        category_id: str,
        percent: int,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.BUDGET_ALERT_RAISED,
            severity=EventSeverity.WARNING,
            entity_type="alert",
            entity_id=alert_id,
            description=f"Budget alert: {category_id} at {percent}%",
            details={
                "alert_type": alert_type,
                "category_id": category_id,
                "percent": percent,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.SYSTEM_ERROR,
            severity=EventSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
