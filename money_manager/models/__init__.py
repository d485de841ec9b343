"""
Data Models Package

This package contains all Pydantic models used by the ledger core.
All data flowing through the system must conform to these schemas.
"""

from money_manager.models.ledger import (
    LIABILITY_ACCOUNT_TYPES,
    Account,
    AccountIntent,
    AccountType,
    Alert,
    AlertType,
    Budget,
    BudgetLine,
    BudgetStatus,
    Category,
    CategorySpend,
    CategoryType,
    Debt,
    DebtType,
    FailedOutcome,
    Goal,
    GoalStatus,
    Investment,
    InvestmentType,
    MonthlyStats,
    Recurring,
    RecurringFrequency,
    RecurringIntent,
    RecurringRun,
    RunOutcome,
    RunStatus,
    SchedulerReport,
    SkippedOutcome,
    SuccessOutcome,
    Transaction,
    TransactionIntent,
    TransactionType,
    new_id,
    utc_now,
)
from money_manager.models.events import (
    EventSeverity,
    LedgerEvent,
    LedgerEventBuilder,
    LedgerEventType,
)

__all__ = [
    # Ledger models
    "LIABILITY_ACCOUNT_TYPES",
    "Account",
    "AccountIntent",
    "AccountType",
    "Alert",
    "AlertType",
    "Budget",
    "BudgetLine",
    "BudgetStatus",
    "Category",
    "CategorySpend",
    "CategoryType",
    "Debt",
    "DebtType",
    "FailedOutcome",
    "Goal",
    "GoalStatus",
    "Investment",
    "InvestmentType",
    "MonthlyStats",
    "Recurring",
    "RecurringFrequency",
    "RecurringIntent",
    "RecurringRun",
    "RunOutcome",
    "RunStatus",
    "SchedulerReport",
    "SkippedOutcome",
    "SuccessOutcome",
    "Transaction",
    "TransactionIntent",
    "TransactionType",
    "new_id",
    "utc_now",
    # Event models
    "EventSeverity",
    "LedgerEvent",
    "LedgerEventBuilder",
    "LedgerEventType",
]
