"""Ledger engine package."""

from money_manager.ledger.alerts import AlertInbox, BudgetAlertChecker, usage_percent
from money_manager.ledger.engine import BalanceDirection, LedgerEngine, balance_effects
from money_manager.ledger.hooks import AggregateRecalculator, ContributionHook
from money_manager.ledger.targets import TargetManager

__all__ = [
    "AggregateRecalculator",
    "AlertInbox",
    "BalanceDirection",
    "BudgetAlertChecker",
    "ContributionHook",
    "LedgerEngine",
    "TargetManager",
    "balance_effects",
    "usage_percent",
]
