"""
Budget threshold alerts.

Runs after an expense has been committed. An alert is a notification, not
part of the ledger: if this check fails the error is logged and the
committed transaction stands.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from money_manager.cache import CacheKey, ViewCache
from money_manager.config import LedgerSettings, get_settings
from money_manager.models.ledger import Alert, AlertType, Transaction, TransactionType
from money_manager.observability import LedgerEventLogger
from money_manager.repositories import (
    AlertRepository,
    BudgetRepository,
    CategoryRepository,
    TransactionRepository,
)
from money_manager.services.storage import StorageError


class BudgetAlertChecker:
    """Writes a budget_warning / budget_exceeded alert when a line crosses its threshold."""

    def __init__(
        self,
        budgets: BudgetRepository,
        transactions: TransactionRepository,
        categories: CategoryRepository,
        alerts: AlertRepository,
        event_logger: Optional[LedgerEventLogger] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        self._budgets = budgets
        self._transactions = transactions
        self._categories = categories
        self._alerts = alerts
        self._event_logger = event_logger or LedgerEventLogger()
        self._settings = settings or get_settings().ledger

    async def check(self, transaction: Transaction) -> Optional[Alert]:
        """
        Check the budget line the expense falls under.

        Returns:
            The alert written, or None (not an expense, no budget line,
            below threshold, or the check itself failed)
        """
        if transaction.type != TransactionType.EXPENSE:
            return None

        try:
            return await self._check(transaction)
        except StorageError as e:
            self._event_logger.log_error(
                error_type="budget_alert_check_failed",
                error_message=str(e),
                details={
                    "transaction_id": transaction.id,
                    "category_id": transaction.category_id,
                },
            )
            return None

    async def _check(self, transaction: Transaction) -> Optional[Alert]:
        month = transaction.month_key
        budget = await self._budgets.get_by_month(month)
        if budget is None:
            return None

        line = budget.line_for(transaction.category_id)
        if line is None:
            return None

        spent = await self._transactions.sum_expenses(transaction.category_id, month)
        percent = usage_percent(spent, line.planned)
        threshold = line.alert_threshold or self._settings.default_alert_threshold
        if percent < threshold:
            return None

        category = await self._categories.get(transaction.category_id)
        category_name = category.name if category else "Category"

        if percent >= 100:
            alert_type = AlertType.BUDGET_EXCEEDED
            message = f"Budget exceeded! You've used {percent}% of your {month} budget."
        else:
            alert_type = AlertType.BUDGET_WARNING
            message = f"Warning: You've used {percent}% of your {month} budget."

        alert = Alert(
            type=alert_type,
            title=f"Budget Alert: {category_name}",
            message=message,
            data={
                "month": month,
                "category_id": transaction.category_id,
                "spent": str(spent),
                "planned": str(line.planned),
                "percent": percent,
            },
        )
        await self._alerts.create(alert)

        self._event_logger.log_budget_alert(
            alert_id=alert.id,
            alert_type=alert_type.value,
            category_id=transaction.category_id,
            percent=percent,
        )
        return alert


class AlertInbox:
    """Read side of the alerts: newest first, with read flags."""

    def __init__(self, alerts: AlertRepository, cache: Optional[ViewCache] = None):
        self._alerts = alerts
        self._cache = cache or ViewCache()

    async def list_alerts(self, unread_only: bool = False) -> list[Alert]:
        alerts = await self._cache.get_or_load(CacheKey.ALERTS, self._alerts.list_all)
        if unread_only:
            return [alert for alert in alerts if not alert.is_read]
        return alerts

    async def mark_read(self, alert_id: str) -> None:
        await self._alerts.mark_read(alert_id)
        self._cache.invalidate(CacheKey.ALERTS)

    async def mark_all_read(self) -> None:
        await self._alerts.mark_all_read()
        self._cache.invalidate(CacheKey.ALERTS)

def usage_percent(spent: Decimal, planned: Decimal) -> int:
    """spent / planned as a whole percent, half rounded up; 0 when nothing is planned."""
    if planned <= 0:
        return 0
    return int((spent / planned * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
