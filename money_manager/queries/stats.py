"""
Aggregate Views

DESIGN DECISION: Every number shown to the user is computed from stored
rows, never estimated. Views are cached and the ledger invalidates them
on every mutation, so a view is either fresh or absent.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from money_manager.cache import CacheKey, ViewCache
from money_manager.models.ledger import (
    AccountType,
    CategorySpend,
    MonthlyStats,
    Transaction,
    TransactionType,
)
from money_manager.repositories import AccountRepository, DebtRepository, TransactionRepository
from money_manager.services.storage import StorageBackend


def summarize(transactions: list[Transaction]) -> MonthlyStats:
    """Income, expense and transfer totals plus spend per category."""
    total_income = Decimal("0")
    total_expense = Decimal("0")
    total_transfers = Decimal("0")
    by_category: dict[str, Decimal] = {}

    for transaction in transactions:
        if transaction.type == TransactionType.INCOME:
            total_income += transaction.amount
        elif transaction.type == TransactionType.EXPENSE:
            total_expense += transaction.amount
            by_category[transaction.category_id] = (
                by_category.get(transaction.category_id, Decimal("0")) + transaction.amount
            )
        else:
            total_transfers += transaction.amount

    breakdown = sorted(
        (CategorySpend(category_id=cid, amount=amount) for cid, amount in by_category.items()),
        key=lambda spend: (-spend.amount, spend.category_id),
    )

    return MonthlyStats(
        total_income=total_income,
        total_expense=total_expense,
        total_transfers=total_transfers,
        surplus=total_income - total_expense,
        category_breakdown=breakdown,
    )


class StatsQueries:
    """
    Read-side aggregates over the ledger.

    GUARANTEES:
    - Only returns totals of real stored rows
    - Transfers move money between accounts and never count as spend
    """

    def __init__(self, backend: StorageBackend, cache: Optional[ViewCache] = None):
        self._accounts = AccountRepository(backend)
        self._transactions = TransactionRepository(backend)
        self._debts = DebtRepository(backend)
        self._cache = cache or ViewCache()

    async def monthly_stats(self, month: str) -> MonthlyStats:
        """Stats for a YYYY-MM month."""

        async def load() -> MonthlyStats:
            return summarize(await self._transactions.list_by_month(month))

        return await self._cache.get_or_load(CacheKey.STATS, load, variant=("month", month))

    async def date_range_stats(self, start: date, end: date) -> MonthlyStats:
        """Stats for start..end, both inclusive."""

        async def load() -> MonthlyStats:
            return summarize(await self._transactions.list_by_date_range(start, end))

        return await self._cache.get_or_load(
            CacheKey.STATS, load, variant=("range", start, end)
        )

    async def net_worth(self) -> Decimal:
        """Sum of all balances; liabilities are already negative."""

        async def load() -> Decimal:
            accounts = await self._accounts.list_all()
            return sum((account.balance for account in accounts), Decimal("0"))

        return await self._cache.get_or_load(CacheKey.STATS, load, variant="net_worth")

    async def total_credit_due(self) -> Decimal:
        """Outstanding across all credit cards."""

        async def load() -> Decimal:
            accounts = await self._accounts.list_all()
            return sum(
                (a.outstanding for a in accounts if a.type == AccountType.CREDIT_CARD),
                Decimal("0"),
            )

        return await self._cache.get_or_load(CacheKey.STATS, load, variant="credit_due")

    async def total_debt_outstanding(self) -> Decimal:
        """What is still owed across all tracked debts."""
        return await self._cache.get_or_load(
            CacheKey.STATS, self._debts.total_outstanding, variant="debt_outstanding"
        )
