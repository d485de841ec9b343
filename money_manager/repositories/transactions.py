"""Transaction rows."""

from datetime import date
from decimal import Decimal
from typing import Any, Optional

from money_manager.models.ledger import Transaction, TransactionType
from money_manager.repositories.base import (
    Repository,
    from_money_str,
    to_date_key,
    to_money_str,
    to_timestamp,
)


class TransactionRepository(Repository):
    """CRUD over transactions, queryable by month and date range."""

    @staticmethod
    def _row_to_transaction(row: dict[str, Any]) -> Transaction:
        return Transaction(
            id=row["id"],
            type=TransactionType(row["type"]),
            amount=from_money_str(row["amount"]),
            date=row["date"],
            category_id=row["category_id"],
            from_account_id=row["from_account_id"],
            to_account_id=row["to_account_id"],
            notes=row["notes"],
            goal_id=row["goal_id"],
            investment_id=row["investment_id"],
            debt_id=row["debt_id"],
            recurring_id=row["recurring_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def _rows(self, rows: list[dict[str, Any]]) -> list[Transaction]:
        return [self._row_to_transaction(row) for row in rows]

    async def get(self, transaction_id: str) -> Optional[Transaction]:
        rows = await self._backend.query(
            "SELECT * FROM transactions WHERE id = ?", (transaction_id,)
        )
        return self._row_to_transaction(rows[0]) if rows else None

    async def list_all(self) -> list[Transaction]:
        """Newest first."""
        rows = await self._backend.query(
            "SELECT * FROM transactions ORDER BY date DESC, created_at DESC"
        )
        return self._rows(rows)

    async def list_chronological(self) -> list[Transaction]:
        """Oldest first, in the order the effects were applied."""
        rows = await self._backend.query(
            "SELECT * FROM transactions ORDER BY date ASC, created_at ASC"
        )
        return self._rows(rows)

    async def list_by_month(self, month: str) -> list[Transaction]:
        """month is a YYYY-MM key."""
        rows = await self._backend.query(
            """
            SELECT * FROM transactions
            WHERE substr(date, 1, 7) = ?
            ORDER BY date DESC, created_at DESC
            """,
            (month,),
        )
        return self._rows(rows)

    async def list_by_date_range(self, start: date, end: date) -> list[Transaction]:
        """Both ends inclusive."""
        rows = await self._backend.query(
            """
            SELECT * FROM transactions
            WHERE date >= ? AND date <= ?
            ORDER BY date DESC, created_at DESC
            """,
            (to_date_key(start), to_date_key(end)),
        )
        return self._rows(rows)

    async def create(self, transaction: Transaction) -> None:
        await self._backend.execute(
            """
            INSERT INTO transactions (
              id, type, amount, date, category_id, from_account_id, to_account_id,
              notes, goal_id, investment_id, debt_id, recurring_id, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                transaction.id,
                transaction.type.value,
                to_money_str(transaction.amount),
                to_date_key(transaction.date),
                transaction.category_id,
                transaction.from_account_id,
                transaction.to_account_id,
                transaction.notes,
                transaction.goal_id,
                transaction.investment_id,
                transaction.debt_id,
                transaction.recurring_id,
                to_timestamp(transaction.created_at),
                to_timestamp(transaction.updated_at),
            ),
        )

    async def update(self, transaction: Transaction) -> None:
        await self._backend.execute(
            """
            UPDATE transactions
            SET type = ?,
                amount = ?,
                date = ?,
                category_id = ?,
                from_account_id = ?,
                to_account_id = ?,
                notes = ?,
                goal_id = ?,
                investment_id = ?,
                debt_id = ?,
                recurring_id = ?,
                updated_at = ?
            WHERE id = ?
            """,
            (
                transaction.type.value,
                to_money_str(transaction.amount),
                to_date_key(transaction.date),
                transaction.category_id,
                transaction.from_account_id,
                transaction.to_account_id,
                transaction.notes,
                transaction.goal_id,
                transaction.investment_id,
                transaction.debt_id,
                transaction.recurring_id,
                to_timestamp(transaction.updated_at),
                transaction.id,
            ),
        )

    async def delete(self, transaction_id: str) -> bool:
        result = await self._backend.execute(
            "DELETE FROM transactions WHERE id = ?", (transaction_id,)
        )
        return result.changes > 0

    async def count(self) -> int:
        rows = await self._backend.query("SELECT COUNT(*) AS count FROM transactions")
        return rows[0]["count"]

    # =========================================================================
    # Sums (done in Decimal, never in SQL)
    # =========================================================================

    async def _sum_amounts(self, sql: str, params: tuple) -> Decimal:
        rows = await self._backend.query(sql, params)
        return sum((from_money_str(row["amount"]) for row in rows), Decimal("0"))

    async def sum_expenses(self, category_id: str, month: str) -> Decimal:
        """Total spent in a category during a YYYY-MM month."""
        return await self._sum_amounts(
            """
            SELECT amount FROM transactions
            WHERE type = 'expense'
              AND category_id = ?
              AND substr(date, 1, 7) = ?
            """,
            (category_id, month),
        )

    async def sum_goal_contributions(self, goal_id: str) -> Decimal:
        return await self._sum_amounts(
            "SELECT amount FROM transactions WHERE type = 'income' AND goal_id = ?",
            (goal_id,),
        )

    async def sum_investment_contributions(self, investment_id: str) -> Decimal:
        return await self._sum_amounts(
            "SELECT amount FROM transactions WHERE type = 'income' AND investment_id = ?",
            (investment_id,),
        )

    async def sum_debt_payments(self, debt_id: str) -> Decimal:
        return await self._sum_amounts(
            "SELECT amount FROM transactions WHERE type = 'expense' AND debt_id = ?",
            (debt_id,),
        )
