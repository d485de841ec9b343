"""Debt rows."""

from decimal import Decimal
from typing import Any, Optional

from money_manager.models.ledger import Debt, DebtType, utc_now
from money_manager.repositories.base import (
    Repository,
    from_money_str,
    from_optional_money_str,
    to_date_key,
    to_money_str,
    to_timestamp,
)


class DebtRepository(Repository):
    """
    Loans and other borrowings.

    outstanding_amount is derived from the linked expense payments and is
    only written through set_outstanding_amount().
    """

    @staticmethod
    def _row_to_debt(row: dict[str, Any]) -> Debt:
        return Debt(
            id=row["id"],
            name=row["name"],
            type=DebtType(row["type"]),
            principal_amount=from_money_str(row["principal_amount"]),
            outstanding_amount=from_money_str(row["outstanding_amount"]),
            interest_rate=from_money_str(row["interest_rate"]),
            emi_amount=from_optional_money_str(row["emi_amount"]),
            emi_day=row["emi_day"],
            start_date=row["start_date"],
            end_date=row["end_date"],
            account_id=row["account_id"],
            notes=row["notes"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    async def get(self, debt_id: str) -> Optional[Debt]:
        rows = await self._backend.query("SELECT * FROM debts WHERE id = ?", (debt_id,))
        return self._row_to_debt(rows[0]) if rows else None

    async def list_all(self) -> list[Debt]:
        rows = await self._backend.query("SELECT * FROM debts ORDER BY start_date, name")
        return [self._row_to_debt(row) for row in rows]

    async def create(self, debt: Debt) -> None:
        await self._backend.execute(
            """
            INSERT INTO debts (
              id, name, type, principal_amount, outstanding_amount, interest_rate,
              emi_amount, emi_day, start_date, end_date, account_id, notes,
              created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                debt.id,
                debt.name,
                debt.type.value,
                to_money_str(debt.principal_amount),
                to_money_str(debt.outstanding_amount),
                to_money_str(debt.interest_rate),
                to_money_str(debt.emi_amount),
                debt.emi_day,
                to_date_key(debt.start_date),
                to_date_key(debt.end_date),
                debt.account_id,
                debt.notes,
                to_timestamp(debt.created_at),
                to_timestamp(debt.updated_at),
            ),
        )

    async def update(self, debt: Debt) -> None:
        await self._backend.execute(
            """
            UPDATE debts SET
              name = ?,
              type = ?,
              principal_amount = ?,
              interest_rate = ?,
              emi_amount = ?,
              emi_day = ?,
              start_date = ?,
              end_date = ?,
              account_id = ?,
              notes = ?,
              updated_at = ?
            WHERE id = ?
            """,
            (
                debt.name,
                debt.type.value,
                to_money_str(debt.principal_amount),
                to_money_str(debt.interest_rate),
                to_money_str(debt.emi_amount),
                debt.emi_day,
                to_date_key(debt.start_date),
                to_date_key(debt.end_date),
                debt.account_id,
                debt.notes,
                to_timestamp(debt.updated_at),
                debt.id,
            ),
        )

    async def delete(self, debt_id: str) -> bool:
        result = await self._backend.execute("DELETE FROM debts WHERE id = ?", (debt_id,))
        return result.changes > 0

    async def set_outstanding_amount(self, debt_id: str, outstanding: Decimal) -> None:
        await self._backend.execute(
            "UPDATE debts SET outstanding_amount = ?, updated_at = ? WHERE id = ?",
            (to_money_str(outstanding), to_timestamp(utc_now()), debt_id),
        )

    async def total_outstanding(self) -> Decimal:
        rows = await self._backend.query("SELECT outstanding_amount FROM debts")
        return sum((from_money_str(row["outstanding_amount"]) for row in rows), Decimal("0"))
