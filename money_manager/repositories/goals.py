"""Goal and investment rows."""

from decimal import Decimal
from typing import Any, Optional

from money_manager.models.ledger import Goal, GoalStatus, Investment, InvestmentType, utc_now
from money_manager.repositories.base import (
    Repository,
    from_money_str,
    from_optional_money_str,
    to_date_key,
    to_money_str,
    to_timestamp,
)


class GoalRepository(Repository):

    @staticmethod
    def _row_to_goal(row: dict[str, Any]) -> Goal:
        return Goal(
            id=row["id"],
            name=row["name"],
            target_amount=from_money_str(row["target_amount"]),
            saved_amount=from_money_str(row["saved_amount"]),
            target_date=row["target_date"],
            priority=row["priority"],
            status=GoalStatus(row["status"]),
            account_id=row["account_id"],
            notes=row["notes"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    async def get(self, goal_id: str) -> Optional[Goal]:
        rows = await self._backend.query("SELECT * FROM goals WHERE id = ?", (goal_id,))
        return self._row_to_goal(rows[0]) if rows else None

    async def list_all(self) -> list[Goal]:
        rows = await self._backend.query("SELECT * FROM goals ORDER BY priority, name")
        return [self._row_to_goal(row) for row in rows]

    async def create(self, goal: Goal) -> None:
        await self._backend.execute(
            """
            INSERT INTO goals (
              id, name, target_amount, saved_amount, target_date, priority,
              status, account_id, notes, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                goal.id,
                goal.name,
                to_money_str(goal.target_amount),
                to_money_str(goal.saved_amount),
                to_date_key(goal.target_date),
                goal.priority,
                goal.status.value,
                goal.account_id,
                goal.notes,
                to_timestamp(goal.created_at),
                to_timestamp(goal.updated_at),
            ),
        )

    async def update(self, goal: Goal) -> None:
        """Write the user-editable fields; saved_amount is left to the recalculator."""
        await self._backend.execute(
            """
            UPDATE goals SET
              name = ?,
              target_amount = ?,
              target_date = ?,
              priority = ?,
              status = ?,
              account_id = ?,
              notes = ?,
              updated_at = ?
            WHERE id = ?
            """,
            (
                goal.name,
                to_money_str(goal.target_amount),
                to_date_key(goal.target_date),
                goal.priority,
                goal.status.value,
                goal.account_id,
                goal.notes,
                to_timestamp(goal.updated_at),
                goal.id,
            ),
        )

    async def delete(self, goal_id: str) -> bool:
        result = await self._backend.execute("DELETE FROM goals WHERE id = ?", (goal_id,))
        return result.changes > 0

    async def set_saved_amount(self, goal_id: str, saved_amount: Decimal) -> None:
        await self._backend.execute(
            "UPDATE goals SET saved_amount = ?, updated_at = ? WHERE id = ?",
            (to_money_str(saved_amount), to_timestamp(utc_now()), goal_id),
        )


class InvestmentRepository(Repository):

    @staticmethod
    def _row_to_investment(row: dict[str, Any]) -> Investment:
        return Investment(
            id=row["id"],
            name=row["name"],
            type=InvestmentType(row["type"]),
            account_id=row["account_id"],
            total_invested=from_money_str(row["total_invested"]),
            current_value=from_money_str(row["current_value"]),
            monthly_target=from_optional_money_str(row["monthly_target"]),
            notes=row["notes"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    async def get(self, investment_id: str) -> Optional[Investment]:
        rows = await self._backend.query(
            "SELECT * FROM investments WHERE id = ?", (investment_id,)
        )
        return self._row_to_investment(rows[0]) if rows else None

    async def list_all(self) -> list[Investment]:
        rows = await self._backend.query("SELECT * FROM investments ORDER BY name")
        return [self._row_to_investment(row) for row in rows]

    async def create(self, investment: Investment) -> None:
        await self._backend.execute(
            """
            INSERT INTO investments (
              id, name, type, account_id, total_invested, current_value,
              monthly_target, notes, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                investment.id,
                investment.name,
                investment.type.value,
                investment.account_id,
                to_money_str(investment.total_invested),
                to_money_str(investment.current_value),
                to_money_str(investment.monthly_target),
                investment.notes,
                to_timestamp(investment.created_at),
                to_timestamp(investment.updated_at),
            ),
        )

    async def update(self, investment: Investment) -> None:
        """Write the user-editable fields; total_invested is left to the recalculator."""
        await self._backend.execute(
            """
            UPDATE investments SET
              name = ?,
              type = ?,
              account_id = ?,
              current_value = ?,
              monthly_target = ?,
              notes = ?,
              updated_at = ?
            WHERE id = ?
            """,
            (
                investment.name,
                investment.type.value,
                investment.account_id,
                to_money_str(investment.current_value),
                to_money_str(investment.monthly_target),
                investment.notes,
                to_timestamp(investment.updated_at),
                investment.id,
            ),
        )

    async def delete(self, investment_id: str) -> bool:
        result = await self._backend.execute(
            "DELETE FROM investments WHERE id = ?", (investment_id,)
        )
        return result.changes > 0

    async def set_total_invested(self, investment_id: str, total_invested: Decimal) -> None:
        await self._backend.execute(
            "UPDATE investments SET total_invested = ?, updated_at = ? WHERE id = ?",
            (to_money_str(total_invested), to_timestamp(utc_now()), investment_id),
        )
