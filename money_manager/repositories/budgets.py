"""Budget and alert rows."""

import json
from typing import Any, Optional

from money_manager.models.ledger import Alert, AlertType, Budget, BudgetLine, BudgetStatus
from money_manager.repositories.base import (
    Repository,
    from_bool_int,
    from_money_str,
    to_bool_int,
    to_money_str,
    to_timestamp,
)


class BudgetRepository(Repository):
    """One budget per YYYY-MM month, each with its category lines."""

    @staticmethod
    def _row_to_line(row: dict[str, Any]) -> BudgetLine:
        return BudgetLine(
            id=row["id"],
            category_id=row["category_id"],
            planned=from_money_str(row["planned"]),
            alert_threshold=row["alert_threshold"],
        )

    async def _lines_for(self, budget_id: str) -> list[BudgetLine]:
        rows = await self._backend.query(
            "SELECT * FROM budget_lines WHERE budget_id = ?", (budget_id,)
        )
        return [self._row_to_line(row) for row in rows]

    async def get_by_month(self, month: str) -> Optional[Budget]:
        rows = await self._backend.query("SELECT * FROM budgets WHERE month = ?", (month,))
        if not rows:
            return None

        row = rows[0]
        return Budget(
            id=row["id"],
            month=row["month"],
            status=BudgetStatus(row["status"]),
            lines=await self._lines_for(row["id"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    async def save(self, budget: Budget) -> None:
        """Insert or replace the budget and all of its lines in one unit."""

        async def write() -> None:
            await self._backend.execute(
                """
                INSERT INTO budgets (id, month, status, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                  month = excluded.month,
                  status = excluded.status,
                  updated_at = excluded.updated_at
                """,
                (
                    budget.id,
                    budget.month,
                    budget.status.value,
                    to_timestamp(budget.created_at),
                    to_timestamp(budget.updated_at),
                ),
            )
            await self._backend.execute(
                "DELETE FROM budget_lines WHERE budget_id = ?", (budget.id,)
            )
            for line in budget.lines:
                await self._backend.execute(
                    """
                    INSERT INTO budget_lines (id, budget_id, category_id, planned, alert_threshold)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        line.id,
                        budget.id,
                        line.category_id,
                        to_money_str(line.planned),
                        line.alert_threshold,
                    ),
                )

        await self._backend.transaction(write)


class AlertRepository(Repository):
    """Notification records, newest first."""

    @staticmethod
    def _row_to_alert(row: dict[str, Any]) -> Alert:
        return Alert(
            id=row["id"],
            type=AlertType(row["type"]),
            title=row["title"],
            message=row["message"],
            is_read=from_bool_int(row["is_read"]),
            data=json.loads(row["data"]) if row["data"] else {},
            created_at=row["created_at"],
        )

    async def list_all(self) -> list[Alert]:
        rows = await self._backend.query("SELECT * FROM alerts ORDER BY created_at DESC")
        return [self._row_to_alert(row) for row in rows]

    async def create(self, alert: Alert) -> None:
        await self._backend.execute(
            """
            INSERT INTO alerts (id, type, title, message, is_read, data, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                alert.id,
                alert.type.value,
                alert.title,
                alert.message,
                to_bool_int(alert.is_read),
                json.dumps(alert.data, default=str) if alert.data else None,
                to_timestamp(alert.created_at),
            ),
        )

    async def mark_read(self, alert_id: str) -> None:
        await self._backend.execute("UPDATE alerts SET is_read = 1 WHERE id = ?", (alert_id,))

    async def mark_all_read(self) -> None:
        await self._backend.execute("UPDATE alerts SET is_read = 1")
