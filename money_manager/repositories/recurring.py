"""Recurring schedule rows and the run ledger."""

from datetime import date
from typing import Any, Optional

from money_manager.models.ledger import (
    FailedOutcome,
    Recurring,
    RecurringFrequency,
    RecurringRun,
    RunStatus,
    SkippedOutcome,
    SuccessOutcome,
    TransactionType,
    utc_now,
)
from money_manager.repositories.base import (
    Repository,
    from_bool_int,
    from_money_str,
    to_bool_int,
    to_date_key,
    to_money_str,
    to_timestamp,
)


class RecurringRepository(Repository):
    """
    CRUD over recurring schedules.

    update() writes the user-editable fields only. The run-tracking
    fields (next_run_date, last_run_date) move through mark_run().
    """

    @staticmethod
    def _row_to_recurring(row: dict[str, Any]) -> Recurring:
        return Recurring(
            id=row["id"],
            name=row["name"],
            type=TransactionType(row["type"]),
            amount=from_money_str(row["amount"]),
            frequency=RecurringFrequency(row["frequency"]),
            day_of_month=row["day_of_month"],
            category_id=row["category_id"],
            from_account_id=row["from_account_id"],
            to_account_id=row["to_account_id"],
            notes=row["notes"],
            is_active=from_bool_int(row["is_active"]),
            next_run_date=row["next_run_date"],
            last_run_date=row["last_run_date"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    async def get(self, recurring_id: str) -> Optional[Recurring]:
        rows = await self._backend.query("SELECT * FROM recurring WHERE id = ?", (recurring_id,))
        return self._row_to_recurring(rows[0]) if rows else None

    async def list_all(self) -> list[Recurring]:
        rows = await self._backend.query("SELECT * FROM recurring ORDER BY name")
        return [self._row_to_recurring(row) for row in rows]

    async def get_due(self, today: date) -> list[Recurring]:
        """Active schedules whose next occurrence is on or before today."""
        rows = await self._backend.query(
            """
            SELECT *
            FROM recurring
            WHERE is_active = 1
              AND next_run_date <= ?
            ORDER BY next_run_date ASC, name ASC
            """,
            (to_date_key(today),),
        )
        return [self._row_to_recurring(row) for row in rows]

    async def create(self, recurring: Recurring) -> None:
        await self._backend.execute(
            """
            INSERT INTO recurring (
              id, name, type, amount, frequency, day_of_month, category_id,
              from_account_id, to_account_id, notes, is_active,
              next_run_date, last_run_date, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                recurring.id,
                recurring.name,
                recurring.type.value,
                to_money_str(recurring.amount),
                recurring.frequency.value,
                recurring.day_of_month,
                recurring.category_id,
                recurring.from_account_id,
                recurring.to_account_id,
                recurring.notes,
                to_bool_int(recurring.is_active),
                to_date_key(recurring.next_run_date),
                to_date_key(recurring.last_run_date),
                to_timestamp(recurring.created_at),
                to_timestamp(recurring.updated_at),
            ),
        )

    async def update(self, recurring: Recurring) -> None:
        await self._backend.execute(
            """
            UPDATE recurring
            SET name = ?,
                type = ?,
                amount = ?,
                frequency = ?,
                day_of_month = ?,
                category_id = ?,
                from_account_id = ?,
                to_account_id = ?,
                notes = ?,
                is_active = ?,
                updated_at = ?
            WHERE id = ?
            """,
            (
                recurring.name,
                recurring.type.value,
                to_money_str(recurring.amount),
                recurring.frequency.value,
                recurring.day_of_month,
                recurring.category_id,
                recurring.from_account_id,
                recurring.to_account_id,
                recurring.notes,
                to_bool_int(recurring.is_active),
                to_timestamp(recurring.updated_at),
                recurring.id,
            ),
        )

    async def mark_run(self, recurring_id: str, last_run_date: date, next_run_date: date) -> None:
        """Record a successful occurrence and move the schedule forward."""
        await self._backend.execute(
            """
            UPDATE recurring
            SET last_run_date = ?,
                next_run_date = ?,
                updated_at = ?
            WHERE id = ?
            """,
            (
                to_date_key(last_run_date),
                to_date_key(next_run_date),
                to_timestamp(utc_now()),
                recurring_id,
            ),
        )

    async def set_active(self, recurring_id: str, is_active: bool) -> bool:
        result = await self._backend.execute(
            "UPDATE recurring SET is_active = ?, updated_at = ? WHERE id = ?",
            (to_bool_int(is_active), to_timestamp(utc_now()), recurring_id),
        )
        return result.changes > 0

    async def delete(self, recurring_id: str) -> bool:
        """Runs go with it (ON DELETE CASCADE)."""
        result = await self._backend.execute("DELETE FROM recurring WHERE id = ?", (recurring_id,))
        return result.changes > 0


class RecurringRunRepository(Repository):
    """
    The run ledger: at most one row per (recurring_id, run_date).

    The unique index is what makes a second scheduler pass a no-op.
    """

    @staticmethod
    def _row_to_run(row: dict[str, Any]) -> RecurringRun:
        status = RunStatus(row["status"])
        if status == RunStatus.SUCCESS:
            outcome = SuccessOutcome(transaction_id=row["transaction_id"])
        elif status == RunStatus.SKIPPED:
            outcome = SkippedOutcome(reason=row["reason"])
        else:
            outcome = FailedOutcome(reason=row["reason"] or "Failed to generate transaction")

        return RecurringRun(
            id=row["id"],
            recurring_id=row["recurring_id"],
            run_date=row["run_date"],
            outcome=outcome,
            attempts=row["attempts"],
        )

    async def get_for_date(self, recurring_id: str, run_date: date) -> Optional[RecurringRun]:
        rows = await self._backend.query(
            """
            SELECT *
            FROM recurring_runs
            WHERE recurring_id = ?
              AND run_date = ?
            LIMIT 1
            """,
            (recurring_id, to_date_key(run_date)),
        )
        return self._row_to_run(rows[0]) if rows else None

    async def has_resolved(self, recurring_id: str, run_date: date) -> bool:
        """True once the date succeeded or was skipped; failed dates stay open."""
        run = await self.get_for_date(recurring_id, run_date)
        return run is not None and run.is_resolved

    async def upsert(self, run: RecurringRun, count_attempt: bool = True) -> RecurringRun:
        """
        Insert the run, or overwrite the outcome already stored for its date.

        When count_attempt is set, an existing row's attempts is bumped by
        one; otherwise it is kept as is.

        Returns:
            The run as stored (id and attempts reflect the existing row)
        """
        existing = await self.get_for_date(run.recurring_id, run.run_date)

        if existing is None:
            await self._backend.execute(
                """
                INSERT INTO recurring_runs (
                  id, recurring_id, run_date, status, transaction_id, reason, attempts
                )
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    run.id,
                    run.recurring_id,
                    to_date_key(run.run_date),
                    run.status.value,
                    run.transaction_id,
                    run.reason,
                    run.attempts,
                ),
            )
            return run

        attempts = existing.attempts + 1 if count_attempt else existing.attempts
        await self._backend.execute(
            """
            UPDATE recurring_runs
            SET status = ?,
                transaction_id = ?,
                reason = ?,
                attempts = ?
            WHERE recurring_id = ?
              AND run_date = ?
            """,
            (
                run.status.value,
                run.transaction_id,
                run.reason,
                attempts,
                run.recurring_id,
                to_date_key(run.run_date),
            ),
        )
        return run.model_copy(update={"id": existing.id, "attempts": attempts})

    async def list_for(self, recurring_id: str) -> list[RecurringRun]:
        """Newest first."""
        rows = await self._backend.query(
            "SELECT * FROM recurring_runs WHERE recurring_id = ? ORDER BY run_date DESC",
            (recurring_id,),
        )
        return [self._row_to_run(row) for row in rows]

    async def get_last(self, recurring_id: str) -> Optional[RecurringRun]:
        rows = await self._backend.query(
            """
            SELECT *
            FROM recurring_runs
            WHERE recurring_id = ?
            ORDER BY run_date DESC
            LIMIT 1
            """,
            (recurring_id,),
        )
        return self._row_to_run(rows[0]) if rows else None

    async def count(self, recurring_id: Optional[str] = None) -> int:
        if recurring_id is None:
            rows = await self._backend.query("SELECT COUNT(*) AS count FROM recurring_runs")
        else:
            rows = await self._backend.query(
                "SELECT COUNT(*) AS count FROM recurring_runs WHERE recurring_id = ?",
                (recurring_id,),
            )
        return rows[0]["count"]
