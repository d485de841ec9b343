"""
Recurring Transaction Scheduler

Generates ledger entries from recurring templates exactly once per due
occurrence, no matter how often it runs or where a previous pass stopped.

DESIGN DECISION: Idempotency comes from the run ledger, not from the
schedule's dates:
1. Every attempted occurrence leaves one row keyed (recurring_id, run_date)
2. success and skipped rows resolve the date for good
3. A failed row is retried on the next pass (attempts is bumped)
4. next_run_date only moves after a successful materialization

An occurrence is materialized through the ledger engine's own apply path,
inside ONE storage transaction together with its success row and the
schedule's date bump. A crash anywhere in between leaves nothing behind.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from dateutil.relativedelta import relativedelta

from money_manager.cache import LEDGER_MUTATION_KEYS, CacheKey, ViewCache
from money_manager.config import SchedulerSettings, get_settings
from money_manager.ledger import LedgerEngine
from money_manager.models.ledger import (
    Alert,
    AlertType,
    FailedOutcome,
    Recurring,
    RecurringFrequency,
    RecurringIntent,
    RecurringRun,
    SchedulerReport,
    SkippedOutcome,
    SuccessOutcome,
    Transaction,
    TransactionIntent,
    TransactionType,
    utc_now,
)
from money_manager.observability import LedgerEventLogger, create_correlation_id
from money_manager.repositories import (
    AlertRepository,
    RecurringRepository,
    RecurringRunRepository,
)
from money_manager.services.storage import NotFoundError, StorageBackend, StorageError
from money_manager.validation import LedgerError, ValidationError, validate_transaction_shape


# =============================================================================
# Date arithmetic
# =============================================================================

# relativedelta clamps month steps to the target month's last day
FREQUENCY_STEPS = {
    RecurringFrequency.DAILY: relativedelta(days=1),
    RecurringFrequency.WEEKLY: relativedelta(weeks=1),
    RecurringFrequency.MONTHLY: relativedelta(months=1),
    RecurringFrequency.QUARTERLY: relativedelta(months=3),
    RecurringFrequency.YEARLY: relativedelta(years=1),
}


def compute_next_run_date(schedule: Recurring, current_run_date: date) -> date:
    """
    The occurrence after current_run_date.

    - daily: +1 day, weekly: +7 days
    - monthly: day_of_month (or the current day) of next month, clamped
      (2024-01-31 -> 2024-02-29)
    - quarterly: +3 months, yearly: +1 year (Feb 29 -> Feb 28), clamped
    """
    step = FREQUENCY_STEPS.get(schedule.frequency)
    if step is None:
        raise ValueError(f"Unsupported frequency: {schedule.frequency}")

    if schedule.frequency == RecurringFrequency.MONTHLY and schedule.day_of_month:
        step = relativedelta(months=1, day=schedule.day_of_month)

    return current_run_date + step


def build_occurrence(schedule: Recurring, run_date: date) -> Transaction:
    """The transaction a schedule produces for one occurrence date."""
    return Transaction(
        type=schedule.type,
        amount=schedule.amount,
        date=run_date,
        category_id=schedule.category_id,
        from_account_id=(
            schedule.from_account_id if schedule.type != TransactionType.INCOME else None
        ),
        to_account_id=(
            schedule.to_account_id if schedule.type != TransactionType.EXPENSE else None
        ),
        notes=schedule.notes or schedule.name,
        recurring_id=schedule.id,
    )


# =============================================================================
# Scheduler
# =============================================================================

class RecurringScheduler:
    """
    Catch-up processor plus the schedule lifecycle.

    Schedules are independent: a failing occurrence stops only its own
    schedule for this pass.
    """

    def __init__(
        self,
        backend: StorageBackend,
        engine: LedgerEngine,
        cache: Optional[ViewCache] = None,
        event_logger: Optional[LedgerEventLogger] = None,
        settings: Optional[SchedulerSettings] = None,
    ):
        self._backend = backend
        self._engine = engine
        self._recurring = RecurringRepository(backend)
        self._runs = RecurringRunRepository(backend)
        self._alerts = AlertRepository(backend)
        self._cache = cache or ViewCache()
        self._event_logger = event_logger or LedgerEventLogger()
        self._settings = settings or get_settings().scheduler

    @property
    def runs(self) -> RecurringRunRepository:
        return self._runs

    # =========================================================================
    # Processing
    # =========================================================================

    async def process_due_schedules(self, today: date) -> SchedulerReport:
        """
        Materialize every due, unresolved occurrence up to and including today.

        Never raises for storage or ledger errors. A failed occurrence becomes
        a failed run row; a storage error outside an occurrence is logged and
        listed in report.errors, and the pass moves on.
        """
        correlation_id = create_correlation_id()
        report = SchedulerReport(today=today)

        try:
            due = await self._recurring.get_due(today)
        except StorageError as e:
            self._log_pass_error("due_schedules_unavailable", e, {}, report, correlation_id)
            due = []

        self._event_logger.log_pass_started(today, len(due), correlation_id)
        for schedule in due:
            await self._process_schedule(schedule, today, report, correlation_id)

        self._cache.invalidate(*LEDGER_MUTATION_KEYS, CacheKey.RECURRING)
        self._event_logger.log_pass_completed(
            today, len(report.materialized), len(report.failed), correlation_id
        )
        return report

    async def _process_schedule(
        self,
        schedule: Recurring,
        today: date,
        report: SchedulerReport,
        correlation_id: UUID,
    ) -> None:
        run_date = schedule.next_run_date

        while run_date <= today:
            try:
                resolved = await self._runs.has_resolved(schedule.id, run_date)
            except StorageError as e:
                self._log_pass_error(
                    "run_lookup_failed",
                    e,
                    {"recurring_id": schedule.id, "run_date": run_date.isoformat()},
                    report,
                    correlation_id,
                )
                break

            if resolved:
                report.skipped_over += 1
                run_date = compute_next_run_date(schedule, run_date)
                continue

            try:
                transaction = await self._backend.transaction(
                    self._materializer(schedule, run_date)
                )
            except (LedgerError, StorageError) as e:
                await self._record_failure(schedule, run_date, e, report, correlation_id)
                break

            report.materialized.append(transaction)
            self._event_logger.log_occurrence_materialized(
                schedule.id, run_date, transaction.id, correlation_id
            )
            run_date = compute_next_run_date(schedule, run_date)

    def _log_pass_error(
        self,
        error_type: str,
        error: StorageError,
        details: dict,
        report: SchedulerReport,
        correlation_id: UUID,
    ) -> None:
        report.errors.append(f"{error_type}: {error}")
        self._event_logger.log_error(
            error_type=error_type,
            error_message=str(error),
            details=details,
            correlation_id=correlation_id,
        )

    def _materializer(self, schedule: Recurring, run_date: date):
        async def materialize() -> Transaction:
            transaction = await self._engine.post_transaction(
                build_occurrence(schedule, run_date)
            )
            await self._runs.upsert(RecurringRun(
                recurring_id=schedule.id,
                run_date=run_date,
                outcome=SuccessOutcome(transaction_id=transaction.id),
            ))
            await self._recurring.mark_run(
                schedule.id, run_date, compute_next_run_date(schedule, run_date)
            )
            return transaction

        return materialize

    async def _record_failure(
        self,
        schedule: Recurring,
        run_date: date,
        error: Exception,
        report: SchedulerReport,
        correlation_id: UUID,
    ) -> None:
        reason = str(error) or type(error).__name__
        cap = self._settings.max_failed_attempts

        async def write() -> tuple[RecurringRun, bool]:
            stored = await self._runs.upsert(RecurringRun(
                recurring_id=schedule.id,
                run_date=run_date,
                outcome=FailedOutcome(reason=reason),
            ))
            if cap is None or stored.attempts < cap:
                return stored, False

            await self._recurring.set_active(schedule.id, False)
            await self._alerts.create(Alert(
                type=AlertType.RECURRING_FAILED,
                title=f"Recurring paused: {schedule.name}",
                message=(
                    f"The {run_date.isoformat()} occurrence failed {stored.attempts} times "
                    f"and the schedule was paused. Last error: {reason}"
                ),
                data={
                    "recurring_id": schedule.id,
                    "run_date": run_date.isoformat(),
                    "attempts": stored.attempts,
                    "reason": reason,
                },
            ))
            return stored, True

        try:
            stored, disabled = await self._backend.transaction(write)
        except StorageError as write_error:
            # The occurrence stays unresolved and is retried next pass
            self._event_logger.log_error(
                error_type="failed_run_not_recorded",
                error_message=str(write_error),
                details={
                    "recurring_id": schedule.id,
                    "run_date": run_date.isoformat(),
                    "original_error": reason,
                },
                correlation_id=correlation_id,
            )
            return

        report.failed.append(stored)
        self._event_logger.log_occurrence_failed(
            schedule.id, run_date, error, stored.attempts, correlation_id
        )
        if disabled:
            report.disabled_schedule_ids.append(schedule.id)
            self._event_logger.log_schedule_disabled(
                schedule.id, run_date, stored.attempts, correlation_id
            )

    # =========================================================================
    # Schedule lifecycle
    # =========================================================================

    async def _validate_template(self, intent: RecurringIntent) -> None:
        template = self._engine.normalize(TransactionIntent(
            type=intent.type,
            amount=intent.amount,
            date=intent.start_date,
            category_id=intent.category_id,
            from_account_id=intent.from_account_id,
            to_account_id=intent.to_account_id,
        ))
        validate_transaction_shape(template)
        for account_id in (template.from_account_id, template.to_account_id):
            if account_id:
                await self._engine.accounts.require(account_id)

    async def _require(self, recurring_id: str) -> Recurring:
        schedule = await self._recurring.get(recurring_id)
        if schedule is None:
            raise NotFoundError(f"Recurring schedule {recurring_id} not found")
        return schedule

    async def create_schedule(self, intent: RecurringIntent) -> Recurring:
        """
        Create a schedule whose first occurrence is intent.start_date.

        Raises:
            ValidationError: The template's account roles are invalid
            NotFoundError: A referenced account does not exist
        """
        await self._validate_template(intent)

        schedule = Recurring(
            **intent.model_dump(exclude={"start_date"}),
            next_run_date=intent.start_date,
        )
        if schedule.type == TransactionType.EXPENSE:
            schedule.to_account_id = None
        elif schedule.type == TransactionType.INCOME:
            schedule.from_account_id = None

        await self._recurring.create(schedule)
        self._cache.invalidate(CacheKey.RECURRING)
        return schedule

    async def update_schedule(self, recurring_id: str, intent: RecurringIntent) -> Recurring:
        """
        Edit a schedule's template. next_run_date and last_run_date are
        kept as stored; intent.start_date is ignored.
        """
        current = await self._require(recurring_id)
        await self._validate_template(intent)

        updated = current.model_copy(update={
            **intent.model_dump(exclude={"start_date"}),
            "updated_at": utc_now(),
        })
        await self._recurring.update(updated)
        self._cache.invalidate(CacheKey.RECURRING)
        return updated

    async def delete_schedule(self, recurring_id: str) -> None:
        """Delete a schedule and its run history. Generated transactions stay."""
        if not await self._recurring.delete(recurring_id):
            raise NotFoundError(f"Recurring schedule {recurring_id} not found")
        self._cache.invalidate(CacheKey.RECURRING, CacheKey.TRANSACTIONS)

    async def pause_schedule(self, recurring_id: str) -> None:
        if not await self._recurring.set_active(recurring_id, False):
            raise NotFoundError(f"Recurring schedule {recurring_id} not found")
        self._cache.invalidate(CacheKey.RECURRING)

    async def resume_schedule(self, recurring_id: str) -> None:
        """Reactivate; missed occurrences are caught up on the next pass."""
        if not await self._recurring.set_active(recurring_id, True):
            raise NotFoundError(f"Recurring schedule {recurring_id} not found")
        self._cache.invalidate(CacheKey.RECURRING)

    async def skip_occurrence(
        self,
        recurring_id: str,
        run_date: date,
        reason: Optional[str] = None,
    ) -> RecurringRun:
        """
        Resolve one occurrence without materializing it.

        Raises:
            NotFoundError: Unknown schedule
            ValidationError: The occurrence was already materialized
        """
        await self._require(recurring_id)

        async def body() -> RecurringRun:
            existing = await self._runs.get_for_date(recurring_id, run_date)
            if existing is not None and isinstance(existing.outcome, SuccessOutcome):
                raise ValidationError(
                    f"Occurrence {run_date.isoformat()} was already materialized",
                    field="run_date",
                )
            return await self._runs.upsert(
                RecurringRun(
                    recurring_id=recurring_id,
                    run_date=run_date,
                    outcome=SkippedOutcome(reason=reason),
                    attempts=0,
                ),
                count_attempt=False,
            )

        run = await self._backend.transaction(body)
        self._event_logger.log_occurrence_skipped(recurring_id, run_date, reason)
        return run

    async def get_schedule(self, recurring_id: str) -> Optional[Recurring]:
        return await self._recurring.get(recurring_id)

    async def list_schedules(self) -> list[Recurring]:
        return await self._cache.get_or_load(CacheKey.RECURRING, self._recurring.list_all)

    async def get_runs(self, recurring_id: str) -> list[RecurringRun]:
        """Run history, newest first."""
        return await self._runs.list_for(recurring_id)

    async def get_last_run(self, recurring_id: str) -> Optional[RecurringRun]:
        return await self._runs.get_last(recurring_id)
