"""Recurring transaction scheduler package."""

from money_manager.scheduler.recurring import (
    FREQUENCY_STEPS,
    RecurringScheduler,
    build_occurrence,
    compute_next_run_date,
)

__all__ = [
    "FREQUENCY_STEPS",
    "RecurringScheduler",
    "build_occurrence",
    "compute_next_run_date",
]
