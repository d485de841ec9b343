"""
Main Orchestrator for Money Manager

This module ties together all the components and defines the
application start-up flow:
1. Open the database and create the schema
2. Seed the reserved categories (the transfer category above all)
3. Run one recurring catch-up pass

DESIGN DECISION: Components share ONE backend and ONE view cache, so a
mutation through any of them invalidates the views every other one serves.
"""

from datetime import date
from typing import Optional

import structlog

from money_manager.cache import ViewCache
from money_manager.config import Settings, get_settings
from money_manager.ledger import (
    AggregateRecalculator,
    AlertInbox,
    BudgetAlertChecker,
    LedgerEngine,
    TargetManager,
)
from money_manager.models.ledger import SchedulerReport
from money_manager.observability import LedgerEventLogger
from money_manager.queries import StatsQueries
from money_manager.repositories import (
    AlertRepository,
    BudgetRepository,
    CategoryRepository,
    DebtRepository,
    GoalRepository,
    InvestmentRepository,
    TransactionRepository,
    default_categories,
)
from money_manager.scheduler import RecurringScheduler
from money_manager.services.storage import SQLiteBackend, StorageBackend


logger = structlog.get_logger(__name__)


class AppComponents:
    """Everything a front end needs, wired to one backend."""

    def __init__(
        self,
        backend: StorageBackend,
        engine: LedgerEngine,
        scheduler: RecurringScheduler,
        stats: StatsQueries,
        targets: TargetManager,
        inbox: AlertInbox,
        cache: ViewCache,
        settings: Settings,
    ):
        self.backend = backend
        self.engine = engine
        self.scheduler = scheduler
        self.stats = stats
        self.targets = targets
        self.inbox = inbox
        self.cache = cache
        self.settings = settings
        self.categories = CategoryRepository(backend)
        self.budgets = BudgetRepository(backend)

    async def start_up(self, today: Optional[date] = None) -> Optional[SchedulerReport]:
        """
        Prepare storage and catch up on recurring transactions.

        Returns:
            The scheduler report, or None when the start-up pass is disabled
        """
        await self.backend.initialize()

        added = await self.categories.seed(
            default_categories(self.settings.ledger.transfer_category_id)
        )
        if added:
            logger.info("categories_seeded", count=added)

        if not self.settings.scheduler.run_on_startup:
            return None

        return await self.scheduler.process_due_schedules(today or date.today())

    async def shut_down(self) -> None:
        await self.backend.close()


def create_app_components(
    settings: Optional[Settings] = None,
    backend: Optional[StorageBackend] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to use (defaults to the cached environment settings)
        backend: Storage backend (defaults to SQLite at settings.database.path)

    Returns:
        AppComponents sharing one backend and one cache
    """
    settings = settings or get_settings()
    backend = backend or SQLiteBackend(settings.database)
    cache = ViewCache()
    event_logger = LedgerEventLogger()

    transactions = TransactionRepository(backend)
    contribution_hook = AggregateRecalculator(
        transactions=transactions,
        goals=GoalRepository(backend),
        investments=InvestmentRepository(backend),
        debts=DebtRepository(backend),
    )
    alerts = AlertRepository(backend)
    alert_checker = BudgetAlertChecker(
        budgets=BudgetRepository(backend),
        transactions=transactions,
        categories=CategoryRepository(backend),
        alerts=alerts,
        event_logger=event_logger,
        settings=settings.ledger,
    )

    engine = LedgerEngine(
        backend,
        contribution_hook=contribution_hook,
        alert_checker=alert_checker,
        cache=cache,
        event_logger=event_logger,
        settings=settings.ledger,
    )
    scheduler = RecurringScheduler(
        backend,
        engine,
        cache=cache,
        event_logger=event_logger,
        settings=settings.scheduler,
    )
    stats = StatsQueries(backend, cache=cache)
    targets = TargetManager(
        backend,
        contribution_hook=contribution_hook,
        cache=cache,
        event_logger=event_logger,
    )

    return AppComponents(
        backend=backend,
        engine=engine,
        scheduler=scheduler,
        stats=stats,
        targets=targets,
        inbox=AlertInbox(alerts, cache=cache),
        cache=cache,
        settings=settings,
    )
