"""
Goals, investments and debts.

These are the targets a transaction can be linked to. Their derived totals
(saved_amount, total_invested, outstanding_amount) are never taken from the
caller: they start from nothing on create and only the contribution hook
moves them afterwards.
"""

from decimal import Decimal
from typing import Optional

from money_manager.cache import CacheKey, ViewCache
from money_manager.ledger.hooks import ContributionHook
from money_manager.models.events import LedgerEventType
from money_manager.models.ledger import Debt, Goal, Investment, utc_now
from money_manager.observability import LedgerEventLogger
from money_manager.repositories import DebtRepository, GoalRepository, InvestmentRepository
from money_manager.services.storage import NotFoundError, StorageBackend


class TargetManager:
    """
    CRUD over contribution targets.

    Deleting a target unlinks its transactions (the link is set to NULL);
    the transactions and the balances they moved are kept.
    """

    def __init__(
        self,
        backend: StorageBackend,
        contribution_hook: Optional[ContributionHook] = None,
        cache: Optional[ViewCache] = None,
        event_logger: Optional[LedgerEventLogger] = None,
    ):
        self._backend = backend
        self._goals = GoalRepository(backend)
        self._investments = InvestmentRepository(backend)
        self._debts = DebtRepository(backend)
        self._hook = contribution_hook
        self._cache = cache or ViewCache()
        self._event_logger = event_logger or LedgerEventLogger()

    def _changed(
        self,
        event_type: LedgerEventType,
        kind: str,
        target_id: str,
        *keys: CacheKey,
    ) -> None:
        self._cache.invalidate(*keys, CacheKey.STATS)
        self._event_logger.log_target_changed(event_type, kind, target_id)

    # =========================================================================
    # Goals
    # =========================================================================

    async def create_goal(self, goal: Goal) -> Goal:
        goal = goal.model_copy(update={"saved_amount": Decimal("0")})
        await self._goals.create(goal)
        self._changed(LedgerEventType.TARGET_CREATED, "goal", goal.id, CacheKey.GOALS)
        return goal

    async def update_goal(self, goal_id: str, goal: Goal) -> Goal:
        """
        Edit a goal; saved_amount and created_at of the stored row are kept.

        Raises:
            NotFoundError: Unknown goal id
        """

        async def body() -> Goal:
            current = await self._goals.get(goal_id)
            if current is None:
                raise NotFoundError(f"Goal {goal_id} not found")

            updated = goal.model_copy(update={
                "id": current.id,
                "saved_amount": current.saved_amount,
                "created_at": current.created_at,
                "updated_at": utc_now(),
            })
            await self._goals.update(updated)
            return updated

        updated = await self._backend.transaction(body)
        self._changed(LedgerEventType.TARGET_UPDATED, "goal", goal_id, CacheKey.GOALS)
        return updated

    async def delete_goal(self, goal_id: str) -> None:
        """
        Raises:
            NotFoundError: Unknown goal id
        """
        if not await self._goals.delete(goal_id):
            raise NotFoundError(f"Goal {goal_id} not found")
        self._changed(
            LedgerEventType.TARGET_DELETED, "goal", goal_id,
            CacheKey.GOALS, CacheKey.TRANSACTIONS,
        )

    async def get_goal(self, goal_id: str) -> Optional[Goal]:
        return await self._goals.get(goal_id)

    async def list_goals(self) -> list[Goal]:
        return await self._cache.get_or_load(CacheKey.GOALS, self._goals.list_all)

    # =========================================================================
    # Investments
    # =========================================================================

    async def create_investment(self, investment: Investment) -> Investment:
        investment = investment.model_copy(update={"total_invested": Decimal("0")})
        await self._investments.create(investment)
        self._changed(
            LedgerEventType.TARGET_CREATED, "investment", investment.id, CacheKey.INVESTMENTS
        )
        return investment

    async def update_investment(self, investment_id: str, investment: Investment) -> Investment:
        """
        Edit an investment; total_invested is kept, current_value is taken
        from the caller since it is a market valuation.

        Raises:
            NotFoundError: Unknown investment id
        """

        async def body() -> Investment:
            current = await self._investments.get(investment_id)
            if current is None:
                raise NotFoundError(f"Investment {investment_id} not found")

            updated = investment.model_copy(update={
                "id": current.id,
                "total_invested": current.total_invested,
                "created_at": current.created_at,
                "updated_at": utc_now(),
            })
            await self._investments.update(updated)
            return updated

        updated = await self._backend.transaction(body)
        self._changed(
            LedgerEventType.TARGET_UPDATED, "investment", investment_id, CacheKey.INVESTMENTS
        )
        return updated

    async def delete_investment(self, investment_id: str) -> None:
        """
        Raises:
            NotFoundError: Unknown investment id
        """
        if not await self._investments.delete(investment_id):
            raise NotFoundError(f"Investment {investment_id} not found")
        self._changed(
            LedgerEventType.TARGET_DELETED, "investment", investment_id,
            CacheKey.INVESTMENTS, CacheKey.TRANSACTIONS,
        )

    async def get_investment(self, investment_id: str) -> Optional[Investment]:
        return await self._investments.get(investment_id)

    async def list_investments(self) -> list[Investment]:
        return await self._cache.get_or_load(CacheKey.INVESTMENTS, self._investments.list_all)

    # =========================================================================
    # Debts
    # =========================================================================

    async def create_debt(self, debt: Debt) -> Debt:
        """A new debt owes its whole principal."""
        debt = debt.model_copy(update={"outstanding_amount": debt.principal_amount})
        await self._debts.create(debt)
        self._changed(LedgerEventType.TARGET_CREATED, "debt", debt.id, CacheKey.DEBTS)
        return debt

    async def update_debt(self, debt_id: str, debt: Debt) -> Debt:
        """
        Edit a debt. A changed principal moves outstanding_amount, which is
        recomputed from the linked payments in the same unit of work.

        Raises:
            NotFoundError: Unknown debt id
        """

        async def body() -> Debt:
            current = await self._debts.get(debt_id)
            if current is None:
                raise NotFoundError(f"Debt {debt_id} not found")

            await self._debts.update(debt.model_copy(update={
                "id": current.id,
                "created_at": current.created_at,
                "updated_at": utc_now(),
            }))
            if self._hook is not None:
                await self._hook.on_contribution_changed(debt_id=debt_id)
            return await self._debts.get(debt_id)

        updated = await self._backend.transaction(body)
        self._changed(LedgerEventType.TARGET_UPDATED, "debt", debt_id, CacheKey.DEBTS)
        return updated

    async def delete_debt(self, debt_id: str) -> None:
        """
        Raises:
            NotFoundError: Unknown debt id
        """
        if not await self._debts.delete(debt_id):
            raise NotFoundError(f"Debt {debt_id} not found")
        self._changed(
            LedgerEventType.TARGET_DELETED, "debt", debt_id,
            CacheKey.DEBTS, CacheKey.TRANSACTIONS,
        )

    async def get_debt(self, debt_id: str) -> Optional[Debt]:
        return await self._debts.get(debt_id)

    async def list_debts(self) -> list[Debt]:
        return await self._cache.get_or_load(CacheKey.DEBTS, self._debts.list_all)
