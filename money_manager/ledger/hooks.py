"""
Contribution hook.

Income linked to a goal or an investment is a contribution; an expense
linked to a debt is a payment. Whenever such a transaction is created,
edited or deleted, the engine calls the hook inside the same unit of work
so the derived totals commit together with the balances.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional

from money_manager.repositories import (
    DebtRepository,
    GoalRepository,
    InvestmentRepository,
    TransactionRepository,
)


class ContributionHook(ABC):

    @abstractmethod
    async def on_contribution_changed(
        self,
        goal_id: Optional[str] = None,
        investment_id: Optional[str] = None,
        debt_id: Optional[str] = None,
    ) -> None:
        """Recompute whatever depends on the contributions to these targets."""
        pass


class AggregateRecalculator(ContributionHook):
    """
    Default hook: goal.saved_amount and investment.total_invested are the
    sums of their linked income transactions, and debt.outstanding_amount
    is the principal less the linked expense payments (never below 0).
    """

    def __init__(
        self,
        transactions: TransactionRepository,
        goals: GoalRepository,
        investments: InvestmentRepository,
        debts: DebtRepository,
    ):
        self._transactions = transactions
        self._goals = goals
        self._investments = investments
        self._debts = debts

    async def on_contribution_changed(
        self,
        goal_id: Optional[str] = None,
        investment_id: Optional[str] = None,
        debt_id: Optional[str] = None,
    ) -> None:
        if goal_id:
            saved = await self._transactions.sum_goal_contributions(goal_id)
            await self._goals.set_saved_amount(goal_id, saved)

        if investment_id:
            invested = await self._transactions.sum_investment_contributions(investment_id)
            await self._investments.set_total_invested(investment_id, invested)

        if debt_id:
            debt = await self._debts.get(debt_id)
            if debt is None:
                return
            paid = await self._transactions.sum_debt_payments(debt_id)
            outstanding = max(debt.principal_amount - paid, Decimal("0"))
            await self._debts.set_outstanding_amount(debt_id, outstanding)
