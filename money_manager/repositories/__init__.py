"""
Repositories Package

Typed row access over a StorageBackend. Repositories never validate ledger
rules and never decide what a balance should be; they read and write rows.
"""

from money_manager.repositories.accounts import AccountRepository
from money_manager.repositories.budgets import AlertRepository, BudgetRepository
from money_manager.repositories.categories import CategoryRepository, default_categories
from money_manager.repositories.debts import DebtRepository
from money_manager.repositories.goals import GoalRepository, InvestmentRepository
from money_manager.repositories.recurring import RecurringRepository, RecurringRunRepository
from money_manager.repositories.transactions import TransactionRepository

__all__ = [
    "AccountRepository",
    "AlertRepository",
    "BudgetRepository",
    "CategoryRepository",
    "DebtRepository",
    "GoalRepository",
    "InvestmentRepository",
    "RecurringRepository",
    "RecurringRunRepository",
    "TransactionRepository",
    "default_categories",
]
