"""
Money Manager - Ledger Core

The balance-keeping core of a local-first personal finance tracker.

DESIGN PRINCIPLES:
1. Account balances always equal the sum of stored transactions
2. Only the ledger engine mutates balances
3. Every mutation is one all-or-nothing storage transaction
4. Recurring occurrences materialize exactly once
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Money Manager Team"
