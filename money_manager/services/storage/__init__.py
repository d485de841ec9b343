"""
Storage Services Package

Provides the abstract storage contract and its SQLite implementation.
The ledger only talks to StorageBackend, so the backend stays swappable.
"""

from money_manager.services.storage.interface import (
    ConnectionError,
    DuplicateError,
    ExecuteResult,
    NotFoundError,
    StorageBackend,
    StorageError,
)
from money_manager.services.storage.sqlite import SQLiteBackend

__all__ = [
    # Interface
    "ExecuteResult",
    "StorageBackend",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # SQLite implementation
    "SQLiteBackend",
]
