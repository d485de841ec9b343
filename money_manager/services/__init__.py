"""Services package."""

from money_manager.services.storage import (
    ConnectionError,
    DuplicateError,
    ExecuteResult,
    NotFoundError,
    SQLiteBackend,
    StorageBackend,
    StorageError,
)

__all__ = [
    "ConnectionError",
    "DuplicateError",
    "ExecuteResult",
    "NotFoundError",
    "SQLiteBackend",
    "StorageBackend",
    "StorageError",
]
