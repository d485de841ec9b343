"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Run on the local SQLite file today
2. Use an in-memory database for testing
3. Inject faults in tests without touching ledger code
4. Keep ledger logic decoupled from the storage driver

The interface is intentionally small - the ledger only needs rows in,
rows out, and an all-or-nothing unit of work.
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional, Sequence, TypeVar

from pydantic import BaseModel


T = TypeVar("T")

Params = Sequence[Any]


class ExecuteResult(BaseModel):
    """Outcome of a write statement."""

    changes: int = 0
    last_row_id: Optional[int] = None


class StorageBackend(ABC):
    """
    Abstract interface for a transactional row store.

    Any storage implementation (SQLite, PostgreSQL, ...) must implement
    these methods.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """
        Create tables and indexes if they do not exist.

        Raises:
            StorageError: If the schema cannot be created
        """
        pass

    @abstractmethod
    async def query(self, sql: str, params: Params = ()) -> list[dict[str, Any]]:
        """
        Run a read statement.

        Args:
            sql: Parameterized SQL
            params: Positional parameters

        Returns:
            Rows as column-name -> value dicts

        Raises:
            StorageError: If the statement fails
        """
        pass

    @abstractmethod
    async def execute(self, sql: str, params: Params = ()) -> ExecuteResult:
        """
        Run a write statement.

        Outside a transaction the statement commits on its own.

        Raises:
            DuplicateError: If a unique constraint is violated
            StorageError: If the statement fails
        """
        pass

    @abstractmethod
    async def transaction(self, body: Callable[[], Awaitable[T]]) -> T:
        """
        Run body as one all-or-nothing unit of work.

        Every statement issued while body runs commits together, or - if
        body raises - none of them do and the exception propagates.

        Args:
            body: Coroutine function issuing the statements

        Returns:
            Whatever body returns

        Raises:
            StorageError: If the backend rejects the unit as a whole
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying connection."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
