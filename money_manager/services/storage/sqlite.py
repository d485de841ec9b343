"""
SQLite Storage Implementation

DESIGN DECISION: A single local SQLite file is the storage backend because:
1. The app is local-first with a single writer
2. SQLite gives real all-or-nothing transactions
3. The unique run-ledger index is enforced by the database itself
4. ':memory:' databases make tests fast and isolated

TRADEOFFS:
- One connection, so units of work are serialized (fine for one user)
- The sqlite3 driver is synchronous; calls block the loop briefly

Units of work nest: a transaction() call made from inside another one by
the same task becomes a SAVEPOINT, so a caller can wrap the ledger's own
atomic operations in a larger unit.
"""

import asyncio
import sqlite3
from typing import Any, Awaitable, Callable, Optional, TypeVar

import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from money_manager.config import DatabaseSettings, get_settings
from money_manager.services.storage.interface import (
    ConnectionError,
    DuplicateError,
    ExecuteResult,
    Params,
    StorageBackend,
    StorageError,
)
from money_manager.services.storage.schema import CREATE_TABLES_SQL


T = TypeVar("T")

logger = structlog.get_logger(__name__)


class SQLiteBackend(StorageBackend):
    """
    StorageBackend over one sqlite3 connection.

    The connection runs in autocommit mode; transaction() issues
    BEGIN IMMEDIATE / COMMIT / ROLLBACK itself.
    """

    def __init__(self, settings: Optional[DatabaseSettings] = None):
        self._settings = settings or get_settings().database
        self._conn: Optional[sqlite3.Connection] = None
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None
        self._owner: Optional[asyncio.Task] = None
        self._depth = 0

    @property
    def path(self) -> str:
        return self._settings.path

    def connect(self) -> sqlite3.Connection:
        """
        Open the database, retrying while it is locked or unreachable.

        Raises:
            ConnectionError: If every attempt failed
        """
        if self._conn is None:
            connect_with_retry = retry(
                stop=stop_after_attempt(self._settings.connect_attempts),
                wait=wait_exponential(multiplier=1, min=2, max=10),
                retry=retry_if_exception_type(ConnectionError),
                reraise=True,
            )(self._open)
            self._conn = connect_with_retry()
        return self._conn

    def _open(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(
                self._settings.path,
                timeout=self._settings.busy_timeout_seconds,
                isolation_level=None,
                check_same_thread=False,
            )
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error as e:
            logger.warning("database_open_failed", path=self._settings.path, error=str(e))
            raise ConnectionError(f"Failed to open database {self._settings.path}: {e}") from e

        logger.debug("database_opened", path=self._settings.path)
        return conn

    async def initialize(self) -> None:
        conn = self.connect()
        try:
            conn.executescript(CREATE_TABLES_SQL)
        except sqlite3.Error as e:
            raise StorageError(f"Failed to create schema: {e}") from e

    async def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    # =========================================================================
    # Statements
    # =========================================================================

    def _run(self, sql: str, params: Params = ()) -> sqlite3.Cursor:
        conn = self.connect()
        try:
            return conn.execute(sql, tuple(params))
        except sqlite3.IntegrityError as e:
            if "UNIQUE" in str(e).upper():
                raise DuplicateError(str(e)) from e
            raise StorageError(f"Constraint failed: {e}") from e
        except sqlite3.Error as e:
            raise StorageError(f"Statement failed: {e}") from e

    async def query(self, sql: str, params: Params = ()) -> list[dict[str, Any]]:
        cursor = self._run(sql, params)
        return [dict(row) for row in cursor.fetchall()]

    async def execute(self, sql: str, params: Params = ()) -> ExecuteResult:
        if self._owns_transaction():
            return self._execute_now(sql, params)

        # Autocommit write; wait for any open unit of work to finish first
        async with self._get_lock():
            return self._execute_now(sql, params)

    def _execute_now(self, sql: str, params: Params) -> ExecuteResult:
        cursor = self._run(sql, params)
        return ExecuteResult(changes=cursor.rowcount, last_row_id=cursor.lastrowid)

    # =========================================================================
    # Units of work
    # =========================================================================

    def _get_lock(self) -> asyncio.Lock:
        # asyncio.Lock binds to the loop it is first used on
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
            self._owner = None
            self._depth = 0
        return self._lock

    def _owns_transaction(self) -> bool:
        return self._owner is not None and self._owner is asyncio.current_task()

    async def transaction(self, body: Callable[[], Awaitable[T]]) -> T:
        if self._owns_transaction():
            return await self._savepoint(body)

        async with self._get_lock():
            self._owner = asyncio.current_task()
            try:
                self._run("BEGIN IMMEDIATE")
                try:
                    result = await body()
                    self._run("COMMIT")
                except BaseException:
                    self._rollback()
                    raise
                return result
            finally:
                self._owner = None
                self._depth = 0

    async def _savepoint(self, body: Callable[[], Awaitable[T]]) -> T:
        self._depth += 1
        name = f"sp_{self._depth}"
        self._run(f"SAVEPOINT {name}")
        try:
            try:
                result = await body()
            except BaseException:
                self._run(f"ROLLBACK TO {name}")
                self._run(f"RELEASE {name}")
                raise
            self._run(f"RELEASE {name}")
            return result
        finally:
            self._depth -= 1

    def _rollback(self) -> None:
        conn = self.connect()
        if conn.in_transaction:
            self._run("ROLLBACK")
