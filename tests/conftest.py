"""
Shared fixtures.

Every test gets a fresh in-memory SQLite database. Async code is driven
through run_async, the same helper the app entry point uses.
"""

import asyncio
from decimal import Decimal
from typing import Optional

import pytest

from money_manager.config import DatabaseSettings
from money_manager.models import AccountIntent, AccountType
from money_manager.observability import LedgerEventLogger
from money_manager.orchestrator import create_app_components
from money_manager.repositories import default_categories
from money_manager.services.storage import SQLiteBackend, StorageError


def run_async(coro):
    """Run a coroutine to completion on a fresh event loop."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()
        asyncio.set_event_loop(None)


class FaultyBackend(SQLiteBackend):
    """
    SQLite backend that fails chosen statements.

    A fault matches when its SQL fragment is in the statement and, if a
    parameter is given, that value is one of the statement's parameters.
    """

    def __init__(self, settings: DatabaseSettings):
        super().__init__(settings)
        self._faults: list[tuple[str, Optional[object]]] = []

    def fail_when(self, sql_fragment: str, param: Optional[object] = None) -> None:
        self._faults.append((sql_fragment, param))

    def clear_faults(self) -> None:
        self._faults.clear()

    def _raise_if_faulted(self, sql, params) -> None:
        for fragment, param in self._faults:
            if fragment in sql and (param is None or param in tuple(params)):
                raise StorageError(f"Injected failure on: {fragment}")

    async def query(self, sql, params=()):
        self._raise_if_faulted(sql, params)
        return await super().query(sql, params)

    async def execute(self, sql, params=()):
        self._raise_if_faulted(sql, params)
        return await super().execute(sql, params)


class RecordingEventLogger(LedgerEventLogger):
    """Keeps every logged event so a test can assert on it."""

    def __init__(self):
        super().__init__("money_manager.tests")
        self.events = []

    def log(self, event):
        self.events.append(event)
        super().log(event)


def memory_settings() -> DatabaseSettings:
    return DatabaseSettings(path=":memory:", connect_attempts=1)


@pytest.fixture
def run():
    return run_async


@pytest.fixture
def backend():
    backend = SQLiteBackend(memory_settings())
    run_async(backend.initialize())
    yield backend
    run_async(backend.close())


@pytest.fixture
def faulty_backend():
    backend = FaultyBackend(memory_settings())
    run_async(backend.initialize())
    yield backend
    run_async(backend.close())


def _seeded_components(backend):
    components = create_app_components(backend=backend)
    run_async(components.categories.seed(default_categories("cat_transfer")))
    return components


@pytest.fixture
def components(backend):
    return _seeded_components(backend)


@pytest.fixture
def faulty_components(faulty_backend):
    return _seeded_components(faulty_backend)


@pytest.fixture
def engine(components):
    return components.engine


@pytest.fixture
def scheduler(components):
    return components.scheduler


def _account_factory(engine):
    def make(
        name: str = "Savings",
        type: AccountType = AccountType.SAVINGS,
        balance: str = "0",
        credit_limit: Optional[str] = None,
    ):
        return run_async(engine.create_account(AccountIntent(
            name=name,
            type=type,
            balance=Decimal(balance),
            credit_limit=Decimal(credit_limit) if credit_limit is not None else None,
        )))

    return make


@pytest.fixture
def make_account(engine):
    """Create an account through the engine and return it."""
    return _account_factory(engine)


@pytest.fixture
def make_faulty_account(faulty_components):
    return _account_factory(faulty_components.engine)


@pytest.fixture
def balance_of(engine):
    """Current stored balance of an account id."""
    def balance(account_id: str) -> Decimal:
        return run_async(engine.get_account(account_id)).balance

    return balance


@pytest.fixture
def event_log():
    return RecordingEventLogger()
