"""
Row conversion helpers shared by the repositories.

Money is stored as TEXT so Decimal values survive the round trip exactly;
SQLite REAL would silently turn 0.1 + 0.2 into 0.30000000000000004.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from money_manager.services.storage import StorageBackend


def to_money_str(value: Optional[Decimal]) -> Optional[str]:
    """Convert a Decimal to its storage string."""
    if value is None:
        return None
    return str(value)


def from_money_str(value: Any) -> Decimal:
    """Convert a stored money value back to Decimal (missing -> 0)."""
    if value is None or value == "":
        return Decimal("0")
    return Decimal(str(value))


def from_optional_money_str(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    return Decimal(str(value))


def to_bool_int(value: bool) -> int:
    return 1 if value else 0


def from_bool_int(value: Any) -> bool:
    return value == 1


def to_date_key(value: Optional[date]) -> Optional[str]:
    """Dates are stored as YYYY-MM-DD so they sort and compare as text."""
    if value is None:
        return None
    return value.isoformat()


def to_timestamp(value: datetime) -> str:
    return value.isoformat()


class Repository:
    """Base class: a repository is a thin typed view over one backend."""

    def __init__(self, backend: StorageBackend):
        self._backend = backend

    @property
    def backend(self) -> StorageBackend:
        return self._backend
