"""
In-memory cache of read-side views.

Every ledger mutation invalidates the views it could have changed, so a
consumer never sees a balance or a total from before the last commit.
"""

from enum import Enum
from typing import Any, Awaitable, Callable, Hashable, TypeVar


T = TypeVar("T")


class CacheKey(str, Enum):
    """View families; one family may hold many entries (one per month, ...)."""
    TRANSACTIONS = "transactions"
    ACCOUNTS = "accounts"
    RECURRING = "recurring"
    GOALS = "goals"
    INVESTMENTS = "investments"
    DEBTS = "debts"
    ALERTS = "alerts"
    STATS = "stats"


# What a committed transaction create/update/delete can change
LEDGER_MUTATION_KEYS = (
    CacheKey.TRANSACTIONS,
    CacheKey.ACCOUNTS,
    CacheKey.GOALS,
    CacheKey.INVESTMENTS,
    CacheKey.DEBTS,
    CacheKey.ALERTS,
    CacheKey.STATS,
)


class ViewCache:
    """Loader-backed cache keyed by (family, variant)."""

    def __init__(self):
        self._entries: dict[tuple[CacheKey, Hashable], Any] = {}

    async def get_or_load(
        self,
        key: CacheKey,
        loader: Callable[[], Awaitable[T]],
        variant: Hashable = None,
    ) -> T:
        entry_key = (key, variant)
        if entry_key not in self._entries:
            self._entries[entry_key] = await loader()
        return self._entries[entry_key]

    def invalidate(self, *keys: CacheKey) -> None:
        """Drop every entry of the given families."""
        families = set(keys)
        for entry_key in [k for k in self._entries if k[0] in families]:
            del self._entries[entry_key]

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: CacheKey) -> bool:
        return any(entry_key[0] == key for entry_key in self._entries)
