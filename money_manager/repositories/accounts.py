"""Account rows."""

from decimal import Decimal
from typing import Any, Optional

from money_manager.models.ledger import Account, AccountType, utc_now
from money_manager.repositories.base import (
    Repository,
    from_bool_int,
    from_money_str,
    from_optional_money_str,
    to_bool_int,
    to_money_str,
    to_timestamp,
)
from money_manager.services.storage import NotFoundError


class AccountRepository(Repository):
    """
    CRUD over accounts plus signed balance deltas.

    update() never writes the balance column; balances only move through
    apply_balance_delta(), which the ledger engine owns.
    """

    @staticmethod
    def _row_to_account(row: dict[str, Any]) -> Account:
        return Account(
            id=row["id"],
            name=row["name"],
            type=AccountType(row["type"]),
            balance=from_money_str(row["balance"]),
            credit_limit=from_optional_money_str(row["credit_limit"]),
            icon=row["icon"],
            color=row["color"],
            is_active=from_bool_int(row["is_active"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    async def get(self, account_id: str) -> Optional[Account]:
        rows = await self._backend.query("SELECT * FROM accounts WHERE id = ?", (account_id,))
        return self._row_to_account(rows[0]) if rows else None

    async def require(self, account_id: str) -> Account:
        """
        Raises:
            NotFoundError: If the account does not exist
        """
        account = await self.get(account_id)
        if account is None:
            raise NotFoundError(f"Account {account_id} not found")
        return account

    async def list_all(self, active_only: bool = False) -> list[Account]:
        sql = "SELECT * FROM accounts"
        if active_only:
            sql += " WHERE is_active = 1"
        rows = await self._backend.query(sql + " ORDER BY name")
        return [self._row_to_account(row) for row in rows]

    async def create(self, account: Account) -> None:
        await self._backend.execute(
            """
            INSERT INTO accounts (
              id, name, type, balance, credit_limit, icon, color, is_active,
              created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                account.id,
                account.name,
                account.type.value,
                to_money_str(account.balance),
                to_money_str(account.credit_limit),
                account.icon,
                account.color,
                to_bool_int(account.is_active),
                to_timestamp(account.created_at),
                to_timestamp(account.updated_at),
            ),
        )

    async def update(self, account: Account) -> None:
        result = await self._backend.execute(
            """
            UPDATE accounts
            SET name = ?,
                type = ?,
                credit_limit = ?,
                icon = ?,
                color = ?,
                is_active = ?,
                updated_at = ?
            WHERE id = ?
            """,
            (
                account.name,
                account.type.value,
                to_money_str(account.credit_limit),
                account.icon,
                account.color,
                to_bool_int(account.is_active),
                to_timestamp(account.updated_at),
                account.id,
            ),
        )
        if result.changes == 0:
            raise NotFoundError(f"Account {account.id} not found")

    async def apply_balance_delta(self, account_id: str, delta: Decimal) -> Decimal:
        """
        Add a signed delta to the balance and return the new balance.

        The sum is done in Decimal; SQLite arithmetic on TEXT would go
        through floating point.

        Raises:
            NotFoundError: If the account does not exist
        """
        account = await self.require(account_id)
        new_balance = account.balance + delta
        await self._backend.execute(
            "UPDATE accounts SET balance = ?, updated_at = ? WHERE id = ?",
            (to_money_str(new_balance), to_timestamp(utc_now()), account_id),
        )
        return new_balance

    async def delete(self, account_id: str) -> bool:
        result = await self._backend.execute("DELETE FROM accounts WHERE id = ?", (account_id,))
        return result.changes > 0

    async def has_transactions(self, account_id: str) -> bool:
        rows = await self._backend.query(
            """
            SELECT COUNT(*) AS count
            FROM transactions
            WHERE from_account_id = ? OR to_account_id = ?
            """,
            (account_id, account_id),
        )
        return rows[0]["count"] > 0
