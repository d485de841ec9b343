"""
Ledger Engine

This module owns every account balance. It defines the flows for:
1. Creating, editing and deleting transactions
2. Creating, editing and deleting accounts
3. Replaying the stored transactions to check balances

DESIGN DECISION: The engine enforces the boundaries:
- Balances change only here, and only together with the transaction row
- A rule violation leaves every balance exactly as it was
- An edit is reverse-old then apply-new, validated in between
- Every mutation is logged

CRITICAL: Each public mutation is ONE storage transaction. Either the
balances, the transaction row and the derived contribution totals all
commit, or none of them do.
"""

from decimal import Decimal
from enum import IntEnum
from typing import Optional

from money_manager.cache import LEDGER_MUTATION_KEYS, CacheKey, ViewCache
from money_manager.config import LedgerSettings, get_settings
from money_manager.ledger.alerts import BudgetAlertChecker
from money_manager.ledger.hooks import ContributionHook
from money_manager.models.events import LedgerEventType
from money_manager.models.ledger import (
    Account,
    AccountIntent,
    Transaction,
    TransactionIntent,
    TransactionType,
    new_id,
    utc_now,
)
from money_manager.observability import LedgerEventLogger
from money_manager.repositories import AccountRepository, TransactionRepository
from money_manager.services.storage import NotFoundError, StorageBackend, StorageError
from money_manager.validation import (
    LedgerError,
    ValidationError,
    normalize_transaction,
    validate_account,
    validate_liability_balance,
    validate_liability_rules,
    validate_transaction_shape,
)


class BalanceDirection(IntEnum):
    """Sign multiplier for a transaction's balance effect."""
    APPLY = 1
    REVERSE = -1


def balance_effects(
    transaction: TransactionIntent,
    direction: BalanceDirection = BalanceDirection.APPLY,
) -> list[tuple[str, Decimal]]:
    """
    The signed balance deltas a transaction causes, source account first.

    - expense:  from -= amount
    - income:   to   += amount
    - transfer: from -= amount, to += amount

    Reversing negates every delta, so apply then reverse nets to zero.
    """
    amount = transaction.amount * int(direction)
    effects: list[tuple[str, Decimal]] = []

    if transaction.type in (TransactionType.EXPENSE, TransactionType.TRANSFER):
        if transaction.from_account_id:
            effects.append((transaction.from_account_id, -amount))

    if transaction.type in (TransactionType.INCOME, TransactionType.TRANSFER):
        if transaction.to_account_id:
            effects.append((transaction.to_account_id, amount))

    return effects


def _intent_fields(intent: TransactionIntent) -> dict:
    """The caller-supplied fields only, even when handed a full Transaction."""
    return intent.model_dump(include=set(TransactionIntent.model_fields))


class LedgerEngine:
    """
    Orchestrates atomic ledger mutations.

    Flow for every transaction mutation:
    1. Normalize the intent (transfer category, unused roles cleared)
    2. Validate shape, then liability rules against CURRENT balances
    3. Apply balance deltas and persist the row
    4. Notify the contribution hook (same unit of work)
    5. After commit: invalidate views, log, check the budget
    """

    def __init__(
        self,
        backend: StorageBackend,
        contribution_hook: Optional[ContributionHook] = None,
        alert_checker: Optional[BudgetAlertChecker] = None,
        cache: Optional[ViewCache] = None,
        event_logger: Optional[LedgerEventLogger] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        self._backend = backend
        self._accounts = AccountRepository(backend)
        self._transactions = TransactionRepository(backend)
        self._hook = contribution_hook
        self._alert_checker = alert_checker
        self._cache = cache or ViewCache()
        self._event_logger = event_logger or LedgerEventLogger()
        self._settings = settings or get_settings().ledger

    @property
    def accounts(self) -> AccountRepository:
        return self._accounts

    @property
    def transactions(self) -> TransactionRepository:
        return self._transactions

    # =========================================================================
    # Building blocks (callers must already be inside a unit of work)
    # =========================================================================

    async def apply_balances(
        self,
        transaction: TransactionIntent,
        direction: BalanceDirection,
    ) -> None:
        """Issue every balance delta of one transaction."""
        for account_id, delta in balance_effects(transaction, direction):
            await self._accounts.apply_balance_delta(account_id, delta)

    async def validate(self, intent: TransactionIntent) -> None:
        """
        Validate an already-normalized intent against the current state.

        Raises:
            ValidationError: Missing or conflicting account roles
            NotFoundError: A referenced account does not exist
            LedgerError: Any liability rule violation
        """
        validate_transaction_shape(intent)

        from_account = (
            await self._accounts.require(intent.from_account_id)
            if intent.from_account_id else None
        )
        to_account = (
            await self._accounts.require(intent.to_account_id)
            if intent.to_account_id else None
        )

        validate_liability_rules(intent, from_account, to_account)

    def normalize(self, intent: TransactionIntent) -> TransactionIntent:
        return normalize_transaction(intent, self._settings.transfer_category_id)

    async def post_transaction(self, transaction: Transaction) -> Transaction:
        """
        Validate, apply and persist a new transaction.

        Must run inside a unit of work; the scheduler calls this from its own
        unit so an occurrence and its run record commit together.
        """
        transaction = self.normalize(transaction)
        await self.validate(transaction)
        await self.apply_balances(transaction, BalanceDirection.APPLY)
        await self._transactions.create(transaction)
        await self._notify_contribution(transaction)

        return transaction

    async def _notify_contribution(self, *transactions: Transaction) -> None:
        if self._hook is None:
            return

        goal_ids = {t.goal_id for t in transactions if t.is_contribution and t.goal_id}
        investment_ids = {
            t.investment_id for t in transactions if t.is_contribution and t.investment_id
        }
        debt_ids = {t.debt_id for t in transactions if t.is_debt_payment}
        for goal_id in sorted(goal_ids):
            await self._hook.on_contribution_changed(goal_id=goal_id)
        for investment_id in sorted(investment_ids):
            await self._hook.on_contribution_changed(investment_id=investment_id)
        for debt_id in sorted(debt_ids):
            await self._hook.on_contribution_changed(debt_id=debt_id)

    async def _check_liability_balances(self, *transactions: Transaction) -> None:
        """Re-read every account the transactions touch once their deltas are in."""
        account_ids = {
            account_id
            for transaction in transactions
            for account_id, _ in balance_effects(transaction)
        }
        for account_id in sorted(account_ids):
            validate_liability_balance(await self._accounts.require(account_id))

    async def _require_transaction(self, transaction_id: str) -> Transaction:
        transaction = await self._transactions.get(transaction_id)
        if transaction is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        return transaction

    # =========================================================================
    # Transaction mutations
    # =========================================================================

    async def create_transaction(self, intent: TransactionIntent) -> Transaction:
        """
        Create a transaction and apply its balance effect atomically.

        Returns:
            The persisted transaction (normalized)

        Raises:
            ValidationError, NotFoundError, CreditLimitExceeded,
            NoOutstandingDue, OverpaymentExceedsOutstanding,
            MissingCreditLimit, StorageError
        """
        now = utc_now()
        transaction = Transaction(
            **_intent_fields(intent),
            id=new_id(),
            created_at=now,
            updated_at=now,
        )

        try:
            created = await self._backend.transaction(
                lambda: self.post_transaction(transaction)
            )
        except (LedgerError, StorageError) as e:
            self._event_logger.log_transaction_rejected(intent.type.value, intent.amount, e)
            raise

        self._event_logger.log_transaction_changed(
            LedgerEventType.TRANSACTION_CREATED,
            created.id,
            created.type.value,
            created.amount,
        )
        await self._after_commit(created)
        return created

    async def update_transaction(
        self,
        transaction_id: str,
        intent: TransactionIntent,
    ) -> Transaction:
        """
        Replace a transaction: reverse the old effect, validate the new
        intent against the post-reversal balances, apply the new effect.

        created_at and recurring_id of the stored row are kept.

        Raises:
            NotFoundError: Unknown transaction id
            LedgerError: The new intent violates a rule (nothing changes)
            LiabilityBalancePositive: Reversing the old effect would leave a
                card or loan with a positive balance
        """

        async def body() -> tuple[Transaction, Transaction]:
            old = await self._require_transaction(transaction_id)
            await self.apply_balances(old, BalanceDirection.REVERSE)

            new = self.normalize(Transaction(
                **_intent_fields(intent),
                id=old.id,
                recurring_id=old.recurring_id,
                created_at=old.created_at,
                updated_at=utc_now(),
            ))
            await self.validate(new)
            await self.apply_balances(new, BalanceDirection.APPLY)
            await self._check_liability_balances(old, new)
            await self._transactions.update(new)

            await self._notify_contribution(old, new)
            return old, new

        try:
            old, updated = await self._backend.transaction(body)
        except (LedgerError, StorageError) as e:
            self._event_logger.log_transaction_rejected(intent.type.value, intent.amount, e)
            raise

        self._event_logger.log_transaction_changed(
            LedgerEventType.TRANSACTION_UPDATED,
            updated.id,
            updated.type.value,
            updated.amount,
        )
        await self._after_commit(updated, old)
        return updated

    async def delete_transaction(self, transaction_id: str) -> Transaction:
        """
        Delete a transaction and reverse its balance effect atomically.

        Returns:
            The deleted transaction

        Raises:
            NotFoundError: Unknown transaction id
            LiabilityBalancePositive: Reversing it would leave a card or
                loan with a positive balance
        """

        async def body() -> Transaction:
            old = await self._require_transaction(transaction_id)
            await self.apply_balances(old, BalanceDirection.REVERSE)
            await self._check_liability_balances(old)
            await self._transactions.delete(old.id)
            await self._notify_contribution(old)
            return old

        try:
            deleted = await self._backend.transaction(body)
        except LedgerError as e:
            self._event_logger.log_error(
                error_type="transaction_delete_rejected",
                error_message=str(e),
                details={"transaction_id": transaction_id},
            )
            raise

        self._event_logger.log_transaction_changed(
            LedgerEventType.TRANSACTION_DELETED,
            deleted.id,
            deleted.type.value,
            deleted.amount,
        )
        await self._after_commit(deleted)
        return deleted

    async def _after_commit(self, *transactions: Transaction) -> None:
        self._cache.invalidate(*LEDGER_MUTATION_KEYS)
        if self._alert_checker is None:
            return

        # One check per touched (month, category) pair
        checked: set[tuple[str, str]] = set()
        for transaction in transactions:
            if transaction.type != TransactionType.EXPENSE:
                continue
            key = (transaction.month_key, transaction.category_id)
            if key in checked:
                continue
            checked.add(key)
            if await self._alert_checker.check(transaction) is not None:
                self._cache.invalidate(CacheKey.ALERTS)

    # =========================================================================
    # Accounts
    # =========================================================================

    async def create_account(self, intent: AccountIntent) -> Account:
        """
        Raises:
            MissingCreditLimit: Credit card without a positive limit
            ValidationError: Liability opened with a positive balance
        """
        validate_account(intent)

        account = Account(**intent.model_dump())
        await self._accounts.create(account)

        self._cache.invalidate(CacheKey.ACCOUNTS, CacheKey.STATS)
        self._event_logger.log_account_changed(
            LedgerEventType.ACCOUNT_CREATED, account.id, account.type.value
        )
        return account

    async def update_account(self, account_id: str, intent: AccountIntent) -> Account:
        """
        Edit an account's descriptive fields. The stored balance is kept;
        intent.balance is ignored.

        Raises:
            NotFoundError: Unknown account id
            MissingCreditLimit: Credit card without a positive limit
        """

        async def body() -> Account:
            current = await self._accounts.require(account_id)
            validate_account(intent.model_copy(update={"balance": current.balance}), account_id)

            updated = current.model_copy(update={
                **intent.model_dump(exclude={"balance"}),
                "updated_at": utc_now(),
            })
            await self._accounts.update(updated)
            return updated

        updated = await self._backend.transaction(body)

        self._cache.invalidate(CacheKey.ACCOUNTS, CacheKey.STATS)
        self._event_logger.log_account_changed(
            LedgerEventType.ACCOUNT_UPDATED, updated.id, updated.type.value
        )
        return updated

    async def delete_account(self, account_id: str) -> None:
        """
        Raises:
            NotFoundError: Unknown account id
            ValidationError: The account is referenced by transactions
        """

        async def body() -> Account:
            account = await self._accounts.require(account_id)
            if await self._accounts.has_transactions(account_id):
                raise ValidationError(
                    "This account has transactions. Delete or move them before deleting the account.",
                    field="account_id",
                )
            await self._accounts.delete(account_id)
            return account

        account = await self._backend.transaction(body)

        self._cache.invalidate(CacheKey.ACCOUNTS, CacheKey.STATS)
        self._event_logger.log_account_changed(
            LedgerEventType.ACCOUNT_DELETED, account.id, account.type.value
        )

    async def get_account(self, account_id: str) -> Optional[Account]:
        return await self._accounts.get(account_id)

    async def list_accounts(self, active_only: bool = False) -> list[Account]:
        return await self._cache.get_or_load(
            CacheKey.ACCOUNTS,
            lambda: self._accounts.list_all(active_only=active_only),
            variant=active_only,
        )

    async def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return await self._transactions.get(transaction_id)

    async def list_transactions(self) -> list[Transaction]:
        return await self._cache.get_or_load(CacheKey.TRANSACTIONS, self._transactions.list_all)

    # =========================================================================
    # Replay
    # =========================================================================

    async def replay_balances(
        self,
        opening_balances: dict[str, Decimal],
    ) -> dict[str, Decimal]:
        """
        Recompute every account balance from opening balances plus the
        effect of every stored transaction.

        Accounts missing from opening_balances start at zero. For a
        consistent ledger the result equals the stored balances.
        """
        balances = {
            account.id: opening_balances.get(account.id, Decimal("0"))
            for account in await self._accounts.list_all()
        }

        for transaction in await self._transactions.list_chronological():
            for account_id, delta in balance_effects(transaction):
                balances[account_id] = balances.get(account_id, Decimal("0")) + delta

        return balances
