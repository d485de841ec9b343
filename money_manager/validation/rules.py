"""
Two-Stage Ledger Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SHAPE VALIDATION:
- Which account roles each transaction type needs
- Transfers must move money between two different accounts
- Roles a type does not use are cleared during normalization
- This needs nothing but the intent itself

STAGE 2 - LIABILITY VALIDATION:
- Credit-card spending must fit inside the available credit
- Paying into a card or loan requires an outstanding due, and never more than it
- This needs the CURRENT account state, so the ledger engine runs it
  inside the same unit of work that applies the balances

IMPORTANT: Validation NEVER silently fixes amounts.
A rejected intent leaves every balance untouched.
"""

from decimal import Decimal
from typing import Optional, TypeVar

from money_manager.models.ledger import (
    Account,
    AccountIntent,
    AccountType,
    LIABILITY_ACCOUNT_TYPES,
    TransactionIntent,
    TransactionType,
)


IntentT = TypeVar("IntentT", bound=TransactionIntent)


# =============================================================================
# Errors
# =============================================================================

class LedgerError(Exception):
    """Base exception for rejected ledger mutations."""
    pass


class ValidationError(LedgerError):
    """The intent is malformed (missing or conflicting account roles)."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class CreditLimitExceeded(LedgerError):
    """A credit-card expense does not fit in the remaining credit."""

    def __init__(
        self,
        available: Decimal,
        amount: Decimal,
        limit: Decimal,
        outstanding: Decimal,
    ):
        self.available = available
        self.amount = amount
        self.limit = limit
        self.outstanding = outstanding
        super().__init__(
            f"Credit limit exceeded. Available: {available}, trying to spend: {amount} "
            f"(outstanding {outstanding}, limit {limit})"
        )


class NoOutstandingDue(LedgerError):
    """Money was sent into a liability account that owes nothing."""

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"No outstanding due on liability account {account_id}")


class OverpaymentExceedsOutstanding(LedgerError):
    """A payment into a liability account is larger than what is owed."""

    def __init__(self, outstanding: Decimal, amount: Decimal):
        self.outstanding = outstanding
        self.amount = amount
        super().__init__(
            f"Payment exceeds outstanding due. Outstanding: {outstanding}, paying: {amount}"
        )


class LiabilityBalancePositive(LedgerError):
    """A mutation would leave a credit card or loan holding a positive balance."""

    def __init__(self, account_id: str, balance: Decimal):
        self.account_id = account_id
        self.balance = balance
        super().__init__(
            f"Liability account {account_id} would hold a positive balance ({balance})"
        )


class MissingCreditLimit(LedgerError):
    """A credit card has no positive credit limit."""

    def __init__(self, account_id: Optional[str] = None):
        self.account_id = account_id
        target = f" for account {account_id}" if account_id else ""
        super().__init__(f"Credit card limit is required{target}")


# =============================================================================
# Stage 1 - shape
# =============================================================================

def normalize_transaction(intent: IntentT, transfer_category_id: str) -> IntentT:
    """
    Return a copy of the intent in canonical form.

    - transfers are always filed under the reserved transfer category
    - expenses carry no destination, incomes carry no source
    """
    update: dict = {}
    if intent.type == TransactionType.TRANSFER:
        update["category_id"] = transfer_category_id
    elif intent.type == TransactionType.EXPENSE:
        update["to_account_id"] = None
    elif intent.type == TransactionType.INCOME:
        update["from_account_id"] = None

    return intent.model_copy(update=update)


def validate_transaction_shape(intent: TransactionIntent) -> None:
    """
    Check the account roles required by the transaction type.

    Raises:
        ValidationError: If a required role is missing or a transfer
            points at the same account twice
    """
    if intent.type == TransactionType.EXPENSE and not intent.from_account_id:
        raise ValidationError("An expense needs a source account", field="from_account_id")

    if intent.type == TransactionType.INCOME and not intent.to_account_id:
        raise ValidationError("An income needs a destination account", field="to_account_id")

    if intent.type == TransactionType.TRANSFER:
        if not intent.from_account_id or not intent.to_account_id:
            raise ValidationError(
                "A transfer needs both a source and a destination account",
                field="from_account_id" if not intent.from_account_id else "to_account_id",
            )
        if intent.from_account_id == intent.to_account_id:
            raise ValidationError(
                "A transfer must move money between two different accounts",
                field="to_account_id",
            )


# =============================================================================
# Stage 2 - liability rules
# =============================================================================

def validate_liability_rules(
    intent: TransactionIntent,
    from_account: Optional[Account] = None,
    to_account: Optional[Account] = None,
) -> None:
    """
    Check the intent against the current state of the accounts it touches.

    Must be called before any balance is mutated, with the accounts as they
    stand at that moment (for an update: after the old effect was reversed).

    - money leaving a credit card (expense or transfer) must fit the limit
    - money entering a card or loan (income or transfer) pays down the due

    Raises:
        MissingCreditLimit: Spending from a card that has no limit
        CreditLimitExceeded: Spending more than the card allows
        NoOutstandingDue: Paying a liability that owes nothing
        OverpaymentExceedsOutstanding: Paying a liability more than it owes
    """
    amount = intent.amount

    if (
        intent.type in (TransactionType.EXPENSE, TransactionType.TRANSFER)
        and from_account is not None
        and from_account.is_credit_card
    ):
        limit = from_account.credit_limit or Decimal("0")
        if limit <= 0:
            raise MissingCreditLimit(from_account.id)

        outstanding = from_account.outstanding
        available = from_account.available_credit
        if amount > available or outstanding + amount > limit:
            raise CreditLimitExceeded(
                available=available,
                amount=amount,
                limit=limit,
                outstanding=outstanding,
            )

    if (
        intent.type in (TransactionType.INCOME, TransactionType.TRANSFER)
        and to_account is not None
        and to_account.is_liability
    ):
        outstanding = to_account.outstanding
        if outstanding <= 0:
            raise NoOutstandingDue(to_account.id)
        if amount > outstanding:
            raise OverpaymentExceedsOutstanding(outstanding=outstanding, amount=amount)


def validate_liability_balance(account: Account) -> None:
    """
    Check a liability after deltas were applied to it.

    Reversing a card expense (edit or delete) can push the balance above
    zero even though every new intent passed validate_liability_rules.

    Raises:
        LiabilityBalancePositive: A card or loan ends up with balance > 0
    """
    if account.is_liability and account.balance > 0:
        raise LiabilityBalancePositive(account.id, account.balance)


def validate_account(intent: AccountIntent, account_id: Optional[str] = None) -> None:
    """
    Check the account invariants that hold at creation and on every edit.

    Raises:
        MissingCreditLimit: A credit card without a positive limit
        ValidationError: A liability opened with a positive balance
    """
    if intent.type == AccountType.CREDIT_CARD:
        if intent.credit_limit is None or intent.credit_limit <= 0:
            raise MissingCreditLimit(account_id)

    if intent.credit_limit is not None and intent.credit_limit < 0:
        raise ValidationError("Credit limit cannot be negative", field="credit_limit")

    if intent.type in LIABILITY_ACCOUNT_TYPES and intent.balance > 0:
        raise ValidationError(
            "Liability balances are entered as zero or negative (amount owed)",
            field="balance",
        )
