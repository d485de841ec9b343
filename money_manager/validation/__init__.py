"""Ledger validation rules and the errors they raise."""

from money_manager.validation.rules import (
    CreditLimitExceeded,
    LedgerError,
    LiabilityBalancePositive,
    MissingCreditLimit,
    NoOutstandingDue,
    OverpaymentExceedsOutstanding,
    ValidationError,
    normalize_transaction,
    validate_account,
    validate_liability_balance,
    validate_liability_rules,
    validate_transaction_shape,
)

__all__ = [
    # Errors
    "CreditLimitExceeded",
    "LedgerError",
    "LiabilityBalancePositive",
    "MissingCreditLimit",
    "NoOutstandingDue",
    "OverpaymentExceedsOutstanding",
    "ValidationError",
    # Rules
    "normalize_transaction",
    "validate_account",
    "validate_liability_balance",
    "validate_liability_rules",
    "validate_transaction_shape",
]
