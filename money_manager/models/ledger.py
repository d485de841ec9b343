"""
Core Data Models for Money Manager

These models define the strict schemas for all data flowing through the ledger.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging
4. Keep money exact (Decimal everywhere, never float)

DESIGN DECISION: Shape constraints (positive amounts, valid enums, date keys)
live on the models. Rules that need account state (credit limits,
outstanding dues) live in the validation rules, because a model cannot see
the database.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union
from uuid import uuid4

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    model_validator,
)


def new_id() -> str:
    """Generate a new entity identifier."""
    return uuid4().hex


def utc_now() -> datetime:
    """Current UTC timestamp."""
    return datetime.now(timezone.utc)


def _normalize_date_key(value: Any) -> Any:
    """
    Accept YYYY-MM-DD keys, full ISO timestamps and date/datetime objects.

    Everything is reduced to the calendar date so that dates compare as keys.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        value = value.strip()
        if "T" in value:
            return value[:10]
    return value


DateKey = Annotated[date, BeforeValidator(_normalize_date_key)]


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class AccountType(str, Enum):
    """Supported account types."""
    SAVINGS = "savings"
    CHECKING = "checking"
    CASH = "cash"
    WALLET = "wallet"
    CREDIT_CARD = "credit_card"
    LOAN = "loan"
    INVESTMENT = "investment"


# Liability balances are stored as <= 0; |balance| is the amount owed
LIABILITY_ACCOUNT_TYPES = frozenset({AccountType.CREDIT_CARD, AccountType.LOAN})


class TransactionType(str, Enum):
    """Direction of money movement."""
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class RecurringFrequency(str, Enum):
    """How often a recurring schedule fires."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class RunStatus(str, Enum):
    """
    Outcome of one recurring occurrence.

    SUCCESS and SKIPPED resolve the date for good.
    FAILED is retried on the next scheduler pass.
    """
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class CategoryType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"
    BOTH = "both"


class GoalStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"
    CANCELLED = "cancelled"


class InvestmentType(str, Enum):
    MUTUAL_FUND = "mutual_fund"
    STOCKS = "stocks"
    NPS = "nps"
    PPF = "ppf"
    FD = "fd"
    GOLD = "gold"
    REAL_ESTATE = "real_estate"
    OTHER = "other"


class DebtType(str, Enum):
    LOAN = "loan"
    CREDIT_CARD = "credit_card"
    MORTGAGE = "mortgage"
    PERSONAL = "personal"


class BudgetStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    CLOSED = "closed"


class AlertType(str, Enum):
    """Kinds of notification records the ledger can raise."""
    BUDGET_WARNING = "budget_warning"
    BUDGET_EXCEEDED = "budget_exceeded"
    RECURRING_DUE = "recurring_due"
    RECURRING_FAILED = "recurring_failed"
    GOAL_MILESTONE = "goal_milestone"
    DEBT_DUE = "debt_due"


# =============================================================================
# ACCOUNTS
# =============================================================================

class AccountIntent(BaseModel):
    """
    What the user asks for when creating or editing an account.

    The opening balance is only honoured on creation. Editing an account
    never touches its balance - only the ledger engine does that.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name"
    )
    type: AccountType
    balance: Decimal = Field(
        default=Decimal("0"),
        description="Opening balance (liabilities are entered as <= 0)"
    )
    credit_limit: Optional[Decimal] = Field(
        default=None,
        description="Credit limit, required for credit cards"
    )
    icon: Optional[str] = None
    color: Optional[str] = None
    is_active: bool = True


class Account(BaseModel):
    """
    A place money lives (or is owed).

    CRITICAL: For credit_card/loan accounts balance is <= 0 and
    abs(balance) is the outstanding amount.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=100)
    type: AccountType
    balance: Decimal = Decimal("0")
    credit_limit: Optional[Decimal] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def is_liability(self) -> bool:
        return self.type in LIABILITY_ACCOUNT_TYPES

    @property
    def is_credit_card(self) -> bool:
        return self.type == AccountType.CREDIT_CARD

    @property
    def outstanding(self) -> Decimal:
        """Amount owed: abs(min(balance, 0))."""
        return abs(min(self.balance, Decimal("0")))

    @property
    def available_credit(self) -> Decimal:
        """Credit still available on the card (0 when no limit is set)."""
        limit = self.credit_limit or Decimal("0")
        return max(Decimal("0"), limit - self.outstanding)


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionIntent(BaseModel):
    """
    A requested ledger mutation, as it arrives from the caller.

    Role rules (which accounts each type needs) are checked by the
    validation rules so that they surface as ledger errors, not schema errors.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    type: TransactionType
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Always positive; the type decides the sign"
    )
    date: DateKey = Field(
        ...,
        description="Date the money moved"
    )
    category_id: str = Field(..., min_length=1)
    from_account_id: Optional[str] = None
    to_account_id: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=500)
    goal_id: Optional[str] = None
    investment_id: Optional[str] = None
    debt_id: Optional[str] = Field(
        default=None,
        description="Debt this expense pays down"
    )


class Transaction(TransactionIntent):
    """A persisted transaction."""

    id: str = Field(default_factory=new_id)
    recurring_id: Optional[str] = Field(
        default=None,
        description="Set when the scheduler generated this transaction"
    )
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def is_contribution(self) -> bool:
        """Income linked to a goal or investment feeds their totals."""
        return self.type == TransactionType.INCOME and bool(
            self.goal_id or self.investment_id
        )

    @property
    def is_debt_payment(self) -> bool:
        """Expenses linked to a debt reduce its outstanding amount."""
        return self.type == TransactionType.EXPENSE and bool(self.debt_id)

    @property
    def month_key(self) -> str:
        return self.date.strftime("%Y-%m")


# =============================================================================
# RECURRING SCHEDULES
# =============================================================================

class RecurringIntent(BaseModel):
    """What the user asks for when creating or editing a schedule."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=100)
    type: TransactionType
    amount: Decimal = Field(..., gt=0)
    frequency: RecurringFrequency
    day_of_month: Optional[int] = Field(
        default=None,
        ge=1,
        le=31,
        description="Anchor day for monthly schedules (clamped to short months)"
    )
    category_id: str = Field(..., min_length=1)
    from_account_id: Optional[str] = None
    to_account_id: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=500)
    is_active: bool = True
    start_date: DateKey = Field(
        ...,
        description="First occurrence date"
    )


class Recurring(BaseModel):
    """
    A recurring transaction template.

    next_run_date is the oldest occurrence not yet materialized.
    Only the scheduler moves it, and only after a successful run.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=100)
    type: TransactionType
    amount: Decimal = Field(..., gt=0)
    frequency: RecurringFrequency
    day_of_month: Optional[int] = Field(default=None, ge=1, le=31)
    category_id: str = Field(..., min_length=1)
    from_account_id: Optional[str] = None
    to_account_id: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool = True
    next_run_date: DateKey
    last_run_date: Optional[DateKey] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode='after')
    def validate_run_dates(self) -> 'Recurring':
        """The last run can never be after the next one."""
        if self.last_run_date and self.last_run_date >= self.next_run_date:
            raise ValueError("last_run_date must be before next_run_date")
        return self


class SuccessOutcome(BaseModel):
    """The occurrence produced a transaction."""
    status: Literal["success"] = "success"
    # Nulled if the user later deletes the generated transaction
    transaction_id: Optional[str] = None

    @property
    def is_resolved(self) -> bool:
        return True


class FailedOutcome(BaseModel):
    """The occurrence could not be materialized; retried next pass."""
    status: Literal["failed"] = "failed"
    reason: str = Field(..., min_length=1)

    @property
    def is_resolved(self) -> bool:
        return False


class SkippedOutcome(BaseModel):
    """The user chose not to materialize this occurrence."""
    status: Literal["skipped"] = "skipped"
    reason: Optional[str] = None

    @property
    def is_resolved(self) -> bool:
        return True


RunOutcome = Annotated[
    Union[SuccessOutcome, FailedOutcome, SkippedOutcome],
    Field(discriminator="status"),
]


class RecurringRun(BaseModel):
    """
    One row of the run ledger.

    CRITICAL: (recurring_id, run_date) is unique. This is what makes
    re-running the scheduler safe.
    """

    id: str = Field(default_factory=new_id)
    recurring_id: str
    run_date: DateKey
    outcome: RunOutcome
    attempts: int = Field(
        default=1,
        ge=0,
        description="How many times the scheduler tried this date"
    )

    @property
    def status(self) -> RunStatus:
        return RunStatus(self.outcome.status)

    @property
    def is_resolved(self) -> bool:
        return self.outcome.is_resolved

    @property
    def transaction_id(self) -> Optional[str]:
        return getattr(self.outcome, "transaction_id", None)

    @property
    def reason(self) -> Optional[str]:
        return getattr(self.outcome, "reason", None)


# =============================================================================
# SUPPORTING ENTITIES
# =============================================================================

class Category(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=100)
    type: CategoryType = CategoryType.EXPENSE
    icon: Optional[str] = None
    color: Optional[str] = None
    is_system: bool = False


class Goal(BaseModel):
    """
    A savings goal.

    saved_amount is derived: the sum of income transactions linked to the goal.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=100)
    target_amount: Decimal = Field(..., gt=0)
    saved_amount: Decimal = Decimal("0")
    target_date: Optional[DateKey] = None
    priority: int = 1
    status: GoalStatus = GoalStatus.ACTIVE
    account_id: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class Investment(BaseModel):
    """
    An investment holding.

    total_invested is derived from linked income transactions;
    current_value is user-maintained.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=100)
    type: InvestmentType = InvestmentType.OTHER
    account_id: Optional[str] = None
    total_invested: Decimal = Decimal("0")
    current_value: Decimal = Decimal("0")
    monthly_target: Optional[Decimal] = None
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class Debt(BaseModel):
    """
    A loan or other borrowing tracked outside the account balances.

    outstanding_amount is derived: principal minus the expenses linked to
    the debt, never below zero.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=100)
    type: DebtType = DebtType.LOAN
    principal_amount: Decimal = Field(..., gt=0)
    outstanding_amount: Decimal = Decimal("0")
    interest_rate: Decimal = Field(default=Decimal("0"), ge=0)
    emi_amount: Optional[Decimal] = Field(default=None, gt=0)
    emi_day: Optional[int] = Field(default=None, ge=1, le=31)
    start_date: DateKey
    end_date: Optional[DateKey] = None
    account_id: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode='after')
    def validate_term(self) -> 'Debt':
        if self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class BudgetLine(BaseModel):
    id: str = Field(default_factory=new_id)
    category_id: str
    planned: Decimal = Field(..., ge=0)
    alert_threshold: Optional[int] = Field(
        default=None,
        ge=1,
        le=100,
        description="Percent of planned spend that triggers a warning (None = ledger default)"
    )


class Budget(BaseModel):
    """A monthly spending plan, one per month."""

    id: str = Field(default_factory=new_id)
    month: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    status: BudgetStatus = BudgetStatus.ACTIVE
    lines: list[BudgetLine] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def line_for(self, category_id: str) -> Optional[BudgetLine]:
        return next((line for line in self.lines if line.category_id == category_id), None)


class Alert(BaseModel):
    """A notification record. Not part of the ledger invariant."""

    id: str = Field(default_factory=new_id)
    type: AlertType
    title: str = Field(..., max_length=200)
    message: str = Field(..., max_length=1000)
    is_read: bool = False
    data: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)


# =============================================================================
# REPORTING MODELS
# =============================================================================

class CategorySpend(BaseModel):
    category_id: str
    amount: Decimal


class MonthlyStats(BaseModel):
    """Income/expense summary for a period."""

    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")
    total_transfers: Decimal = Decimal("0")
    surplus: Decimal = Decimal("0")
    # Largest spend first
    category_breakdown: list[CategorySpend] = Field(default_factory=list)


class SchedulerReport(BaseModel):
    """What one scheduler pass did."""

    today: date
    materialized: list[Transaction] = Field(default_factory=list)
    failed: list[RecurringRun] = Field(default_factory=list)
    skipped_over: int = Field(
        default=0,
        ge=0,
        description="Already-resolved occurrences the pass stepped over"
    )
    disabled_schedule_ids: list[str] = Field(default_factory=list)
    # Storage errors the pass logged and stepped past
    errors: list[str] = Field(default_factory=list)
