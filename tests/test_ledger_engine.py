"""Tests for the ledger engine: balances, liability rules, atomicity."""

import pytest
from datetime import date
from decimal import Decimal

from money_manager.cache import CacheKey
from money_manager.ledger import BalanceDirection, BudgetAlertChecker, LedgerEngine, balance_effects
from money_manager.models import (
    AccountIntent,
    AccountType,
    AlertType,
    Budget,
    BudgetLine,
    Debt,
    Goal,
    Investment,
    TransactionIntent,
    TransactionType,
)
from money_manager.models.events import LedgerEventType
from money_manager.repositories import (
    AlertRepository,
    BudgetRepository,
    CategoryRepository,
    TransactionRepository,
)
from money_manager.services.storage import NotFoundError, StorageError
from money_manager.validation import (
    CreditLimitExceeded,
    LiabilityBalancePositive,
    MissingCreditLimit,
    NoOutstandingDue,
    OverpaymentExceedsOutstanding,
    ValidationError,
)


def expense(from_account_id, amount, day=date(2024, 1, 15), category_id="cat_food", **extra):
    return TransactionIntent(
        type=TransactionType.EXPENSE,
        amount=Decimal(amount),
        date=day,
        category_id=category_id,
        from_account_id=from_account_id,
        **extra,
    )


def income(to_account_id, amount, day=date(2024, 1, 15), category_id="cat_salary", **extra):
    return TransactionIntent(
        type=TransactionType.INCOME,
        amount=Decimal(amount),
        date=day,
        category_id=category_id,
        to_account_id=to_account_id,
        **extra,
    )


def transfer(from_account_id, to_account_id, amount, day=date(2024, 1, 15)):
    return TransactionIntent(
        type=TransactionType.TRANSFER,
        amount=Decimal(amount),
        date=day,
        category_id="cat_other",
        from_account_id=from_account_id,
        to_account_id=to_account_id,
    )


class TestBalanceEffects:
    """Tests for the pure delta computation."""

    def test_effects_per_type(self):
        """Test signed deltas for each transaction type."""
        assert balance_effects(expense("a", "10")) == [("a", Decimal("-10"))]
        assert balance_effects(income("b", "10")) == [("b", Decimal("10"))]
        assert balance_effects(transfer("a", "b", "10")) == [
            ("a", Decimal("-10")),
            ("b", Decimal("10")),
        ]

    def test_reverse_negates(self):
        """Reversing negates every delta."""
        effects = balance_effects(transfer("a", "b", "10.25"), BalanceDirection.REVERSE)
        assert effects == [("a", Decimal("10.25")), ("b", Decimal("-10.25"))]


class TestTransactionLifecycle:
    """Create/update/delete through the engine."""

    def test_create_each_type(self, engine, make_account, balance_of, run):
        """Test balance effects of income, expense and transfer."""
        savings = make_account("Savings", balance="1000")
        cash = make_account("Cash", AccountType.CASH)

        run(engine.create_transaction(income(savings.id, "250.75")))
        run(engine.create_transaction(expense(savings.id, "50.25")))
        run(engine.create_transaction(transfer(savings.id, cash.id, "200")))

        assert balance_of(savings.id) == Decimal("1000.25")
        assert balance_of(cash.id) == Decimal("200")

    def test_create_returns_normalized_transaction(self, engine, make_account, run):
        """Transfers are persisted under the reserved category."""
        a = make_account("A", balance="100")
        b = make_account("B")

        created = run(engine.create_transaction(transfer(a.id, b.id, "10")))
        stored = run(engine.get_transaction(created.id))

        assert created.category_id == "cat_transfer"
        assert stored.category_id == "cat_transfer"
        assert stored.amount == Decimal("10")
        assert stored.date == date(2024, 1, 15)

    def test_transfer_edit(self, engine, make_account, balance_of, run):
        """A=1000, B=0; transfer 500 then edit to 300 -> A=700, B=300."""
        a = make_account("A", balance="1000")
        b = make_account("B")

        created = run(engine.create_transaction(transfer(a.id, b.id, "500")))
        assert (balance_of(a.id), balance_of(b.id)) == (Decimal("500"), Decimal("500"))

        run(engine.update_transaction(created.id, transfer(a.id, b.id, "300")))
        assert (balance_of(a.id), balance_of(b.id)) == (Decimal("700"), Decimal("300"))

    def test_update_can_move_accounts(self, engine, make_account, balance_of, run):
        """Changing the source account moves the effect completely."""
        a = make_account("A", balance="100")
        b = make_account("B", balance="100")

        created = run(engine.create_transaction(expense(a.id, "40")))
        run(engine.update_transaction(created.id, expense(b.id, "40")))

        assert balance_of(a.id) == Decimal("100")
        assert balance_of(b.id) == Decimal("60")

    def test_update_keeps_created_at(self, engine, make_account, run):
        """created_at survives an edit; updated_at moves."""
        a = make_account("A", balance="100")
        created = run(engine.create_transaction(expense(a.id, "40")))

        updated = run(engine.update_transaction(created.id, expense(a.id, "30")))
        stored = run(engine.get_transaction(created.id))

        assert updated.id == created.id
        assert stored.created_at == created.created_at
        assert stored.updated_at >= created.updated_at

    def test_delete_reverses(self, engine, make_account, balance_of, run):
        """Create then delete restores every touched balance exactly."""
        a = make_account("A", balance="123.45")
        b = make_account("B", balance="0.10")

        created = run(engine.create_transaction(transfer(a.id, b.id, "23.35")))
        deleted = run(engine.delete_transaction(created.id))

        assert deleted.id == created.id
        assert balance_of(a.id) == Decimal("123.45")
        assert balance_of(b.id) == Decimal("0.10")
        assert run(engine.get_transaction(created.id)) is None

    def test_unknown_transaction(self, engine, make_account, run):
        """Update and delete of a missing id fail with NotFoundError."""
        a = make_account("A")
        with pytest.raises(NotFoundError):
            run(engine.update_transaction("missing", expense(a.id, "1")))
        with pytest.raises(NotFoundError):
            run(engine.delete_transaction("missing"))

    def test_unknown_account(self, engine, run):
        """A referenced account that does not exist fails with NotFoundError."""
        with pytest.raises(NotFoundError):
            run(engine.create_transaction(expense("missing", "1")))
        assert run(engine.transactions.count()) == 0

    def test_shape_error(self, engine, make_account, run):
        """A transfer to the same account is rejected before anything changes."""
        a = make_account("A", balance="100")
        with pytest.raises(ValidationError):
            run(engine.create_transaction(transfer(a.id, a.id, "1")))


class TestLiabilityEnforcement:
    """Credit-card rules enforced by the engine."""

    def test_credit_limit_boundary(self, engine, make_account, balance_of, run):
        """limit 10000, balance -9000: 1000 succeeds, a further 1 fails."""
        card = make_account("Card", AccountType.CREDIT_CARD, "-9000", "10000")

        run(engine.create_transaction(expense(card.id, "1000")))
        assert balance_of(card.id) == Decimal("-10000")

        with pytest.raises(CreditLimitExceeded):
            run(engine.create_transaction(expense(card.id, "1")))
        assert balance_of(card.id) == Decimal("-10000")

    def test_over_limit_leaves_state_unchanged(self, engine, make_account, balance_of, run):
        """A rejected expense writes neither balance nor row."""
        card = make_account("Card", AccountType.CREDIT_CARD, "-9000", "10000")

        with pytest.raises(CreditLimitExceeded):
            run(engine.create_transaction(expense(card.id, "1001")))

        assert balance_of(card.id) == Decimal("-9000")
        assert run(engine.transactions.count()) == 0

    def test_reducing_card_expense_near_limit(self, engine, make_account, balance_of, run):
        """An edit is validated after reversing the old effect."""
        card = make_account("Card", AccountType.CREDIT_CARD, "0", "1000")
        created = run(engine.create_transaction(expense(card.id, "900")))

        run(engine.update_transaction(created.id, expense(card.id, "800")))
        assert balance_of(card.id) == Decimal("-800")

    def test_failed_update_rolls_back_reversal(self, engine, make_account, balance_of, run):
        """If the new intent breaks a rule, the old effect stays applied."""
        card = make_account("Card", AccountType.CREDIT_CARD, "0", "1000")
        created = run(engine.create_transaction(expense(card.id, "900")))

        with pytest.raises(CreditLimitExceeded):
            run(engine.update_transaction(created.id, expense(card.id, "1200")))

        assert balance_of(card.id) == Decimal("-900")
        assert run(engine.get_transaction(created.id)).amount == Decimal("900")

    def test_card_payment_rules(self, engine, make_account, balance_of, run):
        """Paying a card needs a due; paying it off exactly is fine."""
        savings = make_account("Savings", balance="5000")
        card = make_account("Card", AccountType.CREDIT_CARD, "0", "1000")

        with pytest.raises(NoOutstandingDue):
            run(engine.create_transaction(transfer(savings.id, card.id, "10")))

        run(engine.create_transaction(expense(card.id, "300")))
        run(engine.create_transaction(transfer(savings.id, card.id, "300")))

        assert balance_of(card.id) == Decimal("0")
        assert balance_of(savings.id) == Decimal("4700")


class TestConservation:
    """Balances always equal opening balances plus stored effects."""

    def test_replay_matches_stored_balances(self, engine, make_account, run):
        """Replay after a mix of creates, edits and deletes."""
        a = make_account("A", balance="1000")
        b = make_account("B", balance="50")
        card = make_account("Card", AccountType.CREDIT_CARD, "-100", "5000")
        opening = {a.id: Decimal("1000"), b.id: Decimal("50"), card.id: Decimal("-100")}

        t1 = run(engine.create_transaction(income(a.id, "500")))
        t2 = run(engine.create_transaction(expense(card.id, "250.50")))
        t3 = run(engine.create_transaction(transfer(a.id, b.id, "300")))
        run(engine.create_transaction(transfer(a.id, card.id, "100")))
        run(engine.update_transaction(t3.id, transfer(b.id, a.id, "25")))
        run(engine.update_transaction(t2.id, expense(card.id, "99.99")))
        run(engine.delete_transaction(t1.id))

        replayed = run(engine.replay_balances(opening))
        stored = {account.id: account.balance for account in run(engine.accounts.list_all())}
        assert replayed == stored


class TestContributions:
    """Goal and investment totals follow linked income."""

    def test_goal_saved_amount(self, components, make_account, run):
        """Saved amount is recomputed on create, edit and delete."""
        engine = components.engine
        savings = make_account("Savings")
        goal = Goal(name="Trip", target_amount=Decimal("10000"))
        goal = run(components.targets.create_goal(goal))

        t1 = run(engine.create_transaction(income(savings.id, "1000", goal_id=goal.id)))
        run(engine.create_transaction(income(savings.id, "500", goal_id=goal.id)))
        assert run(components.targets.get_goal(goal.id)).saved_amount == Decimal("1500")

        run(engine.update_transaction(t1.id, income(savings.id, "2000", goal_id=goal.id)))
        assert run(components.targets.get_goal(goal.id)).saved_amount == Decimal("2500")

        run(engine.update_transaction(t1.id, expense(savings.id, "2000", goal_id=goal.id)))
        assert run(components.targets.get_goal(goal.id)).saved_amount == Decimal("500")

    def test_investment_moves_between_holdings(self, components, make_account, run):
        """Relinking a contribution recalculates both old and new holdings."""
        engine = components.engine
        savings = make_account("Savings")
        fund = Investment(name="Index Fund")
        gold = Investment(name="Gold")
        fund = run(components.targets.create_investment(fund))
        gold = run(components.targets.create_investment(gold))

        created = run(engine.create_transaction(
            income(savings.id, "700", investment_id=fund.id)
        ))
        run(engine.update_transaction(
            created.id, income(savings.id, "700", investment_id=gold.id)
        ))

        assert run(components.targets.get_investment(fund.id)).total_invested == Decimal("0")
        assert run(components.targets.get_investment(gold.id)).total_invested == Decimal("700")

        run(engine.delete_transaction(created.id))
        assert run(components.targets.get_investment(gold.id)).total_invested == Decimal("0")


class TestBudgetAlerts:
    """Alerts raised after expenses cross a budget line's threshold."""

    def _budget(self, components, run, planned="1000", threshold=None):
        run(components.budgets.save(Budget(
            month="2024-01",
            lines=[BudgetLine(
                category_id="cat_food",
                planned=Decimal(planned),
                alert_threshold=threshold,
            )],
        )))

    def test_warning_then_exceeded(self, components, make_account, run):
        """80% raises a warning, 100% an exceeded alert."""
        self._budget(components, run)
        savings = make_account("Savings", balance="5000")
        engine = components.engine

        run(engine.create_transaction(expense(savings.id, "500")))
        assert run(components.inbox.list_alerts()) == []

        run(engine.create_transaction(expense(savings.id, "300")))
        alerts = run(components.inbox.list_alerts())
        assert [a.type for a in alerts] == [AlertType.BUDGET_WARNING]
        assert alerts[0].title == "Budget Alert: Food & Dining"
        assert alerts[0].data["percent"] == 80
        assert alerts[0].data["month"] == "2024-01"

        run(engine.create_transaction(expense(savings.id, "200")))
        types = {a.type for a in run(components.inbox.list_alerts())}
        assert AlertType.BUDGET_EXCEEDED in types

    def test_custom_threshold_and_other_months(self, components, make_account, run):
        """A line's own threshold wins; other months are not counted."""
        self._budget(components, run, threshold=95)
        savings = make_account("Savings", balance="5000")
        engine = components.engine

        run(engine.create_transaction(expense(savings.id, "900", day=date(2023, 12, 31))))
        run(engine.create_transaction(expense(savings.id, "900")))

        assert run(components.inbox.list_alerts()) == []

    def test_no_alert_for_income_or_other_categories(self, components, make_account, run):
        """Only expenses in budgeted categories are checked."""
        self._budget(components, run, planned="10")
        savings = make_account("Savings", balance="5000")
        engine = components.engine

        run(engine.create_transaction(income(savings.id, "100", category_id="cat_food")))
        run(engine.create_transaction(expense(savings.id, "100", category_id="cat_rent")))

        assert run(components.inbox.list_alerts()) == []

    def test_update_rechecks_budget(self, components, make_account, run):
        """Raising an expense through an edit can cross the threshold."""
        self._budget(components, run)
        savings = make_account("Savings", balance="5000")
        engine = components.engine

        created = run(engine.create_transaction(expense(savings.id, "500")))
        assert run(components.inbox.list_alerts()) == []

        run(engine.update_transaction(created.id, expense(savings.id, "900")))
        alerts = run(components.inbox.list_alerts())
        assert [a.type for a in alerts] == [AlertType.BUDGET_WARNING]
        assert alerts[0].data["percent"] == 90

    def test_delete_rechecks_budget(self, components, make_account, run):
        """After a delete the remaining spend is checked again."""
        self._budget(components, run)
        savings = make_account("Savings", balance="5000")
        engine = components.engine

        run(engine.create_transaction(expense(savings.id, "900")))
        extra = run(engine.create_transaction(expense(savings.id, "200")))
        assert len(run(components.inbox.list_alerts())) == 2

        run(engine.delete_transaction(extra.id))
        types = [a.type for a in run(components.inbox.list_alerts())]
        assert len(types) == 3
        assert types.count(AlertType.BUDGET_WARNING) == 2
        assert types.count(AlertType.BUDGET_EXCEEDED) == 1

    def test_failing_check_is_logged_not_raised(
        self, faulty_components, faulty_backend, make_faulty_account, event_log, run
    ):
        """An alert that cannot be written is logged; the expense stands."""
        self._budget(faulty_components, run)
        savings = make_faulty_account("Savings", balance="5000")
        checker = BudgetAlertChecker(
            budgets=BudgetRepository(faulty_backend),
            transactions=TransactionRepository(faulty_backend),
            categories=CategoryRepository(faulty_backend),
            alerts=AlertRepository(faulty_backend),
            event_logger=event_log,
        )
        engine = LedgerEngine(faulty_backend, alert_checker=checker, event_logger=event_log)

        faulty_backend.fail_when("INSERT INTO alerts")
        created = run(engine.create_transaction(expense(savings.id, "900")))

        assert run(engine.get_account(savings.id)).balance == Decimal("4100")
        assert run(engine.get_transaction(created.id)) is not None
        errors = [e for e in event_log.events if e.event_type == LedgerEventType.SYSTEM_ERROR]
        assert len(errors) == 1
        assert errors[0].description == "System error: budget_alert_check_failed"
        assert errors[0].details["transaction_id"] == created.id


class TestAccounts:
    """Account lifecycle owned by the engine."""

    def test_credit_card_requires_limit(self, engine, run):
        """Creating or editing a card without a limit fails."""
        with pytest.raises(MissingCreditLimit):
            run(engine.create_account(AccountIntent(name="Card", type=AccountType.CREDIT_CARD)))

        card = run(engine.create_account(AccountIntent(
            name="Card", type=AccountType.CREDIT_CARD, credit_limit=Decimal("1000")
        )))
        with pytest.raises(MissingCreditLimit):
            run(engine.update_account(card.id, AccountIntent(
                name="Card", type=AccountType.CREDIT_CARD, credit_limit=Decimal("0")
            )))

    def test_update_never_touches_balance(self, engine, make_account, balance_of, run):
        """The balance in an edit intent is ignored."""
        account = make_account("Savings", balance="300")

        updated = run(engine.update_account(account.id, AccountIntent(
            name="Main Savings", type=AccountType.SAVINGS, balance=Decimal("999999")
        )))

        assert updated.name == "Main Savings"
        assert balance_of(account.id) == Decimal("300")

    def test_delete_blocked_by_transactions(self, engine, make_account, run):
        """Accounts referenced by transactions cannot be deleted."""
        used = make_account("Used", balance="100")
        unused = make_account("Unused")
        run(engine.create_transaction(expense(used.id, "10")))

        with pytest.raises(ValidationError):
            run(engine.delete_account(used.id))

        run(engine.delete_account(unused.id))
        assert run(engine.get_account(unused.id)) is None

    def test_unknown_account_update(self, engine, run):
        """Editing a missing account fails with NotFoundError."""
        with pytest.raises(NotFoundError):
            run(engine.update_account("missing", AccountIntent(name="X", type=AccountType.CASH)))


class TestViewInvalidation:
    """Cached views are dropped on every committed mutation."""

    def test_mutation_clears_cached_views(self, components, make_account, run):
        """A cached account list is reloaded after a transaction."""
        engine = components.engine
        savings = make_account("Savings", balance="100")

        before = run(engine.list_accounts())
        assert CacheKey.ACCOUNTS in components.cache

        run(engine.create_transaction(expense(savings.id, "40")))
        assert CacheKey.ACCOUNTS not in components.cache

        after = run(engine.list_accounts())
        assert before[0].balance == Decimal("100")
        assert after[0].balance == Decimal("60")


class TestLiabilityInflows:
    """Every path into or out of a card or loan keeps its balance at or below zero."""

    def test_income_into_card(self, engine, make_account, balance_of, run):
        """Income on a card needs a due and cannot exceed it."""
        card = make_account("Card", AccountType.CREDIT_CARD, "0", "1000")

        with pytest.raises(NoOutstandingDue):
            run(engine.create_transaction(income(card.id, "50", category_id="cat_other")))
        assert balance_of(card.id) == Decimal("0")

        run(engine.create_transaction(expense(card.id, "300")))
        with pytest.raises(OverpaymentExceedsOutstanding):
            run(engine.create_transaction(income(card.id, "301", category_id="cat_other")))

        run(engine.create_transaction(income(card.id, "100", category_id="cat_other")))
        assert balance_of(card.id) == Decimal("-200")

    def test_transfer_out_of_card_past_limit(self, engine, make_account, balance_of, run):
        """A cash advance is spending and must fit the available credit."""
        card = make_account("Card", AccountType.CREDIT_CARD, "-900", "1000")
        savings = make_account("Savings")

        with pytest.raises(CreditLimitExceeded):
            run(engine.create_transaction(transfer(card.id, savings.id, "200")))

        assert balance_of(card.id) == Decimal("-900")
        assert balance_of(savings.id) == Decimal("0")

    def test_loan_repayment_capped(self, engine, make_account, balance_of, run):
        """A loan can be repaid exactly but not beyond what is owed."""
        savings = make_account("Savings", balance="5000")
        loan = make_account("Loan", AccountType.LOAN, "-800")

        with pytest.raises(OverpaymentExceedsOutstanding):
            run(engine.create_transaction(transfer(savings.id, loan.id, "900")))

        run(engine.create_transaction(transfer(savings.id, loan.id, "800")))
        assert balance_of(loan.id) == Decimal("0")
        assert balance_of(savings.id) == Decimal("4200")

    def test_delete_paid_off_card_expense(self, engine, make_account, balance_of, run):
        """Deleting a card expense that was already paid would leave the card positive."""
        savings = make_account("Savings", balance="1000")
        card = make_account("Card", AccountType.CREDIT_CARD, "0", "1000")
        spent = run(engine.create_transaction(expense(card.id, "300")))
        run(engine.create_transaction(transfer(savings.id, card.id, "300")))

        with pytest.raises(LiabilityBalancePositive) as exc_info:
            run(engine.delete_transaction(spent.id))

        assert exc_info.value.balance == Decimal("300")
        assert balance_of(card.id) == Decimal("0")
        assert run(engine.get_transaction(spent.id)) is not None

    def test_shrink_paid_off_card_expense(self, engine, make_account, balance_of, run):
        """Editing a paid card expense down is rejected and rolled back."""
        savings = make_account("Savings", balance="1000")
        card = make_account("Card", AccountType.CREDIT_CARD, "0", "1000")
        spent = run(engine.create_transaction(expense(card.id, "300")))
        run(engine.create_transaction(transfer(savings.id, card.id, "300")))

        with pytest.raises(LiabilityBalancePositive):
            run(engine.update_transaction(spent.id, expense(card.id, "200")))

        assert balance_of(card.id) == Decimal("0")
        assert run(engine.get_transaction(spent.id)).amount == Decimal("300")


class TestStorageFailures:
    """A storage error mid-mutation leaves every balance as it was."""

    def test_failed_row_update_keeps_balances(
        self, faulty_components, faulty_backend, make_faulty_account, run
    ):
        """A->B 500 edited to 300 with the row write failing: still 500/500."""
        engine = faulty_components.engine
        a = make_faulty_account("A", balance="1000")
        b = make_faulty_account("B")
        created = run(engine.create_transaction(transfer(a.id, b.id, "500")))

        faulty_backend.fail_when("UPDATE transactions")
        with pytest.raises(StorageError):
            run(engine.update_transaction(created.id, transfer(a.id, b.id, "300")))
        faulty_backend.clear_faults()

        assert run(engine.get_account(a.id)).balance == Decimal("500")
        assert run(engine.get_account(b.id)).balance == Decimal("500")
        assert run(engine.get_transaction(created.id)).amount == Decimal("500")

    def test_failed_row_insert_keeps_balances(
        self, faulty_components, faulty_backend, make_faulty_account, run
    ):
        """The balance delta is rolled back when the row cannot be inserted."""
        engine = faulty_components.engine
        a = make_faulty_account("A", balance="1000")

        faulty_backend.fail_when("INSERT INTO transactions")
        with pytest.raises(StorageError):
            run(engine.create_transaction(expense(a.id, "250")))
        faulty_backend.clear_faults()

        assert run(engine.get_account(a.id)).balance == Decimal("1000")
        assert run(engine.transactions.count()) == 0


class TestDebts:
    """Debt outstanding follows the linked expense payments."""

    def _debt(self, components, run, principal="10000"):
        return run(components.targets.create_debt(Debt(
            name="Car Loan",
            principal_amount=Decimal(principal),
            outstanding_amount=Decimal("5"),
            start_date=date(2024, 1, 1),
        )))

    def test_new_debt_owes_principal(self, components, run):
        """outstanding_amount from the caller is ignored on create."""
        debt = self._debt(components, run)

        assert debt.outstanding_amount == Decimal("10000")
        assert run(components.targets.get_debt(debt.id)).outstanding_amount == Decimal("10000")

    def test_payments_reduce_outstanding(self, components, make_account, run):
        """Create, edit and delete of a payment all recompute the debt."""
        engine = components.engine
        targets = components.targets
        savings = make_account("Savings", balance="20000")
        debt = self._debt(components, run)

        paid = run(engine.create_transaction(expense(savings.id, "2500", debt_id=debt.id)))
        assert run(targets.get_debt(debt.id)).outstanding_amount == Decimal("7500")
        assert run(components.stats.total_debt_outstanding()) == Decimal("7500")

        run(engine.update_transaction(paid.id, expense(savings.id, "3000", debt_id=debt.id)))
        assert run(targets.get_debt(debt.id)).outstanding_amount == Decimal("7000")

        run(engine.delete_transaction(paid.id))
        assert run(targets.get_debt(debt.id)).outstanding_amount == Decimal("10000")
        assert run(components.stats.total_debt_outstanding()) == Decimal("10000")

    def test_outstanding_never_negative(self, components, make_account, run):
        """Paying more than the principal clears the debt at zero."""
        savings = make_account("Savings", balance="20000")
        debt = self._debt(components, run)

        run(components.engine.create_transaction(
            expense(savings.id, "12000", debt_id=debt.id)
        ))
        assert run(components.targets.get_debt(debt.id)).outstanding_amount == Decimal("0")

    def test_income_is_not_a_payment(self, components, make_account, run):
        """Only expenses pay a debt down."""
        savings = make_account("Savings")
        debt = self._debt(components, run)

        run(components.engine.create_transaction(income(savings.id, "500", debt_id=debt.id)))
        assert run(components.targets.get_debt(debt.id)).outstanding_amount == Decimal("10000")

    def test_principal_edit_recomputes(self, components, make_account, run):
        """Raising the principal keeps the payments already made."""
        savings = make_account("Savings", balance="20000")
        debt = self._debt(components, run)
        run(components.engine.create_transaction(
            expense(savings.id, "2500", debt_id=debt.id)
        ))

        updated = run(components.targets.update_debt(
            debt.id, debt.model_copy(update={"principal_amount": Decimal("12000")})
        ))

        assert updated.principal_amount == Decimal("12000")
        assert updated.outstanding_amount == Decimal("9500")
        assert updated.created_at == debt.created_at

    def test_delete_unlinks_payments(self, components, make_account, balance_of, run):
        """The payment and its balance effect survive the debt."""
        savings = make_account("Savings", balance="20000")
        debt = self._debt(components, run)
        paid = run(components.engine.create_transaction(
            expense(savings.id, "2500", debt_id=debt.id)
        ))

        run(components.targets.delete_debt(debt.id))

        assert run(components.targets.get_debt(debt.id)) is None
        assert run(components.engine.get_transaction(paid.id)).debt_id is None
        assert balance_of(savings.id) == Decimal("17500")
        assert run(components.stats.total_debt_outstanding()) == Decimal("0")

        with pytest.raises(NotFoundError):
            run(components.targets.delete_debt(debt.id))

    def test_debt_list_refreshes_after_payment(self, components, make_account, run):
        """A cached debt list is dropped by a ledger mutation."""
        savings = make_account("Savings", balance="20000")
        debt = self._debt(components, run)

        assert run(components.targets.list_debts())[0].outstanding_amount == Decimal("10000")
        assert CacheKey.DEBTS in components.cache

        run(components.engine.create_transaction(
            expense(savings.id, "1000", debt_id=debt.id)
        ))
        assert CacheKey.DEBTS not in components.cache
        assert run(components.targets.list_debts())[0].outstanding_amount == Decimal("9000")


class TestTargets:
    """Editing and deleting goals and investments."""

    def test_goal_edit_keeps_saved_amount(self, components, make_account, run):
        """The saved amount is derived and never taken from an edit."""
        savings = make_account("Savings")
        goal = run(components.targets.create_goal(
            Goal(name="Trip", target_amount=Decimal("10000"))
        ))
        run(components.engine.create_transaction(income(savings.id, "1000", goal_id=goal.id)))

        updated = run(components.targets.update_goal(goal.id, Goal(
            name="Long Trip",
            target_amount=Decimal("20000"),
            saved_amount=Decimal("999"),
        )))

        stored = run(components.targets.get_goal(goal.id))
        assert updated.id == goal.id
        assert stored.name == "Long Trip"
        assert stored.target_amount == Decimal("20000")
        assert stored.saved_amount == Decimal("1000")

    def test_goal_delete_unlinks_contributions(self, components, make_account, run):
        """Contributions stay, without their goal."""
        savings = make_account("Savings")
        goal = run(components.targets.create_goal(
            Goal(name="Trip", target_amount=Decimal("10000"))
        ))
        created = run(components.engine.create_transaction(
            income(savings.id, "1000", goal_id=goal.id)
        ))
        assert len(run(components.targets.list_goals())) == 1

        run(components.targets.delete_goal(goal.id))

        assert run(components.targets.list_goals()) == []
        assert run(components.engine.get_transaction(created.id)).goal_id is None

    def test_investment_edit_and_delete(self, components, make_account, run):
        """current_value is editable; total_invested is kept."""
        savings = make_account("Savings")
        fund = run(components.targets.create_investment(Investment(name="Index Fund")))
        run(components.engine.create_transaction(
            income(savings.id, "700", investment_id=fund.id)
        ))

        run(components.targets.update_investment(fund.id, Investment(
            name="Index Fund", current_value=Decimal("1200")
        )))
        stored = run(components.targets.get_investment(fund.id))
        assert stored.current_value == Decimal("1200")
        assert stored.total_invested == Decimal("700")

        run(components.targets.delete_investment(fund.id))
        assert run(components.targets.list_investments()) == []

    def test_unknown_targets(self, components, run):
        """Edits and deletes of missing ids fail with NotFoundError."""
        with pytest.raises(NotFoundError):
            run(components.targets.update_goal(
                "missing", Goal(name="X", target_amount=Decimal("1"))
            ))
        with pytest.raises(NotFoundError):
            run(components.targets.update_investment("missing", Investment(name="X")))
        with pytest.raises(NotFoundError):
            run(components.targets.delete_goal("missing"))


class TestAlertInbox:
    """Read flags on alerts."""

    def test_mark_read(self, components, make_account, run):
        """One alert, then all alerts, are marked read."""
        run(components.budgets.save(Budget(
            month="2024-01",
            lines=[BudgetLine(category_id="cat_food", planned=Decimal("100"))],
        )))
        savings = make_account("Savings", balance="5000")
        run(components.engine.create_transaction(expense(savings.id, "90")))
        run(components.engine.create_transaction(expense(savings.id, "20")))

        inbox = components.inbox
        alerts = run(inbox.list_alerts())
        assert len(run(inbox.list_alerts(unread_only=True))) == 2

        run(inbox.mark_read(alerts[0].id))
        unread = run(inbox.list_alerts(unread_only=True))
        assert [a.id for a in unread] == [alerts[1].id]

        run(inbox.mark_all_read())
        assert run(inbox.list_alerts(unread_only=True)) == []
        assert len(run(inbox.list_alerts())) == 2
