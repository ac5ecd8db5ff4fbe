"""
Ledger Store

The in-memory owner of accounts, transactions and categories.

DESIGN DECISION: Every change to an account balance goes through this class,
alongside the transaction that causes it. The balance is a cache of the
transaction log; keeping both writes in one place is what keeps them in
step.

The store does no I/O. The host loads it from a LedgerSnapshot, applies a
batch of changes and writes a new snapshot back as a whole.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Optional

from pocket_ledger.models.ledger import (
    TRANSFER_CATEGORY_ID,
    Account,
    Category,
    CategoryKind,
    Expense,
    Income,
    LedgerSnapshot,
    Repeatability,
)


class Ledger:
    """
    Mutable collection of ledger records.

    Primitives used by the materialization engine:
    - append_transaction
    - update_transaction_field
    - adjust_balance

    Everything else mirrors what the user can do from the app's forms.
    Newly recorded expenses and incomes go to the front of their list
    (newest first); generated instances are appended at the end.
    """

    def __init__(
        self,
        expenses: Optional[list[Expense]] = None,
        incomes: Optional[list[Income]] = None,
        accounts: Optional[list[Account]] = None,
        categories: Optional[list[Category]] = None,
        income_categories: Optional[list[Category]] = None,
    ):
        self.expenses = list(expenses or [])
        self.incomes: list[Income] = list(incomes or [])
        self.accounts: list[Account] = list(accounts or [])
        self.categories: list[Category] = list(categories or [])
        self.income_categories: list[Category] = list(income_categories or [])

    @classmethod
    def from_snapshot(cls, snapshot: LedgerSnapshot) -> "Ledger":
        """Build a ledger from a snapshot. The snapshot itself is not shared."""
        copy = snapshot.model_copy(deep=True)
        return cls(
            expenses=copy.expenses,
            incomes=copy.incomes,
            accounts=copy.accounts,
            categories=copy.categories,
            income_categories=copy.income_categories,
        )

    @property
    def expenses(self) -> list[Expense]:
        return self._expenses

    @expenses.setter
    def expenses(self, expenses: list[Expense]) -> None:
        # Replacing the list rebuilds the ID index used for duplicate checks
        self._expenses = expenses
        self._expense_ids = {e.id for e in expenses}

    def snapshot(self) -> LedgerSnapshot:
        """Return a detached copy of the current state."""
        return LedgerSnapshot(
            expenses=self.expenses,
            incomes=self.incomes,
            accounts=self.accounts,
            categories=self.categories,
            income_categories=self.income_categories,
        ).model_copy(deep=True)

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    def get_expense(self, expense_id: str) -> Optional[Expense]:
        return next((e for e in self.expenses if e.id == expense_id), None)

    def get_income(self, income_id: str) -> Optional[Income]:
        return next((i for i in self.incomes if i.id == income_id), None)

    def get_account(self, account_id: str) -> Optional[Account]:
        return next((a for a in self.accounts if a.id == account_id), None)

    def instances_of(self, source_id: str) -> list[Expense]:
        """All generated instances of a recurring source, in list order."""
        return [e for e in self.expenses if e.parent_expense_id == source_id]

    # =========================================================================
    # PRIMITIVES
    # =========================================================================

    def append_transaction(self, expense: Expense) -> Expense:
        """
        Append an expense record without touching any balance.

        Raises:
            DuplicateRecordError: if an expense with the same ID exists
        """
        if expense.id in self._expense_ids:
            raise DuplicateRecordError(f"Expense already exists: {expense.id}")
        self.expenses.append(expense)
        self._expense_ids.add(expense.id)
        return expense

    def update_transaction_field(self, expense_id: str, field: str, value: Any) -> Expense:
        """
        Set one field of an existing expense. The value is validated.

        Raises:
            RecordNotFoundError: if no expense has this ID
            ValueError: if the field is unknown or is the immutable ID
        """
        if field not in Expense.model_fields:
            raise ValueError(f"Unknown expense field: {field}")
        if field == "id":
            raise ValueError("Expense IDs are immutable")

        expense = self.get_expense(expense_id)
        if expense is None:
            raise RecordNotFoundError(f"Expense not found: {expense_id}")
        setattr(expense, field, value)
        return expense

    def adjust_balance(self, account_id: str, delta: Decimal) -> bool:
        """
        Add a signed delta to an account balance.

        Returns False (and changes nothing) if the account does not exist.
        """
        account = self.get_account(account_id)
        if account is None:
            return False
        account.balance = account.balance + Decimal(str(delta))
        return True

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    def record_expense(self, expense: Expense) -> Expense:
        """Record a new expense and debit its account."""
        if expense.id in self._expense_ids:
            raise DuplicateRecordError(f"Expense already exists: {expense.id}")
        self.expenses.insert(0, expense)
        self._expense_ids.add(expense.id)
        self.adjust_balance(expense.account_id, -expense.amount)
        return expense

    def record_income(self, income: Income) -> Income:
        """Record a new income and credit its account."""
        if self.get_income(income.id) is not None:
            raise DuplicateRecordError(f"Income already exists: {income.id}")
        self.incomes.insert(0, income)
        self.adjust_balance(income.account_id, income.amount)
        return income

    def record_transfer(
        self,
        amount: Decimal,
        from_account_id: str,
        to_account_id: str,
        notes: str = "",
        on: Optional[date] = None,
    ) -> tuple[Expense, Income]:
        """
        Move money between two accounts.

        A transfer is stored as an expense on the source account and an
        income on the destination, both in the transfer category.

        Raises:
            ValueError: for a same-account transfer
            RecordNotFoundError: if either account is missing
        """
        if from_account_id == to_account_id:
            raise ValueError("Cannot transfer to the same account")

        from_account = self.get_account(from_account_id)
        to_account = self.get_account(to_account_id)
        if from_account is None:
            raise RecordNotFoundError(f"Account not found: {from_account_id}")
        if to_account is None:
            raise RecordNotFoundError(f"Account not found: {to_account_id}")

        on = on or date.today()
        # Model validation rejects non-positive amounts
        expense = Expense(
            amount=amount,
            account_id=from_account_id,
            category_id=TRANSFER_CATEGORY_ID,
            date=on,
            notes=f"Giroconto a {to_account.name}. {notes}",
            repeatability=Repeatability.NONE,
        )
        income = Income(
            amount=amount,
            account_id=to_account_id,
            category_id=TRANSFER_CATEGORY_ID,
            date=on,
            notes=f"Giroconto da {from_account.name}. {notes}",
        )
        self.record_expense(expense)
        self.record_income(income)
        return expense, income

    def delete_expense(self, expense_id: str) -> bool:
        """
        Remove an expense and give its amount back to the account.

        Deleting a generated instance does not make it reappear: its source's
        last processed date has already moved past it.
        """
        expense = self.get_expense(expense_id)
        if expense is None:
            return False
        self.expenses = [e for e in self.expenses if e.id != expense_id]
        self.adjust_balance(expense.account_id, expense.amount)
        return True

    def delete_income(self, income_id: str) -> bool:
        """Remove an income and take its amount back from the account."""
        income = self.get_income(income_id)
        if income is None:
            return False
        self.incomes = [i for i in self.incomes if i.id != income_id]
        self.adjust_balance(income.account_id, -income.amount)
        return True

    def clear_transactions(self) -> None:
        """Remove every expense and income. Balances are left as they are."""
        self.expenses = []
        self.incomes = []

    def import_data(self, payload: dict) -> None:
        """
        Replace whole collections from an exported payload.

        Only the keys present are replaced (expenses, incomes, categories,
        accounts). Records are validated before anything is replaced.
        """
        models = {
            "expenses": Expense,
            "incomes": Income,
            "categories": Category,
            "accounts": Account,
        }
        replaced = {
            key: [model.model_validate(item) for item in payload[key]]
            for key, model in models.items()
            if payload.get(key) is not None
        }
        for key, records in replaced.items():
            setattr(self, key, records)

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    def add_account(self, account: Account) -> Account:
        if self.get_account(account.id) is not None:
            raise DuplicateRecordError(f"Account already exists: {account.id}")
        self.accounts.append(account)
        return account

    def update_account(self, account: Account) -> Account:
        for idx, existing in enumerate(self.accounts):
            if existing.id == account.id:
                self.accounts[idx] = account
                return account
        raise RecordNotFoundError(f"Account not found: {account.id}")

    def delete_account(self, account_id: str) -> bool:
        """
        Remove an account.

        Transactions that reference it are kept; recurring sources charged to
        it keep generating instances without a balance to adjust.
        """
        before = len(self.accounts)
        self.accounts = [a for a in self.accounts if a.id != account_id]
        return len(self.accounts) != before

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    def _category_list(self, kind: CategoryKind) -> list[Category]:
        if kind == CategoryKind.INCOME:
            return self.income_categories
        return self.categories

    def add_category(
        self,
        category: Category,
        kind: CategoryKind = CategoryKind.EXPENSE,
    ) -> Category:
        categories = self._category_list(kind)
        if any(c.id == category.id for c in categories):
            raise DuplicateRecordError(f"Category already exists: {category.id}")
        categories.append(category)
        return category

    def update_category(
        self,
        category: Category,
        kind: CategoryKind = CategoryKind.EXPENSE,
    ) -> Category:
        categories = self._category_list(kind)
        for idx, existing in enumerate(categories):
            if existing.id == category.id:
                categories[idx] = category
                return category
        raise RecordNotFoundError(f"Category not found: {category.id}")

    def delete_category(
        self,
        category_id: str,
        kind: CategoryKind = CategoryKind.EXPENSE,
    ) -> bool:
        categories = self._category_list(kind)
        remaining = [c for c in categories if c.id != category_id]
        if len(remaining) == len(categories):
            return False
        categories[:] = remaining
        return True


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class RecordNotFoundError(LedgerError):
    """Referenced record does not exist."""
    pass


class DuplicateRecordError(LedgerError):
    """A record with the same ID already exists."""
    pass
