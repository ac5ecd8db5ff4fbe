"""
Main Orchestrator for Pocket Ledger

This module is the host around the ledger. It ties together storage, the
materialization engine and the audit trail, and defines the flows for:
1. Activation (load -> materialize due recurring expenses -> save)
2. Recording expenses, incomes and transfers
3. Deleting transactions and accounts

DESIGN DECISION: Every flow reads the whole snapshot, applies one batch of
changes in memory, and writes the whole snapshot back. Nothing is written
piecemeal, so storage never holds a transaction without its balance change.

Creating a recurring expense re-runs materialization straight away, so an
occurrence that is already due shows up without waiting for the next
activation.
"""

from datetime import date
from decimal import Decimal
from typing import Callable, Optional, Union
from uuid import UUID

from pocket_ledger.audit import AuditLogger, configure_logging, create_correlation_id
from pocket_ledger.config import get_settings
from pocket_ledger.ledger import Ledger
from pocket_ledger.models.ledger import (
    Expense,
    Income,
    MaterializationResult,
    Repeatability,
)
from pocket_ledger.models.validation import ValidationResult
from pocket_ledger.recurrence import materialize
from pocket_ledger.recurrence.engine import as_date
from pocket_ledger.services.storage import (
    InMemoryAuditStorage,
    InMemoryStorage,
    JsonFileStorage,
    JsonLinesAuditStorage,
    LedgerStorageInterface,
    StorageError,
)
from pocket_ledger.validation import LedgerValidator


class LedgerApp:
    """
    Orchestrates every flow that changes the ledger.

    Flow for each operation:
    1. Load → Read the full snapshot from storage
    2. Apply → Change the in-memory Ledger
    3. Save → Persist the full snapshot
    4. Audit → Record what happened
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        seed_defaults: bool = True,
        clock: Optional[Callable[[], date]] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger or AuditLogger()
        self._seed_defaults = seed_defaults
        self._clock = clock or date.today
        self._validator = LedgerValidator()

    def load(self) -> Ledger:
        """Load the current ledger from storage."""
        return Ledger.from_snapshot(self._storage.load_snapshot(self._seed_defaults))

    def _load(self, correlation_id: UUID, operation: str) -> Ledger:
        """Load the ledger, auditing unreadable or damaged storage before re-raising."""
        try:
            return self.load()
        except StorageError as e:
            self._audit_logger.log_error(
                error_type=type(e).__name__,
                error_message=str(e),
                details={"operation": operation},
                correlation_id=correlation_id,
            )
            raise

    def _today(self, today: Optional[Union[date, str]]) -> date:
        return as_date(today) if today is not None else self._clock()

    def _save(self, ledger: Ledger, correlation_id: UUID) -> None:
        """Persist the whole ledger, auditing success or failure."""
        try:
            self._storage.save_snapshot(ledger.snapshot())
        except StorageError as e:
            self._audit_logger.log_save_failed(str(e), correlation_id)
            raise
        self._audit_logger.log_snapshot_saved(
            expense_count=len(ledger.expenses),
            account_count=len(ledger.accounts),
            correlation_id=correlation_id,
        )

    def _materialize(
        self,
        ledger: Ledger,
        today: date,
        correlation_id: UUID,
    ) -> MaterializationResult:
        """Run the engine on `ledger`, swap in its output and save if anything moved."""
        result = materialize(ledger.expenses, ledger.accounts, today)
        if result.changed or result.backfilled:
            ledger.expenses = result.transactions
            ledger.accounts = result.accounts
            self._save(ledger, correlation_id)
        self._audit_logger.log_materialization(result, correlation_id)
        return result

    def activate(
        self,
        today: Optional[Union[date, str]] = None,
        correlation_id: Optional[UUID] = None,
    ) -> MaterializationResult:
        """
        Run on every application activation.

        Generates every recurring instance due on or before `today`
        (default: the clock's date) and saves the result if it changed.
        """
        correlation_id = correlation_id or create_correlation_id()
        today = self._today(today)
        self._audit_logger.log_app_activated(today.isoformat(), correlation_id)
        ledger = self._load(correlation_id, "activate")
        return self._materialize(ledger, today, correlation_id)

    def save_expense(
        self,
        amount: Decimal,
        account_id: str,
        on: Union[date, str],
        category_id: Optional[str] = None,
        notes: str = "",
        repeatability: Repeatability = Repeatability.NONE,
        used_linked_card: Optional[bool] = None,
        today: Optional[Union[date, str]] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Expense, Optional[MaterializationResult]]:
        """
        Record a new expense and debit its account.

        A recurring expense is stored as a recurring source processed
        through its own date, then materialization runs immediately.

        Returns:
            (expense, materialization_result); the result is None for
            one-off expenses
        """
        correlation_id = correlation_id or create_correlation_id()
        repeatability = Repeatability.parse(repeatability)
        recurring = repeatability != Repeatability.NONE
        on = as_date(on)

        expense = Expense(
            amount=amount,
            account_id=account_id,
            category_id=category_id,
            date=on,
            notes=notes,
            repeatability=repeatability,
            is_recurring_source=recurring,
            last_processed_date=on if recurring else None,
            used_linked_card=used_linked_card,
        )

        ledger = self._load(correlation_id, "save_expense")
        ledger.record_expense(expense)
        self._save(ledger, correlation_id)
        self._audit_logger.log_expense_saved(expense, correlation_id)

        if not recurring:
            return expense, None
        result = self._materialize(ledger, self._today(today), correlation_id)
        return expense, result

    def save_income(
        self,
        amount: Decimal,
        account_id: str,
        on: Union[date, str],
        category_id: Optional[str] = None,
        notes: str = "",
        correlation_id: Optional[UUID] = None,
    ) -> Income:
        """Record a new income and credit its account."""
        correlation_id = correlation_id or create_correlation_id()
        income = Income(
            amount=amount,
            account_id=account_id,
            category_id=category_id,
            date=as_date(on),
            notes=notes,
        )

        ledger = self._load(correlation_id, "save_income")
        ledger.record_income(income)
        self._save(ledger, correlation_id)
        self._audit_logger.log_income_saved(
            income_id=income.id,
            amount=str(income.amount),
            account_id=income.account_id,
            correlation_id=correlation_id,
        )
        return income

    def save_transfer(
        self,
        amount: Decimal,
        from_account_id: str,
        to_account_id: str,
        notes: str = "",
        on: Optional[Union[date, str]] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Expense, Income]:
        """Move money between two accounts."""
        correlation_id = correlation_id or create_correlation_id()

        ledger = self._load(correlation_id, "save_transfer")
        expense, income = ledger.record_transfer(
            amount=amount,
            from_account_id=from_account_id,
            to_account_id=to_account_id,
            notes=notes,
            on=self._today(on),
        )
        self._save(ledger, correlation_id)
        self._audit_logger.log_transfer_saved(
            expense_id=expense.id,
            income_id=income.id,
            amount=str(expense.amount),
            from_account_id=from_account_id,
            to_account_id=to_account_id,
            correlation_id=correlation_id,
        )
        return expense, income

    def delete_expense(
        self,
        expense_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Delete an expense and restore its amount to the account."""
        correlation_id = correlation_id or create_correlation_id()
        ledger = self._load(correlation_id, "delete_expense")
        if not ledger.delete_expense(expense_id):
            return False
        self._save(ledger, correlation_id)
        self._audit_logger.log_expense_deleted(expense_id, correlation_id)
        return True

    def delete_income(
        self,
        income_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Delete an income and take its amount back from the account."""
        correlation_id = correlation_id or create_correlation_id()
        ledger = self._load(correlation_id, "delete_income")
        if not ledger.delete_income(income_id):
            return False
        self._save(ledger, correlation_id)
        self._audit_logger.log_income_deleted(income_id, correlation_id)
        return True

    def delete_account(
        self,
        account_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Delete an account.

        Its transactions stay. Recurring sources charged to it keep
        generating instances; those instances simply adjust no balance.
        """
        correlation_id = correlation_id or create_correlation_id()
        ledger = self._load(correlation_id, "delete_account")
        if not ledger.delete_account(account_id):
            return False
        self._save(ledger, correlation_id)
        self._audit_logger.log_account_deleted(account_id, correlation_id)
        return True

    def validate(self, correlation_id: Optional[UUID] = None) -> ValidationResult:
        """Check the stored ledger for consistency problems."""
        correlation_id = correlation_id or create_correlation_id()
        ledger = self._load(correlation_id, "validate")
        return self._validator.validate(ledger.snapshot())


def create_app_components(
    use_storage: bool = True,
) -> LedgerApp:
    """
    Factory function to create the application from settings.

    Args:
        use_storage: Whether to keep data in JSON files on disk.
                    Set to False for an in-memory ledger.

    Returns:
        A ready LedgerApp
    """
    settings = get_settings()
    configure_logging(settings.app.effective_log_level)

    if use_storage:
        storage_settings = settings.storage
        storage = JsonFileStorage(storage_settings.data_dir)
        audit_storage = (
            JsonLinesAuditStorage(storage_settings.audit_path)
            if storage_settings.persist_audit_events
            else None
        )
    else:
        storage = InMemoryStorage()
        audit_storage = InMemoryAuditStorage()

    return LedgerApp(
        storage=storage,
        audit_logger=AuditLogger(audit_storage),
        seed_defaults=settings.app.seed_defaults,
    )
