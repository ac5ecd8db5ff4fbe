"""
Recurring Expense Materialization Engine

Turns recurring source expenses into the concrete instances that are due.

GUARANTEES:
1. Deterministic: the output depends only on the inputs and `today`
2. Idempotent: running again with the same `today` on its own output
   creates nothing and reports changed=False
3. Balanced: each generated instance debits its account exactly once
4. Pure: inputs are never mutated, nothing is persisted here

The engine works on a private copy of the ledger and returns new lists.
Persisting them is the host's job.
"""

from datetime import date, datetime
from typing import Iterable, Optional, Union

import structlog

from pocket_ledger.ledger.store import Ledger
from pocket_ledger.models.ledger import (
    Account,
    Expense,
    MaterializationResult,
    Repeatability,
    TransactionKind,
    new_id,
)
from pocket_ledger.recurrence.calendar import next_date, occurrences_between


logger = structlog.get_logger(__name__)


def as_date(value: Union[date, str]) -> date:
    """Accept a date, a datetime or a YYYY-MM-DD string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def processed_through(source: Expense) -> date:
    """Date through which a source has been materialized; legacy sources fall back to their own date."""
    return source.last_processed_date or source.date


def instantiate(source: Expense, occurrence: date) -> Expense:
    """Build the concrete instance of `source` for one occurrence date."""
    return source.model_copy(
        update={
            "id": new_id(),
            "date": occurrence,
            "is_recurring_source": False,
            "repeatability": Repeatability.NONE,
            "parent_expense_id": source.id,
            "last_processed_date": None,
        },
        deep=True,
    )


def pending_occurrences(source: Expense, today: Union[date, str]) -> list[date]:
    """Occurrence dates that a materialization run on `today` would create."""
    if source.kind != TransactionKind.SOURCE:
        return []
    return list(occurrences_between(processed_through(source), source.repeatability, as_date(today)))


def next_due_date(source: Expense) -> Optional[date]:
    """The next occurrence after the last processed one, or None for non-sources."""
    if source.kind != TransactionKind.SOURCE:
        return None
    return next_date(processed_through(source), source.repeatability)


def materialize(
    transactions: Iterable[Expense],
    accounts: Iterable[Account],
    today: Union[date, str],
) -> MaterializationResult:
    """
    Generate every missing instance of every recurring source up to `today`.

    For each source, starting from its last processed date (or its own date
    when that is missing), every occurrence on or before `today` becomes a
    new instance appended to the transaction list, and the instance's
    account is debited by its amount. If that account no longer exists the
    instance is still created and the debit is skipped. The source's last
    processed date is then set to the last occurrence reached.

    Records that are not well-formed sources are left untouched.

    Returns:
        MaterializationResult with the new transaction and account lists
    """
    today = as_date(today)
    ledger = Ledger(
        expenses=[t.model_copy(deep=True) for t in transactions],
        accounts=[a.model_copy(deep=True) for a in accounts],
    )

    created: list[Expense] = []
    skipped: list[str] = []
    backfilled: list[str] = []

    # Sources are fixed before any instance is appended
    sources = []
    for expense in ledger.expenses:
        if expense.kind == TransactionKind.SOURCE:
            sources.append(expense)
        elif expense.is_recurring_source:
            logger.debug(
                "malformed_recurring_source",
                expense_id=expense.id,
                repeatability=expense.repeatability.value,
                parent_expense_id=expense.parent_expense_id,
            )

    for source in sources:
        cursor = processed_through(source)

        for occurrence in occurrences_between(cursor, source.repeatability, today):
            instance = ledger.append_transaction(instantiate(source, occurrence))
            created.append(instance)

            if not ledger.adjust_balance(instance.account_id, -instance.amount):
                skipped.append(instance.id)
                logger.warning(
                    "account_missing_for_instance",
                    source_id=source.id,
                    instance_id=instance.id,
                    account_id=instance.account_id,
                )

            logger.debug(
                "instance_materialized",
                source_id=source.id,
                instance_id=instance.id,
                date=occurrence.isoformat(),
                amount=str(instance.amount),
            )
            cursor = occurrence

        if source.last_processed_date is None:
            backfilled.append(source.id)
        if source.last_processed_date != cursor:
            ledger.update_transaction_field(source.id, "last_processed_date", cursor)

    return MaterializationResult(
        transactions=ledger.expenses,
        accounts=ledger.accounts,
        changed=bool(created),
        created=created,
        skipped_balance_updates=skipped,
        backfilled=backfilled,
        sources_processed=len(sources),
    )
