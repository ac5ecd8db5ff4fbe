"""Recurring expense calendar and materialization engine."""

from pocket_ledger.recurrence.calendar import next_date, occurrences_between
from pocket_ledger.recurrence.engine import (
    materialize,
    next_due_date,
    pending_occurrences,
)

__all__ = [
    "materialize",
    "next_date",
    "next_due_date",
    "occurrences_between",
    "pending_occurrences",
]
