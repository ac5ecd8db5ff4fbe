"""In-memory ledger store."""

from pocket_ledger.ledger.store import (
    DuplicateRecordError,
    Ledger,
    LedgerError,
    RecordNotFoundError,
)

__all__ = [
    "DuplicateRecordError",
    "Ledger",
    "LedgerError",
    "RecordNotFoundError",
]
