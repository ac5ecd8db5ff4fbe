"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Currently implements JSON files on local disk as the backend, plus an
in-memory backend, behind a swappable interface.
"""

from pocket_ledger.services.storage.interface import (
    SNAPSHOT_KEYS,
    AuditStorageInterface,
    CorruptDataError,
    InvalidKeyError,
    LedgerStorageInterface,
    StorageError,
)
from pocket_ledger.services.storage.json_file import (
    JsonFileStorage,
    JsonLinesAuditStorage,
)
from pocket_ledger.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryStorage,
)

__all__ = [
    # Interfaces
    "SNAPSHOT_KEYS",
    "AuditStorageInterface",
    "LedgerStorageInterface",
    # Exceptions
    "CorruptDataError",
    "InvalidKeyError",
    "StorageError",
    # JSON file implementation
    "JsonFileStorage",
    "JsonLinesAuditStorage",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryStorage",
]
