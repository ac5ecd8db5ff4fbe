"""
Abstract Storage Interface

DESIGN DECISION: Storage is a plain key-value store, one JSON value per
key, the same shape the browser version of the app kept in localStorage
(expenses, incomes, categories, income_categories, accounts).
This allows us to:
1. Swap the JSON file for another backend later
2. Use in-memory storage for testing
3. Load data exported by the browser version without conversion

Snapshot loading and saving are built on top of the four key-value
primitives, so every backend gets them for free.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional
from uuid import UUID

from pydantic import TypeAdapter, ValidationError

from pocket_ledger.models.audit import AuditEvent
from pocket_ledger.models.ledger import (
    Account,
    Category,
    Expense,
    Income,
    LedgerSnapshot,
    default_accounts,
    default_categories,
    default_income_categories,
)


# Storage key -> (model of each record, factory for a first-run value)
SNAPSHOT_KEYS = {
    "expenses": (Expense, list),
    "incomes": (Income, list),
    "categories": (Category, default_categories),
    "income_categories": (Category, default_income_categories),
    "accounts": (Account, default_accounts),
}


class LedgerStorageInterface(ABC):
    """
    Abstract interface for ledger storage.

    Any storage implementation must implement the key-value primitives.
    Values are JSON-compatible Python objects (lists, dicts, strings...).
    """

    @abstractmethod
    def get_item(self, key: str) -> Optional[Any]:
        """
        Read the value stored under a key.

        Returns:
            The decoded value, or None if the key is not set

        Raises:
            CorruptDataError: If the stored value cannot be decoded
        """
        pass

    @abstractmethod
    def set_item(self, key: str, value: Any) -> None:
        """
        Store a value under a key, replacing any previous value.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def remove_item(self, key: str) -> bool:
        """
        Remove a key.

        Returns:
            True if the key existed
        """
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        """List all stored keys, sorted."""
        pass

    def set_items(self, items: dict[str, Any]) -> None:
        """
        Store several keys.

        Backends override this so that either every key is written or none
        is; save_snapshot relies on it.
        """
        for key, value in items.items():
            self.set_item(key, value)

    def load_snapshot(self, seed_defaults: bool = True) -> LedgerSnapshot:
        """
        Load the whole ledger.

        Missing keys start empty, or with the default accounts and
        categories when seed_defaults is set.

        Raises:
            CorruptDataError: If a stored collection fails validation
        """
        collections = {}
        for key, (model, factory) in SNAPSHOT_KEYS.items():
            raw = self.get_item(key)
            if raw is None:
                collections[key] = factory() if seed_defaults else []
                continue
            try:
                collections[key] = TypeAdapter(list[model]).validate_python(raw)
            except ValidationError as e:
                raise CorruptDataError(f"Stored '{key}' failed validation: {e}")
        return LedgerSnapshot(**collections)

    def save_snapshot(self, snapshot: LedgerSnapshot) -> None:
        """
        Write the whole ledger with a single set_items call.

        Raises:
            StorageError: If any write fails
        """
        items = {}
        for key in SNAPSHOT_KEYS:
            records = getattr(snapshot, key)
            items[key] = [r.model_dump(mode="json", by_alias=True) for r in records]
        self.set_items(items)


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one activation).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific record.

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class CorruptDataError(StorageError):
    """Stored data could not be decoded or validated."""
    pass


class InvalidKeyError(StorageError):
    """Storage key is not allowed."""
    pass
