"""
In-Memory Storage

Used by tests and by hosts that do not want anything on disk.
Values are kept JSON-encoded so they go through the same encode/decode
path as the file backend.
"""

import json
from typing import Any, Optional
from uuid import UUID

from pocket_ledger.models.audit import AuditEvent
from pocket_ledger.services.storage.interface import (
    AuditStorageInterface,
    CorruptDataError,
    LedgerStorageInterface,
    StorageError,
)


class InMemoryStorage(LedgerStorageInterface):
    """Key-value storage held in a dict of JSON strings."""

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self._items: dict[str, str] = {}
        for key, value in (initial or {}).items():
            self.set_item(key, value)

    def get_item(self, key: str) -> Optional[Any]:
        raw = self._items.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise CorruptDataError(f"Invalid JSON under '{key}': {e}")

    def set_item(self, key: str, value: Any) -> None:
        try:
            self._items[key] = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value is not JSON serializable: {e}")

    def set_items(self, items: dict[str, Any]) -> None:
        """Encode every value first; nothing is stored if one of them fails."""
        try:
            encoded = {key: json.dumps(value) for key, value in items.items()}
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value is not JSON serializable: {e}")
        self._items.update(encoded)

    def set_raw(self, key: str, raw: str) -> None:
        """Store an undecoded string as-is (for simulating damaged data)."""
        self._items[key] = raw

    def remove_item(self, key: str) -> bool:
        return self._items.pop(key, None) is not None

    def keys(self) -> list[str]:
        return sorted(self._items)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        return [e for e in self.events if e.correlation_id == correlation_id]

    def get_events_by_entity(self, entity_type: str, entity_id: str) -> list[AuditEvent]:
        return [
            e for e in self.events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self.events))[:limit]
