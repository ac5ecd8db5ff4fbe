"""
JSON File Storage Implementation

DESIGN DECISION: The whole ledger is one JSON document in a data directory
(`<data_dir>/ledger.json`), an object with one member per storage key. It
stays readable and editable by hand, needs no database, and its members
mirror the localStorage keys of the browser version of the app.

A snapshot touches several keys at once. Keeping them in one document means
one write covers all of them: the new document goes to a temporary file in
the same directory and is moved into place with a single os.replace, so a
reader sees either the old ledger or the new one, never a mix of both.

The audit trail is a separate JSON-lines file, appended to one event per
line.
"""

import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Optional
from uuid import UUID

import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from pocket_ledger.config import get_settings
from pocket_ledger.models.audit import AuditEvent
from pocket_ledger.services.storage.interface import (
    AuditStorageInterface,
    CorruptDataError,
    InvalidKeyError,
    LedgerStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)

KEY_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")
LEDGER_FILE_NAME = "ledger.json"


class JsonFileStorage(LedgerStorageInterface):
    """
    Key-value storage kept in a single JSON document.

    Keys are lowercase identifiers; anything else is rejected.
    """

    def __init__(self, data_dir: Optional[Path] = None, file_name: str = LEDGER_FILE_NAME):
        self._data_dir = Path(data_dir or get_settings().storage.data_dir)
        self._path = self._data_dir / file_name

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    @property
    def path(self) -> Path:
        return self._path

    @staticmethod
    def _check_key(key: str) -> None:
        if not KEY_PATTERN.match(key):
            raise InvalidKeyError(f"Invalid storage key: {key!r}")

    def _read_document(self) -> dict[str, Any]:
        """Read and decode the whole document; a missing file is an empty ledger."""
        if not self._path.exists():
            return {}
        try:
            document = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise CorruptDataError(f"Cannot decode {self._path.name}: {e}")
        except OSError as e:
            raise StorageError(f"Failed to read {self._path.name}: {e}")
        if not isinstance(document, dict):
            raise CorruptDataError(f"{self._path.name} does not hold a JSON object")
        return document

    def _write_document(self, document: dict[str, Any]) -> None:
        """
        Atomically replace the whole document.

        The staged temporary file is removed if it never reaches its place.
        """
        try:
            text = json.dumps(document, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value is not JSON serializable: {e}")

        tmp_path = None
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            tmp_path = self._stage(text)
            self._replace(tmp_path, self._path)
            tmp_path = None
        except OSError as e:
            raise StorageError(f"Failed to write {self._path.name}: {e}")
        finally:
            if tmp_path is not None:
                self._discard(tmp_path)

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, max=1),
        reraise=True,
    )
    def _stage(self, text: str) -> Path:
        """Write text to a fresh temporary file in the data directory."""
        fd, tmp_name = tempfile.mkstemp(dir=self._data_dir, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
        except OSError:
            self._discard(Path(tmp_name))
            raise
        return Path(tmp_name)

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, max=1),
        reraise=True,
    )
    def _replace(self, tmp_path: Path, path: Path) -> None:
        os.replace(tmp_path, path)

    @staticmethod
    def _discard(tmp_path: Path) -> None:
        try:
            tmp_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("temp_file_cleanup_failed", path=str(tmp_path), error=str(e))

    def get_item(self, key: str) -> Optional[Any]:
        """Read one key from the document."""
        self._check_key(key)
        return self._read_document().get(key)

    def set_item(self, key: str, value: Any) -> None:
        self.set_items({key: value})

    def set_items(self, items: dict[str, Any]) -> None:
        """
        Write several keys in one document replacement.

        Either every key is updated or, if the write fails, none is.
        """
        for key in items:
            self._check_key(key)
        document = self._read_document()
        document.update(items)
        self._write_document(document)

    def remove_item(self, key: str) -> bool:
        self._check_key(key)
        document = self._read_document()
        if key not in document:
            return False
        del document[key]
        self._write_document(document)
        return True

    def keys(self) -> list[str]:
        return sorted(k for k in self._read_document() if KEY_PATTERN.match(k))


class JsonLinesAuditStorage(AuditStorageInterface):
    """
    Append-only audit storage, one JSON-encoded event per line.

    Unreadable lines are skipped when reading; they never block appends.
    """

    def __init__(self, path: Optional[Path] = None):
        self._path = Path(path or get_settings().storage.audit_path)

    @property
    def path(self) -> Path:
        return self._path

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, max=1),
        reraise=True,
    )
    def _append_line(self, line: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("a", encoding="utf-8") as f:
            f.write(line + "\n")

    def append_event(self, event: AuditEvent) -> bool:
        try:
            self._append_line(event.model_dump_json())
            return True
        except OSError as e:
            raise StorageError(f"Failed to append audit event: {e}")

    def _read_events(self) -> list[AuditEvent]:
        if not self._path.exists():
            return []
        events = []
        for line in self._path.read_text(encoding="utf-8", errors="replace").splitlines():
            if not line.strip():
                continue
            try:
                events.append(AuditEvent.model_validate_json(line))
            except ValueError:
                continue
        return events

    def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        return [e for e in self._read_events() if e.correlation_id == correlation_id]

    def get_events_by_entity(self, entity_type: str, entity_id: str) -> list[AuditEvent]:
        return [
            e for e in self._read_events()
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._read_events()))[:limit]
