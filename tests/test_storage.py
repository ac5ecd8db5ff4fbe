"""
Tests for the storage backends.

File-backed tests use pytest's tmp_path; nothing outside it is touched.
"""

import json
import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from pocket_ledger.models.audit import AuditEventBuilder, AuditEventType
from pocket_ledger.models.ledger import (
    AccountType,
    Expense,
    LedgerSnapshot,
    Repeatability,
)
from pocket_ledger.services.storage import (
    CorruptDataError,
    InMemoryAuditStorage,
    InMemoryStorage,
    InvalidKeyError,
    JsonFileStorage,
    JsonLinesAuditStorage,
    StorageError,
)


# Data as written by the browser version of the app
LEGACY_EXPENSES = [
    {
        "id": "1712345678901",
        "amount": 30,
        "categoryId": "3",
        "accountId": "acc1",
        "date": "2024-01-15",
        "notes": "Affitto box",
        "repeatability": "Mensile",
        "isRecurringSource": True,
    },
    {
        "id": "1712345678999",
        "amount": 4.5,
        "categoryId": "4",
        "accountId": "acc4",
        "date": "2024-01-16",
        "notes": "",
        "repeatability": "Nessuna",
        "usedLinkedCard": False,
    },
]

LEGACY_ACCOUNTS = [
    {"id": "acc1", "name": "Conto Corrente", "balance": 970, "type": "Banca", "color": "#3B82F6"},
    {
        "id": "acc4",
        "name": "Portafoglio",
        "balance": -4.5,
        "type": "Contanti",
        "color": "#F59E0B",
        "cards": [],
        "updatedAt": 1712345678999,
    },
]


def sample_snapshot() -> LedgerSnapshot:
    snapshot = LedgerSnapshot.with_defaults()
    snapshot.expenses = [
        Expense(
            id="src1",
            amount=Decimal("12.50"),
            account_id="acc1",
            category_id="1",
            date=date(2024, 1, 15),
            repeatability=Repeatability.MONTHLY,
            is_recurring_source=True,
            last_processed_date=date(2024, 4, 15),
        ),
    ]
    snapshot.accounts[0].balance = Decimal("-62.50")
    return snapshot


class TestInMemoryStorage:
    """Tests for the in-memory key-value backend."""

    def test_get_missing_key(self):
        assert InMemoryStorage().get_item("expenses") is None

    def test_set_get_remove(self):
        storage = InMemoryStorage()
        storage.set_item("accounts", [{"id": "acc1"}])
        assert storage.get_item("accounts") == [{"id": "acc1"}]
        assert storage.keys() == ["accounts"]
        assert storage.remove_item("accounts") is True
        assert storage.remove_item("accounts") is False

    def test_values_are_copies(self):
        storage = InMemoryStorage()
        value = [{"id": "acc1"}]
        storage.set_item("accounts", value)
        value.append({"id": "acc2"})
        assert storage.get_item("accounts") == [{"id": "acc1"}]

    def test_unserializable_value_raises(self):
        with pytest.raises(StorageError):
            InMemoryStorage().set_item("accounts", object())

    def test_corrupt_value_raises(self):
        storage = InMemoryStorage()
        storage.set_raw("expenses", "{not json")
        with pytest.raises(CorruptDataError):
            storage.get_item("expenses")


class TestSnapshotLoading:
    """Tests for load_snapshot / save_snapshot on top of the key-value primitives."""

    def test_first_run_seeds_defaults(self):
        snapshot = InMemoryStorage().load_snapshot()
        assert [a.id for a in snapshot.accounts] == ["acc1", "acc4"]
        assert len(snapshot.categories) == 6
        assert len(snapshot.income_categories) == 4
        assert snapshot.expenses == []

    def test_first_run_without_defaults(self):
        snapshot = InMemoryStorage().load_snapshot(seed_defaults=False)
        assert snapshot.accounts == []
        assert snapshot.categories == []

    def test_empty_stored_list_is_not_reseeded(self):
        """Test that a user who deleted every account keeps none."""
        snapshot = InMemoryStorage({"accounts": []}).load_snapshot()
        assert snapshot.accounts == []

    def test_save_writes_camel_case_documents(self):
        storage = InMemoryStorage()
        storage.save_snapshot(sample_snapshot())

        stored = storage.get_item("expenses")[0]
        assert stored["accountId"] == "acc1"
        assert stored["isRecurringSource"] is True
        assert stored["lastProcessedDate"] == "2024-04-15"
        assert stored["amount"] == "12.50"
        assert storage.keys() == sorted(
            ["accounts", "categories", "expenses", "income_categories", "incomes"]
        )

    def test_save_then_load(self):
        storage = InMemoryStorage()
        storage.save_snapshot(sample_snapshot())

        loaded = storage.load_snapshot()
        assert loaded.expenses[0].amount == Decimal("12.50")
        assert loaded.expenses[0].last_processed_date == date(2024, 4, 15)
        assert loaded.accounts[0].balance == Decimal("-62.50")

    def test_loads_legacy_data(self):
        """Test that data exported by the browser version loads as-is."""
        storage = InMemoryStorage({"expenses": LEGACY_EXPENSES, "accounts": LEGACY_ACCOUNTS})

        snapshot = storage.load_snapshot()

        source, simple = snapshot.expenses
        assert source.repeatability == Repeatability.MONTHLY
        assert source.is_recurring_source is True
        assert source.last_processed_date is None
        assert simple.repeatability == Repeatability.NONE
        assert simple.used_linked_card is False
        assert snapshot.accounts[0].type == AccountType.BANK
        assert snapshot.accounts[1].type == AccountType.CASH
        assert snapshot.accounts[1].balance == Decimal("-4.5")

    def test_invalid_record_raises_corrupt_data(self):
        storage = InMemoryStorage({
            "expenses": [{"id": "x", "amount": -5, "accountId": "acc1", "date": "2024-01-01"}],
        })
        with pytest.raises(CorruptDataError):
            storage.load_snapshot()

    def test_undecodable_collection_raises_corrupt_data(self):
        storage = InMemoryStorage()
        storage.set_raw("accounts", "[{")
        with pytest.raises(CorruptDataError):
            storage.load_snapshot()


def fail_replace(src, dst):
    raise OSError("device is busy")


class TestJsonFileStorage:
    """Tests for the JSON file backend."""

    def test_set_and_get(self, tmp_path):
        storage = JsonFileStorage(tmp_path)
        storage.set_item("accounts", [{"id": "acc1", "name": "Conto Corrente"}])

        assert storage.path == tmp_path / "ledger.json"
        assert storage.path.exists()
        assert storage.get_item("accounts") == [{"id": "acc1", "name": "Conto Corrente"}]

    def test_missing_key_is_none(self, tmp_path):
        assert JsonFileStorage(tmp_path).get_item("expenses") is None

    def test_creates_data_dir_on_first_write(self, tmp_path):
        data_dir = tmp_path / "nested" / "ledger"
        storage = JsonFileStorage(data_dir)
        assert storage.keys() == []

        storage.set_item("incomes", [])
        assert data_dir.is_dir()
        assert storage.keys() == ["incomes"]

    def test_snapshot_is_one_document(self, tmp_path):
        storage = JsonFileStorage(tmp_path)
        storage.save_snapshot(sample_snapshot())

        assert [p.name for p in tmp_path.iterdir()] == ["ledger.json"]
        document = json.loads(storage.path.read_text(encoding="utf-8"))
        assert sorted(document) == [
            "accounts", "categories", "expenses", "income_categories", "incomes",
        ]

    def test_set_item_keeps_other_keys(self, tmp_path):
        storage = JsonFileStorage(tmp_path)
        storage.set_item("incomes", [{"id": "a"}])
        storage.set_item("accounts", [])
        assert storage.get_item("incomes") == [{"id": "a"}]
        assert storage.keys() == ["accounts", "incomes"]

    def test_overwrite_replaces_value(self, tmp_path):
        storage = JsonFileStorage(tmp_path)
        storage.set_item("incomes", [{"id": "a"}])
        storage.set_item("incomes", [])
        assert storage.get_item("incomes") == []

    def test_non_ascii_text_is_kept(self, tmp_path):
        storage = JsonFileStorage(tmp_path)
        storage.set_item("categories", [{"id": "1", "name": "Caffè"}])
        assert "Caffè" in storage.path.read_text(encoding="utf-8")

    def test_failed_save_keeps_previous_snapshot(self, tmp_path, monkeypatch):
        """Test that a failed write changes none of the keys and leaves no temp file."""
        storage = JsonFileStorage(tmp_path)
        storage.save_snapshot(sample_snapshot())

        changed = sample_snapshot()
        changed.expenses = []
        changed.accounts[0].balance = Decimal("0")
        monkeypatch.setattr("pocket_ledger.services.storage.json_file.os.replace", fail_replace)

        with pytest.raises(StorageError):
            storage.save_snapshot(changed)

        monkeypatch.undo()
        loaded = storage.load_snapshot()
        assert [e.id for e in loaded.expenses] == ["src1"]
        assert loaded.accounts[0].balance == Decimal("-62.50")
        assert list(tmp_path.glob("*.tmp")) == []

    @pytest.mark.parametrize("key", ["../escape", "Accounts", "a/b", "", "1st"])
    def test_invalid_keys_rejected(self, tmp_path, key):
        storage = JsonFileStorage(tmp_path)
        with pytest.raises(InvalidKeyError):
            storage.set_item(key, [])
        with pytest.raises(InvalidKeyError):
            storage.get_item(key)
        assert not storage.path.exists()

    def test_corrupt_file_raises(self, tmp_path):
        (tmp_path / "ledger.json").write_text("{oops", encoding="utf-8")
        with pytest.raises(CorruptDataError):
            JsonFileStorage(tmp_path).get_item("expenses")

    def test_invalid_utf8_raises_corrupt_data(self, tmp_path):
        (tmp_path / "ledger.json").write_bytes(b'{"expenses": ["\xff\xfe"]}')
        with pytest.raises(CorruptDataError):
            JsonFileStorage(tmp_path).get_item("expenses")

    def test_document_must_be_an_object(self, tmp_path):
        (tmp_path / "ledger.json").write_text("[]", encoding="utf-8")
        with pytest.raises(CorruptDataError):
            JsonFileStorage(tmp_path).keys()

    def test_unserializable_value_raises(self, tmp_path):
        storage = JsonFileStorage(tmp_path)
        with pytest.raises(StorageError):
            storage.set_item("expenses", {1, 2})
        assert not storage.path.exists()

    def test_remove_item(self, tmp_path):
        storage = JsonFileStorage(tmp_path)
        storage.set_item("incomes", [])
        assert storage.remove_item("incomes") is True
        assert storage.remove_item("incomes") is False
        assert storage.keys() == []

    def test_keys_ignore_foreign_members(self, tmp_path):
        (tmp_path / "ledger.json").write_text(
            '{"Bad Name": [], "accounts": []}', encoding="utf-8"
        )
        assert JsonFileStorage(tmp_path).keys() == ["accounts"]

    def test_snapshot_round_trip_on_disk(self, tmp_path):
        JsonFileStorage(tmp_path).save_snapshot(sample_snapshot())

        loaded = JsonFileStorage(tmp_path).load_snapshot()
        assert loaded.expenses[0].id == "src1"
        assert loaded.accounts[0].balance == Decimal("-62.50")

        raw = json.loads((tmp_path / "ledger.json").read_text(encoding="utf-8"))
        assert raw["expenses"][0]["repeatability"] == "monthly"


class TestAuditStorage:
    """Tests for the audit backends."""

    def test_in_memory_queries(self):
        storage = InMemoryAuditStorage()
        correlation_id = uuid4()
        storage.append_event(AuditEventBuilder.app_activated("2024-04-20", correlation_id))
        storage.append_event(AuditEventBuilder.expense_deleted("e1", correlation_id))
        storage.append_event(AuditEventBuilder.expense_deleted("e2", uuid4()))

        assert len(storage.get_events_by_correlation_id(correlation_id)) == 2
        assert len(storage.get_events_by_entity("expense", "e2")) == 1
        assert storage.get_recent_events(limit=1)[0].entity_id == "e2"

    def test_json_lines_append_and_read(self, tmp_path):
        path = tmp_path / "audit" / "audit.jsonl"
        storage = JsonLinesAuditStorage(path)
        correlation_id = uuid4()

        assert storage.append_event(AuditEventBuilder.app_activated("2024-04-20", correlation_id)) is True
        storage.append_event(AuditEventBuilder.account_deleted("acc4", correlation_id))

        lines = path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2

        events = storage.get_events_by_correlation_id(correlation_id)
        assert [e.event_type for e in events] == [
            AuditEventType.APP_ACTIVATED,
            AuditEventType.ACCOUNT_DELETED,
        ]
        assert storage.get_events_by_entity("account", "acc4")[0].event_type == AuditEventType.ACCOUNT_DELETED
        assert storage.get_recent_events()[0].event_type == AuditEventType.ACCOUNT_DELETED

    def test_json_lines_skips_unreadable_lines(self, tmp_path):
        path = tmp_path / "audit.jsonl"
        storage = JsonLinesAuditStorage(path)
        storage.append_event(AuditEventBuilder.expense_deleted("e1", uuid4()))
        with path.open("a", encoding="utf-8") as f:
            f.write("not json\n\n")
        storage.append_event(AuditEventBuilder.expense_deleted("e2", uuid4()))

        assert [e.entity_id for e in storage.get_recent_events()] == ["e2", "e1"]

    def test_json_lines_missing_file(self, tmp_path):
        storage = JsonLinesAuditStorage(tmp_path / "audit.jsonl")
        assert storage.get_recent_events() == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
