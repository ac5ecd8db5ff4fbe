"""
Tests for ledger consistency validation.
"""

import pytest
from datetime import date
from decimal import Decimal

from pocket_ledger.models.ledger import (
    Account,
    Expense,
    Income,
    LedgerSnapshot,
    Repeatability,
)
from pocket_ledger.validation import LedgerValidator


@pytest.fixture
def validator():
    return LedgerValidator()


def snapshot_with(expenses=(), incomes=()):
    return LedgerSnapshot(
        expenses=list(expenses),
        incomes=list(incomes),
        accounts=[Account(id="acc1", name="Conto Corrente")],
    )


def source(**kwargs):
    fields = dict(
        id="src1",
        amount=Decimal("30"),
        account_id="acc1",
        date=date(2024, 1, 15),
        repeatability=Repeatability.MONTHLY,
        is_recurring_source=True,
        last_processed_date=date(2024, 2, 15),
    )
    fields.update(kwargs)
    return Expense(**fields)


def instance(instance_id="i1", parent="src1", on=date(2024, 2, 15), **kwargs):
    return Expense(
        id=instance_id,
        amount=Decimal("30"),
        account_id=kwargs.pop("account_id", "acc1"),
        date=on,
        parent_expense_id=parent,
        **kwargs,
    )


class TestRecordValidation:
    """Stage 1: checks on single expenses."""

    def test_consistent_ledger(self, validator):
        result = validator.validate(snapshot_with([source(), instance()]))
        assert result.issues == []
        assert result.is_valid is True

    def test_malformed_source(self, validator):
        result = validator.validate(snapshot_with([
            source(repeatability=Repeatability.NONE, last_processed_date=None),
        ]))
        assert len(result.issues_of_type("malformed_source")) == 1
        assert result.has_errors is True

    def test_source_with_parent(self, validator):
        result = validator.validate(snapshot_with([
            source(),
            source(id="src2", parent_expense_id="src1"),
        ]))
        issues = result.issues_of_type("source_with_parent")
        assert [i.record_id for i in issues] == ["src2"]

    def test_instance_with_repeatability(self, validator):
        result = validator.validate(snapshot_with([
            source(),
            instance(repeatability=Repeatability.WEEKLY),
        ]))
        assert len(result.issues_of_type("instance_with_repeatability")) == 1

    def test_stray_processed_date_is_warning(self, validator):
        result = validator.validate(snapshot_with([
            Expense(
                id="e1",
                amount=Decimal("5"),
                account_id="acc1",
                date=date(2024, 1, 1),
                last_processed_date=date(2024, 2, 1),
            ),
        ]))
        issues = result.issues_of_type("stray_processed_date")
        assert len(issues) == 1
        assert issues[0].severity == "warning"
        assert result.is_valid is True

    def test_processed_before_date(self, validator):
        result = validator.validate(snapshot_with([
            source(last_processed_date=date(2023, 12, 1)),
        ]))
        assert len(result.issues_of_type("processed_before_date")) == 1


class TestCrossRecordValidation:
    """Stage 2: checks across the snapshot."""

    def test_duplicate_ids(self, validator):
        result = validator.validate(snapshot_with([
            Expense(id="e1", amount=Decimal("5"), account_id="acc1", date=date(2024, 1, 1)),
            Expense(id="e1", amount=Decimal("6"), account_id="acc1", date=date(2024, 1, 2)),
        ]))
        issues = result.issues_of_type("duplicate_id")
        assert [i.record_id for i in issues] == ["e1"]

    def test_duplicate_occurrence(self, validator):
        result = validator.validate(snapshot_with([
            source(),
            instance("i1"),
            instance("i2"),
        ]))
        issues = result.issues_of_type("duplicate_occurrence")
        assert len(issues) == 1
        assert issues[0].record_id == "src1"

    def test_orphan_instance(self, validator):
        result = validator.validate(snapshot_with([instance(parent="gone")]))
        issues = result.issues_of_type("orphan_instance")
        assert [i.record_id for i in issues] == ["i1"]
        assert issues[0].severity == "warning"

    def test_dangling_account(self, validator):
        result = validator.validate(snapshot_with(
            expenses=[source(account_id="acc9")],
            incomes=[Income(id="in1", amount=Decimal("10"), account_id="acc9", date=date(2024, 1, 1))],
        ))
        issues = result.issues_of_type("dangling_account")
        assert sorted(i.record_type for i in issues) == ["expense", "income"]
        assert result.is_valid is True


class TestSummary:
    """Tests for the user-facing summary."""

    def test_summary_for_clean_ledger(self, validator):
        result = validator.validate(snapshot_with([source()]))
        assert validator.get_user_friendly_summary(result) == "✅ Ledger is consistent."

    def test_summary_lists_errors_and_warnings(self, validator):
        result = validator.validate(snapshot_with([
            source(repeatability=Repeatability.NONE, last_processed_date=None),
            instance(parent="gone"),
        ]))
        summary = validator.get_user_friendly_summary(result)
        assert "❌" in summary
        assert "⚠️" in summary
        assert "[expense src1]" in summary
        assert "[expense i1]" in summary


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
