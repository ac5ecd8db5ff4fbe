"""
Ledger Consistency Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - RECORD VALIDATION:
- Each expense is checked on its own
- Malformed recurring sources (flagged as source without a repeatability,
  or flagged as both source and instance)
- Instances that still carry a repeatability
- Last processed dates that make no sense

STAGE 2 - CROSS-RECORD VALIDATION:
- Duplicate IDs
- Instances whose source is gone
- Two instances of one source on the same date
- Transactions charged to accounts that no longer exist

IMPORTANT: Validation NEVER fixes issues. The materialization engine skips
malformed sources; this module is how they get noticed.
"""

from collections import Counter

from pocket_ledger.models.ledger import (
    Expense,
    LedgerSnapshot,
    Repeatability,
)
from pocket_ledger.models.validation import ValidationIssue, ValidationResult


class LedgerValidator:
    """
    Validates a ledger snapshot through a two-stage pipeline.

    Stage 1: Per-record validation
    Stage 2: Cross-record validation
    """

    def _validate_expense(self, expense: Expense) -> list[ValidationIssue]:
        """
        Stage 1: checks that need only the expense itself.
        """
        issues = []

        def issue(issue_type: str, message: str, severity: str) -> None:
            issues.append(ValidationIssue(
                record_type="expense",
                record_id=expense.id,
                issue_type=issue_type,
                message=message,
                severity=severity,
            ))

        if expense.is_recurring_source and expense.repeatability == Repeatability.NONE:
            issue(
                "malformed_source",
                "Marked as a recurring source but has no repeatability; it will never repeat",
                "error",
            )

        if expense.is_recurring_source and expense.parent_expense_id:
            issue(
                "source_with_parent",
                "Marked as a recurring source and as an instance of another expense",
                "error",
            )

        if expense.parent_expense_id and expense.repeatability != Repeatability.NONE:
            issue(
                "instance_with_repeatability",
                f"Generated instance still repeats ({expense.repeatability.value})",
                "error",
            )

        if expense.last_processed_date is not None:
            if not expense.is_recurring_source:
                issue(
                    "stray_processed_date",
                    "Only recurring sources carry a last processed date",
                    "warning",
                )
            elif expense.last_processed_date < expense.date:
                issue(
                    "processed_before_date",
                    "Last processed date is before the expense's own date",
                    "error",
                )

        return issues

    def _validate_cross_records(self, snapshot: LedgerSnapshot) -> list[ValidationIssue]:
        """
        Stage 2: checks across the whole snapshot.
        """
        issues = []
        expense_ids = {e.id for e in snapshot.expenses}
        account_ids = {a.id for a in snapshot.accounts}

        for expense_id, count in Counter(e.id for e in snapshot.expenses).items():
            if count > 1:
                issues.append(ValidationIssue(
                    record_type="expense",
                    record_id=expense_id,
                    issue_type="duplicate_id",
                    message=f"{count} expenses share this ID",
                    severity="error",
                ))

        occurrences = Counter(
            (e.parent_expense_id, e.date)
            for e in snapshot.expenses
            if e.parent_expense_id
        )
        for (parent_id, occurrence), count in occurrences.items():
            if count > 1:
                issues.append(ValidationIssue(
                    record_type="expense",
                    record_id=parent_id,
                    issue_type="duplicate_occurrence",
                    message=f"{count} instances generated for {occurrence.isoformat()}",
                    severity="error",
                ))

        for expense in snapshot.expenses:
            if expense.parent_expense_id and expense.parent_expense_id not in expense_ids:
                issues.append(ValidationIssue(
                    record_type="expense",
                    record_id=expense.id,
                    issue_type="orphan_instance",
                    message=f"Source expense {expense.parent_expense_id} no longer exists",
                    severity="warning",
                ))
            if expense.account_id not in account_ids:
                issues.append(ValidationIssue(
                    record_type="expense",
                    record_id=expense.id,
                    issue_type="dangling_account",
                    message=f"Account {expense.account_id} no longer exists",
                    severity="warning",
                ))

        for income in snapshot.incomes:
            if income.account_id not in account_ids:
                issues.append(ValidationIssue(
                    record_type="income",
                    record_id=income.id,
                    issue_type="dangling_account",
                    message=f"Account {income.account_id} no longer exists",
                    severity="warning",
                ))

        return issues

    def validate(self, snapshot: LedgerSnapshot) -> ValidationResult:
        """
        Run both stages and collect every issue found.
        """
        issues = []
        for expense in snapshot.expenses:
            issues.extend(self._validate_expense(expense))
        issues.extend(self._validate_cross_records(snapshot))
        return ValidationResult(issues=issues)

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.
        """
        if not result.issues:
            return "✅ Ledger is consistent."

        lines = []

        errors = [i for i in result.issues if i.severity == "error"]
        warnings = [i for i in result.issues if i.severity == "warning"]

        if errors:
            lines.append("❌ Problems that need fixing:")
            for issue in errors:
                lines.append(f"   • [{issue.record_type} {issue.record_id}] {issue.message}")

        if warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please check the following:")
            for issue in warnings:
                lines.append(f"   • [{issue.record_type} {issue.record_id}] {issue.message}")

        return "\n".join(lines)
