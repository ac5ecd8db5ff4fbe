"""
Data Models Package

This package contains all Pydantic models used in Pocket Ledger.
All data flowing through the system must conform to these schemas.
"""

from pocket_ledger.models.ledger import (
    TRANSFER_CATEGORY_ID,
    Account,
    AccountType,
    Category,
    CategoryKind,
    Expense,
    Income,
    LedgerSnapshot,
    MaterializationResult,
    Repeatability,
    TransactionKind,
)
from pocket_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from pocket_ledger.models.validation import (
    ValidationIssue,
    ValidationResult,
)

__all__ = [
    # Ledger models
    "TRANSFER_CATEGORY_ID",
    "Account",
    "AccountType",
    "Category",
    "CategoryKind",
    "Expense",
    "Income",
    "LedgerSnapshot",
    "MaterializationResult",
    "Repeatability",
    "TransactionKind",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
]
