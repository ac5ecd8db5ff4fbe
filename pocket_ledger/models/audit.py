"""
Audit Models for Pocket Ledger

Every change to the ledger is logged for audit purposes.
This provides:
1. Traceability of every balance change
2. Debugging information when a balance looks wrong
3. A record of what materialization generated and when

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Application lifecycle
    APP_ACTIVATED = "app_activated"

    # Recurring expenses
    MATERIALIZATION_COMPLETED = "materialization_completed"
    INSTANCE_GENERATED = "instance_generated"
    ACCOUNT_MISSING_FOR_INSTANCE = "account_missing_for_instance"

    # Transactions
    EXPENSE_SAVED = "expense_saved"
    EXPENSE_DELETED = "expense_deleted"
    INCOME_SAVED = "income_saved"
    INCOME_DELETED = "income_deleted"
    TRANSFER_SAVED = "transfer_saved"

    # Accounts
    ACCOUNT_DELETED = "account_deleted"

    # Persistence
    SNAPSHOT_SAVED = "snapshot_saved"
    SAVE_FAILED = "save_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what record is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of record (e.g., 'expense', 'account', 'ledger')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the record this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one activation)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_saved(expense_id, "12.50", "acc1", False, correlation_id)
        event = AuditEventBuilder.materialization_completed(3, 1, [], correlation_id)
    """

    @staticmethod
    def app_activated(
        today: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.APP_ACTIVATED,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Application activated for {today}",
            details={"today": today},
        )

    @staticmethod
    def materialization_completed(
        created_count: int,
        sources_processed: int,
        skipped_balance_updates: list[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MATERIALIZATION_COMPLETED,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=(
                f"Materialized {created_count} recurring instances "
                f"from {sources_processed} sources"
            ),
            details={
                "created_count": created_count,
                "sources_processed": sources_processed,
                "skipped_balance_updates": skipped_balance_updates,
            },
        )

    @staticmethod
    def instance_generated(
        instance_id: str,
        source_id: str,
        occurrence: str,
        amount: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INSTANCE_GENERATED,
            entity_type="expense",
            entity_id=instance_id,
            correlation_id=correlation_id,
            description=f"Recurring expense instance for {occurrence}",
            details={
                "source_id": source_id,
                "date": occurrence,
                "amount": amount,
            },
        )

    @staticmethod
    def account_missing_for_instance(
        instance_id: str,
        account_id: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_MISSING_FOR_INSTANCE,
            severity=AuditSeverity.WARNING,
            entity_type="expense",
            entity_id=instance_id,
            correlation_id=correlation_id,
            description=f"Account {account_id} not found; balance not adjusted",
            details={"account_id": account_id},
        )

    @staticmethod
    def expense_saved(
        expense_id: str,
        amount: str,
        account_id: str,
        recurring: bool,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_SAVED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense saved: {amount} from {account_id}",
            details={
                "amount": amount,
                "account_id": account_id,
                "recurring": recurring,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_deleted(
        expense_id: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description="Expense deleted",
            is_user_action=True,
        )

    @staticmethod
    def income_saved(
        income_id: str,
        amount: str,
        account_id: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INCOME_SAVED,
            entity_type="income",
            entity_id=income_id,
            correlation_id=correlation_id,
            description=f"Income saved: {amount} to {account_id}",
            details={
                "amount": amount,
                "account_id": account_id,
            },
            is_user_action=True,
        )

    @staticmethod
    def income_deleted(
        income_id: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INCOME_DELETED,
            entity_type="income",
            entity_id=income_id,
            correlation_id=correlation_id,
            description="Income deleted",
            is_user_action=True,
        )

    @staticmethod
    def transfer_saved(
        expense_id: str,
        income_id: str,
        amount: str,
        from_account_id: str,
        to_account_id: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSFER_SAVED,
            entity_type="transfer",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Transfer of {amount} from {from_account_id} to {to_account_id}",
            details={
                "expense_id": expense_id,
                "income_id": income_id,
                "amount": amount,
                "from_account_id": from_account_id,
                "to_account_id": to_account_id,
            },
            is_user_action=True,
        )

    @staticmethod
    def account_deleted(
        account_id: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_DELETED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Account deleted: {account_id}",
            is_user_action=True,
        )

    @staticmethod
    def snapshot_saved(
        expense_count: int,
        account_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_SAVED,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Ledger saved: {expense_count} expenses, {account_count} accounts",
            details={
                "expense_count": expense_count,
                "account_count": account_count,
            },
        )

    @staticmethod
    def save_failed(
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="ledger",
            correlation_id=correlation_id,
            description="Failed to save ledger",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
