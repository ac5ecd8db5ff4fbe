"""
Audit Logger

DESIGN DECISION: Every change to the ledger is logged.
This provides:
1. Traceability of every balance change
2. Debugging capability
3. A history the user can inspect

The audit logger:
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from pocket_ledger.models.audit import AuditEvent, AuditEventBuilder
from pocket_ledger.models.ledger import Expense, MaterializationResult
from pocket_ledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through stdlib logging at the given level."""
    logging.basicConfig(format="%(message)s")
    logging.getLogger().setLevel(level.upper())


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_app_activated(self, today: str, correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.app_activated(today=today, correlation_id=correlation_id))

    def log_materialization(
        self,
        result: MaterializationResult,
        correlation_id: UUID,
    ) -> None:
        """Log a materialization run, one event per generated instance plus a summary."""
        skipped = set(result.skipped_balance_updates)
        for instance in result.created:
            self.log(AuditEventBuilder.instance_generated(
                instance_id=instance.id,
                source_id=instance.parent_expense_id,
                occurrence=instance.date.isoformat(),
                amount=str(instance.amount),
                correlation_id=correlation_id,
            ))
            if instance.id in skipped:
                self.log(AuditEventBuilder.account_missing_for_instance(
                    instance_id=instance.id,
                    account_id=instance.account_id,
                    correlation_id=correlation_id,
                ))

        self.log(AuditEventBuilder.materialization_completed(
            created_count=result.created_count,
            sources_processed=result.sources_processed,
            skipped_balance_updates=result.skipped_balance_updates,
            correlation_id=correlation_id,
        ))

    def log_expense_saved(self, expense: Expense, correlation_id: UUID) -> None:
        """Log a new expense."""
        self.log(AuditEventBuilder.expense_saved(
            expense_id=expense.id,
            amount=str(expense.amount),
            account_id=expense.account_id,
            recurring=expense.is_recurring,
            correlation_id=correlation_id,
        ))

    def log_expense_deleted(self, expense_id: str, correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.expense_deleted(
            expense_id=expense_id,
            correlation_id=correlation_id,
        ))

    def log_income_saved(
        self,
        income_id: str,
        amount: str,
        account_id: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.income_saved(
            income_id=income_id,
            amount=amount,
            account_id=account_id,
            correlation_id=correlation_id,
        ))

    def log_income_deleted(self, income_id: str, correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.income_deleted(
            income_id=income_id,
            correlation_id=correlation_id,
        ))

    def log_transfer_saved(
        self,
        expense_id: str,
        income_id: str,
        amount: str,
        from_account_id: str,
        to_account_id: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.transfer_saved(
            expense_id=expense_id,
            income_id=income_id,
            amount=amount,
            from_account_id=from_account_id,
            to_account_id=to_account_id,
            correlation_id=correlation_id,
        ))

    def log_account_deleted(self, account_id: str, correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.account_deleted(
            account_id=account_id,
            correlation_id=correlation_id,
        ))

    def log_snapshot_saved(
        self,
        expense_count: int,
        account_count: int,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.snapshot_saved(
            expense_count=expense_count,
            account_count=account_count,
            correlation_id=correlation_id,
        ))

    def log_save_failed(self, error_message: str, correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.save_failed(
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., app activation).
    Pass it through all subsequent operations.
    """
    return uuid4()
