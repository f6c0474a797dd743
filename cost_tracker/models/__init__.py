"""
Data Models Package

This package contains all Pydantic models used in Cost Tracker.
All data flowing between the ledger client, the sync engine and the
shell must conform to these schemas.
"""

from cost_tracker.models.expense import (
    EditTarget,
    ExpenseEntry,
    ExpenseForm,
    FailureDetail,
    FailureKind,
    LedgerRecord,
    OperationKind,
    OperationState,
    OperationStatus,
    SortKey,
    ValidationIssue,
    ValidationResult,
)
from cost_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Expense models
    "EditTarget",
    "ExpenseEntry",
    "ExpenseForm",
    "FailureDetail",
    "FailureKind",
    "LedgerRecord",
    "OperationKind",
    "OperationState",
    "OperationStatus",
    "SortKey",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
