"""
Audit Models for Cost Tracker

Every significant action against the ledger is logged for audit purposes.
This provides:
1. Traceability of every mutation the user asked for
2. Debugging information when the remote ledger misbehaves
3. A record of when the local view may have gone stale

DESIGN DECISION: Audit events are append-only. We never modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from cost_tracker.models.expense import OperationKind


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Each step of a ledger operation has its own event type.
    """
    # Session
    ACCOUNT_ACTIVATED = "account_activated"
    PROJECTION_REFRESHED = "projection_refreshed"
    STALE_RESPONSE_DISCARDED = "stale_response_discarded"

    # Mutations
    MUTATION_SUBMITTED = "mutation_submitted"
    MUTATION_SETTLED = "mutation_settled"
    MODIFY_STARTED = "modify_started"

    # Rejections and failures
    VALIDATION_FAILED = "validation_failed"
    ENTRY_NOT_FOUND = "entry_not_found"
    BUSY_REJECTED = "busy_rejected"
    SUBMIT_FAILED = "submit_failed"
    REFRESH_FAILED = "refresh_failed"

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
        default_factory=lambda: datetime.now(timezone.utc),
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

    # Context - which ledger entry is this about?
    account: Optional[str] = Field(
        default=None,
        description="Account whose ledger the event concerns"
    )
    operation: Optional[OperationKind] = Field(
        default=None,
        description="Operation the event belongs to"
    )
    position: Optional[int] = Field(
        default=None,
        description="Ledger position of the entry, if any"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., submit and refresh of one add)"
    )

    # Event details
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
            "account": self.account,
            "operation": self.operation.value if self.operation else None,
            "position": self.position,
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
        event = AuditEventBuilder.account_activated(account, correlation_id)
        event = AuditEventBuilder.mutation_settled(OperationKind.ADD, account, None, correlation_id)
    """

    @staticmethod
    def account_activated(
        account: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_ACTIVATED,
            account=account,
            correlation_id=correlation_id,
            description=f"Active account set to {account}",
            is_user_action=True,
        )

    @staticmethod
    def projection_refreshed(
        account: str,
        entry_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROJECTION_REFRESHED,
            severity=AuditSeverity.DEBUG,
            account=account,
            correlation_id=correlation_id,
            description=f"Ledger re-fetched: {entry_count} entries",
            details={
                "entry_count": entry_count,
            },
        )

    @staticmethod
    def stale_response_discarded(
        account: str,
        operation: OperationKind,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STALE_RESPONSE_DISCARDED,
            severity=AuditSeverity.WARNING,
            account=account,
            operation=operation,
            correlation_id=correlation_id,
            description=f"Discarded {operation.value} response for inactive session of {account}",
        )

    @staticmethod
    def mutation_submitted(
        operation: OperationKind,
        account: str,
        position: Optional[int],
        correlation_id: UUID,
        details: Optional[dict] = None
    ) -> AuditEvent:
        target = f" at position {position}" if position is not None else ""
        return AuditEvent(
            event_type=AuditEventType.MUTATION_SUBMITTED,
            account=account,
            operation=operation,
            position=position,
            correlation_id=correlation_id,
            description=f"Submitting {operation.value}{target}",
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def mutation_settled(
        operation: OperationKind,
        account: str,
        position: Optional[int],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MUTATION_SETTLED,
            account=account,
            operation=operation,
            position=position,
            correlation_id=correlation_id,
            description=f"Remote ledger accepted {operation.value}",
        )

    @staticmethod
    def modify_started(
        account: str,
        position: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MODIFY_STARTED,
            account=account,
            operation=OperationKind.MODIFY,
            position=position,
            correlation_id=correlation_id,
            description=f"Editing entry at position {position}",
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        account: str,
        operation: OperationKind,
        issues: list[dict],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            account=account,
            operation=operation,
            correlation_id=correlation_id,
            description=f"Input validation failed with {len(issues)} issues",
            details={
                "issues": issues,
            },
        )

    @staticmethod
    def entry_not_found(
        account: str,
        operation: OperationKind,
        position: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_NOT_FOUND,
            severity=AuditSeverity.WARNING,
            account=account,
            operation=operation,
            position=position,
            correlation_id=correlation_id,
            description=f"No entry at position {position}",
        )

    @staticmethod
    def busy_rejected(
        account: str,
        operation: OperationKind,
        in_flight: OperationKind,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUSY_REJECTED,
            severity=AuditSeverity.WARNING,
            account=account,
            operation=operation,
            correlation_id=correlation_id,
            description=f"Rejected {operation.value}: {in_flight.value} still in flight",
            details={
                "in_flight": in_flight.value,
            },
        )

    @staticmethod
    def submit_failed(
        account: str,
        operation: OperationKind,
        position: Optional[int],
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBMIT_FAILED,
            severity=AuditSeverity.ERROR,
            account=account,
            operation=operation,
            position=position,
            correlation_id=correlation_id,
            description=f"Remote ledger did not accept {operation.value}",
            error_message=error_message,
        )

    @staticmethod
    def refresh_failed(
        account: str,
        operation: OperationKind,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        mutated = operation is not OperationKind.REFRESH
        return AuditEvent(
            event_type=AuditEventType.REFRESH_FAILED,
            severity=AuditSeverity.CRITICAL if mutated else AuditSeverity.ERROR,
            account=account,
            operation=operation,
            correlation_id=correlation_id,
            description=(
                f"Re-fetch after {operation.value} failed; local view may be stale"
                if mutated
                else "Ledger re-fetch failed"
            ),
            error_message=error_message,
            details={
                "state_uncertain": mutated,
            },
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
