"""
Audit Logger

DESIGN DECISION: Every significant ledger action is logged.
This provides:
1. Complete traceability of submits, settlements and re-fetches
2. Debugging capability when the remote ledger is slow or failing
3. An activity history the shell can show to the user

The audit logger:
- Writes structured events through structlog
- Keeps a bounded in-memory history (nothing survives a restart)
- Supports correlation IDs to trace related events
"""

from collections import deque
from typing import Optional
from uuid import UUID, uuid4

import structlog

from cost_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from cost_tracker.models.expense import OperationKind


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


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An in-memory history (for the activity panel)
    """

    def __init__(self, history_size: int = 200):
        """
        Initialize audit logger.

        Args:
            history_size: How many recent events to keep in memory.
                          Zero disables the history.
        """
        self._history: deque[AuditEvent] = deque(maxlen=history_size)
        self._logger = structlog.get_logger("cost_tracker.audit")

    @property
    def history_size(self) -> int:
        return self._history.maxlen

    def log(self, event: AuditEvent) -> None:
        """
        Log an audit event.
        """
        log_dict = event.to_log_dict()

        if event.severity is AuditSeverity.CRITICAL:
            self._logger.critical("audit_event", **log_dict)
        elif event.severity is AuditSeverity.ERROR:
            self._logger.error("audit_event", **log_dict)
        elif event.severity is AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity is AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        self._history.append(event)

    def recent_events(self, limit: int = 50) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        events = list(self._history)
        events.reverse()
        return events[:limit]

    def log_account_activated(self, account: str, correlation_id: UUID) -> None:
        """Log an account switch."""
        self.log(AuditEventBuilder.account_activated(account, correlation_id))

    def log_projection_refreshed(
        self,
        account: str,
        entry_count: int,
        correlation_id: UUID,
    ) -> None:
        """Log a successful re-fetch."""
        self.log(AuditEventBuilder.projection_refreshed(account, entry_count, correlation_id))

    def log_stale_response(
        self,
        account: str,
        operation: OperationKind,
        correlation_id: UUID,
    ) -> None:
        """Log a response that arrived after its session was replaced."""
        self.log(AuditEventBuilder.stale_response_discarded(account, operation, correlation_id))

    def log_mutation_submitted(
        self,
        operation: OperationKind,
        account: str,
        position: Optional[int],
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> None:
        self.log(AuditEventBuilder.mutation_submitted(
            operation=operation,
            account=account,
            position=position,
            correlation_id=correlation_id,
            details=details,
        ))

    def log_mutation_settled(
        self,
        operation: OperationKind,
        account: str,
        position: Optional[int],
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.mutation_settled(operation, account, position, correlation_id))

    def log_modify_started(self, account: str, position: int, correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.modify_started(account, position, correlation_id))

    def log_validation_failed(
        self,
        account: str,
        operation: OperationKind,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        """Log validation failure."""
        self.log(AuditEventBuilder.validation_failed(account, operation, issues, correlation_id))

    def log_entry_not_found(
        self,
        account: str,
        operation: OperationKind,
        position: int,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.entry_not_found(account, operation, position, correlation_id))

    def log_busy_rejected(
        self,
        account: str,
        operation: OperationKind,
        in_flight: OperationKind,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.busy_rejected(account, operation, in_flight, correlation_id))

    def log_submit_failed(
        self,
        account: str,
        operation: OperationKind,
        position: Optional[int],
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a rejected or failed remote mutation."""
        self.log(AuditEventBuilder.submit_failed(
            account=account,
            operation=operation,
            position=position,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    def log_refresh_failed(
        self,
        account: str,
        operation: OperationKind,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a failed re-fetch."""
        self.log(AuditEventBuilder.refresh_failed(account, operation, error_message, correlation_id))

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

    Use this at the start of a new user action (e.g., adding an expense).
    Pass it through all subsequent operations.
    """
    return uuid4()
