"""
Sync Engine Errors

Every failure the engine reports carries a FailureKind so the shell can
tell a fixable form error from a remote failure, and a failed submit from
the more serious "submitted but could not re-fetch" case.
"""

from typing import Optional

from cost_tracker.models.expense import FailureKind, OperationKind, ValidationResult


class LedgerSyncError(Exception):
    """Base exception for sync engine operations."""

    kind: FailureKind

    def __init__(self, message: str, operation: Optional[OperationKind] = None):
        super().__init__(message)
        self.message = message
        self.operation = operation


class ExpenseValidationError(LedgerSyncError):
    """Form input is malformed. Never reaches the remote ledger."""

    kind = FailureKind.VALIDATION

    def __init__(
        self,
        message: str,
        result: ValidationResult,
        operation: Optional[OperationKind] = None,
    ):
        super().__init__(message, operation)
        self.result = result


class RemoteSubmitError(LedgerSyncError):
    """The mutating call failed or was rejected. Safe to retry."""

    kind = FailureKind.REMOTE_SUBMIT


class RemoteFetchError(LedgerSyncError):
    """
    The re-fetch failed.

    If it followed a settled mutation, the mutation is durable remotely
    but the local projection does not show it yet.
    """

    kind = FailureKind.REMOTE_FETCH

    def __init__(
        self,
        message: str,
        operation: Optional[OperationKind] = None,
        mutation_settled: bool = False,
    ):
        super().__init__(message, operation)
        self.mutation_settled = mutation_settled


class EntryNotFoundError(LedgerSyncError):
    """No entry at the requested position in the current projection."""

    kind = FailureKind.NOT_FOUND

    def __init__(self, position: int, operation: Optional[OperationKind] = None):
        super().__init__(f"No expense at position {position}", operation)
        self.position = position


class LedgerBusyError(LedgerSyncError):
    """Another operation is still in flight for the same account."""

    kind = FailureKind.BUSY


class NoActiveAccountError(LedgerSyncError):
    """An operation was attempted before any account was selected."""

    kind = FailureKind.NO_ACCOUNT
