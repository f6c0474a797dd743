"""
Ledger Session

Session-scoped state for one connected account: the projection, the sort
selection, the edit form and the status of the current operation.

DESIGN DECISION: Everything the shell renders lives on one explicit object
instead of module globals. Switching accounts throws the session away and
starts a new one, so a late response for the old account has nowhere to land.
"""

from typing import Optional

from cost_tracker.core.projection import LedgerProjection
from cost_tracker.core.views import LedgerView, derive_view
from cost_tracker.models.expense import (
    EditTarget,
    ExpenseForm,
    FailureDetail,
    OperationKind,
    OperationState,
    OperationStatus,
    SortKey,
)


class LedgerSession:
    """
    State of one account's session.

    Only the SyncEngine mutates a session; the shell reads it.
    """

    def __init__(self, account: str, sort_key: SortKey = SortKey.NONE):
        self.account = account
        self.edit_target: Optional[EditTarget] = None
        self.form = ExpenseForm()
        self.status = OperationStatus()
        self.last_failure: Optional[FailureDetail] = None
        self.is_stale = False

        self._sort_key = sort_key
        self._projection = LedgerProjection.empty(account)
        self._view = derive_view(self._projection, sort_key)

        # Fetch tickets: a fetch result is applied only if it was issued
        # after the one currently shown
        self._fetches_issued = 0
        self._fetch_applied = 0

    @property
    def projection(self) -> LedgerProjection:
        return self._projection

    @property
    def sort_key(self) -> SortKey:
        return self._sort_key

    @property
    def view(self) -> LedgerView:
        """Sorted entries and category counts of the current projection."""
        return self._view

    @property
    def is_editing(self) -> bool:
        return self.edit_target is not None

    def set_sort_key(self, sort_key: SortKey) -> None:
        if sort_key is not self._sort_key:
            self._sort_key = sort_key
            self._view = derive_view(self._projection, sort_key)

    def issue_fetch(self) -> int:
        """Reserve a ticket for a fetch about to be sent."""
        self._fetches_issued += 1
        return self._fetches_issued

    def apply_fetch(self, ticket: int, projection: LedgerProjection) -> bool:
        """
        Replace the projection with a fetch result.

        Returns False (and changes nothing) if a later fetch was already applied.
        """
        if ticket <= self._fetch_applied:
            return False
        self._fetch_applied = ticket
        self._projection = projection
        self._view = derive_view(projection, self._sort_key)
        self.is_stale = False
        return True

    def begin(self, operation: OperationKind) -> None:
        self.status = OperationStatus(kind=operation, state=OperationState.SUBMITTING)

    def refreshing(self, operation: OperationKind) -> None:
        self.status = OperationStatus(kind=operation, state=OperationState.REFRESHING)

    def settle(self, operation: OperationKind) -> None:
        self.status = OperationStatus(kind=operation, state=OperationState.IDLE)

    def fail(self, failure: FailureDetail) -> None:
        """Move the current operation to failed."""
        self.status = OperationStatus(
            kind=failure.operation,
            state=OperationState.FAILED,
            failure=failure,
        )
        self.last_failure = failure
        if failure.projection_stale:
            self.is_stale = True

    def reject(self, failure: FailureDetail) -> None:
        """Record a rejection that leaves the current status alone."""
        self.last_failure = failure

    def clear_failure(self) -> None:
        """Failed -> idle. Staleness is only cleared by a successful fetch."""
        if self.status.state is OperationState.FAILED:
            self.status = OperationStatus(kind=self.status.kind)
        self.last_failure = None

    def clear_form(self) -> None:
        self.form = ExpenseForm()
        self.edit_target = None

    def __repr__(self) -> str:
        return (
            f"LedgerSession(account={self.account!r}, entries={len(self._projection)}, "
            f"state={self.status.state.value})"
        )
