"""
Ledger synchronization core.

The projection, the session that owns it, the views derived from it and
the engine that keeps all of it in step with the remote ledger.
"""

from cost_tracker.core.errors import (
    EntryNotFoundError,
    ExpenseValidationError,
    LedgerBusyError,
    LedgerSyncError,
    NoActiveAccountError,
    RemoteFetchError,
    RemoteSubmitError,
)
from cost_tracker.core.projection import LedgerProjection
from cost_tracker.core.session import LedgerSession
from cost_tracker.core.sync import SyncEngine
from cost_tracker.core.views import (
    LedgerView,
    category_aggregate,
    derive_view,
    sorted_view,
)

__all__ = [
    # Errors
    "EntryNotFoundError",
    "ExpenseValidationError",
    "LedgerBusyError",
    "LedgerSyncError",
    "NoActiveAccountError",
    "RemoteFetchError",
    "RemoteSubmitError",
    # State
    "LedgerProjection",
    "LedgerSession",
    "SyncEngine",
    # Views
    "LedgerView",
    "category_aggregate",
    "derive_view",
    "sorted_view",
]
