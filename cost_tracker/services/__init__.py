"""Services package."""

from cost_tracker.services.ledger import (
    AuthorizationDeclinedError,
    ContractLedgerClient,
    InMemoryLedgerClient,
    LedgerClientError,
    LedgerConnectionError,
    RemoteLedgerClient,
    RemoteRejectedError,
)

__all__ = [
    "AuthorizationDeclinedError",
    "ContractLedgerClient",
    "InMemoryLedgerClient",
    "LedgerClientError",
    "LedgerConnectionError",
    "RemoteLedgerClient",
    "RemoteRejectedError",
]
