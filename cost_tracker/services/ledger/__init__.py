"""
Remote Ledger Services Package

Provides the abstract ledger client interface and its implementations:
the cost-tracking contract (production) and an in-memory ledger.
"""

from cost_tracker.services.ledger.interface import (
    AuthorizationDeclinedError,
    LedgerClientError,
    LedgerConnectionError,
    RemoteLedgerClient,
    RemoteRejectedError,
)
from cost_tracker.services.ledger.memory import InMemoryLedgerClient
from cost_tracker.services.ledger.contract import (
    ContractLedgerClient,
    load_contract_abi,
)

__all__ = [
    # Interface
    "RemoteLedgerClient",
    # Exceptions
    "AuthorizationDeclinedError",
    "LedgerClientError",
    "LedgerConnectionError",
    "RemoteRejectedError",
    # Implementations
    "ContractLedgerClient",
    "InMemoryLedgerClient",
    "load_contract_abi",
]
