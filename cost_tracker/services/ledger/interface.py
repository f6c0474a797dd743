"""
Abstract Remote Ledger Interface

DESIGN DECISION: The remote ledger is reached only through this interface.
This allows us to:
1. Talk to the cost-tracking contract in production
2. Use an in-memory ledger for testing and demos
3. Keep the sync engine decoupled from the RPC transport

The interface is intentionally small - one read, three writes.
Entries are identified by their position in the account's ledger.
"""

from abc import ABC, abstractmethod
from decimal import Decimal

from cost_tracker.models.expense import LedgerRecord


class RemoteLedgerClient(ABC):
    """
    Abstract interface for the authoritative, account-scoped ledger.

    All calls may be slow and may fail. A write returns once it has
    settled; settlement does not guarantee the very next read shows it.
    """

    @abstractmethod
    async def fetch_entries(self, account: str) -> list[LedgerRecord]:
        """
        Read every entry of an account's ledger.

        Args:
            account: The account whose ledger to read

        Returns:
            Records ordered by position (index 0 first)

        Raises:
            LedgerClientError: If the read fails
        """
        pass

    @abstractmethod
    async def submit_add(
        self,
        account: str,
        amount: Decimal,
        occurred_at: int,
        category: str,
        description: str,
    ) -> None:
        """
        Append a new entry to the account's ledger.

        Raises:
            LedgerClientError: If the write fails or is rejected
        """
        pass

    @abstractmethod
    async def submit_modify(
        self,
        account: str,
        position: int,
        amount: Decimal,
        occurred_at: int,
        category: str,
        description: str,
    ) -> None:
        """
        Overwrite the entry at ``position``.

        The remote side decides whether ``position`` exists.

        Raises:
            LedgerClientError: If the write fails or is rejected
        """
        pass

    @abstractmethod
    async def submit_cancel(self, account: str, position: int) -> None:
        """
        Flag the entry at ``position`` as canceled.

        Raises:
            LedgerClientError: If the write fails or is rejected
        """
        pass


class LedgerClientError(Exception):
    """Base exception for remote ledger calls."""
    pass


class LedgerConnectionError(LedgerClientError):
    """Could not reach the remote ledger."""
    pass


class RemoteRejectedError(LedgerClientError):
    """The remote ledger refused or reverted the call."""
    pass


class AuthorizationDeclinedError(LedgerClientError):
    """The wallet (or its user) declined to sign the call."""
    pass
