"""
In-Memory Ledger

A process-local stand-in for the remote ledger with the same contract:
append on add, overwrite on modify, flag on cancel, nothing ever removed.

Used by the tests and by the shell's demo mode.
"""

import asyncio
from collections import defaultdict
from decimal import Decimal
from typing import Iterable

from cost_tracker.models.expense import LedgerRecord
from cost_tracker.services.ledger.interface import (
    RemoteLedgerClient,
    RemoteRejectedError,
)


class InMemoryLedgerClient(RemoteLedgerClient):
    """
    Ledger kept in a dict of per-account lists.
    """

    def __init__(self, latency_seconds: float = 0.0):
        self._ledgers: dict[str, list[LedgerRecord]] = defaultdict(list)
        self._latency = latency_seconds

    def seed(self, account: str, records: Iterable[LedgerRecord]) -> None:
        """Append records directly, bypassing the async calls."""
        self._ledgers[account].extend(records)

    def accounts(self) -> list[str]:
        return sorted(self._ledgers)

    async def _round_trip(self) -> None:
        if self._latency:
            await asyncio.sleep(self._latency)

    def _check_position(self, account: str, position: int) -> None:
        if not 0 <= position < len(self._ledgers[account]):
            raise RemoteRejectedError(
                f"Position {position} does not exist in the ledger of {account}"
            )

    async def fetch_entries(self, account: str) -> list[LedgerRecord]:
        await self._round_trip()
        return list(self._ledgers[account])

    async def submit_add(
        self,
        account: str,
        amount: Decimal,
        occurred_at: int,
        category: str,
        description: str,
    ) -> None:
        await self._round_trip()
        self._ledgers[account].append(LedgerRecord(
            amount=amount,
            occurred_at=occurred_at,
            category=category,
            description=description,
        ))

    async def submit_modify(
        self,
        account: str,
        position: int,
        amount: Decimal,
        occurred_at: int,
        category: str,
        description: str,
    ) -> None:
        await self._round_trip()
        self._check_position(account, position)
        current = self._ledgers[account][position]
        self._ledgers[account][position] = current.model_copy(update={
            "amount": amount,
            "occurred_at": occurred_at,
            "category": category,
            "description": description,
        })

    async def submit_cancel(self, account: str, position: int) -> None:
        await self._round_trip()
        self._check_position(account, position)
        current = self._ledgers[account][position]
        self._ledgers[account][position] = current.model_copy(update={"canceled": True})
