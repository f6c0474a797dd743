"""Shared fixtures: an in-memory ledger seeded with a few expenses."""

import asyncio
from decimal import Decimal

import pytest

from cost_tracker.audit import AuditLogger
from cost_tracker.config import get_settings
from cost_tracker.core import SyncEngine
from cost_tracker.models.expense import ExpenseEntry, LedgerRecord
from cost_tracker.services.ledger import InMemoryLedgerClient


ACCOUNT = "0xAbC0000000000000000000000000000000000001"
OTHER_ACCOUNT = "0xAbC0000000000000000000000000000000000002"


class GatedLedgerClient(InMemoryLedgerClient):
    """In-memory ledger whose writes wait until the test opens the gate."""

    def __init__(self):
        super().__init__()
        self.gate = asyncio.Event()
        self.submits = 0

    async def _held(self) -> None:
        self.submits += 1
        await self.gate.wait()

    async def submit_add(self, *args, **kwargs):
        await self._held()
        await super().submit_add(*args, **kwargs)

    async def submit_modify(self, *args, **kwargs):
        await self._held()
        await super().submit_modify(*args, **kwargs)

    async def submit_cancel(self, *args, **kwargs):
        await self._held()
        await super().submit_cancel(*args, **kwargs)


class SlowFetchLedgerClient(InMemoryLedgerClient):
    """In-memory ledger whose reads wait on a gate once ``hold_fetches`` is set."""

    def __init__(self):
        super().__init__()
        self.gate = asyncio.Event()
        self.hold_fetches = False
        self.held_fetches = 0
        self.submits = 0

    async def fetch_entries(self, account):
        if self.hold_fetches:
            self.held_fetches += 1
            await self.gate.wait()
        return await super().fetch_entries(account)

    async def submit_add(self, *args, **kwargs):
        self.submits += 1
        await super().submit_add(*args, **kwargs)

    async def submit_cancel(self, *args, **kwargs):
        self.submits += 1
        await super().submit_cancel(*args, **kwargs)


def make_entries(*rows) -> list[ExpenseEntry]:
    """Entries from (amount, occurred_at, category) tuples, positions in order."""
    return [
        ExpenseEntry(
            position=index,
            amount=Decimal(amount),
            occurred_at=occurred_at,
            category=category,
        )
        for index, (amount, occurred_at, category) in enumerate(rows)
    ]


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Settings are cached per process; start each test from the environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def food_record() -> LedgerRecord:
    return LedgerRecord(
        amount=Decimal("12.50"),
        occurred_at=1700000000,
        category="food",
        description="lunch",
    )


@pytest.fixture
def ledger(food_record) -> InMemoryLedgerClient:
    client = InMemoryLedgerClient()
    client.seed(ACCOUNT, [food_record])
    return client


@pytest.fixture
def audit_logger() -> AuditLogger:
    return AuditLogger(history_size=100)


@pytest.fixture
def engine(ledger, audit_logger) -> SyncEngine:
    return SyncEngine(client=ledger, audit_logger=audit_logger)


@pytest.fixture
def gated_ledger(food_record) -> GatedLedgerClient:
    client = GatedLedgerClient()
    client.seed(ACCOUNT, [food_record])
    return client


@pytest.fixture
def gated_engine(gated_ledger, audit_logger) -> SyncEngine:
    return SyncEngine(client=gated_ledger, audit_logger=audit_logger)


@pytest.fixture
def slow_fetch_ledger(food_record) -> SlowFetchLedgerClient:
    client = SlowFetchLedgerClient()
    client.seed(ACCOUNT, [food_record])
    return client


@pytest.fixture
def slow_fetch_engine(slow_fetch_ledger, audit_logger) -> SyncEngine:
    return SyncEngine(client=slow_fetch_ledger, audit_logger=audit_logger)
