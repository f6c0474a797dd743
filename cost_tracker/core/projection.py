"""
Ledger Projection

The client's copy of one account's ledger, exactly as last fetched.

DESIGN DECISION: A projection is immutable and is only ever built from a
complete fetch. After any mutation the whole projection is replaced, so
the local view cannot drift from the remote ledger through partial edits.
"""

from datetime import datetime, timezone
from typing import Iterator, Optional, Sequence

from cost_tracker.models.expense import ExpenseEntry, LedgerRecord


class LedgerProjection:
    """
    Ordered, position-tagged entries of one account at one fetch.
    """

    __slots__ = ("_account", "_entries", "_fetched_at")

    def __init__(
        self,
        account: str,
        entries: Sequence[ExpenseEntry] = (),
        fetched_at: Optional[datetime] = None,
    ):
        self._account = account
        self._entries = tuple(entries)
        self._fetched_at = fetched_at

    @classmethod
    def empty(cls, account: str) -> "LedgerProjection":
        """Projection of an account that has not been fetched yet."""
        return cls(account)

    @classmethod
    def from_records(
        cls,
        account: str,
        records: Sequence[LedgerRecord],
    ) -> "LedgerProjection":
        """
        Build a projection from a fetch result.

        Each record's position is its index in the fetched sequence.
        """
        entries = [
            ExpenseEntry(position=index, **record.model_dump())
            for index, record in enumerate(records)
        ]
        return cls(account, entries, fetched_at=datetime.now(timezone.utc))

    @property
    def account(self) -> str:
        return self._account

    @property
    def entries(self) -> tuple[ExpenseEntry, ...]:
        return self._entries

    @property
    def fetched_at(self) -> Optional[datetime]:
        """When the backing fetch completed; None if never fetched."""
        return self._fetched_at

    def get(self, position: int) -> Optional[ExpenseEntry]:
        """Entry at ``position``, or None if the projection has none there."""
        for entry in self._entries:
            if entry.position == position:
                return entry
        return None

    def __iter__(self) -> Iterator[ExpenseEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"LedgerProjection(account={self._account!r}, entries={len(self._entries)})"
