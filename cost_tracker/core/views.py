"""
View derivation: sorted entry lists and per-category counts.

Pure functions over a projection. They are recomputed from scratch each
time the projection or the sort key changes.
"""

from collections import Counter
from typing import Callable, Iterable

from pydantic import BaseModel, ConfigDict

from cost_tracker.models.expense import ExpenseEntry, SortKey


_SORT_FIELDS: dict[SortKey, Callable[[ExpenseEntry], object]] = {
    SortKey.AMOUNT: lambda entry: entry.amount,
    SortKey.OCCURRED_AT: lambda entry: entry.occurred_at,
    SortKey.CATEGORY: lambda entry: entry.category,
}


def sorted_view(
    entries: Iterable[ExpenseEntry],
    sort_key: SortKey,
) -> list[ExpenseEntry]:
    """
    Order entries by ``sort_key``, ascending.

    Stable: entries that compare equal keep their relative order.
    SortKey.NONE returns the entries in the order given.
    """
    if sort_key is SortKey.NONE:
        return list(entries)
    return sorted(entries, key=_SORT_FIELDS[sort_key])


def category_aggregate(entries: Iterable[ExpenseEntry]) -> dict[str, int]:
    """Number of entries per category, canceled entries included."""
    return dict(Counter(entry.category for entry in entries))


class LedgerView(BaseModel):
    """What the shell renders: sorted entries plus the category counts."""
    model_config = ConfigDict(frozen=True)

    sort_key: SortKey = SortKey.NONE
    entries: tuple[ExpenseEntry, ...] = ()
    category_counts: dict[str, int] = {}


def derive_view(entries: Iterable[ExpenseEntry], sort_key: SortKey) -> LedgerView:
    entries = tuple(entries)
    return LedgerView(
        sort_key=sort_key,
        entries=tuple(sorted_view(entries, sort_key)),
        category_counts=category_aggregate(entries),
    )
