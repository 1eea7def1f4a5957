"""Deterministic ordering of file and package entries."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol, TypeVar

if TYPE_CHECKING:
    from covergate.models.results import CoverageStats


class Sortable(Protocol):
    """Anything with an identity, counters and percentages."""

    name: str
    stats: CoverageStats
    statement_percentage: float
    block_percentage: float


T = TypeVar("T", bound=Sortable)

SORT_BY_FILE = "file"
SORT_BY_STATEMENTS = "statements"
SORT_BY_BLOCKS = "blocks"
SORT_BY_STATEMENT_PERCENT = "statement-percent"
SORT_BY_BLOCK_PERCENT = "block-percent"

SORT_ASC = "asc"
SORT_DESC = "desc"

SORT_ORDERS = (SORT_ASC, SORT_DESC)

_SORT_KEYS: dict[str, Callable[[Sortable], object]] = {
    SORT_BY_FILE: lambda e: e.name,
    SORT_BY_STATEMENTS: lambda e: e.stats.statement_hits,
    SORT_BY_BLOCKS: lambda e: e.stats.block_hits,
    SORT_BY_STATEMENT_PERCENT: lambda e: e.statement_percentage,
    SORT_BY_BLOCK_PERCENT: lambda e: e.block_percentage,
}

SORT_BY_VALUES = tuple(_SORT_KEYS)


def sort_entries(entries: list[T], sort_by: str = SORT_BY_FILE, order: str = SORT_ASC) -> list[T]:
    """Return *entries* ordered by *sort_by*.

    ``desc`` reverses only the primary key; equal keys always fall back to
    identity ascending.

    Raises:
        ValueError: For an unknown key or order.
    """
    if sort_by not in _SORT_KEYS:
        raise ValueError(f"Unknown sort key: {sort_by}")
    if order not in SORT_ORDERS:
        raise ValueError(f"Unknown sort order: {order}")

    by_name = sorted(entries, key=lambda e: e.name)
    if sort_by == SORT_BY_FILE:
        return by_name[::-1] if order == SORT_DESC else by_name
    # sorted() is stable, also with reverse=True, so ties keep the name order.
    return sorted(by_name, key=_SORT_KEYS[sort_by], reverse=order == SORT_DESC)
