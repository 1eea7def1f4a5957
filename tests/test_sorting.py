"""Tests for entry ordering (compute/sorting.py)."""

from __future__ import annotations

import pytest

from covergate.compute.sorting import sort_entries
from covergate.models.results import ByFile, CoverageStats


def _entry(
    name: str, statement_hits: int, statements: int, blocks: tuple[int, int] = (1, 1)
) -> ByFile:
    stats = CoverageStats(
        statement_hits=statement_hits,
        statements=statements,
        block_hits=blocks[0],
        blocks=blocks[1],
    )
    return ByFile.from_stats(name, stats)


def _names(entries: list[ByFile]) -> list[str]:
    return [e.name for e in entries]


class TestSortEntries:
    def test_statement_percent_desc(self) -> None:
        entries = [_entry("a", 1, 2), _entry("b", 2, 2), _entry("c", 0, 2)]
        ordered = sort_entries(entries, "statement-percent", "desc")
        assert _names(ordered) == ["b", "a", "c"]

    def test_statement_percent_asc(self) -> None:
        entries = [_entry("a", 1, 2), _entry("b", 2, 2), _entry("c", 0, 2)]
        assert _names(sort_entries(entries, "statement-percent", "asc")) == ["c", "a", "b"]

    def test_file_order(self) -> None:
        entries = [_entry("b.go", 0, 1), _entry("a.go", 0, 1), _entry("c.go", 0, 1)]
        assert _names(sort_entries(entries)) == ["a.go", "b.go", "c.go"]
        assert _names(sort_entries(entries, "file", "desc")) == ["c.go", "b.go", "a.go"]

    def test_ties_fall_back_to_name_ascending(self) -> None:
        entries = [_entry("z", 1, 2), _entry("m", 1, 2), _entry("a", 2, 2)]
        assert _names(sort_entries(entries, "statement-percent", "desc")) == ["a", "m", "z"]
        assert _names(sort_entries(entries, "statement-percent", "asc")) == ["m", "z", "a"]

    def test_statements_sorts_by_hit_count(self) -> None:
        entries = [_entry("a", 5, 100), _entry("b", 1, 1), _entry("c", 3, 3)]
        assert _names(sort_entries(entries, "statements", "desc")) == ["a", "c", "b"]

    def test_blocks_and_block_percent(self) -> None:
        entries = [
            _entry("a", 0, 1, blocks=(3, 10)),
            _entry("b", 0, 1, blocks=(1, 1)),
            _entry("c", 0, 1, blocks=(2, 4)),
        ]
        assert _names(sort_entries(entries, "blocks", "asc")) == ["b", "c", "a"]
        assert _names(sort_entries(entries, "block-percent", "asc")) == ["a", "c", "b"]

    @pytest.mark.parametrize(
        "key", ["file", "statements", "blocks", "statement-percent", "block-percent"]
    )
    @pytest.mark.parametrize("order", ["asc", "desc"])
    def test_sort_is_idempotent(self, key: str, order: str) -> None:
        entries = [
            _entry("c", 1, 2, blocks=(1, 3)),
            _entry("a", 2, 2, blocks=(2, 2)),
            _entry("d", 1, 2, blocks=(0, 1)),
            _entry("b", 0, 4, blocks=(1, 3)),
        ]
        once = sort_entries(entries, key, order)
        assert _names(sort_entries(once, key, order)) == _names(once)

    def test_input_is_not_reordered(self) -> None:
        entries = [_entry("b", 0, 1), _entry("a", 0, 1)]
        sort_entries(entries)
        assert _names(entries) == ["b", "a"]

    def test_unknown_key(self) -> None:
        with pytest.raises(ValueError, match="sort key"):
            sort_entries([], "coverage", "asc")

    def test_unknown_order(self) -> None:
        with pytest.raises(ValueError, match="sort order"):
            sort_entries([], "file", "sideways")
