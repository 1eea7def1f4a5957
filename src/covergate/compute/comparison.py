"""Delta computation between two runs."""

from __future__ import annotations

from typing import TYPE_CHECKING

from covergate.models.results import ComparisonData, ComparisonDelta, ComparisonResult

if TYPE_CHECKING:
    from collections.abc import Sequence

    from covergate.models.results import EntityCoverage, Results

TYPE_FILE = "file"
TYPE_PACKAGE = "package"
TYPE_TOTAL = "total"


def _entity_deltas(
    previous: Sequence[EntityCoverage], current: Sequence[EntityCoverage], kind: str
) -> list[ComparisonResult]:
    prev_by_name: dict[str, EntityCoverage] = {}
    for entry in previous:
        prev_by_name.setdefault(entry.name, entry)

    changed: list[ComparisonResult] = []
    for entry in current:
        prev = prev_by_name.get(entry.name)
        if prev is None:
            continue
        delta = ComparisonDelta(
            statements_delta=entry.statement_percentage - prev.statement_percentage,
            blocks_delta=entry.block_percentage - prev.block_percentage,
        )
        if delta.statements_delta != 0 or delta.blocks_delta != 0:
            changed.append(ComparisonResult(name=entry.name, type=kind, delta=delta))
    return changed


def build_comparison(
    ref: str, commit: str, previous: Results, current: Results
) -> ComparisonData | None:
    """Compare *current* against *previous*.

    Only entities present in both runs are compared. Files come first, then
    packages, then a single ``total`` entry. Returns ``None`` when nothing
    changed.
    """
    results = _entity_deltas(previous.by_file, current.by_file, TYPE_FILE)
    results += _entity_deltas(previous.by_package, current.by_package, TYPE_PACKAGE)

    total = ComparisonDelta(
        statements_delta=current.by_total.statements.percentage
        - previous.by_total.statements.percentage,
        blocks_delta=current.by_total.blocks.percentage - previous.by_total.blocks.percentage,
    )
    if total.statements_delta != 0 or total.blocks_delta != 0:
        results.append(ComparisonResult(name=TYPE_TOTAL, type=TYPE_TOTAL, delta=total))

    if not results:
        return None
    return ComparisonData(ref=ref, commit=commit, results=results)
