"""Failure summary and delta formatting shared by all renderers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from covergate.models.results import EntityCoverage, Results

AXIS_STATEMENTS = "S"
AXIS_BLOCKS = "B"

SECTION_FILE = "By File"
SECTION_PACKAGE = "By Package"
SECTION_TOTAL = "By Total"

_MINUS = "−"


@dataclass
class Shortfall:
    """One axis of one entity that fell below its threshold."""

    axis: str
    """``S`` for statements, ``B`` for blocks."""

    name: str
    percentage: float
    threshold: float

    @property
    def gap(self) -> float:
        return self.threshold - self.percentage

    def format(self) -> str:
        return (
            f"    [{self.axis}] {self.name} "
            f"[+{self.gap:.1f}% required for {self.threshold:.1f}% threshold]"
        )


def _entity_shortfalls(entities: Iterable[EntityCoverage]) -> list[Shortfall]:
    shortfalls: list[Shortfall] = []
    for entity in entities:
        if not entity.failed:
            continue
        if entity.statement_percentage < entity.statement_threshold:
            shortfalls.append(
                Shortfall(
                    AXIS_STATEMENTS,
                    entity.name,
                    entity.statement_percentage,
                    entity.statement_threshold,
                )
            )
        if entity.block_percentage < entity.block_threshold:
            shortfalls.append(
                Shortfall(
                    AXIS_BLOCKS, entity.name, entity.block_percentage, entity.block_threshold
                )
            )
    return shortfalls


def collect_shortfalls(results: Results) -> dict[str, list[Shortfall]]:
    """Group every threshold miss by section, omitting empty sections."""
    totals: list[Shortfall] = []
    stmts, blocks = results.by_total.statements, results.by_total.blocks
    if stmts.percentage < stmts.threshold:
        totals.append(Shortfall(AXIS_STATEMENTS, "total", stmts.percentage, stmts.threshold))
    if blocks.percentage < blocks.threshold:
        totals.append(Shortfall(AXIS_BLOCKS, "total", blocks.percentage, blocks.threshold))

    sections = {
        SECTION_FILE: _entity_shortfalls(results.by_file),
        SECTION_PACKAGE: _entity_shortfalls(results.by_package),
        SECTION_TOTAL: totals,
    }
    return {title: items for title, items in sections.items() if items}


def summary_lines(results: Results, has_failure: bool) -> list[str]:
    """Plain-text failure summary."""
    if not has_failure:
        return ["✔ All good"]
    lines = ["✘ Coverage check failed"]
    for title, shortfalls in collect_shortfalls(results).items():
        lines.append(f" → {title}")
        lines.extend(s.format() for s in shortfalls)
    return lines


def format_delta(delta: float) -> str:
    """Format a percentage-point change with an explicit sign; zero gives ``""``."""
    if delta == 0:
        return ""
    if delta < 0:
        return f"{_MINUS}{-delta:.1f}%"
    return f"+{delta:.1f}%"
