"""Roll profile blocks up into file, package and total statistics."""

from __future__ import annotations

import logging
import posixpath
from pathlib import Path
from typing import TYPE_CHECKING

from covergate.compute.uncovered import uncovered_line_ranges
from covergate.models.results import (
    ByFile,
    ByPackage,
    CoverageStats,
    Results,
    TotalCoverage,
    Totals,
)

if TYPE_CHECKING:
    from covergate.models.profile import Profile

logger = logging.getLogger(__name__)


def package_of(file_name: str) -> str:
    """Return the directory part of *file_name*, or ``"."`` for top-level files."""
    return posixpath.normpath(posixpath.dirname(file_name))


def file_stats(profile: Profile) -> CoverageStats:
    """Count statements and blocks of a single profile."""
    stats = CoverageStats()
    for block in profile.blocks:
        stats.add_block(block)
    return stats


def aggregate(
    profiles: list[Profile],
    *,
    with_uncovered_lines: bool = True,
    source_root: str | Path = ".",
) -> Results:
    """Build unevaluated :class:`Results` from normalized profiles.

    Packages appear in order of first occurrence; thresholds and failure
    flags are left at their defaults for the evaluator to fill in.
    """
    by_file: list[ByFile] = []
    package_stats: dict[str, CoverageStats] = {}
    totals = CoverageStats()

    for profile in profiles:
        stats = file_stats(profile)
        uncovered = ""
        if with_uncovered_lines:
            uncovered = uncovered_line_ranges(profile.file_name, profile.blocks, source_root)
        by_file.append(ByFile.from_stats(profile.file_name, stats, uncovered_lines=uncovered))

        package_stats.setdefault(package_of(profile.file_name), CoverageStats()).merge(stats)
        totals.merge(stats)

    by_package = [ByPackage.from_stats(name, stats) for name, stats in package_stats.items()]
    by_total = Totals(
        statements=TotalCoverage.from_counts(totals.statement_hits, totals.statements),
        blocks=TotalCoverage.from_counts(totals.block_hits, totals.blocks),
    )

    logger.debug(
        "Aggregated %d files into %d packages (%s statements)",
        len(by_file),
        len(by_package),
        totals.statement_coverage,
    )
    return Results(by_file=by_file, by_package=by_package, by_total=by_total)
