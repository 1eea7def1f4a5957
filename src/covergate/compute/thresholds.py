"""Threshold resolution and failure evaluation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from covergate.config import CovergateConfig, ThresholdOverrides
    from covergate.models.results import EntityCoverage, Results, TotalCoverage

logger = logging.getLogger(__name__)


def resolve_threshold(overrides: Mapping[str, float], name: str, default: float) -> float:
    """Return the override for *name* when present, else *default*."""
    return overrides.get(name, default)


def evaluate_entities(
    entities: Iterable[EntityCoverage],
    overrides: ThresholdOverrides,
    config: CovergateConfig,
) -> bool:
    """Set thresholds and failure flags on each entity.

    Returns True if any entity failed.
    """
    any_failed = False
    for entity in entities:
        entity.statement_threshold = resolve_threshold(
            overrides.statements, entity.name, config.statement_threshold
        )
        entity.block_threshold = resolve_threshold(
            overrides.blocks, entity.name, config.block_threshold
        )
        entity.failed = (
            entity.statement_percentage < entity.statement_threshold
            or entity.block_percentage < entity.block_threshold
        )
        if entity.failed:
            logger.debug(
                "%s below threshold: statements %.1f/%.1f, blocks %.1f/%.1f",
                entity.name,
                entity.statement_percentage,
                entity.statement_threshold,
                entity.block_percentage,
                entity.block_threshold,
            )
            any_failed = True
    return any_failed


def _evaluate_total(total: TotalCoverage, threshold: float) -> bool:
    total.threshold = threshold
    total.failed = total.percentage < threshold
    return total.failed


def evaluate(results: Results, config: CovergateConfig) -> bool:
    """Apply every threshold to *results*.

    Returns:
        True when any file, package or total failed.
    """
    files_failed = evaluate_entities(results.by_file, config.per_file, config)
    packages_failed = evaluate_entities(results.by_package, config.per_package, config)
    statements_failed = _evaluate_total(
        results.by_total.statements, config.total_statement_threshold
    )
    blocks_failed = _evaluate_total(results.by_total.blocks, config.total_block_threshold)
    return files_failed or packages_failed or statements_failed or blocks_failed
