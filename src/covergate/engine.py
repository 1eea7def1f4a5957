"""Coverage check pipeline.

normalize -> filter -> aggregate -> evaluate -> sort, with optional
history comparison on top of the sorted results.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from covergate.compute.aggregate import aggregate
from covergate.compute.comparison import build_comparison
from covergate.compute.module import normalize_names
from covergate.compute.sorting import sort_entries
from covergate.compute.thresholds import evaluate
from covergate.filters import ChangedFilesProvider, DiffNotifier, filter_profiles
from covergate.utils.git import get_changed_files

if TYPE_CHECKING:
    from covergate.config import CovergateConfig
    from covergate.history import HistoryEntry, HistoryStore
    from covergate.models.profile import Profile
    from covergate.models.results import Results

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


@dataclass
class CheckOutcome:
    """Result of one pipeline run."""

    results: Results
    has_failure: bool
    module_prefix: str = ""
    """Prefix stripped from every file name."""

    @property
    def exit_code(self) -> int:
        return EXIT_FAILURE if self.has_failure else EXIT_OK


def run_check(
    profiles: list[Profile],
    config: CovergateConfig,
    notifier: DiffNotifier | None = None,
    *,
    changed_files: ChangedFilesProvider = get_changed_files,
    repo_path: Path | str = ".",
    source_root: Path | str = ".",
) -> CheckOutcome:
    """Run the coverage check over parsed *profiles*.

    Args:
        profiles: Parsed cover profiles.
        config: Validated configuration.
        notifier: Receives diff-scoping notices.
        changed_files: Git port used when ``config.diff_from`` is set.
        repo_path: Repository the diff is computed in.
        source_root: Directory source files and ``go.mod`` are resolved against.

    Returns:
        Evaluated, sorted results and the global failure flag.
    """
    normalized, prefix = normalize_names(profiles, config.module_name, source_root)
    filtered = filter_profiles(
        normalized, config, notifier, changed_files=changed_files, repo_path=repo_path
    )
    results = aggregate(
        filtered,
        with_uncovered_lines=not config.hide_uncovered_lines,
        source_root=source_root,
    )
    has_failure = evaluate(results, config)
    results.by_file = sort_entries(results.by_file, config.sort_by, config.sort_order)
    results.by_package = sort_entries(results.by_package, config.sort_by, config.sort_order)

    logger.debug(
        "Checked %d files (%d packages), failure=%s",
        len(results.by_file),
        len(results.by_package),
        has_failure,
    )
    return CheckOutcome(results=results, has_failure=has_failure, module_prefix=prefix)


def compare_with_history(results: Results, store: HistoryStore, ref: str) -> HistoryEntry:
    """Attach the comparison against the history entry for *ref* to *results*.

    Returns the entry that was compared with; ``results.comparison`` is
    left as ``None`` when nothing changed.

    Raises:
        FileNotFoundError: If the history file does not exist.
        HistoryError: If the history cannot be read or *ref* is unknown.
    """
    entry = store.find(ref)
    comparison = build_comparison(ref, entry.commit, entry.results, results)
    results.comparison = comparison
    return entry
