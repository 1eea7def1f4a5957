"""Profile filtering: skip patterns and git-diff scoping."""

from __future__ import annotations

import logging
import posixpath
import re
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from covergate.utils.git import GitOperationError, get_changed_files

if TYPE_CHECKING:
    from collections.abc import Iterable

    from covergate.config import CovergateConfig
    from covergate.models.profile import Profile

logger = logging.getLogger(__name__)

ChangedFilesProvider = Callable[[Path | str, str], set[str]]


class DiffNotifier(Protocol):
    """Receives notices about diff-scoped filtering."""

    def diff_warning(self, error: Exception) -> None: ...

    def diff_no_changes(self) -> None: ...

    def diff_mode_info(self, kept: int, total: int) -> None: ...


def filter_by_skip(profiles: list[Profile], patterns: Iterable[str]) -> list[Profile]:
    """Drop profiles whose file name matches any of *patterns*."""
    compiled = [re.compile(p) for p in patterns]
    if not compiled:
        return list(profiles)
    kept: list[Profile] = []
    for profile in profiles:
        if any(rx.search(profile.file_name) for rx in compiled):
            logger.debug("Skipping %s", profile.file_name)
            continue
        kept.append(profile)
    return kept


def _dir(path: str) -> str:
    return posixpath.dirname(path) or "."


def matches(profile_path: str, changed_path: str, module_name: str = "") -> bool:
    """Return True when a profile file name refers to a changed repository path.

    Accepted when the paths are equal, equal after stripping the module
    prefix from the profile path, equal after normalization, one is a
    suffix of the other, or the base names match and one directory is a
    suffix of the other.
    """
    if profile_path == changed_path:
        return True

    if module_name and profile_path.startswith(module_name):
        if profile_path[len(module_name) :].lstrip("/") == changed_path:
            return True

    if posixpath.normpath(profile_path) == posixpath.normpath(changed_path):
        return True

    if profile_path.endswith(changed_path) or changed_path.endswith(profile_path):
        return True

    if posixpath.basename(profile_path) == posixpath.basename(changed_path):
        profile_dir, changed_dir = _dir(profile_path), _dir(changed_path)
        if profile_dir.endswith(changed_dir) or changed_dir.endswith(profile_dir):
            return True

    return False


def filter_by_changed_files(
    profiles: list[Profile], changed: set[str], module_name: str = ""
) -> list[Profile]:
    """Keep profiles that match at least one changed path."""
    return [
        p for p in profiles if any(matches(p.file_name, path, module_name) for path in changed)
    ]


def filter_profiles(
    profiles: list[Profile],
    config: CovergateConfig,
    notifier: DiffNotifier | None = None,
    *,
    changed_files: ChangedFilesProvider = get_changed_files,
    repo_path: Path | str = ".",
) -> list[Profile]:
    """Apply skip patterns and, when ``diff_from`` is set, diff scoping.

    A failing diff lookup is reported through *notifier* and leaves the
    skip-filtered profiles untouched; an empty change set filters
    everything out.
    """
    kept = filter_by_skip(profiles, config.skip)
    if not config.diff_from:
        return kept

    try:
        changed = changed_files(repo_path, config.diff_from)
    except GitOperationError as exc:
        logger.warning("Diff against %s unavailable, checking all files: %s", config.diff_from, exc)
        if notifier is not None:
            notifier.diff_warning(exc)
        return kept

    if not changed:
        if notifier is not None:
            notifier.diff_no_changes()
        return []

    scoped = filter_by_changed_files(kept, changed, config.module_name)
    logger.debug("Diff scoping kept %d of %d files", len(scoped), len(kept))
    if notifier is not None:
        notifier.diff_mode_info(len(scoped), len(kept))
    return scoped
