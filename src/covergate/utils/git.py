"""Git utilities for covergate.

Thin wrappers around the ``git`` executable: reference resolution, the set
of files changed between a reference and ``HEAD``, and the identity of
``HEAD`` used to label history entries.
"""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"
DETACHED = "detached"
DEFAULT_DIFF_REF = "HEAD~1"

_GIT_REF_MAX_LENGTH = 255
# Revision suffixes (~N, ^) are allowed; shell metacharacters are not.
_GIT_REF_UNSAFE = re.compile(r"[\x00-\x1f\x7f :\?\*\[\]\\;|&$`()<>{}!#'\"]")
_COMMIT_ID_RE = re.compile(r"^[0-9a-fA-F]{7,40}$")

# Status letters from ``git diff --name-status`` that carry two paths.
_TWO_PATH_STATUSES = frozenset({"R", "C"})


class GitOperationError(Exception):
    """Exception raised when git operations fail."""


def _git_executable() -> str:
    """Resolve the full path to the ``git`` executable."""
    return shutil.which("git") or "git"


def _validate_git_ref(ref: str) -> None:
    """Validate a git ref to prevent injection and malformed inputs.

    Raises:
        GitOperationError: If the ref is invalid.
    """
    if not ref:
        raise GitOperationError("Git ref must not be empty")
    if len(ref) > _GIT_REF_MAX_LENGTH:
        raise GitOperationError(f"Git ref exceeds {_GIT_REF_MAX_LENGTH} characters")
    if _GIT_REF_UNSAFE.search(ref):
        raise GitOperationError(f"Git ref contains unsafe characters: {ref!r}")
    if ref.startswith("-"):
        raise GitOperationError("Git ref must not start with a dash")
    if ".." in ref:
        raise GitOperationError("Git ref must not contain '..'")


def _run_git(repo_path: Path | str, *args: str) -> str:
    """Run a git command in *repo_path* and return its stdout.

    Raises:
        GitOperationError: If git is missing or exits non-zero.
    """
    try:
        result = subprocess.run(
            [_git_executable(), *args],
            cwd=Path(repo_path),
            capture_output=True,
            text=True,
            check=True,
        )
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or "").strip()
        raise GitOperationError(f"git {args[0]} failed: {stderr or exc}") from exc
    except FileNotFoundError as exc:
        raise GitOperationError(f"git executable not found: {exc}") from exc
    return result.stdout


def _verify_commit(repo_path: Path | str, rev: str) -> str | None:
    """Return the commit id *rev* points to, or None when it does not resolve."""
    try:
        out = _run_git(repo_path, "rev-parse", "--verify", "--quiet", f"{rev}^{{commit}}")
    except GitOperationError:
        return None
    sha = out.strip()
    return sha or None


def resolve_reference(repo_path: Path | str, ref: str) -> str:
    """Resolve *ref* to a full commit id.

    Tried in order: a 7 to 40 character hex commit id, a local branch, a
    tag, a branch on ``origin``, and finally general revision syntax such as
    ``HEAD~1`` or ``HEAD^``.

    Raises:
        GitOperationError: If the ref is invalid or cannot be resolved.
    """
    _validate_git_ref(ref)

    candidates: list[str] = []
    if _COMMIT_ID_RE.match(ref):
        candidates.append(ref)
    candidates += [f"refs/heads/{ref}", f"refs/tags/{ref}", f"refs/remotes/origin/{ref}", ref]

    for candidate in candidates:
        sha = _verify_commit(repo_path, candidate)
        if sha:
            logger.debug("Resolved %s via %s to %s", ref, candidate, sha)
            return sha
    raise GitOperationError(f"Cannot resolve git reference {ref!r}")


def _parse_name_status(output: str) -> set[str]:
    """Parse ``git diff --name-status -z`` output into the affected paths.

    Added and modified entries contribute their path, deleted entries their
    old path, renames both paths and copies only their new path.
    """
    paths: set[str] = set()
    tokens = output.split("\0")
    i = 0
    while i < len(tokens):
        status = tokens[i].strip()
        i += 1
        if not status:
            continue
        kind = status[0].upper()
        if kind in _TWO_PATH_STATUSES:
            if i + 1 >= len(tokens):
                break
            old_path, new_path = tokens[i], tokens[i + 1]
            i += 2
            paths.add(new_path)
            if kind == "R" and old_path != new_path:
                paths.add(old_path)
            continue
        if i >= len(tokens):
            break
        paths.add(tokens[i])
        i += 1
    paths.discard("")
    return paths


def get_changed_files(repo_path: Path | str = ".", target_ref: str = DEFAULT_DIFF_REF) -> set[str]:
    """Return repository-relative paths changed between *target_ref* and ``HEAD``.

    Args:
        repo_path: Path to git repository.
        target_ref: Branch, tag, commit id or revision to diff against.

    Returns:
        Set of changed file paths (may be empty).

    Raises:
        GitOperationError: If the repository or reference is unusable.
    """
    base = resolve_reference(repo_path, target_ref)
    head = _verify_commit(repo_path, "HEAD")
    if head is None:
        raise GitOperationError("Cannot resolve HEAD")
    output = _run_git(repo_path, "diff", "--name-status", "-M", "-z", base, head)
    changed = _parse_name_status(output)
    logger.debug("%d files changed between %s and HEAD", len(changed), target_ref)
    return changed


@dataclass
class HeadInfo:
    """Identity of the checked-out commit."""

    commit: str = UNKNOWN
    """Full commit SHA."""

    branch: str = UNKNOWN
    """Short branch name, ``detached`` when HEAD is not on a branch."""

    tags: list[str] = field(default_factory=list)
    """Tags pointing at HEAD."""


def get_head_info(repo_path: Path | str = ".") -> HeadInfo:
    """Describe ``HEAD`` for labelling a history entry.

    Never raises: each lookup that fails leaves its field at ``unknown``
    (or an empty tag list).
    """
    info = HeadInfo()
    try:
        info.commit = _run_git(repo_path, "rev-parse", "HEAD").strip() or UNKNOWN
    except GitOperationError as exc:
        logger.warning("Cannot determine HEAD commit: %s", exc)
        return info

    try:
        info.branch = _run_git(repo_path, "symbolic-ref", "--short", "-q", "HEAD").strip()
    except GitOperationError:
        info.branch = DETACHED
    if not info.branch:
        info.branch = DETACHED

    try:
        tags = _run_git(repo_path, "tag", "--points-at", "HEAD")
    except GitOperationError as exc:
        logger.debug("Cannot list tags at HEAD: %s", exc)
    else:
        info.tags = [t.strip() for t in tags.splitlines() if t.strip()]
    return info
