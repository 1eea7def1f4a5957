"""Module prefix resolution and file name normalization."""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from covergate.models.profile import Profile

logger = logging.getLogger(__name__)

_GO_MOD = "go.mod"
_MODULE_LINE_RE = re.compile(r"^\s*module\s+(\S+)")


def longest_common_prefix(names: list[str]) -> str:
    """Return the longest leading run shared by every name.

    Fewer than two names yield ``""``. The result is a plain character
    prefix, not a path-segment prefix.
    """
    if len(names) < 2:
        return ""
    ordered = sorted(names)
    first, last = ordered[0], ordered[-1]
    i = 0
    while i < len(first) and i < len(last) and first[i] == last[i]:
        i += 1
    return first[:i]


def read_go_module(root: str | Path = ".") -> str:
    """Return the module path declared in ``root/go.mod``, or ``""``."""
    go_mod = Path(root) / _GO_MOD
    try:
        text = go_mod.read_text(encoding="utf-8")
    except OSError:
        return ""
    for line in text.splitlines():
        match = _MODULE_LINE_RE.match(line)
        if match:
            return match.group(1).strip('"')
    return ""


def find_module_prefix(profiles: list[Profile], module_name: str = "", root: str | Path = ".") -> str:
    """Resolve the prefix to strip from every profile file name.

    An explicit *module_name* wins. Otherwise the module declared in
    ``go.mod`` is used when it prefixes every file name, and failing that
    the longest common prefix of the file names.
    """
    if module_name:
        return module_name if module_name.endswith("/") else module_name + "/"

    names = [p.file_name for p in profiles]

    go_module = read_go_module(root)
    if go_module:
        prefix = go_module + "/"
        if names and all(name.startswith(prefix) for name in names):
            return prefix
        logger.warning(
            "Module %s from go.mod does not prefix every profile file; "
            "falling back to common prefix",
            go_module,
        )

    return longest_common_prefix(names)


def normalize_names(
    profiles: list[Profile], module_name: str = "", root: str | Path = "."
) -> tuple[list[Profile], str]:
    """Strip the resolved module prefix from each profile's file name.

    Only the first occurrence of the prefix is removed.

    Returns:
        The renamed profiles and the prefix that was stripped.
    """
    prefix = find_module_prefix(profiles, module_name, root)
    logger.debug("Normalizing %d profiles with prefix %r", len(profiles), prefix)
    if not prefix:
        return list(profiles), prefix
    return [replace(p, file_name=p.file_name.replace(prefix, "", 1)) for p in profiles], prefix
