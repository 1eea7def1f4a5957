"""Uncovered line collection and range compression."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from covergate.models.profile import Block

logger = logging.getLogger(__name__)

# ── Constants ────────────────────────────────────────────────────

_CLOSING_BRACES_RE = re.compile(r"^[}\s]+$")
_INLINE_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/")

# Anything that looks like code rather than prose inside a block comment.
_SYNTAX_TOKENS = (
    "(",
    ")",
    "{",
    "}",
    "=",
    ";",
    "<-",
    "&&",
    "||",
    "++",
    "--",
    ".",
)
_KEYWORD_RE = re.compile(
    r"\b(import|package|func|var|const|type|if|else|for|return|go|defer|"
    r"select|switch|case|default|range|chan)\b"
)


# ── Collection ───────────────────────────────────────────────────


def collect_uncovered_lines(blocks: Iterable[Block]) -> list[int]:
    """Return the sorted union of line ranges covered by zero-count blocks."""
    lines: set[int] = set()
    for block in blocks:
        if not block.is_covered:
            lines.update(range(block.start_line, block.end_line + 1))
    return sorted(lines)


def read_source_lines(file_name: str, root: str | Path = ".") -> list[str] | None:
    """Read the module-relative source file *file_name* under *root*.

    Returns ``None`` when it cannot be read. No other path is tried, so a
    same-named file elsewhere never stands in for it.
    """
    path = Path(file_name)
    if not path.is_absolute():
        path = Path(root) / path
    try:
        return path.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError:
        logger.debug("Source for %s not readable; uncovered lines left unfiltered", file_name)
        return None


def is_prose(text: str) -> bool:
    """Return True for text that reads like comment prose, not code."""
    if any(token in text for token in _SYNTAX_TOKENS):
        return False
    if _KEYWORD_RE.search(text):
        return False
    return len(text.split()) >= 2


def filter_excluded_lines(lines: list[int], source: list[str]) -> list[int]:
    """Drop uncovered lines that cannot hold executable code.

    Removed: blank lines, comment lines, lines made only of closing braces,
    and prose lines inside a block comment that is still open.
    """
    wanted = set(lines)
    kept: list[int] = []
    in_block_comment = False

    for lineno, raw in enumerate(source, start=1):
        text = _INLINE_BLOCK_COMMENT_RE.sub("", raw).strip()
        opened_here = False

        if in_block_comment:
            if "*/" in text:
                in_block_comment = False
                skip = True
            else:
                skip = text.startswith("*") or not text or is_prose(text)
        elif text.startswith("/*"):
            in_block_comment = "*/" not in text
            opened_here = True
            skip = True
        else:
            skip = (
                not text
                or text.startswith("//")
                or text.startswith("*")
                or text.endswith("*/")
                or bool(_CLOSING_BRACES_RE.match(text))
            )

        if not opened_here and not in_block_comment and "/*" in text and "*/" not in text:
            in_block_comment = True

        if lineno in wanted and not skip:
            kept.append(lineno)

    # Lines past the end of the source cannot be checked; keep them.
    last = len(source)
    kept.extend(n for n in lines if n > last)
    return kept


# ── Compression ──────────────────────────────────────────────────


def format_line_ranges(lines: list[int]) -> str:
    """Compress sorted line numbers into ``"a,b-c"`` form."""
    if not lines:
        return ""
    ranges: list[str] = []
    start = prev = lines[0]
    for n in lines[1:]:
        if n == prev + 1:
            prev = n
            continue
        ranges.append(_format_run(start, prev))
        start = prev = n
    ranges.append(_format_run(start, prev))
    return ",".join(ranges)


def _format_run(start: int, end: int) -> str:
    return str(start) if start == end else f"{start}-{end}"


def parse_line_ranges(value: str) -> list[int]:
    """Expand an ``"a,b-c"`` string back into line numbers."""
    lines: list[int] = []
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        if "-" in part:
            start, _, end = part.partition("-")
            lines.extend(range(int(start), int(end) + 1))
        else:
            lines.append(int(part))
    return lines


def uncovered_line_ranges(
    file_name: str, blocks: Iterable[Block], root: str | Path = "."
) -> str:
    """Build the compressed uncovered-line string for one file."""
    lines = collect_uncovered_lines(blocks)
    if not lines:
        return ""
    source = read_source_lines(file_name, root)
    if source is not None:
        lines = filter_excluded_lines(lines, source)
    return format_line_ranges(lines)
