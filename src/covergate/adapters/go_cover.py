"""Go cover profile adapter.

Parses the standard Go cover profile format (``mode: <mode>`` followed by
``file:startLine.startCol,endLine.endCol numStmts count`` lines) into
:class:`~covergate.models.profile.Profile` records.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import TYPE_CHECKING

from covergate.adapters.base import CoverageAdapter
from covergate.models.profile import Block, Profile

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

# ── Constants ────────────────────────────────────────────────────

_GO_MOD = "go.mod"
_MODE_PREFIX = "mode:"
_VALID_MODES = frozenset({"set", "count", "atomic"})

# Cover profile: "file:startLine.startCol,endLine.endCol numStmts count"
_COVER_LINE_REGEX = re.compile(r"^(.+):(\d+)\.(\d+),(\d+)\.(\d+)\s+(\d+)\s+(\d+)\s*$")


class ProfileParseError(Exception):
    """Raised when a cover profile cannot be parsed."""


# ── Adapter ──────────────────────────────────────────────────────


class GoCoverAdapter(CoverageAdapter):
    """Reader for ``go test -coverprofile`` output."""

    @property
    def name(self) -> str:
        return "go_cover"

    def detect(self, project_path: Path) -> bool:
        """Return True when go.mod exists (Go project)."""
        return (project_path / _GO_MOD).is_file()

    def parse_coverage_file(self, coverage_file: Path) -> list[Profile]:
        try:
            text = coverage_file.read_text(encoding="utf-8")
        except OSError as exc:
            raise ProfileParseError(f"Cannot read coverage file {coverage_file}: {exc}") from exc
        return self.parse_coverage_text(text)

    def parse_coverage_text(self, text: str) -> list[Profile]:
        """Parse a Go cover profile.

        Blocks reported more than once at the same position (e.g. from
        concatenated profiles) are merged: ``set`` mode keeps the larger
        count, ``count`` and ``atomic`` add them.

        Raises:
            ProfileParseError: On a missing mode line or a malformed block line.
        """
        mode = ""
        blocks_by_file: dict[str, list[Block]] = {}

        for lineno, raw_line in enumerate(text.splitlines(), start=1):
            line = raw_line.strip()
            if not line:
                continue
            if line.startswith(_MODE_PREFIX):
                line_mode = line.partition(":")[2].strip()
                if line_mode not in _VALID_MODES:
                    raise ProfileParseError(f"line {lineno}: bad mode line: {line!r}")
                if mode and line_mode != mode:
                    raise ProfileParseError(
                        f"line {lineno}: mode {line_mode!r} conflicts with {mode!r}"
                    )
                mode = line_mode
                continue
            if not mode:
                raise ProfileParseError(f"line {lineno}: bad mode line: {line!r}")

            match = _COVER_LINE_REGEX.match(line)
            if not match:
                raise ProfileParseError(
                    f"line {lineno}: {line!r} doesn't match expected format"
                )
            file_name, sl, sc, el, ec, num_stmts, count = match.groups()
            blocks_by_file.setdefault(file_name, []).append(
                Block(
                    start_line=int(sl),
                    start_col=int(sc),
                    end_line=int(el),
                    end_col=int(ec),
                    num_statements=int(num_stmts),
                    hit_count=int(count),
                )
            )

        profiles = [
            Profile(file_name=name, mode=mode, blocks=_merge_blocks(name, blocks, mode))
            for name, blocks in sorted(blocks_by_file.items())
        ]
        logger.debug("Parsed %d profiles (mode=%s)", len(profiles), mode or "none")
        return profiles


def _merge_blocks(file_name: str, blocks: list[Block], mode: str) -> list[Block]:
    """Order blocks by position and collapse duplicates at the same position."""
    merged: list[Block] = []
    for block in sorted(blocks, key=lambda b: b.position):
        if merged and merged[-1].position == block.position:
            last = merged[-1]
            if last.num_statements != block.num_statements:
                raise ProfileParseError(
                    f"inconsistent statement count for {file_name}:"
                    f"{block.start_line}.{block.start_col}"
                )
            if mode == "set":
                count = max(last.hit_count, block.hit_count)
            else:
                count = last.hit_count + block.hit_count
            merged[-1] = replace(last, hit_count=count)
            continue
        merged.append(block)
    return merged
