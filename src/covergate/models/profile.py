"""Coverage profile models."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Block:
    """A contiguous source region recorded by the coverage instrumentation."""

    start_line: int
    start_col: int
    end_line: int
    end_col: int
    num_statements: int
    hit_count: int

    @property
    def is_covered(self) -> bool:
        """Return True if this block was executed at least once."""
        return self.hit_count > 0

    @property
    def position(self) -> tuple[int, int, int, int]:
        """Return the (start_line, start_col, end_line, end_col) tuple."""
        return (self.start_line, self.start_col, self.end_line, self.end_col)


@dataclass
class Profile:
    """All blocks recorded for a single source file."""

    file_name: str
    """File name as written by the coverage tool (module-qualified)."""

    mode: str = "set"
    """Cover mode: set, count or atomic."""

    blocks: list[Block] = field(default_factory=list)
    """Blocks ordered by position."""
