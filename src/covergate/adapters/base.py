"""Base class for coverage profile adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from covergate.models.profile import Profile


class CoverageAdapter(ABC):
    """Abstract base class for coverage profile readers.

    Each concrete adapter knows how to turn one coverage tool's native
    profile text into a list of :class:`~covergate.models.profile.Profile`.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Coverage format identifier (e.g. 'go_cover')."""

    @abstractmethod
    def detect(self, project_path: Path) -> bool:
        """Return True if this adapter applies to project_path."""

    @abstractmethod
    def parse_coverage_text(self, text: str) -> list[Profile]:
        """Parse raw profile text.

        Args:
            text: Full contents of a coverage profile.

        Returns:
            Profiles ordered by file name.
        """

    def parse_coverage_file(self, coverage_file: Path) -> list[Profile]:
        """Read *coverage_file* and parse it with :meth:`parse_coverage_text`."""
        return self.parse_coverage_text(coverage_file.read_text(encoding="utf-8"))
