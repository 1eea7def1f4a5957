"""Coverage result models produced by the aggregation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Self

if TYPE_CHECKING:
    from covergate.models.profile import Block


def percent(hits: int, total: int) -> float:
    """Return ``hits`` as a percentage of ``total``.

    An empty denominator counts as fully covered.
    """
    if total == 0:
        return 100.0
    return float(hits) / float(total) * 100.0


def _ratio(hits: int, total: int) -> str:
    return f"{hits}/{total}"


def _parse_ratio(value: object) -> tuple[int, int]:
    """Parse a ``"hits/total"`` string back into its counters."""
    if not isinstance(value, str) or "/" not in value:
        return 0, 0
    hits, _, total = value.partition("/")
    try:
        return int(hits), int(total)
    except ValueError:
        return 0, 0


@dataclass
class CoverageStats:
    """Raw statement and block counters (the internal working record)."""

    statement_hits: int = 0
    statements: int = 0
    block_hits: int = 0
    blocks: int = 0

    def add_block(self, block: Block) -> None:
        """Fold one profile block into the counters."""
        self.statements += block.num_statements
        self.blocks += 1
        if block.is_covered:
            self.statement_hits += block.num_statements
            self.block_hits += 1

    def merge(self, other: CoverageStats) -> None:
        """Add another set of counters to this one."""
        self.statement_hits += other.statement_hits
        self.statements += other.statements
        self.block_hits += other.block_hits
        self.blocks += other.blocks

    @property
    def statement_coverage(self) -> str:
        return _ratio(self.statement_hits, self.statements)

    @property
    def block_coverage(self) -> str:
        return _ratio(self.block_hits, self.blocks)

    @property
    def statement_percentage(self) -> float:
        return percent(self.statement_hits, self.statements)

    @property
    def block_percentage(self) -> float:
        return percent(self.block_hits, self.blocks)


@dataclass
class EntityCoverage:
    """Coverage of one file or package, evaluated against its thresholds.

    Use :meth:`from_stats` to build one from counters; the percentages are
    stored rather than derived so that entries read back from history keep
    the values they were written with.
    """

    identity_key: ClassVar[str] = "name"

    name: str
    """File path or package directory."""

    stats: CoverageStats = field(default_factory=CoverageStats)
    """Raw counters."""

    statement_percentage: float = 100.0
    block_percentage: float = 100.0

    statement_threshold: float = 0.0
    """Effective statement threshold after overrides."""

    block_threshold: float = 0.0
    """Effective block threshold after overrides."""

    failed: bool = False
    """True when either percentage is below its threshold."""

    @classmethod
    def from_stats(cls, name: str, stats: CoverageStats, **kwargs: Any) -> Self:
        """Create an entry whose percentages are computed from *stats*."""
        return cls(
            name=name,
            stats=stats,
            statement_percentage=stats.statement_percentage,
            block_percentage=stats.block_percentage,
            **kwargs,
        )

    @property
    def statement_coverage(self) -> str:
        return self.stats.statement_coverage

    @property
    def block_coverage(self) -> str:
        return self.stats.block_coverage

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON/YAML serialization."""
        return {
            self.identity_key: self.name,
            "statementCoverage": self.statement_coverage,
            "blockCoverage": self.block_coverage,
            "statementPercentage": self.statement_percentage,
            "blockPercentage": self.block_percentage,
            "statementThreshold": self.statement_threshold,
            "blockThreshold": self.block_threshold,
            "failed": self.failed,
        }

    @classmethod
    def _common_from_dict(cls, data: dict[str, Any]) -> dict[str, Any]:
        statement_hits, statements = _parse_ratio(data.get("statementCoverage"))
        block_hits, blocks = _parse_ratio(data.get("blockCoverage"))
        stats = CoverageStats(
            statement_hits=statement_hits,
            statements=statements,
            block_hits=block_hits,
            blocks=blocks,
        )
        return {
            "name": str(data.get(cls.identity_key, "")),
            "stats": stats,
            "statement_percentage": float(
                data.get("statementPercentage", stats.statement_percentage)
            ),
            "block_percentage": float(data.get("blockPercentage", stats.block_percentage)),
            "statement_threshold": float(data.get("statementThreshold", 0.0)),
            "block_threshold": float(data.get("blockThreshold", 0.0)),
            "failed": bool(data.get("failed", False)),
        }


@dataclass
class ByFile(EntityCoverage):
    """Per-file coverage."""

    identity_key: ClassVar[str] = "file"

    uncovered_lines: str = ""
    """Compressed uncovered line ranges, e.g. ``"3,7-9"``."""

    @property
    def file(self) -> str:
        return self.name

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["uncoveredLines"] = self.uncovered_lines
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ByFile:
        return cls(
            uncovered_lines=str(data.get("uncoveredLines", "")),
            **cls._common_from_dict(data),
        )


@dataclass
class ByPackage(EntityCoverage):
    """Per-package coverage."""

    identity_key: ClassVar[str] = "package"

    @property
    def package(self) -> str:
        return self.name

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ByPackage:
        return cls(**cls._common_from_dict(data))


@dataclass
class TotalCoverage:
    """Whole-project coverage on one axis (statements or blocks)."""

    hits: int = 0
    total: int = 0
    percentage: float = 100.0
    threshold: float = 0.0
    failed: bool = False

    @classmethod
    def from_counts(cls, hits: int, total: int) -> TotalCoverage:
        return cls(hits=hits, total=total, percentage=percent(hits, total))

    @property
    def coverage(self) -> str:
        return _ratio(self.hits, self.total)

    def to_dict(self) -> dict[str, Any]:
        return {
            "coverage": self.coverage,
            "threshold": self.threshold,
            "percentage": self.percentage,
            "failed": self.failed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TotalCoverage:
        hits, total = _parse_ratio(data.get("coverage"))
        return cls(
            hits=hits,
            total=total,
            percentage=float(data.get("percentage", percent(hits, total))),
            threshold=float(data.get("threshold", 0.0)),
            failed=bool(data.get("failed", False)),
        )


@dataclass
class Totals:
    """Whole-project totals."""

    statements: TotalCoverage = field(default_factory=TotalCoverage)
    blocks: TotalCoverage = field(default_factory=TotalCoverage)

    @property
    def failed(self) -> bool:
        return self.statements.failed or self.blocks.failed

    def to_dict(self) -> dict[str, Any]:
        return {"statements": self.statements.to_dict(), "blocks": self.blocks.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Totals:
        return cls(
            statements=TotalCoverage.from_dict(data.get("statements") or {}),
            blocks=TotalCoverage.from_dict(data.get("blocks") or {}),
        )


@dataclass
class ComparisonDelta:
    """Percentage-point change on both axes (current minus previous)."""

    statements_delta: float = 0.0
    blocks_delta: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {"statementsDelta": self.statements_delta, "blocksDelta": self.blocks_delta}


@dataclass
class ComparisonResult:
    """A single changed entity in a history comparison."""

    name: str
    type: str
    """One of ``file``, ``package`` or ``total``."""

    delta: ComparisonDelta = field(default_factory=ComparisonDelta)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type": self.type, "delta": self.delta.to_dict()}


@dataclass
class ComparisonData:
    """Differences between the current run and a stored history entry."""

    ref: str
    commit: str
    results: list[ComparisonResult] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ref": self.ref,
            "commit": self.commit,
            "results": [r.to_dict() for r in self.results],
        }


@dataclass
class Results:
    """Everything a renderer needs from one run."""

    by_file: list[ByFile] = field(default_factory=list)
    by_package: list[ByPackage] = field(default_factory=list)
    by_total: Totals = field(default_factory=Totals)
    comparison: ComparisonData | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON/YAML serialization."""
        data: dict[str, Any] = {
            "byFile": [f.to_dict() for f in self.by_file],
            "byPackage": [p.to_dict() for p in self.by_package],
            "byTotal": self.by_total.to_dict(),
        }
        if self.comparison is not None:
            data["comparison"] = self.comparison.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Results:
        """Create from a dictionary written by :meth:`to_dict`.

        The comparison block is not restored; it only describes the run that
        produced it.
        """
        return cls(
            by_file=[ByFile.from_dict(f) for f in data.get("byFile") or []],
            by_package=[ByPackage.from_dict(p) for p in data.get("byPackage") or []],
            by_total=Totals.from_dict(data.get("byTotal") or {}),
        )
