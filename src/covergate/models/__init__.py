"""Data models for covergate."""

from covergate.models.profile import Block, Profile
from covergate.models.results import (
    ByFile,
    ByPackage,
    ComparisonData,
    ComparisonDelta,
    ComparisonResult,
    CoverageStats,
    Results,
    TotalCoverage,
    Totals,
)

__all__ = [
    "Block",
    "ByFile",
    "ByPackage",
    "ComparisonData",
    "ComparisonDelta",
    "ComparisonResult",
    "CoverageStats",
    "Profile",
    "Results",
    "TotalCoverage",
    "Totals",
]
