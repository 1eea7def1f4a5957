"""Coverage computation: normalization, aggregation, thresholds and ordering."""

from covergate.compute.aggregate import aggregate, package_of
from covergate.compute.comparison import build_comparison
from covergate.compute.module import longest_common_prefix, normalize_names
from covergate.compute.sorting import sort_entries
from covergate.compute.thresholds import evaluate
from covergate.compute.uncovered import format_line_ranges, parse_line_ranges

__all__ = [
    "aggregate",
    "build_comparison",
    "evaluate",
    "format_line_ranges",
    "longest_common_prefix",
    "normalize_names",
    "package_of",
    "parse_line_ranges",
    "sort_entries",
]
