"""Coverage profile adapters."""

from covergate.adapters.base import CoverageAdapter
from covergate.adapters.go_cover import GoCoverAdapter, ProfileParseError

__all__ = [
    "CoverageAdapter",
    "GoCoverAdapter",
    "ProfileParseError",
]
