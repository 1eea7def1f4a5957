"""Reporters for covergate results."""

from covergate.reporters.formats import build_sections, render_document
from covergate.reporters.summary import format_delta, summary_lines
from covergate.reporters.terminal import CLIReporter

__all__ = [
    "CLIReporter",
    "build_sections",
    "format_delta",
    "render_document",
    "summary_lines",
]
