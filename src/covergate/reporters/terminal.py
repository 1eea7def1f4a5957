"""Terminal reporter with rich output formatting."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from covergate.reporters.formats import build_sections
from covergate.reporters.summary import (
    AXIS_BLOCKS,
    AXIS_STATEMENTS,
    collect_shortfalls,
    format_delta,
)

if TYPE_CHECKING:
    from covergate.history import History
    from covergate.models.results import ComparisonData, Results

_GOOD_MARGIN = 10.0
_DATE_LENGTH = 10

_AXIS_COLORS = {AXIS_STATEMENTS: "cyan", AXIS_BLOCKS: "magenta"}


def _severity_color(percentage: float, threshold: float) -> str:
    """Return a Rich color name for a percentage relative to its threshold."""
    if percentage < threshold:
        return "red"
    if percentage < threshold + _GOOD_MARGIN:
        return "yellow"
    return "green"


class CLIReporter:
    """Rich terminal output for coverage checks.

    Report output (tables, summaries, comparisons) goes to ``console``;
    notices and errors go to ``err_console`` so structured output on
    stdout stays parseable.
    """

    def __init__(
        self,
        console: Console | None = None,
        err_console: Console | None = None,
        *,
        no_color: bool = False,
        width: int | None = None,
    ) -> None:
        """Initialize the CLI reporter.

        Args:
            console: Console for report output; created when omitted.
            err_console: Console for notices; created on stderr when omitted.
            no_color: Disable colors on created consoles.
            width: Fixed width for created consoles (None autodetects).
        """
        self.console = console or Console(no_color=no_color, width=width or None)
        self.err_console = err_console or Console(
            stderr=True, no_color=no_color, width=width or None
        )

    # ── Messages ─────────────────────────────────────────────────────

    def print_success(self, message: str) -> None:
        """Print a success message."""
        self.err_console.print(f"[green]✓[/green] {escape(message)}", highlight=False)

    def print_error(self, message: str) -> None:
        """Print an error message."""
        self.err_console.print(f"[red]✗[/red] {escape(message)}", highlight=False)

    def print_warning(self, message: str) -> None:
        """Print a warning message."""
        self.err_console.print(f"[yellow]⚠[/yellow] {escape(message)}", highlight=False)

    def print_info(self, message: str) -> None:
        """Print an info message."""
        self.err_console.print(f"[dim]{escape(message)}[/dim]", highlight=False)

    def print_text(self, text: str) -> None:
        """Print a rendered document verbatim."""
        self.console.print(Text(text), soft_wrap=True, highlight=False)

    # ── Diff notices ─────────────────────────────────────────────────

    def diff_warning(self, error: Exception) -> None:
        self.print_warning(f"Diff mode unavailable, checking all files: {error}")

    def diff_no_changes(self) -> None:
        self.print_info("Diff mode: no changed files to check")

    def diff_mode_info(self, kept: int, total: int) -> None:
        self.print_info(f"Diff mode: checking {kept} of {total} files")

    # ── Results ──────────────────────────────────────────────────────

    def print_results_table(self, results: Results, *, hide_uncovered_lines: bool = False) -> None:
        """Print file, package and total tables."""
        if not results.by_file:
            self.print_info("No coverage data to check")
            return

        for section in build_sections(results, hide_uncovered_lines=hide_uncovered_lines):
            table = Table(title=section.title, title_style="bold cyan")
            for i, header in enumerate(section.headers):
                table.add_column(header, style="bold" if i == 0 else None, justify="left")
            for i, row in enumerate(section.rows):
                style = "red" if i in section.failed_rows else None
                table.add_row(*(Text(cell) for cell in row), style=style)
            self.console.print(table)

    def print_summary(self, results: Results, has_failure: bool) -> None:
        """Print the pass/fail verdict and, on failure, every shortfall."""
        if not has_failure:
            self.console.print("[green]✔[/green] All good", highlight=False)
            return

        self.console.print("[red]✘[/red] Coverage check failed", highlight=False)
        for title, shortfalls in collect_shortfalls(results).items():
            self.console.print(f" → {title}", highlight=False)
            for s in shortfalls:
                color = _AXIS_COLORS[s.axis]
                severity = _severity_color(s.percentage, s.threshold)
                self.console.print(
                    f"    [{color}]\\[{s.axis}][/{color}] {escape(s.name)} "
                    f"\\[[{severity}]+{s.gap:.1f}%[/{severity}] required for "
                    f"[{color}]{s.threshold:.1f}%[/{color}] threshold]",
                    highlight=False,
                    soft_wrap=True,
                )

    # ── History ──────────────────────────────────────────────────────

    def print_comparison(self, ref: str, commit: str, comparison: ComparisonData | None) -> None:
        """Print deltas against a history entry."""
        self.console.print(
            f"\n≡ Comparing against ref: [blue]{escape(ref)}[/blue] [dim]\\[commit {commit[:7]}][/dim]",
            highlight=False,
        )
        if comparison is None:
            self.console.print(" → No change")
            return

        titles = {"file": "By File", "package": "By Package", "total": "By Total"}
        current = ""
        for result in comparison.results:
            if result.type != current:
                current = result.type
                self.console.print(f" → {titles.get(current, current)}")
            parts: list[str] = []
            for axis, delta in (
                (AXIS_STATEMENTS, result.delta.statements_delta),
                (AXIS_BLOCKS, result.delta.blocks_delta),
            ):
                text = format_delta(delta)
                if not text:
                    continue
                color = "green" if delta > 0 else "red"
                parts.append(f"\\[{axis}] {escape(result.name)} \\[[{color}]{text}[/{color}]]")
            self.console.print("    " + "  ".join(parts), highlight=False, soft_wrap=True)

    def print_history(self, history: History, limit: int = 0) -> None:
        """Print a table of the newest *limit* history entries (0 shows all)."""
        count = len(history.entries) if limit <= 0 else min(limit, len(history.entries))
        if count == 0:
            self.console.print("≡ No history entries to show")
            return

        table = Table(title="History", title_style="bold cyan")
        for column in ("Timestamp", "Commit", "Branch", "Tags", "Label", "Coverage"):
            table.add_column(column, justify="left")

        for entry in history.entries[:count]:
            stmts = entry.results.by_total.statements
            blocks = entry.results.by_total.blocks
            s_color = _severity_color(stmts.percentage, stmts.threshold)
            b_color = _severity_color(blocks.percentage, blocks.threshold)
            table.add_row(
                entry.timestamp[:_DATE_LENGTH],
                entry.short_commit,
                Text(entry.branch),
                Text(", ".join(entry.tags)),
                Text(entry.label),
                f"[{s_color}]{stmts.percentage:.1f}%[/{s_color}] \\[S]\n"
                f"[{b_color}]{blocks.percentage:.1f}%[/{b_color}] \\[B]",
            )
        self.console.print(table)
        suffix = "y" if count == 1 else "ies"
        self.console.print(f"≡ Showing last {count} history entr{suffix}")
