"""Command line interface: check Go coverage profiles against thresholds."""

from __future__ import annotations

import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from covergate import __version__
from covergate.adapters.go_cover import GoCoverAdapter, ProfileParseError
from covergate.compute.sorting import SORT_BY_VALUES, SORT_ORDERS
from covergate.config import (
    DEFAULT_CONFIG_FILE,
    FORMAT_TABLE,
    FORMATS,
    STRUCTURED_FORMATS,
    ConfigError,
    CovergateConfig,
    ensure_valid,
    load_config,
    write_sample_config,
)
from covergate.engine import CheckOutcome, compare_with_history, run_check
from covergate.history import DEFAULT_HISTORY_FILE, HistoryError, HistoryStore
from covergate.log_config import configure_logging
from covergate.reporters.formats import render_document
from covergate.reporters.terminal import CLIReporter

if TYPE_CHECKING:
    from covergate.models.profile import Profile

logger = logging.getLogger(__name__)

DEFAULT_COVERAGE_FILE = "coverage.out"
STDIN_MARKER = "-"


def _read_profiles(coverage_file: str | None) -> list[Profile]:
    """Read profiles from a file argument, stdin, or ``coverage.out``.

    Raises:
        ProfileParseError: If no input is available or it cannot be parsed.
    """
    adapter = GoCoverAdapter()
    stdin = sys.stdin

    if coverage_file == STDIN_MARKER:
        return adapter.parse_coverage_text(stdin.read())
    if coverage_file:
        return adapter.parse_coverage_file(Path(coverage_file))

    if not stdin.isatty():
        text = stdin.read()
        if text.strip():
            logger.debug("Reading coverage profile from stdin")
            return adapter.parse_coverage_text(text)

    default = Path(DEFAULT_COVERAGE_FILE)
    if not default.is_file():
        raise ProfileParseError(
            f"No coverage input: pass a profile path, pipe one on stdin, "
            f"or create {DEFAULT_COVERAGE_FILE}"
        )
    return adapter.parse_coverage_file(default)


def _apply_overrides(config: CovergateConfig, **flags: Any) -> CovergateConfig:
    """Return *config* with every command-line value that was given applied."""
    changes: dict[str, Any] = {}
    for key in (
        "statement_threshold",
        "block_threshold",
        "sort_by",
        "sort_order",
        "format",
        "module_name",
        "diff_from",
        "terminal_width",
    ):
        if flags.get(key) is not None:
            changes[key] = flags[key]

    for key in ("no_table", "no_summary", "no_color", "hide_uncovered_lines"):
        if flags.get(key):
            changes[key] = True

    if flags.get("skip"):
        changes["skip"] = tuple(flags["skip"])

    total = dict(config.total)
    if flags.get("total_statement_threshold") is not None:
        total["statements"] = flags["total_statement_threshold"]
    if flags.get("total_block_threshold") is not None:
        total["blocks"] = flags["total_block_threshold"]
    if total != config.total:
        changes["total"] = total

    return replace(config, **changes) if changes else config


def _emit(
    outcome: CheckOutcome,
    config: CovergateConfig,
    reporter: CLIReporter,
    compared: tuple[str, str] | None = None,
) -> None:
    """Render the results in the configured format.

    *compared* is the ``(ref, commit)`` of the history entry the results
    were compared with, if any.
    """
    results = outcome.results
    if config.format in STRUCTURED_FORMATS:
        reporter.print_text(render_document(results, config.format))
        return

    if not config.no_table:
        if config.format == FORMAT_TABLE:
            reporter.print_results_table(
                results, hide_uncovered_lines=config.hide_uncovered_lines
            )
        else:
            reporter.print_text(
                render_document(
                    results, config.format, hide_uncovered_lines=config.hide_uncovered_lines
                )
            )

    if compared is not None:
        ref, commit = compared
        reporter.print_comparison(ref, commit, results.comparison)

    if not config.no_summary and (results.by_file or outcome.has_failure):
        reporter.print_summary(results, outcome.has_failure)


def _compare(
    outcome: CheckOutcome, store: HistoryStore, ref: str, reporter: CLIReporter
) -> tuple[str, str]:
    try:
        entry = compare_with_history(outcome.results, store, ref)
    except FileNotFoundError as exc:
        reporter.print_error(f"History file {store.path} not found")
        raise click.Abort from exc
    except HistoryError as exc:
        reporter.print_error(str(exc))
        raise click.Abort from exc
    return ref, entry.commit


def _show_history(store: HistoryStore, limit: int, reporter: CLIReporter) -> None:
    try:
        history = store.load()
    except FileNotFoundError as exc:
        reporter.print_error(f"History file {store.path} not found")
        raise click.Abort from exc
    except HistoryError as exc:
        reporter.print_error(str(exc))
        raise click.Abort from exc
    reporter.print_history(history, limit)


def _delete_history(store: HistoryStore, ref: str, reporter: CLIReporter) -> None:
    try:
        store.delete(ref)
    except FileNotFoundError as exc:
        reporter.print_error(f"History file {store.path} not found")
        raise click.Abort from exc
    except HistoryError as exc:
        reporter.print_error(str(exc))
        raise click.Abort from exc
    reporter.print_info(f"≡ Deleted history entry for ref: {ref}")


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("coverage_file", required=False)
@click.option(
    "-c",
    "--config",
    "config_path",
    default=DEFAULT_CONFIG_FILE,
    show_default=True,
    help="Path to the YAML configuration file.",
)
@click.option("-t", "--statement-threshold", type=float, help="Global statement threshold (%).")
@click.option("-b", "--block-threshold", type=float, help="Global block threshold (%).")
@click.option("--total-statement-threshold", type=float, help="Total statement threshold (%).")
@click.option("--total-block-threshold", type=float, help="Total block threshold (%).")
@click.option("--sort-by", type=click.Choice(SORT_BY_VALUES), help="Sort key for tables.")
@click.option("--sort-order", type=click.Choice(SORT_ORDERS), help="Sort direction.")
@click.option("-f", "--format", "output_format", type=click.Choice(FORMATS), help="Output format.")
@click.option("-k", "--skip", multiple=True, help="Regex of file names to ignore (repeatable).")
@click.option("-m", "--module-name", help="Module prefix to strip from file names.")
@click.option("--diff-from", help="Only check files changed since this git reference.")
@click.option("-u", "--no-table", is_flag=True, help="Do not print the coverage table.")
@click.option("-s", "--no-summary", is_flag=True, help="Do not print the failure summary.")
@click.option("-w", "--no-color", is_flag=True, help="Disable colored output.")
@click.option("--hide-uncovered-lines", is_flag=True, help="Omit uncovered line ranges.")
@click.option("--term-width", type=click.IntRange(min=0), help="Fixed terminal width.")
@click.option(
    "--history-file",
    default=DEFAULT_HISTORY_FILE,
    show_default=True,
    help="History file used by the history options.",
)
@click.option("--save-history", is_flag=True, help="Record this run in the history file.")
@click.option("-l", "--label", default="", help="Label for the saved history entry.")
@click.option("--compare-history", metavar="REF", help="Compare with the history entry for REF.")
@click.option("--show-history", is_flag=True, help="Show history entries and exit.")
@click.option("--delete-history", metavar="REF", help="Delete the history entry for REF and exit.")
@click.option(
    "--limit-history",
    type=click.IntRange(min=0),
    default=0,
    help="Entries to keep when saving or to show (0 = all).",
)
@click.option("--init", "init_config", is_flag=True, help="Write a sample config file and exit.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.version_option(version=__version__, prog_name="covergate")
@click.pass_context
def cli(
    ctx: click.Context,
    coverage_file: str | None,
    config_path: str,
    *,
    output_format: str | None,
    term_width: int | None,
    history_file: str,
    save_history: bool,
    label: str,
    compare_history: str | None,
    show_history: bool,
    delete_history: str | None,
    limit_history: int,
    init_config: bool,
    verbose: bool,
    **flags: Any,
) -> None:
    """Check a Go coverage profile against statement and block thresholds.

    COVERAGE_FILE defaults to stdin when piped, else coverage.out. Use "-"
    to force stdin.

    Exit status is 0 when every threshold is met, 1 on a coverage failure
    or operation error, 2 on invalid configuration or usage.
    """
    configure_logging(verbose=verbose, no_color=bool(flags.get("no_color")))

    if init_config:
        reporter = CLIReporter()
        try:
            path = write_sample_config(config_path)
        except ConfigError as exc:
            reporter.print_error(str(exc))
            raise click.Abort from exc
        reporter.print_success(f"Created {path}")
        return

    try:
        config = _apply_overrides(
            load_config(config_path), format=output_format, terminal_width=term_width, **flags
        )
        ensure_valid(config)
    except ConfigError as exc:
        raise click.UsageError(str(exc), ctx=ctx) from exc

    reporter = CLIReporter(no_color=config.no_color, width=config.terminal_width or None)
    store = HistoryStore(history_file)

    if delete_history:
        _delete_history(store, delete_history, reporter)
        return
    if show_history:
        _show_history(store, limit_history, reporter)
        return

    try:
        profiles = _read_profiles(coverage_file)
    except ProfileParseError as exc:
        reporter.print_error(str(exc))
        raise click.Abort from exc

    outcome = run_check(profiles, config, reporter)

    compared = None
    if compare_history:
        compared = _compare(outcome, store, compare_history, reporter)

    if save_history:
        try:
            store.record(outcome.results, label=label, limit=limit_history)
        except HistoryError as exc:
            reporter.print_error(str(exc))
            raise click.Abort from exc
        reporter.print_info("≡ Saved history entry")

    _emit(outcome, config, reporter, compared)
    ctx.exit(outcome.exit_code)
