"""Document renderers: JSON, YAML, Markdown, HTML, CSV and TSV.

Each renderer turns one :class:`~covergate.models.results.Results` into a
string. The tabular formats share :func:`build_sections`.
"""

from __future__ import annotations

import csv
import html
import io
import json
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import yaml

from covergate.config import (
    FORMAT_CSV,
    FORMAT_HTML,
    FORMAT_JSON,
    FORMAT_MARKDOWN,
    FORMAT_TSV,
    FORMAT_YAML,
)

if TYPE_CHECKING:
    from covergate.models.results import EntityCoverage, Results, TotalCoverage

STATUS_OK = "ok"
STATUS_FAIL = "FAIL"


@dataclass
class Section:
    """A titled table."""

    title: str
    headers: list[str]
    rows: list[list[str]] = field(default_factory=list)
    failed_rows: set[int] = field(default_factory=set)
    """Indexes of rows that failed their thresholds."""


def _pct(value: float) -> str:
    return f"{value:.1f}%"


def _status(failed: bool) -> str:
    return STATUS_FAIL if failed else STATUS_OK


def _entity_section(
    title: str, label: str, entities: list[EntityCoverage], uncovered: list[str] | None
) -> Section:
    headers = [label, "Statements", "Blocks", "Statement %", "Block %", "Status"]
    if uncovered is not None:
        headers.append("Uncovered Lines")
    section = Section(title=title, headers=headers)
    for i, entity in enumerate(entities):
        row = [
            entity.name,
            entity.statement_coverage,
            entity.block_coverage,
            _pct(entity.statement_percentage),
            _pct(entity.block_percentage),
            _status(entity.failed),
        ]
        if uncovered is not None:
            row.append(uncovered[i])
        section.rows.append(row)
        if entity.failed:
            section.failed_rows.add(i)
    return section


def _total_row(axis: str, total: TotalCoverage) -> list[str]:
    return [axis, total.coverage, _pct(total.percentage), _pct(total.threshold), _status(total.failed)]


def build_sections(results: Results, *, hide_uncovered_lines: bool = False) -> list[Section]:
    """Split *results* into file, package and total tables."""
    uncovered = None if hide_uncovered_lines else [f.uncovered_lines for f in results.by_file]
    files = _entity_section("By File", "File", list(results.by_file), uncovered)
    packages = _entity_section("By Package", "Package", list(results.by_package), None)

    totals = Section(
        title="By Total", headers=["Total", "Coverage", "Percentage", "Threshold", "Status"]
    )
    totals.rows.append(_total_row("statements", results.by_total.statements))
    totals.rows.append(_total_row("blocks", results.by_total.blocks))
    for i, total in enumerate((results.by_total.statements, results.by_total.blocks)):
        if total.failed:
            totals.failed_rows.add(i)
    return [files, packages, totals]


# ── Structured formats ───────────────────────────────────────────


def render_json(results: Results) -> str:
    return json.dumps(results.to_dict(), indent=2, ensure_ascii=False)


def render_yaml(results: Results) -> str:
    return yaml.safe_dump(results.to_dict(), sort_keys=False, allow_unicode=True).rstrip("\n")


# ── Tabular formats ──────────────────────────────────────────────


def _md_cell(value: str) -> str:
    return value.replace("|", "\\|")


def render_markdown(results: Results, *, hide_uncovered_lines: bool = False) -> str:
    lines: list[str] = []
    for section in build_sections(results, hide_uncovered_lines=hide_uncovered_lines):
        if lines:
            lines.append("")
        lines.append(f"### {section.title}")
        lines.append("")
        lines.append("| " + " | ".join(section.headers) + " |")
        lines.append("|" + "|".join("---" for _ in section.headers) + "|")
        for row in section.rows:
            lines.append("| " + " | ".join(_md_cell(c) for c in row) + " |")
    return "\n".join(lines)


def render_html(results: Results, *, hide_uncovered_lines: bool = False) -> str:
    parts: list[str] = []
    for section in build_sections(results, hide_uncovered_lines=hide_uncovered_lines):
        parts.append(f"<h3>{html.escape(section.title)}</h3>")
        parts.append("<table>")
        parts.append(
            "  <thead><tr>"
            + "".join(f"<th>{html.escape(h)}</th>" for h in section.headers)
            + "</tr></thead>"
        )
        parts.append("  <tbody>")
        for i, row in enumerate(section.rows):
            css = ' class="failed"' if i in section.failed_rows else ""
            cells = "".join(f"<td>{html.escape(c)}</td>" for c in row)
            parts.append(f"    <tr{css}>{cells}</tr>")
        parts.append("  </tbody>")
        parts.append("</table>")
    return "\n".join(parts)


def render_delimited(
    results: Results, delimiter: str = ",", *, hide_uncovered_lines: bool = False
) -> str:
    """Render each section as a delimited block, separated by blank lines."""
    buf = io.StringIO()
    writer = csv.writer(buf, delimiter=delimiter, lineterminator="\n")
    for i, section in enumerate(build_sections(results, hide_uncovered_lines=hide_uncovered_lines)):
        if i:
            buf.write("\n")
        writer.writerow(section.headers)
        writer.writerows(section.rows)
    return buf.getvalue().rstrip("\n")


def render_csv(results: Results, *, hide_uncovered_lines: bool = False) -> str:
    return render_delimited(results, ",", hide_uncovered_lines=hide_uncovered_lines)


def render_tsv(results: Results, *, hide_uncovered_lines: bool = False) -> str:
    return render_delimited(results, "\t", hide_uncovered_lines=hide_uncovered_lines)


_TABULAR_RENDERERS: dict[str, Callable[..., str]] = {
    FORMAT_MARKDOWN: render_markdown,
    FORMAT_HTML: render_html,
    FORMAT_CSV: render_csv,
    FORMAT_TSV: render_tsv,
}


def render_document(results: Results, fmt: str, *, hide_uncovered_lines: bool = False) -> str:
    """Render *results* in any non-terminal format.

    Raises:
        ValueError: For ``table`` or an unknown format.
    """
    if fmt == FORMAT_JSON:
        return render_json(results)
    if fmt == FORMAT_YAML:
        return render_yaml(results)
    renderer = _TABULAR_RENDERERS.get(fmt)
    if renderer is None:
        raise ValueError(f"Unsupported format: {fmt}")
    return renderer(results, hide_uncovered_lines=hide_uncovered_lines)
