"""Tests for the covergate CLI."""

from __future__ import annotations

import json
import warnings
from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest
import yaml
from click.testing import CliRunner

from covergate.cli import cli
from covergate.utils.git import HeadInfo

if TYPE_CHECKING:
    from pathlib import Path

_PASSING = "mode: set\nexample.com/m/pkg/a.go:1.1,1.10 2 1\nexample.com/m/pkg/b.go:1.1,1.10 1 1\n"
_FAILING = "mode: set\nexample.com/m/pkg/a.go:1.1,1.10 1 1\nexample.com/m/pkg/a.go:2.1,2.10 1 0\n"
_HEAD = HeadInfo(commit="c" * 40, branch="main", tags=["v1.0.0"])


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    return tmp_path


def _write_profile(root: Path, content: str, name: str = "coverage.out") -> Path:
    path = root / name
    path.write_text(content, encoding="utf-8")
    return path


def test_version() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output


def test_help() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["-h"])
    assert result.exit_code == 0
    assert "--statement-threshold" in result.output


# ── Checking ─────────────────────────────────────────────────────


class TestCheck:
    def test_passing_profile_json(self, workdir: Path) -> None:
        _write_profile(workdir, _PASSING)

        result = CliRunner().invoke(cli, ["coverage.out", "-f", "json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert [f["file"] for f in data["byFile"]] == ["a.go", "b.go"]
        assert data["byPackage"][0]["package"] == "."
        assert data["byTotal"]["statements"]["coverage"] == "3/3"

    def test_failing_profile_exits_one(self, workdir: Path) -> None:
        _write_profile(workdir, _FAILING)

        result = CliRunner().invoke(cli, ["coverage.out", "-f", "json", "-m", "example.com/m"])

        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["byFile"][0]["file"] == "pkg/a.go"
        assert data["byFile"][0]["failed"] is True
        assert data["byFile"][0]["uncoveredLines"] == "2"

    def test_lowered_threshold_passes(self, workdir: Path) -> None:
        _write_profile(workdir, _FAILING)
        result = CliRunner().invoke(cli, ["-t", "50", "-b", "50", "-f", "yaml"])
        assert result.exit_code == 0, result.output
        data = yaml.safe_load(result.stdout)
        assert data["byTotal"]["statements"]["threshold"] == 50.0

    def test_total_threshold_flag(self, workdir: Path) -> None:
        _write_profile(workdir, _FAILING)
        result = CliRunner().invoke(
            cli, ["-t", "0", "-b", "0", "--total-statement-threshold", "60", "-f", "json"]
        )
        assert result.exit_code == 1
        assert json.loads(result.stdout)["byTotal"]["statements"]["failed"] is True

    def test_reads_stdin(self, workdir: Path) -> None:
        result = CliRunner().invoke(cli, ["-", "-f", "json"], input=_PASSING)
        assert result.exit_code == 0, result.output
        assert len(json.loads(result.stdout)["byFile"]) == 2

    def test_stdin_read_without_deprecation_warning(self, workdir: Path) -> None:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            result = CliRunner().invoke(cli, ["-", "-f", "json"], input=_PASSING)
        assert result.exit_code == 0, result.output
        assert not [w for w in caught if issubclass(w.category, DeprecationWarning)]

    def test_piped_stdin_without_argument(self, workdir: Path) -> None:
        result = CliRunner().invoke(cli, ["-f", "json"], input=_FAILING)
        assert result.exit_code == 1

    def test_defaults_to_coverage_out(self, workdir: Path) -> None:
        _write_profile(workdir, _PASSING)
        result = CliRunner().invoke(cli, ["-f", "json"])
        assert result.exit_code == 0, result.output

    def test_missing_input(self, workdir: Path) -> None:
        result = CliRunner().invoke(cli, [])
        assert result.exit_code == 1
        assert "No coverage input" in result.stderr

    def test_malformed_profile(self, workdir: Path) -> None:
        _write_profile(workdir, "mode: set\ngarbage\n")
        result = CliRunner().invoke(cli, ["coverage.out"])
        assert result.exit_code == 1
        assert "line 2" in result.stderr

    def test_skip_flag(self, workdir: Path) -> None:
        _write_profile(workdir, _PASSING + "example.com/m/pkg/gen.pb.go:1.1,1.10 5 0\n")
        result = CliRunner().invoke(cli, ["-k", r"\.pb\.go$", "-f", "json"])
        assert result.exit_code == 0, result.output
        files = [f["file"] for f in json.loads(result.stdout)["byFile"]]
        assert "gen.pb.go" not in files

    def test_table_output_with_summary(self, workdir: Path) -> None:
        _write_profile(workdir, _FAILING)

        result = CliRunner().invoke(cli, ["--term-width", "200", "-m", "example.com/m"])

        assert result.exit_code == 1
        assert "By File" in result.stdout
        assert "pkg/a.go" in result.stdout
        assert "Coverage check failed" in result.stdout
        assert "[S] pkg/a.go [+20.0% required for 70.0% threshold]" in result.stdout

    def test_no_table(self, workdir: Path) -> None:
        _write_profile(workdir, _PASSING)
        result = CliRunner().invoke(cli, ["-u", "--term-width", "200"])
        assert result.exit_code == 0
        assert "By File" not in result.stdout
        assert "All good" in result.stdout

    def test_markdown_format(self, workdir: Path) -> None:
        _write_profile(workdir, _PASSING)
        result = CliRunner().invoke(cli, ["-f", "md", "-s"])
        assert result.exit_code == 0
        assert result.stdout.startswith("### By File")
        assert "All good" not in result.stdout


# ── Configuration ────────────────────────────────────────────────


class TestConfiguration:
    def test_config_file_thresholds(self, workdir: Path) -> None:
        _write_profile(workdir, _FAILING)
        (workdir / ".covergate.yml").write_text(
            "statementThreshold: 40\nblockThreshold: 40\nformat: json\n", encoding="utf-8"
        )
        result = CliRunner().invoke(cli, [])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["byFile"][0]["statementThreshold"] == 40.0

    def test_flags_override_config_file(self, workdir: Path) -> None:
        _write_profile(workdir, _FAILING)
        (workdir / "custom.yml").write_text("statementThreshold: 40\n", encoding="utf-8")
        result = CliRunner().invoke(cli, ["-c", "custom.yml", "-t", "90", "-f", "json"])
        assert result.exit_code == 1

    def test_invalid_threshold_is_usage_error(self, workdir: Path) -> None:
        _write_profile(workdir, _PASSING)
        result = CliRunner().invoke(cli, ["-t", "150"])
        assert result.exit_code == 2
        assert "statementThreshold" in result.stderr

    def test_invalid_config_file_is_usage_error(self, workdir: Path) -> None:
        _write_profile(workdir, _PASSING)
        (workdir / ".covergate.yml").write_text("sortBy: size\n", encoding="utf-8")
        result = CliRunner().invoke(cli, [])
        assert result.exit_code == 2

    def test_nothing_to_show_is_usage_error(self, workdir: Path) -> None:
        _write_profile(workdir, _PASSING)
        result = CliRunner().invoke(cli, ["-u", "-s"])
        assert result.exit_code == 2

    def test_nothing_to_show_allowed_for_json(self, workdir: Path) -> None:
        _write_profile(workdir, _PASSING)
        result = CliRunner().invoke(cli, ["-u", "-s", "-f", "json"])
        assert result.exit_code == 0

    def test_init_writes_sample(self, workdir: Path) -> None:
        result = CliRunner().invoke(cli, ["--init"])
        assert result.exit_code == 0, result.output
        assert (workdir / ".covergate.yml").is_file()
        assert "Created" in result.stderr

    def test_init_sample_lets_total_follow_flags(self, workdir: Path) -> None:
        CliRunner().invoke(cli, ["--init"])
        _write_profile(workdir, _PASSING)

        result = CliRunner().invoke(cli, ["-t", "90", "-b", "80", "-f", "json"])

        assert result.exit_code == 0, result.output
        totals = json.loads(result.stdout)["byTotal"]
        assert totals["statements"]["threshold"] == 90.0
        assert totals["blocks"]["threshold"] == 80.0

    def test_init_refuses_existing_file(self, workdir: Path) -> None:
        (workdir / ".covergate.yml").write_text("format: json\n", encoding="utf-8")
        result = CliRunner().invoke(cli, ["--init"])
        assert result.exit_code == 1
        assert "already exists" in result.stderr


# ── History ──────────────────────────────────────────────────────


class TestHistory:
    def _save(self, workdir: Path, profile: str, *extra: str) -> None:
        _write_profile(workdir, profile)
        with patch("covergate.history.get_head_info", return_value=_HEAD):
            result = CliRunner().invoke(cli, ["--save-history", "-f", "json", *extra])
        assert "Saved history entry" in result.stderr

    def test_save_history(self, workdir: Path) -> None:
        self._save(workdir, _PASSING, "-l", "baseline")

        data = json.loads((workdir / ".covergate.history.json").read_text(encoding="utf-8"))
        (entry,) = data["entries"]
        assert entry["commit"] == "c" * 40
        assert entry["branch"] == "main"
        assert entry["tags"] == ["v1.0.0"]
        assert entry["label"] == "baseline"
        assert "comparison" not in entry["results"]

    def test_compare_history_json(self, workdir: Path) -> None:
        self._save(workdir, _FAILING, "-m", "example.com/m")
        _write_profile(workdir, _PASSING)

        result = CliRunner().invoke(
            cli, ["--compare-history", "v1.0.0", "-f", "json", "-m", "example.com/m"]
        )

        assert result.exit_code == 0, result.output
        comparison = json.loads(result.stdout)["comparison"]
        assert comparison["ref"] == "v1.0.0"
        assert comparison["commit"] == "c" * 40
        kinds = [r["type"] for r in comparison["results"]]
        assert kinds[-1] == "total"
        assert comparison["results"][-1]["delta"]["statementsDelta"] == 50.0

    def test_compare_history_table(self, workdir: Path) -> None:
        self._save(workdir, _FAILING)
        _write_profile(workdir, _PASSING)

        result = CliRunner().invoke(cli, ["--compare-history", "main", "--term-width", "200"])

        assert result.exit_code == 0, result.output
        assert "≡ Comparing against ref: main [commit ccccccc]" in result.stdout
        assert "[S] total [+50.0%]" in result.stdout

    def test_compare_without_history_file(self, workdir: Path) -> None:
        _write_profile(workdir, _PASSING)
        result = CliRunner().invoke(cli, ["--compare-history", "main"])
        assert result.exit_code == 1
        assert "not found" in result.stderr

    def test_compare_unknown_ref(self, workdir: Path) -> None:
        self._save(workdir, _PASSING)
        result = CliRunner().invoke(cli, ["--compare-history", "dev"])
        assert result.exit_code == 1
        assert "No history entry found for ref: dev" in result.stderr

    def test_show_history(self, workdir: Path) -> None:
        self._save(workdir, _PASSING, "-l", "baseline")
        result = CliRunner().invoke(cli, ["--show-history", "--term-width", "200"])
        assert result.exit_code == 0, result.output
        assert "ccccccc" in result.stdout
        assert "baseline" in result.stdout
        assert "≡ Showing last 1 history entry" in result.stdout

    def test_show_history_with_bracketed_label(self, workdir: Path) -> None:
        self._save(workdir, _PASSING, "-l", "[/oops]")
        result = CliRunner().invoke(cli, ["--show-history", "--term-width", "200"])
        assert result.exit_code == 0, result.output
        assert "[/oops]" in result.stdout

    def test_show_history_missing_file(self, workdir: Path) -> None:
        result = CliRunner().invoke(cli, ["--show-history"])
        assert result.exit_code == 1

    def test_delete_history(self, workdir: Path) -> None:
        self._save(workdir, _PASSING)

        result = CliRunner().invoke(cli, ["--delete-history", "main"])

        assert result.exit_code == 0, result.output
        assert "Deleted history entry for ref: main" in result.stderr
        data = json.loads((workdir / ".covergate.history.json").read_text(encoding="utf-8"))
        assert data["entries"] == []

    def test_delete_unknown_ref(self, workdir: Path) -> None:
        self._save(workdir, _PASSING)
        result = CliRunner().invoke(cli, ["--delete-history", "dev"])
        assert result.exit_code == 1
