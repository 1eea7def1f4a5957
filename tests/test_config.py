"""Tests for configuration loading and validation (config.py)."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from covergate.config import (
    DEFAULT_BLOCK_THRESHOLD,
    DEFAULT_STATEMENT_THRESHOLD,
    SAMPLE_CONFIG,
    ConfigError,
    CovergateConfig,
    ThresholdOverrides,
    ensure_valid,
    load_config,
    parse_config,
    validate_config,
    write_sample_config,
)


def _write_config(root: Path, content: str) -> Path:
    path = root / ".covergate.yml"
    path.write_text(content, encoding="utf-8")
    return path


# ── Loading ──────────────────────────────────────────────────────


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        config = load_config(tmp_path / "nope.yml")
        assert config == CovergateConfig()
        assert config.statement_threshold == DEFAULT_STATEMENT_THRESHOLD
        assert config.block_threshold == DEFAULT_BLOCK_THRESHOLD

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        assert load_config(_write_config(tmp_path, "")) == CovergateConfig()

    def test_camel_case_keys(self, tmp_path: Path) -> None:
        path = _write_config(
            tmp_path,
            """\
statementThreshold: 80
blockThreshold: 60
total:
  statements: 75
perFile:
  statements:
    pkg/a.go: 10
perPackage:
  blocks:
    pkg: 20
skip:
  - _mock\\.go$
sortBy: statement-percent
sortOrder: desc
format: json
moduleName: example.com/m
diffFrom: main
noTable: true
hideUncoveredLines: true
terminalWidth: 120
""",
        )
        config = load_config(path)

        assert config.statement_threshold == 80.0
        assert config.block_threshold == 60.0
        assert config.total_statement_threshold == 75.0
        assert config.total_block_threshold == 60.0
        assert config.per_file == ThresholdOverrides(statements={"pkg/a.go": 10.0})
        assert config.per_package.blocks == {"pkg": 20.0}
        assert config.skip == (r"_mock\.go$",)
        assert config.sort_by == "statement-percent"
        assert config.sort_order == "desc"
        assert config.format == "json"
        assert config.module_name == "example.com/m"
        assert config.diff_from == "main"
        assert config.no_table is True
        assert config.no_summary is False
        assert config.hide_uncovered_lines is True
        assert config.terminal_width == 120

    def test_snake_case_keys(self, tmp_path: Path) -> None:
        path = _write_config(tmp_path, "statement_threshold: 40\nno_color: true\n")
        config = load_config(path)
        assert config.statement_threshold == 40.0
        assert config.no_color is True

    def test_env_var_expansion(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("COVERGATE_BASE", "origin/main")
        path = _write_config(tmp_path, "diffFrom: ${COVERGATE_BASE}\n")
        assert load_config(path).diff_from == "origin/main"

    def test_unset_env_var_is_empty(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("COVERGATE_UNSET", raising=False)
        path = _write_config(tmp_path, "moduleName: ${COVERGATE_UNSET}\n")
        assert load_config(path).module_name == ""

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = _write_config(tmp_path, "statementThreshold: [1, 2\n")
        with pytest.raises(ConfigError, match="Failed to read"):
            load_config(path)

    def test_non_mapping(self, tmp_path: Path) -> None:
        path = _write_config(tmp_path, "- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(path)

    def test_wrong_type(self) -> None:
        with pytest.raises(ConfigError, match="statementThreshold must be a number"):
            parse_config({"statementThreshold": "lots"})

    def test_single_skip_string(self) -> None:
        assert parse_config({"skip": "vendor/"}).skip == ("vendor/",)


# ── Sample file ──────────────────────────────────────────────────


class TestWriteSampleConfig:
    def test_writes_sample(self, tmp_path: Path) -> None:
        target = write_sample_config(tmp_path / ".covergate.yml")
        assert target.read_text(encoding="utf-8") == SAMPLE_CONFIG

    def test_sample_loads_as_defaults(self, tmp_path: Path) -> None:
        target = write_sample_config(tmp_path / ".covergate.yml")
        config = load_config(target)
        assert config.statement_threshold == DEFAULT_STATEMENT_THRESHOLD
        assert config.format == "table"
        assert validate_config(config) == []
        assert isinstance(yaml.safe_load(SAMPLE_CONFIG), dict)

    def test_refuses_to_overwrite(self, tmp_path: Path) -> None:
        target = _write_config(tmp_path, "statementThreshold: 1\n")
        with pytest.raises(ConfigError, match="already exists"):
            write_sample_config(target)
        assert target.read_text(encoding="utf-8") == "statementThreshold: 1\n"


# ── Validation ───────────────────────────────────────────────────


class TestValidateConfig:
    def test_defaults_are_valid(self) -> None:
        assert validate_config(CovergateConfig()) == []

    def test_threshold_out_of_range(self) -> None:
        errors = validate_config(CovergateConfig(statement_threshold=101, block_threshold=-1))
        assert any("statementThreshold" in e for e in errors)
        assert any("blockThreshold" in e for e in errors)

    def test_override_out_of_range(self) -> None:
        config = CovergateConfig(per_file=ThresholdOverrides(statements={"a.go": 150.0}))
        assert validate_config(config) == [
            "perFile.statements[a.go] must be between 0 and 100 (got: 150.0)"
        ]

    def test_total_out_of_range(self) -> None:
        errors = validate_config(CovergateConfig(total={"blocks": 200.0}))
        assert errors == ["total.blocks must be between 0 and 100 (got: 200.0)"]

    def test_unknown_enums(self) -> None:
        errors = validate_config(
            CovergateConfig(sort_by="size", sort_order="up", format="xml")
        )
        assert len(errors) == 3

    def test_invalid_skip_pattern(self) -> None:
        errors = validate_config(CovergateConfig(skip=("(",)))
        assert len(errors) == 1
        assert "skip pattern" in errors[0]

    def test_no_table_and_no_summary_rejected_for_text(self) -> None:
        errors = validate_config(CovergateConfig(no_table=True, no_summary=True))
        assert len(errors) == 1

    @pytest.mark.parametrize("fmt", ["json", "yaml"])
    def test_no_table_and_no_summary_allowed_for_structured(self, fmt: str) -> None:
        assert validate_config(CovergateConfig(no_table=True, no_summary=True, format=fmt)) == []

    def test_negative_width(self) -> None:
        assert len(validate_config(CovergateConfig(terminal_width=-1))) == 1

    def test_ensure_valid_collects_errors(self) -> None:
        config = CovergateConfig(
            per_file=ThresholdOverrides(blocks={"a.go": 200.0}), sort_by="size"
        )
        with pytest.raises(ConfigError) as exc_info:
            ensure_valid(config)
        assert len(exc_info.value.errors) == 2
        assert str(exc_info.value).startswith("Invalid configuration:")
