"""Configuration parsing from ``.covergate.yml``."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from covergate.compute.sorting import SORT_BY_VALUES, SORT_ORDERS

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = ".covergate.yml"

DEFAULT_STATEMENT_THRESHOLD = 70.0
DEFAULT_BLOCK_THRESHOLD = 50.0

FORMAT_TABLE = "table"
FORMAT_JSON = "json"
FORMAT_YAML = "yaml"
FORMAT_MARKDOWN = "md"
FORMAT_HTML = "html"
FORMAT_CSV = "csv"
FORMAT_TSV = "tsv"

FORMATS = (
    FORMAT_TABLE,
    FORMAT_JSON,
    FORMAT_YAML,
    FORMAT_MARKDOWN,
    FORMAT_HTML,
    FORMAT_CSV,
    FORMAT_TSV,
)

# Formats that are useful with both the table and the summary disabled.
STRUCTURED_FORMATS = (FORMAT_JSON, FORMAT_YAML)

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")
_CAMEL_BOUNDARY_RE = re.compile(r"(?<!^)(?=[A-Z])")

_MAX_PERCENTAGE = 100.0

SAMPLE_CONFIG = """\
# covergate configuration
#
# Thresholds are percentages between 0 and 100. A threshold of 0 disables
# the check.
statementThreshold: 70
blockThreshold: 50

# Overrides for the whole-project totals. Left unset, they follow the
# globals above (and any -t/-b flags).
# total:
#   statements: 70
#   blocks: 50

# Per-file overrides, keyed by file path relative to the module root.
perFile:
  statements: {}
  blocks: {}

# Per-package overrides, keyed by package directory.
perPackage:
  statements: {}
  blocks: {}

# Regular expressions; matching files are ignored.
skip: []

# file | statements | blocks | statement-percent | block-percent
sortBy: file
# asc | desc
sortOrder: asc

# table | json | yaml | md | html | csv | tsv
format: table

# Module path to strip from file names. Inferred from go.mod when empty.
moduleName: ""

# Only check files changed since this git reference (branch, tag, commit,
# HEAD~1, ...). Leave empty to check everything.
diffFrom: ""

noTable: false
noSummary: false
noColor: false
terminalWidth: 0
hideUncoveredLines: false
"""


class ConfigError(Exception):
    """Raised when the configuration cannot be loaded or is invalid."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or [message]


def _resolve_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with environment variable values."""

    def _replace(match: re.Match[str]) -> str:
        var = match.group(1)
        resolved = os.environ.get(var)
        if resolved is None:
            logger.warning("Environment variable %s is not set (referenced in config)", var)
            return ""
        return resolved

    return _ENV_VAR_RE.sub(_replace, value)


def _resolve_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively resolve environment variables in a dictionary."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, str):
            result[key] = _resolve_env_vars(value)
        elif isinstance(value, dict):
            result[key] = _resolve_dict(value)
        elif isinstance(value, list):
            result[key] = [
                _resolve_env_vars(item) if isinstance(item, str) else item for item in value
            ]
        else:
            result[key] = value
    return result


def _snake_case(key: str) -> str:
    """Map ``statementThreshold`` to ``statement_threshold``; snake_case passes through."""
    return _CAMEL_BOUNDARY_RE.sub("_", key).lower()


@dataclass(frozen=True)
class ThresholdOverrides:
    """Per-entity threshold overrides, keyed by file path or package."""

    statements: dict[str, float] = field(default_factory=dict)
    """Statement thresholds by identity."""

    blocks: dict[str, float] = field(default_factory=dict)
    """Block thresholds by identity."""


@dataclass(frozen=True)
class CovergateConfig:
    """Complete covergate configuration."""

    statement_threshold: float = DEFAULT_STATEMENT_THRESHOLD
    """Global minimum statement coverage percentage (0 disables)."""

    block_threshold: float = DEFAULT_BLOCK_THRESHOLD
    """Global minimum block coverage percentage (0 disables)."""

    per_file: ThresholdOverrides = field(default_factory=ThresholdOverrides)
    per_package: ThresholdOverrides = field(default_factory=ThresholdOverrides)

    total: dict[str, float] = field(default_factory=dict)
    """Total thresholds under ``statements``/``blocks``; missing keys follow the globals."""

    skip: tuple[str, ...] = ()
    """Regular expressions for file names to ignore."""

    sort_by: str = "file"
    sort_order: str = "asc"
    format: str = FORMAT_TABLE

    module_name: str = ""
    """Module prefix to strip; inferred when empty."""

    diff_from: str = ""
    """Git reference to diff against; empty checks every file."""

    no_table: bool = False
    no_summary: bool = False
    no_color: bool = False
    terminal_width: int = 0
    """Fixed output width; 0 autodetects."""

    hide_uncovered_lines: bool = False

    @property
    def total_statement_threshold(self) -> float:
        return self.total.get("statements", self.statement_threshold)

    @property
    def total_block_threshold(self) -> float:
        return self.total.get("blocks", self.block_threshold)


# ── Parsing ──────────────────────────────────────────────────────


def _as_float(value: Any, key: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{key} must be a number (got: {value!r})") from exc


def _as_int(value: Any, key: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{key} must be an integer (got: {value!r})") from exc


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _parse_threshold_map(raw: Any, key: str) -> dict[str, float]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"{key} must be a mapping")
    return {str(name): _as_float(value, f"{key}.{name}") for name, value in raw.items()}


def _parse_overrides(raw: Any, key: str) -> ThresholdOverrides:
    if raw is None:
        return ThresholdOverrides()
    if not isinstance(raw, dict):
        raise ConfigError(f"{key} must be a mapping")
    return ThresholdOverrides(
        statements=_parse_threshold_map(raw.get("statements"), f"{key}.statements"),
        blocks=_parse_threshold_map(raw.get("blocks"), f"{key}.blocks"),
    )


def parse_config(raw: dict[str, Any]) -> CovergateConfig:
    """Build a :class:`CovergateConfig` from a parsed YAML mapping.

    Keys may be camelCase or snake_case. Unknown keys are ignored.

    Raises:
        ConfigError: If a value has the wrong type.
    """
    data = {_snake_case(str(k)): v for k, v in _resolve_dict(raw).items()}
    defaults = CovergateConfig()

    skip_raw = data.get("skip") or []
    if isinstance(skip_raw, str):
        skip_raw = [skip_raw]
    if not isinstance(skip_raw, list):
        raise ConfigError("skip must be a list of regular expressions")

    return CovergateConfig(
        statement_threshold=_as_float(
            data.get("statement_threshold", defaults.statement_threshold), "statementThreshold"
        ),
        block_threshold=_as_float(
            data.get("block_threshold", defaults.block_threshold), "blockThreshold"
        ),
        per_file=_parse_overrides(data.get("per_file"), "perFile"),
        per_package=_parse_overrides(data.get("per_package"), "perPackage"),
        total=_parse_threshold_map(data.get("total"), "total"),
        skip=tuple(str(p) for p in skip_raw),
        sort_by=str(data.get("sort_by") or defaults.sort_by),
        sort_order=str(data.get("sort_order") or defaults.sort_order),
        format=str(data.get("format") or defaults.format),
        module_name=str(data.get("module_name") or ""),
        diff_from=str(data.get("diff_from") or ""),
        no_table=_as_bool(data.get("no_table", False)),
        no_summary=_as_bool(data.get("no_summary", False)),
        no_color=_as_bool(data.get("no_color", False)),
        terminal_width=_as_int(data.get("terminal_width", 0), "terminalWidth"),
        hide_uncovered_lines=_as_bool(data.get("hide_uncovered_lines", False)),
    )


def load_config(path: str | Path = DEFAULT_CONFIG_FILE) -> CovergateConfig:
    """Load and parse a covergate YAML configuration file.

    Falls back to defaults when the file does not exist.

    Raises:
        ConfigError: If the file cannot be read or parsed.
    """
    config_path = Path(path)
    if not config_path.is_file():
        logger.debug("No config file at %s, using defaults", config_path)
        return CovergateConfig()

    try:
        parsed = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed to read config file {config_path}: {exc}") from exc

    if parsed is None:
        return CovergateConfig()
    if not isinstance(parsed, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")
    logger.debug("Loaded config from %s", config_path)
    return parse_config(parsed)


def write_sample_config(path: str | Path = DEFAULT_CONFIG_FILE) -> Path:
    """Write :data:`SAMPLE_CONFIG` to *path*.

    Raises:
        ConfigError: If the file already exists or cannot be written.
    """
    target = Path(path)
    if target.exists():
        raise ConfigError(f"Config file {target} already exists")
    try:
        target.write_text(SAMPLE_CONFIG, encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to write config file {target}: {exc}") from exc
    logger.info("Sample config written to %s", target)
    return target


# ── Validation ───────────────────────────────────────────────────


def _validate_percentage(value: float, key: str) -> list[str]:
    if not 0.0 <= value <= _MAX_PERCENTAGE:
        return [f"{key} must be between 0 and 100 (got: {value})"]
    return []


def _validate_overrides(overrides: ThresholdOverrides, key: str) -> list[str]:
    errors: list[str] = []
    for name, value in overrides.statements.items():
        errors.extend(_validate_percentage(value, f"{key}.statements[{name}]"))
    for name, value in overrides.blocks.items():
        errors.extend(_validate_percentage(value, f"{key}.blocks[{name}]"))
    return errors


def validate_config(config: CovergateConfig) -> list[str]:
    """Validate the configuration and return a list of error messages.

    Returns an empty list if the configuration is valid.
    """
    errors: list[str] = []

    errors.extend(_validate_percentage(config.statement_threshold, "statementThreshold"))
    errors.extend(_validate_percentage(config.block_threshold, "blockThreshold"))
    errors.extend(_validate_percentage(config.total_statement_threshold, "total.statements"))
    errors.extend(_validate_percentage(config.total_block_threshold, "total.blocks"))
    errors.extend(_validate_overrides(config.per_file, "perFile"))
    errors.extend(_validate_overrides(config.per_package, "perPackage"))

    if config.sort_by not in SORT_BY_VALUES:
        errors.append(
            f"sortBy must be one of {', '.join(SORT_BY_VALUES)} (got: {config.sort_by})"
        )
    if config.sort_order not in SORT_ORDERS:
        errors.append(
            f"sortOrder must be one of {', '.join(SORT_ORDERS)} (got: {config.sort_order})"
        )
    if config.format not in FORMATS:
        errors.append(f"format must be one of {', '.join(FORMATS)} (got: {config.format})")

    for pattern in config.skip:
        try:
            re.compile(pattern)
        except re.error as exc:
            errors.append(f"skip pattern {pattern!r} is not a valid regular expression: {exc}")

    if config.no_table and config.no_summary and config.format not in STRUCTURED_FORMATS:
        errors.append(
            f"noTable and noSummary together leave nothing to show for format {config.format}"
        )

    if config.terminal_width < 0:
        errors.append(f"terminalWidth must not be negative (got: {config.terminal_width})")

    return errors


def ensure_valid(config: CovergateConfig) -> CovergateConfig:
    """Return *config* unchanged, or raise :class:`ConfigError` listing every problem."""
    errors = validate_config(config)
    if errors:
        raise ConfigError("Invalid configuration: " + "; ".join(errors), errors)
    return config
