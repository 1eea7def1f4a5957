"""Run history: entries keyed by commit, persisted as a JSON file.

The history is a plain value (:class:`History`) loaded on demand; every
write goes through :class:`HistoryStore`, which replaces the file
atomically.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from covergate.models.results import Results
from covergate.utils.git import UNKNOWN, HeadInfo, get_head_info

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_FILE = ".covergate.history.json"

_SHORT_COMMIT_LENGTH = 7
_FILE_MODE = 0o644


class HistoryError(Exception):
    """Base class for history failures."""


class CorruptHistoryError(HistoryError):
    """Raised when the history file exists but cannot be decoded."""


class RefNotFoundError(HistoryError):
    """Raised when no entry matches a reference."""


class HistoryWriteError(HistoryError):
    """Raised when the history file cannot be written."""


def _now_iso() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def _parse_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 timestamp; unparsable values sort as oldest."""
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return datetime.min.replace(tzinfo=UTC)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


@dataclass
class HistoryEntry:
    """One recorded run."""

    commit: str
    """Full commit SHA, or ``unknown`` outside a repository."""

    branch: str
    """Short branch name, ``detached`` or ``unknown``."""

    results: Results
    """Results as they were evaluated for that run."""

    tags: list[str] = field(default_factory=list)
    label: str = ""
    timestamp: str = field(default_factory=_now_iso)
    """UTC time the entry was recorded (RFC 3339)."""

    @property
    def short_commit(self) -> str:
        return self.commit[:_SHORT_COMMIT_LENGTH]

    @property
    def recorded_at(self) -> datetime:
        return _parse_timestamp(self.timestamp)

    def matches(self, ref: str) -> bool:
        """Return True if *ref* names this entry by commit, short commit, branch, label or tag."""
        if not ref:
            return False
        return (
            ref in (self.commit, self.short_commit, self.branch)
            or (bool(self.label) and ref == self.label)
            or ref in self.tags
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"commit": self.commit, "branch": self.branch}
        if self.tags:
            data["tags"] = list(self.tags)
        if self.label:
            data["label"] = self.label
        data["timestamp"] = self.timestamp
        data["results"] = self.results.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HistoryEntry:
        return cls(
            commit=str(data.get("commit", UNKNOWN)),
            branch=str(data.get("branch", UNKNOWN)),
            tags=[str(t) for t in data.get("tags") or []],
            label=str(data.get("label") or ""),
            timestamp=str(data.get("timestamp") or ""),
            results=Results.from_dict(data.get("results") or {}),
        )


@dataclass
class History:
    """Ordered collection of entries, newest first."""

    entries: list[HistoryEntry] = field(default_factory=list)

    def add_results(
        self, results: Results, label: str = "", head: HeadInfo | None = None
    ) -> HistoryEntry:
        """Record *results* for the current HEAD.

        An entry for the same commit is replaced in place (with a fresh
        timestamp); otherwise a new entry is appended. Entries are then
        ordered newest first.
        """
        head = head or HeadInfo()
        entry = HistoryEntry(
            commit=head.commit,
            branch=head.branch,
            tags=list(head.tags),
            label=label,
            results=replace(results, comparison=None),
        )
        for i, existing in enumerate(self.entries):
            if existing.commit == entry.commit:
                self.entries[i] = entry
                break
        else:
            self.entries.append(entry)

        self.entries.sort(key=lambda e: e.recorded_at, reverse=True)
        return entry

    def find_by_ref(self, ref: str) -> HistoryEntry | None:
        """Return the first (newest) entry matching *ref*."""
        for entry in self.entries:
            if entry.matches(ref):
                return entry
        return None

    def delete_by_ref(self, ref: str) -> bool:
        """Remove the first entry matching *ref*; return whether one was removed."""
        for i, entry in enumerate(self.entries):
            if entry.matches(ref):
                del self.entries[i]
                return True
        return False

    def truncate(self, limit: int) -> None:
        """Keep only the newest *limit* entries; 0 keeps everything."""
        if limit > 0:
            del self.entries[limit:]

    def to_dict(self) -> dict[str, Any]:
        return {"entries": [e.to_dict() for e in self.entries]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> History:
        return cls(entries=[HistoryEntry.from_dict(e) for e in data.get("entries") or []])


class HistoryStore:
    """Reads and atomically writes a :class:`History` file."""

    def __init__(self, path: str | Path = DEFAULT_HISTORY_FILE) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    def load(self) -> History:
        """Load the history file.

        Raises:
            FileNotFoundError: If the file does not exist.
            CorruptHistoryError: If the file is not valid history JSON.
        """
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise
        except OSError as exc:
            raise HistoryError(f"Failed to read history file {self._path}: {exc}") from exc
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise CorruptHistoryError(f"History file {self._path} is corrupt: {exc}") from exc
        if not isinstance(data, dict):
            raise CorruptHistoryError(f"History file {self._path} is not a JSON object")
        try:
            history = History.from_dict(data)
        except (TypeError, ValueError, AttributeError) as exc:
            raise CorruptHistoryError(f"History file {self._path} is corrupt: {exc}") from exc
        logger.debug("Loaded %d history entries from %s", len(history.entries), self._path)
        return history

    def load_or_empty(self) -> History:
        """Load the history, treating a missing file as an empty history."""
        try:
            return self.load()
        except FileNotFoundError:
            logger.debug("No history file at %s", self._path)
            return History()

    def save(self, history: History, limit: int = 0) -> None:
        """Truncate to *limit* (0 keeps all) and write the file atomically.

        Raises:
            HistoryWriteError: If the file cannot be written.
        """
        history.truncate(limit)
        payload = json.dumps(history.to_dict(), indent=2, ensure_ascii=False) + "\n"

        directory = self._path.parent
        tmp_name = ""
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=directory
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.chmod(tmp_name, _FILE_MODE)
            os.replace(tmp_name, self._path)
        except OSError as exc:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise HistoryWriteError(f"Failed to write history file {self._path}: {exc}") from exc
        logger.info("Saved %d history entries to %s", len(history.entries), self._path)

    def record(
        self,
        results: Results,
        *,
        label: str = "",
        limit: int = 0,
        repo_path: str | Path = ".",
    ) -> HistoryEntry:
        """Add *results* for the current HEAD and persist the history."""
        history = self.load_or_empty()
        entry = history.add_results(results, label=label, head=get_head_info(repo_path))
        self.save(history, limit)
        return entry

    def find(self, ref: str) -> HistoryEntry:
        """Return the entry matching *ref*.

        Raises:
            RefNotFoundError: If no entry matches.
        """
        entry = self.load().find_by_ref(ref)
        if entry is None:
            raise RefNotFoundError(f"No history entry found for ref: {ref}")
        return entry

    def delete(self, ref: str) -> None:
        """Delete the entry matching *ref* and persist the history.

        Raises:
            RefNotFoundError: If no entry matches.
        """
        history = self.load()
        if not history.delete_by_ref(ref):
            raise RefNotFoundError(f"No history entry found for ref: {ref}")
        self.save(history)
