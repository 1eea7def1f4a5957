"""Shared fixtures for integration tests."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

# ── Marker registration ──────────────────────────────────────────


def pytest_configure(config: pytest.Config) -> None:
    """Register the ``integration`` marker."""
    config.addinivalue_line("markers", "integration: integration tests")


# ── File creation helpers ────────────────────────────────────────


def write_file(root: Path, rel: str, content: str) -> None:
    """Write *content* to a file under *root*."""
    f = root / rel
    f.parent.mkdir(parents=True, exist_ok=True)
    f.write_text(content, encoding="utf-8")


def git(root: Path, *args: str) -> str:
    """Run git in *root* and return its stdout."""
    result = subprocess.run(
        ["git", *args], cwd=root, capture_output=True, text=True, check=True
    )
    return result.stdout


def commit_all(root: Path, message: str) -> str:
    """Stage everything, commit, and return the new commit id."""
    git(root, "add", "-A")
    git(root, "commit", "-q", "-m", message)
    return git(root, "rev-parse", "HEAD").strip()


# ── Project scaffolding fixtures ─────────────────────────────────


@pytest.fixture()
def go_repo(tmp_path: Path) -> Path:
    """Create a git repository holding a minimal Go module with one commit on ``main``."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    git(tmp_path, "init", "-q")
    git(tmp_path, "symbolic-ref", "HEAD", "refs/heads/main")
    git(tmp_path, "config", "user.email", "ci@example.com")
    git(tmp_path, "config", "user.name", "CI")
    git(tmp_path, "config", "commit.gpgsign", "false")

    write_file(tmp_path, "go.mod", "module example.com/demo\n\ngo 1.22\n")
    write_file(
        tmp_path,
        "calc/add.go",
        "package calc\n\nfunc Add(a, b int) int {\n\treturn a + b\n}\n",
    )
    write_file(
        tmp_path,
        "calc/sub.go",
        "package calc\n\nfunc Sub(a, b int) int {\n\treturn a - b\n}\n",
    )
    write_file(tmp_path, "main.go", "package main\n\nfunc main() {\n\tprintln(1)\n}\n")
    commit_all(tmp_path, "initial")
    return tmp_path
