"""Shared test fixtures for repo-sync."""

from __future__ import annotations

import os

# GitPython checks for a git executable at import time
os.environ.setdefault("GIT_PYTHON_REFRESH", "quiet")

from pathlib import Path  # noqa: E402

import pytest  # noqa: E402

from repo_sync.directives.controller import Controller, ServerBlock, load_server_blocks  # noqa: E402
from repo_sync.sync import git_ops  # noqa: E402
from repo_sync.sync.models import RepoDescriptor  # noqa: E402


@pytest.fixture(autouse=True)
def git_available(monkeypatch: pytest.MonkeyPatch) -> list[int]:
    """Skip the git executable check; counts how often it was requested."""
    calls: list[int] = []

    def fake_init_git() -> tuple[int, ...]:
        calls.append(1)
        return (2, 40, 0)

    monkeypatch.setattr(git_ops, "init_git", fake_init_git)
    return calls


@pytest.fixture
def git_block():
    """Build a server block and return a factory of git controllers for it."""

    def _make(body: str, root: Path, addresses: str = "example.com") -> tuple[ServerBlock, list[Controller]]:
        [block] = load_server_blocks(f"{addresses} {{\n{body}\n}}\n", "Caddyfile")
        controllers = [Controller(block, address, "git", root, "Caddyfile") for address in block.addresses]
        return block, controllers

    return _make


@pytest.fixture
def make_repo(tmp_path: Path):
    """Factory for valid descriptors without going through the parser."""

    def _make(**overrides: object) -> RepoDescriptor:
        fields: dict[str, object] = {
            "url": "https://github.com/org/repo.git",
            "host": "github.com",
            "path": tmp_path / "repo",
        }
        fields.update(overrides)
        return RepoDescriptor(**fields)

    return _make
