"""Tests for post-sync commands."""

from __future__ import annotations

import sys
import time
from pathlib import Path

import pytest

from repo_sync.errors import ThenError
from repo_sync.sync.models import new_long_then, new_then
from repo_sync.sync.then import run_then


def test_short_action_runs_in_checkout(tmp_path: Path) -> None:
    run_then(new_then(sys.executable, "-c", "open('built', 'w').write('ok')"), tmp_path)
    assert (tmp_path / "built").read_text() == "ok"


def test_short_action_failure(tmp_path: Path) -> None:
    action = new_then(sys.executable, "-c", "import sys; sys.stderr.write('boom'); sys.exit(3)")
    with pytest.raises(ThenError, match="status 3: boom"):
        run_then(action, tmp_path)


def test_missing_command(tmp_path: Path) -> None:
    with pytest.raises(ThenError, match="failed to run"):
        run_then(new_then("definitely-not-a-command-xyz"), tmp_path)


def test_long_action_runs_in_background(tmp_path: Path) -> None:
    run_then(new_long_then(sys.executable, "-c", "open('served', 'w').write('up')"), tmp_path)

    deadline = time.monotonic() + 10
    while not (tmp_path / "served").exists() and time.monotonic() < deadline:
        time.sleep(0.05)
    assert (tmp_path / "served").exists()


def test_action_str() -> None:
    assert str(new_then("hugo", "--minify")) == "hugo --minify"
    assert new_long_then("serve").long
