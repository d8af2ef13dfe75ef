"""Post-sync commands."""

from __future__ import annotations

import logging
import subprocess
from typing import TYPE_CHECKING

from repo_sync.errors import ThenError

if TYPE_CHECKING:
    from pathlib import Path

    from repo_sync.sync.models import ThenAction

logger = logging.getLogger(__name__)


def run_then(action: ThenAction, cwd: Path) -> None:
    """Run a then action inside the working copy.

    Short actions block until the command exits. Long actions are started
    and left running.

    Raises:
        ThenError: If the command cannot be started, or a short action
            exits with a non-zero status.
    """
    cmd = [action.command, *action.args]

    if action.long:
        try:
            process = subprocess.Popen(cmd, cwd=cwd)
        except OSError as exc:
            raise ThenError(f"failed to start '{action}': {exc}") from exc
        logger.info("Started long-running command '%s' (pid %d)", action, process.pid)
        return

    try:
        result = subprocess.run(cmd, cwd=cwd, capture_output=True, text=True, check=False)
    except OSError as exc:
        raise ThenError(f"failed to run '{action}': {exc}") from exc

    if result.returncode != 0:
        raise ThenError(
            f"command '{action}' exited with status {result.returncode}: {result.stderr.strip()}"
        )
    logger.info("Command '%s' successful", action)
