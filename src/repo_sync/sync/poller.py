"""Polling-based sync for repositories without webhooks."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import TYPE_CHECKING, Callable

from repo_sync.sync import git_ops

if TYPE_CHECKING:
    from pathlib import Path

    from repo_sync.sync.models import RepoDescriptor

logger = logging.getLogger(__name__)

# Configure logging to stderr
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    logger.addHandler(handler)
    logger.propagate = False


class RepoPoller:
    """Pulls each polled repository every ``repo.interval``.

    One background task runs per checkout path. Pull failures are logged
    and the loop carries on with the next interval.
    """

    def __init__(self, pull: Callable[[RepoDescriptor], bool] = git_ops.pull) -> None:
        """Initialize poller.

        Args:
            pull: Blocking pull function, run in a worker thread.
        """
        self._pull = pull
        self._tasks: dict[Path, asyncio.Task[None]] = {}

    @property
    def polled(self) -> list[Path]:
        """Paths that currently have a polling loop."""
        return list(self._tasks)

    async def _pull_once(self, repo: RepoDescriptor) -> None:
        try:
            await asyncio.to_thread(self._pull, repo)
        except Exception:
            logger.exception("Failed to pull %s", repo.url)

    async def _poll_loop(self, repo: RepoDescriptor) -> None:
        """Main polling loop."""
        seconds = repo.interval.total_seconds()
        while True:
            await asyncio.sleep(seconds)
            await self._pull_once(repo)

    def start(self, repo: RepoDescriptor) -> None:
        """Start the polling loop for ``repo``. Must be called from a running event loop."""
        if repo.path in self._tasks:
            logger.debug("Already polling %s", repo.path)
            return

        self._tasks[repo.path] = asyncio.get_running_loop().create_task(self._poll_loop(repo))
        logger.info("Polling %s every %d seconds", repo.url, repo.interval.total_seconds())

    async def stop(self) -> None:
        """Stop all polling loops."""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.info("Poller stopped")
