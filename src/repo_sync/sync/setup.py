"""Activation of parsed repositories: startup work and webhook installation."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable

from repo_sync.sync import git_ops
from repo_sync.sync.models import SyncMode
from repo_sync.sync.parser import parse
from repo_sync.sync.webhook import webhook_middleware

if TYPE_CHECKING:
    from repo_sync.directives.controller import Controller
    from repo_sync.sync.models import RepoDescriptor
    from repo_sync.sync.poller import RepoPoller
    from repo_sync.sync.webhook import Middleware

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StartupAction:
    """Work to do for one repository when the server starts."""

    repo: RepoDescriptor
    mode: SyncMode


@dataclass
class ActivationPlan:
    """Startup worklist plus the repositories served by a webhook."""

    startup: list[StartupAction] = field(default_factory=list)
    webhook_repos: list[RepoDescriptor] = field(default_factory=list)


def plan(repos: list[RepoDescriptor]) -> ActivationPlan:
    """Build one startup action per repository, in declaration order."""
    result = ActivationPlan()
    for repo in repos:
        # If a hook url is set, pulls are event based
        if repo.uses_webhook:
            result.webhook_repos.append(repo)
        result.startup.append(StartupAction(repo=repo, mode=repo.sync_mode))
    return result


def setup(c: Controller) -> Middleware | None:
    """Configure the ``git`` directive for one controller.

    Startup actions are registered once per server block, so a block shared
    by several addresses does not start duplicate pollers for the same path.
    Returns a webhook middleware when any repository uses a hook.
    """
    activation = plan(parse(c))

    def register() -> None:
        c.startup.extend(activation.startup)

    c.once_per_server_block(register)

    if activation.webhook_repos:
        return webhook_middleware(activation.webhook_repos)
    return None


async def run_startup(
    actions: list[StartupAction],
    poller: RepoPoller,
    pull: Callable[[RepoDescriptor], bool] = git_ops.pull,
) -> None:
    """Consume the startup worklist.

    Webhook repositories are pulled once. Polled repositories get their
    background loop and are pulled right away, so a broken configuration
    fails at startup instead of after the first interval.

    Raises:
        SyncError: If any immediate pull fails.
    """
    for action in actions:
        if action.mode is SyncMode.POLL:
            poller.start(action.repo)
        logger.info("Initial pull of %s", action.repo)
        await asyncio.to_thread(pull, action.repo)
