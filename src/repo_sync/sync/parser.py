"""Parsing of ``git`` directive blocks into repository descriptors."""

from __future__ import annotations

import logging
import os
import sys
from datetime import timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Any

from repo_sync.errors import (
    InvalidDirectiveError,
    MissingRepositoryURLError,
    UnsupportedHookTypeError,
    UnsupportedPlatformError,
)
from repo_sync.sync import git_ops
from repo_sync.sync.models import (
    DEFAULT_BRANCH,
    DEFAULT_INTERVAL,
    HookConfig,
    RepoDescriptor,
    ThenAction,
    new_long_then,
    new_then,
)
from repo_sync.sync.urls import sanitize_git, sanitize_http
from repo_sync.sync.webhook import HOOK_HANDLERS

if TYPE_CHECKING:
    from repo_sync.directives.controller import Controller

logger = logging.getLogger(__name__)


def ssh_key_auth_supported() -> bool:
    """Private key access relies on GIT_SSH_COMMAND, which is not wired up on Windows."""
    return sys.platform != "win32"


def parse(c: Controller) -> list[RepoDescriptor]:
    """Build a descriptor for every ``git`` directive the controller dispenses.

    Directive form::

        git [<url> [<path>]] {
            repo      <url>
            path      <path>
            branch    <name>
            key       <file>
            interval  <seconds>
            hook      <path> [<secret>]
            hook_type <name>
            then      <command> [<args...>]
            then_long <command> [<args...>]
        }

    The first error aborts the whole parse; nothing is returned for blocks
    that parsed before it.

    Raises:
        ParseError: For malformed directives (see ``repo_sync.errors``).
        InvalidURLError: If the repository URL cannot be normalized.
        UnsupportedPlatformError: If a key is configured on Windows.
        SyncError: If git is missing or the path cannot be prepared.
    """
    repos: list[RepoDescriptor] = []
    git_checked = False

    while c.next():
        fields: dict[str, Any] = {
            "url": "",
            "path": c.root,
            "branch": DEFAULT_BRANCH,
            "key_path": "",
            "interval": DEFAULT_INTERVAL,
        }
        hook: dict[str, str] = {}
        then: list[ThenAction] = []

        args = c.remaining_args()
        if len(args) > 2:
            raise c.arg_err()
        if len(args) == 2:
            fields["path"] = _resolve(c.root, args[1])
        if args:
            fields["url"] = args[0]

        while c.next_block():
            label = c.val()
            if label == "repo":
                fields["url"] = _arg(c)
            elif label == "path":
                fields["path"] = _resolve(c.root, _arg(c))
            elif label == "branch":
                fields["branch"] = _arg(c)
            elif label == "key":
                fields["key_path"] = _arg(c)
                if not ssh_key_auth_supported():
                    raise c.errf(f"private key access is not supported on {sys.platform}", UnsupportedPlatformError)
            elif label == "interval":
                fields["interval"] = _interval(_arg(c), fields["interval"])
            elif label == "hook":
                hook["url"] = _arg(c)
                # optional secret for validation
                if c.next_arg():
                    hook["secret"] = c.val()
            elif label == "hook_type":
                hook_type = _arg(c)
                if hook_type not in HOOK_HANDLERS:
                    raise c.errf(f"invalid hook type {hook_type}", UnsupportedHookTypeError)
                hook["type"] = hook_type
            elif label == "then":
                command = _arg(c)
                then.append(new_then(command, *c.remaining_args()))
            elif label == "then_long":
                command = _arg(c)
                then.append(new_long_then(command, *c.remaining_args()))
            else:
                raise c.errf(f"unknown git property '{label}'", InvalidDirectiveError)

        if not fields["url"]:
            raise c.errf("repository url is required", MissingRepositoryURLError)

        # Keyless repositories are fetched over https to avoid ssh prompts
        if fields["key_path"]:
            fields["url"], fields["host"] = sanitize_git(fields["url"])
        else:
            fields["url"], fields["host"] = sanitize_http(fields["url"])

        if not git_checked:
            git_ops.init_git()
            git_checked = True

        repo = RepoDescriptor(**fields, hook=HookConfig(**hook), then=tuple(then))
        git_ops.prepare(repo)

        logger.debug("Configured %s", repo)
        repos.append(repo)

    return repos


def _arg(c: Controller) -> str:
    if not c.next_arg():
        raise c.arg_err()
    return c.val()


def _resolve(root: Path, path: str) -> Path:
    # always below root, even for absolute paths
    return Path(os.path.normpath(f"{root}{os.sep}{path}"))


def _interval(value: str, current: timedelta) -> timedelta:
    try:
        seconds = int(value)
    except ValueError:
        seconds = 0
    if seconds > 0:
        return timedelta(seconds=seconds)
    logger.warning("Ignoring interval %r, keeping %s", value, current)
    return current
