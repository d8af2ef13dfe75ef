"""Git operations for configured repositories: environment check, path preparation and pulls."""

from __future__ import annotations

import functools
import logging
import shlex
import threading
from typing import TYPE_CHECKING

from git import Git, GitCommandError, GitCommandNotFound, GitError, InvalidGitRepositoryError, Repo

from repo_sync.errors import GitNotFoundError, PrepareError, PullError
from repo_sync.sync.models import AuthMode
from repo_sync.sync.then import run_then

if TYPE_CHECKING:
    from pathlib import Path

    from repo_sync.sync.models import RepoDescriptor

logger = logging.getLogger(__name__)

# One lock per checkout directory; pollers and webhooks may pull the same path
_path_locks: dict[Path, threading.Lock] = {}
_path_locks_guard = threading.Lock()


@functools.cache
def init_git() -> tuple[int, ...]:
    """Verify that a usable git executable is installed.

    The result is memoized, so only the first call runs git.

    Raises:
        GitNotFoundError: If git cannot be executed.
    """
    try:
        version = Git().version_info
    except (GitCommandNotFound, GitCommandError, OSError) as exc:
        raise GitNotFoundError(f"git is not available: {exc}") from exc
    logger.debug("Using git %s", ".".join(str(part) for part in version))
    return version


def prepare(repo: RepoDescriptor) -> None:
    """Make sure ``repo.path`` can receive a clone or already holds one.

    A missing directory is created. An existing directory must be empty or a
    clone of the same remote.

    Raises:
        PrepareError: If the path is a file, a non-empty directory that is
            not a git repository, or a clone of another remote.
        OSError: If the directory cannot be created.
    """
    path = repo.path
    if not path.exists():
        path.mkdir(parents=True, exist_ok=True)
        return

    if not path.is_dir():
        raise PrepareError(f"cannot git clone into {path}, it is not a directory")

    if not any(path.iterdir()):
        return

    try:
        existing = Repo(path)
    except InvalidGitRepositoryError as exc:
        raise PrepareError(f"cannot git clone into {path}, directory not empty") from exc

    try:
        remote_urls = list(existing.remote("origin").urls)
    except ValueError as exc:
        raise PrepareError(f"{path} is a git repository without an origin remote") from exc

    if not any(_same_remote(url, repo.url) for url in remote_urls):
        raise PrepareError(
            f"another git repository {remote_urls[0] if remote_urls else ''!r} found at {path}"
        )
    logger.debug("Using existing clone of %s at %s", repo.url, path)


def pull(repo: RepoDescriptor) -> bool:
    """Clone the repository, or pull the tracked branch into the existing clone.

    Then actions run when the checked-out commit changed. Returns whether it
    changed.

    Raises:
        PullError: If git fails.
        ThenError: If a then action fails.
    """
    with _path_lock(repo.path):
        try:
            changed = _clone_or_pull(repo)
        except GitError as exc:
            # also covers a damaged .git, which is not a command failure
            stderr = (getattr(exc, "stderr", "") or "").strip()
            raise PullError(f"git pull of {repo.url} failed: {stderr or exc}") from exc

        if changed:
            for action in repo.then:
                run_then(action, repo.path)
    return changed


def _clone_or_pull(repo: RepoDescriptor) -> bool:
    env = _git_env(repo)

    if not (repo.path / ".git").exists():
        logger.info("Cloning %s (%s) into %s", repo.url, repo.branch, repo.path)
        Repo.clone_from(repo.url, repo.path, env=env, branch=repo.branch)
        return True

    local = Repo(repo.path)
    before = _head_sha(local)
    with local.git.custom_environment(**env):
        local.git.fetch("origin", repo.branch)
        local.git.checkout(repo.branch)
        local.git.pull("--ff-only", "origin", repo.branch)
    after = _head_sha(local)

    if before == after:
        logger.debug("%s: already up to date at %s", repo.path, (after or "")[:8])
        return False

    logger.info("%s: updated %s -> %s", repo.path, (before or "none")[:8], (after or "")[:8])
    return True


def _head_sha(local: Repo) -> str | None:
    try:
        return local.head.commit.hexsha
    except ValueError:
        # no commits yet
        return None


def _git_env(repo: RepoDescriptor) -> dict[str, str]:
    if repo.auth_mode is AuthMode.SSH:
        key = shlex.quote(repo.key_path)
        return {
            "GIT_SSH_COMMAND": f"ssh -i {key} -o IdentitiesOnly=yes -o StrictHostKeyChecking=accept-new",
        }
    return {"GIT_TERMINAL_PROMPT": "0"}


def _path_lock(path: Path) -> threading.Lock:
    with _path_locks_guard:
        return _path_locks.setdefault(path.resolve(), threading.Lock())


def _same_remote(a: str, b: str) -> bool:
    return a.strip().removesuffix(".git") == b.strip().removesuffix(".git")
