"""Repository sync: URL normalization, git directive parsing and activation."""

from repo_sync.sync.models import (
    DEFAULT_INTERVAL,
    AuthMode,
    HookConfig,
    RepoDescriptor,
    SyncMode,
    ThenAction,
)
from repo_sync.sync.parser import parse
from repo_sync.sync.poller import RepoPoller
from repo_sync.sync.setup import ActivationPlan, StartupAction, plan, run_startup
from repo_sync.sync.urls import sanitize_git, sanitize_http
from repo_sync.sync.webhook import HOOK_HANDLERS, WebHook

__all__ = [
    "ActivationPlan",
    "AuthMode",
    "DEFAULT_INTERVAL",
    "HOOK_HANDLERS",
    "HookConfig",
    "RepoDescriptor",
    "RepoPoller",
    "StartupAction",
    "SyncMode",
    "ThenAction",
    "WebHook",
    "parse",
    "plan",
    "run_startup",
    "sanitize_git",
    "sanitize_http",
]
