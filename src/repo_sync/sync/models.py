"""Repository descriptors produced by the git directive."""

from __future__ import annotations

from datetime import timedelta
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Minimum delay before requesting another git pull
DEFAULT_INTERVAL = timedelta(hours=1)

DEFAULT_BRANCH = "master"


class AuthMode(StrEnum):
    """How the remote is accessed."""

    HTTPS = "https"
    SSH = "ssh"


class SyncMode(StrEnum):
    """What triggers a pull."""

    POLL = "poll"
    WEBHOOK = "webhook"


class HookConfig(BaseModel):
    """Webhook trigger. An empty url means the repository is polled."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(default="", description="Request path that triggers a pull")
    secret: str = Field(default="", description="Shared secret for payload validation")
    type: str = Field(default="", description="Payload format; detected from headers when empty")


class ThenAction(BaseModel):
    """A command to run in the working copy after a pull."""

    model_config = ConfigDict(frozen=True)

    command: str
    args: tuple[str, ...] = ()
    long: bool = Field(default=False, description="Run in the background instead of waiting")

    def __str__(self) -> str:
        return " ".join((self.command, *self.args))


def new_then(command: str, *args: str) -> ThenAction:
    """Short-running then action."""
    return ThenAction(command=command, args=args)


def new_long_then(command: str, *args: str) -> ThenAction:
    """Long-running then action, started in the background."""
    return ThenAction(command=command, args=args, long=True)


class RepoDescriptor(BaseModel):
    """One configured sync target. Immutable once parsed."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(description="Canonical remote URL")
    host: str = Field(description="Host name taken from url")
    path: Path = Field(description="Local checkout directory")
    branch: str = Field(default=DEFAULT_BRANCH)
    key_path: str = Field(default="", description="Private key file; enables SSH access")
    interval: timedelta = Field(default=DEFAULT_INTERVAL, description="Polling period")
    hook: HookConfig = Field(default_factory=HookConfig)
    then: tuple[ThenAction, ...] = ()

    @model_validator(mode="after")
    def _check_url_matches_auth(self) -> RepoDescriptor:
        if not self.url:
            raise ValueError("repository url must not be empty")
        if self.auth_mode is AuthMode.SSH and not self.url.startswith("git@"):
            raise ValueError(f"private key access needs an ssh url, got {self.url}")
        if self.auth_mode is AuthMode.HTTPS and not self.url.startswith("https://"):
            raise ValueError(f"access without a key needs an https url, got {self.url}")
        return self

    @property
    def auth_mode(self) -> AuthMode:
        return AuthMode.SSH if self.key_path else AuthMode.HTTPS

    @property
    def sync_mode(self) -> SyncMode:
        """Webhook presence always wins over the interval."""
        return SyncMode.WEBHOOK if self.hook.url else SyncMode.POLL

    @property
    def uses_webhook(self) -> bool:
        return self.sync_mode is SyncMode.WEBHOOK

    def __str__(self) -> str:
        return f"{self.url} ({self.branch}) -> {self.path}"
