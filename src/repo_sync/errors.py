"""Exceptions raised while loading configuration and syncing repositories."""

from __future__ import annotations


class ConfigError(ValueError):
    """Raised when the configuration cannot be loaded.

    Any subclass aborts the whole load; no repository is activated.
    """


class ParseError(ConfigError):
    """Raised when a directive is malformed.

    The message is prefixed with the ``file:line`` of the offending token
    when a location is known.
    """

    def __init__(self, message: str, filename: str = "", line: int = 0) -> None:
        self.filename = filename
        self.line = line
        self.reason = message
        if filename or line:
            message = f"{filename}:{line} - Parse error: {message}"
        super().__init__(message)


class MissingArgumentError(ParseError):
    """Raised when a labeled directive lacks its required value."""


class InvalidDirectiveError(ParseError):
    """Raised for an unknown directive or sub-directive label."""


class MissingRepositoryURLError(ParseError):
    """Raised when a git block never supplies a repository URL."""


class UnsupportedHookTypeError(ParseError):
    """Raised when hook_type names a payload format with no handler."""


class InvalidURLError(ConfigError):
    """Raised when a repository URL has an unrecognized shape."""


class UnsupportedPlatformError(ParseError):
    """Raised when private key authentication is requested where it is not supported."""


class SyncError(RuntimeError):
    """Base class for failures talking to git or running then actions."""


class GitNotFoundError(SyncError):
    """Raised when the git executable is missing or unusable."""


class PrepareError(SyncError):
    """Raised when a repository path cannot receive a clone."""


class PullError(SyncError):
    """Raised when a clone or pull fails."""


class ThenError(SyncError):
    """Raised when a post-sync command fails."""
