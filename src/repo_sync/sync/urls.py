"""Repository URL normalization.

Repositories without a private key are accessed over HTTPS so that git never
stops at an interactive SSH prompt. Repositories with a key are accessed over
SSH in the SCP-like ``git@host:path`` form.
"""

from __future__ import annotations

from urllib.parse import urlsplit

from repo_sync.errors import InvalidURLError

GIT_SUFFIX = ".git"
SSH_PREFIX = "git@"

# Bitbucket needs the account name as the user part of HTTPS URLs
BITBUCKET_HOST = "bitbucket.org"


def sanitize_http(repo_url: str) -> tuple[str, str]:
    """Convert a repository URL to HTTPS.

    SCP-like SSH URLs (``git@host:org/repo``) are rewritten. Returns the
    sanitized URL and the host name (e.g. github.com, bitbucket.org).

    Raises:
        InvalidURLError: If the URL cannot be parsed.
    """
    try:
        parts = urlsplit(repo_url)
        if not parts.scheme and not parts.netloc and not parts.path.startswith(SSH_PREFIX):
            # host/org/repo without a scheme
            parts = urlsplit("https://" + repo_url)
        user = parts.username
    except ValueError as exc:
        raise InvalidURLError(f"invalid git url {repo_url}") from exc

    host = parts.netloc.rpartition("@")[2]

    path = parts.path
    if not host and path.startswith(SSH_PREFIX):
        path = path[len(SSH_PREFIX):]
        i = path.find(":")
        if i < 0:
            raise InvalidURLError(f"invalid git url {repo_url}")
        host = path[:i]
        path = "/" + path[i + 1:]

    if user:
        url = f"https://{user}@{host}{path}"
    elif host == BITBUCKET_HOST:
        segments = path.split("/")
        account = segments[1] if len(segments) > 1 else ""
        url = f"https://{account}@{host}{path}"
    else:
        url = f"https://{host}{path}"

    if not url.endswith(GIT_SUFFIX):
        url += GIT_SUFFIX

    return url, host


def sanitize_git(repo_url: str) -> tuple[str, str]:
    """Convert a repository URL to the SCP-like SSH form.

    HTTP(S) URLs are rewritten to ``git@host:path``. Returns the sanitized
    URL and the host name.

    Raises:
        InvalidURLError: If the URL is neither SSH nor HTTP(S).
    """
    repo_url = repo_url.strip()

    if not repo_url.startswith(SSH_PREFIX) or repo_url.find(":") < len("git@a:"):
        try:
            parts = urlsplit(repo_url)
        except ValueError as exc:
            raise InvalidURLError(f"invalid git url {repo_url}") from exc
        if not parts.scheme.startswith("http") or not parts.netloc:
            raise InvalidURLError(f"invalid git url {repo_url}")
        repo_url = f"{SSH_PREFIX}{parts.hostname}:{parts.path[1:]}"

    host_and_path = repo_url[len(SSH_PREFIX):]
    host = host_and_path[: host_and_path.index(":")]

    if not repo_url.endswith(GIT_SUFFIX):
        repo_url += GIT_SUFFIX

    return repo_url, host
