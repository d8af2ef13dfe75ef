"""Webhook middleware that pulls repositories when their host reports a push."""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import json
import logging
import sys
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping

from aiohttp import web

from repo_sync.errors import SyncError
from repo_sync.sync import git_ops

if TYPE_CHECKING:
    from repo_sync.sync.models import RepoDescriptor

logger = logging.getLogger(__name__)

# Configure logging to stderr
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    logger.addHandler(handler)
    logger.propagate = False

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]
Middleware = Callable[[Handler], Handler]


class HookError(Exception):
    """A notification was rejected. Carries the HTTP status to answer with."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.message = message


class HookHandler:
    """Validates one provider's payload format and decides whether to pull."""

    name = ""

    def does_handle(self, headers: Mapping[str, str]) -> bool:
        raise NotImplementedError

    def handle(self, headers: Mapping[str, str], body: bytes, repo: RepoDescriptor) -> bool:
        """Validate the notification. Returns True when the repo should be pulled.

        Raises:
            HookError: If the notification is invalid or unsupported.
        """
        raise NotImplementedError


def _payload(body: bytes) -> dict[str, Any]:
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise HookError(400, "invalid JSON payload") from exc
    if not isinstance(data, dict):
        raise HookError(400, "invalid JSON payload")
    return data


def _branch_ref(repo: RepoDescriptor) -> str:
    return f"refs/heads/{repo.branch}"


def _verify_hmac(secret: str, body: bytes, signature: str, prefix: str, digest: Callable[..., Any]) -> None:
    if not signature:
        raise HookError(400, "missing signature")
    if prefix:
        if not signature.startswith(prefix):
            raise HookError(400, f"invalid signature format: {signature}")
        signature = signature[len(prefix):]
    computed = hmac.new(secret.encode(), body, digest).hexdigest()
    if not hmac.compare_digest(computed, signature):
        raise HookError(403, "signature verification failed")


def _verify_hub_signature(repo: RepoDescriptor, headers: Mapping[str, str], body: bytes) -> None:
    """Check X-Hub-Signature-256, falling back to the legacy sha1 header."""
    if not repo.hook.secret:
        return
    if "X-Hub-Signature-256" in headers:
        _verify_hmac(repo.hook.secret, body, headers["X-Hub-Signature-256"], "sha256=", hashlib.sha256)
    else:
        _verify_hmac(repo.hook.secret, body, headers.get("X-Hub-Signature", ""), "sha1=", hashlib.sha1)


class GitHubHook(HookHandler):
    name = "github"

    def does_handle(self, headers: Mapping[str, str]) -> bool:
        return "X-GitHub-Event" in headers

    def handle(self, headers: Mapping[str, str], body: bytes, repo: RepoDescriptor) -> bool:
        _verify_hub_signature(repo, headers, body)

        event = headers.get("X-GitHub-Event", "")
        if event == "ping":
            return False
        if event == "push":
            ref = _payload(body).get("ref", "")
            if ref != _branch_ref(repo):
                logger.debug("Ignoring push to %s, tracking %s", ref, repo.branch)
                return False
            return True
        if event == "release":
            return True
        raise HookError(400, f"cannot handle {event} event")


class GitLabHook(HookHandler):
    name = "gitlab"

    def does_handle(self, headers: Mapping[str, str]) -> bool:
        return "X-Gitlab-Event" in headers

    def handle(self, headers: Mapping[str, str], body: bytes, repo: RepoDescriptor) -> bool:
        if repo.hook.secret:
            token = headers.get("X-Gitlab-Token", "")
            if not hmac.compare_digest(token.encode(), repo.hook.secret.encode()):
                raise HookError(403, "invalid token")

        event = headers.get("X-Gitlab-Event", "")
        if event == "Push Hook":
            return _payload(body).get("ref", "") == _branch_ref(repo)
        if event == "Tag Push Hook":
            return True
        raise HookError(400, f"cannot handle {event} event")


class BitbucketHook(HookHandler):
    name = "bitbucket"

    def does_handle(self, headers: Mapping[str, str]) -> bool:
        return "X-Event-Key" in headers

    def handle(self, headers: Mapping[str, str], body: bytes, repo: RepoDescriptor) -> bool:
        _verify_hub_signature(repo, headers, body)

        event = headers.get("X-Event-Key", "")
        if event != "repo:push":
            raise HookError(400, f"cannot handle {event} event")

        push = _payload(body).get("push") or {}
        for change in push.get("changes") or []:
            new = (change or {}).get("new") or {}
            if new.get("type") == "branch" and new.get("name") == repo.branch:
                return True
        return False


class GogsHook(HookHandler):
    name = "gogs"

    def does_handle(self, headers: Mapping[str, str]) -> bool:
        return "X-Gogs-Event" in headers

    def handle(self, headers: Mapping[str, str], body: bytes, repo: RepoDescriptor) -> bool:
        if repo.hook.secret:
            _verify_hmac(repo.hook.secret, body, headers.get("X-Gogs-Signature", ""), "", hashlib.sha256)

        event = headers.get("X-Gogs-Event", "")
        if event != "push":
            raise HookError(400, f"cannot handle {event} event")
        return _payload(body).get("ref", "") == _branch_ref(repo)


class GenericHook(HookHandler):
    """Any JSON POST. A ``ref`` field, when present, must name the tracked branch."""

    name = "generic"

    def does_handle(self, headers: Mapping[str, str]) -> bool:
        return True

    def handle(self, headers: Mapping[str, str], body: bytes, repo: RepoDescriptor) -> bool:
        _verify_hub_signature(repo, headers, body)

        if not body.strip():
            return True
        ref = _payload(body).get("ref")
        return ref is None or ref == _branch_ref(repo)


# Registered payload formats, in header detection order. Gogs also sends
# GitHub headers, and generic accepts anything.
HOOK_HANDLERS: dict[str, HookHandler] = {
    handler.name: handler
    for handler in (GogsHook(), GitLabHook(), BitbucketHook(), GitHubHook(), GenericHook())
}


async def _not_found(_request: web.Request) -> web.StreamResponse:
    return web.Response(text="Not Found", status=404)


class WebHook:
    """Request handler for the webhook-enabled repositories of one server.

    Requests whose path matches a repository's hook url trigger a pull of
    that repository; everything else is passed to the next handler.
    """

    def __init__(
        self,
        repos: list[RepoDescriptor],
        next_handler: Handler = _not_found,
        pull: Callable[[RepoDescriptor], bool] = git_ops.pull,
    ) -> None:
        self.repos = repos
        self.next_handler = next_handler
        self._pull = pull

    async def __call__(self, request: web.Request) -> web.StreamResponse:
        for repo in self.repos:
            if request.path == repo.hook.url:
                return await self._serve(request, repo)
        return await self.next_handler(request)

    def _handler_for(self, repo: RepoDescriptor, headers: Mapping[str, str]) -> HookHandler | None:
        if repo.hook.type:
            return HOOK_HANDLERS[repo.hook.type]
        for hook_handler in HOOK_HANDLERS.values():
            if hook_handler.does_handle(headers):
                return hook_handler
        return None

    async def _serve(self, request: web.Request, repo: RepoDescriptor) -> web.StreamResponse:
        if request.method != "POST":
            return web.Response(text="Method Not Allowed", status=405)

        hook_handler = self._handler_for(repo, request.headers)
        if hook_handler is None:
            return web.Response(text="Bad Request", status=400)

        try:
            body = await request.read()
        except Exception:
            logger.exception("Failed to read webhook payload")
            return web.Response(text="Bad Request", status=400)

        try:
            should_pull = hook_handler.handle(request.headers, body, repo)
        except HookError as e:
            logger.warning("Rejected %s notification for %s: %s", hook_handler.name, repo.url, e.message)
            return web.Response(text=e.message, status=e.status)

        if not should_pull:
            return web.Response(text="OK", status=200)

        logger.info("Received %s notification for %s", hook_handler.name, repo.url)
        try:
            await asyncio.to_thread(self._pull, repo)
        except SyncError:
            logger.exception("Pull failed for %s", repo.url)
            # Don't fail the webhook response
            return web.Response(text="OK (pull failed)", status=200)

        return web.Response(text="OK", status=200)


def webhook_middleware(repos: list[RepoDescriptor]) -> Middleware:
    """Middleware placing a WebHook for ``repos`` in front of the next handler."""
    webhook = WebHook(repos)

    def middleware(next_handler: Handler) -> Handler:
        webhook.next_handler = next_handler
        return webhook

    return middleware
