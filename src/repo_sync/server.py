"""Host process: evaluates the directive file and serves webhook endpoints."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

from aiohttp import web

from repo_sync.directives.controller import Controller, load_server_blocks
from repo_sync.errors import InvalidDirectiveError
from repo_sync.sync.poller import RepoPoller
from repo_sync.sync.setup import run_startup
from repo_sync.sync.setup import setup as git_setup

if TYPE_CHECKING:
    from repo_sync.config import ServerConfig
    from repo_sync.sync.setup import StartupAction
    from repo_sync.sync.webhook import Handler, Middleware

logger = logging.getLogger(__name__)

# Directives in evaluation order; root must be known before git resolves paths
DIRECTIVES = ("root", "git")


@dataclass
class Site:
    """One address of a server block with its evaluated directives."""

    address: str
    root: Path
    middleware: list[Middleware] = field(default_factory=list)
    startup: list[StartupAction] = field(default_factory=list)

    @property
    def hostname(self) -> str:
        address = self.address if "://" in self.address else f"//{self.address}"
        return urlsplit(address).hostname or ""

    def handler(self) -> Handler:
        """Build the request chain. Later middleware runs first."""
        chain: Handler = _not_found
        for middleware in self.middleware:
            chain = middleware(chain)
        return chain


async def _not_found(_request: web.Request) -> web.StreamResponse:
    return web.Response(text="Not Found", status=404)


def setup_root(c: Controller) -> Path:
    """``root <path>``: base directory for relative paths of the block."""
    root = c.root
    while c.next():
        if not c.next_arg():
            raise c.arg_err()
        value = Path(c.val())
        root = value if value.is_absolute() else c.root / value
    return root


def build_sites(text: str, filename: str, config: ServerConfig) -> list[Site]:
    """Evaluate every server block for every one of its addresses.

    Raises:
        ConfigError: If any directive fails; nothing is activated.
        SyncError: If git is unavailable or a path cannot be prepared.
    """
    sites: list[Site] = []

    for block in load_server_blocks(text, filename):
        for name, tokens in block.directives.items():
            if name not in DIRECTIVES:
                raise InvalidDirectiveError(f"unknown directive '{name}'", filename, tokens[0].line)

        for address in block.addresses:
            site = Site(address=address, root=config.root)
            for name in DIRECTIVES:
                if name not in block.directives:
                    continue
                c = Controller(block, address, name, site.root, filename)
                if name == "root":
                    site.root = setup_root(c)
                    continue
                middleware = git_setup(c)
                if middleware is not None:
                    site.middleware.append(middleware)
                site.startup.extend(c.startup)
            sites.append(site)

    logger.info("Loaded %d site(s) from %s", len(sites), filename or "<config>")
    return sites


def create_app(sites: list[Site]) -> web.Application:
    """aiohttp application dispatching requests to sites by Host header."""
    handlers = {site.hostname: site.handler() for site in sites}
    fallback = handlers.get("") or (sites[0].handler() if len(sites) == 1 else _not_found)

    async def dispatch(request: web.Request) -> web.StreamResponse:
        hostname = (request.host or "").rsplit(":", 1)[0].lower()
        return await handlers.get(hostname, fallback)(request)

    app = web.Application()
    app.router.add_route("*", "/{tail:.*}", dispatch)
    return app


async def serve(config: ServerConfig) -> None:
    """Load the configuration, run startup pulls, then serve until cancelled."""
    text = config.conf.read_text(encoding="utf-8")
    sites = build_sites(text, str(config.conf), config)

    poller = RepoPoller()
    runner: web.AppRunner | None = None
    try:
        await run_startup([action for site in sites for action in site.startup], poller)

        runner = web.AppRunner(create_app(sites))
        await runner.setup()
        await web.TCPSite(runner, config.host, config.port).start()
        logger.info("Listening on %s:%d", config.host, config.port)

        while True:
            await asyncio.sleep(3600)  # Sleep indefinitely
    finally:
        await poller.stop()
        if runner is not None:
            await runner.cleanup()
