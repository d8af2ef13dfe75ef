"""Tests for evaluating the directive file and dispatching requests."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from aiohttp import test_utils, web

from repo_sync.cli import build_parser, main
from repo_sync.config import ServerConfig
from repo_sync.errors import InvalidDirectiveError
from repo_sync.server import Site, build_sites, create_app
from repo_sync.sync.models import SyncMode

CADDYFILE = """
a.com, b.com {
    root site
    git https://github.com/org/repo {
        hook /deploy
        hook_type generic
    }
}

c.com:8080 {
    git https://github.com/org/other other
}
"""


def _get(app: web.Application, path: str, host: str) -> int:
    async def go() -> int:
        async with test_utils.TestClient(test_utils.TestServer(app)) as client:
            resp = await client.get(path, headers={"Host": host})
            return resp.status

    return asyncio.run(go())


@pytest.fixture
def sites(tmp_path: Path) -> list[Site]:
    return build_sites(CADDYFILE, "Caddyfile", ServerConfig(root=tmp_path))


class TestBuildSites:
    """Test evaluation of server blocks."""

    def test_one_site_per_address(self, sites: list[Site], tmp_path: Path) -> None:
        assert [s.address for s in sites] == ["a.com", "b.com", "c.com:8080"]
        assert [s.hostname for s in sites] == ["a.com", "b.com", "c.com"]
        assert [s.root for s in sites] == [tmp_path / "site", tmp_path / "site", tmp_path]

    def test_shared_block_registers_startup_once(self, sites: list[Site], tmp_path: Path) -> None:
        a, b, c = sites
        assert [action.mode for action in a.startup] == [SyncMode.WEBHOOK]
        assert b.startup == []
        assert [action.repo.path for action in c.startup] == [tmp_path / "other"]

    def test_webhook_middleware_per_address(self, sites: list[Site]) -> None:
        a, b, c = sites
        assert len(a.middleware) == 1
        assert len(b.middleware) == 1
        assert c.middleware == []

    def test_paths_prepared(self, sites: list[Site], tmp_path: Path) -> None:
        assert (tmp_path / "site").is_dir()
        assert (tmp_path / "other").is_dir()

    def test_unknown_directive(self, tmp_path: Path) -> None:
        with pytest.raises(InvalidDirectiveError, match="proxy") as exc_info:
            build_sites("a.com {\n  proxy / localhost:8080\n}\n", "Caddyfile", ServerConfig(root=tmp_path))
        assert exc_info.value.line == 2

    def test_root_without_argument(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            build_sites("a.com {\n  root\n}\n", "Caddyfile", ServerConfig(root=tmp_path))


class TestCreateApp:
    """Test dispatch by Host header."""

    def test_hook_path_reaches_webhook(self, sites: list[Site]) -> None:
        # GET on a hook path is rejected by the webhook before any pull
        assert _get(create_app(sites), "/deploy", "a.com") == 405
        assert _get(create_app(sites), "/deploy", "b.com:2015") == 405

    def test_site_without_hooks(self, sites: list[Site]) -> None:
        assert _get(create_app(sites), "/deploy", "c.com:8080") == 404

    def test_unknown_host(self, sites: list[Site]) -> None:
        assert _get(create_app(sites), "/deploy", "d.com") == 404

    def test_single_site_is_default(self, tmp_path: Path) -> None:
        text = "localhost:2015\ngit https://github.com/org/repo {\n  hook /deploy\n}\n"
        sites = build_sites(text, "Caddyfile", ServerConfig(root=tmp_path))
        assert _get(create_app(sites), "/deploy", "127.0.0.1") == 405


class TestCli:
    """Test the command line entry point."""

    def test_defaults(self) -> None:
        args = build_parser().parse_args([])
        assert args.conf == Path("Caddyfile")
        assert args.port == 2015

    def test_config_error_exit_code(self, tmp_path: Path) -> None:
        conf = tmp_path / "Caddyfile"
        conf.write_text("a.com {\n  git https://github.com/org/repo {\n    colour blue\n  }\n}\n")
        assert main(["--conf", str(conf)]) == 1

    def test_missing_config_file(self, tmp_path: Path) -> None:
        assert main(["--conf", str(tmp_path / "missing")]) == 1
