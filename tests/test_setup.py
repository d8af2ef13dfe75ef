"""Tests for activation planning and startup."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from repo_sync.errors import PullError
from repo_sync.sync.models import HookConfig, RepoDescriptor, SyncMode
from repo_sync.sync.setup import StartupAction, plan, run_startup, setup


class FakePoller:
    def __init__(self) -> None:
        self.started: list[RepoDescriptor] = []

    def start(self, repo: RepoDescriptor) -> None:
        self.started.append(repo)


class TestPlan:
    """Test partitioning into polled and webhook repositories."""

    def test_one_action_per_repo(self, make_repo, tmp_path: Path) -> None:
        polled = make_repo(path=tmp_path / "a")
        hooked = make_repo(path=tmp_path / "b", hook=HookConfig(url="/deploy"))

        activation = plan([polled, hooked])

        assert activation.startup == [
            StartupAction(repo=polled, mode=SyncMode.POLL),
            StartupAction(repo=hooked, mode=SyncMode.WEBHOOK),
        ]
        assert activation.webhook_repos == [hooked]

    def test_empty(self) -> None:
        activation = plan([])
        assert activation.startup == []
        assert activation.webhook_repos == []


class TestSetup:
    """Test registration through the controller."""

    def test_registered_once_per_server_block(self, git_block, tmp_path: Path) -> None:
        """A block shared by two addresses registers its startup work once."""
        _, controllers = git_block("git https://github.com/org/repo", tmp_path, addresses="a.com, b.com")

        for c in controllers:
            setup(c)

        first, second = controllers
        assert len(first.startup) == 1
        assert second.startup == []

    def test_separate_blocks_register_separately(self, git_block, tmp_path: Path) -> None:
        _, [one] = git_block("git https://github.com/org/one one", tmp_path, addresses="a.com")
        _, [two] = git_block("git https://github.com/org/two two", tmp_path, addresses="b.com")
        setup(one)
        setup(two)
        assert len(one.startup) == 1
        assert len(two.startup) == 1

    def test_no_middleware_without_hooks(self, git_block, tmp_path: Path) -> None:
        _, [c] = git_block("git https://github.com/org/repo", tmp_path)
        assert setup(c) is None

    def test_middleware_with_hooks(self, git_block, tmp_path: Path) -> None:
        body = "git https://github.com/org/repo one\ngit https://github.com/org/site site {\n  hook /deploy\n}"
        _, [c] = git_block(body, tmp_path)

        middleware = setup(c)

        assert middleware is not None
        webhook = middleware(lambda request: None)  # type: ignore[arg-type, return-value]
        assert [r.url for r in webhook.repos] == ["https://github.com/org/site.git"]
        assert [a.mode for a in c.startup] == [SyncMode.POLL, SyncMode.WEBHOOK]

    def test_parse_error_registers_nothing(self, git_block, tmp_path: Path) -> None:
        _, [c] = git_block("git https://github.com/org/repo {\n  bogus 1\n}", tmp_path)
        with pytest.raises(ValueError):
            setup(c)
        assert c.startup == []


class TestRunStartup:
    """Test consuming the startup worklist."""

    def test_poll_and_webhook_actions(self, make_repo, tmp_path: Path) -> None:
        polled = make_repo(path=tmp_path / "a")
        hooked = make_repo(path=tmp_path / "b", hook=HookConfig(url="/deploy"))
        poller = FakePoller()
        pulled: list[RepoDescriptor] = []

        def pull(repo: RepoDescriptor) -> bool:
            pulled.append(repo)
            return True

        actions = plan([polled, hooked]).startup
        asyncio.run(run_startup(actions, poller, pull=pull))  # type: ignore[arg-type]

        assert poller.started == [polled]
        assert pulled == [polled, hooked]

    def test_pull_failure_aborts(self, make_repo) -> None:
        def pull(repo: RepoDescriptor) -> bool:
            raise PullError("authentication failed")

        actions = plan([make_repo()]).startup
        with pytest.raises(PullError, match="authentication"):
            asyncio.run(run_startup(actions, FakePoller(), pull=pull))  # type: ignore[arg-type]
