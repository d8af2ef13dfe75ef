"""Smoke tests for package layout."""

import importlib


def test_version_importable() -> None:
    """from repo_sync import __version__ works."""
    from repo_sync import __version__

    assert isinstance(__version__, str)
    assert __version__ == "0.1.0"


def test_server_config_defaults() -> None:
    """Default server configuration is loadable."""
    from repo_sync.config import SERVER_CONFIG

    assert SERVER_CONFIG.port == 2015
    assert SERVER_CONFIG.host == "0.0.0.0"
    assert SERVER_CONFIG.log_level == "INFO"


def test_subpackages_importable() -> None:
    """All subpackages are importable."""
    subpackages = [
        "repo_sync.cli",
        "repo_sync.directives",
        "repo_sync.server",
        "repo_sync.sync",
    ]
    for pkg in subpackages:
        mod = importlib.import_module(pkg)
        assert mod is not None


def test_stderr_loggers_follow_root_level() -> None:
    """Modules with their own stderr handler print once and honour --log-level."""
    import logging

    for name in ("repo_sync.sync.poller", "repo_sync.sync.webhook"):
        importlib.import_module(name)
        logger = logging.getLogger(name)
        assert len(logger.handlers) == 1
        assert logger.propagate is False
        assert logger.level == logging.NOTSET
