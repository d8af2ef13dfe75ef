"""Command line entry point."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from repo_sync import __version__
from repo_sync.config import SERVER_CONFIG, ServerConfig
from repo_sync.errors import ConfigError, SyncError
from repo_sync.server import serve

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repo-sync",
        description="Keep local git working copies in sync with their upstream repositories",
    )
    parser.add_argument("--conf", type=Path, default=SERVER_CONFIG.conf, help="Directive file")
    parser.add_argument("--host", default=SERVER_CONFIG.host, help="Address for webhook endpoints")
    parser.add_argument("--port", type=int, default=SERVER_CONFIG.port, help="Port for webhook endpoints")
    parser.add_argument("--root", type=Path, default=None, help="Root for relative repository paths")
    parser.add_argument("--log-level", default=SERVER_CONFIG.log_level, help="Logging level")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    config = ServerConfig(
        conf=args.conf,
        host=args.host,
        port=args.port,
        root=args.root or args.conf.resolve().parent,
        log_level=args.log_level.upper(),
    )

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    try:
        asyncio.run(serve(config))
    except KeyboardInterrupt:
        logger.info("Shutting down")
    except (ConfigError, SyncError, OSError) as e:
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
