"""Server configuration."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field


class ServerConfig(BaseModel):
    """Configuration for the sync host."""

    # Config file
    conf: Path = Field(default=Path("Caddyfile"), description="Path to the directive file")

    # HTTP listener (webhook endpoints)
    host: str = Field(default="0.0.0.0", description="Address to bind the HTTP listener to")
    port: int = Field(default=2015, description="Port for the HTTP listener")

    # Site root, used when a block has no root directive
    root: Path = Field(default_factory=Path.cwd, description="Default root for relative repository paths")

    log_level: str = Field(default="INFO", description="Logging level")


# Default configuration
SERVER_CONFIG = ServerConfig()
