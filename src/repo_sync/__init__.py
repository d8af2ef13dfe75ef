"""Keep local git working copies in sync with their upstream repositories."""

__version__ = "0.1.0"
