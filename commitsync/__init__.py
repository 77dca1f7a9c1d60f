"""Local synchronization and caching engine for remote commit feeds."""

__version__ = "0.1.0"
