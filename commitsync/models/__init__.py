"""Data models for the commit sync engine."""

from commitsync.models.commit import (
    EPOCH,
    Author,
    Commit,
    CommitRecord,
    SyncWatermark,
    ensure_utc,
)
from commitsync.models.config import (
    AppConfig,
    LoggingConfig,
    SourceConfig,
    StoreConfig,
    SyncConfig,
    ViewConfig,
)

__all__ = [
    "EPOCH",
    "Author",
    "Commit",
    "CommitRecord",
    "SyncWatermark",
    "ensure_utc",
    "AppConfig",
    "LoggingConfig",
    "SourceConfig",
    "StoreConfig",
    "SyncConfig",
    "ViewConfig",
]
