"""Synchronization components for incremental commit updates."""

from commitsync.sync.identity_resolver import AuthorEmailPolicy, IdentityResolver
from commitsync.sync.models import SyncPhase, SyncReport
from commitsync.sync.sync_engine import SyncEngine
from commitsync.sync.watermark import WatermarkTracker

__all__ = [
    "AuthorEmailPolicy",
    "IdentityResolver",
    "SyncEngine",
    "SyncPhase",
    "SyncReport",
    "WatermarkTracker",
]
