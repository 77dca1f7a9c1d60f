"""Fetch watermark computation from the record store."""

from datetime import timedelta

import structlog

from commitsync.models.commit import EPOCH, SyncWatermark
from commitsync.storage.record_store import RecordStore

log = structlog.stdlib.get_logger()


class WatermarkTracker:
    """Derives the next fetch lower bound from the newest stored commit.

    The watermark is not persisted separately; it is always recomputed from
    committed data, so a failed cycle cannot advance it.
    """

    def __init__(self, store: RecordStore, epsilon: timedelta = timedelta(seconds=1)):
        """
        Initialize the tracker.

        Args:
            store: Record store to read the newest commit date from
            epsilon: Added to the newest commit date; must be positive

        Raises:
            ValueError: If epsilon is not positive
        """
        if epsilon <= timedelta(0):
            raise ValueError("epsilon must be positive")
        self._store = store
        self._epsilon = epsilon

    def current(self) -> SyncWatermark:
        """Return the watermark for the next fetch."""
        latest = self._store.latest_commit_date()
        if latest is None:
            watermark = SyncWatermark(latest_commit_date=None, since=EPOCH)
        else:
            watermark = SyncWatermark(latest_commit_date=latest, since=latest + self._epsilon)

        log.info(
            "watermark_computed",
            latest_commit_date=watermark.latest_commit_date,
            since=watermark.since,
        )
        return watermark
