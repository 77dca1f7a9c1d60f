"""Sync engine orchestrating fetch, decode, merge and commit for one cycle."""

import asyncio
import threading
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

import structlog

from commitsync.exceptions import ConflictError, FetchError, StoreError, SyncInProgressError
from commitsync.ingestion.decoder import CommitDecoder
from commitsync.ingestion.github_client import GitHubClient
from commitsync.models.commit import SyncWatermark
from commitsync.storage.record_store import RecordStore
from commitsync.sync.identity_resolver import AuthorEmailPolicy, IdentityResolver
from commitsync.sync.models import SyncPhase, SyncReport
from commitsync.sync.watermark import WatermarkTracker

log = structlog.stdlib.get_logger()


class SyncEngine:
    """Runs sync cycles against a single record store.

    A cycle moves through FETCHING, DECODING, MERGING and COMMITTING and
    always ends in IDLE. Only one cycle may run at a time; a second request
    raises SyncInProgressError instead of interleaving with the first.

    Every record of a cycle is staged and then committed in one transaction,
    so readers see either the previous state or the full new batch.
    """

    def __init__(
        self,
        store: RecordStore,
        client: GitHubClient,
        decoder: CommitDecoder | None = None,
        watermark_tracker: WatermarkTracker | None = None,
        email_policy: AuthorEmailPolicy = AuthorEmailPolicy.KEEP_EXISTING,
    ):
        """
        Initialize the sync engine.

        Args:
            store: Record store owned by this engine (the single writer)
            client: Remote commit source
            decoder: Payload decoder (defaults to CommitDecoder)
            watermark_tracker: Fetch bound computation (defaults to 1 second epsilon)
            email_policy: Policy for differing emails on known author names
        """
        self._store = store
        self._client = client
        self._decoder = decoder or CommitDecoder()
        self._watermark_tracker = watermark_tracker or WatermarkTracker(store)
        self._email_policy = AuthorEmailPolicy(email_policy)
        self._lock = threading.Lock()
        self._phase = SyncPhase.IDLE

        log.info("sync_engine_initialized", repository=client.repository)

    @property
    def phase(self) -> SyncPhase:
        return self._phase

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    def sync(self) -> SyncReport:
        """
        Run one full sync cycle in the calling thread.

        Fetch and commit failures do not raise; they are returned in the
        report with the store left at its previous committed state.

        Returns:
            SyncReport with the results of the cycle

        Raises:
            SyncInProgressError: If another cycle is running
        """
        self._acquire()
        try:
            with structlog.contextvars.bound_contextvars(
                repository=self._client.repository, cycle_id=uuid4().hex[:8]
            ):
                start_time = datetime.now(timezone.utc)
                log.info("sync_started", start_time=start_time)

                try:
                    self._set_phase(SyncPhase.FETCHING)
                    watermark = self._watermark_tracker.current()
                    payload = self._client.fetch_commits(watermark.since)
                except (FetchError, StoreError) as e:
                    return self._failed_report(start_time, None, e)

                return self._ingest(payload, watermark, start_time)
        finally:
            self._release()

    async def sync_async(self) -> SyncReport:
        """
        Run one sync cycle with the fetch in a worker thread.

        Staging and commit run on the event loop thread, which is expected
        to own the store. Cancelling the task while the fetch is in flight
        leaves the store untouched and returns the engine to IDLE.

        Raises:
            SyncInProgressError: If another cycle is running
            asyncio.CancelledError: If cancelled during the fetch
        """
        self._acquire()
        try:
            with structlog.contextvars.bound_contextvars(
                repository=self._client.repository, cycle_id=uuid4().hex[:8]
            ):
                start_time = datetime.now(timezone.utc)
                log.info("sync_started", start_time=start_time, mode="async")

                try:
                    self._set_phase(SyncPhase.FETCHING)
                    watermark = self._watermark_tracker.current()
                    payload = await asyncio.to_thread(
                        self._client.fetch_commits, watermark.since
                    )
                except asyncio.CancelledError:
                    log.warning("sync_cancelled_during_fetch")
                    raise
                except (FetchError, StoreError) as e:
                    return self._failed_report(start_time, None, e)

                return self._ingest(payload, watermark, start_time)
        finally:
            self._release()

    def _ingest(
        self, payload: list[Any], watermark: SyncWatermark, start_time: datetime
    ) -> SyncReport:
        """Decode, stage and commit a fetched payload."""
        self._set_phase(SyncPhase.DECODING)
        decoded = self._decoder.decode_payload(payload)
        warnings = [str(error) for error in decoded.errors]
        skipped = decoded.skipped

        self._set_phase(SyncPhase.MERGING)
        resolver = IdentityResolver(self._store, self._email_policy)

        try:
            for record in decoded.records:
                author = resolver.resolve(record.author_name, record.author_email)
                try:
                    self._store.upsert_commit(record, author)
                except ConflictError as e:
                    resolver.undo_last()
                    skipped += 1
                    warnings.append(str(e))
                    log.warning("record_conflict_skipped", sha=e.sha, fields=e.fields)

            self._set_phase(SyncPhase.COMMITTING)
            change = self._store.commit()
        except StoreError as e:
            self._store.rollback()
            return self._failed_report(start_time, watermark, e, commits_fetched=len(payload))
        except Exception as e:
            self._store.rollback()
            log.exception("sync_unexpected_error", error=str(e))
            return self._failed_report(start_time, watermark, e, commits_fetched=len(payload))

        end_time = datetime.now(timezone.utc)
        report = SyncReport(
            repository=self._client.repository,
            since=watermark.since,
            commits_fetched=len(payload),
            commits_added=len(change.inserted),
            commits_updated=len(change.updated),
            authors_created=resolver.authors_created,
            records_skipped=skipped,
            duration_seconds=(end_time - start_time).total_seconds(),
            start_time=start_time,
            end_time=end_time,
            warnings=warnings,
        )

        log.info(
            "sync_completed",
            commits_fetched=report.commits_fetched,
            commits_added=report.commits_added,
            commits_updated=report.commits_updated,
            authors_created=report.authors_created,
            records_skipped=report.records_skipped,
            duration_seconds=report.duration_seconds,
        )
        return report

    def _failed_report(
        self,
        start_time: datetime,
        watermark: SyncWatermark | None,
        error: Exception,
        commits_fetched: int = 0,
    ) -> SyncReport:
        end_time = datetime.now(timezone.utc)
        duration = (end_time - start_time).total_seconds()

        log.error(
            "sync_failed",
            phase=self._phase.value,
            error_type=type(error).__name__,
            error=str(error),
            duration_seconds=duration,
        )

        return SyncReport(
            repository=self._client.repository,
            since=watermark.since if watermark else None,
            commits_fetched=commits_fetched,
            duration_seconds=duration,
            start_time=start_time,
            end_time=end_time,
            errors=[f"Sync failed during {self._phase.value}: {error}"],
        )

    def _acquire(self) -> None:
        if not self._lock.acquire(blocking=False):
            log.warning("sync_rejected_already_running", phase=self._phase.value)
            raise SyncInProgressError("A sync cycle is already in progress")

    def _release(self) -> None:
        self._set_phase(SyncPhase.IDLE)
        self._lock.release()

    def _set_phase(self, phase: SyncPhase) -> None:
        if phase is not self._phase:
            log.debug("sync_phase_changed", from_phase=self._phase.value, to_phase=phase.value)
            self._phase = phase
