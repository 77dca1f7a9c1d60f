"""Live, filtered, sorted and sectioned view over the record store."""

import threading
from enum import Enum
from typing import Callable

import structlog

from commitsync.models.commit import Commit
from commitsync.query.diff import Diff, IndexPath, Section, Snapshot, compute_diff
from commitsync.storage.predicates import Predicate, SortKey
from commitsync.storage.record_store import RecordStore, StoreChange

log = structlog.stdlib.get_logger()


class SectionKey(str, Enum):
    """Grouping key for view sections."""

    AUTHOR_NAME = "author_name"


DiffListener = Callable[[Diff], None]


def build_snapshot(commits: list[Commit], section_key: SectionKey | None) -> Snapshot:
    """
    Group sorted commits into sections.

    Sections are ordered by label; rows keep the order of ``commits``.
    Without a section key everything lands in one unlabelled section.
    """
    if section_key is None:
        return Snapshot(sections=[Section(label=None, commits=list(commits))] if commits else [])

    grouped: dict[str, list[Commit]] = {}
    for commit in commits:
        grouped.setdefault(commit.author.name, []).append(commit)

    return Snapshot(
        sections=[Section(label=label, commits=grouped[label]) for label in sorted(grouped)]
    )


class QueryView:
    """A projection of the record store that reports what changed between refreshes.

    The view keeps the snapshot it last emitted. ``refresh()`` re-runs the
    query, diffs the result against that snapshot and replaces it. Changing
    the predicate, sort key or section key takes effect on the next refresh.

    Call ``attach()`` to refresh automatically after every store commit and
    deliver non-empty diffs to ``on_change``; otherwise call ``refresh()``
    after a known mutation.
    """

    def __init__(
        self,
        store: RecordStore,
        predicate: Predicate | None = None,
        sort_key: SortKey = SortKey.AUTHOR_NAME,
        section_key: SectionKey | None = SectionKey.AUTHOR_NAME,
        on_change: DiffListener | None = None,
    ):
        self._store = store
        self._predicate = predicate
        self._sort_key = SortKey(sort_key)
        self._section_key = SectionKey(section_key) if section_key is not None else None
        self._on_change = on_change
        self._snapshot = Snapshot()
        self._attached = False
        self._lock = threading.RLock()

    @property
    def predicate(self) -> Predicate | None:
        return self._predicate

    @property
    def sort_key(self) -> SortKey:
        return self._sort_key

    @property
    def section_key(self) -> SectionKey | None:
        return self._section_key

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    def set_predicate(self, predicate: Predicate | None) -> None:
        with self._lock:
            self._predicate = predicate
        log.info("view_predicate_changed", predicate=predicate.describe() if predicate else None)

    def set_sort_key(self, sort_key: SortKey) -> None:
        with self._lock:
            self._sort_key = SortKey(sort_key)
        log.info("view_sort_key_changed", sort_key=self._sort_key.value)

    def set_section_key(self, section_key: SectionKey | None) -> None:
        with self._lock:
            self._section_key = SectionKey(section_key) if section_key is not None else None

    def refresh(self) -> Diff:
        """
        Re-run the query and diff it against the previously emitted snapshot.

        Returns:
            Diff from the previous snapshot to the new one

        Raises:
            StoreError: If the query fails; the previous snapshot is kept
        """
        with self._lock:
            commits = self._store.query(self._predicate, self._sort_key)
            snapshot = build_snapshot(commits, self._section_key)
            diff = compute_diff(self._snapshot, snapshot)
            self._snapshot = snapshot

        log.debug(
            "view_refreshed",
            rows=len(snapshot),
            sections=len(snapshot.sections),
            inserted=len(diff.row_inserts),
            deleted=len(diff.row_deletes),
            moved=len(diff.row_moves),
            updated=len(diff.row_updates),
        )
        return diff

    def attach(self) -> None:
        """Subscribe to store changes."""
        if not self._attached:
            self._store.subscribe(self._handle_store_change)
            self._attached = True

    def detach(self) -> None:
        if self._attached:
            self._store.unsubscribe(self._handle_store_change)
            self._attached = False

    # Consumer helpers

    def number_of_sections(self) -> int:
        return len(self._snapshot.sections)

    def number_of_rows(self, section: int) -> int:
        return len(self._snapshot.sections[section].commits)

    def section_label(self, section: int) -> str | None:
        return self._snapshot.sections[section].label

    def commit_at(self, position: IndexPath) -> Commit:
        return self._snapshot.sections[position.section].commits[position.row]

    def _handle_store_change(self, change: StoreChange) -> None:
        diff = self.refresh()
        log.debug(
            "view_store_change_handled",
            inserted=len(change.inserted),
            updated=len(change.updated),
            deleted=len(change.deleted),
        )
        if self._on_change is not None and diff.has_changes:
            self._on_change(diff)
