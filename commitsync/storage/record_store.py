"""Durable keyed storage for commits and authors with staged, atomic writes."""

from datetime import datetime
from typing import Callable

import structlog
from pydantic import BaseModel, Field
from sqlalchemy import func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from commitsync.exceptions import StoreError
from commitsync.models.commit import Commit, CommitRecord
from commitsync.storage.merge_policy import IncomingWinsPolicy, MergePolicy
from commitsync.storage.predicates import Predicate, SortKey, order_by
from commitsync.storage.schema import AuthorRow, Base, CommitRow

log = structlog.stdlib.get_logger()


class StoreChange(BaseModel):
    """Commits affected by one committed transaction."""

    inserted: list[str] = Field(default_factory=list, description="Shas of new commits")
    updated: list[str] = Field(default_factory=list, description="Shas of merged commits")
    deleted: list[str] = Field(default_factory=list, description="Shas of removed commits")

    @property
    def has_changes(self) -> bool:
        return bool(self.inserted or self.updated or self.deleted)


StoreListener = Callable[[StoreChange], None]


class RecordStore:
    """Commit and author storage backed by a SQLAlchemy engine.

    Writes are staged in a single writer session and become visible only
    when ``commit()`` succeeds. Reads (``query``, ``latest_commit_date``,
    counts) run in short-lived sessions and never observe staged values.

    One writer owns the store. Readers may query it from other threads while
    no commit is in progress.
    """

    def __init__(self, engine: Engine, merge_policy: MergePolicy | None = None):
        """
        Initialize the record store, creating tables if needed.

        Args:
            engine: SQLAlchemy engine for the backing database
            merge_policy: Conflict policy for re-written commits
                          (defaults to IncomingWinsPolicy)

        Raises:
            StoreError: If the schema cannot be created
        """
        self._engine: Engine = engine
        self._merge_policy: MergePolicy = merge_policy or IncomingWinsPolicy()

        try:
            Base.metadata.create_all(engine)
        except SQLAlchemyError as e:
            log.error("record_store_initialization_failed", url=str(engine.url), error=str(e))
            raise StoreError(f"Failed to initialize record store: {e}") from e

        self._session_factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
        self._session: Session = self._session_factory()
        self._staged_commits: dict[str, CommitRow] = {}
        self._inserted: set[str] = set()
        self._listeners: list[StoreListener] = []

        log.info(
            "record_store_initialized",
            url=engine.url.render_as_string(hide_password=True),
            merge_policy=self._merge_policy.name,
        )

    @property
    def merge_policy(self) -> MergePolicy:
        return self._merge_policy

    @property
    def has_changes(self) -> bool:
        """True when staged changes are waiting for ``commit()``.

        A row set back to its stored values within the transaction does not count.
        """
        session = self._session
        if session.new or session.deleted:
            return True
        return any(session.is_modified(row) for row in session.dirty)

    # Write side

    def upsert_commit(self, record: CommitRecord, author: AuthorRow) -> CommitRow:
        """
        Stage a commit, merging with any stored commit that has the same sha.

        A commit staged earlier in the current transaction takes precedence
        over the persisted row when looking for the existing version.

        Args:
            record: Decoded commit values
            author: Resolved author handle from this store

        Returns:
            The staged commit row

        Raises:
            ConflictError: If the merge policy declines the write
            StoreError: If the existing row cannot be read
        """
        incoming = {
            "message": record.message,
            "url": record.url,
            "date": record.date,
            "author": author,
        }

        row = self._staged_commits.get(record.sha)
        if row is None:
            try:
                row = self._session.get(CommitRow, record.sha)
            except SQLAlchemyError as e:
                log.error("commit_lookup_failed", sha=record.sha, error=str(e))
                raise StoreError(f"Failed to look up commit {record.sha}: {e}") from e

        if row is None:
            row = CommitRow(sha=record.sha, **incoming)
            self._session.add(row)
            self._inserted.add(record.sha)
            log.debug("commit_staged", sha=record.sha)
        else:
            current = {
                "message": row.message,
                "url": row.url,
                "date": row.date,
                "author": row.author,
            }
            resolved = self._merge_policy.resolve(record.sha, current, incoming)
            for field, value in resolved.items():
                if getattr(row, field) != value:
                    setattr(row, field, value)
            log.debug("commit_merged", sha=record.sha)

        self._staged_commits[record.sha] = row
        return row

    def find_author_by_name(self, name: str) -> AuthorRow | None:
        """
        Find a committed author by exact name.

        Staged authors are not visible here; callers that need in-batch
        deduplication keep their own record of staged authors.
        """
        stmt = select(AuthorRow).where(AuthorRow.name == name).order_by(AuthorRow.id).limit(1)
        try:
            return self._session.scalars(stmt).first()
        except SQLAlchemyError as e:
            log.error("author_lookup_failed", name=name, error=str(e))
            raise StoreError(f"Failed to look up author {name!r}: {e}") from e

    def insert_author(self, name: str, email: str) -> AuthorRow:
        """Stage a new author. Uniqueness of ``name`` is not checked."""
        author = AuthorRow(name=name, email=email)
        self._session.add(author)
        log.debug("author_staged", name=name)
        return author

    def discard_author(self, author: AuthorRow) -> bool:
        """
        Unstage an author inserted in the current transaction.

        Authors already persisted, or referenced by a staged commit, are kept.

        Returns:
            True if the author was removed from the transaction
        """
        if author not in self._session.new:
            return False
        if any(row.author is author for row in self._staged_commits.values()):
            return False
        self._session.expunge(author)
        log.debug("author_unstaged", name=author.name)
        return True

    def commit(self) -> StoreChange:
        """
        Persist all staged changes atomically.

        Returns:
            The committed change, empty if nothing was staged

        Raises:
            StoreError: If the transaction fails. The transaction is rolled
                        back, staged changes are discarded and the persisted
                        state is left as it was before the attempt.
        """
        if not self.has_changes:
            log.debug("commit_skipped_no_changes")
            self._reset_staging()
            return StoreChange()

        change = StoreChange(
            inserted=sorted(self._inserted),
            updated=sorted(
                sha
                for sha, row in self._staged_commits.items()
                if sha not in self._inserted and self._session.is_modified(row)
            ),
        )

        try:
            self._session.commit()
        except SQLAlchemyError as e:
            self._session.rollback()
            log.error(
                "store_commit_failed",
                staged_commits=len(self._staged_commits),
                error=str(e),
            )
            raise StoreError(f"Failed to commit staged changes: {e}") from e
        finally:
            self._reset_staging()

        log.info(
            "store_committed",
            inserted=len(change.inserted),
            updated=len(change.updated),
        )
        self._notify(change)
        return change

    def rollback(self) -> None:
        """Discard all staged changes."""
        self._session.rollback()
        self._reset_staging()
        log.debug("store_rolled_back")

    def delete_commit(self, sha: str) -> None:
        """
        Remove a single commit in its own transaction.

        The commit's author is left in place even if it has no commits left.

        Raises:
            StoreError: If the commit does not exist, changes are staged,
                        or the delete fails
        """
        if self.has_changes:
            raise StoreError("Cannot delete while changes are staged; commit or roll back first")

        try:
            with self._session_factory.begin() as session:
                row = session.get(CommitRow, sha)
                if row is None:
                    raise StoreError(f"Commit not found: {sha}")
                session.delete(row)
        except SQLAlchemyError as e:
            log.error("delete_commit_failed", sha=sha, error=str(e))
            raise StoreError(f"Failed to delete commit {sha}: {e}") from e

        log.info("commit_deleted", sha=sha)
        self._notify(StoreChange(deleted=[sha]))

    # Read side

    def latest_commit_date(self) -> datetime | None:
        """Return the newest committed commit date, or None for an empty store."""
        try:
            with self._session_factory() as session:
                return session.scalar(select(func.max(CommitRow.date)))
        except SQLAlchemyError as e:
            log.error("latest_commit_date_failed", error=str(e))
            raise StoreError(f"Failed to read latest commit date: {e}") from e

    def query(
        self,
        predicate: Predicate | None = None,
        sort_key: SortKey = SortKey.AUTHOR_NAME,
    ) -> list[Commit]:
        """
        Return committed commits matching ``predicate`` in ``sort_key`` order.

        Args:
            predicate: Optional filter, None for all commits
            sort_key: Ordering of the result

        Returns:
            Detached commit models with their authors
        """
        stmt = select(CommitRow).join(CommitRow.author)
        if predicate is not None:
            stmt = stmt.where(predicate.to_clause())
        stmt = stmt.order_by(*order_by(sort_key))

        try:
            with self._session_factory() as session:
                rows = session.scalars(stmt).all()
                commits = [row.to_model() for row in rows]
        except SQLAlchemyError as e:
            log.error(
                "query_failed",
                predicate=predicate.describe() if predicate else None,
                error=str(e),
            )
            raise StoreError(f"Failed to query commits: {e}") from e

        log.debug(
            "query_executed",
            predicate=predicate.describe() if predicate else None,
            sort_key=sort_key.value,
            result_count=len(commits),
        )
        return commits

    def get_commit(self, sha: str) -> Commit | None:
        with self._session_factory() as session:
            row = session.get(CommitRow, sha)
            return row.to_model() if row is not None else None

    def count_commits(self) -> int:
        with self._session_factory() as session:
            return session.scalar(select(func.count()).select_from(CommitRow)) or 0

    def count_authors(self) -> int:
        with self._session_factory() as session:
            return session.scalar(select(func.count()).select_from(AuthorRow)) or 0

    # Change notification

    def subscribe(self, listener: StoreListener) -> None:
        """Register a callback invoked after every successful commit or delete."""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: StoreListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def close(self) -> None:
        self._session.close()
        self._listeners.clear()
        log.info("record_store_closed")

    def _notify(self, change: StoreChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception as e:
                log.error(
                    "store_listener_failed",
                    listener=getattr(listener, "__qualname__", repr(listener)),
                    error=str(e),
                )

    def _reset_staging(self) -> None:
        self._staged_commits.clear()
        self._inserted.clear()
        self._session.close()
