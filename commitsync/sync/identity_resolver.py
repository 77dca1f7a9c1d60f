"""Author identity resolution and deduplication by name."""

from enum import Enum

import structlog

from commitsync.storage.record_store import RecordStore
from commitsync.storage.schema import AuthorRow

log = structlog.stdlib.get_logger()


class AuthorEmailPolicy(str, Enum):
    """What to do when a known author name arrives with a different email."""

    KEEP_EXISTING = "keep_existing"
    PREFER_INCOMING = "prefer_incoming"


class IdentityResolver:
    """Resolves author payloads to a single stored author per name.

    The resolver remembers every author it has handed out, including authors
    staged but not yet committed, so repeated names within one sync batch
    map to the same author. Use one resolver per sync cycle.
    """

    def __init__(
        self,
        store: RecordStore,
        email_policy: AuthorEmailPolicy = AuthorEmailPolicy.KEEP_EXISTING,
    ):
        self._store = store
        self._email_policy = AuthorEmailPolicy(email_policy)
        self._in_flight: dict[str, AuthorRow] = {}
        self._last: tuple[AuthorRow, bool, str] | None = None
        self.authors_created: int = 0

    def resolve(self, name: str, email: str) -> AuthorRow:
        """
        Return the author for ``name``, staging a new one on first sighting.

        Args:
            name: Author name (identity key)
            email: Author email from the payload

        Returns:
            Author handle usable as a commit's author in the current batch
        """
        author = self._in_flight.get(name)
        created = False
        if author is None:
            author = self._store.find_author_by_name(name)
            if author is None:
                author = self._store.insert_author(name, email)
                self.authors_created += 1
                created = True
                log.debug("author_created", name=name)
            self._in_flight[name] = author

        self._last = (author, created, author.email)
        self._apply_email_policy(author, email)
        return author

    def undo_last(self) -> None:
        """
        Revert the most recent ``resolve`` when its commit was not staged.

        An author created by that call is unstaged unless another staged
        commit already uses it, and an email it changed is restored.
        """
        if self._last is None:
            return
        author, created, previous_email = self._last
        self._last = None

        author.email = previous_email
        if created and self._store.discard_author(author):
            del self._in_flight[author.name]
            self.authors_created -= 1
            log.debug("author_creation_undone", name=author.name)

    def reset(self) -> None:
        """Forget in-flight authors, e.g. after a rolled back batch."""
        self._in_flight.clear()
        self._last = None
        self.authors_created = 0

    def _apply_email_policy(self, author: AuthorRow, email: str) -> None:
        if author.email == email:
            return
        if self._email_policy is AuthorEmailPolicy.PREFER_INCOMING and email:
            log.info("author_email_updated", name=author.name)
            author.email = email
        else:
            log.debug("author_email_ignored", name=author.name)
