"""Filter predicates and sort keys for commit queries.

Predicates compile to SQLAlchemy clauses over ``CommitRow`` joined with
``AuthorRow``, so filtering happens inside the database.
"""

from abc import abstractmethod
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Literal

from pydantic import BaseModel, Field, field_validator
from sqlalchemy import and_, func, not_
from sqlalchemy.sql.elements import ColumnElement

from commitsync.models.commit import ensure_utc
from commitsync.storage.schema import AuthorRow, CommitRow


class SortKey(str, Enum):
    """Row ordering for commit queries."""

    AUTHOR_NAME = "author_name"  # ascending, newest first within an author
    DATE = "date"  # newest first


def order_by(sort_key: SortKey) -> list[ColumnElement]:
    if sort_key is SortKey.AUTHOR_NAME:
        return [AuthorRow.name.asc(), CommitRow.date.desc(), CommitRow.sha.asc()]
    return [CommitRow.date.desc(), CommitRow.sha.asc()]


class Predicate(BaseModel):
    """Base class for commit filters."""

    model_config = {"frozen": True}

    @abstractmethod
    def to_clause(self) -> ColumnElement[bool]:
        """SQL condition selecting matching commit rows."""

    @abstractmethod
    def describe(self) -> str:
        """Human-readable form for logs."""


class MessageContains(Predicate):
    """Message contains ``token``, ignoring case.

    Both sides are Unicode casefolded by the ``casefold`` SQL function that
    ``get_engine`` registers on SQLite connections.
    """

    kind: Literal["message_contains"] = "message_contains"
    token: str = Field(default=..., min_length=1)

    def to_clause(self) -> ColumnElement[bool]:
        return func.casefold(CommitRow.message).contains(self.token.casefold(), autoescape=True)

    def describe(self) -> str:
        return f"message contains '{self.token}'"


class MessageNotStartsWith(Predicate):
    """Message does not begin with ``prefix`` (case-sensitive)."""

    kind: Literal["message_not_starts_with"] = "message_not_starts_with"
    prefix: str = Field(default=..., min_length=1)

    def to_clause(self) -> ColumnElement[bool]:
        # substr comparison keeps this case-sensitive; SQLite LIKE is not
        return not_(func.substr(CommitRow.message, 1, len(self.prefix)) == self.prefix)

    def describe(self) -> str:
        return f"message does not start with '{self.prefix}'"


class DateAfter(Predicate):
    """Commit date strictly later than ``threshold``."""

    kind: Literal["date_after"] = "date_after"
    threshold: datetime

    @field_validator("threshold")
    @classmethod
    def normalize_threshold(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    def to_clause(self) -> ColumnElement[bool]:
        return CommitRow.date > self.threshold

    def describe(self) -> str:
        return f"date after {self.threshold.isoformat()}"


class AuthorNameEquals(Predicate):
    """Author name equals ``name`` exactly."""

    kind: Literal["author_name_equals"] = "author_name_equals"
    name: str

    def to_clause(self) -> ColumnElement[bool]:
        return AuthorRow.name == self.name

    def describe(self) -> str:
        return f"author is '{self.name}'"


class AllOf(Predicate):
    """Conjunction of predicates."""

    kind: Literal["all_of"] = "all_of"
    predicates: tuple[Predicate, ...] = Field(default=..., min_length=1)

    def to_clause(self) -> ColumnElement[bool]:
        return and_(*(p.to_clause() for p in self.predicates))

    def describe(self) -> str:
        return " and ".join(p.describe() for p in self.predicates)


def _recent(now: datetime | None = None) -> Predicate:
    now = ensure_utc(now) if now else datetime.now(timezone.utc)
    return DateAfter(threshold=now - timedelta(hours=12))


FILTER_PRESETS: dict[str, Callable[[], Predicate | None]] = {
    "all": lambda: None,
    "fixes": lambda: MessageContains(token="fix"),
    "no_pull_requests": lambda: MessageNotStartsWith(prefix="Merge pull request"),
    "recent": _recent,
    "durian": lambda: AuthorNameEquals(name="Joe Groff"),
}


def preset(name: str) -> Predicate | None:
    """Build the predicate for a named filter preset."""
    try:
        factory = FILTER_PRESETS[name]
    except KeyError:
        raise ValueError(
            f"Unknown filter preset '{name}'. Available: {sorted(FILTER_PRESETS)}"
        ) from None
    return factory()
