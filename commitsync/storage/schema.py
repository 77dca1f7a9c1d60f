"""ORM schema for the local commit store."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator

from commitsync.models.commit import Author, Commit, ensure_utc


class UTCDateTime(TypeDecorator):
    """Stores datetimes as naive UTC and returns them timezone-aware."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return ensure_utc(value).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


class Base(DeclarativeBase):
    pass


class AuthorRow(Base):
    """Commit author. ``name`` is indexed, not unique."""

    __tablename__ = "authors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String, nullable=False, default="")

    def to_model(self) -> Author:
        return Author(id=self.id, name=self.name, email=self.email)

    def __repr__(self) -> str:
        return f"<AuthorRow(id={self.id}, name={self.name!r})>"


class CommitRow(Base):
    """Commit keyed by sha, owning a reference to its author."""

    __tablename__ = "commits"

    sha: Mapped[str] = mapped_column(String, primary_key=True)
    message: Mapped[str] = mapped_column(Text, nullable=False, default="")
    url: Mapped[str] = mapped_column(String, nullable=False, default="")
    date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)
    author_id: Mapped[int] = mapped_column(
        ForeignKey("authors.id"), nullable=False, index=True
    )

    author: Mapped[AuthorRow] = relationship(lazy="joined")

    def to_model(self) -> Commit:
        return Commit(
            sha=self.sha,
            message=self.message,
            url=self.url,
            date=self.date,
            author=self.author.to_model(),
        )

    def __repr__(self) -> str:
        return f"<CommitRow(sha={self.sha!r}, date={self.date})>"
