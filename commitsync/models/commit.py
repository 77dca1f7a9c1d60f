"""Pydantic models for commits, authors and sync watermarks."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator

EPOCH: datetime = datetime(1970, 1, 1, tzinfo=timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as a timezone-aware UTC datetime.

    Naive datetimes are interpreted as UTC, which is how the store persists them.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Author(BaseModel):
    """A stored commit author, identified by name."""

    id: int = Field(default=..., description="Store-assigned author identifier")
    name: str = Field(default=..., description="Author name, the identity key")
    email: str = Field(default="", description="Author email address")

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "example": {"id": 1, "name": "Ann", "email": "a@x.com"},
        },
    }


class Commit(BaseModel):
    """A stored commit as seen by readers of the record store."""

    sha: str = Field(default=..., description="Commit hash, unique per remote source")
    message: str = Field(default="", description="Commit message")
    url: str = Field(default="", description="Link to the commit on the remote source")
    date: datetime = Field(default=..., description="Committer date (UTC)")
    author: Author = Field(default=..., description="Resolved commit author")

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "example": {
                "sha": "a1",
                "message": "Fix bug",
                "url": "https://github.com/apple/swift/commit/a1",
                "date": "2020-01-01T00:00:00Z",
                "author": {"id": 1, "name": "Ann", "email": "a@x.com"},
            }
        },
    }

    @field_validator("date")
    @classmethod
    def normalize_date(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def summary(self) -> str:
        """Detail line shown under the commit message."""
        return f"By {self.author.name} on {self.date.strftime('%Y-%m-%d %H:%M:%S')}"


class CommitRecord(BaseModel):
    """A single decoded record from the remote commit feed."""

    sha: str = Field(default=..., description="Commit hash")
    message: str = Field(default="", description="Commit message")
    url: str = Field(default="", description="HTML URL of the commit")
    date: datetime = Field(default=..., description="Committer date (UTC)")
    author_name: str = Field(default="", description="Committer name")
    author_email: str = Field(default="", description="Committer email")

    @field_validator("date")
    @classmethod
    def normalize_date(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class SyncWatermark(BaseModel):
    """Lower bound for the next fetch window."""

    latest_commit_date: datetime | None = Field(
        default=None, description="Newest stored commit date, None for an empty store"
    )
    since: datetime = Field(default=EPOCH, description="Fetch records dated at or after this")

    @field_validator("latest_commit_date", "since")
    @classmethod
    def normalize_dates(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v) if v is not None else None

    @property
    def is_initial(self) -> bool:
        """True when nothing has been synced yet."""
        return self.latest_commit_date is None
