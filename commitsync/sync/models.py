"""Phase and report models for commit sync cycles."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class SyncPhase(str, Enum):
    """Phases of one sync cycle. Every failure returns to IDLE."""

    IDLE = "idle"
    FETCHING = "fetching"
    DECODING = "decoding"
    MERGING = "merging"
    COMMITTING = "committing"


class SyncReport(BaseModel):
    """Outcome of one sync cycle, successful or not."""

    repository: str = Field(..., description="Remote repository that was synced")
    since: datetime | None = Field(
        default=None, description="Fetch lower bound used for this cycle"
    )
    commits_fetched: int = Field(default=0, ge=0, description="Records in the fetched payload")
    commits_added: int = Field(default=0, ge=0, description="Number of new commits stored")
    commits_updated: int = Field(default=0, ge=0, description="Stored commits changed by merge")
    authors_created: int = Field(default=0, ge=0, description="New authors stored")
    records_skipped: int = Field(
        default=0, ge=0, description="Records dropped (no sha or merge conflict)"
    )
    duration_seconds: float = Field(default=0.0, ge=0.0, description="Sync duration in seconds")
    start_time: datetime = Field(..., description="Sync start timestamp")
    end_time: datetime = Field(..., description="Sync end timestamp")
    errors: list[str] = Field(
        default_factory=list, description="Errors that failed the cycle"
    )
    warnings: list[str] = Field(
        default_factory=list, description="Per-record problems that did not fail the cycle"
    )

    @property
    def total_changes(self) -> int:
        """Commits inserted or changed by this cycle."""
        return self.commits_added + self.commits_updated

    @property
    def success(self) -> bool:
        """True when the cycle committed (possibly nothing) without errors."""
        return len(self.errors) == 0
