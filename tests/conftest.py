"""Shared fixtures and builders for commit sync tests."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest

from commitsync.models.commit import CommitRecord
from commitsync.models.config import StoreConfig
from commitsync.providers import get_engine
from commitsync.storage.merge_policy import MergePolicy
from commitsync.storage.record_store import RecordStore


def make_store(directory: str | Path, merge_policy: MergePolicy | None = None) -> RecordStore:
    """Create a record store backed by a fresh SQLite file in ``directory``."""
    engine = get_engine(StoreConfig(url=f"sqlite:///{Path(directory) / 'commits.sqlite'}"))
    return RecordStore(engine, merge_policy=merge_policy)


def make_record(
    sha: str,
    message: str = "Initial commit",
    date: datetime = datetime(2020, 1, 1, tzinfo=timezone.utc),
    author_name: str = "Ann",
    author_email: str = "a@x.com",
) -> CommitRecord:
    return CommitRecord(
        sha=sha,
        message=message,
        url=f"https://github.com/apple/swift/commit/{sha}",
        date=date,
        author_name=author_name,
        author_email=author_email,
    )


def raw_commit(
    sha: str,
    message: str = "Initial commit",
    name: str = "Ann",
    email: str = "a@x.com",
    date: str = "2020-01-01T00:00:00Z",
) -> dict[str, Any]:
    """Build a remote payload element in the GitHub commits API shape."""
    return {
        "sha": sha,
        "commit": {
            "message": message,
            "committer": {"name": name, "email": email, "date": date},
        },
        "html_url": f"https://github.com/apple/swift/commit/{sha}",
    }


class FakeClient:
    """Remote source double returning canned payloads and recording fetch bounds."""

    repository = "apple/swift"

    def __init__(self, payloads: list[Any] | None = None, error: Exception | None = None):
        self.payloads = list(payloads or [])
        self.error = error
        self.since_calls: list[datetime] = []

    def fetch_commits(self, since: datetime) -> list[Any]:
        self.since_calls.append(since)
        if self.error is not None:
            raise self.error
        return self.payloads.pop(0) if self.payloads else []


@pytest.fixture
def store(tmp_path: Path) -> RecordStore:
    record_store = make_store(tmp_path)
    yield record_store
    record_store.close()
