"""Local persistence for commits and authors."""

from commitsync.storage.merge_policy import (
    IncomingWinsPolicy,
    MergePolicy,
    RejectConflictsPolicy,
    get_merge_policy,
)
from commitsync.storage.predicates import (
    FILTER_PRESETS,
    AllOf,
    AuthorNameEquals,
    DateAfter,
    MessageContains,
    MessageNotStartsWith,
    Predicate,
    SortKey,
    preset,
)
from commitsync.storage.record_store import RecordStore, StoreChange
from commitsync.storage.schema import AuthorRow, Base, CommitRow

__all__ = [
    "FILTER_PRESETS",
    "AllOf",
    "AuthorNameEquals",
    "AuthorRow",
    "Base",
    "CommitRow",
    "DateAfter",
    "IncomingWinsPolicy",
    "MergePolicy",
    "MessageContains",
    "MessageNotStartsWith",
    "Predicate",
    "RecordStore",
    "RejectConflictsPolicy",
    "SortKey",
    "StoreChange",
    "get_merge_policy",
    "preset",
]
