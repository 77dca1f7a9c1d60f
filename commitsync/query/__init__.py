"""Live query views over the record store."""

from commitsync.query.diff import Diff, IndexPath, RowChange, Section, Snapshot, compute_diff
from commitsync.query.query_view import QueryView, SectionKey, build_snapshot
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

__all__ = [
    "FILTER_PRESETS",
    "AllOf",
    "AuthorNameEquals",
    "DateAfter",
    "Diff",
    "IndexPath",
    "MessageContains",
    "MessageNotStartsWith",
    "Predicate",
    "QueryView",
    "RowChange",
    "Section",
    "SectionKey",
    "Snapshot",
    "SortKey",
    "build_snapshot",
    "compute_diff",
    "preset",
]
