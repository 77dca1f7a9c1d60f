"""Conflict resolution policies applied when a stored commit is written again."""

from abc import ABC, abstractmethod
from typing import Any

import structlog

from commitsync.exceptions import ConflictError

log = structlog.stdlib.get_logger()

MERGED_FIELDS: tuple[str, ...] = ("message", "url", "date", "author")


class MergePolicy(ABC):
    """Decides the stored values of a commit whose sha is already present.

    ``current`` holds the values already in the store (persisted, or staged
    earlier in the same cycle), ``incoming`` the values being written now.
    Both map the names in ``MERGED_FIELDS`` to values.
    """

    name: str = ""

    @abstractmethod
    def resolve(
        self, sha: str, current: dict[str, Any], incoming: dict[str, Any]
    ) -> dict[str, Any]:
        """Return the values to store, or raise ConflictError to decline."""

    @staticmethod
    def conflicting_fields(current: dict[str, Any], incoming: dict[str, Any]) -> list[str]:
        return [field for field in MERGED_FIELDS if current.get(field) != incoming.get(field)]


class IncomingWinsPolicy(MergePolicy):
    """The value being written replaces the stored value for every field."""

    name = "incoming_wins"

    def resolve(
        self, sha: str, current: dict[str, Any], incoming: dict[str, Any]
    ) -> dict[str, Any]:
        conflicts = self.conflicting_fields(current, incoming)
        if conflicts:
            log.debug("merge_incoming_wins", sha=sha, fields=conflicts)
        return dict(incoming)


class RejectConflictsPolicy(MergePolicy):
    """Refuses any write that would change a stored field."""

    name = "reject_conflicts"

    def resolve(
        self, sha: str, current: dict[str, Any], incoming: dict[str, Any]
    ) -> dict[str, Any]:
        conflicts = self.conflicting_fields(current, incoming)
        if conflicts:
            log.warning("merge_conflict_rejected", sha=sha, fields=conflicts)
            raise ConflictError(
                f"Commit {sha} already stored with different {', '.join(conflicts)}",
                sha=sha,
                fields=conflicts,
            )
        return dict(current)


_POLICIES: dict[str, type[MergePolicy]] = {
    IncomingWinsPolicy.name: IncomingWinsPolicy,
    RejectConflictsPolicy.name: RejectConflictsPolicy,
}


def get_merge_policy(name: str) -> MergePolicy:
    """Build a merge policy by its configured name."""
    try:
        return _POLICIES[name]()
    except KeyError:
        raise ValueError(
            f"Unknown merge policy '{name}'. Supported: {sorted(_POLICIES)}"
        ) from None
