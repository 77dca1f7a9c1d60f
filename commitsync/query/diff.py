"""Snapshots of a commit view and the diff between two of them."""

from pydantic import BaseModel, Field

from commitsync.models.commit import Commit


class IndexPath(BaseModel):
    """Position of a row: section index and row index within the section."""

    model_config = {"frozen": True}

    section: int = Field(default=..., ge=0)
    row: int = Field(default=..., ge=0)


class Section(BaseModel):
    """An ordered group of commits sharing a label."""

    label: str | None = Field(default=None, description="Section title, None when unsectioned")
    commits: list[Commit] = Field(default_factory=list)


class Snapshot(BaseModel):
    """The ordered, sectioned result of one view refresh."""

    sections: list[Section] = Field(default_factory=list)

    @property
    def commits(self) -> list[Commit]:
        return [commit for section in self.sections for commit in section.commits]

    @property
    def section_labels(self) -> list[str | None]:
        return [section.label for section in self.sections]

    def __len__(self) -> int:
        return sum(len(section.commits) for section in self.sections)

    def positions(self) -> dict[str, IndexPath]:
        return {
            commit.sha: IndexPath(section=s, row=r)
            for s, section in enumerate(self.sections)
            for r, commit in enumerate(section.commits)
        }


class RowChange(BaseModel):
    """A single row operation. Deletes carry only ``old``, inserts only ``new``."""

    sha: str
    old: IndexPath | None = None
    new: IndexPath | None = None


class Diff(BaseModel):
    """Operations that transform the previous snapshot into the current one.

    Section deletes and row deletes use positions in the previous snapshot;
    section inserts and row inserts use positions in the current one.
    """

    section_deletes: list[int] = Field(default_factory=list)
    section_inserts: list[int] = Field(default_factory=list)
    row_deletes: list[RowChange] = Field(default_factory=list)
    row_inserts: list[RowChange] = Field(default_factory=list)
    row_moves: list[RowChange] = Field(default_factory=list)
    row_updates: list[RowChange] = Field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(
            self.section_deletes
            or self.section_inserts
            or self.row_deletes
            or self.row_inserts
            or self.row_moves
            or self.row_updates
        )


def _labels(snapshot: Snapshot) -> dict[str, str | None]:
    return {
        commit.sha: section.label for section in snapshot.sections for commit in section.commits
    }


def _relative_order(snapshot: Snapshot, keep: set[str]) -> dict[str, int]:
    """Map each kept sha to its index among the kept rows of its section."""
    order: dict[str, int] = {}
    for section in snapshot.sections:
        index = 0
        for commit in section.commits:
            if commit.sha in keep:
                order[commit.sha] = index
                index += 1
    return order


def compute_diff(old: Snapshot, new: Snapshot) -> Diff:
    """
    Compute the diff between two snapshots.

    A surviving row is reported as moved when its section label changes, or
    when its order relative to the other rows that stay in that section
    changes. Inserts, deletes and rows moving in or out of a section do not
    turn the rows around them into moves.
    """
    diff = Diff()

    old_labels = old.section_labels
    new_labels = new.section_labels
    diff.section_deletes = [i for i, label in enumerate(old_labels) if label not in new_labels]
    diff.section_inserts = [i for i, label in enumerate(new_labels) if label not in old_labels]

    old_positions = old.positions()
    new_positions = new.positions()
    old_commits = {commit.sha: commit for commit in old.commits}
    new_commits = {commit.sha: commit for commit in new.commits}

    old_row_labels = _labels(old)
    new_row_labels = _labels(new)
    stable = {
        sha
        for sha in set(old_positions) & set(new_positions)
        if old_row_labels[sha] == new_row_labels[sha]
    }
    old_order = _relative_order(old, stable)
    new_order = _relative_order(new, stable)

    for sha, position in old_positions.items():
        if sha not in new_positions:
            diff.row_deletes.append(RowChange(sha=sha, old=position))

    for sha, position in new_positions.items():
        if sha not in old_positions:
            diff.row_inserts.append(RowChange(sha=sha, new=position))
            continue
        change = RowChange(sha=sha, old=old_positions[sha], new=position)
        if sha not in stable or old_order[sha] != new_order[sha]:
            diff.row_moves.append(change)
        if old_commits[sha] != new_commits[sha]:
            diff.row_updates.append(change)

    return diff
