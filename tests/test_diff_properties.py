"""Property-based tests for snapshot diffs.

**Feature: commit-sync, Property 11: Diffs account for every row**
"""

from datetime import datetime, timedelta, timezone

from hypothesis import given, settings
from hypothesis import strategies as st

from commitsync.models.commit import Author, Commit
from commitsync.query.diff import IndexPath, Snapshot, compute_diff
from commitsync.query.query_view import SectionKey, build_snapshot

AUTHORS = {
    name: Author(id=i, name=name, email=f"{name}@x.com")
    for i, name in enumerate(["Ann", "Bob", "Cy"], 1)
}
BASE = datetime(2020, 1, 1, tzinfo=timezone.utc)


def commit(sha: str, author: str = "Ann", message: str = "msg", day: int = 0) -> Commit:
    return Commit(
        sha=sha,
        message=message,
        url="",
        date=BASE + timedelta(days=day),
        author=AUTHORS[author],
    )


commit_strategy = st.builds(
    commit,
    sha=st.sampled_from([f"s{i}" for i in range(8)]),
    author=st.sampled_from(sorted(AUTHORS)),
    message=st.sampled_from(["Fix bug", "Add feature"]),
    day=st.integers(min_value=0, max_value=5),
)


def snapshot_of(commits: list[Commit], sectioned: bool) -> Snapshot:
    unique = {c.sha: c for c in commits}
    ordered = sorted(unique.values(), key=lambda c: (c.author.name, -c.date.timestamp(), c.sha))
    return build_snapshot(ordered, SectionKey.AUTHOR_NAME if sectioned else None)


class TestDiffAccounting:
    """Property 11: every old row is kept or deleted and every new row is kept or inserted."""

    @given(
        old=st.lists(commit_strategy, max_size=8),
        new=st.lists(commit_strategy, max_size=8),
        sectioned=st.booleans(),
    )
    @settings(max_examples=100)
    def test_rows_partitioned(self, old: list[Commit], new: list[Commit], sectioned: bool):
        before = snapshot_of(old, sectioned)
        after = snapshot_of(new, sectioned)

        diff = compute_diff(before, after)

        old_shas = {c.sha for c in before.commits}
        new_shas = {c.sha for c in after.commits}
        deleted = {change.sha for change in diff.row_deletes}
        inserted = {change.sha for change in diff.row_inserts}

        assert deleted == old_shas - new_shas
        assert inserted == new_shas - old_shas
        assert {c.sha for c in diff.row_moves} <= old_shas & new_shas
        assert {c.sha for c in diff.row_updates} <= old_shas & new_shas

        old_positions = before.positions()
        new_positions = after.positions()
        assert all(old_positions[c.sha] == c.old for c in diff.row_deletes)
        assert all(new_positions[c.sha] == c.new for c in diff.row_inserts)

    @given(commits=st.lists(commit_strategy, max_size=8), sectioned=st.booleans())
    @settings(max_examples=50)
    def test_identical_snapshots_have_no_changes(self, commits: list[Commit], sectioned: bool):
        snapshot = snapshot_of(commits, sectioned)
        assert not compute_diff(snapshot, snapshot).has_changes

    @given(commits=st.lists(commit_strategy, min_size=1, max_size=8))
    @settings(max_examples=50)
    def test_removing_rows_never_moves_survivors(self, commits: list[Commit]):
        before = snapshot_of(commits, sectioned=True)
        victim = before.commits[0].sha
        after = snapshot_of([c for c in commits if c.sha != victim], sectioned=True)

        diff = compute_diff(before, after)

        assert [change.sha for change in diff.row_deletes] == [victim]
        assert diff.row_moves == []
        assert diff.row_inserts == []


class TestDiffExamples:
    def test_section_appears_and_disappears(self):
        before = snapshot_of([commit("a1", "Ann"), commit("b1", "Bob")], sectioned=True)
        after = snapshot_of([commit("b1", "Bob"), commit("c1", "Cy")], sectioned=True)

        diff = compute_diff(before, after)

        assert diff.section_deletes == [0]
        assert diff.section_inserts == [1]
        assert [(c.sha, c.old, c.new) for c in diff.row_moves] == []
        assert diff.row_deletes[0].old == IndexPath(section=0, row=0)
        assert diff.row_inserts[0].new == IndexPath(section=1, row=0)

    def test_author_change_moves_between_sections(self):
        before = snapshot_of([commit("x1", "Ann"), commit("b1", "Bob")], sectioned=True)
        after = snapshot_of([commit("x1", "Bob", day=1), commit("b1", "Bob")], sectioned=True)

        diff = compute_diff(before, after)

        assert [c.sha for c in diff.row_moves] == ["x1"]
        assert [c.sha for c in diff.row_updates] == ["x1"]
        assert diff.row_moves[0].new == IndexPath(section=0, row=0)
        assert diff.section_deletes == [0]

    def test_message_change_is_update_only(self):
        before = snapshot_of([commit("a1", message="Old")], sectioned=False)
        after = snapshot_of([commit("a1", message="New")], sectioned=False)

        diff = compute_diff(before, after)

        assert [c.sha for c in diff.row_updates] == ["a1"]
        assert diff.row_moves == []

    def test_commit_summary(self):
        assert commit("a1", "Bob", day=2).summary == "By Bob on 2020-01-03 00:00:00"
