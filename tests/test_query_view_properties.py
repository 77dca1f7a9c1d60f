"""Tests for filtered, sorted and sectioned query views.

**Feature: commit-sync, Property 6: Views reflect only committed state**
"""

from datetime import datetime, timedelta, timezone

import pytest

from commitsync.query.diff import Diff, IndexPath
from commitsync.query.query_view import QueryView, SectionKey
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
from commitsync.storage.record_store import RecordStore

from conftest import make_record

BASE = datetime(2020, 1, 1, tzinfo=timezone.utc)


def seed(store: RecordStore, rows: list[tuple[str, str, str, int]]) -> None:
    """Commit (sha, author, message, day offset) rows in one transaction."""
    authors = {}
    for sha, name, message, offset in rows:
        if name not in authors:
            authors[name] = store.find_author_by_name(name) or store.insert_author(
                name, f"{name.lower()}@x.com"
            )
        store.upsert_commit(
            make_record(
                sha, message=message, author_name=name, date=BASE + timedelta(days=offset)
            ),
            authors[name],
        )
    store.commit()


class TestFiltering:
    """Predicates narrow the view inside the database."""

    def test_fix_filter_is_case_insensitive(self, store: RecordStore):
        seed(
            store,
            [
                ("s1", "Ann", "Fix bug", 3),
                ("s2", "Ann", "Add feature", 2),
                ("s3", "Ann", "fixup typo", 1),
            ],
        )
        view = QueryView(store, predicate=MessageContains(token="fix"), section_key=None)

        view.refresh()

        assert [c.sha for c in view.snapshot.commits] == ["s1", "s3"]

    def test_contains_folds_non_ascii_case(self, store: RecordStore):
        seed(
            store,
            [
                ("s1", "Ann", "Über fix", 3),
                ("s2", "Ann", "ÉCOLE", 2),
                ("s3", "Ann", "Straße", 1),
            ],
        )

        def matching(token: str) -> list[str]:
            return [c.sha for c in store.query(MessageContains(token=token), SortKey.DATE)]

        assert matching("über") == ["s1"]
        assert matching("ÜBER FIX") == ["s1"]
        assert matching("école") == ["s2"]
        assert matching("STRASSE") == ["s3"]

    def test_contains_escapes_wildcards(self, store: RecordStore):
        seed(store, [("s1", "Ann", "100% done", 1), ("s2", "Ann", "1000 done", 2)])
        view = QueryView(store, predicate=MessageContains(token="0%"), section_key=None)

        view.refresh()

        assert [c.sha for c in view.snapshot.commits] == ["s1"]

    def test_not_starts_with_is_case_sensitive(self, store: RecordStore):
        seed(
            store,
            [
                ("s1", "Ann", "Merge pull request #1 from x/y", 3),
                ("s2", "Ann", "merge pull request lowercase", 2),
                ("s3", "Ann", "Plain change", 1),
            ],
        )
        view = QueryView(store, predicate=preset("no_pull_requests"), section_key=None)

        view.refresh()

        assert [c.sha for c in view.snapshot.commits] == ["s2", "s3"]

    def test_date_after_and_author(self, store: RecordStore):
        seed(
            store,
            [
                ("s1", "Ann", "one", 1),
                ("s2", "Bob", "two", 5),
                ("s3", "Ann", "three", 6),
            ],
        )
        predicate = AllOf(
            predicates=(
                DateAfter(threshold=BASE + timedelta(days=2)),
                AuthorNameEquals(name="Ann"),
            )
        )
        view = QueryView(store, predicate=predicate, section_key=None)

        view.refresh()

        assert [c.sha for c in view.snapshot.commits] == ["s3"]
        assert "author is 'Ann'" in predicate.describe()

    def test_naive_threshold_treated_as_utc(self):
        predicate = DateAfter(threshold=datetime(2020, 1, 1))
        assert predicate.threshold.tzinfo is not None

    def test_presets(self):
        assert preset("all") is None
        assert preset("fixes") == MessageContains(token="fix")
        assert preset("no_pull_requests") == MessageNotStartsWith(prefix="Merge pull request")
        assert preset("durian") == AuthorNameEquals(name="Joe Groff")
        recent = preset("recent")
        assert isinstance(recent, DateAfter)
        age = datetime.now(timezone.utc) - recent.threshold
        assert timedelta(hours=11, minutes=59) < age < timedelta(hours=12, minutes=1)
        assert set(FILTER_PRESETS) == {"all", "fixes", "no_pull_requests", "recent", "durian"}

    def test_predicate_base_is_abstract(self):
        with pytest.raises(TypeError):
            Predicate()

    def test_unknown_preset_rejected(self):
        with pytest.raises(ValueError, match="Unknown filter preset"):
            preset("nope")

    def test_predicate_change_applies_on_refresh(self, store: RecordStore):
        seed(store, [("s1", "Ann", "Fix bug", 2), ("s2", "Bob", "Add feature", 1)])
        view = QueryView(store, section_key=None)
        view.refresh()

        view.set_predicate(MessageContains(token="feature"))
        assert len(view.snapshot) == 2
        diff = view.refresh()

        assert [c.sha for c in view.snapshot.commits] == ["s2"]
        assert [change.sha for change in diff.row_deletes] == ["s1"]
        assert diff.row_deletes[0].old == IndexPath(section=0, row=0)


class TestSortingAndSections:
    """Rows follow the sort key and are grouped by author name."""

    def test_sections_by_author(self, store: RecordStore):
        seed(
            store,
            [
                ("c1", "Cy", "c", 1),
                ("a1", "Ann", "a old", 1),
                ("a2", "Ann", "a new", 4),
                ("b1", "Bob", "b", 2),
            ],
        )
        view = QueryView(store)

        view.refresh()

        assert view.number_of_sections() == 3
        assert [view.section_label(i) for i in range(3)] == ["Ann", "Bob", "Cy"]
        assert view.number_of_rows(0) == 2
        assert view.commit_at(IndexPath(section=0, row=0)).sha == "a2"
        assert view.commit_at(IndexPath(section=2, row=0)).sha == "c1"

    def test_date_sort_without_sections(self, store: RecordStore):
        seed(store, [("a1", "Ann", "a", 1), ("b1", "Bob", "b", 3), ("c1", "Cy", "c", 2)])
        view = QueryView(store, sort_key=SortKey.DATE, section_key=None)

        view.refresh()

        assert view.number_of_sections() == 1
        assert view.section_label(0) is None
        assert [c.sha for c in view.snapshot.commits] == ["b1", "c1", "a1"]

    def test_switching_sort_reports_moves(self, store: RecordStore):
        seed(store, [("a1", "Ann", "a", 1), ("b1", "Bob", "b", 3)])
        view = QueryView(store, section_key=None)
        view.refresh()

        view.set_sort_key(SortKey.DATE)
        diff = view.refresh()

        assert {change.sha for change in diff.row_moves} == {"a1", "b1"}
        assert not diff.row_inserts
        assert not diff.row_deletes

    def test_section_key_change(self, store: RecordStore):
        seed(store, [("a1", "Ann", "a", 1), ("b1", "Bob", "b", 2)])
        view = QueryView(store)
        view.refresh()

        view.set_section_key(None)
        diff = view.refresh()

        assert view.number_of_sections() == 1
        assert diff.section_deletes == [0, 1]
        assert diff.section_inserts == [0]

    def test_empty_store_has_no_sections(self, store: RecordStore):
        view = QueryView(store, section_key=None)

        diff = view.refresh()

        assert view.number_of_sections() == 0
        assert not diff.has_changes


class TestLiveUpdates:
    """Property 6: an attached view sees each committed change exactly once."""

    def test_delete_reported_at_previous_position(self, store: RecordStore):
        seed(store, [("a1", "Ann", "a", 3), ("a2", "Ann", "b", 2), ("a3", "Ann", "c", 1)])
        diffs: list[Diff] = []
        view = QueryView(store, on_change=diffs.append)
        view.refresh()
        view.attach()

        store.delete_commit("a2")

        assert len(diffs) == 1
        assert [(c.sha, c.old) for c in diffs[0].row_deletes] == [
            ("a2", IndexPath(section=0, row=1))
        ]
        assert not diffs[0].row_moves
        assert [c.sha for c in view.snapshot.commits] == ["a1", "a3"]

    def test_staged_changes_invisible_until_commit(self, store: RecordStore):
        seed(store, [("a1", "Ann", "a", 1)])
        diffs: list[Diff] = []
        view = QueryView(store, on_change=diffs.append)
        view.refresh()
        view.attach()

        author = store.find_author_by_name("Ann")
        store.upsert_commit(make_record("a2", date=BASE + timedelta(days=9)), author)
        view.refresh()
        assert [c.sha for c in view.snapshot.commits] == ["a1"]

        store.commit()

        assert len(diffs) == 1
        assert [(c.sha, c.new) for c in diffs[0].row_inserts] == [
            ("a2", IndexPath(section=0, row=0))
        ]

    def test_update_reported(self, store: RecordStore):
        seed(store, [("a1", "Ann", "Before", 1)])
        diffs: list[Diff] = []
        view = QueryView(store, on_change=diffs.append)
        view.refresh()
        view.attach()

        seed(store, [("a1", "Ann", "After", 1)])

        assert [c.sha for c in diffs[0].row_updates] == ["a1"]
        assert view.snapshot.commits[0].message == "After"

    def test_detached_view_not_notified(self, store: RecordStore):
        diffs: list[Diff] = []
        view = QueryView(store, on_change=diffs.append)
        view.attach()
        view.detach()

        seed(store, [("a1", "Ann", "a", 1)])

        assert diffs == []
        assert len(view.snapshot) == 0

    def test_filtered_out_change_not_pushed(self, store: RecordStore):
        diffs: list[Diff] = []
        view = QueryView(store, predicate=preset("fixes"), on_change=diffs.append)
        view.attach()

        seed(store, [("a1", "Ann", "Add feature", 1)])

        assert diffs == []
