"""
Tests for academics/links.py — set reconciliation and transactional apply.
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from academics.errors import AssignmentNotFound, DuplicateAssignment, ReconciliationFailed
from academics.links import all_links, apply, link, reconcile, teacher_links, unlink, update_assignments
from academics.records import AssignmentLink
from academics.store import LinkStore

TEACHER = "t-1"


@pytest.fixture
def store():
    return LinkStore.from_url("sqlite://")


@pytest.fixture
def seeded(store):
    for class_id in ("c-1", "c-2", "c-3"):
        link(store, TEACHER, class_id)
    link(store, "t-2", "c-1")
    return store


class FailingInsertStore(LinkStore):
    """Deletes succeed, the first insert blows up."""

    def insert(self, conn, teacher_id, class_id):
        raise RuntimeError("disk full")


class TestReconcile:
    """Tests for the pure set difference."""

    def test_add_remove_keep(self):
        actual = {AssignmentLink("1", TEACHER, "c-1"), AssignmentLink("2", TEACHER, "c-2")}
        plan = reconcile(TEACHER, {"c-2", "c-3"}, actual)
        assert plan.to_add == {"c-3"}
        assert plan.to_remove == {AssignmentLink("1", TEACHER, "c-1")}
        assert plan.to_keep == {AssignmentLink("2", TEACHER, "c-2")}

    def test_empty_desired_removes_everything(self):
        actual = {AssignmentLink("1", TEACHER, "c-1")}
        plan = reconcile(TEACHER, set(), actual)
        assert plan.to_add == frozenset()
        assert plan.to_remove == actual
        assert plan.to_keep == frozenset()

    def test_matching_sets_are_noop(self):
        actual = {AssignmentLink("1", TEACHER, "c-1")}
        assert reconcile(TEACHER, {"c-1"}, actual).is_noop

    def test_duplicates_in_desired_collapse(self):
        plan = reconcile(TEACHER, ["c-1", "c-1"], [])
        assert plan.to_add == {"c-1"}


class TestApply:
    """Tests for apply against a real transaction."""

    def test_apply_counts(self, seeded):
        actual = teacher_links(seeded, TEACHER)
        result = apply(reconcile(TEACHER, {"c-2", "c-4", "c-5"}, actual), seeded)
        assert (result.added, result.removed, result.kept) == (2, 2, 1)
        assert sorted(item.class_id for item in teacher_links(seeded, TEACHER)) == ["c-2", "c-4", "c-5"]

    def test_fixed_point(self, seeded):
        desired = {"c-3", "c-9"}
        apply(reconcile(TEACHER, desired, teacher_links(seeded, TEACHER)), seeded)
        again = reconcile(TEACHER, desired, teacher_links(seeded, TEACHER))
        assert again.to_add == frozenset()
        assert again.to_remove == frozenset()
        assert len(again.to_keep) == 2

    def test_other_teachers_untouched(self, seeded):
        update_assignments(seeded, TEACHER, set())
        assert teacher_links(seeded, TEACHER) == []
        assert [item.class_id for item in teacher_links(seeded, "t-2")] == ["c-1"]

    def test_failure_rolls_back_everything(self, seeded):
        failing = FailingInsertStore(seeded.engine)
        before = teacher_links(seeded, TEACHER)
        plan = reconcile(TEACHER, {"c-4"}, before)
        assert plan.to_remove  # deletes run before the failing insert

        with pytest.raises(ReconciliationFailed) as excinfo:
            apply(plan, failing)

        assert isinstance(excinfo.value.__cause__, RuntimeError)
        assert teacher_links(seeded, TEACHER) == before

    def test_stale_plan_hitting_unique_constraint_rolls_back(self, seeded):
        plan = reconcile(TEACHER, {"c-1", "c-7"}, [])  # pretends nothing is linked yet
        with pytest.raises(ReconciliationFailed):
            apply(plan, seeded)
        assert [item.class_id for item in teacher_links(seeded, TEACHER)] == ["c-1", "c-2", "c-3"]


class TestSinglePairLinks:
    """Tests for link/unlink."""

    def test_link_creates_row(self, store):
        created = link(store, TEACHER, "c-1")
        assert created.teacher_id == TEACHER
        assert teacher_links(store, TEACHER) == [created]

    def test_duplicate_link_fails(self, seeded):
        with pytest.raises(DuplicateAssignment) as excinfo:
            link(seeded, TEACHER, "c-1")
        assert excinfo.value.class_id == "c-1"
        assert len(teacher_links(seeded, TEACHER)) == 3

    def test_unlink_removes_row(self, seeded):
        removed = unlink(seeded, TEACHER, "c-2")
        assert removed.class_id == "c-2"
        assert [item.class_id for item in teacher_links(seeded, TEACHER)] == ["c-1", "c-3"]

    def test_unlink_missing_fails(self, store):
        with pytest.raises(AssignmentNotFound):
            unlink(store, TEACHER, "c-404")

    def test_all_links_across_teachers(self, seeded):
        pairs = [(item.class_id, item.teacher_id) for item in all_links(seeded)]
        assert pairs == [("c-1", "t-1"), ("c-1", "t-2"), ("c-2", "t-1"), ("c-3", "t-1")]
        assert {item.teacher_id for item in all_links(seeded, "c-1")} == {"t-1", "t-2"}
        assert all_links(seeded, "c-404") == []
