"""Tests for task_store.py — create, visibility, update/delete rules, search, filters."""

import pytest

from errors import AuthorizationError, NotFoundError, ValidationError
from models import Cohort, Individual
from task_store import TaskStoreDB


def _create(requester, title="Lab record", assignment=None, **kwargs):
    kwargs.setdefault("description", "Experiments 1-4")
    kwargs.setdefault("due_date", "2026-11-10")
    return TaskStoreDB(requester).create(title=title, assignment=assignment, **kwargs)


class TestCreate:
    def test_teacher_cohort_task(self, db, teacher):
        task = _create(teacher, assignment=Cohort("CSE", "3"), priority="high")
        assert task.assignment == Cohort("CSE", 3)
        assert task.priority == "HIGH"
        assert task.status == "pending"
        assert task.created_by == teacher.email
        assert task.creator_role == "teacher"
        assert task.completed_at is None

    def test_teacher_individual_task(self, db, teacher, student):
        task = _create(teacher, assignment=Individual(student.email))
        assert task.assignment == Individual(student.email)

    def test_teacher_must_choose_assignment(self, db, teacher):
        with pytest.raises(ValidationError):
            _create(teacher)

    def test_teacher_unknown_branch(self, db, teacher):
        with pytest.raises(ValidationError, match="Unknown branch"):
            _create(teacher, assignment=Cohort("XYZ", 3))

    def test_teacher_individual_must_be_student(self, db, teacher, other_teacher):
        with pytest.raises(ValidationError, match="select an assignee"):
            _create(teacher, assignment=Individual(other_teacher.email))
        with pytest.raises(ValidationError):
            _create(teacher, assignment=Individual("ghost@mgits.ac.in"))

    def test_student_task_uses_own_cohort(self, db, student):
        task = _create(student)
        assert task.assignment == Cohort("CSE", 3)
        assert task.creator_role == "student"

    def test_student_may_name_themselves(self, db, student):
        task = _create(student, assignment=Individual(student.email))
        assert task.assignment == Cohort("CSE", 3)

    def test_student_cannot_assign_others(self, db, student, peer):
        with pytest.raises(AuthorizationError):
            _create(student, assignment=Individual(peer.email))
        with pytest.raises(AuthorizationError):
            _create(student, assignment=Cohort("ECE", 3))

    def test_required_fields(self, db, student):
        with pytest.raises(ValidationError, match="Please fill all fields"):
            _create(student, title="  ")
        with pytest.raises(ValidationError):
            _create(student, description="")

    def test_bad_due_date(self, db, student):
        with pytest.raises(ValidationError, match="YYYY-MM-DD"):
            _create(student, due_date="10/11/2026")

    def test_bad_priority(self, db, student):
        with pytest.raises(ValidationError):
            _create(student, priority="urgent")

    def test_student_names_own_cohort_with_text_semester(self, db, student):
        task = _create(student, assignment=Cohort("CSE", "3"))
        assert task.assignment == Cohort("CSE", 3)

    def test_non_text_fields_rejected(self, db, student):
        with pytest.raises(ValidationError, match="Title must be text"):
            _create(student, title=5)
        with pytest.raises(ValidationError, match="Description must be text"):
            _create(student, description=["a"])
        with pytest.raises(ValidationError, match="Priority must be text"):
            _create(student, priority=1)
        with pytest.raises(ValidationError, match="Status must be text"):
            _create(student, status={"done": True})
        assert TaskStoreDB(student).list() == []

    def test_created_completed(self, db, student):
        task = _create(student, status="Completed")
        assert task.status == "completed"
        assert task.completed_at is not None


class TestVisibility:
    def test_cohort_task_reaches_matching_students_only(self, db, teacher, other_teacher,
                                                        student, peer, ece_student):
        task = _create(teacher, assignment=Cohort("CSE", 3))

        assert [t.id for t in TaskStoreDB(student).list()] == [task.id]
        assert [t.id for t in TaskStoreDB(peer).list()] == [task.id]
        assert TaskStoreDB(ece_student).list() == []
        assert TaskStoreDB(other_teacher).list() == []
        assert [t.id for t in TaskStoreDB(teacher).list()] == [task.id]

    def test_individual_task(self, db, teacher, student, peer):
        task = _create(teacher, assignment=Individual(student.email))
        assert [t.id for t in TaskStoreDB(student).list()] == [task.id]
        assert TaskStoreDB(peer).list() == []

    def test_student_tasks_are_private(self, db, student, peer):
        _create(student)
        assert TaskStoreDB(peer).list() == []

    def test_get_enforces_visibility(self, db, teacher, ece_student):
        task = _create(teacher, assignment=Cohort("CSE", 3))
        with pytest.raises(AuthorizationError):
            TaskStoreDB(ece_student).get(task.id)

    def test_get_missing(self, db, teacher):
        with pytest.raises(NotFoundError):
            TaskStoreDB(teacher).get(999)

    def test_newest_first(self, db, student):
        first = _create(student, title="First")
        second = _create(student, title="Second")
        assert [t.id for t in TaskStoreDB(student).list()] == [second.id, first.id]


class TestFilters:
    def test_status_filter(self, db, student):
        pending = _create(student, title="A")
        done = _create(student, title="B", status="completed")
        store = TaskStoreDB(student)
        assert [t.id for t in store.list(status="Pending")] == [pending.id]
        assert [t.id for t in store.list(status="completed")] == [done.id]
        assert len(store.list(status="All")) == 2

    def test_unknown_status(self, db, student):
        with pytest.raises(ValidationError):
            TaskStoreDB(student).list(status="archived")

    def test_teacher_branch_and_semester_filter(self, db, teacher):
        cse = _create(teacher, assignment=Cohort("CSE", 3))
        ece = _create(teacher, assignment=Cohort("ECE", 5))
        store = TaskStoreDB(teacher)
        assert [t.id for t in store.list(branch_code="CSE")] == [cse.id]
        assert [t.id for t in store.list(semester="5")] == [ece.id]
        assert store.list(branch_code="CSE", semester=5) == []

    def test_student_filters_ignored(self, db, teacher, student):
        task = _create(teacher, assignment=Cohort("CSE", 3))
        assert [t.id for t in TaskStoreDB(student).list(branch_code="ECE", semester=7)] == [task.id]


class TestSearch:
    def test_matches_title_and_description(self, db, student):
        lab = _create(student, title="Lab record", description="Physics")
        essay = _create(student, title="Essay", description="Write about LAB safety")
        _create(student, title="Quiz", description="Chapter 2")
        ids = {t.id for t in TaskStoreDB(student).search("lab")}
        assert ids == {lab.id, essay.id}

    def test_matches_priority_and_status(self, db, student):
        high = _create(student, title="A", priority="HIGH")
        _create(student, title="B", priority="LOW")
        done = _create(student, title="C", status="completed")
        store = TaskStoreDB(student)
        assert [t.id for t in store.search("high")] == [high.id]
        assert [t.id for t in store.search("complet")] == [done.id]

    def test_wildcards_are_literal(self, db, student):
        pct = _create(student, title="Score 100% on quiz")
        _create(student, title="Score 1000 points")
        assert [t.id for t in TaskStoreDB(student).search("100%")] == [pct.id]

    def test_search_respects_visibility(self, db, teacher, ece_student):
        _create(teacher, title="Lab record", assignment=Cohort("CSE", 3))
        assert TaskStoreDB(ece_student).search("lab") == []

    def test_search_with_status(self, db, student):
        _create(student, title="Lab one")
        done = _create(student, title="Lab two", status="completed")
        assert [t.id for t in TaskStoreDB(student).search("lab", status="completed")] == [done.id]

    def test_blank_keyword_lists_all(self, db, student):
        _create(student, title="A")
        _create(student, title="B")
        assert len(TaskStoreDB(student).search("  ")) == 2


class TestUpdate:
    def test_student_updates_own(self, db, student):
        task = _create(student)
        updated = TaskStoreDB(student).update(task.id, title="New title", status="In Progress")
        assert updated.title == "New title"
        assert updated.status == "in_progress"
        assert updated.description == task.description

    def test_student_cannot_update_assigned(self, db, teacher, student):
        task = _create(teacher, assignment=Cohort("CSE", 3))
        with pytest.raises(AuthorizationError):
            TaskStoreDB(student).update(task.id, title="Hacked")

    def test_teacher_can_update_any(self, db, other_teacher, student):
        task = _create(student)
        updated = TaskStoreDB(other_teacher).update(task.id, priority="low")
        assert updated.priority == "LOW"

    def test_completed_at_tracks_status(self, db, student):
        task = _create(student)
        store = TaskStoreDB(student)
        done = store.update(task.id, status="completed")
        assert done.completed_at is not None
        reopened = store.update(task.id, status="pending")
        assert reopened.completed_at is None

    def test_teacher_reassigns(self, db, teacher, student):
        task = _create(teacher, assignment=Cohort("CSE", 3))
        updated = TaskStoreDB(teacher).update(task.id, assignment=Individual(student.email))
        assert updated.assignment == Individual(student.email)

    def test_student_cannot_reassign(self, db, student, peer):
        task = _create(student)
        with pytest.raises(AuthorizationError):
            TaskStoreDB(student).update(task.id, assignment=Individual(peer.email))

    def test_student_may_echo_current_assignment(self, db, student):
        task = _create(student)
        updated = TaskStoreDB(student).update(
            task.id, status="completed", assignment=Cohort("CSE", "3"),
        )
        assert updated.status == "completed"
        assert updated.assignment == Cohort("CSE", 3)

    def test_update_rejects_non_text(self, db, student):
        task = _create(student)
        with pytest.raises(ValidationError):
            TaskStoreDB(student).update(task.id, title=42)

    def test_unknown_field(self, db, student):
        task = _create(student)
        with pytest.raises(ValidationError):
            TaskStoreDB(student).update(task.id, created_by="someone")

    def test_empty_title(self, db, student):
        task = _create(student)
        with pytest.raises(ValidationError):
            TaskStoreDB(student).update(task.id, title="  ")


class TestDeleteAndComplete:
    def test_teacher_deletes(self, db, teacher, student):
        task = _create(student)
        TaskStoreDB(teacher).delete(task.id)
        with pytest.raises(NotFoundError):
            TaskStoreDB(student).get(task.id)

    def test_student_cannot_delete_own(self, db, student):
        task = _create(student)
        with pytest.raises(AuthorizationError):
            TaskStoreDB(student).delete(task.id)

    def test_delete_missing(self, db, teacher):
        with pytest.raises(NotFoundError):
            TaskStoreDB(teacher).delete(999)

    def test_mark_complete(self, db, teacher, student):
        task = _create(teacher, assignment=Cohort("CSE", 3))
        done = TaskStoreDB(student).mark_complete(task.id)
        assert done.status == "completed"
        assert done.completed_at is not None

    def test_mark_complete_has_no_ownership_check(self, db, teacher, ece_student):
        task = _create(teacher, assignment=Cohort("CSE", 3))
        assert TaskStoreDB(ece_student).mark_complete(task.id).status == "completed"

    def test_mark_complete_missing(self, db, student):
        with pytest.raises(NotFoundError):
            TaskStoreDB(student).mark_complete(999)


class TestDueBetweenAndAssignees:
    def test_due_between_inclusive(self, db, student):
        a = _create(student, title="A", due_date="2026-11-01")
        b = _create(student, title="B", due_date="2026-11-30")
        _create(student, title="C", due_date="2026-12-01")
        tasks = TaskStoreDB(student).due_between("2026-11-01", "2026-11-30")
        assert [t.id for t in tasks] == [a.id, b.id]

    def test_teacher_assignees_are_students(self, db, teacher):
        users = TaskStoreDB(teacher).assignable_users()
        assert users == ["23cs001@mgits.ac.in", "23cs002@mgits.ac.in", "23ec001@mgits.ac.in"]

    def test_student_assigns_only_self(self, db, student):
        assert TaskStoreDB(student).assignable_users() == [student.email]
