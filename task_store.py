"""
Task repository.

Every query is scoped by the requester: teachers work with the tasks they
created, students with their own tasks plus whatever has been assigned to
them individually or to their cohort by a teacher.
"""

from __future__ import annotations

import logging
from typing import Optional

from database import get_db, now_iso, translate_errors
from errors import AuthorizationError, NotFoundError, ValidationError
from models import (
    COMPLETED,
    DEFAULT_STATUS,
    Assignment,
    Cohort,
    Individual,
    Requester,
    STUDENT,
    Task,
    clean_text,
    normalize_priority,
    normalize_status,
    parse_due_date,
    parse_semester,
)
from policy import can_delete_task, can_edit_task, can_view_task
from reference_store import ReferenceStoreDB

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = {"title", "description", "priority", "status", "due_date", "assignment"}

_SELECT_TASKS = (
    "SELECT t.*, u.role AS creator_role FROM tasks t "
    "LEFT JOIN users u ON u.email = t.created_by "
)


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _assignment_columns(assignment: Assignment) -> tuple:
    """(assignment_kind, assigned_to, branch_code, semester) for storage."""
    if isinstance(assignment, Individual):
        return ("individual", assignment.email, None, None)
    return ("cohort", None, assignment.branch_code, assignment.semester)


def _normalize_assignment(assignment: Optional[Assignment]) -> Optional[Assignment]:
    """Coerce a cohort semester sent as text so it compares equal to a stored one."""
    if isinstance(assignment, Cohort) and assignment.semester not in (None, ""):
        return Cohort(assignment.branch_code, parse_semester(assignment.semester))
    return assignment


class TaskStoreDB:
    """DB-backed task store, scoped to the requesting user."""

    def __init__(self, requester: Requester):
        self.requester = requester

    # ── Visibility ──

    def _visibility(self) -> tuple[list[str], list]:
        """WHERE fragments and params equivalent to policy.can_view_task."""
        me = self.requester
        if me.is_teacher:
            return ["t.created_by = ?"], [me.email]
        return [
            "(t.created_by = ? "
            "OR (t.assignment_kind = 'individual' AND t.assigned_to = ?) "
            "OR (t.assignment_kind = 'cohort' AND t.branch_code = ? AND t.semester = ? "
            "AND u.role = 'teacher'))"
        ], [me.email, me.email, me.branch_code, me.semester]

    def _query(self, where: list[str], params: list) -> list[Task]:
        db = get_db()
        sql = _SELECT_TASKS + "WHERE " + " AND ".join(where) + " ORDER BY t.created_at DESC, t.id DESC"
        return [Task.from_row(r) for r in db.execute(sql, params).fetchall()]

    def _fetch(self, task_id: int) -> Task:
        db = get_db()
        row = db.execute(_SELECT_TASKS + "WHERE t.id = ?", (task_id,)).fetchone()
        if not row:
            raise NotFoundError("Task not found.")
        return Task.from_row(row)

    # ── Assignment checks ──

    def _check_assignment(self, assignment: Optional[Assignment]) -> Assignment:
        if self.requester.is_teacher:
            if assignment is None:
                raise ValidationError("Choose a branch and semester for the task.")
            if isinstance(assignment, Cohort):
                if not assignment.branch_code:
                    raise ValidationError("Branch is required for a cohort task.")
                branch = ReferenceStoreDB.branch(assignment.branch_code)
                if branch is None:
                    raise ValidationError(f"Unknown branch: {assignment.branch_code}")
                return Cohort(assignment.branch_code, parse_semester(assignment.semester))
            if isinstance(assignment, Individual):
                user = ReferenceStoreDB.user(assignment.email)
                if user is None or user.role != STUDENT:
                    raise ValidationError("Please select an assignee")
                return assignment
            raise ValidationError("Unknown assignment.")

        # Students file tasks against themselves only.
        assignment = _normalize_assignment(assignment)
        own = Cohort(self.requester.branch_code, self.requester.semester)
        if assignment is None or assignment == own or assignment == Individual(self.requester.email):
            if own.branch_code is None or own.semester is None:
                raise ValidationError("Your account has no branch or semester.")
            return own
        raise AuthorizationError("Students can only create tasks for themselves.")

    # ── Operations ──

    @translate_errors
    def create(self, title: str, description: str, due_date, priority: str | None = None,
               status: str | None = None, assignment: Optional[Assignment] = None) -> Task:
        title = clean_text(title, "title")
        description = clean_text(description, "description")
        if not title or not description:
            raise ValidationError("Please fill all fields")
        due = parse_due_date(due_date)
        priority = normalize_priority(priority)
        status = normalize_status(status) or DEFAULT_STATUS
        assignment = self._check_assignment(assignment)

        now = now_iso()
        kind, assigned_to, branch_code, semester = _assignment_columns(assignment)
        db = get_db()
        cur = db.execute(
            "INSERT INTO tasks (title, description, priority, status, created_by, assignment_kind, "
            "assigned_to, branch_code, semester, due_date, created_at, completed_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (title, description, priority, status, self.requester.email, kind,
             assigned_to, branch_code, semester, due, now, now if status == COMPLETED else None),
        )
        db.commit()
        logger.info("Task %s created by %s (%s)", cur.lastrowid, self.requester.email, kind)
        return self._fetch(cur.lastrowid)

    @translate_errors
    def get(self, task_id: int) -> Task:
        task = self._fetch(task_id)
        if not can_view_task(self.requester, task):
            raise AuthorizationError("You cannot view this task.")
        return task

    @translate_errors
    def update(self, task_id: int, **fields) -> Task:
        """Change any of EDITABLE_FIELDS; fields passed as None are left alone."""
        task = self._fetch(task_id)
        if not can_edit_task(self.requester, task):
            raise AuthorizationError("You can only edit tasks you created.")
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update: {', '.join(sorted(unknown))}")

        sets: list[str] = []
        vals: list = []
        for name in ("title", "description"):
            if fields.get(name) is not None:
                value = clean_text(fields[name], name)
                if not value:
                    raise ValidationError(f"{name.capitalize()} cannot be empty")
                sets.append(f"{name}=?")
                vals.append(value)
        if fields.get("priority") is not None:
            sets.append("priority=?")
            vals.append(normalize_priority(fields["priority"]))
        if fields.get("due_date") is not None:
            sets.append("due_date=?")
            vals.append(parse_due_date(fields["due_date"]))
        if fields.get("status") is not None:
            status = normalize_status(fields["status"])
            if status is None:
                raise ValidationError("Status cannot be 'All'")
            sets.append("status=?")
            vals.append(status)
            if status != COMPLETED:
                sets.append("completed_at=NULL")
            elif task.status != COMPLETED:
                sets.append("completed_at=?")
                vals.append(now_iso())
        new_assignment = _normalize_assignment(fields.get("assignment"))
        if new_assignment is not None and new_assignment != task.assignment:
            if not self.requester.is_teacher:
                raise AuthorizationError("Only teachers can reassign tasks.")
            assignment = self._check_assignment(new_assignment)
            kind, assigned_to, branch_code, semester = _assignment_columns(assignment)
            sets.extend(["assignment_kind=?", "assigned_to=?", "branch_code=?", "semester=?"])
            vals.extend([kind, assigned_to, branch_code, semester])

        if sets:
            vals.append(task_id)
            db = get_db()
            db.execute(f"UPDATE tasks SET {', '.join(sets)} WHERE id=?", vals)
            db.commit()
        return self._fetch(task_id)

    @translate_errors
    def delete(self, task_id: int) -> None:
        task = self._fetch(task_id)
        if not can_delete_task(self.requester, task):
            raise AuthorizationError("Only teachers can delete tasks.")
        db = get_db()
        db.execute("DELETE FROM tasks WHERE id=?", (task_id,))
        db.commit()

    @translate_errors
    def mark_complete(self, task_id: int) -> Task:
        # No ownership check: anyone holding the id can complete the task.
        db = get_db()
        cur = db.execute(
            "UPDATE tasks SET status='completed', completed_at=? WHERE id=?",
            (now_iso(), task_id),
        )
        db.commit()
        if cur.rowcount == 0:
            raise NotFoundError("Task not found.")
        return self._fetch(task_id)

    @translate_errors
    def list(self, status: str | None = None, branch_code: str | None = None,
             semester=None) -> list[Task]:
        """Visible tasks, newest first.

        ``branch_code``/``semester`` narrow a teacher's list; students are
        always scoped to their own cohort and those filters are ignored.
        """
        where, params = self._visibility()
        status = normalize_status(status)
        if status:
            where.append("t.status = ?")
            params.append(status)
        if self.requester.is_teacher:
            if branch_code:
                where.append("t.branch_code = ?")
                params.append(branch_code)
            if semester not in (None, ""):
                where.append("t.semester = ?")
                params.append(parse_semester(semester))
        return self._query(where, params)

    @translate_errors
    def search(self, keyword: str, status: str | None = None) -> list[Task]:
        """Visible tasks whose title, description, priority or status contains ``keyword``."""
        keyword = (keyword or "").strip().lower()
        if not keyword:
            return self.list(status=status)

        where, params = self._visibility()
        pattern = f"%{_escape_like(keyword)}%"
        where.append(
            "(LOWER(t.title) LIKE ? ESCAPE '\\' OR LOWER(t.description) LIKE ? ESCAPE '\\' "
            "OR LOWER(t.priority) LIKE ? ESCAPE '\\' OR LOWER(t.status) LIKE ? ESCAPE '\\')"
        )
        params.extend([pattern] * 4)
        status = normalize_status(status)
        if status:
            where.append("t.status = ?")
            params.append(status)
        return self._query(where, params)

    @translate_errors
    def due_between(self, start: str, end: str) -> list[Task]:
        """Visible tasks with start <= due_date <= end (ISO dates)."""
        where, params = self._visibility()
        where.append("t.due_date BETWEEN ? AND ?")
        params.extend([start, end])
        tasks = self._query(where, params)
        return sorted(tasks, key=lambda t: (t.due_date, t.id))

    @translate_errors
    def assignable_users(self) -> list[str]:
        if self.requester.is_teacher:
            return ReferenceStoreDB.students()
        return [self.requester.email]
