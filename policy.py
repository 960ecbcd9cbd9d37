"""
Authorization policy for study material and tasks.

Pure predicates over a Requester and the row being touched. The stores call
these before reading or writing, so every caller gets the same rules.
"""

from __future__ import annotations

from models import Cohort, Individual, Requester, Task, TEACHER


def can_view_file(user: Requester) -> bool:
    # All study material is visible to every authenticated user.
    return user is not None


def can_delete_file(user: Requester) -> bool:
    return user.role == TEACHER


def can_view_task(user: Requester, task: Task) -> bool:
    if task.created_by == user.email:
        return True
    if user.role == TEACHER:
        return False

    assignment = task.assignment
    if isinstance(assignment, Individual):
        return assignment.email == user.email
    if isinstance(assignment, Cohort):
        return (
            task.creator_role == TEACHER
            and assignment.branch_code == user.branch_code
            and assignment.semester == user.semester
        )
    return False


def can_edit_task(user: Requester, task: Task) -> bool:
    return user.role == TEACHER or task.created_by == user.email


def can_delete_task(user: Requester, task: Task) -> bool:
    return user.role == TEACHER
