"""
Plain data objects passed between the stores, the policy and the HTTP layer.

Rows come out of sqlite3 as ``sqlite3.Row``; each dataclass has a
``from_row`` constructor and a JSON-friendly ``to_dict``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Union

from errors import ValidationError

TEACHER = "teacher"
STUDENT = "student"
ROLES = (TEACHER, STUDENT)

PRIORITIES = ("HIGH", "MEDIUM", "LOW")
DEFAULT_PRIORITY = "MEDIUM"

PENDING = "pending"
IN_PROGRESS = "in_progress"
COMPLETED = "completed"
STATUSES = (PENDING, IN_PROGRESS, COMPLETED)
DEFAULT_STATUS = PENDING

MIN_SEMESTER = 1
MAX_SEMESTER = 8


def parse_semester(value) -> int:
    """Coerce a semester from a form/JSON value, rejecting anything outside 1-8."""
    try:
        semester = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Semester must be a number, got {value!r}.") from None
    if not MIN_SEMESTER <= semester <= MAX_SEMESTER:
        raise ValidationError(f"Semester must be between {MIN_SEMESTER} and {MAX_SEMESTER}.")
    return semester


def clean_text(value, name: str) -> str:
    """Strip a free-text field; None reads as blank, non-strings are rejected."""
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{name.capitalize()} must be text.")
    return value.strip()


def parse_due_date(value) -> str:
    """Validate a YYYY-MM-DD due date and return it in ISO form."""
    if isinstance(value, date):
        return value.isoformat()
    text = (value or "").strip() if isinstance(value, str) else ""
    if not text:
        raise ValidationError("Due date is required.")
    try:
        return date.fromisoformat(text).isoformat()
    except ValueError:
        raise ValidationError("Due date must be in YYYY-MM-DD format.") from None


def normalize_status(value: Optional[str]) -> Optional[str]:
    """Map display forms like 'In Progress' to stored values; 'All'/blank -> None."""
    text = clean_text(value, "status").lower().replace(" ", "_")
    if not text or text == "all":
        return None
    if text not in STATUSES:
        raise ValidationError(f"Unknown status: {value!r}.")
    return text


def normalize_priority(value: Optional[str]) -> str:
    text = clean_text(value, "priority").upper()
    if not text:
        return DEFAULT_PRIORITY
    if text not in PRIORITIES:
        raise ValidationError(f"Unknown priority: {value!r}.")
    return text


@dataclass
class Requester:
    """The authenticated user an operation runs on behalf of."""

    email: str
    role: str  # "teacher" | "student"
    branch_code: Optional[str] = None
    semester: Optional[int] = None

    @property
    def is_teacher(self) -> bool:
        return self.role == TEACHER

    @property
    def is_student(self) -> bool:
        return self.role == STUDENT

    @staticmethod
    def from_row(row) -> Requester:
        return Requester(
            email=row["email"],
            role=row["role"],
            branch_code=row["branch_code"],
            semester=row["current_semester"],
        )

    def to_dict(self) -> dict:
        return {
            "email": self.email,
            "role": self.role,
            "branch_code": self.branch_code,
            "semester": self.semester,
        }


@dataclass
class Branch:
    branch_code: str
    branch_name: str
    is_active: bool = True


@dataclass
class StudyGroup:
    group_code: str
    group_name: str
    is_active: bool = True


@dataclass
class Subject:
    id: int
    name: str
    course_code: str
    branch_code: str
    semester: int
    group_code: str
    created_by: str = ""

    @staticmethod
    def from_row(row) -> Subject:
        return Subject(
            id=row["id"],
            name=row["name"],
            course_code=row["course_code"],
            branch_code=row["branch_code"],
            semester=row["semester"],
            group_code=row["group_code"],
            created_by=row["created_by"],
        )


@dataclass
class FileRecord:
    """A file row joined with its subject, branch and group (no content)."""

    id: int
    file_tag_id: str
    filename: str
    subject_id: int
    subject_name: str
    course_code: str
    branch_code: str
    branch_name: str
    semester: int
    group_code: str
    group_name: str
    uploaded_by: str
    upload_time: str

    @staticmethod
    def from_row(row) -> FileRecord:
        return FileRecord(
            id=row["id"],
            file_tag_id=row["file_tag_id"],
            filename=row["filename"],
            subject_id=row["subject_id"],
            subject_name=row["subject_name"],
            course_code=row["course_code"],
            branch_code=row["branch_code"],
            branch_name=row["branch_name"],
            semester=row["semester"],
            group_code=row["group_code"],
            group_name=row["group_name"],
            uploaded_by=row["uploaded_by"],
            upload_time=row["upload_time"],
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "file_tag_id": self.file_tag_id,
            "filename": self.filename,
            "subject_id": self.subject_id,
            "subject_name": self.subject_name,
            "course_code": self.course_code,
            "branch_code": self.branch_code,
            "branch_name": self.branch_name,
            "semester": self.semester,
            "group_name": self.group_name,
            "uploaded_by": self.uploaded_by,
            "upload_time": self.upload_time,
        }


# ── Task assignment ──────────────────────────────────────────────────


@dataclass(frozen=True)
class Individual:
    """Task assigned to a single user by email."""

    email: str
    kind: str = field(default="individual", init=False)


@dataclass(frozen=True)
class Cohort:
    """Task assigned to every student of a branch + semester."""

    branch_code: str
    semester: int
    kind: str = field(default="cohort", init=False)


Assignment = Union[Individual, Cohort]


def assignment_from_row(row) -> Assignment:
    if row["assignment_kind"] == "individual":
        return Individual(row["assigned_to"])
    return Cohort(row["branch_code"], row["semester"])


def assignment_to_dict(assignment: Assignment) -> dict:
    if isinstance(assignment, Individual):
        return {"kind": "individual", "assigned_to": assignment.email}
    return {"kind": "cohort", "branch_code": assignment.branch_code, "semester": assignment.semester}


@dataclass
class Task:
    id: int
    title: str
    description: str
    priority: str  # HIGH | MEDIUM | LOW
    status: str  # pending | in_progress | completed
    created_by: str
    assignment: Assignment
    due_date: str  # ISO date
    created_at: str = ""
    completed_at: Optional[str] = None
    creator_role: Optional[str] = None

    @staticmethod
    def from_row(row) -> Task:
        keys = row.keys()
        return Task(
            id=row["id"],
            title=row["title"],
            description=row["description"],
            priority=row["priority"],
            status=row["status"],
            created_by=row["created_by"],
            assignment=assignment_from_row(row),
            due_date=row["due_date"],
            created_at=row["created_at"],
            completed_at=row["completed_at"],
            creator_role=row["creator_role"] if "creator_role" in keys else None,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "status": self.status,
            "created_by": self.created_by,
            "assignment": assignment_to_dict(self.assignment),
            "due_date": self.due_date,
            "created_at": self.created_at,
            "completed_at": self.completed_at,
        }
