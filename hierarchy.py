"""
Group -> Semester (Branch) -> Subject -> files tree for the material browser.

Built from the flat, ordered rows returned by FileStoreDB.list_visible().
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from models import FileRecord


@dataclass
class SubjectNode:
    subject_id: int
    name: str
    course_code: str
    files: list[FileRecord] = field(default_factory=list)


@dataclass
class SemesterNode:
    semester: int
    branch_name: str
    subjects: list[SubjectNode] = field(default_factory=list)

    @property
    def label(self) -> str:
        return f"Semester {self.semester} ({self.branch_name})"


@dataclass
class GroupNode:
    group_name: str
    semesters: list[SemesterNode] = field(default_factory=list)


def build_tree(files: Iterable[FileRecord]) -> list[GroupNode]:
    """Nest files under group, semester+branch and subject.

    Nodes are created the first time their key is seen, so the tree keeps
    the input ordering and a subject shared by many files appears once.
    """
    roots: list[GroupNode] = []
    groups: dict[str, GroupNode] = {}
    semesters: dict[tuple, SemesterNode] = {}
    subjects: dict[tuple, SubjectNode] = {}

    for f in files:
        group_key = f.group_name
        group = groups.get(group_key)
        if group is None:
            group = groups[group_key] = GroupNode(f.group_name)
            roots.append(group)

        semester_key = (group_key, f.semester, f.branch_name)
        semester = semesters.get(semester_key)
        if semester is None:
            semester = semesters[semester_key] = SemesterNode(f.semester, f.branch_name)
            group.semesters.append(semester)

        subject_key = semester_key + (f.subject_id,)
        subject = subjects.get(subject_key)
        if subject is None:
            subject = subjects[subject_key] = SubjectNode(f.subject_id, f.subject_name, f.course_code)
            semester.subjects.append(subject)

        subject.files.append(f)

    return roots


def tree_to_dict(tree: list[GroupNode]) -> list[dict]:
    return [
        {
            "group": g.group_name,
            "semesters": [
                {
                    "label": s.label,
                    "semester": s.semester,
                    "branch_name": s.branch_name,
                    "subjects": [
                        {
                            "subject_id": sub.subject_id,
                            "name": sub.name,
                            "course_code": sub.course_code,
                            "files": [f.to_dict() for f in sub.files],
                        }
                        for sub in s.subjects
                    ],
                }
                for s in g.semesters
            ],
        }
        for g in tree
    ]
