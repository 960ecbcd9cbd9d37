"""Branches, study groups, subjects and users: the lookups behind the material browser."""

from __future__ import annotations

from typing import Optional

from database import get_db, translate_errors
from models import Branch, StudyGroup, Subject, Requester, parse_semester


class ReferenceStoreDB:
    """Read-only access to reference data and the subject catalogue."""

    @staticmethod
    @translate_errors
    def active_branches() -> list[Branch]:
        db = get_db()
        rows = db.execute(
            "SELECT branch_code, branch_name, is_active FROM branches "
            "WHERE is_active = 1 ORDER BY branch_name"
        ).fetchall()
        return [Branch(r["branch_code"], r["branch_name"], bool(r["is_active"])) for r in rows]

    @staticmethod
    @translate_errors
    def active_groups() -> list[StudyGroup]:
        db = get_db()
        rows = db.execute(
            "SELECT group_code, group_name, is_active FROM study_groups "
            "WHERE is_active = 1 ORDER BY group_name"
        ).fetchall()
        return [StudyGroup(r["group_code"], r["group_name"], bool(r["is_active"])) for r in rows]

    @staticmethod
    @translate_errors
    def groups_for_branch(branch_code: str) -> list[StudyGroup]:
        """Active groups that have at least one subject in the branch."""
        db = get_db()
        rows = db.execute(
            "SELECT DISTINCT g.group_code, g.group_name, g.is_active "
            "FROM study_groups g JOIN subjects s ON s.group_code = g.group_code "
            "WHERE s.branch_code = ? AND g.is_active = 1 "
            "ORDER BY g.group_name",
            (branch_code,),
        ).fetchall()
        return [StudyGroup(r["group_code"], r["group_name"], bool(r["is_active"])) for r in rows]

    @staticmethod
    @translate_errors
    def subjects_for(branch_code: str, group_code: str, semester) -> list[Subject]:
        semester = parse_semester(semester)
        db = get_db()
        rows = db.execute(
            "SELECT * FROM subjects WHERE branch_code = ? AND group_code = ? AND semester = ? "
            "ORDER BY name",
            (branch_code, group_code, semester),
        ).fetchall()
        return [Subject.from_row(r) for r in rows]

    @staticmethod
    @translate_errors
    def branch(branch_code: str) -> Optional[Branch]:
        db = get_db()
        row = db.execute(
            "SELECT branch_code, branch_name, is_active FROM branches WHERE branch_code = ?",
            (branch_code,),
        ).fetchone()
        if not row:
            return None
        return Branch(row["branch_code"], row["branch_name"], bool(row["is_active"]))

    @staticmethod
    def branch_code_for(branch_name: str, db=None) -> Optional[str]:
        db = db or get_db()
        row = db.execute(
            "SELECT branch_code FROM branches WHERE branch_name = ?", (branch_name,),
        ).fetchone()
        return row["branch_code"] if row else None

    @staticmethod
    def group_code_for(group_name: str, db=None) -> Optional[str]:
        db = db or get_db()
        row = db.execute(
            "SELECT group_code FROM study_groups WHERE group_name = ?", (group_name,),
        ).fetchone()
        return row["group_code"] if row else None

    # ── Users ──

    @staticmethod
    @translate_errors
    def user(email: str) -> Optional[Requester]:
        db = get_db()
        row = db.execute(
            "SELECT email, role, branch_code, current_semester FROM users WHERE email = ?",
            (email,),
        ).fetchone()
        return Requester.from_row(row) if row else None

    @staticmethod
    @translate_errors
    def students() -> list[str]:
        db = get_db()
        rows = db.execute(
            "SELECT email FROM users WHERE role = 'student' ORDER BY email"
        ).fetchall()
        return [r["email"] for r in rows]
