"""
Seed data for a fresh StudySync database.

Inserts the branch and study-group reference data every install needs and,
optionally, a demo teacher and two demo students.

Usage:
    python seed_demo_data.py           # Reference data only
    python seed_demo_data.py --demo    # Reference data + demo accounts
    python seed_demo_data.py --reset   # Clear demo accounts first
"""

from __future__ import annotations

import sys
from datetime import datetime

from werkzeug.security import generate_password_hash


BRANCHES = [
    ("CSE", "Computer Science and Engineering"),
    ("ECE", "Electronics and Communication Engineering"),
    ("EEE", "Electrical and Electronics Engineering"),
    ("ME", "Mechanical Engineering"),
    ("CE", "Civil Engineering"),
]

STUDY_GROUPS = [
    ("CORE", "Core Subjects"),
    ("ELEC", "Electives"),
    ("LAB", "Laboratory"),
]

DEMO_PASSWORD = "demo123"

DEMO_TEACHER = {"email": "anitha@mgits.ac.in"}

DEMO_STUDENTS = [
    {"email": "23cs001@mgits.ac.in", "branch_code": "CSE", "semester": 3},
    {"email": "23ec001@mgits.ac.in", "branch_code": "ECE", "semester": 3},
]


def seed_reference(db) -> dict:
    """Insert branches and study groups; existing rows are left alone."""
    for code, name in BRANCHES:
        db.execute(
            "INSERT OR IGNORE INTO branches (branch_code, branch_name, is_active) VALUES (?, ?, 1)",
            (code, name),
        )
    for code, name in STUDY_GROUPS:
        db.execute(
            "INSERT OR IGNORE INTO study_groups (group_code, group_name, is_active) VALUES (?, ?, 1)",
            (code, name),
        )
    db.commit()
    return {"branches": len(BRANCHES), "study_groups": len(STUDY_GROUPS)}


def seed_demo_users(db) -> dict:
    """Create the demo teacher and students."""
    now = datetime.now().isoformat()
    password = generate_password_hash(DEMO_PASSWORD)

    db.execute(
        "INSERT OR IGNORE INTO users (email, password_hash, role, created_at) "
        "VALUES (?, ?, 'teacher', ?)",
        (DEMO_TEACHER["email"], password, now),
    )
    for student in DEMO_STUDENTS:
        db.execute(
            "INSERT OR IGNORE INTO users (email, password_hash, role, branch_code, "
            "current_semester, created_at) VALUES (?, ?, 'student', ?, ?, ?)",
            (student["email"], password, student["branch_code"], student["semester"], now),
        )
    db.commit()
    return {"teacher": DEMO_TEACHER["email"], "students": [s["email"] for s in DEMO_STUDENTS]}


def clear_demo(db) -> None:
    """Remove the demo accounts and anything they created."""
    emails = [DEMO_TEACHER["email"]] + [s["email"] for s in DEMO_STUDENTS]
    placeholders = ",".join("?" * len(emails))
    db.execute(f"DELETE FROM tasks WHERE created_by IN ({placeholders})", emails)
    db.execute(f"DELETE FROM users WHERE email IN ({placeholders})", emails)
    db.commit()


if __name__ == "__main__":
    from app import create_app
    from database import get_db, init_db, run_migrations

    app = create_app()
    with app.app_context():
        init_db()
        run_migrations()
        db = get_db()
        if "--reset" in sys.argv:
            clear_demo(db)
            print("[Seed] Demo accounts cleared.")
        result = seed_reference(db)
        if "--demo" in sys.argv:
            result.update(seed_demo_users(db))
        print(f"[Seed] Done: {result}")
