"""
SQLite database layer for StudySync.

Uses raw sqlite3 with WAL mode and parameterized queries.
A schema_version table handles migrations.
"""

from __future__ import annotations

import fcntl
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from functools import wraps
from pathlib import Path
from typing import Iterator

from flask import current_app, g

from errors import DatabaseError, StudySyncError

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path(__file__).parent / "studysync.db"


SCHEMA = """
-- Migration tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL,
    applied_at TEXT NOT NULL
);

-- Reference data
CREATE TABLE IF NOT EXISTS branches (
    branch_code TEXT PRIMARY KEY,
    branch_name TEXT NOT NULL UNIQUE,
    is_active INTEGER NOT NULL DEFAULT 1
);

CREATE TABLE IF NOT EXISTS study_groups (
    group_code TEXT PRIMARY KEY,
    group_name TEXT NOT NULL UNIQUE,
    is_active INTEGER NOT NULL DEFAULT 1
);

-- Users
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    role TEXT NOT NULL CHECK (role IN ('teacher', 'student')),
    branch_code TEXT REFERENCES branches(branch_code),
    current_semester INTEGER CHECK (current_semester BETWEEN 1 AND 8),
    created_at TEXT NOT NULL DEFAULT ''
);

-- Subjects are created (or reused) at upload time
CREATE TABLE IF NOT EXISTS subjects (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    course_code TEXT NOT NULL,
    branch_code TEXT NOT NULL REFERENCES branches(branch_code),
    semester INTEGER NOT NULL CHECK (semester BETWEEN 1 AND 8),
    group_code TEXT NOT NULL REFERENCES study_groups(group_code),
    created_by TEXT NOT NULL DEFAULT '',
    UNIQUE(name, course_code, branch_code, semester, group_code)
);

-- Study material, content stored inline
CREATE TABLE IF NOT EXISTS files (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    file_tag_id TEXT NOT NULL UNIQUE,
    filename TEXT NOT NULL,
    filedata BLOB NOT NULL,
    subject_id INTEGER NOT NULL REFERENCES subjects(id),
    uploaded_by TEXT NOT NULL,
    upload_time TEXT NOT NULL DEFAULT '',
    is_deleted INTEGER NOT NULL DEFAULT 0,
    delete_time TEXT
);
CREATE INDEX IF NOT EXISTS idx_files_subject ON files(subject_id, is_deleted);

-- Tasks: assignment_kind selects assigned_to or branch_code + semester
CREATE TABLE IF NOT EXISTS tasks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    description TEXT NOT NULL,
    priority TEXT NOT NULL DEFAULT 'MEDIUM',
    status TEXT NOT NULL DEFAULT 'pending',
    created_by TEXT NOT NULL,
    assignment_kind TEXT NOT NULL CHECK (assignment_kind IN ('individual', 'cohort')),
    assigned_to TEXT,
    branch_code TEXT,
    semester INTEGER,
    due_date TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT '',
    completed_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_tasks_created_by ON tasks(created_by);
CREATE INDEX IF NOT EXISTS idx_tasks_cohort ON tasks(branch_code, semester);
"""


# Versioned migrations — each (version, sql) pair is applied once.
MIGRATIONS: list[tuple[int, str]] = [
    # Migration 2: Per-prefix counters for file tag allocation
    (2, """
        CREATE TABLE IF NOT EXISTS file_tag_counters (
            prefix TEXT PRIMARY KEY,
            last_seq INTEGER NOT NULL
        );
    """),

    # Migration 3: Audit log
    (3, """
        CREATE TABLE IF NOT EXISTS audit_log (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_email TEXT,
            action TEXT NOT NULL,
            detail TEXT NOT NULL DEFAULT '',
            ip_address TEXT NOT NULL DEFAULT '',
            created_at TEXT NOT NULL
        );
        CREATE INDEX IF NOT EXISTS idx_audit_log_action ON audit_log(action, created_at);
    """),

    # Migration 4: Individual assignment lookups
    (4, """
        CREATE INDEX IF NOT EXISTS idx_tasks_assigned_to ON tasks(assigned_to);
    """),
]


def get_db() -> sqlite3.Connection:
    """Return a DB connection from Flask g, creating if needed."""
    if "db" not in g:
        db_path = current_app.config.get("DATABASE", str(DEFAULT_DB_PATH))
        g.db = sqlite3.connect(db_path)
        g.db.row_factory = sqlite3.Row
        g.db.execute("PRAGMA journal_mode=WAL")
        g.db.execute("PRAGMA foreign_keys=ON")
    return g.db


def close_db(e=None) -> None:
    """Teardown handler — close DB connection."""
    db = g.pop("db", None)
    if db is not None:
        db.close()


def now_iso() -> str:
    return datetime.now().isoformat()


@contextmanager
def transaction() -> Iterator[sqlite3.Connection]:
    """Run a block as one write transaction.

    Takes the write lock up front (BEGIN IMMEDIATE), commits when the block
    exits normally and rolls back on any exception. A failing rollback is
    logged and the original exception propagates. Callers must not enter
    with uncommitted work on the connection.
    """
    db = get_db()
    if db.in_transaction:
        logger.error("transaction() entered with uncommitted work pending")
        raise DatabaseError("A database transaction is already open.")
    db.execute("BEGIN IMMEDIATE")
    try:
        yield db
        db.commit()
    except BaseException:
        try:
            db.rollback()
        except sqlite3.Error:
            logger.exception("Rollback failed")
        raise


def translate_errors(f):
    """Wrap raw sqlite3 failures escaping a store method in DatabaseError."""
    @wraps(f)
    def decorated(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except StudySyncError:
            raise
        except sqlite3.Error as e:
            logger.error("%s failed: %s", f.__qualname__, e, exc_info=True)
            raise DatabaseError(f"Database error: {e}") from e
    return decorated


def init_db() -> None:
    """Execute schema DDL to create all tables."""
    db = get_db()
    db.executescript(SCHEMA)
    db.commit()
    row = db.execute("SELECT version FROM schema_version WHERE version = 1").fetchone()
    if not row:
        db.execute(
            "INSERT INTO schema_version (version, applied_at) VALUES (1, ?)",
            (now_iso(),),
        )
        db.commit()


def run_migrations() -> None:
    """Apply any unapplied versioned migrations.

    Uses file-based locking to prevent race conditions when multiple
    workers start simultaneously.
    """
    db_path = current_app.config.get("DATABASE", str(DEFAULT_DB_PATH))
    lock_file = None

    lock_path = Path(db_path).with_suffix(".migration.lock")
    try:
        lock_file = open(lock_path, "w")
        fcntl.flock(lock_file, fcntl.LOCK_EX)
    except OSError:
        lock_file = None

    try:
        db = get_db()
        applied = {
            row["version"]
            for row in db.execute("SELECT version FROM schema_version").fetchall()
        }
        for version, sql in MIGRATIONS:
            if version not in applied:
                try:
                    db.executescript(sql)
                except sqlite3.OperationalError as e:
                    err_msg = str(e).lower()
                    if "duplicate column" not in err_msg and "already exists" not in err_msg:
                        raise
                db.execute(
                    "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
                    (version, now_iso()),
                )
                db.commit()
                logger.info("Applied migration %d", version)
    finally:
        if lock_file:
            fcntl.flock(lock_file, fcntl.LOCK_UN)
            lock_file.close()


def init_app(app) -> None:
    """Register teardown and auto-init on first request."""
    app.teardown_appcontext(close_db)

    @app.before_request
    def _ensure_db():
        if not getattr(app, "_db_initialized", False):
            init_db()
            run_migrations()
            app._db_initialized = True
