"""
Study material repository.

Files are PDF blobs stored inline, filed under a Subject that is scoped to a
branch, semester and study group. Every file gets a human-readable tag
``{branch_code}_S{semester}_{seq:03d}``; deletion is soft.
"""

from __future__ import annotations

import logging
from pathlib import Path

from database import get_db, now_iso, transaction, translate_errors
from errors import AuthorizationError, NotFoundError, StorageIOError, ValidationError
from models import FileRecord, Requester, parse_semester
from policy import can_delete_file, can_view_file
from reference_store import ReferenceStoreDB

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF"
ALLOWED_EXTENSIONS = {".pdf"}

_SELECT_FILES = (
    "SELECT f.id, f.file_tag_id, f.filename, f.subject_id, f.uploaded_by, f.upload_time, "
    "s.name AS subject_name, s.course_code, s.branch_code, s.semester, s.group_code, "
    "b.branch_name, g.group_name "
    "FROM files f "
    "JOIN subjects s ON f.subject_id = s.id "
    "JOIN branches b ON s.branch_code = b.branch_code "
    "JOIN study_groups g ON s.group_code = g.group_code "
)


def tag_prefix(branch_code: str, semester: int) -> str:
    return f"{branch_code}_S{semester}_"


def _sequence_of(file_tag_id: str) -> int:
    try:
        return int(file_tag_id.rsplit("_", 1)[1])
    except (IndexError, ValueError):
        return 0


def _allocate_tag(db, branch_code: str, semester: int) -> str:
    """Next tag for the branch+semester prefix.

    Must run inside a write transaction. The per-prefix counter is
    authoritative; existing tags are scanned too so rows written before the
    counter existed are never reused.
    """
    prefix = tag_prefix(branch_code, semester)
    row = db.execute(
        "SELECT last_seq FROM file_tag_counters WHERE prefix = ?", (prefix,),
    ).fetchone()
    counted = row["last_seq"] if row else 0

    rows = db.execute(
        "SELECT file_tag_id FROM files WHERE substr(file_tag_id, 1, ?) = ?",
        (len(prefix), prefix),
    ).fetchall()
    scanned = max((_sequence_of(r["file_tag_id"]) for r in rows), default=0)

    seq = max(counted, scanned) + 1
    db.execute(
        "INSERT INTO file_tag_counters (prefix, last_seq) VALUES (?, ?) "
        "ON CONFLICT(prefix) DO UPDATE SET last_seq = excluded.last_seq",
        (prefix, seq),
    )
    return f"{prefix}{seq:03d}"


def _validate_upload(subject_name: str, course_code: str, branch_name: str,
                     group_name: str, file_bytes: bytes, filename: str) -> None:
    if not (subject_name or "").strip():
        raise ValidationError("Please enter a subject name")
    if not (course_code or "").strip():
        raise ValidationError("Please enter a course code")
    if not branch_name or not group_name:
        raise ValidationError("Please select a branch and a group")
    if not filename or Path(filename).suffix.lower() not in ALLOWED_EXTENSIONS:
        raise ValidationError("Only PDF files can be uploaded")
    if not file_bytes:
        raise ValidationError("The file is empty")
    if not file_bytes.startswith(PDF_MAGIC):
        raise ValidationError("File content does not match its extension.")


class FileStoreDB:
    """DB-backed study material store, scoped to the requesting user."""

    def __init__(self, requester: Requester):
        self.requester = requester

    def _require_view(self) -> None:
        if not can_view_file(self.requester):
            raise AuthorizationError("Login required to view files.")

    @translate_errors
    def upload(self, subject_name: str, course_code: str, branch_name: str,
               group_name: str, semester, file_bytes: bytes, filename: str) -> FileRecord:
        """Store a PDF under its subject, creating the subject on first use.

        Subject resolution, tag allocation and the file insert commit together
        or not at all.
        """
        _validate_upload(subject_name, course_code, branch_name, group_name, file_bytes, filename)
        semester = parse_semester(semester)
        subject_name = subject_name.strip()
        course_code = course_code.strip()
        filename = Path(filename).name

        with transaction() as db:
            branch_code = ReferenceStoreDB.branch_code_for(branch_name, db)
            if not branch_code:
                raise NotFoundError("Selected branch not found")
            group_code = ReferenceStoreDB.group_code_for(group_name, db)
            if not group_code:
                raise NotFoundError("Selected group not found")

            db.execute(
                "INSERT INTO subjects (name, course_code, branch_code, semester, group_code, created_by) "
                "VALUES (?, ?, ?, ?, ?, ?) "
                "ON CONFLICT(name, course_code, branch_code, semester, group_code) DO NOTHING",
                (subject_name, course_code, branch_code, semester, group_code, self.requester.email),
            )
            subject_id = db.execute(
                "SELECT id FROM subjects WHERE name = ? AND course_code = ? AND branch_code = ? "
                "AND semester = ? AND group_code = ?",
                (subject_name, course_code, branch_code, semester, group_code),
            ).fetchone()["id"]

            file_tag_id = _allocate_tag(db, branch_code, semester)
            cur = db.execute(
                "INSERT INTO files (file_tag_id, filename, filedata, subject_id, uploaded_by, upload_time) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (file_tag_id, filename, file_bytes, subject_id, self.requester.email, now_iso()),
            )
            file_id = cur.lastrowid

        logger.info("Stored %s as %s (%d bytes)", filename, file_tag_id, len(file_bytes))
        return self.get(file_id)

    @translate_errors
    def list_visible(self) -> list[FileRecord]:
        """All non-deleted files, newest upload first."""
        self._require_view()
        db = get_db()
        rows = db.execute(
            _SELECT_FILES + "WHERE f.is_deleted = 0 ORDER BY f.upload_time DESC, f.id DESC"
        ).fetchall()
        return [FileRecord.from_row(r) for r in rows]

    @translate_errors
    def files_for_subject(self, subject_id: int) -> list[FileRecord]:
        self._require_view()
        db = get_db()
        rows = db.execute(
            _SELECT_FILES + "WHERE f.subject_id = ? AND f.is_deleted = 0 "
            "ORDER BY f.upload_time DESC, f.id DESC",
            (subject_id,),
        ).fetchall()
        return [FileRecord.from_row(r) for r in rows]

    @translate_errors
    def get(self, file_id: int) -> FileRecord:
        self._require_view()
        db = get_db()
        row = db.execute(
            _SELECT_FILES + "WHERE f.id = ? AND f.is_deleted = 0", (file_id,),
        ).fetchone()
        if not row:
            raise NotFoundError("File not found in database.")
        return FileRecord.from_row(row)

    @translate_errors
    def get_by_tag(self, file_tag_id: str) -> FileRecord:
        self._require_view()
        db = get_db()
        row = db.execute(
            _SELECT_FILES + "WHERE f.file_tag_id = ? AND f.is_deleted = 0", (file_tag_id,),
        ).fetchone()
        if not row:
            raise NotFoundError("File not found in database.")
        return FileRecord.from_row(row)

    @translate_errors
    def view(self, file_id: int) -> bytes:
        """File content, read fresh on every call."""
        self._require_view()
        db = get_db()
        row = db.execute(
            "SELECT filedata FROM files WHERE id = ? AND is_deleted = 0", (file_id,),
        ).fetchone()
        if not row:
            raise NotFoundError("File not found in database.")
        return bytes(row["filedata"])

    def download(self, file_id: int, destination: str | Path) -> Path:
        """Write the file content to ``destination`` and return the path."""
        content = self.view(file_id)
        path = Path(destination)
        try:
            path.write_bytes(content)
        except OSError as e:
            logger.error("download of file %s to %s failed: %s", file_id, path, e)
            raise StorageIOError(f"Download failed: {e}") from e
        return path

    @translate_errors
    def soft_delete(self, file_id: int) -> None:
        """Mark a file deleted. A second call for the same file raises NotFoundError."""
        if not can_delete_file(self.requester):
            raise AuthorizationError("Only teachers can delete files.")

        with transaction() as db:
            cur = db.execute(
                "UPDATE files SET is_deleted = 1, delete_time = ? WHERE id = ? AND is_deleted = 0",
                (now_iso(), file_id),
            )
            if cur.rowcount == 0:
                raise NotFoundError("File not found or already deleted!")
