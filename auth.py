"""
User Authentication — Flask-Login blueprint.

Provides register, login, and logout routes plus the credential checks they
run: institutional email format per role, duplicate detection, and a role
gate that rejects a login made under the wrong role.
Uses werkzeug.security for password hashing.
"""

from __future__ import annotations

import re
import sqlite3

from flask import Blueprint, current_app, jsonify
from flask_login import LoginManager, UserMixin, current_user, login_required, login_user, logout_user
from werkzeug.security import check_password_hash, generate_password_hash

from audit import log_event
from database import get_db, now_iso, translate_errors
from errors import (
    DuplicateError,
    InvalidCredentials,
    InvalidEmailFormat,
    RoleMismatch,
    ValidationError,
)
from extensions import limiter
from helpers import json_body
from models import ROLES, STUDENT, TEACHER, Requester, parse_semester
from reference_store import ReferenceStoreDB

EMAIL_PATTERNS = {
    TEACHER: re.compile(r"^[a-zA-Z]+@mgits\.ac\.in$"),
    STUDENT: re.compile(r"^\d{2}[a-z]{2}\d{3}@mgits\.ac\.in$"),
}

auth_bp = Blueprint("auth", __name__)
login_manager = LoginManager()


class User(UserMixin):
    """Wraps a DB user row for Flask-Login."""

    def __init__(self, id: int, email: str, role: str,
                 branch_code: str | None = None, semester: int | None = None):
        self.id = id
        self.email = email
        self.role = role
        self.branch_code = branch_code
        self.semester = semester

    @property
    def is_teacher(self):
        return self.role == TEACHER

    def to_requester(self) -> Requester:
        return Requester(self.email, self.role, self.branch_code, self.semester)

    @staticmethod
    def _from_row(row) -> User:
        return User(row["id"], row["email"], row["role"], row["branch_code"], row["current_semester"])

    @staticmethod
    def get(user_id: int):
        db = get_db()
        row = db.execute(
            "SELECT id, email, role, branch_code, current_semester FROM users WHERE id = ?",
            (user_id,),
        ).fetchone()
        return User._from_row(row) if row else None

    @staticmethod
    def get_by_email(email: str):
        db = get_db()
        row = db.execute(
            "SELECT id, email, password_hash, role, branch_code, current_semester "
            "FROM users WHERE email = ?", (email,),
        ).fetchone()
        return row


@login_manager.user_loader
def load_user(user_id):
    return User.get(int(user_id))


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"error": "Login required."}), 401


# ── Credential checks ────────────────────────────────────────────────


def validate_email_format(email: str, role: str) -> bool:
    """Syntactic check of an institutional email for the given role."""
    pattern = EMAIL_PATTERNS.get(role)
    if pattern is None or email is None:
        return False
    return pattern.fullmatch(email) is not None


def require_valid_email(email: str, role: str) -> None:
    if not validate_email_format(email, role):
        raise InvalidEmailFormat(role)


@translate_errors
def authenticate(email: str, password: str, claimed_role: str) -> Requester:
    """Match stored credentials and enforce the role chosen at login.

    Raises RoleMismatch when the password is right but the account is
    registered under a different role than ``claimed_role``.
    """
    email = (email or "").strip()
    if not email or not password:
        raise ValidationError("Please enter credentials!")
    require_valid_email(email, claimed_role)

    row = User.get_by_email(email)
    if not row or not check_password_hash(row["password_hash"], password):
        raise InvalidCredentials()
    if row["role"] != claimed_role:
        raise RoleMismatch(row["role"])
    return Requester.from_row(row)


@translate_errors
def register(email: str, password: str, role: str,
             branch_code: str | None = None, semester=None) -> Requester:
    """Create an account. Students need a branch and semester; teachers must not have one."""
    email = (email or "").strip()
    if not email or not password:
        raise ValidationError("Please fill all fields!")
    if role not in ROLES:
        raise ValidationError(f"Unknown role: {role!r}")
    require_valid_email(email, role)

    if role == STUDENT:
        if not branch_code or semester in (None, ""):
            raise ValidationError("Students must choose a branch and semester.")
        semester = parse_semester(semester)
        branch = ReferenceStoreDB.branch(branch_code)
        if branch is None or not branch.is_active:
            raise ValidationError(f"Unknown branch: {branch_code}")
    else:
        if branch_code or semester not in (None, ""):
            raise ValidationError("Teachers are not assigned a branch or semester.")
        branch_code = None
        semester = None

    db = get_db()
    count = db.execute("SELECT COUNT(*) FROM users WHERE email = ?", (email,)).fetchone()[0]
    if count > 0:
        raise DuplicateError("Email already exists!")

    try:
        db.execute(
            "INSERT INTO users (email, password_hash, role, branch_code, current_semester, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (email, generate_password_hash(password), role, branch_code, semester, now_iso()),
        )
        db.commit()
    except sqlite3.IntegrityError as e:
        db.rollback()
        if "UNIQUE" in str(e).upper():
            raise DuplicateError("Email already exists!") from e
        raise
    return Requester(email, role, branch_code, semester)


# ── Routes ───────────────────────────────────────────────────────────


@auth_bp.route("/register", methods=["POST"])
@limiter.limit(lambda: current_app.config.get("REGISTER_RATE_LIMIT", "3 per hour"), methods=["POST"])
def register_route():
    data = json_body()
    requester = register(
        email=data.get("email", ""),
        password=data.get("password", ""),
        role=data.get("role", STUDENT),
        branch_code=data.get("branch_code") or None,
        semester=data.get("semester"),
    )
    log_event("register", requester.email, f"role={requester.role}")
    return jsonify({"success": True, "message": "Registered successfully!",
                    "user": requester.to_dict()}), 201


@auth_bp.route("/login", methods=["POST"])
@limiter.limit(lambda: current_app.config.get("LOGIN_RATE_LIMIT", "5 per 15 minutes"), methods=["POST"])
def login():
    data = json_body()
    email = (data.get("email") or "").strip()
    role = data.get("role", STUDENT)

    try:
        requester = authenticate(email, data.get("password", ""), role)
    except RoleMismatch as e:
        log_event("login_role_mismatch", email, f"claimed={role} actual={e.actual_role}")
        raise
    except InvalidCredentials:
        log_event("login_failed", email)
        raise

    row = User.get_by_email(requester.email)
    login_user(User._from_row(row), remember=True)
    log_event("login_success", requester.email, f"role={requester.role}")
    return jsonify({"success": True, "message": f"Login successful as {requester.role}",
                    "user": requester.to_dict()})


@auth_bp.route("/logout", methods=["POST"])
def logout():
    email = current_user.email if current_user.is_authenticated else None
    log_event("logout", email)
    logout_user()
    return jsonify({"success": True})


@auth_bp.route("/api/me")
@login_required
def me():
    return jsonify({"user": current_user.to_requester().to_dict()})
