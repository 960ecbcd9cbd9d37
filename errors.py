"""
Error taxonomy for StudySync.

Stores raise these; the HTTP layer turns them into JSON error responses
using ``status_code``. Anything that is not a StudySyncError is a bug.
"""

from __future__ import annotations


class StudySyncError(Exception):
    """Base class for every business-rule failure reported to the caller."""

    status_code = 500
    default_message = "Something went wrong."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message}


class ValidationError(StudySyncError):
    """Missing or malformed input, raised before any I/O."""

    status_code = 400
    default_message = "Invalid input."


class InvalidEmailFormat(ValidationError):
    def __init__(self, role: str, message: str | None = None):
        self.role = role
        if message is None:
            if role == "teacher":
                message = "Invalid teacher email format. Format: only letters before @mgits.ac.in"
            elif role == "student":
                message = ("Invalid student email format. "
                           "Format: 2 digits + 2 lowercase letters + 3 digits + @mgits.ac.in")
            else:
                message = f"Unknown role: {role!r}"
        super().__init__(message)


class NotFoundError(StudySyncError):
    """Referenced entity is absent, or soft-deleted."""

    status_code = 404
    default_message = "Not found."


class AuthorizationError(StudySyncError):
    """Role or ownership check failed."""

    status_code = 403
    default_message = "You are not allowed to do that."


class RoleMismatch(AuthorizationError):
    """Credentials matched but the account is registered under another role."""

    def __init__(self, actual_role: str):
        self.actual_role = actual_role
        super().__init__(f"Role mismatch! You are registered as {actual_role}.")


class InvalidCredentials(StudySyncError):
    status_code = 401
    default_message = "Invalid credentials."


class DuplicateError(StudySyncError):
    """Unique constraint violated, e.g. an email that is already registered."""

    status_code = 409
    default_message = "Already exists."


class StorageIOError(StudySyncError):
    """Filesystem failure while materialising file content."""

    status_code = 500
    default_message = "File could not be written."


class DatabaseError(StudySyncError):
    """Any other SQL failure."""

    status_code = 500
    default_message = "Database error."
