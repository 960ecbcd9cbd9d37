"""
Shared helpers used across blueprints.

Extracted from app.py to break circular dependencies.
"""

from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import current_app, jsonify, request
from flask_login import current_user

from models import Requester, TEACHER


def current_requester() -> Requester:
    """The logged-in user as the explicit context object the stores expect."""
    return current_user.to_requester()


def teacher_required(f: Callable) -> Callable:
    """Decorator that requires user to have the teacher role."""
    @wraps(f)
    def decorated(*args: Any, **kwargs: Any) -> Any:
        if not current_user.is_authenticated:
            return current_app.login_manager.unauthorized()
        if getattr(current_user, "role", "student") != TEACHER:
            return jsonify({"error": "Teachers only."}), 403
        return f(*args, **kwargs)
    return decorated


def json_body() -> dict:
    """Request body as a dict, accepting JSON or form encoding."""
    data = request.get_json(silent=True)
    if data is None:
        data = request.form.to_dict()
    return data
