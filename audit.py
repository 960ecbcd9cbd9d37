"""
Audit logging — records security-relevant events.

Events are written to both the audit_log table and structured logging.
"""

from __future__ import annotations

import logging
import sqlite3

from flask import has_request_context, request

from database import get_db, now_iso

logger = logging.getLogger(__name__)


def log_event(action: str, user_email: str | None = None, detail: str = "") -> None:
    """Insert an audit log entry and emit a structured log line."""
    ip = (request.remote_addr or "") if has_request_context() else ""

    try:
        db = get_db()
        db.execute(
            "INSERT INTO audit_log (user_email, action, detail, ip_address, created_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (user_email, action, detail, ip, now_iso()),
        )
        db.commit()
    except sqlite3.Error:
        logger.warning("audit write failed for %s", action, exc_info=True)

    logger.info("audit: %s user=%s detail=%s ip=%s", action, user_email, detail, ip)


def recent_events(action: str | None = None, limit: int = 50) -> list[dict]:
    """Most recent audit entries, optionally for one action."""
    db = get_db()
    if action:
        rows = db.execute(
            "SELECT * FROM audit_log WHERE action = ? ORDER BY id DESC LIMIT ?",
            (action, limit),
        ).fetchall()
    else:
        rows = db.execute(
            "SELECT * FROM audit_log ORDER BY id DESC LIMIT ?", (limit,),
        ).fetchall()
    return [dict(r) for r in rows]
