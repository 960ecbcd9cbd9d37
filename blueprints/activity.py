"""Audit trail browsing for teachers."""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from audit import recent_events
from helpers import teacher_required

bp = Blueprint("activity", __name__)


@bp.route("/api/audit")
@teacher_required
def api_audit():
    limit = min(request.args.get("limit", 50, type=int), 200)
    events = recent_events(request.args.get("action") or None, limit=limit)
    return jsonify({"events": events})
