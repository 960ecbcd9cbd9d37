"""Branch, group and subject lookups for the upload form and the material browser."""

from __future__ import annotations

from dataclasses import asdict

from flask import Blueprint, jsonify, request
from flask_login import login_required

from errors import ValidationError
from reference_store import ReferenceStoreDB

bp = Blueprint("reference", __name__)


@bp.route("/api/branches")
def api_branches():
    # Public: the registration form needs the branch list.
    return jsonify({"branches": [asdict(b) for b in ReferenceStoreDB.active_branches()]})


@bp.route("/api/groups")
@login_required
def api_groups():
    return jsonify({"groups": [asdict(g) for g in ReferenceStoreDB.active_groups()]})


@bp.route("/api/branches/<branch_code>/groups")
@login_required
def api_branch_groups(branch_code):
    groups = ReferenceStoreDB.groups_for_branch(branch_code)
    return jsonify({"groups": [asdict(g) for g in groups]})


@bp.route("/api/subjects")
@login_required
def api_subjects():
    branch_code = request.args.get("branch_code", "")
    group_code = request.args.get("group_code", "")
    if not branch_code or not group_code:
        raise ValidationError("branch_code and group_code are required")
    subjects = ReferenceStoreDB.subjects_for(branch_code, group_code, request.args.get("semester"))
    return jsonify({"subjects": [asdict(s) for s in subjects]})
