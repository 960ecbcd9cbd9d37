"""Study material routes: upload, browse, view, download and delete."""

from __future__ import annotations

import io
import logging

from flask import Blueprint, jsonify, request, send_file
from flask_login import login_required

from audit import log_event
from errors import ValidationError
from file_store import FileStoreDB
from helpers import current_requester
from hierarchy import build_tree, tree_to_dict

logger = logging.getLogger(__name__)

bp = Blueprint("upload", __name__)


@bp.route("/api/files", methods=["POST"])
@login_required
def api_upload():
    if "file" not in request.files:
        raise ValidationError("No file provided")

    file = request.files["file"]
    if not file.filename:
        raise ValidationError("No filename provided")

    requester = current_requester()
    record = FileStoreDB(requester).upload(
        subject_name=request.form.get("subject_name", ""),
        course_code=request.form.get("course_code", ""),
        branch_name=request.form.get("branch_name", ""),
        group_name=request.form.get("group_name", ""),
        semester=request.form.get("semester"),
        file_bytes=file.read(),
        filename=file.filename,
    )
    log_event("upload", requester.email, f"tag={record.file_tag_id} file={record.filename}")
    return jsonify({"success": True, "file": record.to_dict()}), 201


@bp.route("/api/files")
@login_required
def api_files():
    files = FileStoreDB(current_requester()).list_visible()
    return jsonify({"files": [f.to_dict() for f in files]})


@bp.route("/api/files/tree")
@login_required
def api_files_tree():
    files = FileStoreDB(current_requester()).list_visible()
    return jsonify({"tree": tree_to_dict(build_tree(files))})


@bp.route("/api/subjects/<int:subject_id>/files")
@login_required
def api_subject_files(subject_id):
    files = FileStoreDB(current_requester()).files_for_subject(subject_id)
    return jsonify({"files": [f.to_dict() for f in files]})


@bp.route("/api/files/tag/<file_tag_id>")
@login_required
def api_file_by_tag(file_tag_id):
    record = FileStoreDB(current_requester()).get_by_tag(file_tag_id)
    return jsonify({"file": record.to_dict()})


def _send(file_id: int, as_attachment: bool):
    store = FileStoreDB(current_requester())
    record = store.get(file_id)
    content = store.view(file_id)
    return send_file(
        io.BytesIO(content),
        mimetype="application/pdf",
        as_attachment=as_attachment,
        download_name=record.filename,
        max_age=0,
    )


@bp.route("/api/files/<int:file_id>/view")
@login_required
def api_view_file(file_id):
    return _send(file_id, as_attachment=False)


@bp.route("/api/files/<int:file_id>/download")
@login_required
def api_download_file(file_id):
    return _send(file_id, as_attachment=True)


@bp.route("/api/files/<int:file_id>", methods=["DELETE"])
@login_required
def api_delete_file(file_id):
    requester = current_requester()
    FileStoreDB(requester).soft_delete(file_id)
    log_event("file_delete", requester.email, f"file_id={file_id}")
    return jsonify({"success": True, "message": "File deleted successfully!"})
