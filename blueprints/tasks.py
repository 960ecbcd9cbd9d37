"""Task manager routes."""

from __future__ import annotations

from typing import Optional

from flask import Blueprint, jsonify, request
from flask_login import login_required

from audit import log_event
from helpers import current_requester, json_body
from models import Assignment, Cohort, Individual, clean_text
from task_store import TaskStoreDB

bp = Blueprint("tasks", __name__)


def _assignment_from(data: dict) -> Optional[Assignment]:
    """Accept either a nested ``assignment`` object or flat fields."""
    raw = data.get("assignment")
    if isinstance(raw, dict):
        data = raw
    if data.get("assigned_to"):
        return Individual(clean_text(data["assigned_to"], "assignee"))
    if data.get("branch_code") or data.get("semester") not in (None, ""):
        return Cohort(data.get("branch_code") or "", data.get("semester"))
    return None


@bp.route("/api/tasks")
@login_required
def api_list_tasks():
    tasks = TaskStoreDB(current_requester()).list(
        status=request.args.get("status"),
        branch_code=request.args.get("branch_code"),
        semester=request.args.get("semester"),
    )
    return jsonify({"tasks": [t.to_dict() for t in tasks]})


@bp.route("/api/tasks", methods=["POST"])
@login_required
def api_create_task():
    data = json_body()
    task = TaskStoreDB(current_requester()).create(
        title=data.get("title", ""),
        description=data.get("description", ""),
        due_date=data.get("due_date", ""),
        priority=data.get("priority"),
        status=data.get("status"),
        assignment=_assignment_from(data),
    )
    return jsonify({"success": True, "task": task.to_dict()}), 201


@bp.route("/api/tasks/search")
@login_required
def api_search_tasks():
    tasks = TaskStoreDB(current_requester()).search(
        request.args.get("q", ""),
        status=request.args.get("status"),
    )
    return jsonify({"tasks": [t.to_dict() for t in tasks]})


@bp.route("/api/tasks/assignees")
@login_required
def api_assignees():
    return jsonify({"users": TaskStoreDB(current_requester()).assignable_users()})


@bp.route("/api/tasks/<int:task_id>")
@login_required
def api_get_task(task_id):
    task = TaskStoreDB(current_requester()).get(task_id)
    return jsonify({"task": task.to_dict()})


@bp.route("/api/tasks/<int:task_id>", methods=["PUT"])
@login_required
def api_update_task(task_id):
    data = json_body()
    task = TaskStoreDB(current_requester()).update(
        task_id,
        title=data.get("title"),
        description=data.get("description"),
        priority=data.get("priority"),
        status=data.get("status"),
        due_date=data.get("due_date"),
        assignment=_assignment_from(data),
    )
    return jsonify({"success": True, "task": task.to_dict()})


@bp.route("/api/tasks/<int:task_id>", methods=["DELETE"])
@login_required
def api_delete_task(task_id):
    requester = current_requester()
    TaskStoreDB(requester).delete(task_id)
    log_event("task_delete", requester.email, f"task_id={task_id}")
    return jsonify({"success": True})


@bp.route("/api/tasks/<int:task_id>/complete", methods=["POST"])
@login_required
def api_complete_task(task_id):
    task = TaskStoreDB(current_requester()).mark_complete(task_id)
    return jsonify({"success": True, "task": task.to_dict()})
