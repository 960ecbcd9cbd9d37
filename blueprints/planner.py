"""Schedule routes for the monthly task calendar."""

from __future__ import annotations

from datetime import date

from flask import Blueprint, jsonify
from flask_login import login_required

from helpers import current_requester
from schedule import month_view

bp = Blueprint("planner", __name__)


@bp.route("/api/schedule")
@login_required
def api_schedule_current():
    today = date.today()
    return jsonify(month_view(current_requester(), today.year, today.month).to_dict())


@bp.route("/api/schedule/<int:year>/<int:month>")
@login_required
def api_schedule(year, month):
    return jsonify(month_view(current_requester(), year, month).to_dict())
