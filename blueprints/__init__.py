"""
Blueprint registration for StudySync.

All blueprints are registered without URL prefixes; each declares its full paths.
"""

from __future__ import annotations


def register_blueprints(app):
    from blueprints.reference import bp as reference_bp
    from blueprints.upload import bp as upload_bp
    from blueprints.tasks import bp as tasks_bp
    from blueprints.planner import bp as planner_bp
    from blueprints.activity import bp as activity_bp

    app.register_blueprint(reference_bp)
    app.register_blueprint(upload_bp)
    app.register_blueprint(tasks_bp)
    app.register_blueprint(planner_bp)
    app.register_blueprint(activity_bp)
