"""
StudySync — Flask Web Application

Academic portal backend: institutional login per role, PDF study material
filed by branch/semester/group, tasks with cohort or individual assignment,
and a monthly task calendar. Every route speaks JSON, errors included.
"""

from __future__ import annotations

import os
import sqlite3
from typing import Any

import click
from flask import Flask, Response, jsonify
from werkzeug.exceptions import HTTPException

import database
from auth import auth_bp, login_manager
from blueprints import register_blueprints
from errors import StudySyncError
from extensions import limiter


def _load_config(app: Flask, test_config: dict[str, Any] | None) -> None:
    if test_config is not None:
        app.config.update(test_config)
        return
    from config import config_by_name
    cfg = config_by_name.get(os.environ.get("FLASK_ENV", "development"), config_by_name["development"])
    if hasattr(cfg, "validate"):
        cfg.validate()
    app.config.from_object(cfg)


def create_app(test_config: dict[str, Any] | None = None) -> Flask:
    app = Flask(__name__)
    _load_config(app, test_config)
    app.secret_key = app.config.get("SECRET_KEY", "dev-key-change-in-production")

    from logging_config import init_logging
    init_logging(app)

    database.init_app(app)

    if app.config.get("TESTING"):
        app.config.setdefault("RATELIMIT_ENABLED", False)
    limiter.init_app(app)
    if app.config.get("TESTING"):
        limiter.enabled = False

    app.register_blueprint(auth_bp)
    login_manager.init_app(app)
    register_blueprints(app)

    _register_error_handlers(app)
    _register_health(app)
    _register_cli(app)

    @app.after_request
    def set_security_headers(response: Response) -> Response:
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "SAMEORIGIN"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if not app.debug:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response

    return app


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(StudySyncError)
    def handle_studysync_error(e: StudySyncError):
        if e.status_code >= 500:
            app.logger.error("%s: %s", type(e).__name__, e.message, exc_info=e)
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(413)
    def handle_too_large(e):
        limit_mb = (app.config.get("MAX_CONTENT_LENGTH") or 0) // (1024 * 1024)
        message = f"File is too large (limit {limit_mb} MB)." if limit_mb else "File is too large."
        return jsonify({"error": message}), 413

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return jsonify({"error": e.description}), e.code


def _register_health(app: Flask) -> None:
    @app.route("/health")
    def health():
        try:
            database.get_db().execute("SELECT 1").fetchone()
        except sqlite3.Error as e:
            app.logger.error("health check failed: %s", e)
            return jsonify({"status": "error", "database": "unavailable"}), 503
        return jsonify({"status": "ok", "database": "ok"})


def _register_cli(app: Flask) -> None:
    @app.cli.command("init-db")
    def init_db_command():
        """Create tables, apply migrations and seed reference data."""
        from seed_demo_data import seed_reference
        database.init_db()
        database.run_migrations()
        result = seed_reference(database.get_db())
        click.echo(f"Database ready: {result}")

    @app.cli.command("export-file")
    @click.argument("file_id", type=int)
    @click.argument("destination", type=click.Path(dir_okay=False))
    @click.option("--as-user", "email", required=True, help="Email of the account to export as.")
    def export_file_command(file_id, destination, email):
        """Write a stored file to DESTINATION."""
        from file_store import FileStoreDB
        from reference_store import ReferenceStoreDB

        requester = ReferenceStoreDB.user(email)
        if requester is None:
            raise click.ClickException(f"No such user: {email}")
        try:
            path = FileStoreDB(requester).download(file_id, destination)
        except StudySyncError as e:
            raise click.ClickException(e.message) from e
        click.echo(f"Saved to {path}")


if __name__ == "__main__":
    create_app().run(debug=True, port=5001)
