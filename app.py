"""
Academic Management Platform — Flask REST backend

JSON API for students' subjects, grades, assignments, semesters, teachers,
timetable, notifications, events and per-user settings, behind token auth.
"""

from __future__ import annotations

import os
from typing import Any

from flask import Flask, Response, jsonify

import database
from auth import auth_bp, build_authenticator
from blueprints import register_blueprints
from config import Settings, TestingConfig, config_by_name
from errors import register_error_handlers
from extensions import limiter
from logging_config import init_logging


def create_app(test_config: dict[str, Any] | None = None) -> Flask:
    app = Flask(__name__)

    # Load config
    if test_config is not None:
        app.config.from_object(TestingConfig)
        app.config.update(test_config)
    else:
        env = os.environ.get("FLASK_ENV", "development")
        cfg = config_by_name.get(env, config_by_name["development"])
        app.config.from_object(cfg)
        if hasattr(cfg, "validate"):
            cfg.validate()

    settings = Settings.from_mapping(app.config)
    app.extensions["settings"] = settings
    app.secret_key = settings.secret_key

    # Structured logging
    init_logging(app, settings)

    # Authenticator variant is fixed for the life of the app
    app.extensions["authenticator"] = build_authenticator(settings)

    # Register database teardown
    database.init_app(app)

    # Rate limiter (disabled in testing unless asked for)
    app.config.setdefault("RATELIMIT_ENABLED", not app.config.get("TESTING", False))
    limiter.init_app(app)
    limiter.enabled = app.config["RATELIMIT_ENABLED"]

    register_error_handlers(app)

    app.register_blueprint(auth_bp)
    register_blueprints(app)

    @app.route("/")
    def index():
        return jsonify({"message": "Academic Management Platform Backend is running"})

    # Security headers
    @app.after_request
    def set_security_headers(response: Response) -> Response:
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Cache-Control"] = "no-store"
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response

    return app


if __name__ == "__main__":
    create_app().run(debug=True, port=int(os.environ.get("PORT", "5001")))
