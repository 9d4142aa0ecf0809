"""
API error taxonomy and the Flask handlers that render it.

Every failure a handler can signal is an ``ApiError`` subclass carrying its
HTTP status. Handlers raise; ``register_error_handlers`` turns the exception
into a ``{"message": ...}`` JSON body.
"""

from __future__ import annotations

import logging

from flask import Flask, current_app, jsonify
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class ApiError(Exception):
    status_code = 400
    default_message = "Bad request"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self) -> dict:
        return {"message": self.message}


class ValidationError(ApiError):
    status_code = 400
    default_message = "Invalid request payload"


class Conflict(ApiError):
    # Duplicate unique fields answer 400, matching the existing clients
    status_code = 400
    default_message = "Resource already exists"


class Unauthorized(ApiError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(ApiError):
    status_code = 403
    default_message = "User is not authorized"


class NotFound(ApiError):
    status_code = 404
    default_message = "Resource not found"

    @classmethod
    def for_entity(cls, label: str) -> NotFound:
        return cls(f"{label} not found")


class InternalError(ApiError):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, detail: str = ""):
        super().__init__(message)
        self.detail = detail

    def to_dict(self) -> dict:
        body = {"message": self.message}
        settings = current_app.extensions.get("settings")
        if self.detail and settings is not None and settings.expose_error_detail:
            body["error"] = self.detail
        return body


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ApiError)
    def _handle_api_error(exc: ApiError):
        if exc.status_code >= 500:
            logger.error("%s: %s", exc.message, getattr(exc, "detail", ""))
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def _handle_http_error(exc: HTTPException):
        if exc.code == 404:
            return jsonify({"message": "Resource not found"}), 404
        return jsonify({"message": exc.description or exc.name}), exc.code

    @app.errorhandler(Exception)
    def _handle_unexpected(exc: Exception):
        logger.exception("Unhandled error")
        return jsonify(InternalError(detail=str(exc)).to_dict()), 500
