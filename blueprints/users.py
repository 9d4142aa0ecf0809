"""User account routes. Creation is public; changes are limited to the owner."""

from __future__ import annotations

from flask import Blueprint, jsonify

from audit import log_event
from auth import has_authorization, require_signin
from services import users
from validation import json_body

bp = Blueprint("users", __name__)


@bp.route("/api/user", methods=["POST"])
def create_user():
    """Register a user. The response is the stored record, hashed password included."""
    return jsonify(users.create(json_body())), 201


@bp.route("/api/users", methods=["GET"])
@require_signin
def list_users():
    return jsonify(users.list_all()), 200


@bp.route("/api/users/<id>", methods=["GET"])
@require_signin
def get_user(id):
    return jsonify(users.get(id)), 200


@bp.route("/api/users/<id>", methods=["PUT"])
@require_signin
@has_authorization("id")
def update_user(id):
    return jsonify(users.update(id, json_body())), 200


@bp.route("/api/users/<id>", methods=["DELETE"])
@require_signin
@has_authorization("id")
def delete_user(id):
    result = users.delete(id)
    log_event("account_deleted", id)
    return jsonify(result), 200
