"""Per-user settings: one document per user, written by upsert."""

from __future__ import annotations

from flask import Blueprint, jsonify

from auth import require_signin
from services import user_settings
from validation import json_body

bp = Blueprint("user_settings", __name__)


@bp.route("/api/user-settings", methods=["POST"])
@require_signin
def save_settings():
    return jsonify(user_settings.upsert(json_body())), 200


@bp.route("/api/user-settings/<userId>", methods=["GET"])
@require_signin
def get_settings(userId):
    return jsonify(user_settings.get_for_user(userId)), 200


@bp.route("/api/user-settings/<userId>", methods=["DELETE"])
@require_signin
def delete_settings(userId):
    return jsonify(user_settings.delete_for_user(userId)), 200
