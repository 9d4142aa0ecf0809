"""Notification and calendar event routes."""

from __future__ import annotations

from flask import Blueprint, jsonify

from auth import current_user_id, require_signin
from blueprints.crud import add_item_routes, resource_blueprint
from services import events, notifications
from validation import json_body

bp = Blueprint("notifications", __name__)


@bp.route("/api/notification", methods=["POST"])
@require_signin
def create_notification():
    return jsonify(notifications.create(json_body())), 201


@bp.route("/api/notifications", methods=["GET"])
@require_signin
def my_notifications():
    """Notifications addressed to the signed-in user."""
    return jsonify(notifications.list_by_owner(current_user_id())), 200


@bp.route("/api/notifications/user/<userId>", methods=["GET"])
@require_signin
def user_notifications(userId):
    return jsonify(notifications.list_by_owner(userId)), 200


@bp.route("/api/notifications/<id>/read", methods=["PUT"])
@require_signin
def mark_notification_read(id):
    return jsonify(notifications.mark_read(id)), 200


add_item_routes(bp, notifications, "/api/notifications")

events_bp = resource_blueprint("events", events, create_rule="/api/event", base_rule="/api/events")
