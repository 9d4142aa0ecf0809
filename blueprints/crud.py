"""
Standard resource routes.

Most entities expose the same five endpoints; ``resource_blueprint`` builds
them from a service so each entity module only names its paths.
"""

from __future__ import annotations

from flask import Blueprint, jsonify

from auth import require_signin
from services import ResourceService
from validation import json_body


def add_item_routes(bp: Blueprint, service: ResourceService, base_rule: str) -> None:
    """GET/PUT/DELETE on ``<base_rule>/<id>``."""

    @require_signin
    def get_one(id: str):
        return jsonify(service.get(id)), 200

    @require_signin
    def update_one(id: str):
        return jsonify(service.update(id, json_body())), 200

    @require_signin
    def delete_one(id: str):
        return jsonify(service.delete(id)), 200

    rule = f"{base_rule}/<id>"
    bp.add_url_rule(rule, "get", get_one, methods=["GET"])
    bp.add_url_rule(rule, "update", update_one, methods=["PUT"])
    bp.add_url_rule(rule, "delete", delete_one, methods=["DELETE"])


def resource_blueprint(name: str, service: ResourceService, *,
                       create_rule: str, base_rule: str) -> Blueprint:
    """Create, list-all, list-by-owner and by-id routes for one entity."""
    bp = Blueprint(name, __name__)

    @require_signin
    def create():
        return jsonify(service.create(json_body())), 201

    @require_signin
    def list_all():
        return jsonify(service.list_all()), 200

    @require_signin
    def list_by_owner(userId: str):
        return jsonify(service.list_by_owner(userId)), 200

    bp.add_url_rule(create_rule, "create", create, methods=["POST"])
    bp.add_url_rule(base_rule, "list_all", list_all, methods=["GET"])
    bp.add_url_rule(f"{base_rule}/user/<userId>", "list_by_owner", list_by_owner, methods=["GET"])
    add_item_routes(bp, service, base_rule)
    return bp
