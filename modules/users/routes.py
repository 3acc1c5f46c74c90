# modules/users/routes.py
from flask import Blueprint, current_app, jsonify, request

from helpers import json_body
from modules.course.catalog import get_catalog
from modules.progress.engine import ProgressState, pending_week, summarize
from modules.users.service import (
    create_completed_user,
    create_user,
    require_user,
    update_user,
)
from storage import get_storage

users_bp = Blueprint("users", __name__)

# Registered only when ENABLE_TEST_ROUTES is on (see app.create_app)
dev_bp = Blueprint("dev", __name__)


@users_bp.route("/users", methods=["POST"], endpoint="create")
def create():
    data = json_body()
    user = create_user(data.get("name"))
    current_app.logger.info("User created: %s", user.id)
    return jsonify(user.to_dict()), 201


@users_bp.route("/users/<user_id>", methods=["GET"], endpoint="get")
def get(user_id):
    return jsonify(require_user(user_id).to_dict())


@users_bp.route("/users/<user_id>", methods=["PATCH"], endpoint="update")
def update(user_id):
    user = update_user(user_id, json_body())
    return jsonify(user.to_dict())


@users_bp.route("/users/<user_id>/progress", methods=["GET"], endpoint="progress")
def progress(user_id):
    user = require_user(user_id)
    state = ProgressState.from_user(user)
    # recording the finished week is what moves the view on to the next one
    prev = pending_week(state)
    recorded = prev is not None and get_storage().get_week_completion(user.id, prev) is not None
    summary = summarize(state, get_catalog(), week_recorded=recorded)
    summary["user"] = user.to_dict()
    return jsonify(summary)


@dev_bp.route("/users/test-complete", methods=["POST"], endpoint="test_complete")
def test_complete():
    data = request.get_json(silent=True)
    name = data.get("name") if isinstance(data, dict) else None
    user = create_completed_user(name or "Test User")
    current_app.logger.warning("Test route created a completed user: %s", user.id)
    return jsonify(user.to_dict()), 201
