# modules/reflections/routes.py
from flask import Blueprint, jsonify

from helpers import json_body
from modules.reflections.service import (
    complete_suggestion,
    create_journal_entry,
    get_reflection,
    list_journal,
    list_reflections,
    submit_reflection,
)

reflections_bp = Blueprint("reflections", __name__)


# -----------------------------
# Reflections
# -----------------------------
@reflections_bp.route("/reflections", methods=["POST"], endpoint="submit")
def submit():
    data = json_body()
    record = submit_reflection(
        data.get("userId"),
        data.get("suggestionId"),
        data.get("reflection"),
    )
    return jsonify(record.to_dict()), 201


@reflections_bp.route("/users/<user_id>/reflections", methods=["GET"], endpoint="list")
def list_for_user(user_id):
    return jsonify([r.to_dict() for r in list_reflections(user_id)])


@reflections_bp.route("/reflections/<user_id>/<suggestion_id>", methods=["GET"], endpoint="get")
def get_one(user_id, suggestion_id):
    return jsonify(get_reflection(user_id, suggestion_id).to_dict())


@reflections_bp.route("/users/<user_id>/complete-suggestion", methods=["POST"], endpoint="complete")
def complete(user_id):
    data = json_body()
    user, milestone = complete_suggestion(user_id, data.get("suggestionId"))
    payload = user.to_dict()
    payload["milestone"] = milestone
    return jsonify(payload)


# -----------------------------
# Journal
# -----------------------------
@reflections_bp.route("/journal", methods=["POST"], endpoint="journal_create")
def journal_create():
    data = json_body()
    entry = create_journal_entry(
        data.get("userId"),
        data.get("content"),
        mood=data.get("mood"),
        week=data.get("week"),
        day=data.get("day"),
    )
    return jsonify(entry.to_dict()), 201


@reflections_bp.route("/users/<user_id>/journal", methods=["GET"], endpoint="journal_list")
def journal_list(user_id):
    return jsonify([e.to_dict() for e in list_journal(user_id)])
