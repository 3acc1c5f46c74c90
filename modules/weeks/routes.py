# modules/weeks/routes.py
from flask import Blueprint, jsonify

from helpers import json_body
from modules.weeks.service import get_week_completion, record_week_completion

weeks_bp = Blueprint("weeks", __name__)


@weeks_bp.route("/users/<user_id>/complete-week", methods=["POST"], endpoint="complete")
def complete_week(user_id):
    data = json_body()
    record = record_week_completion(user_id, data.get("week"), data.get("reflection"))
    return jsonify(record.to_dict())


@weeks_bp.route("/users/<user_id>/weeks/<int:week>/completion", methods=["GET"], endpoint="get")
def completion(user_id, week):
    return jsonify(get_week_completion(user_id, week).to_dict())
