# modules/feedback/routes.py
import smtplib

from flask import Blueprint, current_app, jsonify, request

from helpers import json_body
from modules.auth.guards import require_admin_secret
from modules.common.errors import ValidationError
from modules.feedback.email_utils import send_feedback_email
from storage import get_storage

feedback_bp = Blueprint("feedback", __name__)

MAX_FEEDBACK_CHARS = 5000


@feedback_bp.route("/feedback", methods=["POST"], endpoint="create")
def create():
    data = json_body()
    message = data.get("message")
    if not isinstance(message, str) or not message.strip():
        raise ValidationError("message must not be empty")
    message = message.strip()
    if len(message) > MAX_FEEDBACK_CHARS:
        raise ValidationError(f"message must be at most {MAX_FEEDBACK_CHARS} characters")

    user_agent = (request.headers.get("User-Agent") or "")[:512] or None
    record = get_storage().add_feedback(message, user_agent)

    try:
        send_feedback_email(message, user_agent)
    except (smtplib.SMTPException, OSError) as e:
        current_app.logger.warning("Feedback email failed: %s", e)

    return jsonify(record.to_dict()), 201


@feedback_bp.route("/feedback", methods=["GET"], endpoint="list")
@require_admin_secret
def list_feedback():
    return jsonify([f.to_dict() for f in get_storage().list_feedback()])
