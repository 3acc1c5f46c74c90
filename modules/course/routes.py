# modules/course/routes.py
from flask import Blueprint, jsonify, request

from modules.common.errors import AccessDeniedError, NotFoundError
from modules.course.catalog import get_catalog
from modules.progress.engine import ProgressState, exercise_state, is_accessible
from modules.users.service import require_user

course_bp = Blueprint("course", __name__)


@course_bp.route("/suggestions", methods=["GET"], endpoint="list")
def list_suggestions():
    return jsonify([e.to_dict() for e in get_catalog().list_all()])


@course_bp.route("/suggestions/week/<int:week>/day/<int:day>", methods=["GET"], endpoint="by_position")
def by_position(week, day):
    """
    Single exercise. With ?userId=... the access rule applies (403 when
    locked) and the response carries the exercise state for that user.
    """
    exercise = get_catalog().get_by_week_day(week, day)
    if exercise is None:
        raise NotFoundError("Suggestion not found")

    payload = exercise.to_dict()
    user_id = request.args.get("userId")
    if user_id:
        state = ProgressState.from_user(require_user(user_id))
        if not is_accessible(state, week, day):
            raise AccessDeniedError(f"Week {week}, day {day} is locked")
        payload["state"] = exercise_state(state, week, day)
    return jsonify(payload)


@course_bp.route("/weeks", methods=["GET"], endpoint="weeks")
def weeks():
    catalog = get_catalog()
    out = []
    for theme in catalog.weeks():
        item = theme.to_dict()
        item["suggestionIds"] = [e.id for e in catalog.list_week(theme.week)]
        out.append(item)
    return jsonify(out)
