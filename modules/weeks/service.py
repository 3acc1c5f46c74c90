# modules/weeks/service.py
from __future__ import annotations

from typing import Any, Optional

from flask import current_app

from modules.common.errors import AccessDeniedError, NotFoundError, ValidationError
from modules.course.catalog import DAYS_PER_WEEK, TOTAL_WEEKS
from modules.progress.engine import ProgressState, as_int, is_week_complete
from modules.users.service import require_user
from storage import Storage, WeeklyCompletionRecord, get_storage

MAX_REFLECTION_CHARS = 10000


def _clean_week(week: Any) -> int:
    w = as_int(week, "week")
    if not 1 <= w <= TOTAL_WEEKS:
        raise ValidationError(f"week must be between 1 and {TOTAL_WEEKS}")
    return w


def _clean_reflection(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("reflection must be a string")
    text = value.strip()
    if len(text) > MAX_REFLECTION_CHARS:
        raise ValidationError(f"reflection must be at most {MAX_REFLECTION_CHARS} characters")
    return text or None


def record_week_completion(
    user_id: str,
    week: Any,
    reflection: Any = None,
    storage: Optional[Storage] = None,
) -> WeeklyCompletionRecord:
    """Upsert the week-level reflection once all seven exercises are done."""
    storage = storage or get_storage()
    w = _clean_week(week)
    text = _clean_reflection(reflection)
    user = require_user(user_id, storage)

    if not is_week_complete(ProgressState.from_user(user), w):
        raise AccessDeniedError(
            f"Week {w} is not complete: {user.completed_suggestions} of {w * DAYS_PER_WEEK} exercises done"
        )

    record = storage.upsert_week_completion(user.id, w, text)
    current_app.logger.info("Week %s recorded for user=%s", w, user.id)
    return record


def get_week_completion(user_id: str, week: Any, storage: Optional[Storage] = None) -> WeeklyCompletionRecord:
    storage = storage or get_storage()
    w = _clean_week(week)
    require_user(user_id, storage)
    record = storage.get_week_completion(user_id, w)
    if record is None:
        raise NotFoundError("Weekly completion not found")
    return record
