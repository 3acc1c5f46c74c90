# modules/users/service.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from modules.common.errors import NotFoundError, ValidationError
from modules.course.catalog import DAYS_PER_WEEK, TOTAL_EXERCISES, TOTAL_WEEKS
from storage import ProgressUpdate, Storage, UserRecord, get_storage

MAX_NAME_CHARS = 120

# Owned by the progress state machine; never writable through PATCH
PROGRESS_FIELDS = frozenset({
    "currentWeek",
    "currentSuggestion",
    "completedSuggestions",
    "courseCompletedAt",
    "version",
})


def clean_name(value: Any) -> str:
    if not isinstance(value, str):
        raise ValidationError("name is required")
    name = value.strip()
    if not name:
        raise ValidationError("name must not be empty")
    if len(name) > MAX_NAME_CHARS:
        raise ValidationError(f"name must be at most {MAX_NAME_CHARS} characters")
    return name


def require_user(user_id: str, storage: Optional[Storage] = None) -> UserRecord:
    if not user_id or not isinstance(user_id, str):
        raise ValidationError("userId is required")
    storage = storage or get_storage()
    user = storage.get_user(user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def create_user(name: Any, storage: Optional[Storage] = None) -> UserRecord:
    storage = storage or get_storage()
    return storage.create_user(clean_name(name))


def create_completed_user(name: Any = "Test User", storage: Optional[Storage] = None) -> UserRecord:
    """Development shortcut: a user parked at course completion."""
    storage = storage or get_storage()
    progress = ProgressUpdate(
        current_week=TOTAL_WEEKS,
        current_suggestion=DAYS_PER_WEEK,
        completed_suggestions=TOTAL_EXERCISES,
        course_completed_at=datetime.utcnow(),
    )
    return storage.create_user(clean_name(name), progress=progress)


def update_user(user_id: str, payload: dict, storage: Optional[Storage] = None) -> UserRecord:
    storage = storage or get_storage()
    blocked = sorted(PROGRESS_FIELDS.intersection(payload))
    if blocked:
        raise ValidationError(f"Progress fields cannot be updated directly: {', '.join(blocked)}")
    unknown = sorted(set(payload) - {"name"})
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(unknown)}")
    if "name" not in payload:
        raise ValidationError("Nothing to update")

    require_user(user_id, storage)
    return storage.rename_user(user_id, clean_name(payload["name"]))
