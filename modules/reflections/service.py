# modules/reflections/service.py
"""
Reflection & journal ledger.

Every write validates first and touches storage second, so a rejected request
leaves nothing behind. Enrichment is best-effort: a failing generator is
replaced by the fallback pool and never blocks submission or completion.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional, Tuple

from flask import current_app

from modules.common.ai import (
    MOODS,
    EncouragementGenerator,
    fallback_journal_encouragement,
    fallback_reflection_encouragement,
    get_encouragement_generator,
)
from modules.common.errors import (
    AccessDeniedError,
    EnrichmentUnavailable,
    NotFoundError,
    ValidationError,
)
from modules.course.catalog import CurriculumCatalog, Exercise, get_catalog
from modules.progress.engine import (
    Milestone,
    ProgressState,
    advance,
    is_accessible,
    is_frontier,
    validate_position,
)
from modules.users.service import require_user
from storage import (
    JournalRecord,
    ProgressUpdate,
    ReflectionRecord,
    Storage,
    UserRecord,
    get_storage,
)

MAX_TEXT_CHARS = 10000


# -----------------------------
# Validation helpers
# -----------------------------
def _clean_text(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} must not be empty")
    text = value.strip()
    if len(text) > MAX_TEXT_CHARS:
        raise ValidationError(f"{field_name} must be at most {MAX_TEXT_CHARS} characters")
    return text


def require_exercise(suggestion_id: Any, catalog: Optional[CurriculumCatalog] = None) -> Exercise:
    if not suggestion_id or not isinstance(suggestion_id, str):
        raise ValidationError("suggestionId is required")
    catalog = catalog or get_catalog()
    exercise = catalog.get_by_id(suggestion_id)
    if exercise is None:
        raise NotFoundError("Suggestion not found")
    return exercise


def _require_access(user: UserRecord, exercise: Exercise) -> ProgressState:
    state = ProgressState.from_user(user)
    if not is_accessible(state, exercise.week, exercise.day):
        raise AccessDeniedError(
            f"Week {exercise.week}, day {exercise.day} is locked; finish the current exercise first"
        )
    return state


def _enrichment_mode() -> str:
    return (current_app.config.get("ENRICHMENT_MODE") or "sync").strip().lower()


# -----------------------------
# Reflections
# -----------------------------
def submit_reflection(
    user_id: str,
    suggestion_id: Any,
    text: Any,
    *,
    storage: Optional[Storage] = None,
    catalog: Optional[CurriculumCatalog] = None,
    generator: Optional[EncouragementGenerator] = None,
) -> ReflectionRecord:
    storage = storage or get_storage()
    catalog = catalog or get_catalog()

    body = _clean_text(text, "reflection")
    user = require_user(user_id, storage)
    exercise = require_exercise(suggestion_id, catalog)
    _require_access(user, exercise)

    record = storage.upsert_reflection(user.id, exercise.id, body)
    current_app.logger.info(
        "Reflection saved user=%s week=%s day=%s", user.id, exercise.week, exercise.day
    )

    if _enrichment_mode() == "queue":
        try:
            from modules.reflections.tasks import enqueue_reflection_enrichment

            job_id = enqueue_reflection_enrichment(record.id)
            current_app.logger.info("Reflection enrichment queued: job=%s", job_id)
            return record
        except Exception as e:
            current_app.logger.warning("Enrichment enqueue failed, running inline: %s", e)

    return enrich_reflection(record.id, storage=storage, catalog=catalog, generator=generator)


def enrich_reflection(
    reflection_id: str,
    *,
    storage: Optional[Storage] = None,
    catalog: Optional[CurriculumCatalog] = None,
    generator: Optional[EncouragementGenerator] = None,
) -> ReflectionRecord:
    storage = storage or get_storage()
    catalog = catalog or get_catalog()

    record = storage.get_reflection_by_id(reflection_id)
    if record is None:
        raise NotFoundError("Reflection not found")
    exercise = catalog.get_by_id(record.suggestion_id)
    description = exercise.description if exercise else ""

    generator = generator or get_encouragement_generator()
    try:
        result = generator.generate_reflection_encouragement(record.reflection, description)
    except EnrichmentUnavailable as e:
        current_app.logger.warning("Reflection encouragement unavailable: %s", e.message)
        result = fallback_reflection_encouragement()

    return storage.set_reflection_enrichment(record.id, result.message, result.sentiment)


def complete_suggestion(
    user_id: str,
    suggestion_id: Any,
    *,
    storage: Optional[Storage] = None,
    catalog: Optional[CurriculumCatalog] = None,
) -> Tuple[UserRecord, Optional[Milestone]]:
    """
    Mark an exercise done. Only the frontier exercise moves the cursor; an
    earlier one just gets its reflection flagged. Completing twice is a no-op.
    """
    storage = storage or get_storage()
    catalog = catalog or get_catalog()

    user = require_user(user_id, storage)
    exercise = require_exercise(suggestion_id, catalog)
    state = _require_access(user, exercise)

    reflection = storage.get_reflection(user.id, exercise.id)
    if reflection is None or not (reflection.reflection or "").strip():
        raise ValidationError("Submit a reflection before completing this exercise")
    if reflection.completed:
        return user, None

    progress: Optional[ProgressUpdate] = None
    milestone: Optional[Milestone] = None
    if is_frontier(state, exercise.week, exercise.day):
        new_state, milestone = advance(state)
        progress = ProgressUpdate(
            current_week=new_state.current_week,
            current_suggestion=new_state.current_suggestion,
            completed_suggestions=new_state.completed_suggestions,
            course_completed_at=datetime.utcnow() if new_state.course_completed else None,
        )

    updated = storage.complete_exercise(reflection.id, user.id, user.version, progress)
    if milestone:
        current_app.logger.info(
            "Milestone %s user=%s completed=%s", milestone, user.id, updated.completed_suggestions
        )
    return updated, milestone


def list_reflections(user_id: str, storage: Optional[Storage] = None) -> List[ReflectionRecord]:
    storage = storage or get_storage()
    require_user(user_id, storage)
    return storage.list_reflections(user_id)


def get_reflection(user_id: str, suggestion_id: str, storage: Optional[Storage] = None) -> ReflectionRecord:
    storage = storage or get_storage()
    require_user(user_id, storage)
    record = storage.get_reflection(user_id, suggestion_id)
    if record is None:
        raise NotFoundError("Reflection not found")
    return record


# -----------------------------
# Journal
# -----------------------------
def _clean_mood(mood: Any) -> Optional[str]:
    if mood is None or mood == "":
        return None
    if mood not in MOODS:
        raise ValidationError(f"mood must be one of: {', '.join(MOODS)}")
    return mood


def _clean_position(week: Any, day: Any) -> Tuple[Optional[int], Optional[int]]:
    if week is None and day is None:
        return None, None
    if week is not None and day is not None:
        return validate_position(week, day)
    # one without the other: range-check whichever is present
    w, d = validate_position(week if week is not None else 1, day if day is not None else 1)
    return (w if week is not None else None), (d if day is not None else None)


def create_journal_entry(
    user_id: str,
    content: Any,
    mood: Any = None,
    week: Any = None,
    day: Any = None,
    *,
    storage: Optional[Storage] = None,
    generator: Optional[EncouragementGenerator] = None,
) -> JournalRecord:
    storage = storage or get_storage()

    text = _clean_text(content, "content")
    mood = _clean_mood(mood)
    week, day = _clean_position(week, day)
    user = require_user(user_id, storage)

    entry = storage.add_journal_entry(user.id, text, mood, week, day)
    if mood is None:
        return entry

    if _enrichment_mode() == "queue":
        try:
            from modules.reflections.tasks import enqueue_journal_enrichment

            enqueue_journal_enrichment(entry.id)
            return entry
        except Exception as e:
            current_app.logger.warning("Journal enqueue failed, running inline: %s", e)

    return enrich_journal_entry(entry.id, storage=storage, generator=generator)


def enrich_journal_entry(
    entry_id: str,
    *,
    storage: Optional[Storage] = None,
    generator: Optional[EncouragementGenerator] = None,
) -> JournalRecord:
    storage = storage or get_storage()
    entry = storage.get_journal_entry(entry_id)
    if entry is None:
        raise NotFoundError("Journal entry not found")
    if entry.ai_encouragement:
        return entry

    generator = generator or get_encouragement_generator()
    try:
        message = generator.generate_journal_encouragement(entry.content, entry.mood)
    except EnrichmentUnavailable as e:
        current_app.logger.warning("Journal encouragement unavailable: %s", e.message)
        message = fallback_journal_encouragement()

    return storage.set_journal_encouragement(entry.id, message)


def list_journal(user_id: str, storage: Optional[Storage] = None) -> List[JournalRecord]:
    storage = storage or get_storage()
    require_user(user_id, storage)
    return storage.list_journal(user_id)
