# storage.py: repository layer (SQLAlchemy + in-memory)
"""
Storage backends for Hermit Cove.

Services never touch db.session directly; they receive a Storage from
get_storage() and work with the plain records defined here. Two backends:

- SqlStorage:    Flask-SQLAlchemy models from models.py (Postgres / SQLite)
- MemoryStorage: dict-backed, used for tests and DATABASE-less dev runs

Progress writes are conditional on User.version (optimistic concurrency):
a stale version raises ConflictError instead of silently losing an update.
"""

from __future__ import annotations

import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from flask import Flask, current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models import (
    Feedback,
    JournalEntry,
    Suggestion,
    User,
    UserReflection,
    WeeklyCompletion,
    db,
)
from modules.common.errors import ConflictError, NotFoundError, StorageError


def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------
# Records (what services and routes see)
# ---------------------------------------------------------------------
@dataclass
class UserRecord:
    id: str
    name: str
    current_week: int = 1
    current_suggestion: int = 1
    completed_suggestions: int = 0
    course_completed_at: Optional[datetime] = None
    version: int = 1
    created_at: datetime = field(default_factory=datetime.utcnow)
    last_active_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "currentWeek": self.current_week,
            "currentSuggestion": self.current_suggestion,
            "completedSuggestions": self.completed_suggestions,
            "courseCompletedAt": _iso(self.course_completed_at),
            "version": self.version,
            "createdAt": _iso(self.created_at),
            "lastActiveAt": _iso(self.last_active_at),
        }


@dataclass
class SuggestionRecord:
    id: str
    week: int
    day: int
    title: str
    description: str
    category: str


@dataclass
class ReflectionRecord:
    id: str
    user_id: str
    suggestion_id: str
    reflection: str
    ai_response: Optional[str] = None
    sentiment: Optional[str] = None
    completed: bool = False
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "suggestionId": self.suggestion_id,
            "reflection": self.reflection,
            "aiResponse": self.ai_response,
            "sentiment": self.sentiment,
            "completed": self.completed,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


@dataclass
class JournalRecord:
    id: str
    user_id: str
    content: str
    mood: Optional[str] = None
    week: Optional[int] = None
    day: Optional[int] = None
    ai_encouragement: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "content": self.content,
            "mood": self.mood,
            "week": self.week,
            "day": self.day,
            "aiEncouragement": self.ai_encouragement,
            "createdAt": _iso(self.created_at),
        }


@dataclass
class WeeklyCompletionRecord:
    id: str
    user_id: str
    week: int
    reflection: Optional[str] = None
    completed_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "week": self.week,
            "reflection": self.reflection,
            "completedAt": _iso(self.completed_at),
        }


@dataclass
class FeedbackRecord:
    id: str
    message: str
    user_agent: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "message": self.message,
            "userAgent": self.user_agent,
            "createdAt": _iso(self.created_at),
        }


@dataclass
class ProgressUpdate:
    current_week: int
    current_suggestion: int
    completed_suggestions: int
    course_completed_at: Optional[datetime] = None


# ---------------------------------------------------------------------
# Interface
# ---------------------------------------------------------------------
class Storage:
    """Repository interface. Lookups return None when nothing matches."""

    # users
    def create_user(self, name: str, progress: Optional[ProgressUpdate] = None) -> UserRecord:
        raise NotImplementedError

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        raise NotImplementedError

    def rename_user(self, user_id: str, name: str) -> UserRecord:
        raise NotImplementedError

    def complete_exercise(
        self,
        reflection_id: str,
        user_id: str,
        expected_version: int,
        progress: Optional[ProgressUpdate],
    ) -> UserRecord:
        """Flag the reflection completed and, if given, write the new progress
        cursor guarded by expected_version."""
        raise NotImplementedError

    # curriculum
    def list_suggestions(self) -> List[SuggestionRecord]:
        raise NotImplementedError

    def add_suggestions(self, rows: List[dict]) -> int:
        raise NotImplementedError

    # reflections
    def get_reflection(self, user_id: str, suggestion_id: str) -> Optional[ReflectionRecord]:
        raise NotImplementedError

    def get_reflection_by_id(self, reflection_id: str) -> Optional[ReflectionRecord]:
        raise NotImplementedError

    def list_reflections(self, user_id: str) -> List[ReflectionRecord]:
        raise NotImplementedError

    def upsert_reflection(self, user_id: str, suggestion_id: str, text: str) -> ReflectionRecord:
        raise NotImplementedError

    def set_reflection_enrichment(
        self, reflection_id: str, ai_response: Optional[str], sentiment: Optional[str]
    ) -> ReflectionRecord:
        raise NotImplementedError

    # journal
    def add_journal_entry(
        self,
        user_id: str,
        content: str,
        mood: Optional[str],
        week: Optional[int],
        day: Optional[int],
    ) -> JournalRecord:
        raise NotImplementedError

    def get_journal_entry(self, entry_id: str) -> Optional[JournalRecord]:
        raise NotImplementedError

    def set_journal_encouragement(self, entry_id: str, text: Optional[str]) -> JournalRecord:
        raise NotImplementedError

    def list_journal(self, user_id: str) -> List[JournalRecord]:
        raise NotImplementedError

    # weekly completions
    def get_week_completion(self, user_id: str, week: int) -> Optional[WeeklyCompletionRecord]:
        raise NotImplementedError

    def upsert_week_completion(
        self, user_id: str, week: int, reflection: Optional[str]
    ) -> WeeklyCompletionRecord:
        raise NotImplementedError

    # feedback
    def add_feedback(self, message: str, user_agent: Optional[str]) -> FeedbackRecord:
        raise NotImplementedError

    def list_feedback(self) -> List[FeedbackRecord]:
        raise NotImplementedError

    # admin
    def stats(self, recent_limit: int = 10) -> dict:
        raise NotImplementedError


def _weekly_progress(completed_counts: List[int]) -> List[dict]:
    return [
        {"week": w, "completedUsers": sum(1 for c in completed_counts if c >= w * 7)}
        for w in range(1, 7)
    ]


# ---------------------------------------------------------------------
# SQLAlchemy backend
# ---------------------------------------------------------------------
def _user_record(row: User) -> UserRecord:
    return UserRecord(
        id=row.id,
        name=row.name,
        current_week=row.current_week,
        current_suggestion=row.current_suggestion,
        completed_suggestions=row.completed_suggestions,
        course_completed_at=row.course_completed_at,
        version=row.version,
        created_at=row.created_at,
        last_active_at=row.last_active_at,
    )


def _suggestion_record(row: Suggestion) -> SuggestionRecord:
    return SuggestionRecord(
        id=row.id,
        week=row.week,
        day=row.day,
        title=row.title,
        description=row.description,
        category=row.category,
    )


def _reflection_record(row: UserReflection) -> ReflectionRecord:
    return ReflectionRecord(
        id=row.id,
        user_id=row.user_id,
        suggestion_id=row.suggestion_id,
        reflection=row.reflection,
        ai_response=row.ai_response,
        sentiment=row.sentiment,
        completed=bool(row.completed),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _journal_record(row: JournalEntry) -> JournalRecord:
    return JournalRecord(
        id=row.id,
        user_id=row.user_id,
        content=row.content,
        mood=row.mood,
        week=row.week,
        day=row.day,
        ai_encouragement=row.ai_encouragement,
        created_at=row.created_at,
    )


def _week_record(row: WeeklyCompletion) -> WeeklyCompletionRecord:
    return WeeklyCompletionRecord(
        id=row.id,
        user_id=row.user_id,
        week=row.week,
        reflection=row.reflection,
        completed_at=row.completed_at,
    )


def _feedback_record(row: Feedback) -> FeedbackRecord:
    return FeedbackRecord(
        id=row.id,
        message=row.message,
        user_agent=row.user_agent,
        created_at=row.created_at,
    )


class SqlStorage(Storage):
    @contextmanager
    def _guard(self, action: str):
        try:
            yield
        except (ConflictError, NotFoundError):
            db.session.rollback()
            raise
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.exception("Storage: %s failed", action)
            raise StorageError(f"Failed to {action}") from e

    # users
    def create_user(self, name, progress=None):
        with self._guard("create user"):
            now = datetime.utcnow()
            row = User(id=_new_id(), name=name, created_at=now, last_active_at=now)
            if progress:
                row.current_week = progress.current_week
                row.current_suggestion = progress.current_suggestion
                row.completed_suggestions = progress.completed_suggestions
                row.course_completed_at = progress.course_completed_at
            db.session.add(row)
            db.session.commit()
            return _user_record(row)

    def get_user(self, user_id):
        with self._guard("fetch user"):
            row = db.session.get(User, user_id)
            return _user_record(row) if row else None

    def rename_user(self, user_id, name):
        with self._guard("update user"):
            row = db.session.get(User, user_id)
            if not row:
                raise NotFoundError("User not found")
            row.name = name
            row.last_active_at = datetime.utcnow()
            db.session.commit()
            return _user_record(row)

    def complete_exercise(self, reflection_id, user_id, expected_version, progress):
        with self._guard("complete exercise"):
            now = datetime.utcnow()
            values = {User.last_active_at: now, User.version: User.version + 1}
            if progress:
                values.update({
                    User.current_week: progress.current_week,
                    User.current_suggestion: progress.current_suggestion,
                    User.completed_suggestions: progress.completed_suggestions,
                    User.course_completed_at: progress.course_completed_at,
                })
            updated = (
                User.query.filter_by(id=user_id, version=expected_version)
                .update(values, synchronize_session=False)
            )
            if updated != 1:
                raise ConflictError("Progress changed in another request; please retry")

            UserReflection.query.filter_by(id=reflection_id).update(
                {UserReflection.completed: True, UserReflection.updated_at: now},
                synchronize_session=False,
            )
            db.session.commit()
            db.session.expire_all()
            return _user_record(db.session.get(User, user_id))

    # curriculum
    def list_suggestions(self):
        with self._guard("fetch suggestions"):
            rows = Suggestion.query.order_by(Suggestion.week.asc(), Suggestion.day.asc()).all()
            return [_suggestion_record(r) for r in rows]

    def add_suggestions(self, rows):
        with self._guard("seed suggestions"):
            for data in rows:
                db.session.add(Suggestion(id=_new_id(), **data))
            db.session.commit()
            return len(rows)

    # reflections
    def get_reflection(self, user_id, suggestion_id):
        with self._guard("fetch reflection"):
            row = UserReflection.query.filter_by(user_id=user_id, suggestion_id=suggestion_id).first()
            return _reflection_record(row) if row else None

    def get_reflection_by_id(self, reflection_id):
        with self._guard("fetch reflection"):
            row = db.session.get(UserReflection, reflection_id)
            return _reflection_record(row) if row else None

    def list_reflections(self, user_id):
        with self._guard("fetch reflections"):
            rows = (
                UserReflection.query.filter_by(user_id=user_id)
                .order_by(UserReflection.created_at.asc(), UserReflection.id.asc())
                .all()
            )
            return [_reflection_record(r) for r in rows]

    def upsert_reflection(self, user_id, suggestion_id, text):
        with self._guard("save reflection"):
            now = datetime.utcnow()
            row = UserReflection.query.filter_by(user_id=user_id, suggestion_id=suggestion_id).first()
            if row is None:
                row = UserReflection(
                    id=_new_id(),
                    user_id=user_id,
                    suggestion_id=suggestion_id,
                    completed=False,
                    created_at=now,
                )
                db.session.add(row)
            row.reflection = text
            row.ai_response = None
            row.sentiment = None
            row.updated_at = now
            try:
                db.session.commit()
            except IntegrityError:
                # Concurrent first submission for the same pair won the insert
                db.session.rollback()
                row = UserReflection.query.filter_by(user_id=user_id, suggestion_id=suggestion_id).one()
                row.reflection = text
                row.ai_response = None
                row.sentiment = None
                row.updated_at = now
                db.session.commit()
            return _reflection_record(row)

    def set_reflection_enrichment(self, reflection_id, ai_response, sentiment):
        with self._guard("save encouragement"):
            row = db.session.get(UserReflection, reflection_id)
            if not row:
                raise NotFoundError("Reflection not found")
            row.ai_response = ai_response
            row.sentiment = sentiment
            db.session.commit()
            return _reflection_record(row)

    # journal
    def add_journal_entry(self, user_id, content, mood, week, day):
        with self._guard("save journal entry"):
            row = JournalEntry(
                id=_new_id(),
                user_id=user_id,
                content=content,
                mood=mood,
                week=week,
                day=day,
                created_at=datetime.utcnow(),
            )
            db.session.add(row)
            db.session.commit()
            return _journal_record(row)

    def get_journal_entry(self, entry_id):
        with self._guard("fetch journal entry"):
            row = db.session.get(JournalEntry, entry_id)
            return _journal_record(row) if row else None

    def set_journal_encouragement(self, entry_id, text):
        with self._guard("save journal encouragement"):
            row = db.session.get(JournalEntry, entry_id)
            if not row:
                raise NotFoundError("Journal entry not found")
            row.ai_encouragement = text
            db.session.commit()
            return _journal_record(row)

    def list_journal(self, user_id):
        with self._guard("fetch journal"):
            rows = (
                JournalEntry.query.filter_by(user_id=user_id)
                .order_by(JournalEntry.created_at.desc())
                .all()
            )
            return [_journal_record(r) for r in rows]

    # weekly completions
    def get_week_completion(self, user_id, week):
        with self._guard("fetch weekly completion"):
            row = WeeklyCompletion.query.filter_by(user_id=user_id, week=week).first()
            return _week_record(row) if row else None

    def upsert_week_completion(self, user_id, week, reflection):
        with self._guard("save weekly completion"):
            row = WeeklyCompletion.query.filter_by(user_id=user_id, week=week).first()
            if row is None:
                row = WeeklyCompletion(id=_new_id(), user_id=user_id, week=week)
                db.session.add(row)
            row.reflection = reflection
            row.completed_at = datetime.utcnow()
            db.session.commit()
            return _week_record(row)

    # feedback
    def add_feedback(self, message, user_agent):
        with self._guard("save feedback"):
            row = Feedback(
                id=_new_id(),
                message=message,
                user_agent=user_agent,
                created_at=datetime.utcnow(),
            )
            db.session.add(row)
            db.session.commit()
            return _feedback_record(row)

    def list_feedback(self):
        with self._guard("fetch feedback"):
            rows = Feedback.query.order_by(Feedback.created_at.desc()).all()
            return [_feedback_record(r) for r in rows]

    # admin
    def stats(self, recent_limit=10):
        with self._guard("compute stats"):
            recent = User.query.order_by(User.created_at.desc()).limit(recent_limit).all()
            weekly = []
            for w in range(1, 7):
                n = (
                    db.session.query(func.count(User.id))
                    .filter(User.completed_suggestions >= w * 7)
                    .scalar()
                )
                weekly.append({"week": w, "completedUsers": int(n or 0)})
            return {
                "totalUsers": User.query.count(),
                "totalReflections": UserReflection.query.count(),
                "totalJournalEntries": JournalEntry.query.count(),
                "totalWeeklyCompletions": WeeklyCompletion.query.count(),
                "totalFeedback": Feedback.query.count(),
                "recentUsers": [_user_record(u).to_dict() for u in recent],
                "weeklyProgress": weekly,
            }


# ---------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------
class MemoryStorage(Storage):
    def __init__(self):
        self._lock = threading.RLock()
        self._users: Dict[str, UserRecord] = {}
        self._suggestions: Dict[str, SuggestionRecord] = {}
        self._reflections: Dict[Tuple[str, str], ReflectionRecord] = {}
        self._journal: List[JournalRecord] = []
        self._weeks: Dict[Tuple[str, int], WeeklyCompletionRecord] = {}
        self._feedback: List[FeedbackRecord] = []

    # users
    def create_user(self, name, progress=None):
        with self._lock:
            now = datetime.utcnow()
            user = UserRecord(id=_new_id(), name=name, created_at=now, last_active_at=now)
            if progress:
                user.current_week = progress.current_week
                user.current_suggestion = progress.current_suggestion
                user.completed_suggestions = progress.completed_suggestions
                user.course_completed_at = progress.course_completed_at
            self._users[user.id] = user
            return replace(user)

    def get_user(self, user_id):
        with self._lock:
            user = self._users.get(user_id)
            return replace(user) if user else None

    def rename_user(self, user_id, name):
        with self._lock:
            user = self._users.get(user_id)
            if not user:
                raise NotFoundError("User not found")
            user.name = name
            user.last_active_at = datetime.utcnow()
            return replace(user)

    def complete_exercise(self, reflection_id, user_id, expected_version, progress):
        with self._lock:
            user = self._users.get(user_id)
            if not user or user.version != expected_version:
                raise ConflictError("Progress changed in another request; please retry")
            now = datetime.utcnow()
            if progress:
                user.current_week = progress.current_week
                user.current_suggestion = progress.current_suggestion
                user.completed_suggestions = progress.completed_suggestions
                user.course_completed_at = progress.course_completed_at
            user.version += 1
            user.last_active_at = now
            for r in self._reflections.values():
                if r.id == reflection_id:
                    r.completed = True
                    r.updated_at = now
            return replace(user)

    # curriculum
    def list_suggestions(self):
        with self._lock:
            rows = sorted(self._suggestions.values(), key=lambda s: (s.week, s.day))
            return [replace(r) for r in rows]

    def add_suggestions(self, rows):
        with self._lock:
            for data in rows:
                rec = SuggestionRecord(id=_new_id(), **data)
                self._suggestions[rec.id] = rec
            return len(rows)

    # reflections
    def get_reflection(self, user_id, suggestion_id):
        with self._lock:
            r = self._reflections.get((user_id, suggestion_id))
            return replace(r) if r else None

    def get_reflection_by_id(self, reflection_id):
        with self._lock:
            for r in self._reflections.values():
                if r.id == reflection_id:
                    return replace(r)
            return None

    def list_reflections(self, user_id):
        with self._lock:
            rows = [r for r in self._reflections.values() if r.user_id == user_id]
            return [replace(r) for r in sorted(rows, key=lambda r: r.created_at)]

    def upsert_reflection(self, user_id, suggestion_id, text):
        with self._lock:
            now = datetime.utcnow()
            r = self._reflections.get((user_id, suggestion_id))
            if r is None:
                r = ReflectionRecord(
                    id=_new_id(),
                    user_id=user_id,
                    suggestion_id=suggestion_id,
                    reflection=text,
                    created_at=now,
                    updated_at=now,
                )
                self._reflections[(user_id, suggestion_id)] = r
            r.reflection = text
            r.ai_response = None
            r.sentiment = None
            r.updated_at = now
            return replace(r)

    def set_reflection_enrichment(self, reflection_id, ai_response, sentiment):
        with self._lock:
            for r in self._reflections.values():
                if r.id == reflection_id:
                    r.ai_response = ai_response
                    r.sentiment = sentiment
                    return replace(r)
            raise NotFoundError("Reflection not found")

    # journal
    def add_journal_entry(self, user_id, content, mood, week, day):
        with self._lock:
            entry = JournalRecord(
                id=_new_id(),
                user_id=user_id,
                content=content,
                mood=mood,
                week=week,
                day=day,
                created_at=datetime.utcnow(),
            )
            self._journal.append(entry)
            return replace(entry)

    def get_journal_entry(self, entry_id):
        with self._lock:
            for e in self._journal:
                if e.id == entry_id:
                    return replace(e)
            return None

    def set_journal_encouragement(self, entry_id, text):
        with self._lock:
            for e in self._journal:
                if e.id == entry_id:
                    e.ai_encouragement = text
                    return replace(e)
            raise NotFoundError("Journal entry not found")

    def list_journal(self, user_id):
        with self._lock:
            # newest first; later inserts win ties
            rows = [e for e in reversed(self._journal) if e.user_id == user_id]
            rows.sort(key=lambda e: e.created_at, reverse=True)
            return [replace(e) for e in rows]

    # weekly completions
    def get_week_completion(self, user_id, week):
        with self._lock:
            c = self._weeks.get((user_id, week))
            return replace(c) if c else None

    def upsert_week_completion(self, user_id, week, reflection):
        with self._lock:
            c = self._weeks.get((user_id, week))
            if c is None:
                c = WeeklyCompletionRecord(id=_new_id(), user_id=user_id, week=week)
                self._weeks[(user_id, week)] = c
            c.reflection = reflection
            c.completed_at = datetime.utcnow()
            return replace(c)

    # feedback
    def add_feedback(self, message, user_agent):
        with self._lock:
            fb = FeedbackRecord(id=_new_id(), message=message, user_agent=user_agent)
            self._feedback.append(fb)
            return replace(fb)

    def list_feedback(self):
        with self._lock:
            rows = list(reversed(self._feedback))
            rows.sort(key=lambda f: f.created_at, reverse=True)
            return [replace(f) for f in rows]

    # admin
    def stats(self, recent_limit=10):
        with self._lock:
            users = list(reversed(list(self._users.values())))
            users.sort(key=lambda u: u.created_at, reverse=True)
            return {
                "totalUsers": len(self._users),
                "totalReflections": len(self._reflections),
                "totalJournalEntries": len(self._journal),
                "totalWeeklyCompletions": len(self._weeks),
                "totalFeedback": len(self._feedback),
                "recentUsers": [u.to_dict() for u in users[:recent_limit]],
                "weeklyProgress": _weekly_progress(
                    [u.completed_suggestions for u in self._users.values()]
                ),
            }


# ---------------------------------------------------------------------
# App wiring
# ---------------------------------------------------------------------
def init_storage(app: Flask) -> Storage:
    backend = (app.config.get("STORAGE_BACKEND") or "sql").strip().lower()
    if backend == "memory":
        storage: Storage = MemoryStorage()
    elif backend == "sql":
        storage = SqlStorage()
    else:
        raise RuntimeError(f"Unknown STORAGE_BACKEND: {backend!r}")
    app.extensions["storage"] = storage
    app.logger.info("Storage backend: %s", backend)
    return storage


def get_storage() -> Storage:
    return current_app.extensions["storage"]
