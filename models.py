import uuid
from datetime import datetime

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import Index, UniqueConstraint

db = SQLAlchemy()


def _uuid() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------
# Users (progress cursor lives on the user row)
# ---------------------------------------------------------------------
class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(120), nullable=False)

    # Frontier: the (week, day) the user is about to attempt
    current_week = db.Column(db.Integer, default=1, nullable=False)
    current_suggestion = db.Column(db.Integer, default=1, nullable=False)
    completed_suggestions = db.Column(db.Integer, default=0, nullable=False)

    # Terminal marker; day counter saturates at 7 after the 42nd completion
    course_completed_at = db.Column(db.DateTime, nullable=True)

    # Optimistic concurrency for progress writes
    version = db.Column(db.Integer, default=1, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    last_active_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    __table_args__ = (
        Index("ix_users_created_at", "created_at"),
    )

    def __repr__(self):
        return f"<User {self.id} w={self.current_week} d={self.current_suggestion} done={self.completed_suggestions}>"


# ---------------------------------------------------------------------
# Curriculum (seeded once, read-mostly)
# ---------------------------------------------------------------------
class Suggestion(db.Model):
    __tablename__ = "suggestions"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    week = db.Column(db.Integer, nullable=False)
    day = db.Column(db.Integer, nullable=False)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)
    category = db.Column(db.String(32), nullable=False)

    __table_args__ = (
        UniqueConstraint("week", "day", name="uq_suggestions_week_day"),
    )

    def __repr__(self):
        return f"<Suggestion {self.week}.{self.day} {self.title}>"


# ---------------------------------------------------------------------
# Reflections (one per user + exercise)
# ---------------------------------------------------------------------
class UserReflection(db.Model):
    __tablename__ = "user_reflections"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    user_id = db.Column(
        db.String(36),
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    suggestion_id = db.Column(
        db.String(36),
        db.ForeignKey("suggestions.id", ondelete="CASCADE"),
        nullable=False,
    )
    reflection = db.Column(db.Text, nullable=False)
    ai_response = db.Column(db.Text, nullable=True)
    sentiment = db.Column(db.String(16), nullable=True)  # positive | negative | neutral
    completed = db.Column(db.Boolean, default=False, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("user_id", "suggestion_id", name="uq_user_reflections_user_suggestion"),
    )

    def __repr__(self):
        return f"<UserReflection {self.id} u={self.user_id} s={self.suggestion_id} done={self.completed}>"


# ---------------------------------------------------------------------
# Mood journal
# ---------------------------------------------------------------------
class JournalEntry(db.Model):
    __tablename__ = "journal_entries"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    user_id = db.Column(
        db.String(36),
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    content = db.Column(db.Text, nullable=False)
    mood = db.Column(db.String(16), nullable=True)  # great | good | okay | struggling
    week = db.Column(db.Integer, nullable=True)
    day = db.Column(db.Integer, nullable=True)
    ai_encouragement = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_journal_entries_user_created", "user_id", "created_at"),
    )

    def __repr__(self):
        return f"<JournalEntry {self.id} u={self.user_id} mood={self.mood}>"


# ---------------------------------------------------------------------
# Week milestones (one per user + week)
# ---------------------------------------------------------------------
class WeeklyCompletion(db.Model):
    __tablename__ = "weekly_completions"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    user_id = db.Column(
        db.String(36),
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    week = db.Column(db.Integer, nullable=False)
    reflection = db.Column(db.Text, nullable=True)
    completed_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "week", name="uq_weekly_completions_user_week"),
    )

    def __repr__(self):
        return f"<WeeklyCompletion u={self.user_id} week={self.week}>"


# ---------------------------------------------------------------------
# Feedback to the creator (append-only)
# ---------------------------------------------------------------------
class Feedback(db.Model):
    __tablename__ = "feedback"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    message = db.Column(db.Text, nullable=False)
    user_agent = db.Column(db.String(512), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<Feedback {self.id} {self.created_at}>"
