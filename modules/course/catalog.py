# modules/course/catalog.py
"""
Curriculum catalog: the fixed 6-week, 42-exercise programme.

CURRICULUM is the seed data. At startup seed_curriculum() makes sure the
store holds it, then init_catalog() builds one immutable CurriculumCatalog
from the stored rows (so exercise ids match the database) and parks it on
app.extensions. Nothing mutates the catalog after that.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, Optional, Tuple

from flask import Flask, current_app

from modules.common.errors import StorageError

TOTAL_WEEKS = 6
DAYS_PER_WEEK = 7
TOTAL_EXERCISES = TOTAL_WEEKS * DAYS_PER_WEEK


@dataclass(frozen=True)
class Exercise:
    id: str
    week: int
    day: int
    title: str
    description: str
    category: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "week": self.week,
            "day": self.day,
            "title": self.title,
            "description": self.description,
            "category": self.category,
        }


@dataclass(frozen=True)
class WeekTheme:
    week: int
    title: str
    description: str
    theme: str

    def to_dict(self) -> dict:
        return {
            "week": self.week,
            "title": self.title,
            "description": self.description,
            "theme": self.theme,
        }


WEEK_THEMES: Tuple[WeekTheme, ...] = (
    WeekTheme(1, "Building Awareness", "Start by understanding your social anxiety patterns and triggers", "awareness"),
    WeekTheme(2, "Understanding Your Comfort Zone", "Explore the boundaries of your comfort zone with gentle exercises", "comfort"),
    WeekTheme(3, "Small Interactions", "Practice brief, low-pressure social interactions", "interaction"),
    WeekTheme(4, "Group Settings", "Build confidence in group environments", "group"),
    WeekTheme(5, "Deeper Connections", "Form more meaningful relationships and conversations", "connection"),
    WeekTheme(6, "Confidence & Growth", "Embrace your social confidence and plan for continued growth", "confidence"),
)


# (week, day, title, description, category)
CURRICULUM: Tuple[Tuple[int, int, str, str, str], ...] = (
    # Week 1: Building Awareness
    (1, 1, "Notice Your Breathing", "Spend 5 minutes today observing your breathing patterns in social situations. Don't try to change anything, just notice when your breathing becomes shallow or rapid.", "awareness"),
    (1, 2, "Body Scan Check-in", "Before entering any social space, do a quick body scan. Notice where you hold tension and gently relax those areas.", "awareness"),
    (1, 3, "Thought Observation", "Write down 3 thoughts you have before a social interaction. Don't judge them, just observe and note the patterns.", "awareness"),
    (1, 4, "Comfort Zone Mapping", "Draw or list your current comfort zone. What social situations feel easy? Which ones feel challenging?", "awareness"),
    (1, 5, "Anxiety Trigger Journal", "Keep a small notebook and jot down what specific social triggers make you feel anxious throughout the day.", "awareness"),
    (1, 6, "Self-Compassion Practice", "When you notice self-critical thoughts about social interactions, practice speaking to yourself as you would a good friend.", "awareness"),
    (1, 7, "Celebration Ritual", "Create a small celebration ritual for completing your first week. This could be a favorite treat, activity, or moment of acknowledgment.", "awareness"),

    # Week 2: Understanding Your Comfort Zone
    (2, 1, "Smile at Yourself", "Practice smiling genuinely at yourself in the mirror for 30 seconds. Notice how it feels and affects your mood.", "comfort"),
    (2, 2, "Eye Contact with Cashiers", "Make brief, friendly eye contact with cashiers or service workers. Start with just a moment of connection.", "comfort"),
    (2, 3, "Thank You Practice", "Make it a point to say 'thank you' with genuine appreciation to at least 3 people today, maintaining eye contact.", "comfort"),
    (2, 4, "Hold the Door", "When approaching a door and someone is behind you, hold it open for them. A simple 'here you go' or just a smile works perfectly.", "comfort"),
    (2, 5, "Weather Comment", "Make one casual comment about the weather to someone (cashier, neighbor, coworker). Keep it simple and genuine.", "comfort"),
    (2, 6, "Compliment Someone", "Give one genuine compliment to someone today. It could be about their shirt, helpfulness, or anything authentic you notice.", "comfort"),
    (2, 7, "Phone Call Practice", "Make one phone call instead of sending a text. It could be to order food, ask about store hours, or call a family member.", "comfort"),

    # Week 3: Small Interactions
    (3, 1, "Ask for Help", "Ask someone for small help or directions, even if you already know the answer. Practice receiving assistance gracefully.", "interaction"),
    (3, 2, "Introduce Yourself", "Introduce yourself to one new person today - a neighbor, coworker, or someone in your regular environment.", "interaction"),
    (3, 3, "Join a Short Conversation", "Add one comment or question to an existing conversation. Listen for natural entry points.", "interaction"),
    (3, 4, "Express an Opinion", "Share a mild opinion about something neutral (weather, local event, TV show) in a conversation.", "interaction"),
    (3, 5, "Ask Follow-up Questions", "When someone shares something with you, ask one follow-up question to show interest and keep the conversation flowing.", "interaction"),
    (3, 6, "Share Something Personal", "Share one small, positive personal detail (hobby, weekend plan, or interest) in a conversation.", "interaction"),
    (3, 7, "Initiate a Conversation", "Start a brief conversation with someone new. A simple 'How's your day going?' can be a great opener.", "interaction"),

    # Week 4: Group Settings
    (4, 1, "Attend a Small Group", "Join a small group activity (work meeting, class, community event) and commit to staying for the full duration.", "group"),
    (4, 2, "Speak Up in a Group", "Contribute at least one comment or question in a group setting. Choose something low-stakes to share.", "group"),
    (4, 3, "Agree with Someone", "When someone in a group says something you agree with, voice your agreement: 'I think that's a great point' or 'I agree.'", "group"),
    (4, 4, "Ask a Group Question", "Ask one question to the group about the topic being discussed. This shows engagement and interest.", "group"),
    (4, 5, "Include Someone Quiet", "If you notice someone being quiet in a group, gently invite their input: 'What do you think about this, [name]?'", "group"),
    (4, 6, "Share a Resource", "Share something helpful with the group - a link, book recommendation, or useful information related to your discussion.", "group"),
    (4, 7, "Suggest a Group Activity", "Propose a small group activity or suggest continuing a conversation over coffee/lunch with interested members.", "group"),

    # Week 5: Deeper Connections
    (5, 1, "Share a Challenge", "Share a current challenge you're facing (appropriately) with someone you feel comfortable with and ask for their perspective.", "connection"),
    (5, 2, "Express Vulnerability", "Share something you're learning or working on improving about yourself. Vulnerability builds deeper connections.", "connection"),
    (5, 3, "Ask About Someone's Interests", "Ask someone about something they're passionate about and really listen to their answer. Show genuine curiosity.", "connection"),
    (5, 4, "Offer Support", "If someone mentions a challenge, offer specific support: 'I'd be happy to help with that' or 'Would you like to talk about it?'", "connection"),
    (5, 5, "Share a Success", "Share a recent win or something you're proud of with someone. Practice receiving positive feedback gracefully.", "connection"),
    (5, 6, "Make Plans", "Suggest specific plans with someone you've been connecting with. It could be coffee, a walk, or attending an event together.", "connection"),
    (5, 7, "Express Appreciation", "Tell someone specifically how they've helped or positively impacted you. Be detailed about what you appreciate.", "connection"),

    # Week 6: Confidence & Growth
    (6, 1, "Lead a Conversation", "Take the lead in directing a conversation toward a topic you're knowledgeable or passionate about.", "confidence"),
    (6, 2, "Handle Disagreement", "When you disagree with someone, practice expressing your different viewpoint respectfully and calmly.", "confidence"),
    (6, 3, "Public Speaking Moment", "Speak up in a larger group setting - make an announcement, ask a question in a meeting, or share during a presentation.", "confidence"),
    (6, 4, "Network Intentionally", "Attend a networking event, social gathering, or community meeting with the goal of meeting 2-3 new people.", "confidence"),
    (6, 5, "Set a Boundary", "Practice setting a kind but firm boundary in a social situation when needed. Use 'I' statements and be direct.", "confidence"),
    (6, 6, "Celebrate Your Growth", "Share your social anxiety journey and growth with someone you trust. Acknowledge how far you've come.", "confidence"),
    (6, 7, "Plan Your Future", "Create a plan for continuing your social growth beyond this program. Set 2-3 specific goals for the next month.", "confidence"),
)


class CurriculumCatalog:
    """Read-only view over the seeded exercises."""

    def __init__(self, exercises: Iterable[Exercise], weeks: Iterable[WeekTheme] = WEEK_THEMES):
        ordered = tuple(sorted(exercises, key=lambda e: (e.week, e.day)))
        if len(ordered) != TOTAL_EXERCISES:
            raise ValueError(f"Curriculum must hold {TOTAL_EXERCISES} exercises, got {len(ordered)}")

        self._exercises = ordered
        self._by_id = MappingProxyType({e.id: e for e in ordered})
        self._by_position = MappingProxyType({(e.week, e.day): e for e in ordered})
        if len(self._by_position) != TOTAL_EXERCISES:
            raise ValueError("Curriculum has duplicate (week, day) positions")
        self._weeks = tuple(sorted(weeks, key=lambda w: w.week))

    @classmethod
    def from_records(cls, rows) -> "CurriculumCatalog":
        return cls(
            Exercise(
                id=r.id,
                week=r.week,
                day=r.day,
                title=r.title,
                description=r.description,
                category=r.category,
            )
            for r in rows
        )

    def list_all(self) -> Tuple[Exercise, ...]:
        return self._exercises

    def list_week(self, week: int) -> Tuple[Exercise, ...]:
        return tuple(e for e in self._exercises if e.week == week)

    def get_by_week_day(self, week: int, day: int) -> Optional[Exercise]:
        return self._by_position.get((week, day))

    def get_by_id(self, exercise_id: str) -> Optional[Exercise]:
        return self._by_id.get(exercise_id)

    def weeks(self) -> Tuple[WeekTheme, ...]:
        return self._weeks

    def week_theme(self, week: int) -> Optional[WeekTheme]:
        for w in self._weeks:
            if w.week == week:
                return w
        return None

    def __len__(self) -> int:
        return len(self._exercises)


def _seed_rows() -> list[Dict[str, object]]:
    return [
        {"week": w, "day": d, "title": t, "description": desc, "category": cat}
        for (w, d, t, desc, cat) in CURRICULUM
    ]


def seed_curriculum(storage) -> int:
    """Insert any missing curriculum positions. Returns the number inserted."""
    existing = {(s.week, s.day) for s in storage.list_suggestions()}
    missing = [row for row in _seed_rows() if (row["week"], row["day"]) not in existing]
    if not missing:
        return 0
    return storage.add_suggestions(missing)


def init_catalog(app: Flask, storage) -> CurriculumCatalog:
    with app.app_context():
        try:
            inserted = seed_curriculum(storage)
            if inserted:
                app.logger.info("Seeded %s curriculum exercises.", inserted)
        except StorageError:
            # another worker process seeded first (unique week/day)
            app.logger.warning("Curriculum seed skipped; reloading existing rows.")
        catalog = CurriculumCatalog.from_records(storage.list_suggestions())
    app.extensions["catalog"] = catalog
    return catalog


def get_catalog() -> CurriculumCatalog:
    return current_app.extensions["catalog"]
