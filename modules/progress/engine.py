# modules/progress/engine.py
"""
Progress state machine for the 42-step programme.

Pure functions over ProgressState; no storage, no Flask. The services in
modules/reflections and modules/weeks are the only callers that persist the
results.

Rules:
- Access: anything behind the frontier plus the frontier itself.
- Completion: +1 completed; day 7 rolls over to day 1 of the next week,
  clamped at week 6. The 42nd completion sets the course_completed marker
  and leaves the cursor saturated at (6, 7).
- Milestones come from completed_suggestions alone (week*7 and 42), never
  from the day counter.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, List, Literal, Optional, Tuple

from modules.common.errors import ValidationError
from modules.course.catalog import DAYS_PER_WEEK, TOTAL_EXERCISES, TOTAL_WEEKS

ExerciseState = Literal["locked", "current", "completed"]
Milestone = Literal["week_complete", "course_complete"]

WEEK_COMPLETE: Milestone = "week_complete"
COURSE_COMPLETE: Milestone = "course_complete"


__all__ = [
    "ProgressState",
    "as_int",
    "validate_position",
    "is_accessible",
    "frontier",
    "is_frontier",
    "exercise_state",
    "advance",
    "is_week_complete",
    "is_course_complete",
    "pending_week",
    "view_state",
    "crab_stage",
    "summarize",
    "WEEK_COMPLETE",
    "COURSE_COMPLETE",
]


# Shell-to-shore stages shown alongside the progress bar
CRAB_STAGES: Tuple[Dict[str, Any], ...] = (
    {"stage": 0, "description": "Hidden in shell"},
    {"stage": 1, "description": "Eyes peeking out"},
    {"stage": 2, "description": "Claws showing"},
    {"stage": 3, "description": "Legs emerging"},
    {"stage": 4, "description": "Half emerged"},
    {"stage": 5, "description": "Almost free"},
    {"stage": 6, "description": "Fully emerged!"},
)


@dataclass(frozen=True)
class ProgressState:
    current_week: int = 1
    current_suggestion: int = 1
    completed_suggestions: int = 0
    course_completed: bool = False

    @classmethod
    def from_user(cls, user) -> "ProgressState":
        return cls(
            current_week=int(user.current_week),
            current_suggestion=int(user.current_suggestion),
            completed_suggestions=int(user.completed_suggestions),
            course_completed=(
                getattr(user, "course_completed_at", None) is not None
                or int(user.completed_suggestions) >= TOTAL_EXERCISES
            ),
        )


# -----------------------------
# Position / access
# -----------------------------
def as_int(value: Any, field_name: str) -> int:
    """int() that refuses booleans and fractional floats."""
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError(f"{field_name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")


def validate_position(week: Any, day: Any) -> Tuple[int, int]:
    """Coerce and range-check a (week, day) pair; raises ValidationError."""
    w, d = as_int(week, "week"), as_int(day, "day")
    if not 1 <= w <= TOTAL_WEEKS:
        raise ValidationError(f"week must be between 1 and {TOTAL_WEEKS}")
    if not 1 <= d <= DAYS_PER_WEEK:
        raise ValidationError(f"day must be between 1 and {DAYS_PER_WEEK}")
    return w, d


def is_accessible(state: ProgressState, week: int, day: int) -> bool:
    return state.current_week > week or (
        state.current_week == week and state.current_suggestion >= day
    )


def frontier(state: ProgressState) -> Optional[Tuple[int, int]]:
    """Next exercise to attempt, or None once the course is complete."""
    if state.course_completed:
        return None
    return state.current_week, state.current_suggestion


def is_frontier(state: ProgressState, week: int, day: int) -> bool:
    return frontier(state) == (week, day)


def exercise_state(state: ProgressState, week: int, day: int) -> ExerciseState:
    if state.course_completed:
        return "completed"
    position = (week, day)
    cursor = (state.current_week, state.current_suggestion)
    if position < cursor:
        return "completed"
    if position == cursor:
        return "current"
    return "locked"


# -----------------------------
# Transition
# -----------------------------
def advance(state: ProgressState) -> Tuple[ProgressState, Optional[Milestone]]:
    if state.course_completed:
        raise ValidationError("The course is already complete")

    completed = state.completed_suggestions + 1
    if state.current_suggestion >= DAYS_PER_WEEK:
        if state.current_week >= TOTAL_WEEKS:
            # no week 7: stay on the last day
            week, day = TOTAL_WEEKS, DAYS_PER_WEEK
        else:
            week, day = state.current_week + 1, 1
    else:
        week, day = state.current_week, state.current_suggestion + 1

    course_completed = completed >= TOTAL_EXERCISES
    new_state = replace(
        state,
        current_week=week,
        current_suggestion=day,
        completed_suggestions=completed,
        course_completed=course_completed,
    )

    milestone: Optional[Milestone] = None
    if course_completed:
        milestone = COURSE_COMPLETE
    elif completed % DAYS_PER_WEEK == 0:
        milestone = WEEK_COMPLETE
    return new_state, milestone


# -----------------------------
# Milestones / views
# -----------------------------
def is_week_complete(state: ProgressState, week: int) -> bool:
    return state.completed_suggestions >= week * DAYS_PER_WEEK


def is_course_complete(state: ProgressState) -> bool:
    return state.completed_suggestions >= TOTAL_EXERCISES


def pending_week(state: ProgressState) -> Optional[int]:
    """Week that has just been finished but not yet continued from, if any."""
    if state.course_completed or is_course_complete(state):
        return None
    if state.current_suggestion == 1 and state.current_week > 1:
        prev = state.current_week - 1
        if is_week_complete(state, prev):
            return prev
    return None


def view_state(state: ProgressState, week_recorded: bool = False) -> Dict[str, Any]:
    """
    Derived state for the client:
      CourseComplete | WeekComplete(week) | Current(week, day)
    WeekComplete is reported while the cursor sits on day 1 of a new week
    and the previous week's seven exercises are done. Recording that week
    (``week_recorded``) is the continue step back to Current(week, 1).
    """
    if is_course_complete(state) or state.course_completed:
        return {"state": "CourseComplete"}
    prev = pending_week(state)
    if prev is not None and not week_recorded:
        return {"state": "WeekComplete", "week": prev}
    return {
        "state": "Current",
        "week": state.current_week,
        "day": state.current_suggestion,
    }


def crab_stage(completed_suggestions: int) -> Dict[str, Any]:
    # one stage per week's worth of progress
    stage = min(max(int(completed_suggestions), 0) // DAYS_PER_WEEK, TOTAL_WEEKS)
    return dict(CRAB_STAGES[stage])


def summarize(state: ProgressState, catalog=None, week_recorded: bool = False) -> Dict[str, Any]:
    cursor = frontier(state)
    weeks: List[Dict[str, Any]] = []
    for w in range(1, TOTAL_WEEKS + 1):
        days = [
            {"day": d, "state": exercise_state(state, w, d)}
            for d in range(1, DAYS_PER_WEEK + 1)
        ]
        entry: Dict[str, Any] = {
            "week": w,
            "complete": is_week_complete(state, w),
            "unlocked": is_accessible(state, w, 1),
            "days": days,
        }
        if catalog is not None:
            theme = catalog.week_theme(w)
            entry["title"] = theme.title if theme else None
            for item in days:
                ex = catalog.get_by_week_day(w, item["day"])
                item["suggestionId"] = ex.id if ex else None
                item["title"] = ex.title if ex else None
        weeks.append(entry)

    return {
        "completedSuggestions": state.completed_suggestions,
        "totalSuggestions": TOTAL_EXERCISES,
        "percentComplete": round(100.0 * state.completed_suggestions / TOTAL_EXERCISES, 2),
        "frontier": {"week": cursor[0], "day": cursor[1]} if cursor else None,
        "courseComplete": is_course_complete(state),
        "view": view_state(state, week_recorded),
        "crabStage": crab_stage(state.completed_suggestions),
        "weeks": weeks,
    }
