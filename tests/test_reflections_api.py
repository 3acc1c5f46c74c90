from types import SimpleNamespace

import pytest

from modules.common.ai import REFLECTION_FALLBACK_MESSAGES, EncouragementGenerator, Encouragement
from modules.common.errors import EnrichmentUnavailable
from storage import ProgressUpdate


class BrokenGenerator(EncouragementGenerator):
    def generate_reflection_encouragement(self, reflection_text, exercise_description):
        raise EnrichmentUnavailable("service down")

    def generate_journal_encouragement(self, journal_text, mood):
        raise EnrichmentUnavailable("service down")


class CannedGenerator(EncouragementGenerator):
    def generate_reflection_encouragement(self, reflection_text, exercise_description):
        return Encouragement(message=f"Proud of you for: {exercise_description[:10]}", sentiment="positive")

    def generate_journal_encouragement(self, journal_text, mood):
        return "Keep swimming 🐚"


def _submit(client, user_id, suggestion_id, text="I did it."):
    return client.post(
        "/api/reflections",
        json={"userId": user_id, "suggestionId": suggestion_id, "reflection": text},
    )


def _complete(client, user_id, suggestion_id):
    return client.post(
        f"/api/users/{user_id}/complete-suggestion", json={"suggestionId": suggestion_id}
    )


# -----------------------------
# Scenarios
# -----------------------------
def test_first_week_walkthrough(client, make_user, reflect_and_complete):
    ava = make_user("Ava")
    assert (ava["currentWeek"], ava["currentSuggestion"], ava["completedSuggestions"]) == (1, 1, 0)

    result = reflect_and_complete(ava["id"], 1, 1)
    assert (result["currentWeek"], result["currentSuggestion"], result["completedSuggestions"]) == (1, 2, 1)
    assert result["milestone"] is None

    for day in range(2, 8):
        result = reflect_and_complete(ava["id"], 1, day)

    assert (result["currentWeek"], result["currentSuggestion"], result["completedSuggestions"]) == (2, 1, 7)
    assert result["milestone"] == "week_complete"

    progress = client.get(f"/api/users/{ava['id']}/progress").get_json()
    assert progress["weeks"][0]["complete"] is True
    assert progress["view"] == {"state": "WeekComplete", "week": 1}


def test_last_exercise_completes_course(app, client, storage, reflect_and_complete):
    with app.app_context():
        user = storage.create_user(
            "Nearly",
            progress=ProgressUpdate(current_week=6, current_suggestion=7, completed_suggestions=41),
        )

    result = reflect_and_complete(user.id, 6, 7)
    assert result["completedSuggestions"] == 42
    assert (result["currentWeek"], result["currentSuggestion"]) == (6, 7)
    assert result["courseCompletedAt"] is not None
    assert result["milestone"] == "course_complete"

    progress = client.get(f"/api/users/{user.id}/progress").get_json()
    assert progress["view"] == {"state": "CourseComplete"}
    assert progress["frontier"] is None


# -----------------------------
# Submission
# -----------------------------
def test_reflection_is_stored_and_enriched(client, make_user, sid):
    user = make_user()
    resp = _submit(client, user["id"], sid(1, 1), "  I noticed my breath speeding up.  ")
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["reflection"] == "I noticed my breath speeding up."
    assert body["completed"] is False
    assert body["aiResponse"] in REFLECTION_FALLBACK_MESSAGES
    assert body["sentiment"] == "neutral"


@pytest.mark.parametrize("text", ["", "   ", "\n\t", None, 12])
def test_empty_reflection_is_rejected_without_a_row(client, make_user, sid, text):
    user = make_user()
    resp = _submit(client, user["id"], sid(1, 1), text)
    assert resp.status_code == 400
    assert client.get(f"/api/users/{user['id']}/reflections").get_json() == []


def test_reflection_on_locked_exercise_is_denied(client, make_user, sid):
    user = make_user()
    resp = _submit(client, user["id"], sid(1, 2))
    assert resp.status_code == 403
    assert client.get(f"/api/users/{user['id']}/reflections").get_json() == []


def test_reflection_unknown_user_or_exercise(client, make_user, sid):
    assert _submit(client, "ghost", sid(1, 1)).status_code == 404
    user = make_user()
    assert _submit(client, user["id"], "no-such-exercise").status_code == 404
    resp = client.post("/api/reflections", json={"userId": user["id"], "reflection": "hi"})
    assert resp.status_code == 400


def test_resubmission_updates_single_row(client, make_user, sid):
    user = make_user()
    first = _submit(client, user["id"], sid(1, 1), "first draft").get_json()
    second = _submit(client, user["id"], sid(1, 1), "second draft").get_json()
    assert second["id"] == first["id"]

    rows = client.get(f"/api/users/{user['id']}/reflections").get_json()
    assert len(rows) == 1
    assert rows[0]["reflection"] == "second draft"

    one = client.get(f"/api/reflections/{user['id']}/{sid(1, 1)}")
    assert one.status_code == 200
    assert one.get_json()["reflection"] == "second draft"


def test_get_missing_reflection_is_404(client, make_user, sid):
    user = make_user()
    assert client.get(f"/api/reflections/{user['id']}/{sid(1, 1)}").status_code == 404
    assert client.get(f"/api/users/ghost/reflections").status_code == 404


def test_enrichment_failure_falls_back(app, client, make_user, sid):
    app.extensions["encouragement"] = BrokenGenerator()
    user = make_user()
    resp = _submit(client, user["id"], sid(1, 1))
    assert resp.status_code == 201
    assert resp.get_json()["aiResponse"] in REFLECTION_FALLBACK_MESSAGES
    assert resp.get_json()["sentiment"] == "neutral"


def test_generator_output_is_stored(app, client, make_user, sid, catalog):
    app.extensions["encouragement"] = CannedGenerator()
    user = make_user()
    body = _submit(client, user["id"], sid(1, 1)).get_json()
    assert body["aiResponse"] == f"Proud of you for: {catalog.get_by_week_day(1, 1).description[:10]}"
    assert body["sentiment"] == "positive"


def test_queue_mode_leaves_enrichment_pending(app, client, make_user, sid, monkeypatch):
    import modules.reflections.tasks as tasks

    queued = []
    monkeypatch.setattr(tasks, "enqueue_reflection_enrichment", lambda rid: queued.append(rid) or "job-1")
    app.config["ENRICHMENT_MODE"] = "queue"

    user = make_user()
    body = _submit(client, user["id"], sid(1, 1)).get_json()
    assert queued == [body["id"]]
    assert body["aiResponse"] is None


def test_queue_mode_falls_back_inline_when_redis_is_down(app, client, make_user, sid, monkeypatch):
    import modules.reflections.tasks as tasks

    def boom(rid):
        raise ConnectionError("redis unavailable")

    monkeypatch.setattr(tasks, "enqueue_reflection_enrichment", boom)
    app.config["ENRICHMENT_MODE"] = "queue"

    user = make_user()
    body = _submit(client, user["id"], sid(1, 1)).get_json()
    assert body["aiResponse"] in REFLECTION_FALLBACK_MESSAGES


# -----------------------------
# Completion
# -----------------------------
def test_completion_requires_reflection(client, make_user, sid):
    user = make_user()
    resp = _complete(client, user["id"], sid(1, 1))
    assert resp.status_code == 400
    assert client.get(f"/api/users/{user['id']}").get_json()["completedSuggestions"] == 0


def test_completion_of_locked_exercise_is_denied(client, make_user, sid):
    user = make_user()
    assert _complete(client, user["id"], sid(2, 1)).status_code == 403


def test_completion_validation(client, make_user):
    user = make_user()
    assert _complete(client, user["id"], None).status_code == 400
    assert _complete(client, user["id"], "nope").status_code == 404
    assert _complete(client, "ghost", "nope").status_code == 404


def test_double_completion_advances_once(client, make_user, sid):
    user = make_user()
    _submit(client, user["id"], sid(1, 1))
    first = _complete(client, user["id"], sid(1, 1)).get_json()
    second = _complete(client, user["id"], sid(1, 1))
    assert second.status_code == 200
    assert second.get_json()["completedSuggestions"] == first["completedSuggestions"] == 1
    assert second.get_json()["milestone"] is None


def test_completing_earlier_exercise_does_not_move_cursor(app, client, storage, sid):
    with app.app_context():
        user = storage.create_user(
            "Returning",
            progress=ProgressUpdate(current_week=1, current_suggestion=4, completed_suggestions=3),
        )
    _submit(client, user.id, sid(1, 2), "looking back")
    resp = _complete(client, user.id, sid(1, 2)).get_json()
    assert (resp["currentWeek"], resp["currentSuggestion"], resp["completedSuggestions"]) == (1, 4, 3)
    assert client.get(f"/api/reflections/{user.id}/{sid(1, 2)}").get_json()["completed"] is True


def test_resubmission_keeps_completed_flag(client, make_user, sid, reflect_and_complete):
    user = make_user()
    reflect_and_complete(user["id"], 1, 1)
    body = _submit(client, user["id"], sid(1, 1), "edited later").get_json()
    assert body["completed"] is True
    assert body["reflection"] == "edited later"


def test_completed_count_never_decreases(client, make_user, sid, reflect_and_complete):
    user = make_user()
    seen = [0]
    for day in range(1, 5):
        reflect_and_complete(user["id"], 1, day)
        # noise: repeat, locked, and past completions
        _complete(client, user["id"], sid(1, day))
        _complete(client, user["id"], sid(3, 1))
        _submit(client, user["id"], sid(1, 1), "again")
        seen.append(client.get(f"/api/users/{user['id']}").get_json()["completedSuggestions"])
    assert seen == sorted(seen)
    assert seen[-1] == 4


def test_worker_task_fills_in_enrichment(app, client, make_user, sid, monkeypatch):
    import modules.reflections.tasks as tasks

    monkeypatch.setattr(tasks, "enqueue_reflection_enrichment", lambda rid: "job-1")
    monkeypatch.setattr(tasks, "_load_flask_app", lambda: app)
    app.config["ENRICHMENT_MODE"] = "queue"

    user = make_user()
    body = _submit(client, user["id"], sid(1, 1)).get_json()
    assert body["aiResponse"] is None

    result = tasks.process_reflection_enrichment(reflection_id=body["id"])
    assert result["ok"] is True
    stored = client.get(f"/api/reflections/{user['id']}/{sid(1, 1)}").get_json()
    assert stored["aiResponse"] in REFLECTION_FALLBACK_MESSAGES


@pytest.mark.parametrize("user_id", [["x"], {"a": 1}, 7, None])
def test_malformed_user_id_is_rejected(client, sid, user_id):
    resp = _submit(client, user_id, sid(1, 1))
    assert resp.status_code == 400
    assert "userId" in resp.get_json()["error"]


def test_enqueue_follows_app_config(app, monkeypatch):
    import modules.reflections.tasks as tasks

    seen = {}

    class RecordingQueue:
        def __init__(self, name, connection):
            seen["queue"] = name

        def enqueue(self, func, **kwargs):
            seen["kwargs"] = kwargs["kwargs"]
            return SimpleNamespace(id="job-9")

    monkeypatch.setattr(tasks, "Queue", RecordingQueue)
    monkeypatch.setattr(tasks.Redis, "from_url", lambda url: seen.setdefault("url", url))
    app.config.update(RQ_QUEUE_NAME="cove_test", REDIS_URL="redis://cache:6379/3")

    with app.app_context():
        assert tasks.enqueue_reflection_enrichment("r-1") == "job-9"
    assert seen == {"url": "redis://cache:6379/3", "queue": "cove_test", "kwargs": {"reflection_id": "r-1"}}
