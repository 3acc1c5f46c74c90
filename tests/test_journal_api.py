import pytest

from modules.common.ai import JOURNAL_FALLBACK_MESSAGES, EncouragementGenerator
from modules.common.errors import EnrichmentUnavailable


class BrokenGenerator(EncouragementGenerator):
    def generate_journal_encouragement(self, journal_text, mood):
        raise EnrichmentUnavailable("timeout")


def _post(client, **body):
    return client.post("/api/journal", json=body)


def test_entry_with_mood_gets_encouragement(client, make_user):
    user = make_user()
    resp = _post(client, userId=user["id"], content="Spoke up in the meeting.", mood="good", week=1, day=3)
    assert resp.status_code == 201
    entry = resp.get_json()
    assert entry["mood"] == "good"
    assert (entry["week"], entry["day"]) == (1, 3)
    assert entry["aiEncouragement"] in JOURNAL_FALLBACK_MESSAGES


def test_entry_without_mood_is_not_enriched(client, make_user):
    user = make_user()
    entry = _post(client, userId=user["id"], content="Quiet day.").get_json()
    assert entry["mood"] is None
    assert entry["aiEncouragement"] is None


def test_enrichment_failure_still_stores(app, client, make_user):
    app.extensions["encouragement"] = BrokenGenerator()
    user = make_user()
    resp = _post(client, userId=user["id"], content="Rough one.", mood="struggling")
    assert resp.status_code == 201
    assert resp.get_json()["aiEncouragement"] in JOURNAL_FALLBACK_MESSAGES
    assert len(client.get(f"/api/users/{user['id']}/journal").get_json()) == 1


@pytest.mark.parametrize(
    "body",
    [
        {"content": ""},
        {"content": "   "},
        {"content": "ok", "mood": "elated"},
        {"content": "ok", "week": 7, "day": 1},
        {"content": "ok", "week": 1, "day": 0},
        {"content": "ok", "week": "three"},
        {"content": "ok", "week": 2.9, "day": 1},
        {"content": "ok", "week": 1, "day": 1.5},
        {"content": "ok", "week": True, "day": 1},
    ],
)
def test_invalid_entries_are_rejected(client, make_user, body):
    user = make_user()
    resp = _post(client, userId=user["id"], **body)
    assert resp.status_code == 400
    assert client.get(f"/api/users/{user['id']}/journal").get_json() == []


def test_unknown_user(client):
    assert _post(client, userId="ghost", content="hi").status_code == 404
    assert client.get("/api/users/ghost/journal").status_code == 404


def test_listing_is_newest_first(client, make_user):
    user = make_user()
    for text in ("monday", "tuesday", "wednesday"):
        _post(client, userId=user["id"], content=text)
    listed = [e["content"] for e in client.get(f"/api/users/{user['id']}/journal").get_json()]
    assert listed == ["wednesday", "tuesday", "monday"]


def test_worker_task_enriches_queued_entry(app, client, make_user, monkeypatch):
    import modules.reflections.tasks as tasks

    monkeypatch.setattr(tasks, "enqueue_journal_enrichment", lambda entry_id: "job-2")
    monkeypatch.setattr(tasks, "_load_flask_app", lambda: app)
    app.config["ENRICHMENT_MODE"] = "queue"

    user = make_user()
    entry = _post(client, userId=user["id"], content="Went to the cafe.", mood="great").get_json()
    assert entry["aiEncouragement"] is None

    tasks.process_journal_enrichment(entry_id=entry["id"])
    listed = client.get(f"/api/users/{user['id']}/journal").get_json()
    assert listed[0]["aiEncouragement"] in JOURNAL_FALLBACK_MESSAGES


@pytest.mark.parametrize("user_id", [["x"], {"a": 1}, 7, ""])
def test_malformed_user_id_is_rejected(client, user_id):
    resp = _post(client, userId=user_id, content="hello", mood="okay")
    assert resp.status_code == 400
    assert "userId" in resp.get_json()["error"]
