from storage import ProgressUpdate


def _user_with(app, storage, completed):
    week, day = divmod(completed, 7) if completed < 42 else (5, 6)
    with app.app_context():
        return storage.create_user(
            "Walker",
            progress=ProgressUpdate(
                current_week=week + 1, current_suggestion=day + 1, completed_suggestions=completed
            ),
        )


def test_record_completed_week(app, client, storage):
    user = _user_with(app, storage, 7)
    resp = client.post(f"/api/users/{user.id}/complete-week", json={"week": 1, "reflection": "I feel calmer."})
    assert resp.status_code == 200
    record = resp.get_json()
    assert record["week"] == 1
    assert record["reflection"] == "I feel calmer."

    fetched = client.get(f"/api/users/{user.id}/weeks/1/completion")
    assert fetched.status_code == 200
    assert fetched.get_json()["id"] == record["id"]


def test_incomplete_week_is_denied(app, client, storage):
    user = _user_with(app, storage, 6)
    resp = client.post(f"/api/users/{user.id}/complete-week", json={"week": 1})
    assert resp.status_code == 403
    assert client.get(f"/api/users/{user.id}/weeks/1/completion").status_code == 404


def test_resubmission_overwrites(app, client, storage):
    user = _user_with(app, storage, 14)
    first = client.post(f"/api/users/{user.id}/complete-week", json={"week": 2, "reflection": "a"}).get_json()
    second = client.post(f"/api/users/{user.id}/complete-week", json={"week": 2, "reflection": "b"}).get_json()
    assert second["id"] == first["id"]
    assert client.get(f"/api/users/{user.id}/weeks/2/completion").get_json()["reflection"] == "b"
    with app.app_context():
        assert storage.stats()["totalWeeklyCompletions"] == 1


def test_blank_reflection_is_stored_as_null(app, client, storage):
    user = _user_with(app, storage, 7)
    record = client.post(f"/api/users/{user.id}/complete-week", json={"week": 1, "reflection": "  "}).get_json()
    assert record["reflection"] is None


def test_week_validation(app, client, storage):
    user = _user_with(app, storage, 42)
    for week in (0, 7, "x", None):
        resp = client.post(f"/api/users/{user.id}/complete-week", json={"week": week})
        assert resp.status_code == 400
    assert client.post("/api/users/ghost/complete-week", json={"week": 1}).status_code == 404
    assert client.get(f"/api/users/{user.id}/weeks/9/completion").status_code == 400


def test_recording_the_week_moves_the_view_on(app, client, storage):
    user = _user_with(app, storage, 14)
    progress_url = f"/api/users/{user.id}/progress"
    assert client.get(progress_url).get_json()["view"] == {"state": "WeekComplete", "week": 2}

    # an older week does not count as continuing from this one
    client.post(f"/api/users/{user.id}/complete-week", json={"week": 1})
    assert client.get(progress_url).get_json()["view"] == {"state": "WeekComplete", "week": 2}

    resp = client.post(f"/api/users/{user.id}/complete-week", json={"week": 2, "reflection": "Ready."})
    assert resp.status_code == 200
    assert client.get(progress_url).get_json()["view"] == {"state": "Current", "week": 3, "day": 1}


def test_fractional_and_boolean_weeks_are_rejected(app, client, storage):
    user = _user_with(app, storage, 14)
    for week in (1.5, 2.9, True):
        resp = client.post(f"/api/users/{user.id}/complete-week", json={"week": week})
        assert resp.status_code == 400
    assert client.post(f"/api/users/{user.id}/complete-week", json={"week": 2.0}).status_code == 200
