import pytest

from app import create_app
from models import db

ADMIN_SECRET = "test-admin-secret"


def _config(backend):
    return {
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "STORAGE_BACKEND": backend,
        "OPENAI_API_KEY": None,
        "ENRICHMENT_MODE": "sync",
        "ADMIN_SECRET": ADMIN_SECRET,
        "ENABLE_TEST_ROUTES": True,
        "AUTO_MIGRATE": False,
        "FEEDBACK_EMAIL": None,
        "SMTP_HOST": None,
    }


@pytest.fixture(params=["memory", "sql"])
def app(request):
    app = create_app(_config(request.param))
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def make_app():
    """Build an extra app with config overrides (memory backend)."""
    def _make(**overrides):
        cfg = _config("memory")
        cfg.update(overrides)
        return create_app(cfg)

    return _make


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def catalog(app):
    return app.extensions["catalog"]


@pytest.fixture
def storage(app):
    return app.extensions["storage"]


@pytest.fixture
def make_user(client):
    def _make(name="Ava"):
        resp = client.post("/api/users", json={"name": name})
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()

    return _make


@pytest.fixture
def sid(catalog):
    """Exercise id for a (week, day) position."""
    def _sid(week, day):
        return catalog.get_by_week_day(week, day).id

    return _sid


@pytest.fixture
def reflect_and_complete(client, sid):
    def _run(user_id, week, day, text="It went better than I expected."):
        suggestion_id = sid(week, day)
        resp = client.post(
            "/api/reflections",
            json={"userId": user_id, "suggestionId": suggestion_id, "reflection": text},
        )
        assert resp.status_code == 201, resp.get_json()
        resp = client.post(
            f"/api/users/{user_id}/complete-suggestion",
            json={"suggestionId": suggestion_id},
        )
        assert resp.status_code == 200, resp.get_json()
        return resp.get_json()

    return _run
