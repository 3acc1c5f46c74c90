import os

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

TABLES = {
    "users",
    "suggestions",
    "user_reflections",
    "journal_entries",
    "weekly_completions",
    "feedback",
}


def _alembic_config(db_url):
    cfg = Config(os.path.join(ROOT, "alembic.ini"))
    cfg.set_main_option("script_location", os.path.join(ROOT, "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    return cfg


def test_upgrade_targets_configured_url_over_environment(tmp_path, monkeypatch):
    target = tmp_path / "cove.db"
    elsewhere = tmp_path / "elsewhere.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{elsewhere}")

    command.upgrade(_alembic_config(f"sqlite:///{target}"), "head")

    engine = create_engine(f"sqlite:///{target}")
    assert TABLES <= set(inspect(engine).get_table_names())
    engine.dispose()
    assert not elsewhere.exists()


def test_downgrade_removes_schema(tmp_path):
    url = f"sqlite:///{tmp_path / 'cove.db'}"
    cfg = _alembic_config(url)
    command.upgrade(cfg, "head")
    command.downgrade(cfg, "base")

    engine = create_engine(url)
    assert TABLES.isdisjoint(inspect(engine).get_table_names())
    engine.dispose()
