import logging
import os
import sys
from datetime import datetime

# Alembic
from alembic import command
from alembic.config import Config
from dotenv import load_dotenv
from flask import Flask, jsonify
from logtail import LogtailHandler

from helpers import env_flag
from models import db
from modules.common.ai import init_encouragement
from modules.common.errors import register_error_handlers
from modules.course.catalog import init_catalog
from storage import init_storage

# Blueprints
from modules.admin.routes import admin_bp
from modules.course.routes import course_bp
from modules.feedback.routes import feedback_bp
from modules.reflections.routes import reflections_bp
from modules.users.routes import dev_bp, users_bp
from modules.weeks.routes import weeks_bp

load_dotenv()


def _is_production() -> bool:
    return os.getenv("FLASK_ENV") == "production" or os.getenv("ENV") == "production"


# -------------------- Config ---------------------------
def load_config() -> dict:
    db_url = os.getenv("DATABASE_URL") or os.getenv("DEV_DATABASE_URI") or "sqlite:///hermit_cove.db"
    return {
        "SECRET_KEY": os.getenv("SECRET_KEY") or os.getenv("FLASK_SECRET_KEY") or "dev-secret-key",
        "SQLALCHEMY_DATABASE_URI": db_url,
        "SQLALCHEMY_TRACK_MODIFICATIONS": False,
        "MAX_CONTENT_LENGTH": 1 * 1024 * 1024,
        "STORAGE_BACKEND": os.getenv("STORAGE_BACKEND", "sql"),
        "OPENAI_API_KEY": os.getenv("OPENAI_API_KEY"),
        "OPENAI_MODEL_FAST": os.getenv("OPENAI_MODEL_FAST", "gpt-4o-mini"),
        "ENRICHMENT_TIMEOUT_SECS": float(os.getenv("ENRICHMENT_TIMEOUT_SECS", "10")),
        "ENRICHMENT_MODE": os.getenv("ENRICHMENT_MODE", "sync"),
        "REDIS_URL": os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        "RQ_QUEUE_NAME": os.getenv("RQ_QUEUE_NAME", "hermitcove_queue"),
        "ADMIN_SECRET": os.getenv("ADMIN_SECRET"),
        "FEEDBACK_EMAIL": os.getenv("FEEDBACK_EMAIL"),
        "SMTP_HOST": os.getenv("SMTP_HOST"),
        "SMTP_PORT": int(os.getenv("SMTP_PORT", "587")),
        "SMTP_USER": os.getenv("SMTP_USER"),
        "SMTP_PASSWORD": os.getenv("SMTP_PASSWORD"),
        "SMTP_FROM": os.getenv("SMTP_FROM"),
        "ENABLE_TEST_ROUTES": env_flag("ENABLE_TEST_ROUTES", default=not _is_production()),
        "AUTO_MIGRATE": env_flag("AUTO_MIGRATE", default=True),
    }


# -------------------- Auto Alembic ---------------------
def run_auto_migrations(app: Flask) -> None:
    from sqlalchemy import create_engine, inspect, text

    if not app.config.get("AUTO_MIGRATE"):
        return

    db_url = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if db_url.startswith("sqlite"):
        app.logger.info("AUTO_MIGRATE skipped (SQLite dev).")
        return

    cfg = Config(os.path.join(app.root_path, "alembic.ini"))
    cfg.set_main_option("script_location", os.path.join(app.root_path, "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)

    def _upgrade():
        with app.app_context():
            command.upgrade(cfg, "head")

    try:
        _upgrade()
        app.logger.info("Alembic migrations applied (upgrade head).")
        return
    except Exception as e1:
        msg1 = str(e1) or ""
        app.logger.error(f"Alembic upgrade failed (1st try): {msg1}")

    if "Can't locate revision" in msg1 or "No such revision" in msg1:
        try:
            app.logger.warning("Dropping alembic_version to clear stale revision pointer...")
            engine = create_engine(db_url)
            with engine.begin() as conn:
                conn.execute(text("DROP TABLE IF EXISTS alembic_version"))
            with app.app_context():
                command.stamp(cfg, "base")
                command.upgrade(cfg, "head")
            app.logger.info("Alembic migrations applied after stamp base.")
            return
        except Exception as e2:
            app.logger.error(f"Alembic upgrade failed after stamp base: {e2}")

    if "already exists" in msg1 or "DuplicateTable" in msg1:
        try:
            existing = set(inspect(create_engine(db_url)).get_table_names())
            if {"users", "suggestions"} <= existing:
                # schema was created outside Alembic; adopt it
                with app.app_context():
                    command.stamp(cfg, "head")
                app.logger.warning("Existing schema stamped to Alembic head.")
                return
        except Exception as e3:
            app.logger.error(f"Alembic stamp of existing schema failed: {e3}")

    raise RuntimeError("Database migrations could not be applied; see log above.")


# -------------------- App factory ----------------------
def create_app(test_config=None):
    app = Flask(__name__)

    # Logging
    handlers = [logging.StreamHandler(sys.stdout)]
    token = os.getenv("LOGTAIL_TOKEN")
    if token:
        handlers.append(LogtailHandler(source_token=token))
    logging.basicConfig(level=logging.INFO, handlers=handlers)
    app.logger.handlers = handlers
    app.logger.setLevel(logging.INFO)

    # Core config
    app.config.update(load_config())
    if test_config:
        app.config.update(test_config)

    db_url = app.config["SQLALCHEMY_DATABASE_URI"]
    if db_url.startswith("postgres://"):
        app.config["SQLALCHEMY_DATABASE_URI"] = db_url.replace("postgres://", "postgresql://", 1)

    if _is_production():
        app.config.update(
            SESSION_COOKIE_SECURE=True,
            SESSION_COOKIE_SAMESITE="Lax",
        )
        from werkzeug.middleware.proxy_fix import ProxyFix

        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    # Extensions
    db.init_app(app)
    register_error_handlers(app)

    # Blueprints
    app.register_blueprint(users_bp, url_prefix="/api")
    app.register_blueprint(course_bp, url_prefix="/api")
    app.register_blueprint(reflections_bp, url_prefix="/api")
    app.register_blueprint(weeks_bp, url_prefix="/api")
    app.register_blueprint(feedback_bp, url_prefix="/api")
    app.register_blueprint(admin_bp, url_prefix="/api")
    if app.config.get("ENABLE_TEST_ROUTES"):
        app.register_blueprint(dev_bp, url_prefix="/api")
        app.logger.warning("ENABLE_TEST_ROUTES is on: /api/users/test-complete is exposed.")

    @app.route("/health", endpoint="health")
    def health():
        return jsonify({"status": "ok", "time": datetime.utcnow().isoformat()})

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(500)
    def srv_error(e):
        app.logger.exception("Unhandled 500 error")
        db.session.rollback()
        return jsonify({"error": "Internal server error"}), 500

    @app.teardown_request
    def _teardown_request(exc):
        if exc:
            db.session.rollback()

    # Schema: create_all for SQLite dev/tests, Alembic everywhere else
    if (app.config.get("STORAGE_BACKEND") or "sql").strip().lower() == "sql":
        with app.app_context():
            is_sqlite = str(app.config["SQLALCHEMY_DATABASE_URI"]).startswith("sqlite")
            if is_sqlite and not _is_production():
                db.create_all()
        run_auto_migrations(app)

    storage = init_storage(app)
    init_catalog(app, storage)
    init_encouragement(app)
    return app
