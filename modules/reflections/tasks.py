# modules/reflections/tasks.py
"""
RQ background tasks for reflection / journal encouragement.

Used when ENRICHMENT_MODE=queue. The request stores the row with an empty
aiResponse and returns; the worker fills it in afterwards.
"""

from __future__ import annotations

import importlib
import logging
import os
from typing import Any, Dict, Optional

from flask import current_app
from redis import Redis
from rq import Queue, get_current_job

log = logging.getLogger(__name__)


# ----------------------------
# Queue / Redis helpers
# ----------------------------

DEFAULT_QUEUE_NAME = "hermitcove_queue"
DEFAULT_REDIS_URL = "redis://localhost:6379/0"


def _redis(url: Optional[str] = None) -> Redis:
    return Redis.from_url(url or current_app.config.get("REDIS_URL") or DEFAULT_REDIS_URL)


def get_queue(name: Optional[str] = None) -> Queue:
    """Queue named by app config RQ_QUEUE_NAME unless a name is given."""
    name = name or current_app.config.get("RQ_QUEUE_NAME") or DEFAULT_QUEUE_NAME
    return Queue(name, connection=_redis())


# ----------------------------
# Flask app context bootstrap
# ----------------------------

def _load_flask_app():
    """Load Flask app for worker context."""
    fl = (os.getenv("FLASK_APP") or "").strip()
    candidates = []
    if fl:
        candidates.append(fl)
    candidates.extend(["wsgi:app", "wsgi"])

    last_err = None
    for target in candidates:
        try:
            if ":" in target:
                mod_name, attr = target.split(":", 1)
                mod = importlib.import_module(mod_name)
                return getattr(mod, attr)
            mod = importlib.import_module(target)
            if hasattr(mod, "app"):
                return getattr(mod, "app")
        except (ImportError, AttributeError) as e:
            last_err = e

    raise RuntimeError(
        f"Could not import Flask app for worker. "
        f"Set FLASK_APP=module:app. Last error: {last_err}"
    )


def _enqueue(func, **kwargs) -> str:
    q = get_queue()
    job = q.enqueue(
        func,
        kwargs=kwargs,
        job_timeout=int(os.getenv("ENRICHMENT_JOB_TIMEOUT", "60")),
        result_ttl=int(os.getenv("RQ_RESULT_TTL", "500")),
        failure_ttl=int(os.getenv("RQ_FAILURE_TTL", "3600")),
    )
    return job.id


# ----------------------------
# Public API
# ----------------------------

def enqueue_reflection_enrichment(reflection_id: str) -> str:
    """Enqueue encouragement for a stored reflection. Returns RQ job_id."""
    return _enqueue(process_reflection_enrichment, reflection_id=reflection_id)


def enqueue_journal_enrichment(entry_id: str) -> str:
    return _enqueue(process_journal_enrichment, entry_id=entry_id)


def process_reflection_enrichment(*, reflection_id: str) -> Dict[str, Any]:
    from modules.reflections.service import enrich_reflection

    app = _load_flask_app()
    job = get_current_job()
    with app.app_context():
        record = enrich_reflection(reflection_id)
        log.info(
            "Reflection %s enriched (job=%s, sentiment=%s)",
            reflection_id, job.id if job else None, record.sentiment,
        )
        return {"ok": True, "reflection_id": reflection_id, "sentiment": record.sentiment}


def process_journal_enrichment(*, entry_id: str) -> Dict[str, Any]:
    from modules.reflections.service import enrich_journal_entry

    app = _load_flask_app()
    with app.app_context():
        enrich_journal_entry(entry_id)
        log.info("Journal entry %s enriched", entry_id)
        return {"ok": True, "entry_id": entry_id}

