"""Seed the curriculum into the configured database (idempotent).

    python seed.py
"""
from app import create_app
from modules.course.catalog import TOTAL_EXERCISES, seed_curriculum
from storage import get_storage

app = create_app()

with app.app_context():
    storage = get_storage()
    inserted = seed_curriculum(storage)
    total = len(storage.list_suggestions())
    app.logger.info("Seed complete: %s inserted, %s/%s exercises present.", inserted, total, TOTAL_EXERCISES)
