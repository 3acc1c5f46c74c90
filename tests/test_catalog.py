import pytest

from modules.course.catalog import (
    CURRICULUM,
    CurriculumCatalog,
    Exercise,
    seed_curriculum,
)
from storage import MemoryStorage


def _exercises():
    return [
        Exercise(id=f"ex-{w}-{d}", week=w, day=d, title=t, description=desc, category=cat)
        for (w, d, t, desc, cat) in CURRICULUM
    ]


def test_curriculum_covers_the_grid():
    assert len(CURRICULUM) == 42
    assert {(w, d) for (w, d, *_rest) in CURRICULUM} == {
        (w, d) for w in range(1, 7) for d in range(1, 8)
    }


def test_list_all_is_ordered():
    catalog = CurriculumCatalog(reversed(_exercises()))
    positions = [(e.week, e.day) for e in catalog.list_all()]
    assert positions == sorted(positions)
    assert len(catalog) == 42


def test_lookups():
    catalog = CurriculumCatalog(_exercises())
    ex = catalog.get_by_week_day(3, 2)
    assert ex.title == "Introduce Yourself"
    assert catalog.get_by_id(ex.id) is ex
    assert catalog.get_by_week_day(3, 9) is None
    assert catalog.get_by_week_day(7, 1) is None
    assert catalog.get_by_id("nope") is None
    assert [e.day for e in catalog.list_week(4)] == list(range(1, 8))
    assert catalog.list_week(0) == ()


def test_week_themes():
    catalog = CurriculumCatalog(_exercises())
    assert [w.week for w in catalog.weeks()] == [1, 2, 3, 4, 5, 6]
    assert catalog.week_theme(6).title == "Confidence & Growth"
    assert catalog.week_theme(9) is None


def test_catalog_is_read_only():
    catalog = CurriculumCatalog(_exercises())
    ex = catalog.get_by_week_day(1, 1)
    with pytest.raises(AttributeError):
        ex.title = "changed"
    with pytest.raises(TypeError):
        catalog._by_id["x"] = ex


def test_incomplete_curriculum_is_rejected():
    with pytest.raises(ValueError):
        CurriculumCatalog(_exercises()[:41])


def test_duplicate_positions_are_rejected():
    rows = _exercises()
    rows[1] = Exercise(id="dup", week=1, day=1, title="x", description="x", category="awareness")
    with pytest.raises(ValueError):
        CurriculumCatalog(rows)


def test_seed_is_idempotent():
    storage = MemoryStorage()
    assert seed_curriculum(storage) == 42
    assert seed_curriculum(storage) == 0
    assert len(storage.list_suggestions()) == 42
    catalog = CurriculumCatalog.from_records(storage.list_suggestions())
    assert catalog.get_by_week_day(6, 7).title == "Plan Your Future"


def test_app_catalog_matches_stored_ids(app, storage, catalog):
    with app.app_context():
        stored = {s.id for s in storage.list_suggestions()}
    assert {e.id for e in catalog.list_all()} == stored
