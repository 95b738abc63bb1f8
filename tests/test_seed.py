from concurrent.futures import ThreadPoolExecutor

from jee_tracker.db import get_connection, init_db
from jee_tracker.seed import is_seeded, load_canonical_syllabus, seed_if_empty
from jee_tracker.syllabus import load_syllabus


def _count(db_path, table):
    conn = get_connection(db_path)
    n = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
    conn.close()
    return n


def test_canonical_syllabus_shape():
    subjects = load_canonical_syllabus()
    assert [s["name"] for s in subjects] == ["Physics", "Chemistry", "Maths"]
    units = [u for s in subjects for u in s["units"]]
    topics = [t for u in units for t in u["topics"]]
    assert len(units) == 15
    assert len(topics) == 48
    # Every topic applies to at least one class
    assert all(t["class_11"] or t["class_12"] for t in topics)


def test_seed_canonical(tmp_db):
    init_db(tmp_db)
    assert seed_if_empty(tmp_db) is True
    assert _count(tmp_db, "subjects") == 3
    assert _count(tmp_db, "units") == 15
    assert _count(tmp_db, "topics") == 48


def test_is_seeded(tmp_db, small_syllabus):
    init_db(tmp_db)
    assert not is_seeded(tmp_db)
    seed_if_empty(tmp_db, small_syllabus)
    assert is_seeded(tmp_db)


def test_seed_is_idempotent(tmp_db, small_syllabus):
    init_db(tmp_db)
    seed_if_empty(tmp_db, small_syllabus)
    assert seed_if_empty(tmp_db, small_syllabus) is False
    assert _count(tmp_db, "subjects") == 2
    assert _count(tmp_db, "topics") == 6


def test_concurrent_seeding_inserts_once(tmp_db, small_syllabus):
    init_db(tmp_db)
    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(lambda _: seed_if_empty(tmp_db, small_syllabus), range(4)))
    assert results.count(True) == 1
    assert _count(tmp_db, "subjects") == 2
    assert _count(tmp_db, "units") == 3


def test_seed_fills_units_for_empty_subject(tmp_db, small_syllabus):
    init_db(tmp_db)
    conn = get_connection(tmp_db)
    conn.execute("INSERT INTO subjects (name, color) VALUES ('Physics', '#3b82f6')")
    conn.commit()
    conn.close()
    assert seed_if_empty(tmp_db, small_syllabus) is True
    subjects = load_syllabus(tmp_db)
    assert len(subjects) == 1
    assert [u.name for u in subjects[0].units] == ["Mechanics", "Electrostatics"]
    # Subjects missing entirely are not added once the table is populated
    assert _count(tmp_db, "subjects") == 1
