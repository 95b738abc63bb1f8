"""Seed the database with the canonical JEE Main syllabus."""
import json
import logging
from pathlib import Path

from jee_tracker.db import get_connection, transaction

logger = logging.getLogger(__name__)

CONTENT_DIR = Path(__file__).parent / "content"


def load_canonical_syllabus() -> list[dict]:
    data = json.loads((CONTENT_DIR / "syllabus.json").read_text())
    return data["subjects"]


def is_seeded(db_path: str) -> bool:
    """Check whether the database already has any subjects."""
    conn = get_connection(db_path)
    count = conn.execute("SELECT COUNT(*) FROM subjects").fetchone()[0]
    conn.close()
    return count > 0


def _insert_units(conn, subject_id: int, units: list[dict]) -> None:
    for unit in units:
        cur = conn.execute(
            "INSERT INTO units (subject_id, name, display_order) VALUES (?, ?, ?)",
            (subject_id, unit["name"], unit["order"]),
        )
        unit_id = cur.lastrowid
        conn.executemany(
            """INSERT INTO topics
            (unit_id, name, display_order, is_important, weightage, is_class_11, is_class_12)
            VALUES (?, ?, ?, ?, ?, ?, ?)""",
            [
                (unit_id, t["name"], t["order"], int(t.get("is_important", False)),
                 t.get("weightage"), int(t["class_11"]), int(t["class_12"]))
                for t in unit["topics"]
            ],
        )


def seed_if_empty(db_path: str, subjects: list[dict] | None = None) -> bool:
    """Populate the syllabus tree once. Safe to call on every start.

    The emptiness check and the inserts run under one write lock, so two
    processes starting together seed at most once. When subjects already
    exist, canonical subjects that have no units yet get theirs filled in.
    Returns True if anything was inserted.
    """
    if subjects is None:
        subjects = load_canonical_syllabus()
    inserted = False
    with transaction(db_path, immediate=True) as conn:
        existing = conn.execute("SELECT id, name FROM subjects").fetchall()
        if not existing:
            for subject in subjects:
                cur = conn.execute(
                    "INSERT INTO subjects (name, color) VALUES (?, ?)",
                    (subject["name"], subject["color"]),
                )
                _insert_units(conn, cur.lastrowid, subject["units"])
            inserted = bool(subjects)
            logger.info("Seeded syllabus with %d subjects", len(subjects))
        else:
            by_name = {row["name"]: row["id"] for row in existing}
            for subject in subjects:
                subject_id = by_name.get(subject["name"])
                if subject_id is None:
                    continue
                count = conn.execute(
                    "SELECT COUNT(*) FROM units WHERE subject_id = ?", (subject_id,)
                ).fetchone()[0]
                if count > 0:
                    continue
                _insert_units(conn, subject_id, subject["units"])
                inserted = True
                logger.info("Filled in units for subject %s", subject["name"])
    return inserted
