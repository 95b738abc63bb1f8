"""Syllabus tree loading and admin editing of subjects, units and topics."""
import logging

from jee_tracker.db import get_connection
from jee_tracker.exceptions import NotFoundError, ValidationError
from jee_tracker.models import Subject, Topic, Unit
from jee_tracker.schemas import (
    SubjectInput, SubjectUpdate, TopicInput, TopicUpdate, UnitInput, UnitUpdate, parse,
)

logger = logging.getLogger(__name__)

SCOPES = ("class_11", "class_12", "whole")

# Input field name -> column name
_COLUMNS = {
    "order": "display_order",
}


def topic_in_scope(topic: Topic, scope: str | None) -> bool:
    if scope == "class_11":
        return topic.is_class_11
    if scope == "class_12":
        return topic.is_class_12
    return True


def prune_to_scope(subjects: list[Subject], scope: str | None) -> list[Subject]:
    """Keep only topics in ``scope`` and drop units and subjects left empty.

    The unscoped view (``None`` or ``"whole"``) is returned unchanged,
    empty units included.
    """
    if scope not in (None, *SCOPES):
        raise ValidationError(f"Unknown syllabus scope: {scope}")
    if scope in (None, "whole"):
        return subjects
    result = []
    for subject in subjects:
        units = []
        for unit in subject.units:
            topics = [t for t in unit.topics if topic_in_scope(t, scope)]
            if topics:
                units.append(Unit(id=unit.id, subject_id=unit.subject_id, name=unit.name,
                                  order=unit.order, topics=topics))
        if units:
            result.append(Subject(id=subject.id, name=subject.name, color=subject.color, units=units))
    return result


def load_syllabus(db_path: str, scope: str | None = None) -> list[Subject]:
    """Return the Subject -> Unit -> Topic tree.

    Subjects are ordered by id, units and topics by display order then id.
    With ``class_11`` or ``class_12`` the tree is filtered and pruned.
    """
    conn = get_connection(db_path)
    subject_rows = conn.execute("SELECT * FROM subjects ORDER BY id").fetchall()
    unit_rows = conn.execute("SELECT * FROM units ORDER BY display_order, id").fetchall()
    topic_rows = conn.execute("SELECT * FROM topics ORDER BY display_order, id").fetchall()
    conn.close()

    subjects = [Subject.from_row(r) for r in subject_rows]
    by_subject = {s.id: s for s in subjects}
    units = {}
    for row in unit_rows:
        unit = Unit.from_row(row)
        units[unit.id] = unit
        by_subject[unit.subject_id].units.append(unit)
    for row in topic_rows:
        topic = Topic.from_row(row)
        units[topic.unit_id].topics.append(topic)
    return prune_to_scope(subjects, scope)


def all_units(subjects: list[Subject]) -> list[Unit]:
    return [u for s in subjects for u in s.units]


def all_topics(subjects: list[Subject]) -> list[Topic]:
    return [t for s in subjects for t in s.topics]


def get_subject_topic_ids(db_path: str, scope: str | None = None) -> dict:
    """Map each subject id to the ids of its topics."""
    return {s.id: [t.id for t in s.topics] for s in load_syllabus(db_path, scope)}


def _fetch_one(conn, table: str, ident: int, kind: str):
    row = conn.execute(f"SELECT * FROM {table} WHERE id = ?", (ident,)).fetchone()
    if row is None:
        conn.close()
        raise NotFoundError(kind, ident)
    return row


def _update_row(db_path: str, table: str, kind: str, ident: int, changes: dict):
    conn = get_connection(db_path)
    _fetch_one(conn, table, ident, kind)
    if changes:
        assignments = ", ".join(f"{_COLUMNS.get(k, k)} = ?" for k in changes)
        values = [int(v) if isinstance(v, bool) else v for v in changes.values()]
        conn.execute(f"UPDATE {table} SET {assignments} WHERE id = ?", (*values, ident))
        conn.commit()
    row = conn.execute(f"SELECT * FROM {table} WHERE id = ?", (ident,)).fetchone()
    conn.close()
    return row


def _delete_row(db_path: str, table: str, kind: str, ident: int) -> None:
    conn = get_connection(db_path)
    cur = conn.execute(f"DELETE FROM {table} WHERE id = ?", (ident,))
    conn.commit()
    conn.close()
    if cur.rowcount == 0:
        raise NotFoundError(kind, ident)


# --- Subjects ---

def create_subject(db_path: str, name: str, color: str = "#3b82f6") -> Subject:
    data = parse(SubjectInput, {"name": name, "color": color})
    conn = get_connection(db_path)
    cur = conn.execute("INSERT INTO subjects (name, color) VALUES (?, ?)", (data.name, data.color))
    conn.commit()
    row = conn.execute("SELECT * FROM subjects WHERE id = ?", (cur.lastrowid,)).fetchone()
    conn.close()
    return Subject.from_row(row)


def update_subject(db_path: str, subject_id: int, **changes) -> Subject:
    data = parse(SubjectUpdate, changes)
    return Subject.from_row(
        _update_row(db_path, "subjects", "Subject", subject_id, data.model_dump(exclude_unset=True))
    )


def delete_subject(db_path: str, subject_id: int) -> None:
    """Delete a subject with its units, topics and everything tracked against them."""
    _delete_row(db_path, "subjects", "Subject", subject_id)
    logger.info("Deleted subject %s", subject_id)


# --- Units ---

def create_unit(db_path: str, subject_id: int, name: str, order: int = 0) -> Unit:
    data = parse(UnitInput, {"name": name, "order": order})
    conn = get_connection(db_path)
    _fetch_one(conn, "subjects", subject_id, "Subject")
    cur = conn.execute(
        "INSERT INTO units (subject_id, name, display_order) VALUES (?, ?, ?)",
        (subject_id, data.name, data.order),
    )
    conn.commit()
    row = conn.execute("SELECT * FROM units WHERE id = ?", (cur.lastrowid,)).fetchone()
    conn.close()
    return Unit.from_row(row)


def update_unit(db_path: str, unit_id: int, **changes) -> Unit:
    data = parse(UnitUpdate, changes)
    return Unit.from_row(
        _update_row(db_path, "units", "Unit", unit_id, data.model_dump(exclude_unset=True))
    )


def delete_unit(db_path: str, unit_id: int) -> None:
    _delete_row(db_path, "units", "Unit", unit_id)


# --- Topics ---

def create_topic(db_path: str, unit_id: int, name: str, order: int = 0, **fields) -> Topic:
    data = parse(TopicInput, {"name": name, "order": order, **fields})
    conn = get_connection(db_path)
    _fetch_one(conn, "units", unit_id, "Unit")
    cur = conn.execute(
        """INSERT INTO topics
        (unit_id, name, display_order, is_important, weightage, is_class_11, is_class_12)
        VALUES (?, ?, ?, ?, ?, ?, ?)""",
        (unit_id, data.name, data.order, int(data.is_important), data.weightage,
         int(data.is_class_11), int(data.is_class_12)),
    )
    conn.commit()
    row = conn.execute("SELECT * FROM topics WHERE id = ?", (cur.lastrowid,)).fetchone()
    conn.close()
    return Topic.from_row(row)


def update_topic(db_path: str, topic_id: int, **changes) -> Topic:
    data = parse(TopicUpdate, changes)
    changes = data.model_dump(exclude_unset=True)
    conn = get_connection(db_path)
    current = Topic.from_row(_fetch_one(conn, "topics", topic_id, "Topic"))
    conn.close()
    class_11 = changes.get("is_class_11", current.is_class_11)
    class_12 = changes.get("is_class_12", current.is_class_12)
    if not class_11 and not class_12:
        raise ValidationError("Topic must apply to class 11, class 12 or both")
    return Topic.from_row(_update_row(db_path, "topics", "Topic", topic_id, changes))


def delete_topic(db_path: str, topic_id: int) -> None:
    _delete_row(db_path, "topics", "Topic", topic_id)


def get_topic(db_path: str, topic_id: int) -> Topic:
    conn = get_connection(db_path)
    row = _fetch_one(conn, "topics", topic_id, "Topic")
    conn.close()
    return Topic.from_row(row)
