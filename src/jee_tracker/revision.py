"""Revision scheduling: entries, date-grouped sessions and due reminders."""
import logging
from datetime import date, datetime

from jee_tracker.db import ensure_exists, get_connection, transaction
from jee_tracker.exceptions import NotFoundError, ValidationError
from jee_tracker.models import RevisionEntry, RevisionSession, Unit
from jee_tracker.schemas import RevisionBatchInput, RevisionInput, RevisionUpdate, parse

logger = logging.getLogger(__name__)

_SELECT_WITH_TOPIC = """SELECT r.*, t.name AS topic_name
    FROM revision_schedules r
    LEFT JOIN topics t ON r.topic_id = t.id"""


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError as e:
        raise ValidationError(f"Invalid date: {value}") from e


# --- Pure session logic ---


def derive_sessions(entries: list[RevisionEntry], today: date) -> list[RevisionSession]:
    """Group entries by scheduled date and classify each group.

    A session is completed when every entry in it is. Unfinished sessions
    before ``today`` are overdue, on ``today`` due today. Unfinished
    sessions come first, each half in date order.
    """
    groups = {}
    for entry in entries:
        groups.setdefault(_as_date(entry.scheduled_date), []).append(entry)
    sessions = []
    for day, group in groups.items():
        completed = all(e.status == "completed" for e in group)
        sessions.append(RevisionSession(
            scheduled_date=day.isoformat(),
            entries=group,
            is_completed=completed,
            is_overdue=not completed and day < today,
            is_due_today=not completed and day == today,
        ))
    sessions.sort(key=lambda s: (s.is_completed, s.scheduled_date))
    return sessions


def describe_session(topic_ids, units: list[Unit]) -> tuple[int, str]:
    """Return ``(count, "unit")`` if the topics are exactly a set of whole units.

    Otherwise ``(count, "topic")``. A unit counts only when all of its
    topics are in the session, and the fully covered units together must
    account for every topic in the session.
    """
    session = set(topic_ids)
    covered_units = [u for u in units if u.topics and u.topic_ids <= session]
    covered = set()
    for unit in covered_units:
        covered |= unit.topic_ids
    if covered_units and covered == session:
        return len(covered_units), "unit"
    return len(session), "topic"


def session_label(topic_ids, units: list[Unit]) -> str:
    count, noun = describe_session(topic_ids, units)
    return f"{count} {noun}{'' if count == 1 else 's'}"


def due_and_overdue(entries: list[RevisionEntry], today: date) -> tuple[list, list]:
    """Unfinished entries scheduled for today, and for earlier days."""
    due_today, overdue = [], []
    for entry in entries:
        if entry.status == "completed":
            continue
        day = _as_date(entry.scheduled_date)
        if day == today:
            due_today.append(entry)
        elif day < today:
            overdue.append(entry)
    return due_today, overdue


def count_due(entries: list[RevisionEntry], today: date) -> int:
    due_today, overdue = due_and_overdue(entries, today)
    return len(due_today) + len(overdue)


class RevisionAdvisor:
    """Builds the due-revision reminder, at most once per client session."""

    def __init__(self):
        self.has_notified = False

    def check(self, entries: list[RevisionEntry], today: date) -> str | None:
        if self.has_notified:
            return None
        due_today, overdue = due_and_overdue(entries, today)
        total = len(due_today) + len(overdue)
        if total == 0:
            return None
        self.has_notified = True
        parts = []
        if overdue:
            parts.append(f"{len(overdue)} overdue")
        if due_today:
            parts.append(f"{len(due_today)} due today")
        return f"You have {', '.join(parts)} revision{'s' if total > 1 else ''}."


# --- Storage ---


def _get_entry(conn, entry_id: int) -> RevisionEntry:
    row = conn.execute(f"{_SELECT_WITH_TOPIC} WHERE r.id = ?", (entry_id,)).fetchone()
    return RevisionEntry.from_row(row)


def create_revision(db_path: str, user_id: str, topic_id: int, scheduled_date) -> RevisionEntry:
    data = parse(RevisionInput, {"topic_id": topic_id, "scheduled_date": scheduled_date})
    return create_revision_batch(db_path, user_id, [data.topic_id], data.scheduled_date)[0]


def create_revision_batch(db_path: str, user_id: str, topic_ids: list[int], scheduled_date) -> list[RevisionEntry]:
    """Schedule every topic in ``topic_ids`` for the same day, all or none."""
    data = parse(RevisionBatchInput, {"topic_ids": topic_ids, "scheduled_date": scheduled_date})
    day = data.scheduled_date.isoformat()
    with transaction(db_path) as conn:
        ensure_exists(conn, "users", user_id, "User")
        ids = []
        for topic_id in data.topic_ids:
            ensure_exists(conn, "topics", topic_id, "Topic")
            cur = conn.execute(
                """INSERT INTO revision_schedules (user_id, topic_id, scheduled_date, status)
                VALUES (?, ?, ?, 'not_started')""",
                (user_id, topic_id, day),
            )
            ids.append(cur.lastrowid)
        entries = [_get_entry(conn, i) for i in ids]
    logger.info("Scheduled %d revisions for %s on %s", len(entries), user_id, day)
    return entries


def get_revision_schedule(db_path: str, user_id: str) -> list[RevisionEntry]:
    conn = get_connection(db_path)
    rows = conn.execute(
        f"{_SELECT_WITH_TOPIC} WHERE r.user_id = ? ORDER BY r.scheduled_date, r.id", (user_id,)
    ).fetchall()
    conn.close()
    return [RevisionEntry.from_row(r) for r in rows]


def get_revision_sessions(db_path: str, user_id: str, today: date | None = None) -> list[RevisionSession]:
    return derive_sessions(get_revision_schedule(db_path, user_id), today or date.today())


def complete_revision(
    db_path: str,
    entry_id: int,
    user_id: str | None = None,
    now: datetime | None = None,
) -> RevisionEntry:
    """Mark one entry completed. With ``user_id`` the entry must belong to that user."""
    now = now or datetime.now()
    sql = "UPDATE revision_schedules SET status = 'completed', completed_at = ? WHERE id = ?"
    params = [now.isoformat(), entry_id]
    if user_id is not None:
        sql += " AND user_id = ?"
        params.append(user_id)
    conn = get_connection(db_path)
    cur = conn.execute(sql, params)
    if cur.rowcount == 0:
        conn.close()
        raise NotFoundError("Revision", entry_id)
    conn.commit()
    entry = _get_entry(conn, entry_id)
    conn.close()
    return entry


def complete_revision_session(db_path: str, user_id: str, scheduled_date, now: datetime | None = None) -> int:
    """Complete every entry of the user's session on ``scheduled_date``; returns the count."""
    now = now or datetime.now()
    day = _as_date(scheduled_date).isoformat()
    with transaction(db_path) as conn:
        cur = conn.execute(
            """UPDATE revision_schedules SET status = 'completed', completed_at = ?
            WHERE user_id = ? AND scheduled_date = ?""",
            (now.isoformat(), user_id, day),
        )
    logger.info("Completed revision session %s for %s (%d entries)", day, user_id, cur.rowcount)
    return cur.rowcount


def delete_revision_session(db_path: str, user_id: str, scheduled_date) -> int:
    """Delete every entry of the user's session on ``scheduled_date``; returns the count."""
    day = _as_date(scheduled_date).isoformat()
    with transaction(db_path) as conn:
        cur = conn.execute(
            "DELETE FROM revision_schedules WHERE user_id = ? AND scheduled_date = ?",
            (user_id, day),
        )
    logger.info("Deleted revision session %s for %s (%d entries)", day, user_id, cur.rowcount)
    return cur.rowcount


def update_revision(db_path: str, entry_id: int, now: datetime | None = None, **changes) -> RevisionEntry:
    """Apply ``changes``. ``completed_at`` is only kept on a completed entry."""
    data = parse(RevisionUpdate, changes).model_dump(exclude_unset=True)
    conn = get_connection(db_path)
    row = conn.execute("SELECT status FROM revision_schedules WHERE id = ?", (entry_id,)).fetchone()
    if row is None:
        conn.close()
        raise NotFoundError("Revision", entry_id)
    if "scheduled_date" in data:
        data["scheduled_date"] = data["scheduled_date"].isoformat()
    stamp = data.pop("completed_at", None)
    if data.get("status", row["status"]) != "completed":
        if "status" in data:
            data["completed_at"] = None
    elif "status" in data or stamp is not None:
        data["completed_at"] = (stamp or now or datetime.now()).isoformat()
    if data:
        assignments = ", ".join(f"{k} = ?" for k in data)
        conn.execute(
            f"UPDATE revision_schedules SET {assignments} WHERE id = ?", (*data.values(), entry_id)
        )
        conn.commit()
    entry = _get_entry(conn, entry_id)
    conn.close()
    return entry


def delete_revision(db_path: str, entry_id: int) -> None:
    conn = get_connection(db_path)
    cur = conn.execute("DELETE FROM revision_schedules WHERE id = ?", (entry_id,))
    conn.commit()
    conn.close()
    if cur.rowcount == 0:
        raise NotFoundError("Revision", entry_id)
