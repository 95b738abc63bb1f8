"""Logged study sessions and study-hour totals."""
from datetime import datetime

from jee_tracker.db import ensure_exists, get_connection, transaction
from jee_tracker.exceptions import NotFoundError
from jee_tracker.models import StudySession
from jee_tracker.rounding import round_half_away
from jee_tracker.schemas import StudySessionInput, StudySessionUpdate, parse


def total_study_minutes(sessions: list[StudySession]) -> int:
    return sum(s.duration_minutes or 0 for s in sessions)


def total_study_hours(sessions: list[StudySession]) -> int:
    return round_half_away(total_study_minutes(sessions) / 60)


def create_study_session(
    db_path: str,
    user_id: str,
    duration_minutes: int,
    date,
    subject_id: int | None = None,
    notes: str | None = None,
) -> StudySession:
    data = parse(StudySessionInput, {
        "duration_minutes": duration_minutes, "date": date,
        "subject_id": subject_id, "notes": notes,
    })
    with transaction(db_path) as conn:
        ensure_exists(conn, "users", user_id, "User")
        if data.subject_id is not None:
            ensure_exists(conn, "subjects", data.subject_id, "Subject")
        cur = conn.execute(
            """INSERT INTO study_sessions (user_id, subject_id, duration_minutes, date, notes, created_at)
            VALUES (?, ?, ?, ?, ?, ?)""",
            (user_id, data.subject_id, data.duration_minutes, data.date.isoformat(),
             data.notes, datetime.now().isoformat()),
        )
        row = conn.execute("SELECT * FROM study_sessions WHERE id = ?", (cur.lastrowid,)).fetchone()
    return StudySession.from_row(row)


def get_study_sessions(
    db_path: str,
    user_id: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
) -> list[StudySession]:
    """Sessions newest first, optionally for one user and an inclusive date range."""
    clauses, params = [], []
    if user_id is not None:
        clauses.append("user_id = ?")
        params.append(user_id)
    if date_from:
        clauses.append("date >= ?")
        params.append(str(date_from))
    if date_to:
        clauses.append("date <= ?")
        params.append(str(date_to))
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    conn = get_connection(db_path)
    rows = conn.execute(
        f"SELECT * FROM study_sessions {where} ORDER BY date DESC, id DESC", params
    ).fetchall()
    conn.close()
    return [StudySession.from_row(r) for r in rows]


def update_study_session(db_path: str, session_id: int, user_id: str | None = None, **changes) -> StudySession:
    """Apply ``changes``; with ``user_id`` the session must belong to that user."""
    data = parse(StudySessionUpdate, changes).model_dump(exclude_unset=True)
    if "date" in data and data["date"] is not None:
        data["date"] = data["date"].isoformat()
    with transaction(db_path) as conn:
        row = conn.execute("SELECT user_id FROM study_sessions WHERE id = ?", (session_id,)).fetchone()
        if row is None or (user_id is not None and row["user_id"] != user_id):
            raise NotFoundError("Study session", session_id)
        if data.get("subject_id") is not None:
            ensure_exists(conn, "subjects", data["subject_id"], "Subject")
        if data:
            assignments = ", ".join(f"{k} = ?" for k in data)
            conn.execute(
                f"UPDATE study_sessions SET {assignments} WHERE id = ?", (*data.values(), session_id)
            )
        row = conn.execute("SELECT * FROM study_sessions WHERE id = ?", (session_id,)).fetchone()
    return StudySession.from_row(row)


def delete_study_session(db_path: str, session_id: int, user_id: str | None = None) -> None:
    sql = "DELETE FROM study_sessions WHERE id = ?"
    params = [session_id]
    if user_id is not None:
        sql += " AND user_id = ?"
        params.append(user_id)
    conn = get_connection(db_path)
    cur = conn.execute(sql, params)
    conn.commit()
    conn.close()
    if cur.rowcount == 0:
        raise NotFoundError("Study session", session_id)
