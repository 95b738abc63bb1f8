"""Topic progress tracking and syllabus completion percentages."""
from datetime import datetime

from jee_tracker.db import get_connection, transaction
from jee_tracker.exceptions import NotFoundError
from jee_tracker.models import Subject, Topic, TopicProgress
from jee_tracker.rounding import percentage
from jee_tracker.schemas import ProgressUpdate, parse
from jee_tracker.syllabus import all_topics, load_syllabus


def completed_topic_ids(progress: list[TopicProgress]) -> set:
    return {p.topic_id for p in progress if p.status == "completed"}


def count_completed(topics: list[Topic], progress: list[TopicProgress]) -> int:
    done = completed_topic_ids(progress)
    return sum(1 for t in topics if t.id in done)


def compute_completion(topics: list[Topic], progress: list[TopicProgress]) -> int:
    """Percentage of ``topics`` with a completed progress row, 0-100.

    An empty topic list is 0%.
    """
    return percentage(count_completed(topics, progress), len(topics))


def completion_by_unit(subjects: list[Subject], progress: list[TopicProgress]) -> dict:
    return {
        unit.id: compute_completion(unit.topics, progress)
        for subject in subjects for unit in subject.units
    }


def completion_by_subject(subjects: list[Subject], progress: list[TopicProgress]) -> dict:
    # Over the subject's flat topic list; averaging unit percentages would
    # overweight small units.
    return {s.id: compute_completion(s.topics, progress) for s in subjects}


def syllabus_completion(subjects: list[Subject], progress: list[TopicProgress]) -> int:
    return compute_completion(all_topics(subjects), progress)


def compute_cohort_completion(
    user_ids: list[str],
    topics: list[Topic],
    progress_by_user: dict,
) -> dict:
    """Per-student completion of ``topics`` plus the cohort aggregate.

    The aggregate is completed (user, topic) pairs over all possible pairs,
    ``sum(completed) / (len(topics) * len(user_ids))``, not the mean of the
    per-student percentages. Progress of users outside ``user_ids`` is
    ignored.
    """
    students = []
    total_completed = 0
    for user_id in user_ids:
        completed = count_completed(topics, progress_by_user.get(user_id, []))
        total_completed += completed
        students.append({
            "user_id": user_id,
            "completed_topics": completed,
            "completion_percentage": percentage(completed, len(topics)),
        })
    return {
        "total_topics": len(topics),
        "completed_topics": total_completed,
        "completion_percentage": percentage(total_completed, len(topics) * len(user_ids)),
        "students": students,
    }


def get_topic_progress(db_path: str, user_id: str) -> list[TopicProgress]:
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT * FROM user_topic_progress WHERE user_id = ? ORDER BY topic_id", (user_id,)
    ).fetchall()
    conn.close()
    return [TopicProgress.from_row(r) for r in rows]


def get_all_progress(db_path: str) -> dict:
    """Progress rows for every user, keyed by user id."""
    conn = get_connection(db_path)
    rows = conn.execute("SELECT * FROM user_topic_progress ORDER BY user_id, topic_id").fetchall()
    conn.close()
    result = {}
    for r in rows:
        result.setdefault(r["user_id"], []).append(TopicProgress.from_row(r))
    return result


def update_topic_progress(
    db_path: str,
    user_id: str,
    topic_id: int,
    now: datetime | None = None,
    **fields,
) -> TopicProgress:
    """Create or update the single progress row for (user, topic).

    Only the given fields change. ``completed_at`` is stamped when the
    status becomes completed, kept while it stays completed and cleared
    otherwise.
    """
    changes = parse(ProgressUpdate, fields).model_dump(exclude_unset=True)
    now = now or datetime.now()
    with transaction(db_path) as conn:
        if conn.execute("SELECT 1 FROM topics WHERE id = ?", (topic_id,)).fetchone() is None:
            raise NotFoundError("Topic", topic_id)
        if conn.execute("SELECT 1 FROM users WHERE id = ?", (user_id,)).fetchone() is None:
            raise NotFoundError("User", user_id)
        row = conn.execute(
            "SELECT * FROM user_topic_progress WHERE user_id = ? AND topic_id = ?",
            (user_id, topic_id),
        ).fetchone()
        current = TopicProgress.from_row(row) if row else TopicProgress(id=0, user_id=user_id, topic_id=topic_id)

        status = changes.get("status", current.status)
        if status != "completed":
            completed_at = None
        elif current.status == "completed" and current.completed_at:
            completed_at = current.completed_at
        else:
            completed_at = now.isoformat()
        last_revised = changes.get("last_revised_at", current.last_revised_at)
        if isinstance(last_revised, datetime):
            last_revised = last_revised.isoformat()

        conn.execute(
            """INSERT INTO user_topic_progress
            (user_id, topic_id, status, confidence, notes, completed_at, last_revised_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(user_id, topic_id) DO UPDATE SET
                status = excluded.status,
                confidence = excluded.confidence,
                notes = excluded.notes,
                completed_at = excluded.completed_at,
                last_revised_at = excluded.last_revised_at""",
            (user_id, topic_id, status,
             changes.get("confidence", current.confidence),
             changes.get("notes", current.notes),
             completed_at, last_revised),
        )
        row = conn.execute(
            "SELECT * FROM user_topic_progress WHERE user_id = ? AND topic_id = ?",
            (user_id, topic_id),
        ).fetchone()
    return TopicProgress.from_row(row)


def annotate_syllabus(subjects: list[Subject], progress: list[TopicProgress]) -> dict:
    """Nest each topic's progress row into the tree with unit and subject percentages."""
    by_topic = {p.topic_id: p for p in progress}
    result = []
    for subject in subjects:
        units = []
        for unit in subject.units:
            units.append({
                "id": unit.id,
                "name": unit.name,
                "completion_percentage": compute_completion(unit.topics, progress),
                "topics": [
                    {
                        "id": t.id,
                        "name": t.name,
                        "order": t.order,
                        "is_important": t.is_important,
                        "weightage": t.weightage,
                        "progress": by_topic.get(t.id),
                    }
                    for t in unit.topics
                ],
            })
        result.append({
            "id": subject.id,
            "name": subject.name,
            "color": subject.color,
            "completion_percentage": compute_completion(subject.topics, progress),
            "units": units,
        })
    return {
        "completion_percentage": syllabus_completion(subjects, progress),
        "subjects": result,
    }


def get_syllabus_with_progress(db_path: str, user_id: str, scope: str | None = None) -> dict:
    return annotate_syllabus(load_syllabus(db_path, scope), get_topic_progress(db_path, user_id))
