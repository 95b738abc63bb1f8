"""Admin analytics across all students."""
from datetime import date

from jee_tracker.backlog import count_open_backlog, get_backlog_items
from jee_tracker.progress import (
    compute_cohort_completion, get_all_progress, get_syllabus_with_progress,
    get_topic_progress, syllabus_completion,
)
from jee_tracker.revision import count_due, get_revision_schedule
from jee_tracker.study import get_study_sessions, total_study_hours
from jee_tracker.syllabus import load_syllabus
from jee_tracker.users import get_user, list_users


def get_analytics(
    db_path: str,
    date_from: str | None = None,
    date_to: str | None = None,
    user_id: str | None = None,
) -> dict:
    """Study hours, distinct active students and session count in a date range."""
    sessions = get_study_sessions(db_path, user_id, date_from, date_to)
    return {
        "total_study_hours": total_study_hours(sessions),
        "active_users_count": len({s.user_id for s in sessions}),
        "total_sessions_count": len(sessions),
    }


def get_student_stats(
    db_path: str,
    user_id: str,
    date_from: str | None = None,
    date_to: str | None = None,
    today: date | None = None,
) -> dict:
    today = today or date.today()
    sessions = get_study_sessions(db_path, user_id, date_from, date_to)
    return {
        "total_study_hours": total_study_hours(sessions),
        "sessions_count": len(sessions),
        "syllabus_completion_pct": syllabus_completion(
            load_syllabus(db_path), get_topic_progress(db_path, user_id)
        ),
        "revision_due": count_due(get_revision_schedule(db_path, user_id), today),
        "backlog_count": count_open_backlog(get_backlog_items(db_path, user_id)),
    }


def get_analytics_students(
    db_path: str,
    date_from: str | None = None,
    date_to: str | None = None,
    today: date | None = None,
    user_id: str | None = None,
) -> list[dict]:
    """``get_student_stats`` for every user (or just ``user_id``), labelled with email."""
    users = [get_user(db_path, user_id)] if user_id else list_users(db_path)
    return [
        {"user_id": u.id, "email": u.email, **get_student_stats(db_path, u.id, date_from, date_to, today)}
        for u in users
    ]


def get_syllabus_overview(db_path: str) -> dict:
    """Unit-by-unit completion for each student and for the whole cohort.

    The cohort figure is completed (student, topic) pairs over all possible
    pairs, counting every user including those with no progress yet.
    """
    users = list_users(db_path)
    emails = {u.id: u.email for u in users}
    user_ids = [u.id for u in users]
    progress_by_user = get_all_progress(db_path)
    subjects = []
    for subject in load_syllabus(db_path):
        units = []
        for unit in subject.units:
            cohort = compute_cohort_completion(user_ids, unit.topics, progress_by_user)
            for student in cohort["students"]:
                student["email"] = emails.get(student["user_id"])
            units.append({"id": unit.id, "name": unit.name, **cohort})
        subjects.append({"id": subject.id, "name": subject.name, "color": subject.color, "units": units})
    return {"subjects": subjects}


def get_syllabus_detail(db_path: str, user_id: str) -> dict:
    get_user(db_path, user_id)
    return get_syllabus_with_progress(db_path, user_id)


def get_study_sessions_report(
    db_path: str,
    date_from: str,
    date_to: str,
    user_id: str | None = None,
) -> list[dict]:
    """Sessions in the range, newest first, each with the owner's email."""
    emails = {u.id: u.email for u in list_users(db_path)}
    return [
        {
            "id": s.id,
            "user_id": s.user_id,
            "user_email": emails.get(s.user_id, s.user_id),
            "date": s.date,
            "duration_minutes": s.duration_minutes,
            "subject_id": s.subject_id,
            "notes": s.notes,
        }
        for s in get_study_sessions(db_path, user_id, date_from, date_to)
    ]
