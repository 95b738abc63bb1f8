"""Per-student dashboard statistics."""
from datetime import date

from jee_tracker.backlog import count_open_backlog, get_backlog_items
from jee_tracker.notices import pick_quote, upcoming_exam_dates
from jee_tracker.progress import completion_by_subject, get_topic_progress
from jee_tracker.revision import count_due, get_revision_schedule
from jee_tracker.study import get_study_sessions, total_study_hours
from jee_tracker.syllabus import load_syllabus


def get_completion_color(percentage: int) -> str:
    if percentage >= 75:
        return "green"
    elif percentage >= 50:
        return "yellow"
    elif percentage >= 25:
        return "dark_orange"
    return "red"


def get_dashboard_stats(db_path: str, user_id: str, today: date | None = None) -> dict:
    today = today or date.today()
    subjects = load_syllabus(db_path)
    by_subject = completion_by_subject(subjects, get_topic_progress(db_path, user_id))
    return {
        "total_study_hours": total_study_hours(get_study_sessions(db_path, user_id)),
        "syllabus_completion": [
            {"subject_id": s.id, "subject_name": s.name, "percentage": by_subject[s.id]}
            for s in subjects
        ],
        "revision_due": count_due(get_revision_schedule(db_path, user_id), today),
        "backlog_count": count_open_backlog(get_backlog_items(db_path, user_id)),
        "exam_dates": upcoming_exam_dates(db_path, today),
        "quote": pick_quote(db_path),
    }
