from datetime import date
from unittest.mock import patch

import pytest

from jee_tracker.app import (
    SessionExitRequested, cmd_admin, cmd_backlog, cmd_log, cmd_mocks, cmd_progress, cmd_revision,
    main, parse_ids, session_int_prompt, session_prompt,
)
from jee_tracker.backlog import create_backlog_item, get_backlog_items
from jee_tracker.config import Settings
from jee_tracker.exceptions import AuthorizationError, NotFoundError, ValidationError
from jee_tracker.mock_tests import get_mock_tests
from jee_tracker.models import SingleTopic
from jee_tracker.progress import get_topic_progress
from jee_tracker.revision import get_revision_schedule
from jee_tracker.study import get_study_sessions
from jee_tracker.users import get_user_by_email

TODAY = date(2026, 3, 10)


def _printed(console):
    return "\n".join(str(c.args[0]) for c in console.print.call_args_list if c.args)


def test_session_prompt_raises_on_q():
    with patch("jee_tracker.app.Prompt.ask", return_value="q"):
        with pytest.raises(SessionExitRequested):
            session_prompt("test prompt")


def test_session_prompt_raises_on_menu():
    with patch("jee_tracker.app.Prompt.ask", return_value="menu"):
        with pytest.raises(SessionExitRequested):
            session_prompt("test prompt")


def test_session_prompt_returns_normal_input():
    with patch("jee_tracker.app.Prompt.ask", return_value="hello"):
        assert session_prompt("test prompt") == "hello"


def test_session_int_prompt():
    with patch("jee_tracker.app.Prompt.ask", return_value="3"):
        assert session_int_prompt("minutes") == 3
    with patch("jee_tracker.app.Prompt.ask", return_value="three"):
        with pytest.raises(ValidationError):
            session_int_prompt("minutes")


def test_parse_ids():
    assert parse_ids("3, 4,5") == [3, 4, 5]
    assert parse_ids("") == []
    with pytest.raises(ValidationError):
        parse_ids("3,x")


def test_cmd_progress(db, student):
    with patch("jee_tracker.app.Prompt.ask", side_effect=["1", "completed", "high"]):
        cmd_progress(db, student)
    progress = get_topic_progress(db, student.id)
    assert progress[0].status == "completed"
    assert progress[0].confidence == "high"


def test_cmd_log(db, student):
    with patch("jee_tracker.app.Prompt.ask", side_effect=["90", "2026-03-01", "1", "vectors"]):
        cmd_log(db, student, TODAY)
    session = get_study_sessions(db, student.id)[0]
    assert session.duration_minutes == 90
    assert session.subject_id == 1
    assert session.notes == "vectors"


def test_cmd_revision_add(db, student):
    with patch("jee_tracker.app.Prompt.ask", side_effect=["add", "1, 2", "2026-03-12"]):
        cmd_revision(db, student, TODAY)
    assert [e.topic_id for e in get_revision_schedule(db, student.id)] == [1, 2]


def test_cmd_backlog_add(db, student):
    with patch("jee_tracker.app.Prompt.ask",
               side_effect=["add", "Fix kinematics", "high", "practice", "1"]):
        cmd_backlog(db, student)
    item = get_backlog_items(db, student.id)[0]
    assert item.scope == SingleTopic(1)
    assert item.priority == "high"


def test_cmd_mocks_add(db, student):
    answers = ["add", "Mock 1", "2026-03-01", "200", "1,2", "80", "4", "100", "70", "0", "100"]
    with patch("jee_tracker.app.Prompt.ask", side_effect=answers):
        cmd_mocks(db, student, TODAY)
    test = get_mock_tests(db, student.id)[0]
    assert test.total_score == 146
    assert [s.max_score for s in test.subjects] == [100, 100]


def test_cmd_admin_requires_admin(db, student):
    with pytest.raises(AuthorizationError):
        cmd_admin(db, student, Settings())


def test_cmd_admin_for_configured_admin(db, student):
    settings = Settings(admin_emails=frozenset({student.email}))
    with patch("jee_tracker.app.Prompt.ask", side_effect=["", ""]), \
            patch("jee_tracker.app.console") as console:
        cmd_admin(db, student, settings)
    assert console.print.called


def test_main_resolves_user_and_quits(monkeypatch, tmp_db):
    monkeypatch.setenv("JEE_TRACKER_DB", tmp_db)
    with patch("jee_tracker.app.Prompt.ask", side_effect=["new@example.com", "dashboard", "quit"]), \
            patch("jee_tracker.app.console"):
        main()
    assert get_user_by_email(tmp_db, "new@example.com") is not None


def test_main_reports_errors_and_keeps_running(monkeypatch, tmp_db):
    monkeypatch.setenv("JEE_TRACKER_DB", tmp_db)
    answers = ["new@example.com", "progress", "999", "completed", "skip", "log", "q", "quit"]
    with patch("jee_tracker.app.Prompt.ask", side_effect=answers), \
            patch("jee_tracker.app.console") as console:
        main()
    output = _printed(console)
    assert "Topic 999 not found" in output
    assert "Back to menu." in output


def test_cmd_backlog_delete_is_scoped_to_user(db, student, other_student):
    item = create_backlog_item(db, other_student.id, "Theirs")
    with patch("jee_tracker.app.Prompt.ask", side_effect=["delete", str(item.id)]):
        with pytest.raises(NotFoundError):
            cmd_backlog(db, student)
    assert len(get_backlog_items(db, other_student.id)) == 1
