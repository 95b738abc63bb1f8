"""Interactive CLI application."""
import logging
from datetime import date

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from jee_tracker.analytics import get_analytics, get_analytics_students, get_syllabus_overview
from jee_tracker.backlog import (
    create_backlog_item, delete_backlog_item, get_backlog_items, update_backlog_item,
)
from jee_tracker.config import Settings, configure_logging, load_settings
from jee_tracker.dashboard import get_completion_color, get_dashboard_stats
from jee_tracker.db import init_db
from jee_tracker.exceptions import TrackerError, ValidationError
from jee_tracker.mock_tests import create_mock_test, get_mock_tests, score_series, split_equally
from jee_tracker.models import MultiTopic, SingleTopic
from jee_tracker.progress import get_syllabus_with_progress, update_topic_progress
from jee_tracker.revision import (
    RevisionAdvisor, complete_revision_session, create_revision_batch,
    delete_revision_session, derive_sessions, get_revision_schedule, session_label,
)
from jee_tracker.seed import is_seeded, seed_if_empty
from jee_tracker.study import create_study_session, get_study_sessions, total_study_hours
from jee_tracker.syllabus import all_units, load_syllabus
from jee_tracker.users import get_or_create_user, is_admin, require_admin

logger = logging.getLogger(__name__)

console = Console()

STATUS_STYLES = {"not_started": "dim", "in_progress": "yellow", "completed": "green"}


class SessionExitRequested(Exception):
    """Raised when the user types 'q' or 'menu' inside a command."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer is not None and answer.strip().lower() in ("q", "menu"):
        raise SessionExitRequested()
    return answer


def session_int_prompt(prompt: str, choices: list | None = None, default: int | None = None) -> int:
    kwargs = {}
    if choices is not None:
        kwargs["choices"] = [str(c) for c in choices]
    if default is not None:
        kwargs["default"] = str(default)
    answer = session_prompt(prompt, **kwargs)
    try:
        return int(answer)
    except (TypeError, ValueError):
        raise ValidationError(f"Expected a whole number, got {answer!r}") from None


def parse_ids(text: str) -> list[int]:
    """Parse ``"3, 4,5"`` into ``[3, 4, 5]``."""
    try:
        return [int(p) for p in text.replace(" ", "").split(",") if p]
    except ValueError:
        raise ValidationError(f"Expected comma separated ids, got {text!r}") from None


def show_welcome(user):
    console.print(Panel(
        f"[bold]JEE Study Tracker[/bold]\n[dim]Signed in as {user.email}[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu(admin: bool = False):
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("dashboard", "Hours, completion, revisions due"),
        ("syllabus", "Syllabus with your progress"),
        ("progress", "Update a topic's status"),
        ("log", "Log a study session"),
        ("revision", "Revision sessions"),
        ("backlog", "Weak topics to fix"),
        ("mocks", "Mock test scores"),
    ]
    if admin:
        commands.append(("admin", "Cohort analytics"))
    commands.append(("quit", "Exit"))
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")
    console.print("  [dim]Type 'q' inside any command to return here.[/dim]")


def _bar(percentage: int) -> str:
    color = get_completion_color(percentage)
    filled = percentage // 5
    return f"[{color}]{'█' * filled}{'░' * (20 - filled)}[/{color}] {percentage}%"


def cmd_dashboard(db_path: str, user, today: date | None = None):
    stats = get_dashboard_stats(db_path, user.id, today)
    console.print(Panel(
        f"Study hours: [bold]{stats['total_study_hours']}[/bold]  |  "
        f"Revisions due: [bold]{stats['revision_due']}[/bold]  |  "
        f"Open backlog: [bold]{stats['backlog_count']}[/bold]",
        title="Dashboard", border_style="blue",
    ))
    table = Table(title="Syllabus Completion")
    table.add_column("Subject", style="cyan")
    table.add_column("Completion")
    for row in stats["syllabus_completion"]:
        table.add_row(row["subject_name"], _bar(row["percentage"]))
    console.print(table)
    for exam in stats["exam_dates"]:
        console.print(f"  [bold]{exam['name']}[/bold] on {exam['exam_date']}: "
                      f"[yellow]{exam['days_remaining']} days left[/yellow]")
    if stats["quote"]:
        author = f"\n[dim]- {stats['quote'].author}[/dim]" if stats["quote"].author else ""
        console.print(Panel(f"[italic]{stats['quote'].quote}[/italic]{author}", border_style="green"))


def cmd_syllabus(db_path: str, user):
    scope = session_prompt("Scope", choices=["class_11", "class_12", "whole"], default="whole")
    tree = get_syllabus_with_progress(db_path, user.id, scope)
    console.print(f"\n  Overall: {_bar(tree['completion_percentage'])}\n")
    for subject in tree["subjects"]:
        table = Table(title=f"{subject['name']} ({subject['completion_percentage']}%)")
        table.add_column("ID", justify="right")
        table.add_column("Unit / Topic")
        table.add_column("Status")
        for unit in subject["units"]:
            table.add_row("", f"[bold]{unit['name']}[/bold]", f"{unit['completion_percentage']}%")
            for topic in unit["topics"]:
                status = topic["progress"].status if topic["progress"] else "not_started"
                style = STATUS_STYLES[status]
                marker = " [red]*[/red]" if topic["is_important"] else ""
                table.add_row(str(topic["id"]), f"  {topic['name']}{marker}",
                              f"[{style}]{status.replace('_', ' ')}[/{style}]")
        console.print(table)


def cmd_progress(db_path: str, user):
    topic_id = session_int_prompt("Topic ID")
    status = session_prompt("Status", choices=["not_started", "in_progress", "completed"],
                            default="completed")
    confidence = session_prompt("Confidence", choices=["low", "medium", "high", "skip"], default="skip")
    fields = {"status": status}
    if confidence != "skip":
        fields["confidence"] = confidence
    progress = update_topic_progress(db_path, user.id, topic_id, **fields)
    console.print(f"[green]Topic {topic_id} is now {progress.status.replace('_', ' ')}.[/green]")


def cmd_log(db_path: str, user, today: date | None = None):
    today = today or date.today()
    minutes = session_int_prompt("Minutes studied")
    day = session_prompt("Date", default=today.isoformat())
    subjects = load_syllabus(db_path)
    for s in subjects:
        console.print(f"  [cyan]{s.id}[/cyan]) {s.name}")
    subject = session_prompt("Subject ID (blank for none)", default="")
    notes = session_prompt("Notes", default="")
    create_study_session(
        db_path, user.id, minutes, day,
        subject_id=int(subject) if subject else None, notes=notes or None,
    )
    hours = total_study_hours(get_study_sessions(db_path, user.id))
    console.print(f"[green]Logged {minutes} minutes. Total: {hours} hours.[/green]")


def show_revision_sessions(db_path: str, user, today: date) -> list:
    sessions = derive_sessions(get_revision_schedule(db_path, user.id), today)
    units = all_units(load_syllabus(db_path))
    if not sessions:
        console.print("[yellow]No revisions scheduled.[/yellow]")
        return sessions
    table = Table(title="Revision Sessions")
    table.add_column("Date")
    table.add_column("Covers")
    table.add_column("Status")
    for s in sessions:
        if s.is_completed:
            status = "[green]Done[/green]"
        elif s.is_overdue:
            status = "[red]Overdue[/red]"
        elif s.is_due_today:
            status = "[yellow]Today[/yellow]"
        else:
            status = "[cyan]Upcoming[/cyan]"
        table.add_row(s.scheduled_date, session_label(s.topic_ids, units), status)
    console.print(table)
    return sessions


def cmd_revision(db_path: str, user, today: date | None = None):
    today = today or date.today()
    show_revision_sessions(db_path, user, today)
    action = session_prompt("Action", choices=["add", "complete", "delete", "back"], default="back")
    if action == "add":
        topic_ids = parse_ids(session_prompt("Topic IDs (comma separated)"))
        day = session_prompt("Date", default=today.isoformat())
        entries = create_revision_batch(db_path, user.id, topic_ids, day)
        console.print(f"[green]Scheduled {len(entries)} topics for {day}.[/green]")
    elif action == "complete":
        day = session_prompt("Session date", default=today.isoformat())
        count = complete_revision_session(db_path, user.id, day)
        console.print(f"[green]Marked {count} revisions done.[/green]")
    elif action == "delete":
        day = session_prompt("Session date")
        count = delete_revision_session(db_path, user.id, day)
        console.print(f"[yellow]Removed {count} revisions.[/yellow]")


def _scope_text(scope) -> str:
    if isinstance(scope, SingleTopic):
        return f"topic {scope.topic_id}"
    if isinstance(scope, MultiTopic):
        return f"{len(scope.topic_ids)} topics"
    return ""


def cmd_backlog(db_path: str, user):
    items = get_backlog_items(db_path, user.id)
    if items:
        table = Table(title="Backlog")
        table.add_column("ID", justify="right")
        table.add_column("Title")
        table.add_column("Topics")
        table.add_column("Priority")
        table.add_column("Done")
        for item in items:
            table.add_row(str(item.id), item.title, _scope_text(item.scope), item.priority,
                          "[green]yes[/green]" if item.is_completed else "")
        console.print(table)
    else:
        console.print("[green]Backlog is empty.[/green]")
    action = session_prompt("Action", choices=["add", "done", "delete", "back"], default="back")
    if action == "add":
        title = session_prompt("Title")
        priority = session_prompt("Priority", choices=["low", "medium", "high"], default="medium")
        kind = session_prompt("Type", choices=["concept", "practice", "forgetting"], default="concept")
        topics = parse_ids(session_prompt("Topic IDs (comma separated, blank for none)", default=""))
        item = create_backlog_item(db_path, user.id, title, priority=priority, type=kind,
                                   topic_ids=topics or None)
        console.print(f"[green]Added backlog item {item.id}.[/green]")
    elif action == "done":
        item_id = session_int_prompt("Item ID")
        update_backlog_item(db_path, item_id, user_id=user.id, is_completed=True)
        console.print("[green]Marked done.[/green]")
    elif action == "delete":
        item_id = session_int_prompt("Item ID")
        delete_backlog_item(db_path, item_id, user_id=user.id)
        console.print("[yellow]Deleted.[/yellow]")


def cmd_mocks(db_path: str, user, today: date | None = None):
    today = today or date.today()
    tests = get_mock_tests(db_path, user.id)
    if tests:
        table = Table(title="Mock Tests")
        table.add_column("Date")
        table.add_column("Title")
        table.add_column("Score", justify="right")
        table.add_column("Subjects")
        for t in tests:
            table.add_row(t.test_date, t.title, f"{t.total_score}/{t.max_score}",
                          ", ".join(f"{s.subject_name} {s.net_score}" for s in t.subjects))
        console.print(table)
        trend = "  ".join(f"{d}: {pct}%" for d, pct in score_series(tests))
        console.print(f"  [dim]Trend[/dim] {trend}")
    else:
        console.print("[yellow]No mock tests yet.[/yellow]")
    if session_prompt("Action", choices=["add", "back"], default="back") != "add":
        return
    title = session_prompt("Title")
    test_date = session_prompt("Date", default=today.isoformat())
    max_score = session_int_prompt("Max marks", default=300)
    subjects = load_syllabus(db_path)
    for s in subjects:
        console.print(f"  [cyan]{s.id}[/cyan]) {s.name}")
    subject_ids = parse_ids(session_prompt("Subject IDs", default=",".join(str(s.id) for s in subjects)))
    names = {s.id: s.name for s in subjects}
    defaults = split_equally(max_score, len(subject_ids))
    rows = []
    for subject_id, default_max in zip(subject_ids, defaults):
        name = names.get(subject_id, f"Subject {subject_id}")
        score = session_int_prompt(f"{name} marks")
        negative = session_int_prompt(f"{name} negative marks", default=0)
        row = {"subject_id": subject_id, "score": score, "negative_marks": negative}
        if len(subject_ids) > 1:
            row["max_score"] = session_int_prompt(f"{name} max marks", default=default_max)
        rows.append(row)
    test = create_mock_test(db_path, user.id, title, test_date, max_score, rows)
    console.print(f"[green]Saved {test.title}: {test.total_score}/{test.max_score}[/green]")


def cmd_admin(db_path: str, user, settings: Settings):
    require_admin(db_path, user.id, settings)
    date_from = session_prompt("From date (blank for all)", default="")
    date_to = session_prompt("To date (blank for all)", default="")
    summary = get_analytics(db_path, date_from or None, date_to or None)
    console.print(Panel(
        f"Study hours: [bold]{summary['total_study_hours']}[/bold]  |  "
        f"Active students: [bold]{summary['active_users_count']}[/bold]  |  "
        f"Sessions: [bold]{summary['total_sessions_count']}[/bold]",
        title="Cohort", border_style="magenta",
    ))
    table = Table(title="Students")
    table.add_column("Email", style="cyan")
    table.add_column("Hours", justify="right")
    table.add_column("Sessions", justify="right")
    table.add_column("Syllabus", justify="right")
    table.add_column("Revisions due", justify="right")
    table.add_column("Backlog", justify="right")
    for row in get_analytics_students(db_path, date_from or None, date_to or None):
        table.add_row(row["email"], str(row["total_study_hours"]), str(row["sessions_count"]),
                      f"{row['syllabus_completion_pct']}%", str(row["revision_due"]),
                      str(row["backlog_count"]))
    console.print(table)
    overview = Table(title="Unit Completion (cohort)")
    overview.add_column("Subject")
    overview.add_column("Unit")
    overview.add_column("Completion")
    for subject in get_syllabus_overview(db_path)["subjects"]:
        for unit in subject["units"]:
            overview.add_row(subject["name"], unit["name"], _bar(unit["completion_percentage"]))
    console.print(overview)


def main():
    settings = load_settings()
    configure_logging(settings.log_level)
    db_path = settings.db_path
    init_db(db_path)
    if settings.seed_on_start:
        first_run = not is_seeded(db_path)
        if first_run:
            console.print("[dim]Setting up for first use...[/dim]")
        seed_if_empty(db_path)
        if first_run:
            console.print("[green]Ready![/green]\n")

    user = get_or_create_user(db_path, Prompt.ask("Email"))
    admin = is_admin(user, settings)
    show_welcome(user)
    advisor = RevisionAdvisor()
    message = advisor.check(get_revision_schedule(db_path, user.id), date.today())
    if message:
        console.print(f"[yellow]{message}[/yellow]")

    while True:
        show_menu(admin)
        choice = Prompt.ask("\n[bold]>[/bold]", default="dashboard").strip().lower()
        try:
            if choice == "dashboard":
                cmd_dashboard(db_path, user)
            elif choice == "syllabus":
                cmd_syllabus(db_path, user)
            elif choice == "progress":
                cmd_progress(db_path, user)
            elif choice == "log":
                cmd_log(db_path, user)
            elif choice == "revision":
                cmd_revision(db_path, user)
            elif choice == "backlog":
                cmd_backlog(db_path, user)
            elif choice == "mocks":
                cmd_mocks(db_path, user)
            elif choice == "admin":
                cmd_admin(db_path, user, settings)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]All the best for JEE![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except SessionExitRequested:
            console.print("[dim]Back to menu.[/dim]")
        except TrackerError as e:
            logger.warning("%s rejected: %s", choice, e.message)
            console.print(f"[red]{e.message}[/red]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
