"""Environment-driven settings and logging setup."""
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from rich.logging import RichHandler

DEFAULT_DB_PATH = str(Path.home() / ".jee_tracker" / "tracker.db")


def get_bool_env(key: str, default: bool = False) -> bool:
    """Get a boolean value from an environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ("true", "1", "yes", "on")


def _split_emails(raw: str) -> frozenset:
    return frozenset(e.strip().lower() for e in raw.split(",") if e.strip())


@dataclass(frozen=True)
class Settings:
    db_path: str = DEFAULT_DB_PATH
    admin_emails: frozenset = field(default_factory=frozenset)
    log_level: str = "WARNING"
    seed_on_start: bool = True


def load_settings() -> Settings:
    """Read settings from the environment.

    Variables:
        JEE_TRACKER_DB: SQLite database path.
        JEE_TRACKER_ADMIN_EMAILS: comma separated list of admin emails.
        JEE_TRACKER_LOG_LEVEL: logging level name.
        JEE_TRACKER_SEED_ON_START: seed the syllabus on startup when empty.
    """
    return Settings(
        db_path=os.getenv("JEE_TRACKER_DB", DEFAULT_DB_PATH),
        admin_emails=_split_emails(os.getenv("JEE_TRACKER_ADMIN_EMAILS", "")),
        log_level=os.getenv("JEE_TRACKER_LOG_LEVEL", "WARNING").upper(),
        seed_on_start=get_bool_env("JEE_TRACKER_SEED_ON_START", True),
    )


def configure_logging(level: str = "WARNING") -> None:
    """Route log records through rich on the root logger."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=False, show_path=False)],
        force=True,
    )
