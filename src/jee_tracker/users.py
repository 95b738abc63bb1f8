"""User accounts and the admin gate."""
import logging
import uuid
from datetime import datetime

from jee_tracker.config import Settings, load_settings
from jee_tracker.db import get_connection
from jee_tracker.exceptions import AuthorizationError, NotFoundError, ValidationError
from jee_tracker.models import User
from jee_tracker.schemas import UserUpdate, parse

logger = logging.getLogger(__name__)


def _normalize_email(email: str) -> str:
    email = (email or "").strip().lower()
    if "@" not in email:
        raise ValidationError(f"Invalid email: {email or '(empty)'}")
    return email


def create_user(
    db_path: str,
    email: str,
    role: str = "student",
    username: str | None = None,
    current_level: str | None = None,
) -> User:
    email = _normalize_email(email)
    data = parse(UserUpdate, {"role": role, "username": username, "current_level": current_level})
    user_id = str(uuid.uuid4())
    conn = get_connection(db_path)
    if conn.execute("SELECT 1 FROM users WHERE email = ?", (email,)).fetchone():
        conn.close()
        raise ValidationError(f"A user with email {email} already exists")
    conn.execute(
        "INSERT INTO users (id, email, role, username, current_level, created_at) VALUES (?, ?, ?, ?, ?, ?)",
        (user_id, email, data.role, data.username, data.current_level, datetime.now().isoformat()),
    )
    conn.commit()
    row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
    conn.close()
    logger.info("Created user %s", email)
    return User.from_row(row)


def get_user(db_path: str, user_id: str) -> User:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
    conn.close()
    if row is None:
        raise NotFoundError("User", user_id)
    return User.from_row(row)


def get_user_by_email(db_path: str, email: str) -> User | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM users WHERE email = ?", (email.strip().lower(),)).fetchone()
    conn.close()
    return User.from_row(row) if row else None


def get_or_create_user(db_path: str, email: str) -> User:
    """Resolve the signed-in email to a user, creating a student on first sight."""
    user = get_user_by_email(db_path, _normalize_email(email))
    if user is not None:
        return user
    return create_user(db_path, email)


def list_users(db_path: str) -> list[User]:
    conn = get_connection(db_path)
    rows = conn.execute("SELECT * FROM users ORDER BY created_at, email").fetchall()
    conn.close()
    return [User.from_row(r) for r in rows]


def update_user(db_path: str, user_id: str, **changes) -> User:
    data = parse(UserUpdate, changes).model_dump(exclude_unset=True)
    conn = get_connection(db_path)
    if conn.execute("SELECT 1 FROM users WHERE id = ?", (user_id,)).fetchone() is None:
        conn.close()
        raise NotFoundError("User", user_id)
    if data:
        assignments = ", ".join(f"{k} = ?" for k in data)
        conn.execute(f"UPDATE users SET {assignments} WHERE id = ?", (*data.values(), user_id))
        conn.commit()
    row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
    conn.close()
    return User.from_row(row)


def delete_user(db_path: str, user_id: str) -> None:
    """Delete a user together with all of their tracked data."""
    conn = get_connection(db_path)
    cur = conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
    conn.commit()
    conn.close()
    if cur.rowcount == 0:
        raise NotFoundError("User", user_id)
    logger.info("Deleted user %s", user_id)


def is_admin(user: User, settings: Settings) -> bool:
    return user.role == "admin" or user.email.lower() in settings.admin_emails


def require_admin(db_path: str, user_id: str, settings: Settings | None = None) -> User:
    """Return the user if they may use admin operations, else raise ``AuthorizationError``."""
    settings = settings or load_settings()
    try:
        user = get_user(db_path, user_id)
    except NotFoundError:
        raise AuthorizationError() from None
    if not is_admin(user, settings):
        raise AuthorizationError()
    return user
