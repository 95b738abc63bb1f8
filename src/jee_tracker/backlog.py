"""Backlog of weak topics the student still has to fix."""
from datetime import datetime

from jee_tracker.db import ensure_exists, get_connection, transaction
from jee_tracker.exceptions import NotFoundError
from jee_tracker.models import (
    BacklogItem, BacklogScope, MultiTopic, SingleTopic, Unscoped, backlog_scope_to_columns,
)
from jee_tracker.schemas import BacklogInput, BacklogUpdate, parse


def scope_from_input(topic_id: int | None, topic_ids: list[int] | None) -> BacklogScope:
    if topic_ids:
        unique = list(dict.fromkeys(topic_ids))
        if len(unique) == 1:
            return SingleTopic(unique[0])
        return MultiTopic(tuple(unique))
    if topic_id is not None:
        return SingleTopic(topic_id)
    return Unscoped()


def scope_topic_ids(scope: BacklogScope) -> tuple[int, ...]:
    if isinstance(scope, SingleTopic):
        return (scope.topic_id,)
    if isinstance(scope, MultiTopic):
        return scope.topic_ids
    return ()


def count_open_backlog(items: list[BacklogItem]) -> int:
    return sum(1 for i in items if not i.is_completed)


def create_backlog_item(db_path: str, user_id: str, title: str, **fields) -> BacklogItem:
    data = parse(BacklogInput, {"title": title, **fields})
    scope = scope_from_input(data.topic_id, data.topic_ids)
    topic_id, topic_ids = backlog_scope_to_columns(scope)
    with transaction(db_path) as conn:
        ensure_exists(conn, "users", user_id, "User")
        for ident in scope_topic_ids(scope):
            ensure_exists(conn, "topics", ident, "Topic")
        cur = conn.execute(
            """INSERT INTO backlog_items
            (user_id, topic_id, topic_ids, title, description, priority, type, deadline, is_completed, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (user_id, topic_id, topic_ids, data.title, data.description, data.priority, data.type,
             data.deadline.isoformat() if data.deadline else None, int(data.is_completed),
             datetime.now().isoformat()),
        )
        row = conn.execute("SELECT * FROM backlog_items WHERE id = ?", (cur.lastrowid,)).fetchone()
    return BacklogItem.from_row(row)


def get_backlog_items(db_path: str, user_id: str) -> list[BacklogItem]:
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT * FROM backlog_items WHERE user_id = ? ORDER BY created_at DESC, id DESC", (user_id,)
    ).fetchall()
    conn.close()
    return [BacklogItem.from_row(r) for r in rows]


def update_backlog_item(db_path: str, item_id: int, user_id: str | None = None, **changes) -> BacklogItem:
    """Apply ``changes``; with ``user_id`` the item must belong to that user."""
    data = parse(BacklogUpdate, changes).model_dump(exclude_unset=True)
    if data.get("deadline") is not None:
        data["deadline"] = data["deadline"].isoformat()
    if "is_completed" in data:
        data["is_completed"] = int(bool(data["is_completed"]))
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM backlog_items WHERE id = ?", (item_id,)).fetchone()
    if row is None or (user_id is not None and row["user_id"] != user_id):
        conn.close()
        raise NotFoundError("Backlog item", item_id)
    if data:
        assignments = ", ".join(f"{k} = ?" for k in data)
        conn.execute(f"UPDATE backlog_items SET {assignments} WHERE id = ?", (*data.values(), item_id))
        conn.commit()
    row = conn.execute("SELECT * FROM backlog_items WHERE id = ?", (item_id,)).fetchone()
    conn.close()
    return BacklogItem.from_row(row)


def delete_backlog_item(db_path: str, item_id: int, user_id: str | None = None) -> None:
    sql = "DELETE FROM backlog_items WHERE id = ?"
    params = [item_id]
    if user_id is not None:
        sql += " AND user_id = ?"
        params.append(user_id)
    conn = get_connection(db_path)
    cur = conn.execute(sql, params)
    conn.commit()
    conn.close()
    if cur.rowcount == 0:
        raise NotFoundError("Backlog item", item_id)
