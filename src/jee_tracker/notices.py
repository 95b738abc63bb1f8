"""Exam-date countdowns and motivational quotes shown on the dashboard."""
import random
from datetime import date, datetime

from jee_tracker.db import get_connection, transaction
from jee_tracker.exceptions import NotFoundError
from jee_tracker.models import ExamDate, MotivationalQuote
from jee_tracker.schemas import ExamDateInput, QuoteInput, parse


def _exam_from_row(row) -> ExamDate:
    return ExamDate(id=row["id"], name=row["name"], exam_date=row["exam_date"][:10],
                    display_order=row["display_order"])


def _quote_from_row(row) -> MotivationalQuote:
    return MotivationalQuote(id=row["id"], quote=row["quote"], author=row["author"],
                             display_order=row["display_order"], is_active=bool(row["is_active"]))


def days_remaining(exam_date, today: date) -> int:
    """Whole days from ``today`` to the exam; negative once it has passed."""
    if isinstance(exam_date, datetime):
        exam_date = exam_date.date()
    elif not isinstance(exam_date, date):
        exam_date = date.fromisoformat(str(exam_date)[:10])
    return (exam_date - today).days


# --- Exam dates ---

def list_exam_dates(db_path: str) -> list[ExamDate]:
    conn = get_connection(db_path)
    rows = conn.execute("SELECT * FROM exam_dates ORDER BY display_order, exam_date, id").fetchall()
    conn.close()
    return [_exam_from_row(r) for r in rows]


def upcoming_exam_dates(db_path: str, today: date | None = None) -> list[dict]:
    """Exams that have not passed yet, each with its countdown."""
    today = today or date.today()
    result = []
    for exam in list_exam_dates(db_path):
        remaining = days_remaining(exam.exam_date, today)
        if remaining < 0:
            continue
        result.append({
            "id": exam.id,
            "name": exam.name,
            "exam_date": exam.exam_date,
            "days_remaining": remaining,
        })
    return result


def create_exam_date(db_path: str, name: str, exam_date, display_order: int = 0) -> ExamDate:
    data = parse(ExamDateInput, {"name": name, "exam_date": exam_date, "display_order": display_order})
    conn = get_connection(db_path)
    cur = conn.execute(
        "INSERT INTO exam_dates (name, exam_date, display_order) VALUES (?, ?, ?)",
        (data.name, data.exam_date.isoformat(), data.display_order),
    )
    conn.commit()
    row = conn.execute("SELECT * FROM exam_dates WHERE id = ?", (cur.lastrowid,)).fetchone()
    conn.close()
    return _exam_from_row(row)


def update_exam_date(db_path: str, exam_id: int, **changes) -> ExamDate:
    with transaction(db_path) as conn:
        row = conn.execute("SELECT * FROM exam_dates WHERE id = ?", (exam_id,)).fetchone()
        if row is None:
            raise NotFoundError("Exam date", exam_id)
        merged = {"name": row["name"], "exam_date": row["exam_date"][:10],
                  "display_order": row["display_order"], **changes}
        data = parse(ExamDateInput, merged)
        conn.execute(
            "UPDATE exam_dates SET name = ?, exam_date = ?, display_order = ? WHERE id = ?",
            (data.name, data.exam_date.isoformat(), data.display_order, exam_id),
        )
        row = conn.execute("SELECT * FROM exam_dates WHERE id = ?", (exam_id,)).fetchone()
    return _exam_from_row(row)


def delete_exam_date(db_path: str, exam_id: int) -> None:
    conn = get_connection(db_path)
    cur = conn.execute("DELETE FROM exam_dates WHERE id = ?", (exam_id,))
    conn.commit()
    conn.close()
    if cur.rowcount == 0:
        raise NotFoundError("Exam date", exam_id)


# --- Quotes ---

def list_quotes(db_path: str, active_only: bool = False) -> list[MotivationalQuote]:
    sql = "SELECT * FROM motivational_quotes"
    if active_only:
        sql += " WHERE is_active = 1"
    conn = get_connection(db_path)
    rows = conn.execute(sql + " ORDER BY display_order, id").fetchall()
    conn.close()
    return [_quote_from_row(r) for r in rows]


def pick_quote(db_path: str, rng: random.Random | None = None) -> MotivationalQuote | None:
    """One active quote at random, or None when there are none."""
    quotes = list_quotes(db_path, active_only=True)
    if not quotes:
        return None
    return (rng or random).choice(quotes)


def create_quote(
    db_path: str,
    quote: str,
    author: str | None = None,
    display_order: int = 0,
    is_active: bool = True,
) -> MotivationalQuote:
    data = parse(QuoteInput, {"quote": quote, "author": author,
                              "display_order": display_order, "is_active": is_active})
    conn = get_connection(db_path)
    cur = conn.execute(
        "INSERT INTO motivational_quotes (quote, author, display_order, is_active) VALUES (?, ?, ?, ?)",
        (data.quote, data.author, data.display_order, int(data.is_active)),
    )
    conn.commit()
    row = conn.execute("SELECT * FROM motivational_quotes WHERE id = ?", (cur.lastrowid,)).fetchone()
    conn.close()
    return _quote_from_row(row)


def update_quote(db_path: str, quote_id: int, **changes) -> MotivationalQuote:
    with transaction(db_path) as conn:
        row = conn.execute("SELECT * FROM motivational_quotes WHERE id = ?", (quote_id,)).fetchone()
        if row is None:
            raise NotFoundError("Quote", quote_id)
        current = _quote_from_row(row)
        merged = {"quote": current.quote, "author": current.author,
                  "display_order": current.display_order, "is_active": current.is_active, **changes}
        data = parse(QuoteInput, merged)
        conn.execute(
            "UPDATE motivational_quotes SET quote = ?, author = ?, display_order = ?, is_active = ? WHERE id = ?",
            (data.quote, data.author, data.display_order, int(data.is_active), quote_id),
        )
        row = conn.execute("SELECT * FROM motivational_quotes WHERE id = ?", (quote_id,)).fetchone()
    return _quote_from_row(row)


def delete_quote(db_path: str, quote_id: int) -> None:
    conn = get_connection(db_path)
    cur = conn.execute("DELETE FROM motivational_quotes WHERE id = ?", (quote_id,))
    conn.commit()
    conn.close()
    if cur.rowcount == 0:
        raise NotFoundError("Quote", quote_id)
