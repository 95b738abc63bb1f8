"""Mock-test score validation, storage and score trends."""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from jee_tracker.db import get_connection, transaction
from jee_tracker.exceptions import NotFoundError, ValidationError
from jee_tracker.models import (
    CustomUnits, MockTest, MockTestSubject, NamedScope, mock_scope_to_columns,
)
from jee_tracker.rounding import percentage
from jee_tracker.schemas import MockTestInput, parse

logger = logging.getLogger(__name__)


@dataclass
class ValidatedTest:
    max_score: int
    total_score: int
    subjects: list


def net_score(score: int, negative_marks: int = 0) -> int:
    return score - (negative_marks or 0)


def validate_and_build_test(
    test_max: int,
    entries: list[MockTestSubject],
    subject_names: dict | None = None,
) -> ValidatedTest:
    """Check subject scores against the test and subject maxima.

    Rules, in order:
      * the nets (score - negative marks) add up to at most ``test_max``;
      * with several subjects, each has a positive max and the maxes add
        up to exactly ``test_max``;
      * each net is within its subject max, or within ``test_max`` when
        the test has a single subject.

    The returned total is always recomputed from the nets.
    """
    names = subject_names or {}

    def label(entry):
        return names.get(entry.subject_id) or entry.subject_name or f"subject {entry.subject_id}"

    if test_max is None or test_max <= 0:
        raise ValidationError("Test max must be positive")
    if not entries:
        raise ValidationError("At least one subject is required")
    seen = set()
    for entry in entries:
        if entry.subject_id in seen:
            raise ValidationError(f"{label(entry)} is listed more than once")
        seen.add(entry.subject_id)
        if entry.score < 0 or (entry.negative_marks or 0) < 0:
            raise ValidationError(f"Score and negative marks must not be negative for {label(entry)}")

    total = sum(e.net_score for e in entries)
    if total > test_max:
        raise ValidationError(f"Total exceeds test max ({total} > {test_max})")

    multi = len(entries) > 1
    if multi:
        for entry in entries:
            if not entry.max_score or entry.max_score <= 0:
                raise ValidationError(f"Max marks required for {label(entry)}")
        max_sum = sum(e.max_score for e in entries)
        if max_sum != test_max:
            raise ValidationError(
                f"Invalid max scores: subject max marks add up to {max_sum}, test max is {test_max}"
            )

    for entry in entries:
        cap = entry.max_score if multi else test_max
        if entry.net_score > cap:
            raise ValidationError(f"Marks exceed max for {label(entry)} ({entry.net_score} > {cap})")

    return ValidatedTest(max_score=test_max, total_score=total, subjects=list(entries))


def split_equally(total: int, count: int) -> list[int]:
    """Spread ``total`` over ``count`` subjects; the first ``total % count`` get one extra."""
    if count <= 0:
        return []
    base, extra = divmod(total, count)
    return [base + 1 if i < extra else base for i in range(count)]


def score_series(tests: list[MockTest], subject_id: int | None = None) -> list[tuple]:
    """``(test_date, percentage)`` points in date order.

    Without ``subject_id`` each point is the whole test. With it, tests not
    covering that subject are skipped; a subject without its own max is
    estimated as ``test max / number of subjects``.
    """
    points = []
    for test in tests:
        if subject_id is None:
            points.append((test.test_date, percentage(test.total_score, test.max_score)))
            continue
        entry = next((s for s in test.subjects if s.subject_id == subject_id), None)
        if entry is None:
            continue
        cap = entry.max_score or test.max_score / len(test.subjects)
        points.append((test.test_date, percentage(entry.net_score, cap)))
    points.sort(key=lambda p: p[0])
    return points


# --- Storage ---


def _entry_from_input(s) -> MockTestSubject:
    if s.scope is not None:
        scope = NamedScope(s.scope)
    elif s.unit_ids:
        scope = CustomUnits(tuple(s.unit_ids))
    else:
        scope = None
    return MockTestSubject(
        subject_id=s.subject_id, score=s.score, negative_marks=s.negative_marks,
        max_score=s.max_score, scope=scope, correct_count=s.correct_count,
        incorrect_count=s.incorrect_count, unattempted_count=s.unattempted_count,
    )


def _subject_names(conn) -> dict:
    return {r["id"]: r["name"] for r in conn.execute("SELECT id, name FROM subjects")}


def _validated(conn, data: MockTestInput) -> ValidatedTest:
    names = _subject_names(conn)
    entries = [_entry_from_input(s) for s in data.subjects]
    for entry in entries:
        if entry.subject_id not in names:
            raise NotFoundError("Subject", entry.subject_id)
    return validate_and_build_test(data.max_score, entries, names)


def _insert_subjects(conn, test_id: str, subjects: list[MockTestSubject]) -> None:
    rows = []
    for s in subjects:
        scope, unit_ids = mock_scope_to_columns(s.scope)
        rows.append((test_id, s.subject_id, s.score, s.negative_marks or 0, s.max_score,
                     s.correct_count, s.incorrect_count, s.unattempted_count, scope, unit_ids))
    conn.executemany(
        """INSERT INTO mock_test_subjects
        (mock_test_id, subject_id, score, negative_marks, max_score,
         correct_count, incorrect_count, unattempted_count, scope, unit_ids)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        rows,
    )


def _load_test(conn, test_id: str) -> MockTest | None:
    row = conn.execute("SELECT * FROM mock_tests WHERE id = ?", (test_id,)).fetchone()
    if row is None:
        return None
    test = MockTest.from_row(row)
    subject_rows = conn.execute(
        """SELECT ms.*, s.name AS subject_name
        FROM mock_test_subjects ms JOIN subjects s ON ms.subject_id = s.id
        WHERE ms.mock_test_id = ? ORDER BY ms.id""",
        (test_id,),
    ).fetchall()
    test.subjects = [MockTestSubject.from_row(r) for r in subject_rows]
    return test


def create_mock_test(
    db_path: str,
    user_id: str,
    title: str,
    test_date,
    max_score: int,
    subjects: list[dict],
    notes: str | None = None,
    total_score: int | None = None,
) -> MockTest:
    """Validate and store a test with its subject rows in one transaction.

    ``total_score`` from the client is ignored in favour of the sum of nets.
    """
    data = parse(MockTestInput, {
        "title": title, "test_date": test_date, "max_score": max_score,
        "subjects": subjects, "notes": notes, "total_score": total_score,
    })
    test_id = str(uuid.uuid4())
    with transaction(db_path) as conn:
        validated = _validated(conn, data)
        conn.execute(
            """INSERT INTO mock_tests (id, user_id, title, test_date, total_score, max_score, notes, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (test_id, user_id, data.title, data.test_date.isoformat(), validated.total_score,
             validated.max_score, data.notes, datetime.now().isoformat()),
        )
        _insert_subjects(conn, test_id, validated.subjects)
        test = _load_test(conn, test_id)
    logger.info("Created mock test %s for %s (%d/%d)", test_id, user_id, test.total_score, test.max_score)
    return test


def update_mock_test(
    db_path: str,
    test_id: str,
    title: str,
    test_date,
    max_score: int,
    subjects: list[dict],
    notes: str | None = None,
    user_id: str | None = None,
    total_score: int | None = None,
) -> MockTest:
    """Replace a test's fields and subject rows together.

    With ``user_id`` the test must belong to that user.
    """
    data = parse(MockTestInput, {
        "title": title, "test_date": test_date, "max_score": max_score,
        "subjects": subjects, "notes": notes, "total_score": total_score,
    })
    with transaction(db_path) as conn:
        row = conn.execute("SELECT user_id FROM mock_tests WHERE id = ?", (test_id,)).fetchone()
        if row is None or (user_id is not None and row["user_id"] != user_id):
            raise NotFoundError("Mock test", test_id)
        validated = _validated(conn, data)
        conn.execute(
            """UPDATE mock_tests SET title = ?, test_date = ?, total_score = ?, max_score = ?, notes = ?
            WHERE id = ?""",
            (data.title, data.test_date.isoformat(), validated.total_score, validated.max_score,
             data.notes, test_id),
        )
        conn.execute("DELETE FROM mock_test_subjects WHERE mock_test_id = ?", (test_id,))
        _insert_subjects(conn, test_id, validated.subjects)
        test = _load_test(conn, test_id)
    logger.info("Updated mock test %s", test_id)
    return test


def delete_mock_test(db_path: str, test_id: str, user_id: str | None = None) -> None:
    sql = "DELETE FROM mock_tests WHERE id = ?"
    params = [test_id]
    if user_id is not None:
        sql += " AND user_id = ?"
        params.append(user_id)
    conn = get_connection(db_path)
    cur = conn.execute(sql, params)
    conn.commit()
    conn.close()
    if cur.rowcount == 0:
        raise NotFoundError("Mock test", test_id)


def get_mock_test(db_path: str, test_id: str) -> MockTest:
    conn = get_connection(db_path)
    test = _load_test(conn, test_id)
    conn.close()
    if test is None:
        raise NotFoundError("Mock test", test_id)
    return test


def get_mock_tests(db_path: str, user_id: str) -> list[MockTest]:
    """A user's tests, newest first, each with its subject rows."""
    conn = get_connection(db_path)
    ids = [r["id"] for r in conn.execute(
        "SELECT id FROM mock_tests WHERE user_id = ? ORDER BY test_date DESC, created_at DESC",
        (user_id,),
    )]
    tests = [_load_test(conn, i) for i in ids]
    conn.close()
    return tests
