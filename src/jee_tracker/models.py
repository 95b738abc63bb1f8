"""Data classes for the tracker domain model."""
import json
from dataclasses import dataclass, field
from typing import Optional, Union


def _load_ids(raw) -> list | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, (list, tuple)):
        return [int(i) for i in raw]
    return [int(i) for i in json.loads(raw)]


# --- Tagged scopes ---


@dataclass(frozen=True)
class Unscoped:
    """Backlog item about a whole unit or nothing in particular."""


@dataclass(frozen=True)
class SingleTopic:
    topic_id: int


@dataclass(frozen=True)
class MultiTopic:
    topic_ids: tuple


BacklogScope = Union[Unscoped, SingleTopic, MultiTopic]


def backlog_scope_from_columns(topic_id, topic_ids) -> BacklogScope:
    """Build a backlog scope from the loose ``topic_id``/``topic_ids`` columns.

    A non-empty list wins over the single id; a one-element list collapses
    to ``SingleTopic``.
    """
    ids = _load_ids(topic_ids)
    if ids:
        if len(ids) == 1:
            return SingleTopic(ids[0])
        return MultiTopic(tuple(ids))
    if topic_id is not None:
        return SingleTopic(int(topic_id))
    return Unscoped()


def backlog_scope_to_columns(scope: BacklogScope) -> tuple:
    """Return ``(topic_id, topic_ids_json)`` for storage."""
    if isinstance(scope, SingleTopic):
        return scope.topic_id, None
    if isinstance(scope, MultiTopic):
        return None, json.dumps(list(scope.topic_ids))
    return None, None


@dataclass(frozen=True)
class NamedScope:
    name: str  # class_11 | class_12 | full


@dataclass(frozen=True)
class CustomUnits:
    unit_ids: tuple


MockScope = Union[NamedScope, CustomUnits]


def mock_scope_from_columns(scope, unit_ids) -> Optional[MockScope]:
    if scope:
        return NamedScope(scope)
    ids = _load_ids(unit_ids)
    if ids:
        return CustomUnits(tuple(ids))
    return None


def mock_scope_to_columns(scope: Optional[MockScope]) -> tuple:
    """Return ``(scope, unit_ids_json)`` for storage."""
    if isinstance(scope, NamedScope):
        return scope.name, None
    if isinstance(scope, CustomUnits):
        return None, json.dumps(list(scope.unit_ids))
    return None, None


# --- Entities ---


@dataclass
class User:
    id: str
    email: str
    role: str = "student"
    username: Optional[str] = None
    current_level: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "User":
        return cls(
            id=row["id"], email=row["email"], role=row["role"],
            username=row["username"], current_level=row["current_level"],
            created_at=row["created_at"],
        )


@dataclass
class Topic:
    id: int
    unit_id: int
    name: str
    order: int = 0
    is_important: bool = False
    weightage: Optional[str] = None
    is_class_11: bool = True
    is_class_12: bool = True

    @classmethod
    def from_row(cls, row) -> "Topic":
        return cls(
            id=row["id"], unit_id=row["unit_id"], name=row["name"],
            order=row["display_order"], is_important=bool(row["is_important"]),
            weightage=row["weightage"], is_class_11=bool(row["is_class_11"]),
            is_class_12=bool(row["is_class_12"]),
        )


@dataclass
class Unit:
    id: int
    subject_id: int
    name: str
    order: int = 0
    topics: list = field(default_factory=list)

    @classmethod
    def from_row(cls, row) -> "Unit":
        return cls(id=row["id"], subject_id=row["subject_id"], name=row["name"], order=row["display_order"])

    @property
    def topic_ids(self) -> set:
        return {t.id for t in self.topics}


@dataclass
class Subject:
    id: int
    name: str
    color: str = "#3b82f6"
    units: list = field(default_factory=list)

    @classmethod
    def from_row(cls, row) -> "Subject":
        return cls(id=row["id"], name=row["name"], color=row["color"])

    @property
    def topics(self) -> list:
        return [t for u in self.units for t in u.topics]


@dataclass
class TopicProgress:
    id: int
    user_id: str
    topic_id: int
    status: str = "not_started"
    confidence: Optional[str] = None
    notes: Optional[str] = None
    completed_at: Optional[str] = None
    last_revised_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "TopicProgress":
        return cls(
            id=row["id"], user_id=row["user_id"], topic_id=row["topic_id"],
            status=row["status"], confidence=row["confidence"], notes=row["notes"],
            completed_at=row["completed_at"], last_revised_at=row["last_revised_at"],
        )


@dataclass
class StudySession:
    id: int
    user_id: str
    duration_minutes: int
    date: str
    subject_id: Optional[int] = None
    notes: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "StudySession":
        return cls(
            id=row["id"], user_id=row["user_id"], duration_minutes=row["duration_minutes"],
            date=row["date"], subject_id=row["subject_id"], notes=row["notes"],
            created_at=row["created_at"],
        )


@dataclass
class RevisionEntry:
    id: int
    user_id: str
    topic_id: int
    scheduled_date: str
    status: str = "not_started"
    completed_at: Optional[str] = None
    topic_name: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "RevisionEntry":
        keys = row.keys()
        return cls(
            id=row["id"], user_id=row["user_id"], topic_id=row["topic_id"],
            scheduled_date=row["scheduled_date"], status=row["status"],
            completed_at=row["completed_at"],
            topic_name=row["topic_name"] if "topic_name" in keys else None,
        )


@dataclass
class RevisionSession:
    """All of one user's revision entries sharing a scheduled date."""
    scheduled_date: str
    entries: list
    is_completed: bool
    is_overdue: bool
    is_due_today: bool

    @property
    def topic_ids(self) -> set:
        return {e.topic_id for e in self.entries}


@dataclass
class BacklogItem:
    id: int
    user_id: str
    title: str
    scope: BacklogScope = field(default_factory=Unscoped)
    description: Optional[str] = None
    priority: str = "medium"
    type: str = "concept"
    deadline: Optional[str] = None
    is_completed: bool = False
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "BacklogItem":
        return cls(
            id=row["id"], user_id=row["user_id"], title=row["title"],
            scope=backlog_scope_from_columns(row["topic_id"], row["topic_ids"]),
            description=row["description"], priority=row["priority"], type=row["type"],
            deadline=row["deadline"], is_completed=bool(row["is_completed"]),
            created_at=row["created_at"],
        )


@dataclass
class MockTestSubject:
    subject_id: int
    score: int
    negative_marks: int = 0
    max_score: Optional[int] = None
    scope: Optional[MockScope] = None
    correct_count: Optional[int] = None
    incorrect_count: Optional[int] = None
    unattempted_count: Optional[int] = None
    id: Optional[int] = None
    mock_test_id: Optional[str] = None
    subject_name: Optional[str] = None

    @property
    def net_score(self) -> int:
        return self.score - (self.negative_marks or 0)

    @classmethod
    def from_row(cls, row) -> "MockTestSubject":
        keys = row.keys()
        return cls(
            id=row["id"], mock_test_id=row["mock_test_id"], subject_id=row["subject_id"],
            score=row["score"], negative_marks=row["negative_marks"] or 0,
            max_score=row["max_score"],
            scope=mock_scope_from_columns(row["scope"], row["unit_ids"]),
            correct_count=row["correct_count"], incorrect_count=row["incorrect_count"],
            unattempted_count=row["unattempted_count"],
            subject_name=row["subject_name"] if "subject_name" in keys else None,
        )


@dataclass
class MockTest:
    id: str
    user_id: str
    title: str
    test_date: str
    total_score: int
    max_score: int
    notes: Optional[str] = None
    subjects: list = field(default_factory=list)
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "MockTest":
        return cls(
            id=row["id"], user_id=row["user_id"], title=row["title"],
            test_date=row["test_date"], total_score=row["total_score"],
            max_score=row["max_score"], notes=row["notes"], created_at=row["created_at"],
        )


@dataclass
class ExamDate:
    id: int
    name: str
    exam_date: str
    display_order: int = 0


@dataclass
class MotivationalQuote:
    id: int
    quote: str
    author: Optional[str] = None
    display_order: int = 0
    is_active: bool = True
