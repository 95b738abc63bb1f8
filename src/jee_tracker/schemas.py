"""
Input schemas for tracker operations.

Each operation that accepts user input parses it through one of these
pydantic models first. ``parse`` turns pydantic's errors into the
tracker's own ``ValidationError`` so callers only handle one error family.
"""
import datetime as dt
from typing import List, Literal, Optional

import pydantic
from pydantic import BaseModel, Field, field_validator, model_validator

from jee_tracker.exceptions import ValidationError

ProgressStatus = Literal["not_started", "in_progress", "completed"]
Confidence = Literal["low", "medium", "high"]
Priority = Literal["low", "medium", "high"]
BacklogType = Literal["concept", "practice", "forgetting"]
SyllabusScope = Literal["class_11", "class_12", "whole"]
SubjectScope = Literal["class_11", "class_12", "full"]


def parse(model: type, data: dict):
    """Validate ``data`` against ``model``, raising ``ValidationError`` on failure."""
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        parts = []
        for err in e.errors():
            loc = ".".join(str(p) for p in err["loc"])
            msg = err["msg"].removeprefix("Value error, ")
            parts.append(f"{loc}: {msg}" if loc else msg)
        raise ValidationError("; ".join(parts) or "Validation failed") from e


# --- Syllabus (admin) ---

class SubjectInput(BaseModel):
    name: str = Field(..., min_length=1)
    color: str = "#3b82f6"


class SubjectUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    color: Optional[str] = None


class UnitInput(BaseModel):
    name: str = Field(..., min_length=1)
    order: int = 0


class UnitUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    order: Optional[int] = None


class TopicInput(BaseModel):
    name: str = Field(..., min_length=1)
    order: int = 0
    is_important: bool = False
    weightage: Optional[str] = None
    is_class_11: bool = True
    is_class_12: bool = True

    @model_validator(mode="after")
    def _applies_to_a_class(self):
        if not self.is_class_11 and not self.is_class_12:
            raise ValueError("Topic must apply to class 11, class 12 or both")
        return self


class TopicUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    order: Optional[int] = None
    is_important: Optional[bool] = None
    weightage: Optional[str] = None
    is_class_11: Optional[bool] = None
    is_class_12: Optional[bool] = None


# --- Student data ---

def _not_null(value):
    # Omitted fields keep their default; an explicit null is an error.
    if value is None:
        raise ValueError("may not be null")
    return value


class ProgressUpdate(BaseModel):
    status: Optional[ProgressStatus] = None
    confidence: Optional[Confidence] = None
    notes: Optional[str] = None
    last_revised_at: Optional[dt.datetime] = None

    _status_set = field_validator("status", mode="before")(_not_null)


class StudySessionInput(BaseModel):
    duration_minutes: int = Field(..., gt=0, description="Minutes studied")
    date: dt.date
    subject_id: Optional[int] = None
    notes: Optional[str] = None


class StudySessionUpdate(BaseModel):
    duration_minutes: Optional[int] = Field(None, gt=0)
    date: Optional[dt.date] = None
    subject_id: Optional[int] = None
    notes: Optional[str] = None

    _fields_set = field_validator("duration_minutes", "date", mode="before")(_not_null)


class RevisionInput(BaseModel):
    topic_id: int
    scheduled_date: dt.date


class RevisionBatchInput(BaseModel):
    topic_ids: List[int] = Field(..., min_length=1)
    scheduled_date: dt.date


class RevisionUpdate(BaseModel):
    scheduled_date: Optional[dt.date] = None
    status: Optional[ProgressStatus] = None
    completed_at: Optional[dt.datetime] = None

    _fields_set = field_validator("scheduled_date", "status", mode="before")(_not_null)


class BacklogInput(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    priority: Priority = "medium"
    type: BacklogType = "concept"
    deadline: Optional[dt.datetime] = None
    topic_id: Optional[int] = None
    topic_ids: Optional[List[int]] = None
    is_completed: bool = False

    @model_validator(mode="after")
    def _one_topic_reference(self):
        if self.topic_id is not None and self.topic_ids:
            raise ValueError("Use either topic_id or topic_ids, not both")
        return self


class BacklogUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    priority: Optional[Priority] = None
    type: Optional[BacklogType] = None
    deadline: Optional[dt.datetime] = None
    is_completed: Optional[bool] = None


class MockTestSubjectInput(BaseModel):
    subject_id: int = Field(..., gt=0)
    score: int = Field(..., ge=0)
    negative_marks: int = Field(0, ge=0)
    max_score: Optional[int] = Field(None, ge=0)
    scope: Optional[SubjectScope] = None
    unit_ids: Optional[List[int]] = None
    correct_count: Optional[int] = Field(None, ge=0)
    incorrect_count: Optional[int] = Field(None, ge=0)
    unattempted_count: Optional[int] = Field(None, ge=0)

    @model_validator(mode="after")
    def _scope_or_units(self):
        if self.scope is not None and self.unit_ids:
            raise ValueError("Choose a named scope or a custom unit selection, not both")
        return self


class MockTestInput(BaseModel):
    title: str = Field(..., min_length=1)
    test_date: dt.date
    max_score: int = Field(..., gt=0)
    notes: Optional[str] = None
    # Accepted for compatibility with older clients; the stored total is
    # always recomputed from the subject rows.
    total_score: Optional[int] = None
    subjects: List[MockTestSubjectInput] = Field(..., min_length=1)


# --- Users and notices ---

class UserUpdate(BaseModel):
    username: Optional[str] = None
    current_level: Optional[Literal["11", "12"]] = None
    role: Optional[Literal["admin", "student"]] = None


class ExamDateInput(BaseModel):
    name: str = Field(..., min_length=1)
    exam_date: dt.date
    display_order: int = 0


class QuoteInput(BaseModel):
    quote: str = Field(..., min_length=1)
    author: Optional[str] = None
    display_order: int = 0
    is_active: bool = True
