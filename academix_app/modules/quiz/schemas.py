"""Quiz module data shapes.

Dataclasses describe what services return; marshmallow schemas load the
JSON API payloads.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from marshmallow import EXCLUDE, Schema, fields, validate

from .config import QuizDefaultConfig


@dataclass
class AnswerInput:
    text: str
    is_correct: bool = False


@dataclass
class SubmittedAnswer:
    question_id: int
    selected_answer_id: Optional[int] = None


@dataclass
class QuestionAdded:
    question_id: int
    question_count: int
    required_count: int


@dataclass
class AttemptAnswerOption:
    answer_id: int
    text: str


@dataclass
class AttemptQuestion:
    question_id: int
    text: str
    question_type: str
    points: Decimal
    answers: List[AttemptAnswerOption] = field(default_factory=list)


@dataclass
class AttemptView:
    attempt_id: int
    quiz_id: int
    title: str
    status: str
    started_at: datetime
    end_time: Optional[datetime]
    questions: List[AttemptQuestion] = field(default_factory=list)


@dataclass
class SubmissionResult:
    attempt_id: int
    quiz_id: int
    score: Decimal
    max_score: Decimal
    correct_count: int
    total_count: int
    late: bool
    submitted_at: datetime


@dataclass(frozen=True)
class AttemptSnapshot:
    """Read-only view of an attempt handed to other modules."""

    attempt_id: int
    quiz_id: int
    student_id: int
    enrollment_id: int
    class_section_id: int
    status: str
    score: Optional[Decimal]
    max_score: Optional[Decimal]
    submitted_at: Optional[datetime]


# ---------------------------------------------------------------------------
# API payloads
# ---------------------------------------------------------------------------

class AnswerSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    text = fields.String(required=True, validate=validate.Length(min=1, max=QuizDefaultConfig.MAX_ANSWER_LENGTH))
    is_correct = fields.Boolean(load_default=False)


class CreateQuizSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    class_section_id = fields.Integer(required=True, strict=True)
    title = fields.String(required=True, validate=validate.Length(min=1, max=QuizDefaultConfig.MAX_TITLE_LENGTH))
    description = fields.String(load_default=None, allow_none=True)
    total_questions = fields.Integer(required=True)
    time_limit_minutes = fields.Integer(load_default=None, allow_none=True)
    shuffle_questions = fields.Boolean(load_default=False)
    shuffle_answers = fields.Boolean(load_default=False)
    start_at = fields.AwareDateTime(load_default=None, allow_none=True, default_timezone=timezone.utc)
    end_at = fields.AwareDateTime(load_default=None, allow_none=True, default_timezone=timezone.utc)


class QuestionSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    text = fields.String(required=True)
    question_type = fields.String(load_default='MCQ')
    points = fields.Decimal(required=True)
    answers = fields.List(fields.Nested(AnswerSchema), required=True)


class PublishSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    start_at = fields.AwareDateTime(load_default=None, allow_none=True, default_timezone=timezone.utc)
    end_at = fields.AwareDateTime(load_default=None, allow_none=True, default_timezone=timezone.utc)


class SubmittedAnswerSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    question_id = fields.Integer(required=True)
    selected_answer_id = fields.Integer(load_default=None, allow_none=True)


class SubmitAttemptSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    answers = fields.List(fields.Nested(SubmittedAnswerSchema), load_default=list)
