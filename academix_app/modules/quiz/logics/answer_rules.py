"""Pure validation rules for quiz authoring."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from ....core.error_handlers import InvalidInputError
from ..config import QuizDefaultConfig

TYPE_MCQ = 'MCQ'
TYPE_TRUE_FALSE = 'TRUE_FALSE'


def answer_set_problem(question_type: str, correct_flags: Sequence[bool]) -> Optional[str]:
    """Describe what is wrong with a question's answer options, or ``None`` if valid."""
    if len(correct_flags) < 2:
        return 'A question needs at least two answer options.'
    if question_type == TYPE_TRUE_FALSE and len(correct_flags) != 2:
        return 'A true/false question needs exactly two answer options.'
    if sum(1 for flag in correct_flags if flag) != 1:
        return 'Exactly one answer option must be marked correct.'
    return None


def _coerce_answer(raw) -> Tuple[str, bool]:
    if isinstance(raw, Mapping):
        text = raw.get('answer_text', raw.get('text'))
        is_correct = raw.get('is_correct', False)
    else:
        text = getattr(raw, 'text', None)
        is_correct = getattr(raw, 'is_correct', False)
    return (str(text).strip() if text is not None else ''), bool(is_correct)


def validate_question(
    text: Optional[str],
    question_type: Optional[str],
    points,
    answers: Optional[Iterable],
    question_types: Sequence[str] = QuizDefaultConfig.QUESTION_TYPES,
) -> Tuple[str, str, Decimal, List[Tuple[str, bool]]]:
    """Validate and normalise one question with its answer options.

    Returns ``(text, type, points, [(answer_text, is_correct), ...])``.
    """
    normalized_text = (text or '').strip()
    if not normalized_text:
        raise InvalidInputError('Question text is required.')

    normalized_type = (question_type or '').strip().upper()
    if normalized_type not in question_types:
        raise InvalidInputError(
            'Question type must be one of: %s.' % ', '.join(question_types)
        )

    try:
        normalized_points = Decimal(str(points))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidInputError('Points must be a number.')
    if not normalized_points.is_finite():
        raise InvalidInputError('Points must be a number.')
    normalized_points = normalized_points.quantize(Decimal('0.01'))
    if normalized_points <= 0:
        raise InvalidInputError('Points must be greater than zero.')

    options = [_coerce_answer(raw) for raw in (answers or [])]
    for answer_text, _ in options:
        if not answer_text:
            raise InvalidInputError('Answer text is required.')
        if len(answer_text) > QuizDefaultConfig.MAX_ANSWER_LENGTH:
            raise InvalidInputError('Answer text is too long.')

    problem = answer_set_problem(normalized_type, [flag for _, flag in options])
    if problem:
        raise InvalidInputError(problem)

    return normalized_text, normalized_type, normalized_points, options


def validate_total_questions(total_questions, allowed: Sequence[int]) -> int:
    try:
        value = int(total_questions)
    except (TypeError, ValueError):
        value = None
    if value not in allowed:
        raise InvalidInputError(
            'Total questions must be one of: %s.' % ', '.join(str(v) for v in allowed)
        )
    return value


def validate_window(start_at: Optional[datetime], end_at: Optional[datetime]) -> None:
    if start_at is not None and end_at is not None and end_at <= start_at:
        raise InvalidInputError('The quiz must close after it opens.')
