"""Pure scoring of a submitted attempt against the quiz's answer key."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import FrozenSet, Mapping, Optional, Tuple


@dataclass(frozen=True)
class QuestionKey:
    points: Decimal
    correct_answer_id: Optional[int]
    answer_ids: FrozenSet[int]


@dataclass(frozen=True)
class GradedAnswer:
    question_id: int
    selected_answer_id: Optional[int]
    is_correct: bool


@dataclass(frozen=True)
class ScoreBreakdown:
    score: Decimal
    max_score: Decimal
    correct_count: int
    total_count: int
    graded: Tuple[GradedAnswer, ...]


def grade_submission(
    answer_key: Mapping[int, QuestionKey],
    submitted: Mapping[int, Optional[int]],
) -> ScoreBreakdown:
    """Score ``submitted`` (question id -> selected answer id).

    Unknown question ids are dropped. A selection that does not belong to
    its question is recorded as no selection and counts as incorrect.
    """
    score = Decimal('0')
    correct_count = 0
    graded = []

    for question_id, selected in submitted.items():
        key = answer_key.get(question_id)
        if key is None:
            continue
        if selected not in key.answer_ids:
            selected = None
        is_correct = selected is not None and selected == key.correct_answer_id
        if is_correct:
            score += key.points
            correct_count += 1
        graded.append(GradedAnswer(question_id, selected, is_correct))

    max_score = sum((key.points for key in answer_key.values()), Decimal('0'))
    return ScoreBreakdown(
        score=score,
        max_score=max_score,
        correct_count=correct_count,
        total_count=len(answer_key),
        graded=tuple(sorted(graded, key=lambda item: item.question_id)),
    )
