"""Deterministic per-attempt ordering of questions and answer options."""

import random
from typing import List, Sequence


def attempt_seed(attempt_id: int) -> str:
    return f'attempt:{attempt_id}'


def order_questions(seed: str, question_ids: Sequence[int], shuffle: bool) -> List[int]:
    ordered = list(question_ids)
    if shuffle:
        random.Random(seed).shuffle(ordered)
    return ordered


def order_answers(seed: str, question_id: int, answer_ids: Sequence[int], shuffle: bool) -> List[int]:
    # Seeded per question so an option order does not depend on question order.
    ordered = list(answer_ids)
    if shuffle:
        random.Random(f'{seed}:q{question_id}').shuffle(ordered)
    return ordered
