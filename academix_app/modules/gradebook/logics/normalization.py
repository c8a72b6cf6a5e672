"""Projection of a quiz score onto a grade item's scale."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

TWO_PLACES = Decimal('0.01')


def scale_attempt_score(
    score: Optional[Decimal],
    max_points: Optional[Decimal],
    item_max_score: Decimal,
) -> Decimal:
    """``score / max_points * item_max_score`` rounded to 2 dp and clamped to [0, item max]."""
    item_max = Decimal(item_max_score)
    if not score or not max_points or Decimal(max_points) <= 0:
        return Decimal('0.00')
    value = (Decimal(score) / Decimal(max_points) * item_max).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    if value < 0:
        return Decimal('0.00')
    if value > item_max:
        return item_max.quantize(TWO_PLACES)
    return value


def scores_equal(left: Optional[Decimal], right: Optional[Decimal]) -> bool:
    if left is None or right is None:
        return left is None and right is None
    return Decimal(left).quantize(TWO_PLACES) == Decimal(right).quantize(TWO_PLACES)
