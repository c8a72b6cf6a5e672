"""Small input coercion helpers shared by the services."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

from ..core.error_handlers import InvalidInputError

TWO_PLACES = Decimal('0.01')


def positive_int(value, label: str) -> int:
    """Return ``value`` as an int > 0 or raise ``InvalidInputError``."""
    if isinstance(value, bool):
        value = None
    try:
        number = int(value)
    except (TypeError, ValueError):
        number = 0
    if number <= 0:
        raise InvalidInputError(f'{label} must be a positive integer.')
    return number


def to_score(value, label: str = 'Score') -> Optional[Decimal]:
    """Parse a score to a 2-dp Decimal; ``None`` stays ``None``."""
    if value is None:
        return None
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidInputError(f'{label} must be a number.')
    if not number.is_finite():
        raise InvalidInputError(f'{label} must be a number.')
    return number.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
