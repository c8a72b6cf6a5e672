"""Grade entry writes shared by manual edits and quiz score sync."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from ....models import GradeAuditLog, GradeBook, GradeEntry, GradeItem
from ....db_instance import db
from ..logics.normalization import scores_equal


def apply_grade_entry(
    item: GradeItem,
    enrollment_id: int,
    score: Optional[Decimal],
    actor_id: Optional[int],
    reason: str,
    now: datetime,
) -> bool:
    """Upsert one entry and audit the change. Returns ``False`` when nothing changed."""
    entry = GradeEntry.query.filter_by(
        grade_item_id=item.grade_item_id, enrollment_id=enrollment_id
    ).first()
    old_score = entry.score if entry is not None else None

    if entry is None:
        if score is None:
            return False
        entry = GradeEntry(grade_item_id=item.grade_item_id, enrollment_id=enrollment_id)
        db.session.add(entry)
    elif scores_equal(old_score, score):
        return False

    entry.score = score
    entry.updated_by = actor_id
    entry.updated_at = now
    db.session.add(
        GradeAuditLog(
            grade_entry=entry,
            actor_user_id=actor_id,
            old_score=old_score,
            new_score=score,
            reason=reason,
            created_at=now,
        )
    )
    return True


def touch_gradebook(book: GradeBook, now: datetime) -> None:
    """Record a mutation: bump the version checked by the next UPDATE."""
    book.version = (book.version or 0) + 1
    book.updated_at = now
