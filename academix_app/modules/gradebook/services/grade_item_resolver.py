"""Maps a quiz to the grade item its score lands in."""

from __future__ import annotations

from typing import Optional

from ....models import GradeBook, GradeItem

QUIZ_ITEM_PREFIX = 'QUIZ'


def quiz_item_name(quiz_id: int) -> str:
    return f'{QUIZ_ITEM_PREFIX}:{quiz_id}'


class NamingConventionResolver:
    """Resolve by item name: ``QUIZ:<quiz_id>`` first, then a catch-all ``QUIZ`` item."""

    def resolve_quiz_grade_item(self, class_section_id: int, quiz_id: int) -> Optional[int]:
        book = GradeBook.query.filter_by(class_section_id=class_section_id).first()
        if book is None:
            return None
        by_name = {}
        for item in GradeItem.query.filter_by(grade_book_id=book.grade_book_id):
            by_name.setdefault((item.item_name or '').strip().upper(), item.grade_item_id)
        return by_name.get(quiz_item_name(quiz_id)) or by_name.get(QUIZ_ITEM_PREFIX)
