"""Pure rules of the gradebook approval workflow."""

from typing import Iterable, List, Optional, Set, Tuple

from ....models import GradeBook

EDITABLE_STATUSES = (GradeBook.STATUS_DRAFT, GradeBook.STATUS_REJECTED)
VISIBLE_TO_STUDENTS = (GradeBook.STATUS_PUBLISHED, GradeBook.STATUS_LOCKED)
LATE_CORRECTION_STATUSES = (GradeBook.STATUS_PUBLISHED, GradeBook.STATUS_LOCKED)


def is_editable(status: str) -> bool:
    return status in EDITABLE_STATUSES


def sync_refusal(status: str, allow_late_corrections: bool) -> Optional[str]:
    """Why an automatic score sync may not write into a gradebook, or ``None``."""
    if status == GradeBook.STATUS_PENDING_APPROVAL:
        return 'The gradebook is awaiting approval.'
    if status in LATE_CORRECTION_STATUSES and not allow_late_corrections:
        return 'The gradebook is already published.'
    return None


def missing_required_entries(
    required_item_ids: Iterable[int],
    enrollment_ids: Iterable[int],
    scored_pairs: Set[Tuple[int, int]],
) -> List[Tuple[int, int]]:
    """(item id, enrollment id) pairs that still lack a score."""
    enrollments = list(enrollment_ids)
    return [
        (item_id, enrollment_id)
        for item_id in required_item_ids
        for enrollment_id in enrollments
        if (item_id, enrollment_id) not in scored_pairs
    ]
