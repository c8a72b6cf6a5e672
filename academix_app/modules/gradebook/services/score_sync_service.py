"""Projects a submitted quiz attempt's score into the class section's gradebook."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from flask import current_app

from ....core.collaborators import get_collaborators
from ....core.error_handlers import (
    ConflictError,
    ForbiddenError,
    GradebookNotFoundError,
    InvalidStateError,
    ItemNotFoundError,
    OperationCancelledError,
)
from ....core.service_result import ServiceResult, service_boundary
from ....db_instance import db
from ....models import GradeAuditLog, GradeBook, GradeItem, QuizAttempt
from ....utils.db_session import safe_commit
from ....utils.time_utils import deadline_expired, deadline_from
from ....utils.validation import positive_int
from ...access_control.services.permission_service import PermissionService
from ...quiz.interface import QuizInterface
from ..config import GradebookDefaultConfig
from ..logics.normalization import scale_attempt_score
from ..logics.policies import sync_refusal
from .entry_writer import apply_grade_entry, touch_gradebook

logger = logging.getLogger(__name__)


@dataclass
class SyncOutcome:
    attempt_id: int
    grade_item_id: int
    enrollment_id: int
    score: Decimal
    changed: bool


class ScoreSyncService:
    """Idempotent: syncing the same attempt twice leaves one entry and one audit row."""

    def __init__(self, directory=None, clock=None, grade_item_resolver=None):
        if directory is None or clock is None or grade_item_resolver is None:
            collaborators = get_collaborators()
            directory = directory or collaborators.directory
            clock = clock or collaborators.clock
            grade_item_resolver = grade_item_resolver or collaborators.grade_item_resolver
        self.directory = directory
        self.clock = clock
        self.grade_item_resolver = grade_item_resolver

    @staticmethod
    def _setting(name: str):
        return current_app.config.get(name, getattr(GradebookDefaultConfig, name))

    @service_boundary('sync_attempt_score')
    def sync_attempt_score(
        self,
        attempt_id: int,
        actor_id: Optional[int] = None,
        role: Optional[str] = None,
        reason: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> ServiceResult:
        """Post one attempt's score as a grade entry.

        Called without an actor it runs as the system; with ``actor_id`` and
        ``role`` the caller must manage the attempt's class section.
        """
        attempt_id = positive_int(attempt_id, 'Attempt id')
        deadline = deadline_from(self.clock, timeout)
        retries = int(self._setting('SCORE_SYNC_CONFLICT_RETRIES'))

        for round_number in range(retries + 1):
            try:
                return ServiceResult.ok(self._sync_once(attempt_id, actor_id, role, reason, deadline))
            except ConflictError:
                db.session.rollback()
                if round_number == retries:
                    raise
                logger.info("Score sync for attempt %s hit a concurrent write; retrying", attempt_id)

    def _sync_once(self, attempt_id, actor_id, role, reason, deadline) -> SyncOutcome:
        snapshot = QuizInterface.get_attempt_snapshot(attempt_id)
        if snapshot is None or snapshot.status != QuizAttempt.STATUS_SUBMITTED:
            raise ItemNotFoundError('No submitted attempt with this id.', resource='attempt')
        if actor_id is not None and not PermissionService.can_manage_section(
            self.directory, actor_id, role, snapshot.class_section_id
        ):
            raise ForbiddenError('Only the section teacher or an administrator may sync scores.')

        book = GradeBook.query.filter_by(class_section_id=snapshot.class_section_id).first()
        if book is None:
            raise GradebookNotFoundError('This class section has no gradebook yet.', resource='gradebook')
        refusal = sync_refusal(book.status, bool(self._setting('SCORE_SYNC_ALLOW_LATE_CORRECTIONS')))
        if refusal:
            raise InvalidStateError(refusal)

        item_id = self.grade_item_resolver.resolve_quiz_grade_item(
            snapshot.class_section_id, snapshot.quiz_id
        )
        item = db.session.get(GradeItem, item_id) if item_id else None
        if item is None or item.grade_book_id != book.grade_book_id:
            raise GradebookNotFoundError('No grade item is mapped to this quiz.', resource='grade_item')

        value = scale_attempt_score(snapshot.score, snapshot.max_score, item.max_score)
        now = self.clock.now()
        changed = apply_grade_entry(
            item,
            snapshot.enrollment_id,
            value,
            actor_id,
            (reason or '').strip() or GradeAuditLog.REASON_AUTO_SYNC,
            now,
        )
        if changed:
            touch_gradebook(book, now)

        if deadline_expired(self.clock, deadline):
            raise OperationCancelledError('The score sync timed out before it was saved.')
        safe_commit(db.session)

        if changed:
            logger.info(
                "Synced attempt %s into grade item %s for enrollment %s: %s",
                attempt_id, item.grade_item_id, snapshot.enrollment_id, value,
            )
        return SyncOutcome(
            attempt_id=attempt_id,
            grade_item_id=item.grade_item_id,
            enrollment_id=snapshot.enrollment_id,
            score=value,
            changed=changed,
        )
