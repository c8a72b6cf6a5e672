"""Gradebook items, score entry and the approval state machine.

DRAFT / REJECTED --request_approval--> PENDING_APPROVAL --approve--> PUBLISHED
                                                       \\--reject--> REJECTED
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from ....core.collaborators import get_collaborators
from ....core.error_handlers import (
    ConflictError,
    ForbiddenError,
    GradebookNotFoundError,
    InvalidInputError,
    InvalidStateError,
)
from ....core.service_result import ServiceResult, service_boundary
from ....core.signals import (
    gradebook_approved,
    gradebook_rejected,
    gradebook_review_requested,
    send_safely,
)
from ....db_instance import db
from ....models import GradeBook, GradeBookApproval, GradeEntry, GradeItem, GradeAuditLog
from ....utils.db_session import safe_commit
from ....utils.validation import positive_int, to_score
from ...access_control.logics.policies import ROLE_STUDENT, has_role
from ...access_control.services.permission_service import PermissionService
from ..config import GradebookDefaultConfig
from ..logics.policies import VISIBLE_TO_STUDENTS, is_editable, missing_required_entries
from .entry_writer import apply_grade_entry, touch_gradebook

logger = logging.getLogger(__name__)

STALE_MESSAGE = 'The gradebook was changed by someone else. Reload and try again.'


def gradebook_summary(book: GradeBook) -> dict:
    return {
        'grade_book_id': book.grade_book_id,
        'class_section_id': book.class_section_id,
        'status': book.status,
        'version': book.version,
        'published_at': book.published_at,
        'locked_at': book.locked_at,
        'updated_at': book.updated_at,
    }


def _clean_message(message: Optional[str]) -> Optional[str]:
    message = (message or '').strip()
    if len(message) > GradebookDefaultConfig.MAX_MESSAGE_LENGTH:
        raise InvalidInputError('The message is too long.')
    return message or None


def _cell_value(cell, key: str):
    if isinstance(cell, dict):
        return cell.get(key)
    return getattr(cell, key, None)


class GradebookService:
    """Teacher and admin gradebook operations. Every public method returns a ``ServiceResult``."""

    def __init__(self, directory=None, clock=None):
        if directory is None or clock is None:
            collaborators = get_collaborators()
            directory = directory or collaborators.directory
            clock = clock or collaborators.clock
        self.directory = directory
        self.clock = clock

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _get_or_create_book(self, class_section_id: int) -> GradeBook:
        book = GradeBook.query.filter_by(class_section_id=class_section_id).first()
        if book is not None:
            return book

        now = self.clock.now()
        book = GradeBook(
            class_section_id=class_section_id,
            status=GradeBook.STATUS_DRAFT,
            version=1,
            created_at=now,
            updated_at=now,
        )
        db.session.add(book)
        try:
            db.session.commit()
        except IntegrityError:
            # Another request created it first.
            db.session.rollback()
            book = GradeBook.query.filter_by(class_section_id=class_section_id).first()
            if book is None:
                raise GradebookNotFoundError('No gradebook can be opened for this class section.')
        else:
            logger.info("Gradebook %s created for section %s", book.grade_book_id, class_section_id)
        return book

    @staticmethod
    def _load_book(class_section_id: int) -> GradeBook:
        book = GradeBook.query.filter_by(class_section_id=class_section_id).first()
        if book is None:
            raise GradebookNotFoundError('This class section has no gradebook yet.', resource='gradebook')
        return book

    @staticmethod
    def _check_version(book: GradeBook, expected_version: Optional[int]) -> None:
        if expected_version is not None and positive_int(expected_version, 'Expected version') != book.version:
            raise ConflictError(STALE_MESSAGE)

    @staticmethod
    def _require_editable(book: GradeBook) -> None:
        if not is_editable(book.status):
            raise InvalidStateError('The gradebook can only be edited while it is a draft or rejected.')

    @staticmethod
    def _commit_decision() -> None:
        try:
            db.session.commit()
        except StaleDataError:
            db.session.rollback()
            raise InvalidStateError('This gradebook has already been reviewed.')

    @staticmethod
    def _entries_for(book: GradeBook, enrollment_id: Optional[int] = None):
        query = (
            GradeEntry.query.join(GradeItem, GradeEntry.grade_item_id == GradeItem.grade_item_id)
            .filter(GradeItem.grade_book_id == book.grade_book_id)
        )
        if enrollment_id is not None:
            query = query.filter(GradeEntry.enrollment_id == enrollment_id)
        return query.order_by(GradeEntry.enrollment_id, GradeEntry.grade_item_id).all()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    @service_boundary('get_or_create_gradebook')
    def get_or_create(self, class_section_id: int) -> ServiceResult:
        book = self._get_or_create_book(positive_int(class_section_id, 'Class section id'))
        return ServiceResult.ok(gradebook_summary(book))

    @service_boundary('get_gradebook_detail')
    def get_detail(self, actor_id: int, role: str, class_section_id: int) -> ServiceResult:
        class_section_id = positive_int(class_section_id, 'Class section id')

        if PermissionService.can_manage_section(self.directory, actor_id, role, class_section_id):
            book = self._get_or_create_book(class_section_id)
            entries = self._entries_for(book)
            latest = book.approvals.order_by(GradeBookApproval.approval_id.desc()).first()
        elif has_role(role, ROLE_STUDENT):
            enrollment_id = self.directory.get_enrollment_id(actor_id, class_section_id)
            if enrollment_id is None:
                raise ForbiddenError('You are not enrolled in this class section.')
            book = self._load_book(class_section_id)
            if book.status not in VISIBLE_TO_STUDENTS:
                raise InvalidStateError('Grades for this class section have not been published yet.')
            entries = self._entries_for(book, enrollment_id)
            latest = None
        else:
            raise ForbiddenError('You may not view this gradebook.')

        return ServiceResult.ok(
            {
                'gradebook': gradebook_summary(book),
                'items': [item.to_dict() for item in book.items],
                'entries': [entry.to_dict() for entry in entries],
                'latest_approval': latest.to_dict() if latest is not None else None,
            }
        )

    # ------------------------------------------------------------------
    # Teacher edits
    # ------------------------------------------------------------------
    @service_boundary('add_grade_item')
    def add_grade_item(
        self,
        teacher_id: int,
        role: str,
        class_section_id: int,
        name: str,
        max_score,
        weight=None,
        is_required: bool = True,
        sort_order: Optional[int] = None,
        expected_version: Optional[int] = None,
    ) -> ServiceResult:
        class_section_id = positive_int(class_section_id, 'Class section id')
        PermissionService.require_section_teacher(self.directory, teacher_id, role, class_section_id)

        name = (name or '').strip()
        if not name:
            raise InvalidInputError('Grade item name is required.')
        if len(name) > GradebookDefaultConfig.MAX_ITEM_NAME_LENGTH:
            raise InvalidInputError('Grade item name is too long.')
        max_score = to_score(max_score, 'Max score')
        if max_score is None or max_score <= 0:
            raise InvalidInputError('Max score must be greater than zero.')
        if weight is not None:
            try:
                weight = Decimal(str(weight))
            except (InvalidOperation, ValueError):
                raise InvalidInputError('Weight must be a number.')
            if not weight.is_finite() or weight < 0 or weight > 1:
                raise InvalidInputError('Weight must be between 0 and 1.')

        book = self._get_or_create_book(class_section_id)
        self._require_editable(book)
        self._check_version(book, expected_version)
        if any(item.item_name.strip().upper() == name.upper() for item in book.items):
            raise InvalidInputError('A grade item with this name already exists.')

        now = self.clock.now()
        item = GradeItem(
            item_name=name,
            max_score=max_score,
            weight=weight,
            is_required=bool(is_required),
            sort_order=sort_order if sort_order is not None else len(book.items) + 1,
            created_at=now,
        )
        book.items.append(item)
        touch_gradebook(book, now)
        safe_commit(db.session, conflict_message=STALE_MESSAGE)
        return ServiceResult.ok({'item': item.to_dict(), 'version': book.version})

    @service_boundary('upsert_scores')
    def upsert_scores(
        self,
        teacher_id: int,
        role: str,
        class_section_id: int,
        score_cells: Iterable,
        expected_version: Optional[int] = None,
    ) -> ServiceResult:
        """Write a batch of scores all-or-nothing.

        Each cell carries ``grade_item_id``, ``enrollment_id``, ``score``
        (``None`` clears it) and an optional audit ``reason``.
        """
        class_section_id = positive_int(class_section_id, 'Class section id')
        PermissionService.require_section_teacher(self.directory, teacher_id, role, class_section_id)
        book = self._load_book(class_section_id)
        self._require_editable(book)

        cells = list(score_cells or [])
        if not cells:
            raise InvalidInputError('No scores were provided.')

        items = {item.grade_item_id: item for item in book.items}
        enrollment_ids = set(self.directory.list_enrollment_ids(class_section_id))
        planned = []
        seen = set()
        for cell in cells:
            try:
                item_id = int(_cell_value(cell, 'grade_item_id'))
                enrollment_id = int(_cell_value(cell, 'enrollment_id'))
            except (TypeError, ValueError):
                raise InvalidInputError('Each score needs a grade item id and an enrollment id.')
            item = items.get(item_id)
            if item is None:
                raise InvalidInputError(f'Grade item {item_id} does not belong to this gradebook.')
            if enrollment_id not in enrollment_ids:
                raise InvalidInputError(f'Enrollment {enrollment_id} is not part of this class section.')
            if (item_id, enrollment_id) in seen:
                raise InvalidInputError('The same score cell appears more than once.')
            seen.add((item_id, enrollment_id))

            score = to_score(_cell_value(cell, 'score'))
            if score is not None and (score < 0 or score > item.max_score):
                raise InvalidInputError(
                    f'Scores for "{item.item_name}" must be between 0 and {item.max_score}.'
                )
            reason = (_cell_value(cell, 'reason') or '').strip() or GradeAuditLog.REASON_MANUAL_EDIT
            planned.append((item, enrollment_id, score, reason))

        self._check_version(book, expected_version)

        now = self.clock.now()
        changed = 0
        for item, enrollment_id, score, reason in planned:
            if apply_grade_entry(item, enrollment_id, score, teacher_id, reason, now):
                changed += 1
        if changed:
            touch_gradebook(book, now)
        safe_commit(db.session, conflict_message=STALE_MESSAGE)
        logger.info(
            "Teacher %s updated %s grade entries in gradebook %s", teacher_id, changed, book.grade_book_id
        )
        return ServiceResult.ok({'updated': changed, 'version': book.version})

    # ------------------------------------------------------------------
    # Approval workflow
    # ------------------------------------------------------------------
    @service_boundary('request_gradebook_approval')
    def request_approval(
        self,
        teacher_id: int,
        role: str,
        class_section_id: int,
        message: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> ServiceResult:
        class_section_id = positive_int(class_section_id, 'Class section id')
        PermissionService.require_section_teacher(self.directory, teacher_id, role, class_section_id)
        message = _clean_message(message)
        book = self._load_book(class_section_id)
        if not is_editable(book.status):
            raise InvalidStateError('Approval can only be requested for a draft or rejected gradebook.')
        self._check_version(book, expected_version)

        required_ids = [item.grade_item_id for item in book.items if item.is_required]
        scored_pairs = set()
        if required_ids:
            scored_pairs = {
                (row.grade_item_id, row.enrollment_id)
                for row in db.session.query(GradeEntry.grade_item_id, GradeEntry.enrollment_id).filter(
                    GradeEntry.grade_item_id.in_(required_ids),
                    GradeEntry.score.isnot(None),
                )
            }
        missing = missing_required_entries(
            required_ids, self.directory.list_enrollment_ids(class_section_id), scored_pairs
        )
        if missing:
            raise InvalidInputError(
                f'{len(missing)} required grade entries are still missing.',
                errors={
                    'missing': [
                        {'grade_item_id': item_id, 'enrollment_id': enrollment_id}
                        for item_id, enrollment_id in missing
                    ]
                },
            )

        now = self.clock.now()
        approval = GradeBookApproval(
            outcome=GradeBookApproval.OUTCOME_PENDING,
            request_by=teacher_id,
            request_at=now,
            request_message=message,
        )
        book.approvals.append(approval)
        book.status = GradeBook.STATUS_PENDING_APPROVAL
        touch_gradebook(book, now)
        safe_commit(db.session, conflict_message=STALE_MESSAGE)
        logger.info("Gradebook %s submitted for approval by teacher %s", book.grade_book_id, teacher_id)

        send_safely(
            gradebook_review_requested,
            self,
            grade_book_id=book.grade_book_id,
            class_section_id=class_section_id,
            requested_by=teacher_id,
            message=message,
        )
        return ServiceResult.ok(
            {'gradebook': gradebook_summary(book), 'approval': approval.to_dict()}
        )

    def _decide(
        self,
        admin_id: int,
        class_section_id,
        outcome: str,
        message: Optional[str],
        expected_version: Optional[int],
    ):
        book = self._load_book(positive_int(class_section_id, 'Class section id'))
        if book.status != GradeBook.STATUS_PENDING_APPROVAL:
            raise InvalidStateError('This gradebook is not awaiting approval.')
        self._check_version(book, expected_version)
        approval = book.approvals.order_by(GradeBookApproval.approval_id.desc()).first()
        if approval is None or approval.outcome != GradeBookApproval.OUTCOME_PENDING:
            raise InvalidStateError('This gradebook has no pending approval request.')

        now = self.clock.now()
        approval.outcome = outcome
        approval.response_by = admin_id
        approval.response_at = now
        approval.response_message = message
        if outcome == GradeBookApproval.OUTCOME_APPROVED:
            book.status = GradeBook.STATUS_PUBLISHED
            book.published_at = now
        else:
            book.status = GradeBook.STATUS_REJECTED
        touch_gradebook(book, now)
        self._commit_decision()
        return book, approval

    @service_boundary('approve_gradebook')
    def approve(
        self,
        admin_id: int,
        role: str,
        class_section_id: int,
        message: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> ServiceResult:
        PermissionService.require_admin(role)
        message = _clean_message(message)
        book, approval = self._decide(
            admin_id, class_section_id, GradeBookApproval.OUTCOME_APPROVED, message, expected_version
        )
        logger.info("Gradebook %s approved by admin %s", book.grade_book_id, admin_id)
        send_safely(
            gradebook_approved,
            self,
            grade_book_id=book.grade_book_id,
            class_section_id=book.class_section_id,
            approved_by=admin_id,
            message=message,
        )
        return ServiceResult.ok({'gradebook': gradebook_summary(book), 'approval': approval.to_dict()})

    @service_boundary('reject_gradebook')
    def reject(
        self,
        admin_id: int,
        role: str,
        class_section_id: int,
        message: str,
        expected_version: Optional[int] = None,
    ) -> ServiceResult:
        PermissionService.require_admin(role)
        message = _clean_message(message)
        if not message:
            raise InvalidInputError('A reason is required to reject a gradebook.')
        book, approval = self._decide(
            admin_id, class_section_id, GradeBookApproval.OUTCOME_REJECTED, message, expected_version
        )
        logger.info("Gradebook %s rejected by admin %s", book.grade_book_id, admin_id)
        send_safely(
            gradebook_rejected,
            self,
            grade_book_id=book.grade_book_id,
            class_section_id=book.class_section_id,
            rejected_by=admin_id,
            message=message,
        )
        return ServiceResult.ok({'gradebook': gradebook_summary(book), 'approval': approval.to_dict()})
