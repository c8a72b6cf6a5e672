"""Gradebook, grade entry, approval and score-sync queue models."""

from __future__ import annotations

from ..db_instance import db
from ..utils.time_utils import utcnow
from .types import UTCDateTime


class GradeBook(db.Model):
    """One gradebook per class section.

    ``version`` is the optimistic concurrency token. Services bump it on
    every mutation; SQLAlchemy puts the old value in the UPDATE's WHERE
    clause and raises ``StaleDataError`` when another writer got there first.
    """

    __tablename__ = 'grade_books'

    STATUS_DRAFT = 'DRAFT'
    STATUS_PENDING_APPROVAL = 'PENDING_APPROVAL'
    STATUS_PUBLISHED = 'PUBLISHED'
    STATUS_LOCKED = 'LOCKED'
    STATUS_REJECTED = 'REJECTED'

    grade_book_id = db.Column(db.Integer, primary_key=True)
    class_section_id = db.Column(
        db.Integer,
        db.ForeignKey('class_sections.class_section_id'),
        nullable=False,
        unique=True,
    )
    status = db.Column(db.String(20), nullable=False, default=STATUS_DRAFT)
    version = db.Column(db.Integer, nullable=False)
    published_at = db.Column(UTCDateTime())
    locked_at = db.Column(UTCDateTime())
    created_at = db.Column(UTCDateTime(), default=utcnow)
    updated_at = db.Column(UTCDateTime(), default=utcnow)

    items = db.relationship(
        'GradeItem',
        backref='grade_book',
        lazy=True,
        cascade='all, delete-orphan',
        order_by='GradeItem.sort_order',
    )
    approvals = db.relationship(
        'GradeBookApproval',
        backref='grade_book',
        lazy='dynamic',
        cascade='all, delete-orphan',
    )

    __mapper_args__ = {'version_id_col': version, 'version_id_generator': False}


class GradeItem(db.Model):
    __tablename__ = 'grade_items'

    grade_item_id = db.Column(db.Integer, primary_key=True)
    grade_book_id = db.Column(
        db.Integer, db.ForeignKey('grade_books.grade_book_id'), nullable=False, index=True
    )
    item_name = db.Column(db.String(200), nullable=False)
    max_score = db.Column(db.Numeric(6, 2), nullable=False)
    weight = db.Column(db.Numeric(6, 4))
    is_required = db.Column(db.Boolean, nullable=False, default=True)
    sort_order = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(UTCDateTime(), default=utcnow)

    entries = db.relationship(
        'GradeEntry', backref='grade_item', lazy=True, cascade='all, delete-orphan'
    )

    __table_args__ = (
        db.UniqueConstraint('grade_book_id', 'item_name', name='uq_grade_item_book_name'),
    )

    def to_dict(self) -> dict:
        return {
            'grade_item_id': self.grade_item_id,
            'item_name': self.item_name,
            'max_score': self.max_score,
            'weight': self.weight,
            'is_required': self.is_required,
            'sort_order': self.sort_order,
        }


class GradeEntry(db.Model):
    __tablename__ = 'grade_entries'

    grade_entry_id = db.Column(db.Integer, primary_key=True)
    grade_item_id = db.Column(
        db.Integer, db.ForeignKey('grade_items.grade_item_id'), nullable=False, index=True
    )
    enrollment_id = db.Column(
        db.Integer, db.ForeignKey('enrollments.enrollment_id'), nullable=False, index=True
    )
    score = db.Column(db.Numeric(6, 2))
    updated_by = db.Column(db.Integer, db.ForeignKey('users.user_id'))
    updated_at = db.Column(UTCDateTime(), default=utcnow)

    audit_logs = db.relationship(
        'GradeAuditLog', backref='grade_entry', lazy='dynamic', cascade='all, delete-orphan'
    )

    __table_args__ = (
        db.UniqueConstraint('grade_item_id', 'enrollment_id', name='uq_grade_entry_item_enrollment'),
    )

    def to_dict(self) -> dict:
        return {
            'grade_entry_id': self.grade_entry_id,
            'grade_item_id': self.grade_item_id,
            'enrollment_id': self.enrollment_id,
            'score': self.score,
            'updated_by': self.updated_by,
            'updated_at': self.updated_at,
        }


class GradeBookApproval(db.Model):
    __tablename__ = 'grade_book_approvals'

    OUTCOME_PENDING = 'PENDING'
    OUTCOME_APPROVED = 'APPROVED'
    OUTCOME_REJECTED = 'REJECTED'

    approval_id = db.Column(db.Integer, primary_key=True)
    grade_book_id = db.Column(
        db.Integer, db.ForeignKey('grade_books.grade_book_id'), nullable=False, index=True
    )
    outcome = db.Column(db.String(20), nullable=False, default=OUTCOME_PENDING)
    request_by = db.Column(db.Integer, db.ForeignKey('users.user_id'), nullable=False)
    request_at = db.Column(UTCDateTime(), nullable=False)
    request_message = db.Column(db.String(500))
    response_by = db.Column(db.Integer, db.ForeignKey('users.user_id'))
    response_at = db.Column(UTCDateTime())
    response_message = db.Column(db.String(500))

    def to_dict(self) -> dict:
        return {
            'approval_id': self.approval_id,
            'outcome': self.outcome,
            'request_by': self.request_by,
            'request_at': self.request_at,
            'request_message': self.request_message,
            'response_by': self.response_by,
            'response_at': self.response_at,
            'response_message': self.response_message,
        }


class GradeAuditLog(db.Model):
    """One row per actual change of a grade entry's score."""

    __tablename__ = 'grade_audit_logs'

    REASON_MANUAL_EDIT = 'TEACHER_MANUAL_EDIT'
    REASON_AUTO_SYNC = 'AUTO_SYNC_FROM_QUIZ'

    audit_id = db.Column(db.Integer, primary_key=True)
    grade_entry_id = db.Column(
        db.Integer, db.ForeignKey('grade_entries.grade_entry_id'), nullable=False, index=True
    )
    actor_user_id = db.Column(db.Integer, db.ForeignKey('users.user_id'))
    old_score = db.Column(db.Numeric(6, 2))
    new_score = db.Column(db.Numeric(6, 2))
    reason = db.Column(db.String(500), nullable=False)
    created_at = db.Column(UTCDateTime(), default=utcnow)


class ScoreSyncJob(db.Model):
    """Persistent at-least-once queue entry for posting an attempt score."""

    __tablename__ = 'score_sync_jobs'

    STATUS_PENDING = 'pending'
    STATUS_COMPLETED = 'completed'
    STATUS_FAILED = 'failed'

    job_id = db.Column(db.Integer, primary_key=True)
    attempt_id = db.Column(
        db.Integer, db.ForeignKey('quiz_attempts.attempt_id'), nullable=False, unique=True
    )
    status = db.Column(db.String(20), nullable=False, default=STATUS_PENDING, index=True)
    attempts = db.Column(db.Integer, nullable=False, default=0)
    last_error_code = db.Column(db.String(50))
    last_error_message = db.Column(db.String(500))
    next_run_at = db.Column(UTCDateTime(), nullable=False, default=utcnow)
    created_at = db.Column(UTCDateTime(), default=utcnow)
    updated_at = db.Column(UTCDateTime(), default=utcnow)

    def to_dict(self) -> dict:
        return {
            'job_id': self.job_id,
            'attempt_id': self.attempt_id,
            'status': self.status,
            'attempts': self.attempts,
            'last_error_code': self.last_error_code,
            'last_error_message': self.last_error_message,
            'next_run_at': self.next_run_at,
        }
