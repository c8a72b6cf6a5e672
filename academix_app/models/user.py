"""Read models owned by the registration system.

The assessment core only reads these tables through
:mod:`academix_app.modules.access_control`; tests and the registration
system populate them.
"""

from __future__ import annotations

from flask_login import UserMixin

from ..db_instance import db
from ..utils.time_utils import utcnow
from .types import UTCDateTime


class User(UserMixin, db.Model):
    """Application user."""

    __tablename__ = 'users'

    ROLE_ADMIN = 'ADMIN'
    ROLE_TEACHER = 'TEACHER'
    ROLE_STUDENT = 'STUDENT'

    user_id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    full_name = db.Column(db.String(200))
    user_role = db.Column(db.String(20), nullable=False, default=ROLE_STUDENT)
    is_enabled = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(UTCDateTime(), default=utcnow)

    def get_id(self):
        return str(self.user_id)

    @property
    def is_active(self):
        return bool(self.is_enabled)

    def __repr__(self):
        return f'<User {self.username} ({self.user_role})>'


class ClassSection(db.Model):
    __tablename__ = 'class_sections'

    class_section_id = db.Column(db.Integer, primary_key=True)
    section_code = db.Column(db.String(50), unique=True, nullable=False)
    teacher_id = db.Column(db.Integer, db.ForeignKey('users.user_id'), nullable=True, index=True)
    is_open = db.Column(db.Boolean, nullable=False, default=True)

    teacher = db.relationship('User', lazy=True)


class Enrollment(db.Model):
    __tablename__ = 'enrollments'

    STATUS_ENROLLED = 'ENROLLED'
    STATUS_PENDING = 'PENDING'
    STATUS_DROPPED = 'DROPPED'

    enrollment_id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('users.user_id'), nullable=False, index=True)
    class_section_id = db.Column(
        db.Integer, db.ForeignKey('class_sections.class_section_id'), nullable=False, index=True
    )
    status = db.Column(db.String(20), nullable=False, default=STATUS_ENROLLED)
    enrolled_at = db.Column(UTCDateTime(), default=utcnow)

    __table_args__ = (
        db.UniqueConstraint('student_id', 'class_section_id', name='uq_enrollment_student_section'),
    )
