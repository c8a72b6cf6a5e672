"""Default :class:`AcademicDirectory` backed by the registration tables."""

from __future__ import annotations

from typing import List, Optional

from ....db_instance import db
from ....models import ClassSection, Enrollment


class SqlAcademicDirectory:
    """Reads ``class_sections`` and ``enrollments``; never writes them."""

    def is_enrolled(self, student_id: int, class_section_id: int) -> bool:
        return self.get_enrollment_id(student_id, class_section_id) is not None

    def get_enrollment_id(self, student_id: int, class_section_id: int) -> Optional[int]:
        row = (
            db.session.query(Enrollment.enrollment_id)
            .filter(
                Enrollment.student_id == student_id,
                Enrollment.class_section_id == class_section_id,
                Enrollment.status == Enrollment.STATUS_ENROLLED,
            )
            .first()
        )
        return row[0] if row else None

    def list_enrollment_ids(self, class_section_id: int) -> List[int]:
        rows = (
            db.session.query(Enrollment.enrollment_id)
            .filter(
                Enrollment.class_section_id == class_section_id,
                Enrollment.status == Enrollment.STATUS_ENROLLED,
            )
            .order_by(Enrollment.enrollment_id)
            .all()
        )
        return [row[0] for row in rows]

    def is_teacher_of(self, teacher_id: int, class_section_id: int) -> bool:
        return (
            db.session.query(ClassSection.class_section_id)
            .filter(
                ClassSection.class_section_id == class_section_id,
                ClassSection.teacher_id == teacher_id,
            )
            .first()
            is not None
        )

    def list_taught_section_ids(self, teacher_id: int) -> List[int]:
        rows = (
            db.session.query(ClassSection.class_section_id)
            .filter(ClassSection.teacher_id == teacher_id)
            .order_by(ClassSection.class_section_id)
            .all()
        )
        return [row[0] for row in rows]
