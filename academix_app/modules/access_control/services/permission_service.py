from __future__ import annotations

from ....core.error_handlers import ForbiddenError
from ..logics.policies import ROLE_ADMIN, ROLE_STUDENT, ROLE_TEACHER, has_role


class PermissionService:
    """Role and ownership checks shared by the quiz and gradebook services.

    Each ``require_*`` method raises :class:`ForbiddenError` on failure.
    """

    @staticmethod
    def require_section_teacher(directory, actor_id: int, role: str, class_section_id: int) -> None:
        if not has_role(role, ROLE_TEACHER) or not directory.is_teacher_of(actor_id, class_section_id):
            raise ForbiddenError('Only the teacher of this class section may do this.')

    @staticmethod
    def require_admin(role: str) -> None:
        if not has_role(role, ROLE_ADMIN):
            raise ForbiddenError('Only administrators may do this.')

    @staticmethod
    def require_enrolled_student(directory, actor_id: int, role: str, class_section_id: int) -> int:
        """Return the caller's enrollment id in the section."""
        if not has_role(role, ROLE_STUDENT):
            raise ForbiddenError('Only students may do this.')
        enrollment_id = directory.get_enrollment_id(actor_id, class_section_id)
        if enrollment_id is None:
            raise ForbiddenError('You are not enrolled in this class section.')
        return enrollment_id

    @staticmethod
    def can_manage_section(directory, actor_id: int, role: str, class_section_id: int) -> bool:
        """Admins, or the section's teacher."""
        if has_role(role, ROLE_ADMIN):
            return True
        return has_role(role, ROLE_TEACHER) and directory.is_teacher_of(actor_id, class_section_id)
