"""Capabilities the assessment core consumes from the registration system."""

from __future__ import annotations

from typing import List, Optional, Protocol



class AcademicDirectory(Protocol):
    """Enrollment lookup and section ownership.

    The default implementation reads the registration system's tables;
    tests and other deployments may install any object with these methods.
    """

    def is_enrolled(self, student_id: int, class_section_id: int) -> bool:
        ...

    def get_enrollment_id(self, student_id: int, class_section_id: int) -> Optional[int]:
        ...

    def list_enrollment_ids(self, class_section_id: int) -> List[int]:
        ...

    def is_teacher_of(self, teacher_id: int, class_section_id: int) -> bool:
        ...

    def list_taught_section_ids(self, teacher_id: int) -> List[int]:
        ...
