from typing import Optional

from ...db_instance import db
from ...models import QuizAttempt
from .schemas import AttemptSnapshot
from .services.attempt_service import AttemptService
from .services.quiz_lifecycle_service import QuizLifecycleService


class QuizInterface:
    """
    Public gateway of the quiz module.
    Pattern: Facade
    """

    @staticmethod
    def lifecycle(**collaborators) -> QuizLifecycleService:
        return QuizLifecycleService(**collaborators)

    @staticmethod
    def attempts(**collaborators) -> AttemptService:
        return AttemptService(**collaborators)

    @staticmethod
    def get_attempt_snapshot(attempt_id: int) -> Optional[AttemptSnapshot]:
        """Read-only copy of an attempt for other modules, or ``None``."""
        attempt = db.session.get(QuizAttempt, attempt_id)
        if attempt is None:
            return None
        return AttemptSnapshot(
            attempt_id=attempt.attempt_id,
            quiz_id=attempt.quiz_id,
            student_id=attempt.student_id,
            enrollment_id=attempt.enrollment_id,
            class_section_id=attempt.class_section_id,
            status=attempt.status,
            score=attempt.score,
            max_score=attempt.max_score,
            submitted_at=attempt.submitted_at,
        )
