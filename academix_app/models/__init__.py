"""Database models for the Academix assessment core."""

from .user import ClassSection, Enrollment, User
from .quiz import Quiz, QuizAnswer, QuizAttempt, QuizAttemptAnswer, QuizQuestion
from .gradebook import (
    GradeAuditLog,
    GradeBook,
    GradeBookApproval,
    GradeEntry,
    GradeItem,
    ScoreSyncJob,
)

__all__ = [
    'User',
    'ClassSection',
    'Enrollment',
    'Quiz',
    'QuizQuestion',
    'QuizAnswer',
    'QuizAttempt',
    'QuizAttemptAnswer',
    'GradeBook',
    'GradeItem',
    'GradeEntry',
    'GradeBookApproval',
    'GradeAuditLog',
    'ScoreSyncJob',
]
