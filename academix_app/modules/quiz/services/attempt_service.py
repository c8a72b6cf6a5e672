"""Student attempts: start, re-render and submit."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Dict, Iterable, Mapping, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ....core.collaborators import get_collaborators
from ....core.error_handlers import (
    ConflictError,
    ErrorCodes,
    ForbiddenError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
    OperationCancelledError,
)
from ....core.service_result import ServiceResult, service_boundary
from ....core.signals import attempt_submitted, send_safely
from ....db_instance import db
from ....models import Quiz, QuizAttempt, QuizAttemptAnswer
from ....utils.db_session import safe_commit
from ....utils.time_utils import deadline_expired, deadline_from, ensure_utc
from ....utils.validation import positive_int
from ...access_control.logics.policies import ROLE_STUDENT, has_role
from ...access_control.services.permission_service import PermissionService
from ..logics.ordering import attempt_seed, order_answers, order_questions
from ..logics.scoring import QuestionKey, grade_submission
from ..schemas import (
    AttemptAnswerOption,
    AttemptQuestion,
    AttemptView,
    SubmissionResult,
)

logger = logging.getLogger(__name__)


def attempt_end_time(quiz: Quiz, started_at: datetime) -> Optional[datetime]:
    """The earlier of the quiz close time and the personal time limit."""
    candidates = []
    if quiz.end_at is not None:
        candidates.append(ensure_utc(quiz.end_at))
    if quiz.time_limit_minutes:
        candidates.append(ensure_utc(started_at) + timedelta(minutes=quiz.time_limit_minutes))
    return min(candidates) if candidates else None


def _normalize_submitted(answers: Optional[Iterable]) -> Dict[int, Optional[int]]:
    """Map question id -> selected answer id; a repeated question keeps its last answer."""
    if answers is None:
        return {}
    if isinstance(answers, Mapping):
        answers = [
            {'question_id': question_id, 'selected_answer_id': selected}
            for question_id, selected in answers.items()
        ]

    submitted: Dict[int, Optional[int]] = {}
    for raw in answers:
        if isinstance(raw, Mapping):
            question_id = raw.get('question_id')
            selected = raw.get('selected_answer_id')
        else:
            question_id = getattr(raw, 'question_id', None)
            selected = getattr(raw, 'selected_answer_id', None)
        try:
            question_id = int(question_id)
            selected = int(selected) if selected is not None else None
        except (TypeError, ValueError):
            raise InvalidInputError('Each answer needs a numeric question id and answer id.')
        submitted[question_id] = selected
    return submitted


class AttemptService:
    """Student-facing attempt operations. Every public method returns a ``ServiceResult``."""

    def __init__(self, directory=None, clock=None):
        if directory is None or clock is None:
            collaborators = get_collaborators()
            directory = directory or collaborators.directory
            clock = clock or collaborators.clock
        self.directory = directory
        self.clock = clock

    def _build_view(self, quiz: Quiz, attempt: QuizAttempt) -> AttemptView:
        seed = attempt.shuffle_seed or attempt_seed(attempt.attempt_id)
        by_id = {question.question_id: question for question in quiz.questions}
        question_ids = [
            question.question_id
            for question in sorted(quiz.questions, key=lambda q: (q.sort_order, q.question_id))
        ]

        questions = []
        for question_id in order_questions(seed, question_ids, quiz.shuffle_questions):
            question = by_id[question_id]
            answers = {answer.answer_id: answer for answer in question.answers}
            ordered_answer_ids = order_answers(
                seed, question_id, sorted(answers), quiz.shuffle_answers
            )
            questions.append(
                AttemptQuestion(
                    question_id=question_id,
                    text=question.question_text,
                    question_type=question.question_type,
                    points=question.points,
                    answers=[
                        AttemptAnswerOption(answer_id=answer_id, text=answers[answer_id].answer_text)
                        for answer_id in ordered_answer_ids
                    ],
                )
            )

        return AttemptView(
            attempt_id=attempt.attempt_id,
            quiz_id=quiz.quiz_id,
            title=quiz.title,
            status=attempt.status,
            started_at=attempt.started_at,
            end_time=attempt_end_time(quiz, attempt.started_at),
            questions=questions,
        )

    def _load_own_attempt(self, student_id: int, role: str, attempt_id) -> QuizAttempt:
        attempt = db.session.get(QuizAttempt, positive_int(attempt_id, 'Attempt id'))
        if attempt is None:
            raise NotFoundError('Attempt not found.', resource='attempt')
        if not has_role(role, ROLE_STUDENT) or attempt.student_id != student_id:
            raise ForbiddenError('This attempt belongs to another student.')
        return attempt

    @service_boundary('start_attempt')
    def start_attempt(
        self,
        student_id: int,
        role: str,
        quiz_id: int,
        now: Optional[datetime] = None,
    ) -> ServiceResult:
        quiz = db.session.get(Quiz, positive_int(quiz_id, 'Quiz id'))
        if quiz is None:
            raise NotFoundError('Quiz not found.', resource='quiz')
        enrollment_id = PermissionService.require_enrolled_student(
            self.directory, student_id, role, quiz.class_section_id
        )

        now = ensure_utc(now) or self.clock.now()
        if quiz.status != Quiz.STATUS_PUBLISHED:
            raise InvalidStateError('This quiz is not open for attempts.')
        if quiz.start_at is not None and now < quiz.start_at:
            raise InvalidStateError('This quiz has not opened yet.')
        if quiz.end_at is not None and now > quiz.end_at:
            raise InvalidStateError('This quiz has already closed.')

        existing = QuizAttempt.query.filter_by(quiz_id=quiz.quiz_id, student_id=student_id).first()
        if existing is not None:
            raise ConflictError('You have already attempted this quiz.', reason=ErrorCodes.ALREADY_ATTEMPTED)

        attempt = QuizAttempt(
            quiz_id=quiz.quiz_id,
            student_id=student_id,
            enrollment_id=enrollment_id,
            class_section_id=quiz.class_section_id,
            started_at=now,
            status=QuizAttempt.STATUS_IN_PROGRESS,
        )
        db.session.add(attempt)
        try:
            db.session.flush()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError('You have already attempted this quiz.', reason=ErrorCodes.ALREADY_ATTEMPTED)
        attempt.shuffle_seed = attempt_seed(attempt.attempt_id)
        safe_commit(
            db.session,
            conflict_message='You have already attempted this quiz.',
            reason=ErrorCodes.ALREADY_ATTEMPTED,
        )
        logger.info("Student %s started attempt %s on quiz %s", student_id, attempt.attempt_id, quiz.quiz_id)
        return ServiceResult.ok(self._build_view(quiz, attempt))

    @service_boundary('get_attempt_view')
    def get_attempt_view(self, student_id: int, role: str, attempt_id: int) -> ServiceResult:
        attempt = self._load_own_attempt(student_id, role, attempt_id)
        if attempt.status != QuizAttempt.STATUS_IN_PROGRESS:
            raise InvalidStateError('This attempt has already been submitted.')
        return ServiceResult.ok(self._build_view(attempt.quiz, attempt))

    @service_boundary('submit_attempt')
    def submit_attempt(
        self,
        student_id: int,
        role: str,
        attempt_id: int,
        answers: Optional[Iterable] = None,
        now: Optional[datetime] = None,
        timeout: Optional[float] = None,
    ) -> ServiceResult:
        """Grade and finalise an attempt.

        ``timeout`` (seconds) bounds the work: if the clock passes it before
        commit nothing is written and the result is ``CANCELLED``.
        """
        deadline = deadline_from(self.clock, timeout)
        attempt = self._load_own_attempt(student_id, role, attempt_id)
        if attempt.status != QuizAttempt.STATUS_IN_PROGRESS:
            raise ConflictError('This attempt has already been submitted.')

        submitted = _normalize_submitted(answers)
        now = ensure_utc(now) or self.clock.now()
        quiz = attempt.quiz
        end_time = attempt_end_time(quiz, attempt.started_at)
        late = end_time is not None and now > end_time

        answer_key = {}
        for question in quiz.questions:
            correct = [answer.answer_id for answer in question.answers if answer.is_correct]
            answer_key[question.question_id] = QuestionKey(
                points=question.points,
                correct_answer_id=correct[0] if len(correct) == 1 else None,
                answer_ids=frozenset(answer.answer_id for answer in question.answers),
            )
        breakdown = grade_submission(answer_key, submitted)

        claimed = db.session.execute(
            update(QuizAttempt)
            .where(
                QuizAttempt.attempt_id == attempt.attempt_id,
                QuizAttempt.status == QuizAttempt.STATUS_IN_PROGRESS,
            )
            .values(
                status=QuizAttempt.STATUS_SUBMITTED,
                submitted_at=now,
                score=breakdown.score,
                max_score=breakdown.max_score,
                correct_count=breakdown.correct_count,
                total_count=breakdown.total_count,
                is_late=late,
            )
            .execution_options(synchronize_session=False)
        ).rowcount
        if claimed != 1:
            raise ConflictError('This attempt has already been submitted.')

        db.session.add_all(
            QuizAttemptAnswer(
                attempt_id=attempt.attempt_id,
                question_id=graded.question_id,
                selected_answer_id=graded.selected_answer_id,
                is_correct=graded.is_correct,
            )
            for graded in breakdown.graded
        )

        if deadline_expired(self.clock, deadline):
            raise OperationCancelledError('The submission timed out before it was saved.')
        safe_commit(db.session, conflict_message='This attempt has already been submitted.')

        result = SubmissionResult(
            attempt_id=attempt.attempt_id,
            quiz_id=quiz.quiz_id,
            score=breakdown.score,
            max_score=breakdown.max_score,
            correct_count=breakdown.correct_count,
            total_count=breakdown.total_count,
            late=late,
            submitted_at=now,
        )
        logger.info(
            "Attempt %s submitted: %s/%s (late=%s)", result.attempt_id, result.score, result.max_score, late
        )

        send_safely(
            attempt_submitted,
            self,
            attempt_id=result.attempt_id,
            quiz_id=result.quiz_id,
            student_id=student_id,
            class_section_id=attempt.class_section_id,
            score=result.score,
            max_score=result.max_score,
            late=late,
        )
        return ServiceResult.ok(result)
