"""Quiz authoring and the DRAFT -> PUBLISHED -> CLOSED lifecycle."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional

from flask import current_app

from ....core.collaborators import get_collaborators
from ....core.error_handlers import (
    ForbiddenError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
)
from ....core.service_result import ServiceResult, service_boundary
from ....core.signals import quiz_published, send_safely
from ....db_instance import db
from ....models import Quiz, QuizAnswer, QuizAttempt, QuizQuestion
from ....utils.db_session import safe_commit
from ....utils.time_utils import ensure_utc
from ....utils.validation import positive_int
from ...access_control.logics.policies import ROLE_TEACHER, has_role
from ...access_control.services.permission_service import PermissionService
from ..config import QuizDefaultConfig
from ..logics.answer_rules import (
    answer_set_problem,
    validate_question,
    validate_total_questions,
    validate_window,
)
from ..schemas import QuestionAdded

logger = logging.getLogger(__name__)


class QuizLifecycleService:
    """Teacher-facing quiz operations. Every public method returns a ``ServiceResult``."""

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
    @staticmethod
    def _valid_totals():
        return tuple(
            current_app.config.get('QUIZ_VALID_TOTAL_QUESTIONS', QuizDefaultConfig.VALID_TOTAL_QUESTIONS)
        )

    def _load_owned_quiz(self, teacher_id: int, role: str, quiz_id) -> Quiz:
        quiz = db.session.get(Quiz, positive_int(quiz_id, 'Quiz id'))
        if quiz is None:
            raise NotFoundError('Quiz not found.', resource='quiz')
        PermissionService.require_section_teacher(self.directory, teacher_id, role, quiz.class_section_id)
        return quiz

    def _load_owned_question(self, teacher_id: int, role: str, question_id) -> QuizQuestion:
        question = db.session.get(QuizQuestion, positive_int(question_id, 'Question id'))
        if question is None:
            raise NotFoundError('Question not found.', resource='question')
        PermissionService.require_section_teacher(
            self.directory, teacher_id, role, question.quiz.class_section_id
        )
        return question

    @staticmethod
    def _require_draft(quiz: Quiz) -> None:
        if quiz.status != Quiz.STATUS_DRAFT:
            raise InvalidStateError('Only draft quizzes can be edited.')

    # ------------------------------------------------------------------
    # Authoring
    # ------------------------------------------------------------------
    @service_boundary('create_draft')
    def create_draft(
        self,
        teacher_id: int,
        role: str,
        class_section_id: int,
        title: str,
        total_questions: int,
        description: Optional[str] = None,
        time_limit_minutes: Optional[int] = None,
        shuffle_questions: bool = False,
        shuffle_answers: bool = False,
        start_at: Optional[datetime] = None,
        end_at: Optional[datetime] = None,
    ) -> ServiceResult:
        class_section_id = positive_int(class_section_id, 'Class section id')
        PermissionService.require_section_teacher(self.directory, teacher_id, role, class_section_id)

        title = (title or '').strip()
        if not title:
            raise InvalidInputError('Title is required.')
        if len(title) > QuizDefaultConfig.MAX_TITLE_LENGTH:
            raise InvalidInputError('Title is too long.')
        total = validate_total_questions(total_questions, self._valid_totals())
        if time_limit_minutes is not None:
            time_limit_minutes = positive_int(time_limit_minutes, 'Time limit (minutes)')
        start_at, end_at = ensure_utc(start_at), ensure_utc(end_at)
        validate_window(start_at, end_at)

        quiz = Quiz(
            class_section_id=class_section_id,
            created_by=teacher_id,
            title=title,
            description=(description or '').strip() or None,
            total_questions=total,
            time_limit_minutes=time_limit_minutes,
            shuffle_questions=bool(shuffle_questions),
            shuffle_answers=bool(shuffle_answers),
            start_at=start_at,
            end_at=end_at,
            status=Quiz.STATUS_DRAFT,
            created_at=self.clock.now(),
        )
        db.session.add(quiz)
        safe_commit(db.session)
        logger.info("Quiz %s drafted by teacher %s for section %s", quiz.quiz_id, teacher_id, class_section_id)
        return ServiceResult.ok(quiz.to_dict())

    @service_boundary('add_question')
    def add_question(
        self,
        teacher_id: int,
        role: str,
        quiz_id: int,
        text: str,
        question_type: str,
        points,
        answers: Iterable,
    ) -> ServiceResult:
        quiz = self._load_owned_quiz(teacher_id, role, quiz_id)
        self._require_draft(quiz)
        text, question_type, points, options = validate_question(text, question_type, points, answers)

        current_count = len(quiz.questions)
        if current_count >= quiz.total_questions:
            raise InvalidStateError(
                f'This quiz already has its {quiz.total_questions} questions.'
            )

        question = QuizQuestion(
            question_text=text,
            question_type=question_type,
            points=points,
            sort_order=current_count + 1,
            answers=[QuizAnswer(answer_text=answer_text, is_correct=flag) for answer_text, flag in options],
        )
        quiz.questions.append(question)
        safe_commit(db.session)
        return ServiceResult.ok(
            QuestionAdded(
                question_id=question.question_id,
                question_count=current_count + 1,
                required_count=quiz.total_questions,
            )
        )

    @service_boundary('update_question')
    def update_question(
        self,
        teacher_id: int,
        role: str,
        question_id: int,
        text: str,
        question_type: str,
        points,
        answers: Iterable,
    ) -> ServiceResult:
        question = self._load_owned_question(teacher_id, role, question_id)
        self._require_draft(question.quiz)
        text, question_type, points, options = validate_question(text, question_type, points, answers)

        question.question_text = text
        question.question_type = question_type
        question.points = points
        question.answers = [
            QuizAnswer(answer_text=answer_text, is_correct=flag) for answer_text, flag in options
        ]
        safe_commit(db.session)
        return ServiceResult.ok({'question_id': question.question_id})

    @service_boundary('delete_question')
    def delete_question(self, teacher_id: int, role: str, question_id: int) -> ServiceResult:
        question = self._load_owned_question(teacher_id, role, question_id)
        quiz = question.quiz
        self._require_draft(quiz)

        quiz.questions.remove(question)
        for position, remaining in enumerate(quiz.questions, start=1):
            remaining.sort_order = position
        safe_commit(db.session)
        return ServiceResult.ok(
            {'quiz_id': quiz.quiz_id, 'question_count': len(quiz.questions)}
        )

    @service_boundary('delete_quiz')
    def delete_quiz(self, teacher_id: int, role: str, quiz_id: int) -> ServiceResult:
        quiz = self._load_owned_quiz(teacher_id, role, quiz_id)
        self._require_draft(quiz)
        db.session.delete(quiz)
        safe_commit(db.session)
        logger.info("Draft quiz %s deleted by teacher %s", quiz_id, teacher_id)
        return ServiceResult.ok({'quiz_id': int(quiz_id)})

    @service_boundary('get_questions')
    def get_questions(self, teacher_id: int, role: str, quiz_id: int) -> ServiceResult:
        quiz = self._load_owned_quiz(teacher_id, role, quiz_id)
        questions = [
            {
                'question_id': question.question_id,
                'text': question.question_text,
                'question_type': question.question_type,
                'points': question.points,
                'sort_order': question.sort_order,
                'answers': [
                    {'answer_id': answer.answer_id, 'text': answer.answer_text, 'is_correct': answer.is_correct}
                    for answer in question.answers
                ],
            }
            for question in quiz.questions
        ]
        return ServiceResult.ok({'quiz': quiz.to_dict(), 'questions': questions})

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------
    @service_boundary('list_for_teacher')
    def list_for_teacher(self, teacher_id: int, role: str) -> ServiceResult:
        if not has_role(role, ROLE_TEACHER):
            raise ForbiddenError('Only teachers have quizzes to manage.')
        # Listed by section ownership, not by author.
        section_ids = self.directory.list_taught_section_ids(teacher_id)
        quizzes = (
            Quiz.query.filter(Quiz.class_section_id.in_(section_ids or [0]))
            .order_by(Quiz.created_at.desc(), Quiz.quiz_id.desc())
            .all()
        )
        return ServiceResult.ok([quiz.to_dict() for quiz in quizzes])

    @service_boundary('list_published_for_class')
    def list_published_for_class(self, student_id: int, role: str, class_section_id: int) -> ServiceResult:
        class_section_id = positive_int(class_section_id, 'Class section id')
        PermissionService.require_enrolled_student(self.directory, student_id, role, class_section_id)

        quizzes = (
            Quiz.query.filter_by(class_section_id=class_section_id, status=Quiz.STATUS_PUBLISHED)
            .order_by(Quiz.start_at, Quiz.quiz_id)
            .all()
        )
        attempts = {
            attempt.quiz_id: attempt
            for attempt in QuizAttempt.query.filter(
                QuizAttempt.student_id == student_id,
                QuizAttempt.quiz_id.in_([quiz.quiz_id for quiz in quizzes] or [0]),
            )
        }
        items = []
        for quiz in quizzes:
            payload = quiz.to_dict()
            attempt = attempts.get(quiz.quiz_id)
            payload['attempt_id'] = attempt.attempt_id if attempt else None
            payload['attempt_status'] = attempt.status if attempt else None
            items.append(payload)
        return ServiceResult.ok(items)

    # ------------------------------------------------------------------
    # Lifecycle transitions
    # ------------------------------------------------------------------
    @service_boundary('publish_quiz')
    def publish(
        self,
        teacher_id: int,
        role: str,
        quiz_id: int,
        start_at: Optional[datetime] = None,
        end_at: Optional[datetime] = None,
    ) -> ServiceResult:
        quiz = self._load_owned_quiz(teacher_id, role, quiz_id)
        if quiz.status != Quiz.STATUS_DRAFT:
            raise InvalidStateError('Only draft quizzes can be published.')
        if len(quiz.questions) != quiz.total_questions:
            raise InvalidStateError(
                f'The quiz needs exactly {quiz.total_questions} questions before publishing '
                f'({len(quiz.questions)} so far).'
            )
        for question in quiz.questions:
            problem = answer_set_problem(
                question.question_type, [answer.is_correct for answer in question.answers]
            )
            if problem:
                raise InvalidStateError(f'Question {question.sort_order}: {problem}')

        effective_start = ensure_utc(start_at) if start_at is not None else quiz.start_at
        effective_end = ensure_utc(end_at) if end_at is not None else quiz.end_at
        validate_window(effective_start, effective_end)

        quiz.start_at = effective_start
        quiz.end_at = effective_end
        quiz.status = Quiz.STATUS_PUBLISHED
        quiz.published_at = self.clock.now()
        safe_commit(db.session)
        logger.info("Quiz %s published by teacher %s", quiz.quiz_id, teacher_id)

        send_safely(
            quiz_published,
            self,
            quiz_id=quiz.quiz_id,
            class_section_id=quiz.class_section_id,
            teacher_id=teacher_id,
            start_at=quiz.start_at,
            end_at=quiz.end_at,
        )
        return ServiceResult.ok(quiz.to_dict())

    @service_boundary('close_quiz')
    def close(self, teacher_id: int, role: str, quiz_id: int) -> ServiceResult:
        quiz = self._load_owned_quiz(teacher_id, role, quiz_id)
        if quiz.status != Quiz.STATUS_PUBLISHED:
            raise InvalidStateError('Only published quizzes can be closed.')
        quiz.status = Quiz.STATUS_CLOSED
        quiz.closed_at = self.clock.now()
        safe_commit(db.session)
        logger.info("Quiz %s closed by teacher %s", quiz.quiz_id, teacher_id)
        return ServiceResult.ok(quiz.to_dict())
