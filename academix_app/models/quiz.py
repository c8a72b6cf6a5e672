"""Quiz authoring and attempt models."""

from __future__ import annotations

from ..db_instance import db
from ..utils.time_utils import utcnow
from .types import UTCDateTime


class Quiz(db.Model):
    __tablename__ = 'quizzes'

    STATUS_DRAFT = 'DRAFT'
    STATUS_PUBLISHED = 'PUBLISHED'
    STATUS_CLOSED = 'CLOSED'

    quiz_id = db.Column(db.Integer, primary_key=True)
    class_section_id = db.Column(
        db.Integer, db.ForeignKey('class_sections.class_section_id'), nullable=False, index=True
    )
    created_by = db.Column(db.Integer, db.ForeignKey('users.user_id'), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    total_questions = db.Column(db.Integer, nullable=False)
    time_limit_minutes = db.Column(db.Integer)
    shuffle_questions = db.Column(db.Boolean, nullable=False, default=False)
    shuffle_answers = db.Column(db.Boolean, nullable=False, default=False)
    start_at = db.Column(UTCDateTime())
    end_at = db.Column(UTCDateTime())
    status = db.Column(db.String(20), nullable=False, default=STATUS_DRAFT, index=True)
    published_at = db.Column(UTCDateTime())
    closed_at = db.Column(UTCDateTime())
    created_at = db.Column(UTCDateTime(), default=utcnow)

    questions = db.relationship(
        'QuizQuestion',
        backref='quiz',
        lazy=True,
        cascade='all, delete-orphan',
        order_by='QuizQuestion.sort_order',
    )

    def to_dict(self) -> dict:
        return {
            'quiz_id': self.quiz_id,
            'class_section_id': self.class_section_id,
            'title': self.title,
            'description': self.description,
            'total_questions': self.total_questions,
            'question_count': len(self.questions),
            'time_limit_minutes': self.time_limit_minutes,
            'shuffle_questions': self.shuffle_questions,
            'shuffle_answers': self.shuffle_answers,
            'start_at': self.start_at,
            'end_at': self.end_at,
            'status': self.status,
            'created_at': self.created_at,
        }


class QuizQuestion(db.Model):
    __tablename__ = 'quiz_questions'

    TYPE_MCQ = 'MCQ'
    TYPE_TRUE_FALSE = 'TRUE_FALSE'

    question_id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey('quizzes.quiz_id'), nullable=False, index=True)
    question_text = db.Column(db.Text, nullable=False)
    question_type = db.Column(db.String(20), nullable=False, default=TYPE_MCQ)
    points = db.Column(db.Numeric(5, 2), nullable=False)
    sort_order = db.Column(db.Integer, nullable=False, default=1)

    answers = db.relationship(
        'QuizAnswer',
        backref='question',
        lazy=True,
        cascade='all, delete-orphan',
        order_by='QuizAnswer.answer_id',
    )


class QuizAnswer(db.Model):
    __tablename__ = 'quiz_answers'

    answer_id = db.Column(db.Integer, primary_key=True)
    question_id = db.Column(
        db.Integer, db.ForeignKey('quiz_questions.question_id'), nullable=False, index=True
    )
    answer_text = db.Column(db.String(500), nullable=False)
    is_correct = db.Column(db.Boolean, nullable=False, default=False)


class QuizAttempt(db.Model):
    """A student's single attempt at a quiz."""

    __tablename__ = 'quiz_attempts'

    STATUS_IN_PROGRESS = 'IN_PROGRESS'
    STATUS_SUBMITTED = 'SUBMITTED'

    attempt_id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey('quizzes.quiz_id'), nullable=False, index=True)
    student_id = db.Column(db.Integer, db.ForeignKey('users.user_id'), nullable=False, index=True)
    enrollment_id = db.Column(db.Integer, db.ForeignKey('enrollments.enrollment_id'), nullable=False)
    class_section_id = db.Column(
        db.Integer, db.ForeignKey('class_sections.class_section_id'), nullable=False
    )
    started_at = db.Column(UTCDateTime(), nullable=False)
    submitted_at = db.Column(UTCDateTime())
    status = db.Column(db.String(20), nullable=False, default=STATUS_IN_PROGRESS)
    score = db.Column(db.Numeric(6, 2))
    max_score = db.Column(db.Numeric(6, 2))
    correct_count = db.Column(db.Integer)
    total_count = db.Column(db.Integer)
    is_late = db.Column(db.Boolean, nullable=False, default=False)
    shuffle_seed = db.Column(db.String(64))

    quiz = db.relationship('Quiz', backref=db.backref('attempts', lazy='dynamic'), lazy=True)
    answers = db.relationship(
        'QuizAttemptAnswer', backref='attempt', lazy=True, cascade='all, delete-orphan'
    )

    __table_args__ = (
        db.UniqueConstraint('quiz_id', 'student_id', name='uq_quiz_attempt_one_per_student'),
    )


class QuizAttemptAnswer(db.Model):
    __tablename__ = 'quiz_attempt_answers'

    attempt_answer_id = db.Column(db.Integer, primary_key=True)
    attempt_id = db.Column(
        db.Integer, db.ForeignKey('quiz_attempts.attempt_id'), nullable=False, index=True
    )
    question_id = db.Column(db.Integer, db.ForeignKey('quiz_questions.question_id'), nullable=False)
    selected_answer_id = db.Column(db.Integer, db.ForeignKey('quiz_answers.answer_id'))
    is_correct = db.Column(db.Boolean, nullable=False, default=False)

    __table_args__ = (
        db.UniqueConstraint('attempt_id', 'question_id', name='uq_attempt_answer_question'),
    )
