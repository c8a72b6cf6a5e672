import os
import sys
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from flask import g
from sqlalchemy import text

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from academix_app import create_app, db
from academix_app.core.collaborators import install_collaborators
from academix_app.core.config import Config
from academix_app.models import ClassSection, Enrollment, QuizAnswer, QuizQuestion, User
from academix_app.modules.quiz.services.quiz_lifecycle_service import QuizLifecycleService
from academix_app.utils.time_utils import FixedClock

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {
        'connect_args': {'check_same_thread': False}
    }
    WTF_CSRF_ENABLED = False
    LOG_DIR = None
    SCHEDULER_ENABLED = False
    SCORE_SYNC_ALLOW_LATE_CORRECTIONS = False
    SCORE_SYNC_EAGER = True


class FileDatabaseConfig(TestConfig):
    SQLALCHEMY_ENGINE_OPTIONS = {
        'connect_args': {'check_same_thread': False, 'timeout': 30}
    }
    SCORE_SYNC_EAGER = False


def seed_school():
    """Users, two class sections and enrollments; returns their ids."""
    teacher = User(username='teacher', full_name='Tran Teacher', user_role=User.ROLE_TEACHER)
    other_teacher = User(username='other_teacher', user_role=User.ROLE_TEACHER)
    admin = User(username='admin', user_role=User.ROLE_ADMIN)
    student = User(username='student_a', user_role=User.ROLE_STUDENT)
    student_b = User(username='student_b', user_role=User.ROLE_STUDENT)
    outsider = User(username='outsider', user_role=User.ROLE_STUDENT)
    dropped = User(username='dropped', user_role=User.ROLE_STUDENT)
    db.session.add_all([teacher, other_teacher, admin, student, student_b, outsider, dropped])
    db.session.flush()

    section = ClassSection(section_code='CS101-01', teacher_id=teacher.user_id)
    other_section = ClassSection(section_code='MA201-01', teacher_id=other_teacher.user_id)
    db.session.add_all([section, other_section])
    db.session.flush()

    enrollment = Enrollment(student_id=student.user_id, class_section_id=section.class_section_id)
    enrollment_b = Enrollment(student_id=student_b.user_id, class_section_id=section.class_section_id)
    dropped_enrollment = Enrollment(
        student_id=dropped.user_id,
        class_section_id=section.class_section_id,
        status=Enrollment.STATUS_DROPPED,
    )
    db.session.add_all([enrollment, enrollment_b, dropped_enrollment])
    db.session.commit()

    return SimpleNamespace(
        teacher_id=teacher.user_id,
        other_teacher_id=other_teacher.user_id,
        admin_id=admin.user_id,
        student_id=student.user_id,
        student_b_id=student_b.user_id,
        outsider_id=outsider.user_id,
        dropped_id=dropped.user_id,
        section_id=section.class_section_id,
        other_section_id=other_section.class_section_id,
        enrollment_id=enrollment.enrollment_id,
        enrollment_b_id=enrollment_b.enrollment_id,
    )


def answer_options(count=4, correct_index=0):
    return [{'text': f'Option {n + 1}', 'is_correct': n == correct_index} for n in range(count)]


def build_quiz(school, total=10, points=1, publish=True, title='Unit quiz', **kwargs):
    """Draft a quiz with ``total`` four-option MCQs and optionally publish it."""
    service = QuizLifecycleService()
    created = service.create_draft(school.teacher_id, 'TEACHER', school.section_id, title, total, **kwargs)
    assert created.success, created.message
    quiz_id = created.data['quiz_id']
    for number in range(total):
        added = service.add_question(
            school.teacher_id, 'TEACHER', quiz_id, f'Question {number + 1}', 'MCQ', points, answer_options()
        )
        assert added.success, added.message
    if publish:
        published = service.publish(school.teacher_id, 'TEACHER', quiz_id)
        assert published.success, published.message
    return quiz_id


def answers_for(quiz_id, correct=None):
    """Submission payload answering the first ``correct`` questions right and the rest wrong."""
    questions = QuizQuestion.query.filter_by(quiz_id=quiz_id).order_by(QuizQuestion.sort_order).all()
    correct = len(questions) if correct is None else correct
    payload = []
    for position, question in enumerate(questions):
        answers = QuizAnswer.query.filter_by(question_id=question.question_id).order_by(QuizAnswer.answer_id)
        right = next(answer for answer in answers if answer.is_correct)
        wrong = next(answer for answer in answers if not answer.is_correct)
        chosen = right if position < correct else wrong
        payload.append({'question_id': question.question_id, 'selected_answer_id': chosen.answer_id})
    return payload


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def app(clock):
    app = create_app(TestConfig)
    with app.app_context():
        install_collaborators(app, clock=clock)
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def school(app):
    return seed_school()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def as_user(client):
    """Return the test client logged in as ``user_id``."""
    def _as_user(user_id):
        with client.session_transaction() as session:
            session['_user_id'] = str(user_id)
            session['_fresh'] = True
        # The app context stays open across requests, so drop the user cached on ``g``.
        g.pop('_login_user', None)
        return client
    return _as_user


@pytest.fixture
def file_db(tmp_path, clock):
    """App on a file-backed database, so a second connection can write behind the session's back."""
    class Config(FileDatabaseConfig):
        SQLALCHEMY_DATABASE_URI = 'sqlite:///' + str(tmp_path / 'academix.db')

    app = create_app(Config)
    with app.app_context():
        install_collaborators(app, clock=clock)
        yield app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def bump_gradebook_version(class_section_id):
    """Commit a version bump from another connection, as a concurrent writer would."""
    with db.engine.begin() as connection:
        connection.execute(
            text('UPDATE grade_books SET version = version + 1 WHERE class_section_id = :section_id'),
            {'section_id': class_section_id},
        )
