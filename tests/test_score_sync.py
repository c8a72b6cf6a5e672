"""
Tests for quiz score synchronization

Tests cover:
- Scaling an attempt score onto its grade item
- Idempotent re-sync and the audit trail
- Gradebook state policy and late corrections
- The retry queue, eager sync on submission and the scheduler job
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from academix_app import db
from academix_app.core.collaborators import install_collaborators
from academix_app.core.error_handlers import ErrorCodes
from academix_app.extensions import scheduler
from academix_app.models import GradeAuditLog, GradeBook, GradeEntry, QuizAttempt, ScoreSyncJob
from academix_app.modules.gradebook.services.gradebook_service import GradebookService
from academix_app.modules.gradebook.services import score_sync_service
from academix_app.modules.gradebook.services.score_sync_service import ScoreSyncService
from academix_app.modules.gradebook.services.sync_queue_service import SyncQueueService, retry_delay
from academix_app.modules.gradebook.tasks import process_score_sync_queue
from academix_app.modules.quiz.services.attempt_service import AttemptService

from conftest import answers_for, bump_gradebook_version, build_quiz, seed_school


@pytest.fixture
def lazy_sync(app):
    app.config['SCORE_SYNC_EAGER'] = False
    return app


@pytest.fixture
def quiz_id(school):
    return build_quiz(school)


def _add_item(school, name, max_score=20):
    result = GradebookService().add_grade_item(school.teacher_id, 'TEACHER', school.section_id, name, max_score)
    assert result.success, result.message
    return result.data['item']['grade_item_id']


def _submit(school, quiz_id, correct=7, student_id=None):
    service = AttemptService()
    student_id = student_id or school.student_id
    attempt_id = service.start_attempt(student_id, 'STUDENT', quiz_id).data.attempt_id
    result = service.submit_attempt(student_id, 'STUDENT', attempt_id, answers_for(quiz_id, correct=correct))
    assert result.success, result.message
    return attempt_id


def _book(school):
    db.session.expire_all()
    return GradeBook.query.filter_by(class_section_id=school.section_id).one()


def _set_status(school, status):
    book = _book(school)
    book.status = status
    book.version += 1
    db.session.commit()


class TestSyncAttemptScore:

    def test_scales_score_onto_item(self, school, quiz_id, lazy_sync):
        item_id = _add_item(school, f'QUIZ:{quiz_id}', max_score=20)
        attempt_id = _submit(school, quiz_id, correct=7)

        result = ScoreSyncService().sync_attempt_score(attempt_id)

        assert result.success
        assert result.data.score == Decimal('14.00')
        assert result.data.changed is True
        entry = GradeEntry.query.filter_by(grade_item_id=item_id, enrollment_id=school.enrollment_id).one()
        assert entry.score == Decimal('14.00')
        log = entry.audit_logs.one()
        assert log.reason == GradeAuditLog.REASON_AUTO_SYNC
        assert log.actor_user_id is None

    def test_rounds_half_up(self, school, lazy_sync):
        quiz_id = build_quiz(school, total=30)
        _add_item(school, f'QUIZ:{quiz_id}', max_score=10)
        attempt_id = _submit(school, quiz_id, correct=1)

        result = ScoreSyncService().sync_attempt_score(attempt_id)

        assert result.data.score == Decimal('0.33')

    def test_sync_twice_is_idempotent(self, school, quiz_id, lazy_sync):
        _add_item(school, f'QUIZ:{quiz_id}')
        attempt_id = _submit(school, quiz_id)
        service = ScoreSyncService()

        service.sync_attempt_score(attempt_id)
        version = _book(school).version
        again = service.sync_attempt_score(attempt_id)

        assert again.success
        assert again.data.changed is False
        assert GradeEntry.query.count() == 1
        assert GradeAuditLog.query.count() == 1
        assert _book(school).version == version

    def test_resync_overwrites_manual_edit(self, school, quiz_id, lazy_sync):
        item_id = _add_item(school, f'QUIZ:{quiz_id}')
        attempt_id = _submit(school, quiz_id)
        service = ScoreSyncService()
        service.sync_attempt_score(attempt_id)
        GradebookService().upsert_scores(
            school.teacher_id, 'TEACHER', school.section_id,
            [{'grade_item_id': item_id, 'enrollment_id': school.enrollment_id, 'score': 3}],
        )

        result = service.sync_attempt_score(attempt_id)

        assert result.data.changed is True
        assert GradeEntry.query.one().score == Decimal('14.00')
        assert GradeAuditLog.query.count() == 3

    def test_falls_back_to_generic_quiz_item(self, school, quiz_id, lazy_sync):
        item_id = _add_item(school, 'quiz', max_score=10)
        attempt_id = _submit(school, quiz_id, correct=9)

        result = ScoreSyncService().sync_attempt_score(attempt_id)

        assert result.data.grade_item_id == item_id
        assert result.data.score == Decimal('9.00')

    def test_specific_item_wins_over_generic(self, school, quiz_id, lazy_sync):
        _add_item(school, 'QUIZ')
        specific = _add_item(school, f'QUIZ:{quiz_id}')
        attempt_id = _submit(school, quiz_id)

        result = ScoreSyncService().sync_attempt_score(attempt_id)

        assert result.data.grade_item_id == specific

    def test_custom_resolver(self, app, school, quiz_id, lazy_sync):
        item_id = _add_item(school, 'Continuous assessment')

        class FixedResolver:
            def resolve_quiz_grade_item(self, class_section_id, quiz_id):
                return item_id

        install_collaborators(app, grade_item_resolver=FixedResolver())
        attempt_id = _submit(school, quiz_id)

        result = ScoreSyncService().sync_attempt_score(attempt_id)

        assert result.data.grade_item_id == item_id

    def test_missing_attempt_is_item_not_found(self, school, lazy_sync):
        assert ScoreSyncService().sync_attempt_score(12345).error_code == ErrorCodes.ITEM_NOT_FOUND

    def test_in_progress_attempt_is_item_not_found(self, school, quiz_id, lazy_sync):
        _add_item(school, f'QUIZ:{quiz_id}')
        attempt_id = AttemptService().start_attempt(school.student_id, 'STUDENT', quiz_id).data.attempt_id

        result = ScoreSyncService().sync_attempt_score(attempt_id)

        assert result.error_code == ErrorCodes.ITEM_NOT_FOUND

    def test_no_gradebook(self, school, quiz_id, lazy_sync):
        attempt_id = _submit(school, quiz_id)
        result = ScoreSyncService().sync_attempt_score(attempt_id)
        assert result.error_code == ErrorCodes.GRADEBOOK_NOT_FOUND

    def test_no_matching_item(self, school, quiz_id, lazy_sync):
        _add_item(school, 'Midterm')
        attempt_id = _submit(school, quiz_id)

        result = ScoreSyncService().sync_attempt_score(attempt_id)

        assert result.error_code == ErrorCodes.GRADEBOOK_NOT_FOUND
        assert GradeEntry.query.count() == 0

    def test_pending_approval_is_refused(self, app, school, quiz_id, lazy_sync):
        app.config['SCORE_SYNC_ALLOW_LATE_CORRECTIONS'] = True
        _add_item(school, f'QUIZ:{quiz_id}')
        attempt_id = _submit(school, quiz_id)
        _set_status(school, GradeBook.STATUS_PENDING_APPROVAL)

        result = ScoreSyncService().sync_attempt_score(attempt_id)

        assert result.error_code == ErrorCodes.INVALID_STATE

    @pytest.mark.parametrize('status', [GradeBook.STATUS_PUBLISHED, GradeBook.STATUS_LOCKED])
    def test_published_refused_without_late_corrections(self, school, quiz_id, lazy_sync, status):
        _add_item(school, f'QUIZ:{quiz_id}')
        attempt_id = _submit(school, quiz_id)
        _set_status(school, status)

        result = ScoreSyncService().sync_attempt_score(attempt_id)

        assert result.error_code == ErrorCodes.INVALID_STATE
        assert GradeEntry.query.count() == 0

    def test_published_accepted_with_late_corrections(self, app, school, quiz_id, lazy_sync):
        app.config['SCORE_SYNC_ALLOW_LATE_CORRECTIONS'] = True
        _add_item(school, f'QUIZ:{quiz_id}')
        attempt_id = _submit(school, quiz_id)
        _set_status(school, GradeBook.STATUS_PUBLISHED)

        result = ScoreSyncService().sync_attempt_score(attempt_id, reason='Late correction')

        assert result.success
        assert GradeAuditLog.query.one().reason == 'Late correction'

    def test_rejected_gradebook_accepts_sync(self, school, quiz_id, lazy_sync):
        _add_item(school, f'QUIZ:{quiz_id}')
        attempt_id = _submit(school, quiz_id)
        _set_status(school, GradeBook.STATUS_REJECTED)

        assert ScoreSyncService().sync_attempt_score(attempt_id).success

    def test_actor_must_manage_section(self, school, quiz_id, lazy_sync):
        _add_item(school, f'QUIZ:{quiz_id}')
        attempt_id = _submit(school, quiz_id)
        service = ScoreSyncService()

        denied = service.sync_attempt_score(attempt_id, actor_id=school.other_teacher_id, role='TEACHER')
        allowed = service.sync_attempt_score(attempt_id, actor_id=school.teacher_id, role='TEACHER')

        assert denied.error_code == ErrorCodes.FORBIDDEN
        assert allowed.success
        assert GradeEntry.query.one().updated_by == school.teacher_id

    def test_expired_timeout_cancels_sync(self, school, quiz_id, lazy_sync):
        _add_item(school, f'QUIZ:{quiz_id}')
        attempt_id = _submit(school, quiz_id)
        version = _book(school).version

        result = ScoreSyncService().sync_attempt_score(attempt_id, timeout=0)

        assert result.error_code == ErrorCodes.CANCELLED
        assert GradeEntry.query.count() == 0
        assert GradeAuditLog.query.count() == 0
        assert _book(school).version == version

    def test_invalid_attempt_id(self, school, lazy_sync):
        assert ScoreSyncService().sync_attempt_score(0).error_code == ErrorCodes.INVALID_INPUT


class TestSyncUnderConcurrentEdits:

    @pytest.fixture
    def submitted(self, file_db):
        school = seed_school()
        quiz_id = build_quiz(school)
        _add_item(school, f'QUIZ:{quiz_id}', max_score=10)
        return school, _submit(school, quiz_id, correct=7)

    @staticmethod
    def _race_writes(monkeypatch, school, rounds):
        real_apply = score_sync_service.apply_grade_entry
        calls = []

        def racing_apply(*args, **kwargs):
            if len(calls) < rounds:
                bump_gradebook_version(school.section_id)
            calls.append(args)
            return real_apply(*args, **kwargs)

        monkeypatch.setattr(score_sync_service, 'apply_grade_entry', racing_apply)
        return calls

    def test_lost_version_check_is_retried_inline(self, submitted, monkeypatch):
        school, attempt_id = submitted
        calls = self._race_writes(monkeypatch, school, rounds=1)

        result = ScoreSyncService().sync_attempt_score(attempt_id)

        assert result.success
        assert len(calls) == 2
        db.session.expire_all()
        assert [entry.score for entry in GradeEntry.query] == [Decimal('7.00')]
        assert GradeAuditLog.query.count() == 1

    def test_conflict_returned_once_retries_run_out(self, submitted, monkeypatch):
        school, attempt_id = submitted
        calls = self._race_writes(monkeypatch, school, rounds=10)

        result = ScoreSyncService().sync_attempt_score(attempt_id)

        assert result.error_code == ErrorCodes.CONFLICT
        assert len(calls) == 3
        db.session.expire_all()
        assert GradeEntry.query.count() == 0


class TestEagerSync:

    def test_submission_syncs_immediately(self, school, quiz_id):
        _add_item(school, f'QUIZ:{quiz_id}')

        attempt_id = _submit(school, quiz_id, correct=10)

        entry = GradeEntry.query.filter_by(enrollment_id=school.enrollment_id).one()
        assert entry.score == Decimal('20.00')
        job = ScoreSyncJob.query.filter_by(attempt_id=attempt_id).one()
        assert job.status == ScoreSyncJob.STATUS_COMPLETED
        assert job.attempts == 1

    def test_failed_eager_sync_stays_queued(self, school, quiz_id, clock):
        attempt_id = _submit(school, quiz_id)

        job = ScoreSyncJob.query.filter_by(attempt_id=attempt_id).one()
        assert job.status == ScoreSyncJob.STATUS_PENDING
        assert job.last_error_code == ErrorCodes.GRADEBOOK_NOT_FOUND
        assert job.next_run_at == clock.now() + timedelta(seconds=30)
        assert db.session.get(QuizAttempt, attempt_id).status == QuizAttempt.STATUS_SUBMITTED

    def test_pending_gradebook_does_not_block_submission(self, school, quiz_id):
        item_id = _add_item(school, f'QUIZ:{quiz_id}')
        GradebookService().upsert_scores(
            school.teacher_id, 'TEACHER', school.section_id,
            [
                {'grade_item_id': item_id, 'enrollment_id': school.enrollment_id, 'score': 1},
                {'grade_item_id': item_id, 'enrollment_id': school.enrollment_b_id, 'score': 1},
            ],
        )
        GradebookService().request_approval(school.teacher_id, 'TEACHER', school.section_id)
        service = AttemptService()
        attempt_id = service.start_attempt(school.student_id, 'STUDENT', quiz_id).data.attempt_id

        result = service.submit_attempt(school.student_id, 'STUDENT', attempt_id, answers_for(quiz_id))

        assert result.success
        assert result.data.score == Decimal('10')
        job = ScoreSyncJob.query.filter_by(attempt_id=attempt_id).one()
        assert job.last_error_code == ErrorCodes.INVALID_STATE


class TestSyncQueue:

    def test_retry_delay_doubles(self):
        assert [retry_delay(30, n).total_seconds() for n in (1, 2, 3, 4)] == [30, 60, 120, 240]

    def test_enqueue_is_one_job_per_attempt(self, school, quiz_id, lazy_sync):
        attempt_id = _submit(school, quiz_id)
        queue = SyncQueueService()

        queue.enqueue(attempt_id)
        queue.enqueue(attempt_id)

        assert ScoreSyncJob.query.count() == 1

    def test_due_job_waits_then_completes(self, school, quiz_id, clock, lazy_sync):
        attempt_id = _submit(school, quiz_id)
        queue = SyncQueueService()

        first = queue.process_pending()
        assert first == {'processed': 1, 'completed': 0, 'retrying': 1, 'failed': 0}

        clock.advance(seconds=29)
        assert queue.process_pending()['processed'] == 0

        _add_item(school, f'QUIZ:{quiz_id}')
        clock.advance(seconds=1)
        assert queue.process_pending()['completed'] == 1
        job = ScoreSyncJob.query.filter_by(attempt_id=attempt_id).one()
        assert job.status == ScoreSyncJob.STATUS_COMPLETED
        assert job.last_error_code is None

    def test_gives_up_after_max_retries(self, app, school, quiz_id, clock, lazy_sync):
        app.config['SCORE_SYNC_MAX_RETRIES'] = 3
        attempt_id = _submit(school, quiz_id)
        queue = SyncQueueService()

        for _ in range(3):
            queue.process_pending()
            clock.advance(hours=1)

        job = ScoreSyncJob.query.filter_by(attempt_id=attempt_id).one()
        assert job.status == ScoreSyncJob.STATUS_FAILED
        assert job.attempts == 3
        assert queue.process_pending()['processed'] == 0

    def test_permanent_error_fails_immediately(self, school, quiz_id, lazy_sync):
        attempt_id = AttemptService().start_attempt(school.student_id, 'STUDENT', quiz_id).data.attempt_id
        queue = SyncQueueService()
        job = queue.enqueue(attempt_id)

        queue.run_job(job.job_id)

        job = db.session.get(ScoreSyncJob, job.job_id)
        assert job.status == ScoreSyncJob.STATUS_FAILED
        assert job.last_error_code == ErrorCodes.ITEM_NOT_FOUND

    def test_requeue_revives_failed_job(self, school, quiz_id, lazy_sync):
        attempt_id = AttemptService().start_attempt(school.student_id, 'STUDENT', quiz_id).data.attempt_id
        queue = SyncQueueService()
        queue.run_job(queue.enqueue(attempt_id).job_id)

        job = queue.enqueue(attempt_id)

        assert job.status == ScoreSyncJob.STATUS_PENDING
        assert job.attempts == 0

    def test_batch_limit(self, school, lazy_sync):
        first_quiz = build_quiz(school, title='First')
        second_quiz = build_quiz(school, title='Second')
        _submit(school, first_quiz)
        _submit(school, second_quiz)

        summary = SyncQueueService().process_pending(limit=1)

        assert summary['processed'] == 1

    def test_scheduler_job_runs_queue(self, app, school, quiz_id, lazy_sync, monkeypatch):
        monkeypatch.setattr(scheduler, 'app', app)
        attempt_id = _submit(school, quiz_id)
        _add_item(school, f'QUIZ:{quiz_id}')

        process_score_sync_queue()

        db.session.expire_all()
        job = ScoreSyncJob.query.filter_by(attempt_id=attempt_id).one()
        assert job.status == ScoreSyncJob.STATUS_COMPLETED
