"""Persistent at-least-once retry queue in front of :class:`ScoreSyncService`."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ....core.collaborators import get_collaborators
from ....core.error_handlers import ErrorCodes
from ....core.service_result import ServiceResult
from ....db_instance import db
from ....models import ScoreSyncJob
from ....utils.db_session import safe_commit
from ....utils.time_utils import ensure_utc
from ..config import GradebookDefaultConfig
from .score_sync_service import ScoreSyncService

logger = logging.getLogger(__name__)

# Failures that retrying cannot fix.
PERMANENT_ERRORS = frozenset({ErrorCodes.INVALID_INPUT, ErrorCodes.ITEM_NOT_FOUND, ErrorCodes.FORBIDDEN})


def retry_delay(base_seconds: int, attempts_made: int) -> timedelta:
    """Exponential backoff: base, 2*base, 4*base, ..."""
    return timedelta(seconds=base_seconds * (2 ** max(attempts_made - 1, 0)))


class SyncQueueService:

    def __init__(self, sync_service: Optional[ScoreSyncService] = None, clock=None):
        self.clock = clock or get_collaborators().clock
        self.sync_service = sync_service or ScoreSyncService(clock=self.clock)

    @staticmethod
    def _setting(name: str):
        return current_app.config.get(name, getattr(GradebookDefaultConfig, name))

    def enqueue(self, attempt_id: int) -> ScoreSyncJob:
        """Queue an attempt for syncing; re-queueing an existing job makes it due now."""
        now = self.clock.now()
        job = ScoreSyncJob.query.filter_by(attempt_id=attempt_id).first()
        if job is None:
            job = ScoreSyncJob(
                attempt_id=attempt_id,
                status=ScoreSyncJob.STATUS_PENDING,
                attempts=0,
                next_run_at=now,
                created_at=now,
                updated_at=now,
            )
            db.session.add(job)
            try:
                db.session.commit()
            except IntegrityError:
                db.session.rollback()
                job = ScoreSyncJob.query.filter_by(attempt_id=attempt_id).first()
            return job

        if job.status != ScoreSyncJob.STATUS_PENDING:
            job.status = ScoreSyncJob.STATUS_PENDING
            job.attempts = 0
        job.next_run_at = now
        job.updated_at = now
        safe_commit(db.session)
        return job

    def run_job(self, job_id: int) -> Optional[ServiceResult]:
        """Run one pending job and record the outcome on it."""
        job = db.session.get(ScoreSyncJob, job_id)
        if job is None or job.status != ScoreSyncJob.STATUS_PENDING:
            return None
        attempt_id = job.attempt_id

        result = self.sync_service.sync_attempt_score(attempt_id)

        job = db.session.get(ScoreSyncJob, job_id)
        now = self.clock.now()
        job.attempts += 1
        job.updated_at = now
        if result.success:
            job.status = ScoreSyncJob.STATUS_COMPLETED
            job.last_error_code = None
            job.last_error_message = None
        else:
            job.last_error_code = result.error_code
            job.last_error_message = (result.message or '')[:500]
            max_retries = int(self._setting('SCORE_SYNC_MAX_RETRIES'))
            if result.error_code in PERMANENT_ERRORS or job.attempts >= max_retries:
                job.status = ScoreSyncJob.STATUS_FAILED
                logger.warning(
                    "Score sync for attempt %s failed permanently after %s attempt(s): %s",
                    attempt_id, job.attempts, result.error_code,
                )
            else:
                job.next_run_at = now + retry_delay(
                    int(self._setting('SCORE_SYNC_RETRY_BASE_SECONDS')), job.attempts
                )
                logger.warning(
                    "Score sync for attempt %s failed (%s); retrying at %s",
                    attempt_id, result.error_code, job.next_run_at.isoformat(),
                )
        safe_commit(db.session)
        return result

    def sync_now(self, attempt_id: int) -> Optional[ServiceResult]:
        job = self.enqueue(attempt_id)
        return self.run_job(job.job_id)

    def process_pending(self, now: Optional[datetime] = None, limit: Optional[int] = None) -> dict:
        """Run every due job; returns counts by outcome."""
        now = ensure_utc(now) or self.clock.now()
        limit = limit or int(self._setting('SCORE_SYNC_BATCH_SIZE'))
        due_ids = [
            row[0]
            for row in db.session.query(ScoreSyncJob.job_id)
            .filter(
                ScoreSyncJob.status == ScoreSyncJob.STATUS_PENDING,
                ScoreSyncJob.next_run_at <= now,
            )
            .order_by(ScoreSyncJob.next_run_at, ScoreSyncJob.job_id)
            .limit(limit)
        ]

        summary = {'processed': 0, 'completed': 0, 'retrying': 0, 'failed': 0}
        for job_id in due_ids:
            result = self.run_job(job_id)
            if result is None:
                continue
            summary['processed'] += 1
            status = db.session.get(ScoreSyncJob, job_id).status
            if status == ScoreSyncJob.STATUS_COMPLETED:
                summary['completed'] += 1
            elif status == ScoreSyncJob.STATUS_FAILED:
                summary['failed'] += 1
            else:
                summary['retrying'] += 1
        if summary['processed']:
            logger.info("Score sync queue run: %s", summary)
        return summary
