import logging

from ...extensions import scheduler
from .services.sync_queue_service import SyncQueueService

logger = logging.getLogger(__name__)

SCORE_SYNC_JOB_ID = 'score_sync_retry'


def process_score_sync_queue():
    """Scheduler job: run the score syncs whose retry time has come."""
    with scheduler.app.app_context():
        summary = SyncQueueService().process_pending()
        if summary['failed']:
            logger.warning("%s score sync job(s) gave up this run", summary['failed'])


def register_jobs(app):
    if scheduler.get_job(SCORE_SYNC_JOB_ID):
        return
    scheduler.add_job(
        id=SCORE_SYNC_JOB_ID,
        func=process_score_sync_queue,
        trigger='interval',
        seconds=int(app.config.get('SCORE_SYNC_INTERVAL_SECONDS', 60)),
        replace_existing=True,
    )
    app.logger.info("Registered job '%s'", SCORE_SYNC_JOB_ID)
