import logging

from flask import current_app

from ...core.signals import attempt_submitted
from ...db_instance import db
from .services.sync_queue_service import SyncQueueService

logger = logging.getLogger(__name__)


def on_attempt_submitted(sender, attempt_id, **kwargs):
    """
    Event listener: queue the submitted attempt's score for the gradebook
    and, in eager mode, try it right away. Failures stay queued.
    """
    try:
        queue = SyncQueueService()
        if current_app.config.get('SCORE_SYNC_EAGER', True):
            result = queue.sync_now(attempt_id)
            if result is not None and not result.success:
                logger.info(
                    "Attempt %s score not synced yet (%s); left in the retry queue",
                    attempt_id, result.error_code,
                )
        else:
            queue.enqueue(attempt_id)
    except Exception:
        db.session.rollback()
        logger.exception("Could not queue score sync for attempt %s", attempt_id)


def register_events():
    """Connect signals."""
    attempt_submitted.connect(on_attempt_submitted)
