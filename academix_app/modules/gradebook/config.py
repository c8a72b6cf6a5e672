# File: academix_app/modules/gradebook/config.py

class GradebookDefaultConfig:
    """
    Default settings for the gradebook module; ``app.config`` values named
    ``SCORE_SYNC_*`` take precedence.
    """
    SCORE_SYNC_ALLOW_LATE_CORRECTIONS = False
    SCORE_SYNC_EAGER = True
    SCORE_SYNC_MAX_RETRIES = 5
    SCORE_SYNC_RETRY_BASE_SECONDS = 30
    SCORE_SYNC_INTERVAL_SECONDS = 60
    SCORE_SYNC_BATCH_SIZE = 50

    # Conflicts (a concurrent writer bumped the version) retried inline by a sync.
    SCORE_SYNC_CONFLICT_RETRIES = 2

    MAX_ITEM_NAME_LENGTH = 200
    MAX_MESSAGE_LENGTH = 500
