# File: academix_app/core/config.py

import os
from dotenv import load_dotenv

load_dotenv()

# The repository root sits two levels above this file.
BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))

DATABASE_PATH = os.path.join(BASE_DIR, "database", "academix.db")


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """Academix application configuration."""

    SECRET_KEY = os.environ.get('SECRET_KEY')
    if not SECRET_KEY:
        SECRET_KEY = 'dev-secret-key-replace-in-production'

    SQLALCHEMY_DATABASE_URI = os.environ.get('SQLALCHEMY_DATABASE_URI') or f'sqlite:///{DATABASE_PATH}'
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'connect_args': {'timeout': 30},
    }
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_DIR = os.environ.get('LOG_DIR') or os.path.join(BASE_DIR, 'logs')
    LOG_JSON = _env_bool('LOG_JSON', False)

    # Quiz authoring
    QUIZ_VALID_TOTAL_QUESTIONS = (10, 20, 30)

    # Quiz score -> gradebook reconciliation
    SCORE_SYNC_ALLOW_LATE_CORRECTIONS = _env_bool('SCORE_SYNC_ALLOW_LATE_CORRECTIONS', False)
    SCORE_SYNC_EAGER = _env_bool('SCORE_SYNC_EAGER', True)
    SCORE_SYNC_MAX_RETRIES = int(os.environ.get('SCORE_SYNC_MAX_RETRIES', 5))
    SCORE_SYNC_RETRY_BASE_SECONDS = int(os.environ.get('SCORE_SYNC_RETRY_BASE_SECONDS', 30))
    SCORE_SYNC_INTERVAL_SECONDS = int(os.environ.get('SCORE_SYNC_INTERVAL_SECONDS', 60))
    SCORE_SYNC_BATCH_SIZE = int(os.environ.get('SCORE_SYNC_BATCH_SIZE', 50))

    # Background scheduler
    SCHEDULER_ENABLED = _env_bool('SCHEDULER_ENABLED', True)
    SCHEDULER_API_ENABLED = False

    db_dir = os.path.dirname(DATABASE_PATH)
    if not os.path.exists(db_dir):
        os.makedirs(db_dir, exist_ok=True)
