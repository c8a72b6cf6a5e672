"""Bootstrap helpers for configuring the Flask application."""

from __future__ import annotations

import os

from flask import Flask

from ..extensions import csrf_protect, db, login_manager, migrate, scheduler
from .collaborators import install_collaborators
from .error_handlers import ErrorCodes, error_response
from .logging_config import setup_logging
from .module_registry import register_default_modules


def configure_logging(app: Flask) -> None:
    """Configure package logging from the app config."""

    setup_logging(
        app,
        log_level=app.config.get("LOG_LEVEL", "INFO"),
        log_dir=app.config.get("LOG_DIR"),
        json_format=bool(app.config.get("LOG_JSON", False)),
    )


def register_extensions(app: Flask) -> None:
    """Initialize shared extensions with the Flask app instance."""

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf_protect.init_app(app)

    if app.testing or not app.config.get("SCHEDULER_ENABLED", True):
        return

    # Scheduler: only in the reloader child when debugging.
    if not app.debug or os.environ.get("WERKZEUG_RUN_MAIN") == "true":
        from apscheduler.schedulers import SchedulerAlreadyRunningError

        from ..modules.gradebook.tasks import register_jobs

        try:
            scheduler.init_app(app)
            if not scheduler.running:
                scheduler.start()
            register_jobs(app)
        except SchedulerAlreadyRunningError:
            app.logger.info("Scheduler already running; skipping re-initialisation.")


def register_user_loader(app: Flask) -> None:
    """Wire flask-login to the users table and answer anonymous API calls with JSON."""

    @login_manager.user_loader
    def load_user(user_id: str):
        from ..models import User

        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return error_response("Authentication required.", ErrorCodes.UNAUTHENTICATED, 401)


def register_collaborators(app: Flask) -> None:
    """Install the default academic directory, clock and grade-item resolver."""

    install_collaborators(app)


def register_blueprints(app: Flask) -> None:
    """Register all default blueprints with the app."""

    register_default_modules(app)


def register_events(app: Flask) -> None:
    """Connect cross-module signal receivers."""

    from ..modules.gradebook import setup_module as setup_gradebook

    setup_gradebook(app)


def initialize_database(app: Flask) -> None:
    """Create database tables."""

    from .. import models  # noqa: F401

    db.create_all()
    app.logger.info("Database tables ready.")
