"""Application factory for the Academix assessment service."""

from __future__ import annotations

from flask import Flask

from .core.bootstrap import (
    configure_logging,
    initialize_database,
    register_blueprints,
    register_collaborators,
    register_events,
    register_extensions,
    register_user_loader,
)
from .core.config import Config
from .core.error_handlers import register_error_handlers
from .extensions import db

__all__ = ["create_app", "db"]


def create_app(config_class: type[Config] = Config) -> Flask:
    """Create and configure a Flask application instance."""

    app = Flask(__name__)
    app.config.from_object(config_class)

    configure_logging(app)
    register_extensions(app)
    register_user_loader(app)
    register_collaborators(app)
    register_error_handlers(app)
    register_blueprints(app)
    register_events(app)

    with app.app_context():
        initialize_database(app)

    return app
