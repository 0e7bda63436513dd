"""
Production entry point (`shopkeep-server`).

Builds Settings from the environment, configures logging, creates the app
and refuses to start if the database cannot be reached.
"""

import logging
import sys

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from . import create_app
from .config import Settings
from .extensions import db
from .logging_config import configure_logging

logger = logging.getLogger(__name__)


def check_database(app) -> None:
    with app.app_context():
        db.session.execute(text("SELECT 1"))
        db.session.remove()


def main() -> int:
    try:
        settings = Settings.from_env()
        configure_logging(settings)
    except ValueError:
        # Bad numbers or log level in the environment; log with defaults
        configure_logging(Settings())
        logger.exception("Invalid configuration at startup")
        return 1

    try:
        app = create_app(settings)
        check_database(app)
    except SQLAlchemyError:
        # Includes a malformed or unsupported DATABASE_URL (ArgumentError)
        logger.exception("Cannot reach the database at startup")
        return 1

    logger.info("Starting shopkeep on %s:%s", settings.host, settings.port)
    app.run(host=settings.host, port=settings.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
