"""
Application Initialization Module
Initializes the Flask app with config, logging, security, database and routes
"""
import os
from flask import Flask

from config import get_config
from logging_config import setup_logging, get_logger
from security import setup_security
from health_checks import register_health_checks
from database.connection import init_engine, init_db

logger = get_logger(__name__)


def create_app(config_class=None):
    """
    Application factory

    Args:
        config_class: Config class to load; defaults to the one selected by FLASK_ENV

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__)

    app.config.from_object(config_class or get_config())

    setup_logging(app)

    logger.info("=" * 60)
    logger.info("Initializing Kanban CRM API")
    logger.info("=" * 60)
    logger.info(f"Environment: {os.environ.get('FLASK_ENV', 'development')}")
    logger.info(f"Debug mode: {app.debug}")

    # Setup security (CORS, headers, error handlers)
    setup_security(app, app.config)

    initialize_database(app)

    from app import register_blueprints
    register_blueprints(app)

    register_health_checks(app)

    logger.info("Application initialization complete")
    logger.info("=" * 60)

    return app


def initialize_database(app):
    """
    Create the engine, ensure tables exist and optionally seed demo data

    Args:
        app: Flask application instance
    """
    database_url = app.config.get('DATABASE_URL')
    if not database_url:
        raise RuntimeError(
            "DATABASE_URL not configured. Please set the DATABASE_URL environment variable."
        )

    init_engine(database_url, **app.config.get('SQLALCHEMY_ENGINE_OPTIONS', {}))
    init_db()

    if app.config.get('SEED_DATABASE'):
        from database.seed import seed_database
        seed_database()
