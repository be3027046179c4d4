"""
Kanban CRM - Application Package

This package contains the HTTP layer:
- api/: HTTP route handlers (Flask Blueprints)
- utils/: Shared helpers for the route handlers

The app factory and core Flask setup remain in app_init.py at the project root.
Business logic lives in the top-level services/ package.
"""

import logging

logger = logging.getLogger(__name__)

# Import blueprints
from app.api.boards import boards_bp
from app.api.tasks import tasks_bp
from app.api.crm import crm_bp


def register_blueprints(app):
    """
    Register all API blueprints with the Flask app.
    Called from create_app() in app_init.py.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(boards_bp)
    app.register_blueprint(tasks_bp)
    app.register_blueprint(crm_bp)
    logger.info("Registered blueprints: boards, tasks, crm")


__all__ = ['register_blueprints', 'boards_bp', 'tasks_bp', 'crm_bp']
