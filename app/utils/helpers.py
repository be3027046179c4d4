"""
Helper utility functions shared by the API blueprints.
"""

from flask import current_app, request

from database.connection import get_session_factory
from services.errors import ValidationError
from services.transactions import run_in_transaction


def get_json_payload():
    """
    Parse the request body as a JSON object.

    Raises:
        ValidationError: If the body is missing or not a JSON object
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def transact(work):
    """
    Run work(session) as one transaction with the app's retry settings.

    Args:
        work: Function taking a SQLAlchemy session

    Returns:
        Whatever work returned
    """
    return run_in_transaction(
        get_session_factory(),
        work,
        max_attempts=current_app.config.get('REORDER_MAX_ATTEMPTS', 3),
        retry_delay=current_app.config.get('REORDER_RETRY_DELAY', 0.05)
    )
