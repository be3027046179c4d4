"""
Utilities Package

Shared helper functions used across the API blueprints.
"""

from app.utils.helpers import (
    get_json_payload,
    transact,
)

__all__ = [
    'get_json_payload',
    'transact',
]
