"""
API Blueprints Package

All HTTP route handlers for the application, organized by resource.
Each module defines a Flask Blueprint registered in app/__init__.py.

BLUEPRINT REFERENCE:
====================

- boards.py : Boards and their ordered columns (/api/boards/*)
- tasks.py  : Tasks, task moves, column reorder, calendar
              and task comments
              (/api/tasks/*, /api/reorder, /api/calendar)
- crm.py    : Customers and users (/api/customers/*, /api/users/*)

Health and monitoring routes live in health_checks.py at the project root.
"""

# All blueprints are imported and registered in app/__init__.py
# This file serves as documentation only

__all__ = []
