"""
Services package for the kanban backend.
Contains the ordered list reconciler, the transaction runner and the error
taxonomy. Repository classes are imported from their own modules:

    from services.task_repository import TaskRepository
    from services.board_repository import BoardRepository
"""

from services.errors import (
    KanbanError,
    ValidationError,
    NotFoundError,
    ConflictError,
    StorageError
)
from services.ordering import (
    OrderedListReconciler,
    SiblingRepository,
    task_reconciler,
    column_reconciler
)
from services.transactions import run_in_transaction

__all__ = [
    'KanbanError',
    'ValidationError',
    'NotFoundError',
    'ConflictError',
    'StorageError',
    'OrderedListReconciler',
    'SiblingRepository',
    'task_reconciler',
    'column_reconciler',
    'run_in_transaction'
]
