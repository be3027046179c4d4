"""
Error taxonomy for board/task ordering operations.

Every error carries the HTTP status the resource layer answers with.
"""

from typing import Any, Dict, Optional


class KanbanError(Exception):
    """Base class for errors surfaced to the resource layer."""

    status_code = 500
    title = 'Error'

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'error': self.title,
            'message': self.message
        }


class ValidationError(KanbanError):
    """Request rejected: bad membership, cardinality, or out-of-range index"""

    status_code = 400
    title = 'Validation Error'

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.field:
            data['field'] = self.field
        return data


class NotFoundError(KanbanError):
    """Referenced item or parent list does not exist"""

    status_code = 404
    title = 'Not Found'


class ConflictError(KanbanError):
    """Rows changed between read and write; the unit of work may be retried"""

    status_code = 409
    title = 'Conflict'


class StorageError(KanbanError):
    """Lower-level database failure; never retried here"""

    status_code = 500
    title = 'Storage Error'
