"""
Board Repository - Database operations for boards and their columns.
"""

import logging
from typing import Dict, List, Optional, Sequence
from sqlalchemy import select
from sqlalchemy.orm import Session

from database.models import Board, BoardColumn, Task, TaskComment
from services.errors import NotFoundError, ValidationError
from services.ordering import column_reconciler
from services.task_repository import TaskRepository
from validators import sanitize_string, MAX_NAME_LENGTH, MAX_TEXT_LENGTH

logger = logging.getLogger(__name__)

DEFAULT_COLUMNS = ('To Do', 'In Progress', 'Done')


class BoardRepository:
    """Repository for boards and ordered board columns."""

    def __init__(self, session: Session, default_columns: Optional[Sequence[str]] = None):
        self.session = session
        self.default_columns = tuple(default_columns or DEFAULT_COLUMNS)
        self.ordering = column_reconciler(session)

    def _get_board(self, board_id) -> Board:
        board = self.session.query(Board).filter(
            Board.id == str(board_id)
        ).populate_existing().first()
        if not board:
            raise NotFoundError(f"Board {board_id} not found")
        return board

    def _get_column(self, board_id, column_id) -> BoardColumn:
        column = self.session.query(BoardColumn).filter(
            BoardColumn.id == str(column_id)
        ).populate_existing().first()
        if not column or column.board_id != str(board_id):
            raise NotFoundError(f"Column {column_id} not found on board {board_id}")
        return column

    def _ordered_columns(self, board_id) -> List[BoardColumn]:
        return self.session.query(BoardColumn).filter(
            BoardColumn.board_id == str(board_id)
        ).order_by(BoardColumn.order).populate_existing().all()

    # =========================================================================
    # BOARDS
    # =========================================================================

    def list_boards(self) -> List[Dict]:
        """List all boards with their columns."""
        boards = self.session.query(Board).order_by(Board.created_at, Board.name).all()
        return [b.to_dict(include_columns=True) for b in boards]

    def get_board(self, board_id) -> Dict:
        """Get a board with columns, tasks, people and comments."""
        board = self._get_board(board_id)
        return board.to_dict(include_columns=True, include_tasks=True)

    def create_board(self, data: Dict) -> Dict:
        """Create a board with the default columns."""
        board = Board(
            name=sanitize_string(data['name'], MAX_NAME_LENGTH),
            description=data.get('description'),
            order_version=0
        )
        self.session.add(board)
        self.session.flush()

        for name in self.default_columns:
            self._insert_column(board.id, name)

        logger.info(f"Created board {board.id} with {len(self.default_columns)} columns")
        self.session.expire(board)
        return board.to_dict(include_columns=True)

    def update_board(self, board_id, data: Dict) -> Dict:
        board = self._get_board(board_id)
        if 'name' in data:
            board.name = sanitize_string(data['name'], MAX_NAME_LENGTH)
        if 'description' in data:
            description = data['description']
            board.description = sanitize_string(description, MAX_TEXT_LENGTH) if description else None
        self.session.flush()
        return board.to_dict()

    def delete_board(self, board_id):
        """Delete a board with all of its columns, tasks and comments."""
        board = self._get_board(board_id)
        self.ordering.repo.claim_parent(board.id)

        column_ids = select(BoardColumn.id).where(BoardColumn.board_id == board.id)
        task_ids = select(Task.id).where(Task.column_id.in_(column_ids))

        self.session.query(TaskComment).filter(
            TaskComment.task_id.in_(task_ids)
        ).delete(synchronize_session=False)
        self.session.query(Task).filter(
            Task.column_id.in_(column_ids)
        ).delete(synchronize_session=False)
        self.session.query(BoardColumn).filter(
            BoardColumn.board_id == board.id
        ).delete(synchronize_session=False)
        self.session.query(Board).filter(Board.id == board.id).delete(synchronize_session=False)
        self.session.expunge_all()
        logger.info(f"Deleted board {board_id}")

    # =========================================================================
    # COLUMNS
    # =========================================================================

    def _insert_column(self, board_id: str, name: str) -> BoardColumn:
        column = BoardColumn(
            board_id=board_id,
            name=sanitize_string(name, MAX_NAME_LENGTH),
            order_version=0
        )
        column.order = self.ordering.on_create(board_id)
        self.session.add(column)
        self.session.flush()
        return column

    def list_columns(self, board_id) -> List[Dict]:
        board = self._get_board(board_id)
        return [c.to_dict() for c in self._ordered_columns(board.id)]

    def add_column(self, board_id, data: Dict) -> Dict:
        """Append a column to the end of the board."""
        board = self._get_board(board_id)
        column = self._insert_column(board.id, data['name'])
        logger.info(f"Added column {column.id} to board {board.id} at {column.order}")
        return column.to_dict()

    def update_column(self, board_id, column_id, data: Dict) -> Dict:
        column = self._get_column(board_id, column_id)
        column.name = sanitize_string(data['name'], MAX_NAME_LENGTH)
        self.session.flush()
        return column.to_dict()

    def move_column(self, board_id, column_id, order: int) -> List[Dict]:
        """
        Move one column to a new position on its board.

        Returns:
            The board's columns in their new order
        """
        column = self._get_column(board_id, column_id)
        self.ordering.on_move(column.id, column.board_id, order)
        return [c.to_dict() for c in self._ordered_columns(column.board_id)]

    def delete_column(self, board_id, column_id):
        """
        Delete a column. Its tasks are appended, in order, to the first
        remaining column. The last column of a board cannot be deleted.
        """
        column = self._get_column(board_id, column_id)
        # Lock order: board row, then column rows in id order, then tasks
        self.ordering.repo.claim_parent(column.board_id)
        siblings = self._ordered_columns(column.board_id)
        if len(siblings) <= 1:
            raise ValidationError("Cannot delete the last column")

        fallback = next(c for c in siblings if c.id != column.id)
        tasks = TaskRepository(self.session)
        for parent_id in sorted([column.id, fallback.id]):
            tasks.ordering.repo.claim_parent(parent_id)
        moved = 0
        for task_id in tasks.ordering.ordered_ids(column.id):
            tasks.append_to_column(task_id, fallback.id)
            moved += 1

        self.ordering.on_delete(column.id)
        logger.info(f"Deleted column {column_id}; moved {moved} tasks to {fallback.id}")

    def reorder_columns(self, board_id, column_ids: Sequence) -> List[Dict]:
        """
        Apply a full new column order for a board.

        Returns:
            The board's columns in their new order
        """
        board = self._get_board(board_id)
        self.ordering.on_explicit_reorder(board.id, list(column_ids))
        return [c.to_dict() for c in self._ordered_columns(board.id)]
