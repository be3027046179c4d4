"""
Task Repository - Database operations for tasks.

Every change to a task's position goes through the task reconciler so the
orders inside each column stay dense.
"""

import logging
from typing import Dict, List, Optional, Sequence
from sqlalchemy.orm import Session

from database.models import BoardColumn, Customer, Task, TaskComment, User
from services.errors import NotFoundError, ValidationError
from services.ordering import task_reconciler
from validators import parse_due_date, sanitize_string, MAX_NAME_LENGTH, MAX_TEXT_LENGTH

logger = logging.getLogger(__name__)


class TaskRepository:
    """Repository for task database operations."""

    UPDATABLE_FIELDS = ('title', 'description', 'customer_id', 'user_id', 'due_date')

    def __init__(self, session: Session):
        self.session = session
        self.ordering = task_reconciler(session)

    def _get(self, task_id) -> Task:
        task = self.session.query(Task).filter(
            Task.id == str(task_id)
        ).populate_existing().first()
        if not task:
            raise NotFoundError(f"Task {task_id} not found")
        return task

    def _require_column(self, column_id) -> BoardColumn:
        column = self.session.query(BoardColumn).filter(
            BoardColumn.id == str(column_id)
        ).first()
        if not column:
            raise NotFoundError(f"Column {column_id} not found")
        return column

    def _check_references(self, data: Dict):
        """customer_id and user_id must point at existing rows when given."""
        for field, model in (('customer_id', Customer), ('user_id', User)):
            value = data.get(field)
            if value is None:
                continue
            exists = self.session.query(model.id).filter(model.id == str(value)).first()
            if not exists:
                raise ValidationError(f"Unknown {field}: {value}", field=field)

    def _apply_fields(self, task: Task, data: Dict):
        if 'title' in data:
            task.title = sanitize_string(data['title'], MAX_NAME_LENGTH)
        if 'description' in data:
            description = data['description']
            task.description = sanitize_string(description, MAX_TEXT_LENGTH) if description else None
        if 'customer_id' in data:
            task.customer_id = str(data['customer_id']) if data['customer_id'] is not None else None
        if 'user_id' in data:
            task.user_id = str(data['user_id']) if data['user_id'] is not None else None
        if 'due_date' in data:
            task.due_date = parse_due_date(data['due_date'])

    # =========================================================================
    # READS
    # =========================================================================

    def list_tasks(self, column_id=None) -> List[Dict]:
        """List tasks, optionally for one column, in display order."""
        query = self.session.query(Task)
        if column_id is not None:
            query = query.filter(Task.column_id == str(column_id))
            query = query.order_by(Task.order)
        else:
            query = query.order_by(Task.column_id, Task.order)
        return [t.to_dict(include_relations=True, include_comments=True) for t in query.all()]

    def get_task(self, task_id) -> Dict:
        """Get a single task with its column, people and comments."""
        return self._get(task_id).to_dict(include_relations=True, include_comments=True)

    def calendar_tasks(self) -> List[Dict]:
        """Tasks that have a due date, soonest first."""
        tasks = self.session.query(Task).filter(
            Task.due_date.isnot(None)
        ).order_by(Task.due_date, Task.title).all()
        return [t.to_dict(include_relations=True) for t in tasks]

    # =========================================================================
    # WRITES
    # =========================================================================

    def create_task(self, data: Dict) -> Dict:
        """Create a task appended to the end of its column."""
        column = self._require_column(data['column_id'])
        self._check_references(data)

        task = Task(column_id=column.id)
        self._apply_fields(task, data)
        task.order = self.ordering.on_create(column.id)

        self.session.add(task)
        self.session.flush()
        logger.info(f"Created task {task.id} in column {column.id} at {task.order}")
        return self._get(task.id).to_dict(include_relations=True)

    def update_task(self, task_id, data: Dict) -> Dict:
        """Update task details. Position changes go through move_task."""
        task = self._get(task_id)
        self._check_references(data)
        self._apply_fields(task, {k: v for k, v in data.items() if k in self.UPDATABLE_FIELDS})
        self.session.flush()
        return task.to_dict(include_relations=True)

    def delete_task(self, task_id):
        """Delete a task and its comments, closing the gap in its column."""
        task = self._get(task_id)

        def delete_comments(locked):
            removed = self.session.query(TaskComment).filter(
                TaskComment.task_id == locked.id
            ).delete(synchronize_session='fetch')
            if removed:
                logger.debug(f"Deleted {removed} comments of task {locked.id}")

        self.ordering.on_delete(task.id, clear_dependents=delete_comments)

    def move_task(self, task_id, column_id, order: int) -> Dict:
        """
        Move a task to position order of column_id.

        Same column is a gap-shift move; another column makes room there
        and closes the gap left behind.
        """
        target = self._require_column(column_id)
        self.ordering.on_move(str(task_id), target.id, order)
        return self._get(task_id).to_dict(include_relations=True)

    def reorder_tasks(self, column_id, task_ids: Sequence) -> List[str]:
        """
        Apply a full new order for a column.

        Returns:
            The column's task ids in their new order
        """
        column = self._require_column(column_id)
        self.ordering.on_explicit_reorder(column.id, list(task_ids))
        return self.ordering.ordered_ids(column.id)

    def append_to_column(self, task_id, column_id, order: Optional[int] = None) -> int:
        """Move a task into column_id, at the end unless order is given."""
        task = self._get(task_id)
        return self.ordering.on_move_cross_list(
            task.id, task.column_id, str(column_id), order, unlocked_read=True
        )
