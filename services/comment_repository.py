"""
Comment Repository - Database operations for comments on tasks.
"""

import logging
from typing import Dict, List
from sqlalchemy.orm import Session

from database.models import Task, TaskComment, User
from services.errors import NotFoundError, ValidationError
from validators import sanitize_string, MAX_TEXT_LENGTH

logger = logging.getLogger(__name__)


class CommentRepository:
    """Repository for the comments of one task."""

    def __init__(self, session: Session, task_id):
        self.session = session
        self.task_id = str(task_id)

    def _require_task(self) -> Task:
        task = self.session.query(Task).filter(Task.id == self.task_id).first()
        if not task:
            raise NotFoundError(f"Task {self.task_id} not found")
        return task

    def _get(self, comment_id) -> TaskComment:
        self._require_task()
        comment = self.session.query(TaskComment).filter(
            TaskComment.id == str(comment_id)
        ).first()
        # A comment addressed through another task is treated as missing
        if not comment or comment.task_id != self.task_id:
            raise NotFoundError(f"Comment {comment_id} not found on task {self.task_id}")
        return comment

    def list_comments(self) -> List[Dict]:
        """Comments of the task, newest first."""
        self._require_task()
        comments = self.session.query(TaskComment).filter(
            TaskComment.task_id == self.task_id
        ).order_by(TaskComment.created_at.desc(), TaskComment.id).all()
        return [c.to_dict() for c in comments]

    def add_comment(self, data: Dict) -> Dict:
        """Add a comment, optionally authored by user_id."""
        task = self._require_task()
        user_id = data.get('user_id')
        if user_id is not None:
            user_id = str(user_id)
            if not self.session.query(User.id).filter(User.id == user_id).first():
                raise ValidationError(f"Unknown user_id: {user_id}", field='user_id')

        comment = TaskComment(
            task_id=task.id,
            user_id=user_id,
            content=sanitize_string(data['content'], MAX_TEXT_LENGTH)
        )
        self.session.add(comment)
        self.session.flush()
        logger.info(f"Added comment {comment.id} to task {task.id}")
        return comment.to_dict()

    def update_comment(self, comment_id, data: Dict) -> Dict:
        comment = self._get(comment_id)
        comment.content = sanitize_string(data['content'], MAX_TEXT_LENGTH)
        self.session.flush()
        return comment.to_dict()

    def delete_comment(self, comment_id):
        comment = self._get(comment_id)
        self.session.delete(comment)
        self.session.flush()
        logger.info(f"Deleted comment {comment_id} from task {self.task_id}")
