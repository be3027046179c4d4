"""
User Repository - Database access layer for the people tasks are assigned to.
"""

import logging
from typing import List, Dict
from sqlalchemy.orm import Session

from database.models import Task, TaskComment, User
from services.errors import NotFoundError, ValidationError
from validators import sanitize_string, MAX_NAME_LENGTH

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for user database operations."""

    def __init__(self, session: Session):
        self.session = session

    def _get(self, user_id) -> User:
        user = self.session.query(User).filter(User.id == str(user_id)).first()
        if not user:
            raise NotFoundError(f"User {user_id} not found")
        return user

    def _require_unique_email(self, email: str, user_id=None):
        query = self.session.query(User.id).filter(User.email == email)
        if user_id is not None:
            query = query.filter(User.id != str(user_id))
        if query.first():
            raise ValidationError("This email address is already taken", field='email')

    def list_users(self) -> List[Dict]:
        """List all users."""
        users = self.session.query(User).order_by(User.name).all()
        return [u.to_dict() for u in users]

    def get_user(self, user_id) -> Dict:
        """Get a user by ID."""
        return self._get(user_id).to_dict()

    def get_user_by_email(self, email: str):
        """Get a user by email (returns model)."""
        return self.session.query(User).filter(User.email == email.strip().lower()).first()

    def create_user(self, data: Dict) -> Dict:
        """Create a new user."""
        email = data['email'].strip().lower()
        self._require_unique_email(email)

        user = User(name=sanitize_string(data['name'], MAX_NAME_LENGTH), email=email)
        self.session.add(user)
        self.session.flush()
        logger.info(f"Created user: {user.id}")
        return user.to_dict()

    def update_user(self, user_id, data: Dict) -> Dict:
        """Update a user's name and email."""
        user = self._get(user_id)
        if 'name' in data:
            user.name = sanitize_string(data['name'], MAX_NAME_LENGTH)
        if 'email' in data:
            email = data['email'].strip().lower()
            self._require_unique_email(email, user.id)
            user.email = email
        self.session.flush()
        logger.info(f"Updated user: {user_id}")
        return user.to_dict()

    def delete_user(self, user_id):
        """
        Delete a user. Their tasks become unassigned and their comments
        stay without an author.
        """
        user = self._get(user_id)
        self.session.query(Task).filter(
            Task.user_id == user.id
        ).update({Task.user_id: None}, synchronize_session='fetch')
        self.session.query(TaskComment).filter(
            TaskComment.user_id == user.id
        ).update({TaskComment.user_id: None}, synchronize_session='fetch')
        self.session.delete(user)
        self.session.flush()
        logger.info(f"Deleted user: {user_id}")
