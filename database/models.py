"""
SQLAlchemy models for the kanban backend.
Defines boards, ordered columns, ordered tasks, comments, customers and users.
"""

import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, Text, Integer, DateTime, ForeignKey, JSON, Index
)
from sqlalchemy.orm import relationship
from database.connection import Base


def generate_uuid():
    """Generate a new UUID."""
    return str(uuid.uuid4())


def _isoformat(value):
    return value.isoformat() if value else None


# =============================================================================
# PEOPLE
# =============================================================================

class User(Base):
    """Application users that tasks can be assigned to."""
    __tablename__ = 'users'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'created_at': _isoformat(self.created_at),
            'updated_at': _isoformat(self.updated_at)
        }


class Customer(Base):
    """Customer/Client records."""
    __tablename__ = 'customers'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    email = Column(String(255))
    phone = Column(String(50))
    address = Column(Text)
    company = Column(String(255))
    notes = Column(Text)
    social_profiles = Column(JSON, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    tasks = relationship("Task", back_populates="customer")

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'address': self.address,
            'company': self.company,
            'notes': self.notes,
            'social_profiles': self.social_profiles or {},
            'created_at': _isoformat(self.created_at),
            'updated_at': _isoformat(self.updated_at)
        }


# =============================================================================
# BOARDS & COLUMNS
# =============================================================================

class Board(Base):
    """
    Kanban board. Parent of an ordered set of columns.

    order_version is bumped by every write to the column order and is the
    optimistic concurrency token for that sibling-set.
    """
    __tablename__ = 'boards'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    order_version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    columns = relationship(
        "BoardColumn",
        back_populates="board",
        order_by="BoardColumn.order"
    )

    def to_dict(self, include_columns=False, include_tasks=False):
        data = {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'created_at': _isoformat(self.created_at),
            'updated_at': _isoformat(self.updated_at)
        }
        if include_columns:
            data['columns'] = [
                c.to_dict(include_tasks=include_tasks) for c in self.columns
            ]
        return data


class BoardColumn(Base):
    """
    Column on a board (ordered within the board) and parent of an ordered
    set of tasks.
    """
    __tablename__ = 'board_columns'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    board_id = Column(String(36), ForeignKey('boards.id'), nullable=False)
    name = Column(String(255), nullable=False)
    order = Column(Integer, nullable=False, default=0)
    order_version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    board = relationship("Board", back_populates="columns")
    tasks = relationship(
        "Task",
        back_populates="column",
        order_by="Task.order"
    )

    __table_args__ = (
        Index('ix_board_columns_board_order', 'board_id', 'order'),
    )

    def to_dict(self, include_tasks=False):
        data = {
            'id': self.id,
            'board_id': self.board_id,
            'name': self.name,
            'order': self.order,
            'created_at': _isoformat(self.created_at),
            'updated_at': _isoformat(self.updated_at)
        }
        if include_tasks:
            data['tasks'] = [
                t.to_dict(include_relations=True, include_comments=True)
                for t in self.tasks
            ]
        return data


# =============================================================================
# TASKS & COMMENTS
# =============================================================================

class Task(Base):
    """Task card, ordered within its column."""
    __tablename__ = 'tasks'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    column_id = Column(String(36), ForeignKey('board_columns.id'), nullable=False)
    customer_id = Column(String(36), ForeignKey('customers.id'))
    user_id = Column(String(36), ForeignKey('users.id'))
    title = Column(String(255), nullable=False)
    description = Column(Text)
    due_date = Column(DateTime)
    order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    column = relationship("BoardColumn", back_populates="tasks")
    customer = relationship("Customer", back_populates="tasks")
    user = relationship("User")
    comments = relationship(
        "TaskComment",
        back_populates="task",
        order_by="TaskComment.created_at"
    )

    __table_args__ = (
        Index('ix_tasks_column_order', 'column_id', 'order'),
        Index('ix_tasks_due_date', 'due_date'),
    )

    def to_dict(self, include_relations=False, include_comments=False):
        data = {
            'id': self.id,
            'column_id': self.column_id,
            'customer_id': self.customer_id,
            'user_id': self.user_id,
            'title': self.title,
            'description': self.description,
            'due_date': _isoformat(self.due_date),
            'order': self.order,
            'created_at': _isoformat(self.created_at),
            'updated_at': _isoformat(self.updated_at)
        }
        if include_relations:
            column = self.column
            data['column'] = {
                'id': column.id,
                'name': column.name,
                'order': column.order,
                'board': {'id': column.board.id, 'name': column.board.name}
            } if column else None
            data['user'] = self.user.to_dict() if self.user else None
            data['customer'] = self.customer.to_dict() if self.customer else None
        if include_comments:
            data['comments'] = [c.to_dict() for c in self.comments]
        return data


class TaskComment(Base):
    """Comment left on a task."""
    __tablename__ = 'task_comments'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    task_id = Column(String(36), ForeignKey('tasks.id'), nullable=False)
    user_id = Column(String(36), ForeignKey('users.id'))
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    task = relationship("Task", back_populates="comments")
    user = relationship("User")

    __table_args__ = (
        Index('ix_task_comments_task', 'task_id'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'task_id': self.task_id,
            'user_id': self.user_id,
            'user': self.user.to_dict() if self.user else None,
            'content': self.content,
            'created_at': _isoformat(self.created_at),
            'updated_at': _isoformat(self.updated_at)
        }
