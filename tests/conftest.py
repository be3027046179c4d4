"""
Pytest configuration and shared fixtures
"""
import os
import sys
import pytest
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture
def app_config():
    """Fixture providing test configuration"""
    from config import TestingConfig
    return TestingConfig


@pytest.fixture
def test_env_vars():
    """Fixture providing test environment variables"""
    original_env = os.environ.copy()

    # Set test environment variables
    os.environ['FLASK_ENV'] = 'testing'
    os.environ['SECRET_KEY'] = 'test-secret-key-minimum-32-chars-long-for-security'

    yield

    # Restore original environment
    os.environ.clear()
    os.environ.update(original_env)


# ============================================================================
# DATABASE FIXTURES
# ============================================================================

@pytest.fixture
def session_factory():
    """Fresh in-memory SQLite database with all tables, per test"""
    from database.connection import init_engine, init_db, get_session_factory

    init_engine('sqlite://')
    init_db()
    return get_session_factory()


@pytest.fixture
def run(session_factory):
    """
    Run work(session) in its own committed transaction, the way a request
    does, and return its result.
    """
    from services.transactions import run_in_transaction

    def _run(work, **kwargs):
        kwargs.setdefault('retry_delay', 0)
        return run_in_transaction(session_factory, work, **kwargs)

    return _run


@pytest.fixture
def make_board(run):
    """Factory creating a board with the given column names"""
    from services.board_repository import BoardRepository

    def _make(name='Board', columns=('To Do', 'In Progress', 'Done')):
        return run(lambda s: BoardRepository(s, columns).create_board({'name': name}))

    return _make


@pytest.fixture
def make_tasks(run):
    """Factory appending tasks with the given titles to a column"""
    from services.task_repository import TaskRepository

    def _make(column_id, titles):
        return [
            run(lambda s, t=title: TaskRepository(s).create_task({'title': t, 'column_id': column_id}))
            for title in titles
        ]

    return _make


@pytest.fixture
def task_orders(run):
    """Read a column's tasks as [(title, order)] in display order"""
    from database.models import Task

    def _read(column_id):
        return run(lambda s: [
            (t.title, t.order)
            for t in s.query(Task).filter(Task.column_id == column_id).order_by(Task.order).all()
        ])

    return _read


@pytest.fixture
def column_orders(run):
    """Read a board's columns as [(name, order)] in display order"""
    from database.models import BoardColumn

    def _read(board_id):
        return run(lambda s: [
            (c.name, c.order)
            for c in s.query(BoardColumn).filter(BoardColumn.board_id == board_id).order_by(BoardColumn.order).all()
        ])

    return _read


# ============================================================================
# APPLICATION FIXTURES
# ============================================================================

@pytest.fixture
def app(app_config):
    """Flask app on a fresh in-memory database"""
    from app_init import create_app

    app = create_app(app_config)
    yield app


@pytest.fixture
def client(app):
    """Create a test client"""
    return app.test_client()
