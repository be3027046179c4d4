"""
Database seeding for the Kanban CRM.
Creates a demo board, customers, users and tasks if the database is empty.
"""

import logging
from datetime import datetime, timedelta

from database.connection import get_db_session
from database.models import Board, Customer, TaskComment, User

logger = logging.getLogger(__name__)

DEMO_BOARD_NAME = "Main Project Board"
DEMO_BOARD_DESCRIPTION = "Our main kanban board for all projects"

DEMO_USERS = [
    {'name': 'John Doe', 'email': 'john@example.com'},
    {'name': 'Jane Smith', 'email': 'jane@example.com'},
]

DEMO_CUSTOMERS = [
    {
        'name': 'Acme Corporation',
        'email': 'info@acme.com',
        'phone': '555-123-4567',
        'address': '123 Business St, Innovation City',
        'company': 'Acme Corporation',
        'notes': 'Key client with multiple projects',
    },
    {
        'name': 'Tech Innovators',
        'email': 'contact@techinnovators.com',
        'phone': '555-987-6543',
        'address': '456 Tech Ave, Silicon Valley',
        'company': 'Tech Innovators Inc.',
        'notes': 'Technology consulting firm',
    },
    {
        'name': 'Global Retail',
        'email': 'support@globalretail.com',
        'phone': '555-456-7890',
        'address': '789 Commerce Blvd, Market Town',
        'company': 'Global Retail Group',
        'notes': 'Large retail chain with international presence',
    },
]

# (title, description, column index, customer index, user index, due in days)
DEMO_TASKS = [
    ('Design new CRM homepage', 'Create mockups for the new CRM homepage with improved UX', 0, 0, 0, 7),
    ('Database optimization', 'Optimize database queries for better performance', 1, 1, 1, 3),
    ('API endpoints for mobile app', 'Implement the API endpoints for the mobile application', 1, 2, 1, 5),
    ('Update user documentation', 'Update the user guide with new features', 0, 0, 0, 2),
    ('Security audit', 'Conduct security audit of the application', 2, 1, 1, -1),
]

# (task index, user index, content)
DEMO_COMMENTS = [
    (0, 1, "Let's make sure we incorporate the new brand guidelines in the design."),
    (0, 0, "I'll prepare some initial concepts by tomorrow."),
    (1, 1, "Found several slow queries that need optimization."),
    (2, 1, "Authentication endpoints are now complete."),
]


def seed_users(session):
    """Create the demo users."""
    users = [User(**data) for data in DEMO_USERS]
    session.add_all(users)
    session.flush()
    logger.info(f"Created {len(users)} users")
    return users


def seed_customers(session):
    """Create the demo customers."""
    customers = [Customer(**data) for data in DEMO_CUSTOMERS]
    session.add_all(customers)
    session.flush()
    logger.info(f"Created {len(customers)} customers")
    return customers


def seed_board(session, users, customers):
    """
    Create the demo board and its tasks.

    Columns and tasks go through the repositories so every order is
    assigned by the reconciler and stays dense.
    """
    from services.board_repository import BoardRepository
    from services.task_repository import TaskRepository

    board = BoardRepository(session).create_board({
        'name': DEMO_BOARD_NAME,
        'description': DEMO_BOARD_DESCRIPTION,
    })
    columns = board['columns']

    tasks = TaskRepository(session)
    created = []
    now = datetime.utcnow()
    for title, description, column, customer, user, due_in in DEMO_TASKS:
        created.append(tasks.create_task({
            'title': title,
            'description': description,
            'column_id': columns[column]['id'],
            'customer_id': customers[customer].id,
            'user_id': users[user].id,
            'due_date': (now + timedelta(days=due_in)).isoformat(),
        }))

    for task, user, content in DEMO_COMMENTS:
        session.add(TaskComment(task_id=created[task]['id'], user_id=users[user].id, content=content))
    session.flush()

    logger.info(f"Created board {board['id']} with {len(created)} tasks")
    return board


def seed_database():
    """
    Seed the database with demo data if it is empty.
    Call this at application startup.

    Returns:
        True if data was created, False if the database was not empty
    """
    try:
        with get_db_session() as session:
            if session.query(Board).first() or session.query(User).first():
                logger.info("Database already contains data, skipping seed")
                return False

            users = seed_users(session)
            customers = seed_customers(session)
            seed_board(session, users, customers)
            logger.info("Database seeding completed successfully")
            return True
    except Exception as e:
        logger.error(f"Database seeding failed: {e}")
        raise


if __name__ == '__main__':
    from database.connection import init_db

    logging.basicConfig(level=logging.INFO)
    init_db()
    seed_database()
