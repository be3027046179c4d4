"""
Database connection management for the kanban backend.
Handles SQLAlchemy engine creation, session management, and connection verification.
"""

import os
import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

# SQLAlchemy Base for model declarations
Base = declarative_base()

# Engine and SessionLocal will be initialized when needed
engine = None
SessionLocal = None


def normalize_database_url(url):
    """Handle Heroku/Render style postgres:// URLs."""
    if url and url.startswith('postgres://'):
        return url.replace('postgres://', 'postgresql://', 1)
    return url


def init_engine(database_url=None, **engine_options):
    """
    Create the SQLAlchemy engine and session factory.

    Args:
        database_url: Connection string; falls back to DATABASE_URL
        **engine_options: Extra keyword arguments for create_engine

    Returns:
        The configured engine
    """
    global engine, SessionLocal

    url = normalize_database_url(database_url or os.environ.get('DATABASE_URL'))
    if not url:
        logger.error("DATABASE_URL environment variable is not set!")
        raise RuntimeError(
            "DATABASE_URL not configured. Cannot connect to the database. "
            "Please set the DATABASE_URL environment variable."
        )

    options = dict(engine_options)
    if url.startswith('sqlite'):
        # One shared connection so in-memory databases survive across sessions
        options.pop('pool_recycle', None)
        options.setdefault('connect_args', {'check_same_thread': False})
        if ':memory:' in url or url in ('sqlite://', 'sqlite:///'):
            options.setdefault('poolclass', StaticPool)
    else:
        options.setdefault('pool_size', 5)
        options.setdefault('max_overflow', 10)
        options.setdefault('pool_pre_ping', True)

    try:
        engine = create_engine(url, echo=False, **options)
    except Exception as e:
        logger.error(f"Failed to create database engine: {e}")
        raise RuntimeError(f"Failed to connect to database: {e}")

    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    logger.info(f"Database engine created for {engine.url.get_backend_name()}")
    return engine


def get_engine():
    """Get the SQLAlchemy engine, creating it from the environment if needed."""
    if engine is None:
        return init_engine()
    return engine


def get_session_factory():
    """Get or create the session factory."""
    if SessionLocal is None:
        init_engine()
    return SessionLocal


@contextmanager
def get_db_session():
    """
    Context manager for getting a database session.
    Commits on success, rolls back on any exception.

    Example:
        with get_db_session() as db:
            boards = db.query(Board).all()
    """
    session_factory = get_session_factory()
    db = session_factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def check_db_connection():
    """
    Verify that the database connection is working.
    Returns True if connection is successful, raises exception otherwise.
    """
    try:
        eng = get_engine()
        with eng.connect() as conn:
            result = conn.execute(text("SELECT 1"))
            result.fetchone()
        logger.debug("Database connection verified successfully")
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        raise RuntimeError(f"Cannot connect to database: {e}")


def init_db():
    """
    Initialize the database by creating all tables.
    """
    # Import models to ensure they're registered with Base
    from database import models  # noqa: F401

    Base.metadata.create_all(bind=get_engine())
    logger.info("Database tables created/verified")


def drop_db():
    """Drop every table. Used by tests and the reset command."""
    from database import models  # noqa: F401

    Base.metadata.drop_all(bind=get_engine())
    logger.info("Database tables dropped")
