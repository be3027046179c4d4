"""
Transaction runner for ordering operations.

One call is one unit of work: commit on success, rollback on any failure,
bounded retries when the rows changed underneath us.
"""

import time
import logging
from typing import Callable, TypeVar

from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from services.errors import ConflictError, KanbanError, StorageError

logger = logging.getLogger(__name__)

T = TypeVar('T')

# SQLSTATE codes PostgreSQL uses for serialization failure and deadlock
RETRYABLE_SQLSTATES = {'40001', '40P01'}

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 0.05  # seconds, multiplied by the attempt number


def is_retryable_db_error(error: Exception) -> bool:
    """Check whether a database error means 'concurrent writer, try again'."""
    if isinstance(error, StaleDataError):
        return True
    if isinstance(error, DBAPIError):
        orig = getattr(error, 'orig', None)
        code = getattr(orig, 'pgcode', None) or getattr(orig, 'sqlstate', None)
        return code in RETRYABLE_SQLSTATES
    return False


def run_in_transaction(session_factory: Callable, work: Callable[..., T],
                       max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                       retry_delay: float = DEFAULT_RETRY_DELAY) -> T:
    """
    Run work(session) in its own transaction.

    Args:
        session_factory: Callable returning a new Session
        work: Function taking the session; its return value is returned
        max_attempts: Attempts before a ConflictError is surfaced
        retry_delay: Base backoff between attempts, in seconds

    Returns:
        Whatever work returned

    Raises:
        ConflictError: Rows kept changing for max_attempts attempts
        ValidationError, NotFoundError: Propagated unchanged, never retried
        StorageError: Any other database failure
    """
    attempt = 0
    while True:
        attempt += 1
        session = session_factory()
        try:
            result = work(session)
            session.commit()
            return result
        except ConflictError as e:
            session.rollback()
            conflict = e
        except KanbanError:
            session.rollback()
            raise
        except SQLAlchemyError as e:
            session.rollback()
            if not is_retryable_db_error(e):
                logger.error(f"Database error, transaction rolled back: {e}")
                raise StorageError(f"Database operation failed: {e}") from e
            conflict = ConflictError(f"Concurrent update detected: {e}")
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

        if attempt >= max_attempts:
            logger.error(f"Giving up after {attempt} attempts: {conflict.message}")
            raise conflict

        logger.warning(
            f"Conflict on attempt {attempt}/{max_attempts}, retrying: {conflict.message}"
        )
        time.sleep(retry_delay * attempt)
