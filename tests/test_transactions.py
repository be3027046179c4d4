"""
Tests for the transaction runner
"""
import pytest
from unittest.mock import Mock, patch
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from services.errors import ConflictError, NotFoundError, StorageError, ValidationError
from services.transactions import is_retryable_db_error, run_in_transaction


class PgError(Exception):
    """Stand-in for a driver exception carrying a SQLSTATE"""

    def __init__(self, pgcode):
        super().__init__(f"sqlstate {pgcode}")
        self.pgcode = pgcode


@pytest.fixture
def session():
    return Mock()


@pytest.fixture
def factory(session):
    return Mock(return_value=session)


@pytest.mark.unit
class TestRetryableErrors:
    """Tests for retryable error detection"""

    def test_serialization_failure_is_retryable(self):
        """Test that SQLSTATE 40001 is retried"""
        error = OperationalError('UPDATE', {}, PgError('40001'))
        assert is_retryable_db_error(error) is True

    def test_deadlock_is_retryable(self):
        """Test that SQLSTATE 40P01 is retried"""
        error = OperationalError('UPDATE', {}, PgError('40P01'))
        assert is_retryable_db_error(error) is True

    def test_stale_data_is_retryable(self):
        """Test that StaleDataError is retried"""
        assert is_retryable_db_error(StaleDataError("gone")) is True

    def test_integrity_error_is_not_retryable(self):
        """Test that constraint violations are not retried"""
        error = IntegrityError('INSERT', {}, PgError('23505'))
        assert is_retryable_db_error(error) is False

    def test_plain_exception_is_not_retryable(self):
        """Test that non-database errors are not retried"""
        assert is_retryable_db_error(ValueError("nope")) is False


@pytest.mark.unit
class TestRunInTransaction:
    """Tests for commit, rollback and retry behaviour"""

    def test_success_commits_and_closes(self, factory, session):
        """Test that a successful unit of work is committed"""
        result = run_in_transaction(factory, lambda s: 'done', retry_delay=0)

        assert result == 'done'
        session.commit.assert_called_once()
        session.rollback.assert_not_called()
        session.close.assert_called_once()

    def test_work_receives_session(self, factory, session):
        """Test that work is called with the new session"""
        work = Mock(return_value=1)
        run_in_transaction(factory, work, retry_delay=0)
        work.assert_called_once_with(session)

    def test_conflict_is_retried_then_succeeds(self, factory, session):
        """Test that a ConflictError triggers a fresh attempt"""
        work = Mock(side_effect=[ConflictError("raced"), 'ok'])

        result = run_in_transaction(factory, work, max_attempts=3, retry_delay=0)

        assert result == 'ok'
        assert work.call_count == 2
        assert factory.call_count == 2
        assert session.rollback.call_count == 1
        assert session.commit.call_count == 1

    def test_conflict_surfaces_after_max_attempts(self, factory, session):
        """Test that persistent conflicts raise ConflictError"""
        work = Mock(side_effect=ConflictError("raced"))

        with pytest.raises(ConflictError):
            run_in_transaction(factory, work, max_attempts=3, retry_delay=0)

        assert work.call_count == 3
        session.commit.assert_not_called()
        assert session.close.call_count == 3

    def test_serialization_failure_becomes_conflict(self, factory):
        """Test that a retryable database error is retried then surfaced as ConflictError"""
        error = OperationalError('UPDATE', {}, PgError('40001'))
        work = Mock(side_effect=error)

        with pytest.raises(ConflictError):
            run_in_transaction(factory, work, max_attempts=2, retry_delay=0)

        assert work.call_count == 2

    @pytest.mark.parametrize('error', [ValidationError("bad"), NotFoundError("missing")])
    def test_client_errors_are_not_retried(self, factory, session, error):
        """Test that validation and not-found errors propagate on the first attempt"""
        work = Mock(side_effect=error)

        with pytest.raises(type(error)):
            run_in_transaction(factory, work, max_attempts=3, retry_delay=0)

        assert work.call_count == 1
        session.rollback.assert_called_once()
        session.close.assert_called_once()

    def test_other_database_errors_become_storage_error(self, factory, session):
        """Test that non-retryable database failures map to StorageError"""
        work = Mock(side_effect=OperationalError('SELECT 1', {}, Exception("connection lost")))

        with pytest.raises(StorageError):
            run_in_transaction(factory, work, max_attempts=3, retry_delay=0)

        assert work.call_count == 1
        session.rollback.assert_called_once()

    def test_unexpected_errors_roll_back_and_propagate(self, factory, session):
        """Test that unrelated exceptions are rolled back and re-raised"""
        work = Mock(side_effect=KeyError('column_id'))

        with pytest.raises(KeyError):
            run_in_transaction(factory, work, retry_delay=0)

        session.rollback.assert_called_once()
        session.close.assert_called_once()

    @patch('services.transactions.time.sleep')
    def test_backoff_grows_with_attempts(self, mock_sleep, factory):
        """Test that the delay between attempts is linear in the attempt number"""
        work = Mock(side_effect=[ConflictError("a"), ConflictError("b"), 'ok'])

        run_in_transaction(factory, work, max_attempts=3, retry_delay=0.5)

        assert [c.args[0] for c in mock_sleep.call_args_list] == [0.5, 1.0]


@pytest.mark.integration
class TestRollbackOnDatabase:
    """Failed units of work leave persisted orders untouched"""

    def test_failure_after_partial_shift_rolls_back(self, run, make_board, make_tasks, task_orders):
        """Test that a shift followed by an error is fully undone"""
        from services.ordering import task_reconciler

        board = make_board(columns=('Only',))
        column_id = board['columns'][0]['id']
        make_tasks(column_id, ['A', 'B', 'C'])

        def broken(s):
            task_reconciler(s).repo.shift(column_id, 1, lower=1)
            raise ValidationError("abort after shifting")

        with pytest.raises(ValidationError):
            run(broken)

        assert task_orders(column_id) == [('A', 0), ('B', 1), ('C', 2)]
