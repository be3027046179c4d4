"""
Tests for writes that race another committed writer, and for lock order
"""
import pytest
from unittest.mock import patch

from services.board_repository import BoardRepository
from services.errors import ConflictError
from services.ordering import SiblingRepository, task_reconciler
from services.task_repository import TaskRepository


@pytest.fixture
def session_factory(tmp_path):
    """File-backed SQLite so a second session can commit mid-request"""
    from database.connection import init_engine, init_db, get_session_factory

    engine = init_engine(f"sqlite:///{tmp_path / 'kanban.db'}")
    init_db()
    yield get_session_factory()
    engine.dispose()


@pytest.fixture
def board(make_board):
    return make_board()


@pytest.fixture
def column_ids(board):
    return [c['id'] for c in board['columns']]


@pytest.fixture
def abc(make_tasks, column_ids):
    """Tasks A, B, C in the first column; returns {title: id}"""
    return {t['title']: t['id'] for t in make_tasks(column_ids[0], ['A', 'B', 'C'])}


@pytest.fixture
def before_first_claim():
    """
    Run a callback once, right before the first parent claim of the next
    unit of work, after that unit has already read the rows it will move.
    """
    original = SiblingRepository.claim_parent

    def _install(callback):
        pending = [callback]

        def claim_parent(repo, parent_id):
            if pending:
                pending.pop()()
            return original(repo, parent_id)

        return patch.object(SiblingRepository, 'claim_parent', new=claim_parent)

    return _install


def _counted(work, attempts):
    def _work(session):
        attempts.append(1)
        return work(session)
    return _work


@pytest.mark.integration
class TestMoveAfterConcurrentMove:
    """A task moved by another request between read and lock"""

    def test_cross_list_move_is_retried(self, run, abc, column_ids, task_orders, before_first_claim):
        """Test that a move whose source went stale retries and lands where asked"""
        attempts = []
        elsewhere = lambda: run(lambda s: TaskRepository(s).move_task(abc['A'], column_ids[1], 0))

        with before_first_claim(elsewhere):
            task = run(_counted(
                lambda s: TaskRepository(s).move_task(abc['A'], column_ids[2], 0), attempts
            ))

        assert len(attempts) == 2
        assert task['column_id'] == column_ids[2]
        assert task['order'] == 0
        assert task_orders(column_ids[0]) == [('B', 0), ('C', 1)]
        assert task_orders(column_ids[1]) == []
        assert task_orders(column_ids[2]) == [('A', 0)]

    def test_same_list_move_is_retried_as_cross_list(self, run, abc, column_ids, task_orders,
                                                     before_first_claim):
        """Test that a same-column move of a task that left the column moves it back"""
        attempts = []
        elsewhere = lambda: run(lambda s: TaskRepository(s).move_task(abc['A'], column_ids[1], 0))

        with before_first_claim(elsewhere):
            task = run(_counted(
                lambda s: TaskRepository(s).move_task(abc['A'], column_ids[0], 1), attempts
            ))

        assert len(attempts) == 2
        assert task['column_id'] == column_ids[0]
        assert task_orders(column_ids[0]) == [('B', 0), ('A', 1), ('C', 2)]
        assert task_orders(column_ids[1]) == []

    def test_conflict_surfaces_when_attempts_run_out(self, run, abc, column_ids, task_orders,
                                                     before_first_claim):
        """Test that a single attempt reports ConflictError instead of a validation error"""
        elsewhere = lambda: run(lambda s: TaskRepository(s).move_task(abc['A'], column_ids[1], 0))

        with before_first_claim(elsewhere):
            with pytest.raises(ConflictError):
                run(lambda s: TaskRepository(s).move_task(abc['A'], column_ids[2], 0), max_attempts=1)

        assert task_orders(column_ids[0]) == [('B', 0), ('C', 1)]
        assert task_orders(column_ids[1]) == [('A', 0)]
        assert task_orders(column_ids[2]) == []

    def test_direct_same_list_call_with_wrong_parent_is_still_invalid(self, run, abc, column_ids):
        """Test that a caller naming the wrong list gets a validation error, not a retry"""
        from services.errors import ValidationError

        with pytest.raises(ValidationError):
            run(lambda s: task_reconciler(s).on_move_same_list(column_ids[1], abc['A'], 0, 0))


@pytest.mark.integration
class TestDeleteAfterConcurrentMove:
    """A task moved by another request before its delete locked anything"""

    def test_delete_is_retried_against_new_column(self, run, make_tasks, abc, column_ids,
                                                  task_orders, before_first_claim):
        """Test that the gap is closed in the column the task actually left"""
        make_tasks(column_ids[1], ['X'])
        attempts = []
        elsewhere = lambda: run(lambda s: TaskRepository(s).move_task(abc['A'], column_ids[1], 0))

        with before_first_claim(elsewhere):
            run(_counted(lambda s: TaskRepository(s).delete_task(abc['A']), attempts))

        assert len(attempts) == 2
        assert task_orders(column_ids[0]) == [('B', 0), ('C', 1)]
        assert task_orders(column_ids[1]) == [('X', 0)]


@pytest.fixture
def lock_events():
    """Record parent claims and item reads in the order they happen"""
    events = []
    original_claim = SiblingRepository.claim_parent
    original_get = SiblingRepository.get_item

    def claim_parent(repo, parent_id):
        events.append(('claim', parent_id))
        return original_claim(repo, parent_id)

    def get_item(repo, item_id, lock=True):
        events.append(('lock' if lock else 'read', item_id))
        return original_get(repo, item_id, lock)

    with patch.object(SiblingRepository, 'claim_parent', new=claim_parent), \
            patch.object(SiblingRepository, 'get_item', new=get_item):
        yield events


def _first(events, kind):
    return next(i for i, (k, _) in enumerate(events) if k == kind)


@pytest.mark.unit
class TestLockOrder:
    """Parents are always locked before the rows inside them"""

    def test_delete_claims_parent_before_locking_item(self, run, abc, lock_events):
        """Test that on_delete locks the item only after claiming its column"""
        run(lambda s: task_reconciler(s).on_delete(abc['A']))
        assert _first(lock_events, 'claim') < _first(lock_events, 'lock')

    def test_cross_list_move_claims_parents_before_locking_item(self, run, abc, column_ids, lock_events):
        """Test that a cross-column move locks the task after both columns"""
        run(lambda s: TaskRepository(s).move_task(abc['A'], column_ids[1], 0))
        claims = [i for i, (k, _) in enumerate(lock_events) if k == 'claim']
        assert len(claims) >= 2
        assert claims[1] < _first(lock_events, 'lock')

    def test_same_list_clamped_move_claims_parent_before_locking_item(self, run, abc, column_ids,
                                                                      lock_events):
        """Test that a cross-list call into the same list locks the item after the column"""
        run(lambda s: task_reconciler(s).on_move_cross_list(abc['A'], column_ids[0], column_ids[0], 9))
        assert _first(lock_events, 'claim') < _first(lock_events, 'lock')

    def test_delete_column_claims_board_first(self, run, board, make_tasks, column_ids, lock_events):
        """Test that deleting a column locks the board before any column"""
        make_tasks(column_ids[1], ['X', 'Y'])
        del lock_events[:]

        run(lambda s: BoardRepository(s).delete_column(board['id'], column_ids[1]))

        claimed = [parent_id for kind, parent_id in lock_events if kind == 'claim']
        assert claimed[0] == board['id']
        assert set(column_ids[:2]) <= set(claimed)
