"""
Tests for task endpoints
"""
import pytest


@pytest.fixture
def columns(client):
    response = client.post('/api/boards', json={'name': 'Board'})
    return [c['id'] for c in response.get_json()['board']['columns']]


@pytest.fixture
def create(client):
    """Create a task through the API and return it"""
    def _create(title, column_id, **fields):
        response = client.post('/api/tasks', json=dict(fields, title=title, column_id=column_id))
        assert response.status_code == 201
        return response.get_json()['task']

    return _create


def _orders(client, column_id):
    tasks = client.get(f'/api/tasks?column_id={column_id}').get_json()['tasks']
    return [(t['title'], t['order']) for t in tasks]


@pytest.mark.integration
class TestTaskEndpoints:
    """Tests for /api/tasks"""

    def test_create_appends(self, client, columns, create):
        """Test that created tasks are appended in order"""
        create('A', columns[0])
        task = create('B', columns[0])

        assert task['order'] == 1
        assert _orders(client, columns[0]) == [('A', 0), ('B', 1)]

    def test_create_requires_title_and_column(self, client, columns):
        """Test that missing fields are a 400"""
        response = client.post('/api/tasks', json={'title': 'No column'})
        assert response.status_code == 400
        assert 'column_id' in response.get_json()['message']

    def test_create_in_unknown_column_is_404(self, client):
        """Test that an unknown column is a 404"""
        response = client.post('/api/tasks', json={'title': 'X', 'column_id': 'missing'})
        assert response.status_code == 404

    def test_get_update_delete(self, client, columns, create):
        """Test the single-task lifecycle"""
        task = create('Draft', columns[0])

        fetched = client.get(f"/api/tasks/{task['id']}")
        assert fetched.status_code == 200
        assert fetched.get_json()['task']['comments'] == []

        updated = client.put(f"/api/tasks/{task['id']}", json={'title': 'Final', 'due_date': '2026-06-01'})
        assert updated.status_code == 200
        assert updated.get_json()['task']['title'] == 'Final'

        assert client.delete(f"/api/tasks/{task['id']}").status_code == 204
        assert client.get(f"/api/tasks/{task['id']}").status_code == 404

    def test_delete_closes_gap(self, client, columns, create):
        """Test that deleting the middle task resequences the column"""
        create('A', columns[0])
        b = create('B', columns[0])
        create('C', columns[0])

        client.delete(f"/api/tasks/{b['id']}")

        assert _orders(client, columns[0]) == [('A', 0), ('C', 1)]

    def test_calendar(self, client, columns, create):
        """Test that the calendar lists dated tasks only"""
        create('Dated', columns[0], due_date='2026-02-01')
        create('Undated', columns[0])

        tasks = client.get('/api/calendar').get_json()['tasks']
        assert [t['title'] for t in tasks] == ['Dated']


@pytest.mark.integration
class TestMoveEndpoint:
    """Tests for /api/tasks/<id>/move"""

    def test_move_within_column(self, client, columns, create):
        """Test moving A to the end of its column"""
        a = create('A', columns[0])
        create('B', columns[0])
        create('C', columns[0])

        response = client.put(f"/api/tasks/{a['id']}/move", json={'column_id': columns[0], 'order': 2})

        assert response.status_code == 200
        assert response.get_json()['task']['order'] == 2
        assert _orders(client, columns[0]) == [('B', 0), ('C', 1), ('A', 2)]

    def test_move_across_columns(self, client, columns, create):
        """Test moving B to the head of another column"""
        create('A', columns[0])
        b = create('B', columns[0])
        create('X', columns[1])

        response = client.put(f"/api/tasks/{b['id']}/move", json={'column_id': columns[1], 'order': 0})

        assert response.status_code == 200
        assert response.get_json()['task']['column_id'] == columns[1]
        assert _orders(client, columns[1]) == [('B', 0), ('X', 1)]
        assert _orders(client, columns[0]) == [('A', 0)]

    def test_move_across_columns_clamps_index(self, client, columns, create):
        """Test that an index past the end of the target appends"""
        a = create('A', columns[0])
        create('X', columns[1])

        response = client.put(f"/api/tasks/{a['id']}/move", json={'column_id': columns[1], 'order': 50})

        assert response.status_code == 200
        assert _orders(client, columns[1]) == [('X', 0), ('A', 1)]

    def test_move_within_column_out_of_range(self, client, columns, create):
        """Test that an out-of-range same-column move is a 400"""
        a = create('A', columns[0])
        create('B', columns[0])

        response = client.put(f"/api/tasks/{a['id']}/move", json={'column_id': columns[0], 'order': 2})

        assert response.status_code == 400
        assert _orders(client, columns[0]) == [('A', 0), ('B', 1)]

    def test_move_requires_order(self, client, columns, create):
        """Test that a move without an order is a 400"""
        a = create('A', columns[0])
        response = client.put(f"/api/tasks/{a['id']}/move", json={'column_id': columns[1]})
        assert response.status_code == 400

    def test_move_unknown_task_is_404(self, client, columns):
        """Test that moving a missing task is a 404"""
        response = client.put('/api/tasks/missing/move', json={'column_id': columns[0], 'order': 0})
        assert response.status_code == 404


@pytest.mark.integration
class TestReorderEndpoint:
    """Tests for /api/reorder"""

    def test_reorder(self, client, columns, create):
        """Test that a full order is applied and echoed"""
        ids = [create(t, columns[0])['id'] for t in ('A', 'B', 'C')]
        wanted = [ids[2], ids[0], ids[1]]

        response = client.put('/api/reorder', json={'column_id': columns[0], 'tasks': wanted})

        assert response.status_code == 200
        assert response.get_json()['data'] == wanted
        assert _orders(client, columns[0]) == [('C', 0), ('A', 1), ('B', 2)]

    def test_reorder_with_missing_task(self, client, columns, create):
        """Test that a stale list is a 400 and leaves orders unchanged"""
        a = create('A', columns[0])
        b = create('B', columns[0])
        create('D', columns[0])

        response = client.put('/api/reorder', json={'column_id': columns[0], 'tasks': [b['id'], a['id']]})

        assert response.status_code == 400
        assert _orders(client, columns[0]) == [('A', 0), ('B', 1), ('D', 2)]

    def test_reorder_with_duplicates(self, client, columns, create):
        """Test that duplicate ids are a 400"""
        a = create('A', columns[0])
        create('B', columns[0])

        response = client.put('/api/reorder', json={'column_id': columns[0], 'tasks': [a['id'], a['id']]})

        assert response.status_code == 400
        assert response.get_json()['field'] == 'tasks'

    def test_reorder_unknown_column_is_404(self, client):
        """Test that reordering a missing column is a 404"""
        response = client.put('/api/reorder', json={'column_id': 'missing', 'tasks': []})
        assert response.status_code == 404
